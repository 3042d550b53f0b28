"""Configuration management for the ketctl application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

class Config:
    """Application configuration with sensible defaults."""

    # Logging
    LOG_LEVEL: str = os.getenv("KETCTL_LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "KETCTL_LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # External engines
    ANSIBLE_DIR: str = os.getenv("KETCTL_ANSIBLE_DIR", "ansible")
    ANSIBLE_BIN: str = os.getenv("KETCTL_ANSIBLE_BIN", "ansible-playbook")
    PROVIDERS_DIR: str = os.getenv("KETCTL_PROVIDERS_DIR", "providers")
    TERRAFORM_BIN: str = os.getenv("KETCTL_TERRAFORM_BIN", "terraform")

    # Timeouts (in seconds)
    SSH_TIMEOUT: int = int(os.getenv("KETCTL_SSH_TIMEOUT", "10"))

    # Security
    REDACT_KEYS: tuple = ("admin_password", "password", "secret", "token")
