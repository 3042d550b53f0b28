"""Utility functions and helpers for the ketctl application."""
import ipaddress
import secrets
import string
from typing import Any, Dict, Iterable

from ..config import Config


def redact_sensitive_data(data: Any) -> Any:
    """Recursively redact sensitive data from dictionaries and lists.

    Args:
        data: Input data that might contain sensitive information

    Returns:
        Data with sensitive values redacted
    """
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if any(
                redact_key.lower() in str(k).lower()
                for redact_key in Config.REDACT_KEYS
            ) and v else redact_sensitive_data(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [redact_sensitive_data(item) for item in data]
    return data


def is_valid_ip(ip: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False


def parse_labels(pairs: Iterable[str]) -> Dict[str, str]:
    """Parse ``key=value`` strings into a label mapping.

    Raises:
        ValueError: If an entry is not a single key=value pair
    """
    labels = {}
    for pair in pairs:
        parts = pair.split("=")
        if len(parts) != 2 or not parts[0]:
            raise ValueError(f"invalid label {pair!r} provided, must be key=value pair")
        labels[parts[0]] = parts[1]
    return labels


def generate_password(length: int = 16) -> str:
    """Generate an alphanumeric password."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
