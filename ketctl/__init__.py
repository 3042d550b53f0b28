"""ketctl - Kubernetes installation plan management CLI."""

__version__ = "0.1.0"
