"""Policy checks for Docker container creation requests."""

__version__ = "0.1.0"