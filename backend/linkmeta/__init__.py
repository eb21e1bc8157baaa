"""Link metadata resolver service."""

__version__ = "0.1.0"
