"""Package price computation service."""

__version__ = "1.0.0"
