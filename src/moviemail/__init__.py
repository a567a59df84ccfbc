"""Email notifications for new releases by your favourite directors."""

__version__ = "0.1.0"

__all__ = ["__version__"]
