"""Shopping Center: generic MongoDB data-access layer and product services."""

__version__ = "0.1.0"
__author__ = "Shopping Center Team"

__all__ = ["__version__", "__author__"]
