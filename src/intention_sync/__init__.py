"""Weekly intention store, widget mirror, and sync status coordination."""

__version__ = "0.1.0"

__all__ = ["__version__"]
