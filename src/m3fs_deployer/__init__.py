"""Deploy tool for 3FS storage clusters."""

__version__ = "0.1.0"
