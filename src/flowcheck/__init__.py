"""Node configuration validation and version upgrade planning."""

__version__ = "0.1.0"
