"""Package version, reported as the HAR creator version."""

__version__ = "1.0.0"
