"""Video to transcript and slides pipeline."""

__version__ = "0.1.0"
