"""Product imagery derivative service."""

__version__ = "1.0.0"
