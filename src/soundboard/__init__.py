"""Voice-activated soundboard."""

__version__ = "0.1.0"
