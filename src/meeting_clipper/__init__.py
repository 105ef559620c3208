"""Turn meeting recordings into short clips chosen by a chat model."""

__version__ = "0.1.0"
