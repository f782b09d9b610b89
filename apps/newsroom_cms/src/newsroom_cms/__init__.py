"""Editorial workflow and content lifecycle backend for a news site."""

__version__ = "0.1.0"
