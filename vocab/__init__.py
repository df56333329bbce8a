"""Response caching and session health for the vocabulary app."""

__version__ = "0.3.0"
