"""Content store and HTTP API for a small-business marketing site."""

__version__ = "0.4.0"
