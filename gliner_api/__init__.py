"""Gliner API: an HTTP service detecting PII spans in free-form text."""

__version__ = "0.1.0"
