"""vectormem — client for Chroma-style remote vector stores."""

__version__ = "0.1.0"
