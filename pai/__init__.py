"""Personal Activity Index - aggregate your posts from across the web."""

__version__ = "0.1.0"
