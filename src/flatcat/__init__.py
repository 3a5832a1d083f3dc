"""flatcat: flatten a repository into a single annotated text stream."""

__version__ = "0.1.0"
