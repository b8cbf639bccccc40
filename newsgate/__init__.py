"""Newsgate: deadline-bounded news aggregation with a last-known-good cache."""

__version__ = "0.1.0"

__all__ = ["__version__"]
