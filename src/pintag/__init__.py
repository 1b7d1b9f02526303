"""Pintag: collaborative photo tagging with pins, comments and review."""

__version__ = "0.1.0"
