"""Relational integrity and join composition for academic enrollment records."""

__version__ = "1.0.0"
