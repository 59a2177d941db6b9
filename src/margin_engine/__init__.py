"""Margin-based order and position accounting engine."""

__version__ = "0.1.0"
