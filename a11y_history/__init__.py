"""Scan history and comparison for accessibility audit reports."""

__version__ = "0.1.0"
