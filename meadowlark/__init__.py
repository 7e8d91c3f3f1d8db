"""Meadowlark Travel website."""

__version__ = "0.1"
