"""Tickerdeck: stock dashboard refresh and view-synchronization engine."""

__version__ = "0.3.0"
