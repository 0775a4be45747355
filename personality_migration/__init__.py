"""Routing and shadow-comparison layer for the personality store migration."""

__version__ = "0.1.0"
