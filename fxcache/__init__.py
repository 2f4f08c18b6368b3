"""Offline-first exchange rate cache fed by free public providers."""

__version__ = "0.1.0"
