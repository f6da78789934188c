"""Earthquake risk analyzer service."""

__version__ = "1.0.0"
