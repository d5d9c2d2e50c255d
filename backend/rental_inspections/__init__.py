"""Rental item condition inspection and dispute workflow service."""

__version__ = "1.0.0"
