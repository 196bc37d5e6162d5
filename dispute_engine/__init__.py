"""Buyer/seller trade dispute workflow engine."""

__version__ = "0.1.0"
