"""Data module - storage and seed data."""

from .storage import DisputeFilter, IntegrityError, Storage, Transaction

__all__ = ["DisputeFilter", "IntegrityError", "Storage", "Transaction"]
