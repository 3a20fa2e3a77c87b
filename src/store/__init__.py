"""Persistence platform access (retrieval function, text search, audit tables)."""

from .client import StoreError, SupabaseStore

__all__ = ["SupabaseStore", "StoreError"]
