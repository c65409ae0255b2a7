"""Persistence layer for the remote relational store.

Provides the ``DataStore`` protocol used by the domain services, its
Supabase implementation and client management.
"""

from infrastructure.persistence.client import (
    SupabaseClientManager,
    create_supabase_client,
)
from infrastructure.persistence.store import (
    DataStore,
    Filters,
    StoreError,
    StoreResponse,
    SupabaseDataStore,
)

__all__ = [
    "DataStore",
    "Filters",
    "StoreError",
    "StoreResponse",
    "SupabaseDataStore",
    "SupabaseClientManager",
    "create_supabase_client",
]
