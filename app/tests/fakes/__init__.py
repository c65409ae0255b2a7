"""Test doubles shared across the unit tests."""

from tests.fakes.store import CONNECTION_ERROR, InMemoryDataStore

__all__ = ["CONNECTION_ERROR", "InMemoryDataStore"]
