"""Application stores backing the dashboard and the approval ledger."""

from trust_match.store.memory import InMemoryStore
from trust_match.store.postgres import PostgresStore

__all__ = ["InMemoryStore", "PostgresStore"]
