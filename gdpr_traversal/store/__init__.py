"""Entity store interface and reference implementations."""

from gdpr_traversal.store.base import EntityStore
from gdpr_traversal.store.memory import InMemoryEntityStore
from gdpr_traversal.store.sql import SqlEntityStore

__all__ = [
    "EntityStore",
    "InMemoryEntityStore",
    "SqlEntityStore",
]
