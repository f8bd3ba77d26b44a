"""
EntityStore interface.

All calls are blocking. Implementations raise StorageError (or a subclass)
when the backend fails; a missing entity is reported as None on load.
"""

from typing import Any, Iterable, List, Optional, Protocol

from gdpr_traversal.entities import Entity, FieldableEntity


class EntityStore(Protocol):
    def load(self, entity_type: str, entity_id: Any) -> Optional[Entity]:
        """Load an entity, possibly returning a cached, already-modified instance."""
        ...

    def load_unchanged(self, entity_type: str, entity_id: Any) -> Optional[FieldableEntity]:
        """Load a fresh copy from the backend, bypassing any cached instance."""
        ...

    def load_multiple(self, entity_type: str, ids: Iterable[Any]) -> List[Entity]:
        ...

    def query(self, entity_type: str, field_name: str, value: Any) -> List[Any]:
        """Ids of entities of a type whose field holds the given value."""
        ...

    def save(self, entity: FieldableEntity) -> None:
        ...

    def delete(self, entity: Entity) -> None:
        ...
