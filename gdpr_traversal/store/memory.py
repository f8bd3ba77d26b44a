"""
In-memory EntityStore.

Keeps a canonical snapshot of every entity plus an identity map of live
instances, so load() and load_unchanged() behave differently the way a
caching backend would.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from gdpr_traversal.entities import Entity, EntityKey, FieldableEntity
from gdpr_traversal.exceptions import EntityNotFoundError

logger = structlog.get_logger(__name__)


class InMemoryEntityStore:
    """Dictionary-backed store for tests and small embedded uses."""

    def __init__(self) -> None:
        self._snapshots: Dict[EntityKey, Tuple[str, Dict[str, List[Any]]]] = {}
        self._plain: Dict[EntityKey, Entity] = {}
        self._live: Dict[EntityKey, Entity] = {}

    def add(self, *entities: Entity) -> None:
        """Insert or replace entities; the given instances become the live copies."""
        for entity in entities:
            if isinstance(entity, FieldableEntity):
                self._snapshots[entity.key] = (entity.bundle, entity.copy().fields)
            else:
                self._plain[entity.key] = entity
            self._live[entity.key] = entity

    def __contains__(self, key: EntityKey) -> bool:
        return key in self._snapshots or key in self._plain

    def __len__(self) -> int:
        return len(self._snapshots) + len(self._plain)

    def load(self, entity_type: str, entity_id: Any) -> Optional[Entity]:
        key = (entity_type, entity_id)
        if key in self._live:
            return self._live[key]
        entity = self._build(key)
        if entity is not None:
            self._live[key] = entity
        return entity

    def load_unchanged(self, entity_type: str, entity_id: Any) -> Optional[FieldableEntity]:
        entity = self._build((entity_type, entity_id))
        if isinstance(entity, FieldableEntity):
            return entity
        return None

    def load_multiple(self, entity_type: str, ids: Iterable[Any]) -> List[Entity]:
        loaded = []
        for entity_id in ids:
            entity = self.load(entity_type, entity_id)
            if entity is not None:
                loaded.append(entity)
        return loaded

    def query(self, entity_type: str, field_name: str, value: Any) -> List[Any]:
        return [
            entity_id
            for (t, entity_id), (_, fields) in self._snapshots.items()
            if t == entity_type and value in fields.get(field_name, [])
        ]

    def save(self, entity: FieldableEntity) -> None:
        if entity.key not in self._snapshots:
            raise EntityNotFoundError(
                f"Cannot save {entity.entity_type} {entity.id}: it does not exist",
                entity_type=entity.entity_type,
                entity_id=entity.id,
            )
        self._snapshots[entity.key] = (entity.bundle, entity.copy().fields)
        self._live[entity.key] = entity

    def delete(self, entity: Entity) -> None:
        key = entity.key
        if key not in self:
            raise EntityNotFoundError(
                f"Cannot delete {entity.entity_type} {entity.id}: it does not exist",
                entity_type=entity.entity_type,
                entity_id=entity.id,
            )
        self._snapshots.pop(key, None)
        self._plain.pop(key, None)
        self._live.pop(key, None)
        logger.debug("entity_deleted", entity_type=entity.entity_type, entity_id=entity.id)

    def _build(self, key: EntityKey) -> Optional[Entity]:
        if key in self._plain:
            return self._plain[key]
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            return None
        bundle, fields = snapshot
        return FieldableEntity(key[0], key[1], bundle, fields).copy()
