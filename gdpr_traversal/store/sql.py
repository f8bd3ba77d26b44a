"""
SQLAlchemy-backed EntityStore.

Fields without values are not stored, so a cleared field comes back absent
after a reload.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gdpr_traversal.entities import Entity, EntityKey, FieldableEntity
from gdpr_traversal.exceptions import EntityNotFoundError, StorageError
from gdpr_traversal.store.models import EntityRecord, FieldValueRecord

logger = structlog.get_logger(__name__)


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _decode(raw: str) -> Any:
    return json.loads(raw)


class SqlEntityStore:
    """
    Entity store over the generic entity/field-value tables.

    load() serves instances from a per-store identity map; load_unchanged()
    always reads the database.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._live: Dict[EntityKey, FieldableEntity] = {}

    def add(self, *entities: FieldableEntity) -> None:
        """Insert or replace entities."""
        for entity in entities:
            self._write(entity, create=True)
            self._live[entity.key] = entity

    def load(self, entity_type: str, entity_id: Any) -> Optional[Entity]:
        key = (entity_type, entity_id)
        if key in self._live:
            return self._live[key]
        entity = self.load_unchanged(entity_type, entity_id)
        if entity is not None:
            self._live[key] = entity
        return entity

    def load_unchanged(self, entity_type: str, entity_id: Any) -> Optional[FieldableEntity]:
        encoded_id = _encode(entity_id)
        try:
            with self._session_factory() as session:
                record = session.get(EntityRecord, (entity_type, encoded_id))
                if record is None:
                    return None
                rows = session.scalars(
                    select(FieldValueRecord)
                    .where(
                        FieldValueRecord.entity_type == entity_type,
                        FieldValueRecord.entity_id == encoded_id,
                    )
                    .order_by(FieldValueRecord.field_name, FieldValueRecord.delta)
                ).all()
                fields: Dict[str, List[Any]] = {}
                for row in rows:
                    fields.setdefault(row.field_name, []).append(_decode(row.value_json))
                return FieldableEntity(entity_type, entity_id, record.bundle, fields)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load {entity_type} {entity_id}: {e}", operation="load", cause=e)

    def load_multiple(self, entity_type: str, ids: Iterable[Any]) -> List[Entity]:
        loaded = []
        for entity_id in ids:
            entity = self.load(entity_type, entity_id)
            if entity is not None:
                loaded.append(entity)
        return loaded

    def query(self, entity_type: str, field_name: str, value: Any) -> List[Any]:
        try:
            with self._session_factory() as session:
                raw_ids = session.scalars(
                    select(FieldValueRecord.entity_id)
                    .where(
                        FieldValueRecord.entity_type == entity_type,
                        FieldValueRecord.field_name == field_name,
                        FieldValueRecord.value_json == _encode(value),
                    )
                    .distinct()
                    .order_by(FieldValueRecord.entity_id)
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query {entity_type}.{field_name}: {e}", operation="query", cause=e)
        return [_decode(raw) for raw in raw_ids]

    def save(self, entity: FieldableEntity) -> None:
        self._write(entity, create=False)
        self._live[entity.key] = entity

    def delete(self, entity: Entity) -> None:
        encoded_id = _encode(entity.id)
        try:
            with self._session_factory() as session:
                record = session.get(EntityRecord, (entity.entity_type, encoded_id))
                if record is None:
                    raise EntityNotFoundError(
                        f"Cannot delete {entity.entity_type} {entity.id}: it does not exist",
                        entity_type=entity.entity_type,
                        entity_id=entity.id,
                    )
                session.execute(
                    delete(FieldValueRecord).where(
                        FieldValueRecord.entity_type == entity.entity_type,
                        FieldValueRecord.entity_id == encoded_id,
                    )
                )
                session.delete(record)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete {entity.entity_type} {entity.id}: {e}", operation="delete", cause=e)
        self._live.pop(entity.key, None)
        logger.debug("entity_deleted", entity_type=entity.entity_type, entity_id=entity.id)

    def _write(self, entity: FieldableEntity, create: bool) -> None:
        encoded_id = _encode(entity.id)
        try:
            with self._session_factory() as session:
                record = session.get(EntityRecord, (entity.entity_type, encoded_id))
                if record is None:
                    if not create:
                        raise EntityNotFoundError(
                            f"Cannot save {entity.entity_type} {entity.id}: it does not exist",
                            entity_type=entity.entity_type,
                            entity_id=entity.id,
                        )
                    session.add(EntityRecord(
                        entity_type=entity.entity_type,
                        entity_id=encoded_id,
                        bundle=entity.bundle,
                    ))
                else:
                    record.bundle = entity.bundle
                session.execute(
                    delete(FieldValueRecord).where(
                        FieldValueRecord.entity_type == entity.entity_type,
                        FieldValueRecord.entity_id == encoded_id,
                    )
                )
                for field_name, values in entity.fields.items():
                    for delta, value in enumerate(values):
                        session.add(FieldValueRecord(
                            entity_type=entity.entity_type,
                            entity_id=encoded_id,
                            field_name=field_name,
                            delta=delta,
                            value_json=_encode(value),
                        ))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save {entity.entity_type} {entity.id}: {e}", operation="save", cause=e)
