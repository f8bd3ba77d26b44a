"""
SQLAlchemy models for the SQL entity store.

Entities are stored generically: one row per entity and one row per field
value (entity/attribute/value). Ids and values are stored JSON-encoded so
the reverse relationship query is a plain equality lookup.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_traversal.store.engine import Base


class EntityRecord(Base):
    """One stored entity."""

    __tablename__ = "gdpr_entities"

    entity_type: Mapped[str] = mapped_column(String(64), primary_key=True)
    entity_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    bundle: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class FieldValueRecord(Base):
    """One value (delta) of one field of a stored entity."""

    __tablename__ = "gdpr_entity_field_values"
    __table_args__ = (
        Index("ix_field_values_entity", "entity_type", "entity_id"),
        Index("ix_field_values_lookup", "entity_type", "field_name", "value_json"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    field_name: Mapped[str] = mapped_column(String(128), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
