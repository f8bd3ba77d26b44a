"""
Field and entity type metadata.

FieldMetadataProvider is the seam to whatever system owns the entity schema.
InMemoryFieldMetadataProvider is the reference implementation used by the
service wiring and the tests.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field


ENTITY_REFERENCE = "entity_reference"
CARDINALITY_UNLIMITED = -1


class FieldDefinition(BaseModel):
    """Storage-level definition of one field on a bundle."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = Field(description="Storage type, e.g. string, datetime, entity_reference")
    cardinality: int = Field(default=1, description="1 for single-valued, -1 for unlimited")
    target_type: Optional[str] = Field(default=None, description="Target entity type of a reference")
    label: str = ""
    required: bool = False
    computed: bool = False
    max_length: Optional[int] = None

    @property
    def is_reference(self) -> bool:
        return self.type == ENTITY_REFERENCE

    @property
    def is_single(self) -> bool:
        return self.cardinality == 1


class EntityTypeDefinition(BaseModel):
    """Entity type level metadata: keys and labels."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    keys: Dict[str, str] = Field(default_factory=lambda: {"id": "id"})
    bundle_labels: Dict[str, str] = Field(default_factory=dict)

    @property
    def id_key(self) -> str:
        return self.keys.get("id", "id")

    def is_entity_key(self, field_name: str) -> bool:
        return field_name in self.keys.values()


class FieldMetadataProvider(Protocol):
    def get_field_definitions(self, entity_type: str, bundle: str) -> Dict[str, FieldDefinition]: ...
    def get_entity_type(self, entity_type: str) -> Optional[EntityTypeDefinition]: ...
    def get_bundle_label(self, entity_type: str, bundle: str) -> str: ...


class InMemoryFieldMetadataProvider:
    """Field metadata held in dictionaries, keyed by (entity_type, bundle)."""

    def __init__(self) -> None:
        self._entity_types: Dict[str, EntityTypeDefinition] = {}
        self._fields: Dict[Tuple[str, str], Dict[str, FieldDefinition]] = {}

    def add_entity_type(self, definition: EntityTypeDefinition) -> None:
        self._entity_types[definition.id] = definition

    def add_bundle(
        self,
        entity_type: str,
        bundle: str,
        fields: Iterable[FieldDefinition],
    ) -> None:
        if entity_type not in self._entity_types:
            self._entity_types[entity_type] = EntityTypeDefinition(id=entity_type, label=entity_type)
        self._fields[(entity_type, bundle)] = {f.name: f for f in fields}

    def get_field_definitions(self, entity_type: str, bundle: str) -> Dict[str, FieldDefinition]:
        return dict(self._fields.get((entity_type, bundle), {}))

    def get_entity_type(self, entity_type: str) -> Optional[EntityTypeDefinition]:
        return self._entity_types.get(entity_type)

    def get_bundle_label(self, entity_type: str, bundle: str) -> str:
        """Bundle label if one is defined, otherwise the entity type label."""
        definition = self._entity_types.get(entity_type)
        if definition is None:
            return ""
        if definition.bundle_labels:
            return definition.bundle_labels.get(bundle, "")
        return definition.label

    def bundles(self, entity_type: str) -> List[str]:
        return [b for (t, b) in self._fields if t == entity_type]
