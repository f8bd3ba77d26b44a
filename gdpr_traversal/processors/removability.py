"""
Rules deciding whether a field value may be cleared.

The identifier field never reaches these rules: removing it deletes the
whole entity instead.
"""

from typing import Optional, Protocol

from gdpr_traversal.definitions import EntityTypeDefinition, FieldDefinition
from gdpr_traversal.exceptions import FieldNotRemovableError


class RemovabilityRule(Protocol):
    def ensure_removable(
        self,
        entity_type: Optional[EntityTypeDefinition],
        definition: FieldDefinition,
    ) -> None:
        """Raise FieldNotRemovableError if the field cannot be emptied."""
        ...


class DefaultRemovabilityRule:
    """Computed, required and entity key fields cannot be emptied."""

    def ensure_removable(
        self,
        entity_type: Optional[EntityTypeDefinition],
        definition: FieldDefinition,
    ) -> None:
        name = definition.name

        if definition.computed:
            raise FieldNotRemovableError(
                f"Field {name} is computed and cannot be removed.",
                field_name=name,
            )
        if definition.required:
            raise FieldNotRemovableError(
                f"Field {name} is required and cannot be removed.",
                field_name=name,
            )
        if entity_type is not None and entity_type.is_entity_key(name):
            raise FieldNotRemovableError(
                f"Field {name} is an entity key and cannot be removed.",
                field_name=name,
            )
