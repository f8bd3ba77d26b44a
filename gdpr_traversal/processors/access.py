"""
Subject access strategy.

Collects the values of every field enabled for subject access, grouped by
row token so that values reached through single-valued references end up
in the same output row as the record that references them. Records in a row
are keyed by "entity_type.entity_id.field", so two entities of one type
reached into the same row both keep their values.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from gdpr_traversal.definitions import FieldMetadataProvider
from gdpr_traversal.entities import FieldableEntity
from gdpr_traversal.exceptions import GdprTraversalError
from gdpr_traversal.policies import AccessMode, BundlePolicy, FieldPolicy


class AccessRecord(BaseModel):
    """One exported field value set."""
    entity_type: str
    bundle: str
    bundle_label: str = ""
    entity_id: Any
    field_name: str
    label: str
    values: List[Any] = Field(default_factory=list)
    access_mode: AccessMode
    relationship: Optional[str] = Field(default=None, description="Field the entity was reached through")


class SubjectAccessResult(BaseModel):
    rows: Dict[Any, Dict[str, AccessRecord]] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)

    def records(self) -> List[AccessRecord]:
        return [record for row in self.rows.values() for record in row.values()]


class SubjectAccessProcessor:
    def __init__(self, metadata: FieldMetadataProvider):
        self._metadata = metadata

    def create_result(self) -> SubjectAccessResult:
        return SubjectAccessResult()

    def process_entity(
        self,
        entity: FieldableEntity,
        policy: BundlePolicy,
        row_id: Any,
        parent_policy: Optional[FieldPolicy],
        result: SubjectAccessResult,
    ) -> None:
        definitions = self._metadata.get_field_definitions(entity.entity_type, entity.bundle)
        bundle_label = self._metadata.get_bundle_label(entity.entity_type, entity.bundle)
        row = result.rows.setdefault(row_id, {})

        for field_name, field_policy in policy.fields_for_bundle(entity.bundle).items():
            if not field_policy.enabled or field_policy.access_mode == AccessMode.NONE:
                continue
            if not entity.has_field(field_name):
                continue

            definition = definitions.get(field_name)
            label = field_policy.label or (definition.label if definition else "") or field_name

            row[f"{entity.entity_type}.{entity.id}.{field_name}"] = AccessRecord(
                entity_type=entity.entity_type,
                bundle=entity.bundle,
                bundle_label=bundle_label,
                entity_id=entity.id,
                field_name=field_name,
                label=label,
                values=list(entity.get(field_name)),
                access_mode=field_policy.access_mode,
                relationship=parent_policy.name if parent_policy else None,
            )

    def branch_failed(self, entity: FieldableEntity, error: GdprTraversalError, result: SubjectAccessResult) -> None:
        result.errors.append(error.message)
