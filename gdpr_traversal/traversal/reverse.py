"""
Reverse ("owner") relationships.

A field on another entity type that references this entity and is flagged
as owner links back to it: when we reach the target, every entity whose
owner field holds the target's id is part of the graph too.
"""

from typing import Dict, Iterator, List

import structlog
from pydantic import BaseModel, ConfigDict

from gdpr_traversal.definitions import FieldMetadataProvider
from gdpr_traversal.policies import FieldPolicy, FieldPolicyRegistry

logger = structlog.get_logger(__name__)


class ReverseRelationship(BaseModel):
    """An owner reference field pointing at target_entity_type."""
    model_config = ConfigDict(frozen=True)

    source_entity_type: str
    source_bundle: str
    source_field: str
    target_entity_type: str
    owner_policy: FieldPolicy


class ReverseRelationshipIndex:
    """All reverse relationships in the configuration, grouped by target type."""

    def __init__(self, relationships: List[ReverseRelationship]):
        self._relationships = list(relationships)
        self._by_target: Dict[str, List[ReverseRelationship]] = {}
        for relationship in self._relationships:
            self._by_target.setdefault(relationship.target_entity_type, []).append(relationship)

    @classmethod
    def build(
        cls,
        registry: FieldPolicyRegistry,
        metadata: FieldMetadataProvider,
    ) -> "ReverseRelationshipIndex":
        """
        Scan every bundle policy once.

        A field qualifies when its policy is enabled and marked as owner and
        its definition on that bundle is an entity reference with a target type.
        """
        relationships: List[ReverseRelationship] = []

        for bundle_policy in registry.get_all_bundle_policies():
            for field_policy in bundle_policy.all_fields():
                if not (field_policy.enabled and field_policy.is_owner):
                    continue

                definitions = metadata.get_field_definitions(
                    bundle_policy.entity_type, field_policy.bundle,
                )
                definition = definitions.get(field_policy.name)
                if definition is None or not definition.is_reference or not definition.target_type:
                    logger.debug(
                        "owner_field_not_a_reference",
                        entity_type=bundle_policy.entity_type,
                        bundle=field_policy.bundle,
                        field=field_policy.name,
                    )
                    continue

                relationships.append(ReverseRelationship(
                    source_entity_type=bundle_policy.entity_type,
                    source_bundle=field_policy.bundle,
                    source_field=field_policy.name,
                    target_entity_type=definition.target_type,
                    owner_policy=field_policy,
                ))

        logger.info("reverse_relationships_indexed", count=len(relationships))
        return cls(relationships)

    @property
    def relationships(self) -> List[ReverseRelationship]:
        return list(self._relationships)

    def for_target(self, entity_type: str) -> List[ReverseRelationship]:
        return self._by_target.get(entity_type, [])

    def __len__(self) -> int:
        return len(self._relationships)

    def __iter__(self) -> Iterator[ReverseRelationship]:
        return iter(self._relationships)
