"""
Field policies.

A FieldPolicy says whether a field takes part in traversal, subject access
and erasure. Policies for one entity type are grouped per bundle in a
BundlePolicy. Both are frozen: the walker and processors only read them.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gdpr_traversal.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class ErasureMode(str, Enum):
    """What to do with a field on a right to be forgotten request."""
    NONE = "none"
    ANONYMIZE = "anonymize"
    REMOVE = "remove"
    MAYBE = "maybe"


ACTIONABLE_ERASURE_MODES = frozenset({
    ErasureMode.ANONYMIZE,
    ErasureMode.REMOVE,
    ErasureMode.MAYBE,
})


class AccessMode(str, Enum):
    """Whether a field is included in a subject access export."""
    NONE = "none"
    INCLUDE = "include"
    MAYBE = "maybe"


class FieldPolicy(BaseModel):
    """Policy for one field of one bundle."""
    model_config = ConfigDict(frozen=True)

    name: str
    bundle: str
    enabled: bool = False
    include_related_entities: bool = False
    is_owner: bool = False
    erasure_mode: ErasureMode = ErasureMode.NONE
    access_mode: AccessMode = AccessMode.NONE
    anonymizer: Optional[str] = Field(default=None, description="Explicit anonymizer id override")
    label: str = ""

    @property
    def follows_relationship(self) -> bool:
        return self.enabled and self.include_related_entities


class BundlePolicy(BaseModel):
    """All field policies for one entity type, grouped by bundle."""
    model_config = ConfigDict(frozen=True)

    entity_type: str
    bundles: Dict[str, Dict[str, FieldPolicy]] = Field(default_factory=dict)

    def fields_for_bundle(self, bundle: str) -> Dict[str, FieldPolicy]:
        return dict(self.bundles.get(bundle, {}))

    def get_field(self, bundle: str, name: str) -> Optional[FieldPolicy]:
        return self.bundles.get(bundle, {}).get(name)

    def all_fields(self) -> Iterator[FieldPolicy]:
        for fields in self.bundles.values():
            yield from fields.values()

    @classmethod
    def from_fields(cls, entity_type: str, fields: List[FieldPolicy]) -> "BundlePolicy":
        bundles: Dict[str, Dict[str, FieldPolicy]] = {}
        for policy in fields:
            bundles.setdefault(policy.bundle, {})[policy.name] = policy
        return cls(entity_type=entity_type, bundles=bundles)


class FieldPolicyRegistry(Protocol):
    def get_bundle_policy(self, entity_type: str) -> Optional[BundlePolicy]: ...
    def get_all_bundle_policies(self) -> List[BundlePolicy]: ...


class InMemoryFieldPolicyRegistry:
    """Bundle policies held in memory, keyed by entity type."""

    def __init__(self, policies: Optional[List[BundlePolicy]] = None):
        self._policies: Dict[str, BundlePolicy] = {}
        for policy in policies or []:
            self.add(policy)

    def add(self, policy: BundlePolicy) -> None:
        self._policies[policy.entity_type] = policy

    def remove(self, entity_type: str) -> None:
        self._policies.pop(entity_type, None)

    def get_bundle_policy(self, entity_type: str) -> Optional[BundlePolicy]:
        return self._policies.get(entity_type)

    def get_all_bundle_policies(self) -> List[BundlePolicy]:
        return list(self._policies.values())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryFieldPolicyRegistry":
        """
        Build a registry from a mapping of the form::

            {"user": {"user": {"name": {"enabled": true, "erasure_mode": "anonymize"}}}}

        i.e. entity type -> bundle -> field name -> policy settings.
        """
        registry = cls()
        for entity_type, bundles in data.items():
            try:
                fields = [
                    FieldPolicy(name=name, bundle=bundle, **settings)
                    for bundle, bundle_fields in bundles.items()
                    for name, settings in bundle_fields.items()
                ]
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid field policy for {entity_type}: {e}",
                    config_key=entity_type,
                    cause=e,
                ) from e
            registry.add(BundlePolicy.from_fields(entity_type, fields))
        logger.info("field_policies_loaded", entity_types=len(data))
        return registry

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryFieldPolicyRegistry":
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))
