"""Anonymizer interface."""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from gdpr_traversal.definitions import FieldDefinition
from gdpr_traversal.entities import FieldableEntity
from gdpr_traversal.policies import FieldPolicy


@dataclass(frozen=True)
class FieldContext:
    """The field an anonymizer is being applied to."""
    entity: FieldableEntity
    definition: FieldDefinition
    policy: Optional[FieldPolicy] = None

    @property
    def field_name(self) -> str:
        return self.definition.name


class Anonymizer(Protocol):
    def anonymize(self, value: Any, context: FieldContext) -> Any:
        """Return a non-identifying replacement for value. May raise."""
        ...
