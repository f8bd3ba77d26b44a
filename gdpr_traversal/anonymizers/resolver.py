"""
Anonymizer resolution.

An anonymizer id comes from the field policy's explicit override, or from a
field-type table. The table starts from settings.default_type_anonymizers
and is passed through an ordered list of override providers, each of which
returns the table it wants to be used from then on.
"""

from typing import Callable, Dict, List, Optional, Tuple

import structlog

from gdpr_traversal.anonymizers.base import Anonymizer
from gdpr_traversal.anonymizers.builtin import (
    DATE_ANONYMIZER_ID,
    TEXT_ANONYMIZER_ID,
    DateAnonymizer,
    TextAnonymizer,
)
from gdpr_traversal.config import settings
from gdpr_traversal.definitions import FieldDefinition
from gdpr_traversal.exceptions import AnonymizerNotFoundError
from gdpr_traversal.policies import FieldPolicy

logger = structlog.get_logger(__name__)

TypeOverrideProvider = Callable[[Dict[str, str]], Dict[str, str]]


class AnonymizerResolver:
    """Registry of anonymizers plus the type -> anonymizer id table."""

    def __init__(
        self,
        default_type_anonymizers: Optional[Dict[str, str]] = None,
        register_builtins: bool = True,
    ):
        self._anonymizers: Dict[str, Anonymizer] = {}
        self._defaults = dict(
            settings.default_type_anonymizers
            if default_type_anonymizers is None
            else default_type_anonymizers
        )
        self._overrides: List[TypeOverrideProvider] = []
        if register_builtins:
            self.register(TEXT_ANONYMIZER_ID, TextAnonymizer())
            self.register(DATE_ANONYMIZER_ID, DateAnonymizer())

    def register(self, anonymizer_id: str, anonymizer: Anonymizer) -> None:
        self._anonymizers[anonymizer_id] = anonymizer
        logger.debug("anonymizer_registered", anonymizer_id=anonymizer_id)

    def get(self, anonymizer_id: str) -> Anonymizer:
        try:
            return self._anonymizers[anonymizer_id]
        except KeyError:
            raise AnonymizerNotFoundError(
                f"Anonymizer '{anonymizer_id}' is not registered.",
                anonymizer_id=anonymizer_id,
            ) from None

    @property
    def anonymizer_ids(self) -> List[str]:
        return sorted(self._anonymizers)

    # ── Type table ───────────────────────────────────────────────────────

    def add_type_override(self, provider: TypeOverrideProvider) -> None:
        """Append a provider; providers run in registration order."""
        self._overrides.append(provider)

    @property
    def type_overrides(self) -> Tuple[TypeOverrideProvider, ...]:
        return tuple(self._overrides)

    def reset_type_overrides(self) -> None:
        self._overrides.clear()

    def type_anonymizers(self) -> Dict[str, str]:
        """The effective field type -> anonymizer id table."""
        table = dict(self._defaults)
        for provider in self._overrides:
            table = dict(provider(dict(table)))
        return table

    def resolve_id(self, definition: FieldDefinition, policy: Optional[FieldPolicy] = None) -> Optional[str]:
        """Anonymizer id for a field, or None when nothing applies."""
        if policy is not None and policy.anonymizer:
            return policy.anonymizer
        return self.type_anonymizers().get(definition.type)
