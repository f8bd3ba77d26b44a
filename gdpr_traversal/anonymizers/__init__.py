"""Pluggable value anonymizers and their resolver."""

from gdpr_traversal.anonymizers.base import Anonymizer, FieldContext
from gdpr_traversal.anonymizers.builtin import (
    DATE_ANONYMIZER_ID,
    TEXT_ANONYMIZER_ID,
    DateAnonymizer,
    TextAnonymizer,
)
from gdpr_traversal.anonymizers.resolver import AnonymizerResolver, TypeOverrideProvider

__all__ = [
    "Anonymizer",
    "FieldContext",
    "AnonymizerResolver",
    "TypeOverrideProvider",
    "TextAnonymizer",
    "DateAnonymizer",
    "TEXT_ANONYMIZER_ID",
    "DATE_ANONYMIZER_ID",
]
