"""Per-entity processing strategies for the graph walker."""

from gdpr_traversal.processors.access import AccessRecord, SubjectAccessProcessor, SubjectAccessResult
from gdpr_traversal.processors.base import EntityProcessor
from gdpr_traversal.processors.erasure import ErasureLogEntry, ErasureProcessor, ErasureResult
from gdpr_traversal.processors.export import ExportProcessor, ExportResult
from gdpr_traversal.processors.removability import DefaultRemovabilityRule, RemovabilityRule

__all__ = [
    "EntityProcessor",
    "ExportProcessor",
    "ExportResult",
    "ErasureProcessor",
    "ErasureResult",
    "ErasureLogEntry",
    "SubjectAccessProcessor",
    "SubjectAccessResult",
    "AccessRecord",
    "RemovabilityRule",
    "DefaultRemovabilityRule",
]
