"""Export strategy: collect every visited entity."""

from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from gdpr_traversal.entities import FieldableEntity
from gdpr_traversal.exceptions import GdprTraversalError
from gdpr_traversal.policies import BundlePolicy, FieldPolicy

logger = structlog.get_logger(__name__)


class ExportResult(BaseModel):
    """Exported entities as {entity_type: {id: entity}}, plus branches that could not be loaded."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    entities: Dict[str, Dict[Any, FieldableEntity]] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.errors


class ExportProcessor:
    """Collects entities into result.entities. Never mutates them."""

    def create_result(self) -> ExportResult:
        return ExportResult()

    def process_entity(
        self,
        entity: FieldableEntity,
        policy: BundlePolicy,
        row_id: Any,
        parent_policy: Optional[FieldPolicy],
        result: ExportResult,
    ) -> None:
        result.entities.setdefault(entity.entity_type, {})[entity.id] = entity

    def branch_failed(self, entity: FieldableEntity, error: GdprTraversalError, result: ExportResult) -> None:
        result.errors.append(
            f"Could not load entities related to {entity.entity_type} {entity.id}: {error.message}"
        )
        logger.warning(
            "export_incomplete",
            entity_type=entity.entity_type,
            entity_id=entity.id,
            error=str(error),
        )
