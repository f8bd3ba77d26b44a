"""
Export / erasure / access tasks.

A task records one request against a root entity and tracks it through
its lifecycle with an audit trail. Tasks are the system's own records and
their entity type is never traversed.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TaskType(str, Enum):
    """What a task does with the entity graph."""
    EXPORT = "export"
    ERASURE = "erasure"
    ACCESS = "access"


class TaskStatus(str, Enum):
    """Task processing status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


class GdprTask(BaseModel):
    """
    A request to export, erase or report on the graph around one entity.

    Tracks requests through their lifecycle.
    """
    task_id: str = Field(default_factory=_task_id)
    task_type: TaskType
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    entity_type: str = Field(description="Root entity type")
    entity_id: Any = Field(description="Root entity id")
    requested_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = Field(default=None)
    result: Optional[Dict[str, Any]] = Field(default=None, description="Result summary")
    errors: List[str] = Field(default_factory=list)
    audit_trail: List[Dict[str, Any]] = Field(default_factory=list)

    def add_audit_entry(self, action: str, details: Optional[Dict] = None) -> None:
        """Add entry to audit trail."""
        self.audit_trail.append({
            "timestamp": datetime.utcnow().isoformat(),
            "action": action,
            "details": details or {},
        })

    @property
    def is_finished(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)
