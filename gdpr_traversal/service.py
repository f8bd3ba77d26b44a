"""
Traversal service.

Wires the store, field policies, metadata and anonymizers into walkers and
runs export, erasure and subject access requests, directly or as tasks.

Usage:
    service = TraversalService(store, registry, metadata)
    result = service.erase(user)
    if result.failures:
        ...
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from gdpr_traversal.anonymizers.resolver import AnonymizerResolver
from gdpr_traversal.config import Settings, settings as default_settings
from gdpr_traversal.definitions import FieldMetadataProvider
from gdpr_traversal.entities import Entity
from gdpr_traversal.exceptions import EntityNotFoundError, ErrorCode, GdprTraversalError
from gdpr_traversal.policies import FieldPolicyRegistry
from gdpr_traversal.processors.access import SubjectAccessProcessor, SubjectAccessResult
from gdpr_traversal.processors.base import EntityProcessor, ResultT
from gdpr_traversal.processors.erasure import ErasureProcessor, ErasureResult
from gdpr_traversal.processors.export import ExportProcessor, ExportResult
from gdpr_traversal.processors.removability import RemovabilityRule
from gdpr_traversal.store.base import EntityStore
from gdpr_traversal.store.engine import create_session_factory, create_store_engine, init_db
from gdpr_traversal.store.sql import SqlEntityStore
from gdpr_traversal.tasks import GdprTask, TaskStatus, TaskType
from gdpr_traversal.traversal.session import CancellationToken
from gdpr_traversal.traversal.walker import RelationshipGraphWalker

logger = structlog.get_logger(__name__)


class TraversalService:
    """
    Entry point for export, erasure and subject access.

    Every call builds a fresh walker, so policy changes made between calls
    are picked up (including the reverse relationship index).
    """

    def __init__(
        self,
        store: EntityStore,
        registry: FieldPolicyRegistry,
        metadata: FieldMetadataProvider,
        resolver: Optional[AnonymizerResolver] = None,
        removability: Optional[RemovabilityRule] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.registry = registry
        self.metadata = metadata
        self.settings = settings or default_settings
        self.resolver = resolver or AnonymizerResolver(self.settings.default_type_anonymizers)
        self.removability = removability
        self._tasks: Dict[str, GdprTask] = {}

    @classmethod
    def with_sql_store(
        cls,
        registry: FieldPolicyRegistry,
        metadata: FieldMetadataProvider,
        database_url: Optional[str] = None,
        **kwargs: Any,
    ) -> "TraversalService":
        """Build a service over the SQL entity store, creating tables if needed."""
        engine = create_store_engine(database_url)
        init_db(engine)
        store = SqlEntityStore(create_session_factory(engine))
        return cls(store, registry, metadata, **kwargs)

    # ── Direct operations ────────────────────────────────────────────────

    def export(self, root: Entity, cancellation: Optional[CancellationToken] = None) -> ExportResult:
        return self.walker(ExportProcessor()).traverse(root, cancellation)

    def erase(self, root: Entity, cancellation: Optional[CancellationToken] = None) -> ErasureResult:
        processor = ErasureProcessor(self.store, self.metadata, self.resolver, self.removability)
        result = self.walker(processor).traverse(root, cancellation)
        logger.info(
            "erasure_completed",
            entity_type=root.entity_type,
            entity_id=root.id,
            successes=len(result.successes),
            failures=len(result.failures),
            deleted=len(result.deleted),
        )
        return result

    def access(self, root: Entity, cancellation: Optional[CancellationToken] = None) -> SubjectAccessResult:
        return self.walker(SubjectAccessProcessor(self.metadata)).traverse(root, cancellation)

    def walker(self, processor: EntityProcessor[ResultT]) -> RelationshipGraphWalker[ResultT]:
        return RelationshipGraphWalker(
            self.store,
            self.registry,
            self.metadata,
            processor,
            task_entity_type=self.settings.task_entity_type,
            warn_on_unconfigured=self.settings.warn_on_unconfigured,
            timeout_seconds=self.settings.traversal_timeout_seconds,
        )

    # ── Tasks ────────────────────────────────────────────────────────────

    def submit_task(
        self,
        task_type: TaskType,
        entity_type: str,
        entity_id: Any,
        requested_by: Optional[str] = None,
    ) -> GdprTask:
        """Record a new task against a root entity."""
        task = GdprTask(
            task_type=task_type,
            entity_type=entity_type,
            entity_id=entity_id,
            requested_by=requested_by,
        )
        task.add_audit_entry("submitted", {
            "task_type": task_type.value,
            "requested_by": requested_by,
        })
        self._tasks[task.task_id] = task

        logger.info(
            "task_submitted",
            task_id=task.task_id,
            task_type=task_type.value,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return task

    def process_task(self, task_id: str, cancellation: Optional[CancellationToken] = None) -> GdprTask:
        """Run a pending task. Finished tasks are returned unchanged."""
        task = self._tasks.get(task_id)
        if task is None:
            raise ValueError(f"Unknown task: {task_id}")
        if task.is_finished:
            return task

        task.status = TaskStatus.PROCESSING
        task.add_audit_entry("processing_started")

        try:
            root = self.store.load(task.entity_type, task.entity_id)
            if root is None:
                raise EntityNotFoundError(
                    f"Root entity {task.entity_type} {task.entity_id} does not exist",
                    entity_type=task.entity_type,
                    entity_id=task.entity_id,
                )
            task.result, task.errors = self._run(task.task_type, root, cancellation)
        except GdprTraversalError as e:
            task.errors.append(e.message)
            task.status = TaskStatus.FAILED
            task.add_audit_entry("processing_failed", e.to_dict())
            logger.error("task_failed", task_id=task_id, error_code=e.error_code.value, error=e.message)
        except Exception as e:
            # Not one of ours: record the failure on the task, then let it propagate.
            task.errors.append(str(e))
            task.status = TaskStatus.FAILED
            task.processed_at = datetime.utcnow()
            task.add_audit_entry("processing_failed", {
                "error_code": ErrorCode.UNKNOWN_ERROR.value,
                "message": str(e),
                "exception": type(e).__name__,
            })
            logger.exception("task_crashed", task_id=task_id, exception=type(e).__name__)
            raise
        else:
            task.status = TaskStatus.FAILED if task.errors else TaskStatus.COMPLETED
            task.add_audit_entry("processing_finished", {
                "status": task.status.value,
                "errors": len(task.errors),
            })
            logger.info("task_processed", task_id=task_id, status=task.status.value)

        task.processed_at = datetime.utcnow()
        return task

    def get_task(self, task_id: str) -> Optional[GdprTask]:
        return self._tasks.get(task_id)

    def list_tasks(self, status: Optional[TaskStatus] = None) -> List[GdprTask]:
        return [t for t in self._tasks.values() if status is None or t.status == status]

    def _run(
        self,
        task_type: TaskType,
        root: Entity,
        cancellation: Optional[CancellationToken],
    ) -> Tuple[Dict[str, Any], List[str]]:
        if task_type == TaskType.EXPORT:
            exported = self.export(root, cancellation)
            return {t: sorted(map(str, ids)) for t, ids in exported.entities.items()}, list(exported.errors)

        if task_type == TaskType.ACCESS:
            access = self.access(root, cancellation)
            return {"rows": len(access.rows), "records": len(access.records())}, list(access.errors)

        erasure = self.erase(root, cancellation)
        summary = erasure.summary()
        summary["log"] = [entry.model_dump() for entry in erasure.log]
        return summary, list(erasure.errors)
