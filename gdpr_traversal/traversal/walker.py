"""
Relationship graph walker.

Starting from a root entity, discovers every entity reachable through
enabled forward reference fields and reverse owner relationships, visiting
each (entity_type, id) once, and hands each one to the injected processor.

The walk is depth-first pre-order: a node is processed before any of its
children, forward fields are followed in policy order, and reverse owner
lookups run after the forward subtrees are done. It is driven by an
explicit stack of lazy child iterators, so graph depth never touches the
Python recursion limit.
"""

from typing import Any, Generic, Iterator, Optional, TypeVar

import structlog

from gdpr_traversal.config import settings
from gdpr_traversal.definitions import FieldMetadataProvider
from gdpr_traversal.entities import Entity, FieldableEntity
from gdpr_traversal.exceptions import StorageError
from gdpr_traversal.policies import BundlePolicy, FieldPolicyRegistry
from gdpr_traversal.processors.base import EntityProcessor
from gdpr_traversal.store.base import EntityStore
from gdpr_traversal.traversal.reverse import ReverseRelationshipIndex
from gdpr_traversal.traversal.session import CancellationToken, TraversalSession, WorkItem

logger = structlog.get_logger(__name__)

ResultT = TypeVar("ResultT")


class RelationshipGraphWalker(Generic[ResultT]):
    """
    Cycle-safe traversal engine.

    One walker instance builds its reverse relationship index on first use
    and keeps it; build a new walker to pick up policy changes.
    """

    def __init__(
        self,
        store: EntityStore,
        registry: FieldPolicyRegistry,
        metadata: FieldMetadataProvider,
        processor: EntityProcessor[ResultT],
        task_entity_type: Optional[str] = None,
        warn_on_unconfigured: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._registry = registry
        self._metadata = metadata
        self._processor = processor
        self._task_entity_type = task_entity_type or settings.task_entity_type
        self._warn_on_unconfigured = (
            settings.warn_on_unconfigured if warn_on_unconfigured is None else warn_on_unconfigured
        )
        self._timeout_seconds = (
            settings.traversal_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._reverse_index: Optional[ReverseRelationshipIndex] = None

    @property
    def processor(self) -> EntityProcessor[ResultT]:
        return self._processor

    @property
    def reverse_index(self) -> ReverseRelationshipIndex:
        if self._reverse_index is None:
            self._reverse_index = ReverseRelationshipIndex.build(self._registry, self._metadata)
        return self._reverse_index

    def traverse(self, root: Entity, cancellation: Optional[CancellationToken] = None) -> ResultT:
        """
        Walk the graph from root and return the processor's result.

        Raises:
            TraversalCancelledError: if the token is cancelled or times out
        """
        session: TraversalSession[ResultT] = TraversalSession(
            result=self._processor.create_result(),
            cancellation=cancellation or CancellationToken(self._timeout_seconds),
        )
        session.stack.append(iter([WorkItem(root)]))

        logger.info(
            "traversal_started",
            entity_type=root.entity_type,
            entity_id=root.id,
            processor=type(self._processor).__name__,
        )

        while session.stack:
            try:
                item = next(session.stack[-1])
            except StopIteration:
                session.stack.pop()
                continue

            session.cancellation.raise_if_cancelled(len(session.progress))
            children = self._visit(item, session)
            if children is not None:
                session.stack.append(children)

        logger.info(
            "traversal_completed",
            entity_type=root.entity_type,
            entity_id=root.id,
            visited=len(session.progress),
        )
        return session.result

    def _visit(self, item: WorkItem, session: TraversalSession[ResultT]) -> Optional[Iterator[WorkItem]]:
        entity = item.entity

        if not isinstance(entity, FieldableEntity):
            return None

        # Never walk into our own task records, whatever the configuration says.
        if entity.entity_type == self._task_entity_type:
            logger.debug("traversal_task_entity_skipped", entity_id=entity.id)
            return None

        if entity.key in session.progress:
            return None

        row_id = entity.id if item.row_id is None else item.row_id

        # Mark before expanding so cycles back to this node stop here.
        session.progress.mark(entity.key)

        policy = self._registry.get_bundle_policy(entity.entity_type)
        if policy is None:
            if self._warn_on_unconfigured:
                logger.warning(
                    "traversal_entity_unconfigured",
                    entity_type=entity.entity_type,
                    entity_id=entity.id,
                )
            return None

        logger.debug(
            "traversal_entity_visited",
            entity_type=entity.entity_type,
            entity_id=entity.id,
            row_id=row_id,
        )
        self._processor.process_entity(entity, policy, row_id, item.parent_policy, session.result)
        return self._children(entity, policy, row_id, session)

    def _children(
        self,
        entity: FieldableEntity,
        policy: BundlePolicy,
        row_id: Any,
        session: TraversalSession[ResultT],
    ) -> Iterator[WorkItem]:
        definitions = self._metadata.get_field_definitions(entity.entity_type, entity.bundle)

        # ── Forward references ────────────────────────────────────────
        for field_policy in policy.fields_for_bundle(entity.bundle).values():
            if not field_policy.follows_relationship or not entity.has_field(field_policy.name):
                continue

            definition = definitions.get(field_policy.name)
            if definition is None or not definition.is_reference or not definition.target_type:
                continue

            try:
                referenced = self._store.load_multiple(definition.target_type, entity.get(field_policy.name))
            except StorageError as e:
                self._branch_failed(entity, e, session)
                continue

            passed_row_id = row_id if definition.is_single else None
            for child in referenced:
                yield WorkItem(child, field_policy, passed_row_id)

        # ── Reverse owner relationships ───────────────────────────────
        for relationship in self.reverse_index.for_target(entity.entity_type):
            try:
                ids = self._store.query(
                    relationship.source_entity_type,
                    relationship.source_field,
                    entity.id,
                )
                related = self._store.load_multiple(relationship.source_entity_type, ids)
            except StorageError as e:
                self._branch_failed(entity, e, session)
                continue

            for related_entity in related:
                yield WorkItem(related_entity, relationship.owner_policy, None)

    def _branch_failed(self, entity: FieldableEntity, error: StorageError, session: TraversalSession[ResultT]) -> None:
        logger.error(
            "traversal_branch_failed",
            entity_type=entity.entity_type,
            entity_id=entity.id,
            operation=error.operation,
            error=str(error),
        )
        self._processor.branch_failed(entity, error, session.result)
