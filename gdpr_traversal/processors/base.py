"""Processing strategy interface injected into the graph walker."""

from typing import Any, Optional, Protocol, TypeVar

from gdpr_traversal.entities import FieldableEntity
from gdpr_traversal.exceptions import GdprTraversalError
from gdpr_traversal.policies import BundlePolicy, FieldPolicy

ResultT = TypeVar("ResultT")


class EntityProcessor(Protocol[ResultT]):
    """
    Per-entity work done during a traversal.

    The walker asks for a fresh result accumulator per traverse() call and
    passes it back into every callback; the processor must not keep it.
    """

    def create_result(self) -> ResultT:
        ...

    def process_entity(
        self,
        entity: FieldableEntity,
        policy: BundlePolicy,
        row_id: Any,
        parent_policy: Optional[FieldPolicy],
        result: ResultT,
    ) -> None:
        ...

    def branch_failed(
        self,
        entity: FieldableEntity,
        error: GdprTraversalError,
        result: ResultT,
    ) -> None:
        """Called when related entities of `entity` could not be loaded or queried."""
        ...
