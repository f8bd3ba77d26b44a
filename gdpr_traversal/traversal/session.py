"""
Per-traversal state.

A TraversalSession is created by every RelationshipGraphWalker.traverse()
call and dropped when it returns. It owns the visited set, the result
accumulator and the explicit work stack.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Generic, Iterator, List, Optional, Set, TypeVar

from gdpr_traversal.entities import Entity, EntityKey
from gdpr_traversal.exceptions import TraversalCancelledError
from gdpr_traversal.policies import FieldPolicy

ResultT = TypeVar("ResultT")


class CancellationToken:
    """Cooperative cancellation, optionally with a deadline."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, visited: int = 0) -> None:
        if self.cancelled:
            reason = "cancelled" if self._event.is_set() else "timed out"
            raise TraversalCancelledError(
                f"Traversal {reason} after visiting {visited} entities",
                visited=visited,
            )


class TraversalProgress:
    """Visited (entity_type, id) pairs. Only ever grows."""

    def __init__(self) -> None:
        self._visited: Set[EntityKey] = set()

    def __contains__(self, key: EntityKey) -> bool:
        return key in self._visited

    def __len__(self) -> int:
        return len(self._visited)

    def mark(self, key: EntityKey) -> None:
        self._visited.add(key)

    @property
    def visited(self) -> FrozenSet[EntityKey]:
        return frozenset(self._visited)


@dataclass
class WorkItem:
    """An entity waiting to be visited."""
    entity: Entity
    parent_policy: Optional[FieldPolicy] = None
    row_id: Any = None


@dataclass
class TraversalSession(Generic[ResultT]):
    result: ResultT
    cancellation: CancellationToken
    progress: TraversalProgress = field(default_factory=TraversalProgress)
    stack: List[Iterator[WorkItem]] = field(default_factory=list)
