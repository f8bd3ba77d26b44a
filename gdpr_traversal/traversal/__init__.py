"""Relationship graph traversal engine."""

from gdpr_traversal.traversal.reverse import ReverseRelationship, ReverseRelationshipIndex
from gdpr_traversal.traversal.session import (
    CancellationToken,
    TraversalProgress,
    TraversalSession,
    WorkItem,
)
from gdpr_traversal.traversal.walker import RelationshipGraphWalker

__all__ = [
    "RelationshipGraphWalker",
    "ReverseRelationship",
    "ReverseRelationshipIndex",
    "CancellationToken",
    "TraversalProgress",
    "TraversalSession",
    "WorkItem",
]
