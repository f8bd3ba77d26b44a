"""
gdpr_traversal: entity graph traversal for data export and erasure.

Architecture:
    gdpr_traversal/
    ├── entities.py      # Entity / FieldableEntity
    ├── definitions.py   # Field and entity type metadata
    ├── policies.py      # Field policies (traversal, access, erasure modes)
    ├── store/           # EntityStore interface, in-memory and SQLAlchemy stores
    ├── anonymizers/     # Anonymizer interface, built-ins, resolver
    ├── traversal/       # Graph walker, reverse relationship index, session state
    ├── processors/      # Export, erasure and subject access strategies
    ├── tasks.py         # Task records and lifecycle
    └── service.py       # Wiring and task runner

Data Flow:
    root entity → RelationshipGraphWalker → forward refs + reverse owner refs
    → EntityProcessor per visited entity → result returned to the caller

Version: 1.0.0
"""

from gdpr_traversal.entities import Entity, FieldableEntity
from gdpr_traversal.policies import AccessMode, BundlePolicy, ErasureMode, FieldPolicy
from gdpr_traversal.service import TraversalService
from gdpr_traversal.traversal import CancellationToken, RelationshipGraphWalker

__version__ = "1.0.0"

__all__ = [
    "Entity",
    "FieldableEntity",
    "FieldPolicy",
    "BundlePolicy",
    "ErasureMode",
    "AccessMode",
    "RelationshipGraphWalker",
    "CancellationToken",
    "TraversalService",
]
