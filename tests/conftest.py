"""
Pytest Configuration and Fixtures.

Provides a small but complete entity world:

    user:1 ──profile──▶ profile:10 ──address──▶ address:20
       │
       ├──tags──▶ tag:100, tag:101           (multi-valued)
       │
       ◀──uid (owner)── comment:1000, comment:1001
       ◀──user (owner)── gdpr_task:5000      (never traversed)

    user:2 ◀──uid── comment:1002
"""

import os
from datetime import datetime
from typing import Any, List, Optional, Tuple

import pytest

# Keep settings deterministic regardless of the developer's .env
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("TASK_ENTITY_TYPE", "gdpr_task")

from gdpr_traversal.anonymizers import AnonymizerResolver
from gdpr_traversal.definitions import (
    CARDINALITY_UNLIMITED,
    ENTITY_REFERENCE,
    EntityTypeDefinition,
    FieldDefinition,
    InMemoryFieldMetadataProvider,
)
from gdpr_traversal.entities import FieldableEntity
from gdpr_traversal.exceptions import GdprTraversalError
from gdpr_traversal.policies import (
    AccessMode,
    BundlePolicy,
    ErasureMode,
    FieldPolicy,
    InMemoryFieldPolicyRegistry,
)
from gdpr_traversal.service import TraversalService
from gdpr_traversal.store import InMemoryEntityStore


# ============================================================================
# HELPERS
# ============================================================================


def ref(name: str, target: str, cardinality: int = 1) -> FieldDefinition:
    return FieldDefinition(name=name, type=ENTITY_REFERENCE, target_type=target, cardinality=cardinality)


def policy(name: str, bundle: str, **kwargs: Any) -> FieldPolicy:
    kwargs.setdefault("enabled", True)
    return FieldPolicy(name=name, bundle=bundle, **kwargs)


class RecordingProcessor:
    """Records (key, row_id, parent field) for every processed entity, in order."""

    def create_result(self) -> List[Tuple[Any, Any, Optional[str]]]:
        return []

    def process_entity(self, entity, policy, row_id, parent_policy, result) -> None:
        result.append((entity.key, row_id, parent_policy.name if parent_policy else None))

    def branch_failed(self, entity, error: GdprTraversalError, result) -> None:
        result.append((entity.key, "branch_failed", error.message))


def visited_keys(recorded) -> List[Tuple[str, Any]]:
    return [key for key, row_id, _ in recorded if row_id != "branch_failed"]


# ============================================================================
# WORLD FIXTURES
# ============================================================================


@pytest.fixture
def metadata() -> InMemoryFieldMetadataProvider:
    provider = InMemoryFieldMetadataProvider()

    provider.add_entity_type(EntityTypeDefinition(
        id="user", label="User", keys={"id": "id", "uuid": "uuid"},
    ))
    provider.add_bundle("user", "user", [
        FieldDefinition(name="id", type="integer"),
        FieldDefinition(name="uuid", type="string"),
        FieldDefinition(name="name", type="string", label="Name", max_length=60),
        FieldDefinition(name="mail", type="string", label="Email"),
        FieldDefinition(name="birthday", type="datetime"),
        FieldDefinition(name="karma", type="integer"),
        FieldDefinition(name="status", type="boolean", required=True),
        ref("profile", "profile"),
        ref("tags", "tag", CARDINALITY_UNLIMITED),
    ])

    provider.add_entity_type(EntityTypeDefinition(
        id="profile",
        label="Profile",
        keys={"id": "id", "bundle": "type"},
        bundle_labels={"customer": "Customer profile"},
    ))
    provider.add_bundle("profile", "customer", [
        FieldDefinition(name="id", type="integer"),
        FieldDefinition(name="type", type="string"),
        FieldDefinition(name="bio", type="string"),
        ref("address", "address"),
    ])

    provider.add_entity_type(EntityTypeDefinition(id="address", label="Address"))
    provider.add_bundle("address", "address", [
        FieldDefinition(name="id", type="integer"),
        FieldDefinition(name="street", type="string", label="Street"),
        FieldDefinition(name="city", type="string"),
    ])

    provider.add_bundle("tag", "tag", [
        FieldDefinition(name="id", type="integer"),
        FieldDefinition(name="label", type="string"),
    ])

    provider.add_entity_type(EntityTypeDefinition(id="comment", label="Comment"))
    provider.add_bundle("comment", "comment", [
        FieldDefinition(name="id", type="integer"),
        FieldDefinition(name="body", type="string"),
        ref("uid", "user"),
        FieldDefinition(name="created", type="datetime"),
    ])

    provider.add_bundle("gdpr_task", "gdpr_rtf", [
        FieldDefinition(name="id", type="integer"),
        ref("user", "user"),
    ])
    return provider


@pytest.fixture
def registry() -> InMemoryFieldPolicyRegistry:
    return InMemoryFieldPolicyRegistry([
        BundlePolicy.from_fields("user", [
            policy("name", "user", erasure_mode=ErasureMode.ANONYMIZE, access_mode=AccessMode.INCLUDE),
            policy("mail", "user", erasure_mode=ErasureMode.REMOVE, access_mode=AccessMode.INCLUDE),
            policy("birthday", "user", erasure_mode=ErasureMode.ANONYMIZE, access_mode=AccessMode.MAYBE),
            policy("profile", "user", include_related_entities=True, access_mode=AccessMode.INCLUDE),
            policy("tags", "user", include_related_entities=True),
        ]),
        BundlePolicy.from_fields("profile", [
            policy("bio", "customer", erasure_mode=ErasureMode.ANONYMIZE, access_mode=AccessMode.INCLUDE),
            policy("address", "customer", include_related_entities=True),
        ]),
        BundlePolicy.from_fields("address", [
            policy("street", "address", erasure_mode=ErasureMode.REMOVE, access_mode=AccessMode.INCLUDE),
            policy("city", "address", access_mode=AccessMode.INCLUDE, label="Town"),
        ]),
        BundlePolicy.from_fields("tag", [
            policy("label", "tag", access_mode=AccessMode.INCLUDE),
        ]),
        BundlePolicy.from_fields("comment", [
            policy("body", "comment", erasure_mode=ErasureMode.ANONYMIZE, access_mode=AccessMode.INCLUDE),
            policy("uid", "comment", is_owner=True),
        ]),
        BundlePolicy.from_fields("gdpr_task", [
            policy("user", "gdpr_rtf", is_owner=True, include_related_entities=True),
        ]),
    ])


@pytest.fixture
def store() -> InMemoryEntityStore:
    s = InMemoryEntityStore()
    s.add(
        FieldableEntity("user", 1, "user", {
            "id": 1,
            "uuid": "u-0001",
            "name": "Alice Example",
            "mail": "alice@example.com",
            "birthday": datetime(1985, 4, 12),
            "karma": 42,
            "status": True,
            "profile": 10,
            "tags": [100, 101],
        }),
        FieldableEntity("user", 2, "user", {
            "id": 2,
            "uuid": "u-0002",
            "name": "Bob Other",
            "mail": "bob@example.com",
            "status": True,
        }),
        FieldableEntity("profile", 10, "customer", {
            "id": 10, "type": "customer", "bio": "Likes trains", "address": 20,
        }),
        FieldableEntity("address", 20, "address", {
            "id": 20, "street": "1 Main Street", "city": "Springfield",
        }),
        FieldableEntity("tag", 100, "tag", {"id": 100, "label": "vip"}),
        FieldableEntity("tag", 101, "tag", {"id": 101, "label": "newsletter"}),
        FieldableEntity("comment", 1000, "comment", {
            "id": 1000, "body": "First!", "uid": 1, "created": datetime(2023, 1, 1),
        }),
        FieldableEntity("comment", 1001, "comment", {"id": 1001, "body": "Second", "uid": 1}),
        FieldableEntity("comment", 1002, "comment", {"id": 1002, "body": "Not Alice", "uid": 2}),
        FieldableEntity("gdpr_task", 5000, "gdpr_rtf", {"id": 5000, "user": 1}),
    )
    return s


@pytest.fixture
def resolver() -> AnonymizerResolver:
    return AnonymizerResolver()


@pytest.fixture
def service(store, registry, metadata, resolver) -> TraversalService:
    return TraversalService(store, registry, metadata, resolver=resolver)


@pytest.fixture
def alice(store) -> FieldableEntity:
    return store.load("user", 1)
