"""
Tests for settings, logging setup, error types and policy/metadata loading.
"""

import json

import pytest
import structlog
from pydantic import ValidationError

from gdpr_traversal.config import Settings
from gdpr_traversal.definitions import EntityTypeDefinition, FieldDefinition, InMemoryFieldMetadataProvider
from gdpr_traversal.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    ErrorContext,
    ErrorCode,
    FieldNotRemovableError,
    GdprTraversalError,
    StorageError,
    TraversalCancelledError,
)
from gdpr_traversal.observability import configure_logging
from gdpr_traversal.policies import AccessMode, ErasureMode, FieldPolicy, InMemoryFieldPolicyRegistry


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TASK_ENTITY_TYPE", raising=False)

        config = Settings(_env_file=None)

        assert config.task_entity_type == "gdpr_task"
        assert config.warn_on_unconfigured is True
        assert config.traversal_timeout_seconds is None
        assert config.default_type_anonymizers == {
            "string": "text_anonymizer",
            "datetime": "date_anonymizer",
        }

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TASK_ENTITY_TYPE", "privacy_request")
        monkeypatch.setenv("WARN_ON_UNCONFIGURED", "false")
        monkeypatch.setenv("TRAVERSAL_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("DEFAULT_TYPE_ANONYMIZERS", json.dumps({"email": "email_anonymizer"}))

        config = Settings(_env_file=None)

        assert config.task_entity_type == "privacy_request"
        assert config.warn_on_unconfigured is False
        assert config.traversal_timeout_seconds == 2.5
        assert config.default_type_anonymizers == {"email": "email_anonymizer"}

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configure_logging(self, monkeypatch, log_format):
        monkeypatch.setenv("LOG_FORMAT", log_format)

        configure_logging(Settings(_env_file=None))

        assert structlog.is_configured()
        structlog.reset_defaults()


class TestExceptions:

    def test_to_dict(self):
        error = FieldNotRemovableError("Field mail is required and cannot be removed.", field_name="mail")

        data = error.to_dict()

        assert data["error_code"] == ErrorCode.FIELD_NOT_REMOVABLE.value
        assert data["message"] == "Field mail is required and cannot be removed."
        assert data["recovery"]["action"] == "change_erasure_mode"
        assert data["recovery"]["requires_human"] is True

    def test_field_name_reported(self):
        data = FieldNotRemovableError("Field mail is required and cannot be removed.", field_name="mail").to_dict()

        assert data["field_name"] == "mail"
        assert "entity_type" not in data

    def test_missing_entity_reported(self):
        error = EntityNotFoundError("Entity user 7 does not exist", entity_type="user", entity_id=7)

        data = error.to_dict()

        assert data["error_code"] == ErrorCode.ENTITY_NOT_FOUND.value
        assert data["entity_type"] == "user"
        assert data["entity_id"] == 7
        assert error.context.entity_id == error.entity_id

    def test_explicit_context_kept(self):
        context = ErrorContext(entity_type="address", entity_id=20, field_name="street")

        error = FieldNotRemovableError("Field street cannot be removed.", field_name="street", context=context)

        assert error.context is context
        assert error.to_dict()["entity_id"] == 20

    def test_str_is_message(self):
        assert str(StorageError("backend down", operation="load")) == "backend down"

    def test_hierarchy(self):
        assert issubclass(TraversalCancelledError, GdprTraversalError)
        assert TraversalCancelledError("stopped", visited=3).visited == 3

    def test_cause_kept(self):
        cause = RuntimeError("boom")
        error = StorageError("wrapped", operation="save", cause=cause)
        assert error.cause is cause


class TestPolicyLoading:

    def test_from_dict(self):
        registry = InMemoryFieldPolicyRegistry.from_dict({
            "user": {
                "user": {
                    "name": {"enabled": True, "erasure_mode": "anonymize", "access_mode": "include"},
                    "profile": {"enabled": True, "include_related_entities": True},
                },
            },
        })

        user = registry.get_bundle_policy("user")
        name = user.get_field("user", "name")
        assert name.erasure_mode == ErasureMode.ANONYMIZE
        assert name.access_mode == AccessMode.INCLUDE
        assert user.get_field("user", "profile").follows_relationship
        assert registry.get_bundle_policy("comment") is None

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "policies.json"
        path.write_text(json.dumps({"comment": {"comment": {"uid": {"enabled": True, "is_owner": True}}}}))

        registry = InMemoryFieldPolicyRegistry.from_json_file(path)

        assert registry.get_bundle_policy("comment").get_field("comment", "uid").is_owner

    def test_invalid_mode_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            InMemoryFieldPolicyRegistry.from_dict({"user": {"user": {"name": {"erasure_mode": "shred"}}}})

        assert exc_info.value.config_key == "user"
        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR

    def test_policies_are_frozen(self):
        field_policy = FieldPolicy(name="name", bundle="user")
        with pytest.raises(ValidationError):
            field_policy.enabled = True

    def test_follows_relationship_needs_enabled(self):
        assert not FieldPolicy(name="ref", bundle="a", include_related_entities=True).follows_relationship


class TestMetadata:

    def test_bundle_label_falls_back_to_type_label(self):
        metadata = InMemoryFieldMetadataProvider()
        metadata.add_entity_type(EntityTypeDefinition(id="node", label="Content"))

        assert metadata.get_bundle_label("node", "article") == "Content"
        assert metadata.get_bundle_label("missing", "x") == ""

    def test_add_bundle_creates_type(self):
        metadata = InMemoryFieldMetadataProvider()
        metadata.add_bundle("tag", "tag", [FieldDefinition(name="label", type="string")])

        assert metadata.get_entity_type("tag").id_key == "id"
        assert metadata.bundles("tag") == ["tag"]
        assert list(metadata.get_field_definitions("tag", "tag")) == ["label"]
        assert metadata.get_field_definitions("tag", "other") == {}
