"""
Right to be forgotten strategy.

For every visited entity, reloads a clean copy from the store and applies
each field's erasure mode:

- remove on the identifier field: delete the whole entity, nothing else
- remove on any other field: clear it, if the removability rule allows
- anonymize: replace each value through the resolved anonymizer
- maybe: no automatic action; logged for manual review

Field failures are collected in the result and never stop the traversal.
Entities with no failed field are saved; failed ones are left unsaved with
whatever changes were already applied to the reloaded copy.
"""

from typing import Any, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from gdpr_traversal.anonymizers.base import FieldContext
from gdpr_traversal.anonymizers.resolver import AnonymizerResolver
from gdpr_traversal.definitions import EntityTypeDefinition, FieldDefinition, FieldMetadataProvider
from gdpr_traversal.entities import EntityKey, FieldableEntity
from gdpr_traversal.exceptions import (
    AnonymizerExecutionError,
    AnonymizerNotFoundError,
    GdprTraversalError,
    StorageError,
)
from gdpr_traversal.policies import (
    ACTIONABLE_ERASURE_MODES,
    BundlePolicy,
    ErasureMode,
    FieldPolicy,
)
from gdpr_traversal.processors.removability import DefaultRemovabilityRule, RemovabilityRule
from gdpr_traversal.store.base import EntityStore

logger = structlog.get_logger(__name__)


class ErasureLogEntry(BaseModel):
    """One field that was successfully handled."""
    entity_id: Any
    entity_type: str = Field(description="entity_type.bundle")
    field_name: str
    action: str
    anonymizer: str = ""


class ErasureResult(BaseModel):
    """Outcome of an erasure traversal; partial success is reported, not raised."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    errors: List[str] = Field(default_factory=list)
    successes: List[FieldableEntity] = Field(default_factory=list)
    failures: List[FieldableEntity] = Field(default_factory=list)
    log: List[ErasureLogEntry] = Field(default_factory=list)
    deleted: List[EntityKey] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.errors

    def summary(self) -> dict:
        return {
            "successes": len(self.successes),
            "failures": len(self.failures),
            "deleted": len(self.deleted),
            "fields_processed": len(self.log),
            "errors": list(self.errors),
        }


class ErasureProcessor:
    """Removes or anonymizes field values per field policy."""

    def __init__(
        self,
        store: EntityStore,
        metadata: FieldMetadataProvider,
        resolver: AnonymizerResolver,
        removability: Optional[RemovabilityRule] = None,
    ):
        self._store = store
        self._metadata = metadata
        self._resolver = resolver
        self._removability = removability or DefaultRemovabilityRule()

    def create_result(self) -> ErasureResult:
        return ErasureResult()

    def process_entity(
        self,
        entity: FieldableEntity,
        policy: BundlePolicy,
        row_id: Any,
        parent_policy: Optional[FieldPolicy],
        result: ErasureResult,
    ) -> None:
        entity_type = entity.entity_type

        # Work on a fresh copy so changes made to other in-memory references
        # of this entity never leak into what we erase or save.
        try:
            fresh = self._store.load_unchanged(entity_type, entity.id)
        except StorageError as e:
            self._fail_entity(entity, e.message, result)
            return
        if fresh is None:
            self._fail_entity(entity, f"Could not reload {entity_type} {entity.id} from storage.", result)
            return
        entity = fresh

        type_definition = self._metadata.get_entity_type(entity_type)
        definitions = self._metadata.get_field_definitions(entity_type, entity.bundle)
        field_policies = policy.fields_for_bundle(entity.bundle)

        id_key = type_definition.id_key if type_definition is not None else "id"
        id_policy = field_policies.get(id_key)
        if id_policy is not None and id_policy.enabled and id_policy.erasure_mode == ErasureMode.REMOVE:
            self._delete_entity(entity, id_key, result)
            return

        entity_success = True

        for field_name, definition in definitions.items():
            field_policy = field_policies.get(field_name)
            if (
                field_policy is None
                or not field_policy.enabled
                or field_policy.erasure_mode not in ACTIONABLE_ERASURE_MODES
            ):
                continue

            mode = field_policy.erasure_mode
            anonymizer_id = ""

            try:
                if mode == ErasureMode.ANONYMIZE:
                    anonymizer_id = self._anonymize(entity, definition, field_policy)
                elif mode == ErasureMode.REMOVE:
                    self._remove(entity, type_definition, definition)
                else:
                    logger.warning(
                        "erasure_field_needs_review",
                        entity_type=entity_type,
                        entity_id=entity.id,
                        field=field_name,
                    )
            except GdprTraversalError as e:
                entity_success = False
                result.errors.append(e.message)
                logger.warning(
                    "erasure_field_failed",
                    entity_type=entity_type,
                    entity_id=entity.id,
                    field=field_name,
                    mode=mode.value,
                    error_code=e.error_code.value,
                )
                continue

            result.log.append(ErasureLogEntry(
                entity_id=entity.id,
                entity_type=f"{entity_type}.{entity.bundle}",
                field_name=field_name,
                action=mode.value,
                anonymizer=anonymizer_id,
            ))

        if not entity_success:
            result.failures.append(entity)
            return

        try:
            self._store.save(entity)
        except StorageError as e:
            self._fail_entity(entity, e.message, result)
            return
        result.successes.append(entity)

    def branch_failed(self, entity: FieldableEntity, error: GdprTraversalError, result: ErasureResult) -> None:
        result.errors.append(
            f"Could not load entities related to {entity.entity_type} {entity.id}: {error.message}"
        )

    def _delete_entity(self, entity: FieldableEntity, id_key: str, result: ErasureResult) -> None:
        try:
            self._store.delete(entity)
        except StorageError as e:
            self._fail_entity(entity, e.message, result)
            return

        result.log.append(ErasureLogEntry(
            entity_id=entity.id,
            entity_type=f"{entity.entity_type}.{entity.bundle}",
            field_name=id_key,
            action=ErasureMode.REMOVE.value,
        ))
        result.deleted.append(entity.key)
        result.successes.append(entity)
        logger.info("erasure_entity_deleted", entity_type=entity.entity_type, entity_id=entity.id)

    def _remove(
        self,
        entity: FieldableEntity,
        type_definition: Optional[EntityTypeDefinition],
        definition: FieldDefinition,
    ) -> None:
        self._removability.ensure_removable(type_definition, definition)
        entity.clear(definition.name)

    def _anonymize(self, entity: FieldableEntity, definition: FieldDefinition, policy: FieldPolicy) -> str:
        anonymizer_id = self._resolver.resolve_id(definition, policy)
        if not anonymizer_id:
            raise AnonymizerNotFoundError(
                f"Could not anonymize field {definition.name}. Please consider changing this "
                f"field from 'anonymize' to 'remove', or register a custom anonymizer."
            )

        anonymizer = self._resolver.get(anonymizer_id)
        context = FieldContext(entity=entity, definition=definition, policy=policy)
        try:
            values = [anonymizer.anonymize(value, context) for value in entity.get(definition.name)]
        except Exception as e:
            raise AnonymizerExecutionError(str(e), anonymizer_id=anonymizer_id, cause=e) from e

        entity.set(definition.name, values)
        return anonymizer_id

    def _fail_entity(self, entity: FieldableEntity, message: str, result: ErasureResult) -> None:
        result.errors.append(message)
        result.failures.append(entity)
        logger.error("erasure_entity_failed", entity_type=entity.entity_type, entity_id=entity.id, error=message)
