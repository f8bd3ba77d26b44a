"""
Custom exceptions for gdpr_traversal.

Provides structured error handling with recovery hints and error codes.
Field-level errors are caught by the erasure processor and turned into
result data; only cancellation is expected to escape a traversal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import traceback


class ErrorCode(str, Enum):
    """Standard error codes for gdpr_traversal."""
    # General errors (1xxx)
    UNKNOWN_ERROR = "E1000"
    CONFIGURATION_ERROR = "E1001"
    CANCELLED = "E1003"

    # Field errors (2xxx)
    FIELD_NOT_REMOVABLE = "E2000"

    # Anonymizer errors (3xxx)
    ANONYMIZER_NOT_FOUND = "E3000"
    ANONYMIZER_FAILED = "E3001"

    # Storage errors (4xxx)
    STORAGE_ERROR = "E4000"
    ENTITY_NOT_FOUND = "E4001"


@dataclass
class RecoveryHint:
    """A hint for recovering from an error."""
    action: str
    description: str
    auto_retry: bool = False
    requires_human: bool = False


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=datetime.utcnow)
    entity_type: Optional[str] = None
    entity_id: Optional[Any] = None
    field_name: Optional[str] = None
    additional: Dict[str, Any] = field(default_factory=dict)


class GdprTraversalError(Exception):
    """
    Base exception for gdpr_traversal.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        recovery_hint: Optional[RecoveryHint] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.recovery_hint = recovery_hint
        self.context = context or ErrorContext()
        self.cause = cause
        self.stack_trace = traceback.format_exc() if cause else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/task records."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.recovery_hint:
            result["recovery"] = {
                "action": self.recovery_hint.action,
                "description": self.recovery_hint.description,
                "requires_human": self.recovery_hint.requires_human,
            }

        if self.context.entity_type:
            result["entity_type"] = self.context.entity_type
        if self.context.entity_id is not None:
            result["entity_id"] = self.context.entity_id
        if self.context.field_name:
            result["field_name"] = self.context.field_name

        return result

    def __str__(self) -> str:
        return self.message


class ConfigurationError(GdprTraversalError):
    """Error raised when configuration is invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            recovery_hint=RecoveryHint(
                action="check_config",
                description="Review field policy and settings configuration",
                requires_human=True,
            ),
            **kwargs,
        )
        self.config_key = config_key


class FieldNotRemovableError(GdprTraversalError):
    """Field value cannot be cleared (required, computed or an entity key)."""

    def __init__(self, message: str, field_name: str = "", **kwargs):
        kwargs.setdefault("context", ErrorContext(field_name=field_name or None))
        super().__init__(
            message=message,
            error_code=ErrorCode.FIELD_NOT_REMOVABLE,
            recovery_hint=RecoveryHint(
                action="change_erasure_mode",
                description="Switch the field to 'anonymize' or remove the whole entity",
                requires_human=True,
            ),
            **kwargs,
        )
        self.field_name = field_name


class AnonymizerNotFoundError(GdprTraversalError):
    """No anonymizer could be resolved for a field."""

    def __init__(self, message: str, anonymizer_id: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ANONYMIZER_NOT_FOUND,
            recovery_hint=RecoveryHint(
                action="register_anonymizer",
                description="Register a custom anonymizer or switch the field to 'remove'",
                requires_human=True,
            ),
            **kwargs,
        )
        self.anonymizer_id = anonymizer_id


class AnonymizerExecutionError(GdprTraversalError):
    """An anonymizer raised while transforming a value."""

    def __init__(self, message: str, anonymizer_id: str = "", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ANONYMIZER_FAILED,
            **kwargs,
        )
        self.anonymizer_id = anonymizer_id


class StorageError(GdprTraversalError):
    """Error raised when the entity store fails to load, query, save or delete."""

    def __init__(self, message: str, operation: str = "", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.STORAGE_ERROR,
            recovery_hint=RecoveryHint(
                action="retry",
                description="Check the entity backend and retry the task",
                auto_retry=True,
            ),
            **kwargs,
        )
        self.operation = operation


class EntityNotFoundError(StorageError):
    """Requested entity does not exist in the store."""

    def __init__(self, message: str, entity_type: str = "", entity_id: Any = None, **kwargs):
        kwargs.setdefault("context", ErrorContext(entity_type=entity_type or None, entity_id=entity_id))
        super().__init__(message, operation="load", **kwargs)
        self.error_code = ErrorCode.ENTITY_NOT_FOUND
        self.entity_type = entity_type
        self.entity_id = entity_id


class TraversalCancelledError(GdprTraversalError):
    """Traversal was cancelled explicitly or ran past its deadline."""

    def __init__(self, message: str, visited: int = 0, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CANCELLED,
            recovery_hint=RecoveryHint(
                action="rerun",
                description="Re-run the task; erasure already applied is not rolled back",
                requires_human=True,
            ),
            **kwargs,
        )
        self.visited = visited
