"""
Structured error types for content-spine.

Every failure the gateway can report to a caller is a ``SpineError``
subclass.  Errors carry a category (for routing and alerting), a retry
hint, structured context and an optional chained cause, so the same
object can be returned inside an ``Err``, logged as a dict, or raised.

Manifesto:
    - **Typed taxonomy:** Registry, ingestion and scheduler failures are
      distinct types, never bare ``Exception``
    - **Explicit retry semantics:** Validation and compatibility failures
      are caller-fixable and never retried; storage conflicts may be
    - **Error chaining:** Storage errors keep the driver exception as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         SpineError                               │
        │        (category, retryable, retry_after, context, cause)       │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError            DatabaseError       SchedulerError   │
        │  (VALIDATION)               (DATABASE)          (ORCHESTRATION)  │
        │      │                          │                    │           │
        │  SchemaValidationError    SchemaRegistration   NoLoaderForJob    │
        │  RegisteredSchema-          ConflictError      NoLoaderFound     │
        │    IncompatibleError                           LoaderAlready-    │
        │  MissingSchemaError                              Registered      │
        │  InvalidDescriptorError   ConfigError          LoaderInitial-    │
        │  InvalidJobDescriptor-    (CONFIG)               ization         │
        │    Error                                       JobCreationFailed │
        │                                                JobNotFound       │
        │                           SourceError          SchedulerAlready- │
        │                           (SOURCE)               Started         │
        │                                                SchedulerNot-     │
        │                                                  Started         │
        │                                                SchedulerStopped  │
        │                                                SchedulerStartup  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> from content_spine.core.errors import MissingSchemaError
    >>> err = MissingSchemaError("example.User.V1")
    >>> err.message
    'Schema example.User.V1 not found'
    >>> err.to_dict()["category"]
    'VALIDATION'

Tags:
    errors, exceptions, retry, taxonomy, content-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors
    DATABASE = "DATABASE"         # Connection, query, constraint failures
    SOURCE = "SOURCE"             # Upstream API used by a loader

    # Caller-fixable errors
    VALIDATION = "VALIDATION"     # Payload, descriptor, compatibility
    CONFIG = "CONFIG"             # Missing or invalid settings

    # Application errors
    ORCHESTRATION = "ORCHESTRATION"  # Scheduler and loader lifecycle

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        schema_key: Canonical ``namespace.name.version`` the error concerns
        loader: Name of the loader involved
        operation: Operation that failed (``register``, ``store``, ``tick``)
        url: Outbound URL a loader was fetching
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    schema_key: str | None = None
    loader: str | None = None
    operation: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["schema_key", "loader", "operation", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpineError(Exception):
    """
    Base exception for all content-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so most
    call sites only pass a message.

    Examples:
        >>> err = SpineError("boom", category=ErrorCategory.INTERNAL)
        >>> err.with_context(schema_key="ns.User.V1").context.schema_key
        'ns.User.V1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DatabaseError("Insert failed").with_context(
                schema_key="example.User.V1",
                operation="store",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS (never retryable)
# =============================================================================


@dataclass(frozen=True)
class FieldError:
    """A single validation failure.

    ``field`` is a JSON pointer into the record (``""`` is the record
    itself, ``/address/city`` a nested value).
    """

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(SpineError):
    """Caller-supplied data or definitions are invalid."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class SchemaValidationError(ValidationError):
    """A record does not conform to the registered schema.

    Carries every failure found, not just the first one.
    """

    def __init__(self, errors: list[FieldError], **kwargs: Any):
        super().__init__("Schema validation for payload failed", **kwargs)
        self.errors = list(errors)

    @property
    def details(self) -> dict[str, str]:
        """Field to message map (last message wins for repeated fields)."""
        return {e.field: e.message for e in self.errors}

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = [e.to_dict() for e in self.errors]
        return result


class RegisteredSchemaIncompatibleError(ValidationError):
    """A schema update would break data stored under the current schema."""

    def __init__(self, key: str, violations: list[str] | None = None, **kwargs: Any):
        super().__init__(f"There is an incompatible registered schema with key {key}", **kwargs)
        self.key = key
        self.violations = list(violations or [])
        self.context.schema_key = key

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.violations:
            result["violations"] = self.violations
        return result


class MissingSchemaError(ValidationError):
    """An operation referenced an identity with no registered schema."""

    def __init__(self, key: str, **kwargs: Any):
        super().__init__(f"Schema {key} not found", **kwargs)
        self.key = key
        self.context.schema_key = key


class InvalidDescriptorError(ValidationError):
    """A schema descriptor is malformed (dangling ref, reserved name, ...)."""


class InvalidJobDescriptorError(ValidationError):
    """A job descriptor payload failed wire-shape validation."""

    def __init__(self, message: str, errors: list[FieldError] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.errors = list(errors or [])


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class DatabaseError(SpineError):
    """Storage I/O failed.  Wraps the driver exception as ``cause``."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    @classmethod
    def wrap(cls, cause: Exception, operation: str | None = None) -> DatabaseError:
        """Build a ``DatabaseError`` carrying the cause's message."""
        err = cls(str(cause), cause=cause)
        if operation:
            err.context.operation = operation
        return err


class SchemaRegistrationConflictError(DatabaseError):
    """Another writer replaced the schema between our read and our write."""

    default_retryable = True

    def __init__(self, key: str, attempts: int, **kwargs: Any):
        super().__init__(
            f"Schema {key} was modified concurrently; gave up after {attempts} attempt(s)",
            **kwargs,
        )
        self.key = key
        self.context.schema_key = key


class ConfigError(SpineError):
    """Invalid configuration (e.g. unsupported database URL)."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class SourceError(SpineError):
    """An external data source used by a loader failed."""

    default_category = ErrorCategory.SOURCE
    default_retryable = True


# =============================================================================
# SCHEDULER ERRORS
# =============================================================================


class SchedulerError(SpineError):
    """Base class for job scheduler and loader lifecycle errors."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class NoLoaderForJobError(SchedulerError):
    """A job was scheduled or dispatched for a name with no loader."""

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"No loader found for name: {name}", **kwargs)
        self.name = name
        self.context.loader = name


class NoLoaderFoundError(SchedulerError):
    """``remove`` was called for a loader that is not registered."""

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"No loader found with name: {name}", **kwargs)
        self.name = name
        self.context.loader = name


class LoaderAlreadyRegisteredError(SchedulerError):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"There is already a loader with name: {name}", **kwargs)
        self.name = name
        self.context.loader = name


class LoaderInitializationError(SchedulerError):
    def __init__(self, name: str, cause: Exception, **kwargs: Any):
        super().__init__(f"Loader {name} failed to initialize: {cause}", cause=cause, **kwargs)
        self.name = name
        self.context.loader = name


class JobCreationFailedError(SchedulerError):
    def __init__(self, name: str, cause: Exception, **kwargs: Any):
        super().__init__(f"Creation of job with name: {name} failed. Cause: {cause}", cause=cause, **kwargs)
        self.name = name
        self.context.loader = name


class JobNotFoundError(SchedulerError):
    """An admin operation referenced an identity with no job."""

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"No job found for name: {name}", **kwargs)
        self.name = name
        self.context.loader = name


class JobRunningError(SchedulerError):
    """A job cannot be overwritten while a run holds it."""

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"Job with name: {name} is running, try again when the run finishes", **kwargs)
        self.name = name
        self.context.loader = name


class SchedulerAlreadyStartedError(SchedulerError):
    def __init__(self, **kwargs: Any):
        super().__init__("The job scheduler is already started.", **kwargs)


class SchedulerNotStartedError(SchedulerError):
    def __init__(self, **kwargs: Any):
        super().__init__("The job scheduler is not started yet.", **kwargs)


class SchedulerStoppedError(SchedulerError):
    def __init__(self, **kwargs: Any):
        super().__init__("The job scheduler is stopped.", **kwargs)


class SchedulerStartupError(SchedulerError):
    def __init__(self, cause: Exception, **kwargs: Any):
        super().__init__(f"The job scheduler failed to start: {cause}", cause=cause, **kwargs)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "FieldError",
    "ValidationError",
    "SchemaValidationError",
    "RegisteredSchemaIncompatibleError",
    "MissingSchemaError",
    "InvalidDescriptorError",
    "InvalidJobDescriptorError",
    "DatabaseError",
    "SchemaRegistrationConflictError",
    "ConfigError",
    "SourceError",
    "SchedulerError",
    "NoLoaderForJobError",
    "NoLoaderFoundError",
    "LoaderAlreadyRegisteredError",
    "LoaderInitializationError",
    "JobCreationFailedError",
    "JobNotFoundError",
    "JobRunningError",
    "SchedulerAlreadyStartedError",
    "SchedulerNotStartedError",
    "SchedulerStoppedError",
    "SchedulerStartupError",
]
