"""Tests for the error taxonomy."""

from content_spine.core.errors import (
    DatabaseError,
    ErrorCategory,
    FieldError,
    LoaderInitializationError,
    MissingSchemaError,
    RegisteredSchemaIncompatibleError,
    SchedulerNotStartedError,
    SchemaRegistrationConflictError,
    SchemaValidationError,
    SourceError,
    SpineError,
    ValidationError,
)


class TestCategories:
    def test_validation_errors_are_not_retryable(self):
        err = MissingSchemaError("example.User.V1")
        assert isinstance(err, ValidationError)
        assert err.category == ErrorCategory.VALIDATION
        assert err.retryable is False

    def test_source_errors_are_retryable(self):
        assert SourceError("timeout").retryable is True
        assert SourceError("timeout").category == ErrorCategory.SOURCE

    def test_registration_conflict_is_a_retryable_database_error(self):
        err = SchemaRegistrationConflictError("example.User.V1", 3)
        assert isinstance(err, DatabaseError)
        assert err.retryable is True
        assert "3 attempt" in err.message

    def test_scheduler_errors_are_orchestration(self):
        assert SchedulerNotStartedError().category == ErrorCategory.ORCHESTRATION


class TestMessages:
    def test_missing_schema(self):
        assert MissingSchemaError("example.User.V1").message == "Schema example.User.V1 not found"

    def test_incompatible(self):
        err = RegisteredSchemaIncompatibleError("example.User.V1", ["User.name: required property was removed"])
        assert err.message == "There is an incompatible registered schema with key example.User.V1"
        assert err.to_dict()["violations"] == ["User.name: required property was removed"]

    def test_schema_validation_details(self):
        err = SchemaValidationError([FieldError("", "must have required property 'name'")])
        assert err.message == "Schema validation for payload failed"
        assert err.details == {"": "must have required property 'name'"}
        assert err.to_dict()["errors"] == [
            {"field": "", "message": "must have required property 'name'"}
        ]

    def test_loader_initialization_keeps_cause(self):
        cause = RuntimeError("boom")
        err = LoaderInitializationError("example.User.V1", cause)
        assert err.cause is cause
        assert err.__cause__ is cause
        assert err.context.loader == "example.User.V1"


class TestContext:
    def test_with_context_sets_known_fields_and_metadata(self):
        err = SpineError("x").with_context(schema_key="a.b.c", upstream_id="42")
        assert err.context.schema_key == "a.b.c"
        assert err.context.metadata == {"upstream_id": "42"}
        assert err.to_dict()["context"] == {"schema_key": "a.b.c", "upstream_id": "42"}

    def test_database_error_wrap(self):
        cause = OSError("disk full")
        err = DatabaseError.wrap(cause, operation="store")
        assert err.message == "disk full"
        assert err.context.operation == "store"
        assert err.to_dict()["cause"] == "disk full"
