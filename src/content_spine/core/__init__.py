"""
content-spine core primitives.

Errors, results, logging, settings, persistence helpers and events shared
by the registry, ingestion, scheduling and loader packages.
"""

from content_spine.core.errors import (
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    FieldError,
    SpineError,
)
from content_spine.core.result import Err, Ok, Result

__all__ = [
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "FieldError",
    "SpineError",
    "Ok",
    "Err",
    "Result",
]
