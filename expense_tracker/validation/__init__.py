"""Payload validation package."""

from expense_tracker.validation.validator import (
    PayloadValidationError,
    field_errors,
    summarize,
    validate_payload,
)

__all__ = [
    "PayloadValidationError",
    "field_errors",
    "summarize",
    "validate_payload",
]
