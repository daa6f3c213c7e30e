"""
Request Payload Validation

Every payload that reaches a flow goes through ``validate_payload`` first.
The pydantic error list is flattened into a ``{field: message}`` map, the
shape the client renders next to each form field.

IMPORTANT: Validation NEVER silently fixes issues beyond normalising
whitespace and letter case. A malformed value is reported, not coerced.
"""

from typing import Any, Iterable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# pydantic error types that mean "nothing usable was supplied"
_MISSING_TYPES = {"missing", "string_too_short"}

# request sections FastAPI prefixes onto error locations
_LOCATION_PREFIXES = {"body", "query", "path", "form", "header"}


class PayloadValidationError(Exception):
    """
    A request payload failed validation.

    Carries a per-field error map and a summary message.
    """

    def __init__(self, errors: dict[str, str], message: Optional[str] = None):
        self.errors = errors
        self.message = message or summarize(errors)
        super().__init__(self.message)

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "PayloadValidationError":
        return cls(field_errors(exc.errors()))


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def field_errors(errors: Iterable[dict]) -> dict[str, str]:
    """
    Flatten pydantic/FastAPI error dicts into ``{field: message}``.

    The first error per field wins. Missing and empty values get a
    uniform "<field> is required" message.
    """
    result: dict[str, str] = {}
    for error in errors:
        field = _field_name(error.get("loc", ()))
        if field in result:
            continue
        if error.get("type") in _MISSING_TYPES:
            result[field] = f"{field} is required"
        else:
            message = str(error.get("msg", "Invalid value"))
            # pydantic prefixes custom ValueErrors with "Value error, "
            result[field] = message.removeprefix("Value error, ")
    return result


def summarize(errors: dict[str, str]) -> str:
    """Build the top-level message for an error map."""
    missing = [field for field, msg in errors.items() if msg == f"{field} is required"]
    if missing and len(missing) == len(errors):
        return f"Missing required fields: {', '.join(missing)}"
    return "Validation error"


def validate_payload(model: type[ModelT], payload: Any) -> ModelT:
    """
    Validate a raw request payload against a model.

    Args:
        model: The pydantic model class to validate against
        payload: Decoded JSON body or form fields (None counts as empty)

    Returns:
        The validated model instance

    Raises:
        PayloadValidationError: With a per-field error map
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise PayloadValidationError(
            {"body": "Request body must be a JSON object"},
            message="Validation error",
        )
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise PayloadValidationError.from_validation_error(exc)
