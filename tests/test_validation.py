"""Tests for payload validation and the error map it produces."""

import pytest

from expense_tracker.models import CategoryCreate, UserCreate
from expense_tracker.validation import (
    PayloadValidationError,
    field_errors,
    summarize,
    validate_payload,
)


class TestFieldErrors:
    """Tests for flattening pydantic errors."""

    def test_missing_fields_get_uniform_message(self):
        """Test that missing fields read '<field> is required'."""
        errors = field_errors([
            {"loc": ("body", "email"), "type": "missing", "msg": "Field required"},
            {"loc": ("password",), "type": "string_too_short", "msg": "too short"},
        ])
        assert errors == {"email": "email is required", "password": "password is required"}

    def test_first_error_per_field_wins(self):
        """Test that only one message is kept per field."""
        errors = field_errors([
            {"loc": ("amount",), "type": "float_parsing", "msg": "Input should be a valid number"},
            {"loc": ("amount",), "type": "missing", "msg": "Field required"},
        ])
        assert errors == {"amount": "Input should be a valid number"}

    def test_value_error_prefix_removed(self):
        """Test that custom validator messages are shown as written."""
        errors = field_errors([
            {"loc": ("status",), "type": "value_error", "msg": "Value error, Status must be a string"},
        ])
        assert errors["status"] == "Status must be a string"

    def test_nested_location_joined(self):
        """Test that nested locations become dotted names."""
        errors = field_errors([{"loc": ("body", "comments", 0, "text"), "type": "missing"}])
        assert "comments.0.text" in errors


class TestSummarize:
    """Tests for the top-level error message."""

    def test_all_missing(self):
        """Test the message when every error is a missing field."""
        message = summarize({"name": "name is required", "title": "title is required"})
        assert message == "Missing required fields: name, title"

    def test_mixed_errors(self):
        """Test the generic message for anything else."""
        message = summarize({"name": "name is required", "amount": "Input should be a valid number"})
        assert message == "Validation error"


class TestValidatePayload:
    """Tests for validate_payload."""

    def test_valid_payload(self):
        """Test that a good payload comes back as a model."""
        category = validate_payload(CategoryCreate, {"name": " Food "})
        assert category.name == "Food"

    def test_none_counts_as_empty(self):
        """Test that a missing body reports the missing fields."""
        with pytest.raises(PayloadValidationError) as exc_info:
            validate_payload(CategoryCreate, None)
        assert exc_info.value.errors == {"name": "name is required"}

    def test_non_object_body(self):
        """Test that a list or scalar body is rejected as a whole."""
        with pytest.raises(PayloadValidationError) as exc_info:
            validate_payload(CategoryCreate, ["Food"])
        assert "body" in exc_info.value.errors

    def test_camel_case_error_keys(self):
        """Test that errors are keyed by the wire field names."""
        with pytest.raises(PayloadValidationError) as exc_info:
            validate_payload(UserCreate, {"email": "a@b.com", "password": "pw"})
        assert set(exc_info.value.errors) == {"firstName", "lastName"}
        assert exc_info.value.message == "Missing required fields: firstName, lastName"
