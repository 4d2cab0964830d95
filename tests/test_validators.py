"""
Tests for validation utilities.
"""

import pytest
from datetime import datetime, timezone

from workspace_gateway.utils.validators import (
    coerce_bool,
    coerce_int,
    parse_datetime,
    require_fields,
    validate_email,
    validate_email_list,
    validate_header_value,
    validate_timezone,
    ValidationError
)


def test_validate_email_valid():
    """Test valid email validation."""
    assert validate_email("test@example.com") == "test@example.com"
    assert validate_email("user.name+tag@domain.co.uk") == "user.name+tag@domain.co.uk"


def test_validate_email_invalid():
    """Test invalid email validation."""
    for value in ["invalid-email", "", "@example.com", "user@domain", "a b@example.com", "a@b@c.com", None, 42]:
        with pytest.raises(ValidationError) as exc_info:
            validate_email(value)
        assert exc_info.value.message == "Invalid email address format"


def test_require_fields_lists_every_required_field():
    """Missing fields report the full required list."""
    with pytest.raises(ValidationError) as exc_info:
        require_fields({"to": "a@example.com", "subject": ""}, ["to", "subject", "body"])

    error = exc_info.value
    assert error.message == "Missing required fields"
    assert error.details == {"required": ["to", "subject", "body"]}
    assert error.status_code == 400


def test_require_fields_passes_complete_payload():
    payload = {"to": "a@example.com", "subject": "Hi", "body": "Hello"}
    assert require_fields(payload, ["to", "subject", "body"]) is payload


def test_require_fields_handles_none():
    with pytest.raises(ValidationError):
        require_fields(None, ["to"])


def test_validate_timezone():
    """Test timezone validation."""
    assert validate_timezone("Europe/Moscow") == "Europe/Moscow"
    assert validate_timezone("UTC") == "UTC"

    with pytest.raises(ValidationError):
        validate_timezone("Invalid/Timezone")


def test_parse_datetime():
    """ISO strings become aware UTC datetimes."""
    dt = parse_datetime("2024-01-15T14:30:00+03:00")
    assert dt == datetime(2024, 1, 15, 11, 30, tzinfo=timezone.utc)

    assert parse_datetime("2024-01-15T14:30:00Z").hour == 14
    assert parse_datetime("2024-01-15").day == 15
    assert parse_datetime("2024-01-15 14:30").tzinfo is not None


def test_parse_datetime_invalid():
    assert parse_datetime("not a date") is None
    assert parse_datetime("") is None
    assert parse_datetime(None) is None


def test_coerce_bool():
    assert coerce_bool(True) is True
    assert coerce_bool("true") is True
    assert coerce_bool("0") is False
    assert coerce_bool(None) is False
    assert coerce_bool(None, default=True) is True

    with pytest.raises(ValidationError):
        coerce_bool("maybe")


def test_coerce_int():
    assert coerce_int("10") == 10
    assert coerce_int(7.9) == 7
    assert coerce_int("abc") is None
    assert coerce_int(None) is None
    assert coerce_int(True) is None


def test_validate_email_list_drops_blanks():
    assert validate_email_list(["a@example.com", "", None, "b@example.com"]) == ["a@example.com", "b@example.com"]
    assert validate_email_list(None) == []

    with pytest.raises(ValidationError):
        validate_email_list(["not-an-email"])

    with pytest.raises(ValidationError):
        validate_email_list("a@example.com")


def test_validate_header_value():
    assert validate_header_value("Quarterly report", "subject") == "Quarterly report"
    assert validate_header_value(42, "subject") == "42"

    for value in ["Hello\nBcc: victim@example.com", "Hello\r\nworld", "Hello\rworld"]:
        with pytest.raises(ValidationError) as exc_info:
            validate_header_value(value, "subject")
        assert exc_info.value.message == "Subject must not contain line breaks"
        assert exc_info.value.field == "subject"


def test_parse_datetime_epoch_milliseconds():
    assert parse_datetime(1705312800000) == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert parse_datetime(1705312800000.0) == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert parse_datetime(True) is None
    assert parse_datetime(float("nan")) is None
    assert parse_datetime(10 ** 20) is None
