"""
Input validation utilities for the gateway.
Validates emails, required fields, dates and timezones before calling a service.
"""

import re
import pytz
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime

from workspace_gateway.utils.exceptions import ValidationError


# Shape local@domain.tld, no whitespace and a single @ on each side
EMAIL_REGEX = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


def is_valid_email(email: Any) -> bool:
    """Check an address against the local@domain.tld shape."""
    return isinstance(email, str) and bool(EMAIL_REGEX.match(email))


def validate_email(email: Any) -> str:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        The email address, unchanged

    Raises:
        ValidationError: If email is invalid
    """
    if not is_valid_email(email):
        raise ValidationError(
            "Invalid email address format",
            field="email",
            value=email
        )
    return email


def require_fields(data: Optional[Dict[str, Any]], fields: Sequence[str]) -> Dict[str, Any]:
    """
    Check that every field is present and non-empty.

    Args:
        data: Request payload
        fields: Names of required fields

    Returns:
        The payload

    Raises:
        ValidationError: Listing all required fields if any is missing
    """
    data = data or {}
    missing = [name for name in fields if not data.get(name)]
    if missing:
        raise ValidationError(
            "Missing required fields",
            field=missing[0],
            details={"required": list(fields)}
        )
    return data


def validate_header_value(value: Any, field: str) -> str:
    """
    Validate a value that ends up in a single mail header line.

    Raises:
        ValidationError: If the value contains a line break
    """
    text = str(value)
    if "\r" in text or "\n" in text:
        raise ValidationError(
            f"{field.capitalize()} must not contain line breaks",
            field=field,
            value=value
        )
    return text


def validate_timezone(timezone: str) -> str:
    """
    Validate timezone string.

    Args:
        timezone: Timezone identifier (e.g., 'Europe/Berlin')

    Returns:
        Validated timezone string

    Raises:
        ValidationError: If timezone is invalid
    """
    if not timezone:
        raise ValidationError("Timezone is required", field="timeZone")

    try:
        pytz.timezone(timezone)
        return timezone
    except pytz.exceptions.UnknownTimeZoneError:
        raise ValidationError(
            f"Unknown timezone: {timezone}",
            field="timeZone",
            value=timezone
        )


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime, or a number of epoch milliseconds.

    Naive values are interpreted as UTC. Returns None when the value
    cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=pytz.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Interpret JSON booleans and query-string flags."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise ValidationError(f"Invalid boolean value: {value}", value=value)


def coerce_int(value: Any) -> Optional[int]:
    """Convert a number or numeric string to int, None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def validate_email_list(emails: Optional[List[Any]]) -> List[str]:
    """
    Validate a list of email addresses, dropping blank entries.

    Raises:
        ValidationError: If any non-blank entry is invalid
    """
    if not emails:
        return []
    if not isinstance(emails, list):
        raise ValidationError("Attendees must be a list of email addresses", field="attendees")

    validated = []
    for email in emails:
        if not email:
            continue
        if not is_valid_email(email):
            raise ValidationError(
                f"Invalid attendee email: {email}",
                field="attendees",
                value=email
            )
        validated.append(email)
    return validated
