"""
Validation utilities
"""
import re
from datetime import datetime, timezone

from app.errors import ValidationError


def validate_email(email):
    """
    Validate email format

    Args:
        email (str): Email address to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def normalize_phone(phone):
    """
    Normalize a phone number to E.164

    "3055551234"     -> "+13055551234"
    "(305) 555-1234" -> "+13055551234"
    "13055551234"    -> "+13055551234"
    "+447911123456"  -> "+447911123456"

    Returns:
        str: E.164 number, or None when the input cannot be one
    """
    if not phone:
        return None

    stripped = re.sub(r'[^\d+]', '', str(phone).strip())
    if stripped.startswith('+'):
        digits = stripped[1:]
    else:
        digits = stripped
        if len(digits) == 10:
            digits = '1' + digits

    if not re.match(r'^[1-9]\d{7,14}$', digits):
        return None
    return '+' + digits


def require_fields(data, *fields):
    """Raise ValidationError naming the first missing field."""
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError('{} is required'.format(field), field=field)


def parse_positive_number(value, field, integer=False):
    """
    Coerce a JSON value to a strictly positive number

    Raises:
        ValidationError: when missing, non-numeric or not > 0
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError('{} must be a positive number'.format(field), field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError('{} must be a positive number'.format(field), field=field)
    if integer:
        if number != int(number):
            raise ValidationError('{} must be a whole number'.format(field), field=field)
        number = int(number)
    if number <= 0:
        raise ValidationError('{} must be greater than zero'.format(field), field=field)
    return number


def parse_coordinate(value, field, limit):
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError('{} must be a number'.format(field), field=field)
    if abs(number) > limit:
        raise ValidationError('{} is out of range'.format(field), field=field)
    return number


def parse_datetime(value, field):
    """Parse an ISO 8601 string; naive values are taken as UTC."""
    if value in (None, ''):
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError('{} must be an ISO 8601 datetime'.format(field), field=field)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def json_body():
    """The request's JSON object, or {} when there is no body."""
    from flask import request

    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def parse_limit(value, default, maximum):
    try:
        limit = int(value) if value not in (None, '') else default
    except (TypeError, ValueError):
        raise ValidationError('limit must be a whole number', field='limit')
    return max(1, min(limit, maximum))


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
