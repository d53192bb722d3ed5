"""
Input validation helper functions.
Provides validation for common input types.
"""

import re
from datetime import datetime


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
        return True
    except (ValueError, TypeError):
        return False


def validate_date_string(value, field_name: str, required: bool = True) -> tuple:
    """
    Validate a request date field.

    Args:
        value: Raw value from the request body
        field_name: Field name used in the error message
        required: Whether a missing value is an error

    Returns:
        Tuple of (is_valid, normalized_value or None, error_message)
    """
    if value is None or value == '':
        if required:
            return False, None, f'{field_name} is required'
        return True, None, ''

    if not isinstance(value, str) or not validate_date_format(value[:10]):
        return False, None, f'{field_name} must be a date in YYYY-MM-DD format'

    return True, value[:10], ''


def validate_non_negative_int(value, field_name: str) -> tuple:
    """
    Validate a guest count or similar counter.

    Booleans and fractional numbers are rejected; numeric strings are accepted.

    Returns:
        Tuple of (is_valid, int value or None, error_message)
    """
    if isinstance(value, bool):
        return False, None, f'{field_name} must be a whole number'

    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        value = int(value.strip())

    if isinstance(value, float) and value.is_integer():
        value = int(value)

    if not isinstance(value, int):
        return False, None, f'{field_name} must be a whole number'

    if value < 0:
        return False, None, f'{field_name} cannot be negative'

    return True, value, ''


def validate_positive_id(value, field_name: str) -> tuple:
    """
    Validate an optional row ID from a request body.

    Returns:
        Tuple of (is_valid, int value or None, error_message)
    """
    if value is None:
        return True, None, ''

    valid, number, err = validate_non_negative_int(value, field_name)
    if not valid:
        return False, None, err
    if number == 0:
        return False, None, f'{field_name} must be a positive integer'
    return True, number, ''


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    # Strip whitespace
    sanitized = text.strip()

    # Limit length if specified
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
