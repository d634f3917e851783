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


def validate_contact_number(contact: str) -> bool:
    """
    Validate a contact number loosely.
    Accepts an optional leading '+' followed by 7 to 15 digits once
    spaces, dashes and parentheses are removed.

    Args:
        contact: Contact number to validate

    Returns:
        True if valid contact format
    """
    if not contact:
        return False

    cleaned = re.sub(r'[\s\-\(\)]', '', contact)
    return bool(re.match(r'^\+?[0-9]{7,15}$', cleaned))


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


def validate_pricing_tiers(tiers: list) -> tuple:
    """
    Validate a duration tier table.

    Tiers, sorted by min_days, must start at day 1 and be contiguous and
    non-overlapping; only the last tier may be unbounded (max_days None).

    Args:
        tiers: List of dicts with min_days, max_days, price_per_day

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not tiers:
        return False, 'At least one pricing tier is required'

    try:
        ordered = sorted(tiers, key=lambda t: int(t['min_days']))
    except (KeyError, TypeError, ValueError):
        return False, 'Every tier needs an integer min_days'

    expected_min = 1
    for index, tier in enumerate(ordered):
        min_days = int(tier['min_days'])
        max_days = tier.get('max_days')
        price = tier.get('price_per_day')

        if min_days != expected_min:
            if min_days > expected_min:
                return False, f'Tiers leave a gap at {expected_min} day(s)'
            return False, f'Tiers overlap at {min_days} day(s)'

        try:
            price_ok = price is not None and float(price) >= 0
        except (TypeError, ValueError):
            price_ok = False
        if not price_ok:
            return False, f'Tier starting at {min_days} day(s) needs a non-negative price_per_day'

        if max_days is None:
            if index != len(ordered) - 1:
                return False, 'Only the last tier may be unbounded'
            break

        try:
            max_days = int(max_days)
        except (TypeError, ValueError):
            return False, f'Tier starting at {min_days} day(s) has an invalid max_days'
        if max_days < min_days:
            return False, f'Tier starting at {min_days} day(s) ends before it starts'
        expected_min = max_days + 1

    return True, ''


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
