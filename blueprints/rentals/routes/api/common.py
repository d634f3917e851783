"""
Shared request helpers for the rentals API routes.
"""

from flask import request
from flask_login import current_user

from models.booking_crud import get_booking_by_id
from utils.decorators import can_access_booking
from utils.errors import NotFound, ValidationError
from utils.messages import get_message
from utils.validators import validate_date_format


def get_json_body() -> dict:
    """Parsed JSON body; ValidationError if missing or not an object."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(get_message('json_required'))
    return data


def require_field(data: dict, field: str):
    """Value of a required body field."""
    value = data.get(field)
    if value in (None, ''):
        raise ValidationError(get_message('field_required', field=field))
    return value


def require_date(source: dict, field: str) -> str:
    """A required 'YYYY-MM-DD' value from a body dict or request.args."""
    value = source.get(field)
    if not value:
        raise ValidationError(get_message('field_required', field=field))
    if not validate_date_format(value):
        raise ValidationError(get_message('invalid_date', field=field))
    return value


def optional_int(data: dict, field: str):
    """An optional integer body field."""
    value = data.get(field)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')


def actor_name() -> str:
    """Username recorded in the status history."""
    if current_user and current_user.is_authenticated:
        return current_user.username
    return 'system'


def load_accessible_booking(booking_id: int) -> dict:
    """
    Load a booking the current user may act on.

    Customers get NotFound for bookings of other customers so ids are not
    disclosed.
    """
    booking = get_booking_by_id(booking_id)
    if not booking or not can_access_booking(booking):
        raise NotFound('booking', booking_id)
    return booking
