"""
Route decorators for authentication and authorization.
Provides role-based access control for API routes.
"""

from functools import wraps
from flask_login import login_required, current_user

from utils.api_response import api_error
from utils.messages import get_message


def staff_required(func):
    """
    Decorator to restrict a route to staff users.

    Usage:
        @bp.route('/bookings/<int:booking_id>/approve', methods=['POST'])
        @login_required
        @staff_required
        def approve(booking_id):
            ...
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_staff:
            return api_error(get_message('permission_denied'), status=403)
        return func(*args, **kwargs)
    return wrapper


def can_access_booking(booking: dict) -> bool:
    """
    Check whether the current user may act on a booking.

    Staff may act on any booking; customers only on their own.

    Args:
        booking: Booking dict

    Returns:
        True if access is allowed
    """
    if not current_user.is_authenticated:
        return False
    if current_user.is_staff:
        return True
    return booking.get('owner_id') == current_user.id


# Re-export login_required for convenience
__all__ = ['login_required', 'staff_required', 'can_access_booking']
