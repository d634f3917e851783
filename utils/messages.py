"""
Centralized UI messages.
All user-facing confirmation text in one place for consistency.
"""

MESSAGES = {
    # Success messages
    'booking_submitted': 'Rental request submitted',
    'booking_created': 'Booking created',
    'booking_updated': 'Booking updated',
    'booking_approved': 'Booking approved',
    'booking_rejected': 'Booking rejected',
    'booking_cancelled': 'Booking cancelled',
    'ready_to_ship': 'Item marked ready to ship',
    'in_transit_to_user': 'Item is on its way to the customer',
    'delivered': 'Delivery confirmed',
    'activated': 'Rental is now active',
    'return_scheduled': 'Return scheduled',
    'in_transit_to_owner': 'Item is on its way back',
    'returned': 'Return confirmed, rental completed',
    'contract_attached': 'Contract attached',
    'receipt_submitted': 'Payment receipt submitted',
    'payment_verified': 'Payment verified',
    'payment_rejected': 'Payment rejected',
    'extension_requested': 'Extension requested',
    'extension_approved': 'Extension approved',
    'extension_rejected': 'Extension rejected',
    'extension_applied': 'Extension applied to the booking',
    'tiers_updated': 'Pricing tiers updated',
    'rejections_purged': '{count} expired rejected booking(s) removed',

    # Error messages
    'permission_denied': 'You do not have permission for this action',
    'not_owner': 'This booking belongs to another customer',
    'field_required': '{field} is required',
    'invalid_date': '{field} must be a date in YYYY-MM-DD format',
    'invalid_email': 'Invalid email format',
    'invalid_contact': 'Invalid contact number',
    'json_required': 'A JSON body is required',
    'unknown_operation': 'Unknown operation: {operation}',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get a message by key with optional formatting.

    Args:
        key: Message key
        **kwargs: Values for str.format placeholders

    Returns:
        Formatted message, or the key itself if unknown
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        message = message.format(**kwargs)
    return message
