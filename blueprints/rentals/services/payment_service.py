"""
Payment Service - Payment axis of a booking.

Handles:
- Receipt submission (pending or rejected -> submitted)
- Staff verification and rejection of submitted receipts
- Payment reads

Payment operations never touch booking dates and never run conflict checks.
"""

import logging
from typing import List, Dict, Any

from database import write_transaction
from models.booking_state import (
    PAYMENT_PENDING, PAYMENT_SUBMITTED, PAYMENT_REJECTED, PAYMENT_VERIFIED,
    CANCELLED, REJECTED, record_status_change
)
from models.booking_crud import get_booking_by_id
from models.payment import (
    get_payment_by_id, get_primary_payment as _get_primary_payment,
    get_payments_for_booking, get_payments_awaiting_verification, update_payment_fields
)
from utils.errors import IllegalTransition, NotFound, ValidationError
from utils.notifications import publish
from utils.validators import sanitize_input

logger = logging.getLogger(__name__)

# Allowed source statuses per payment operation
PAYMENT_TRANSITIONS = {
    'submit_receipt': ({PAYMENT_PENDING, PAYMENT_REJECTED}, PAYMENT_SUBMITTED),
    'verify': ({PAYMENT_SUBMITTED}, PAYMENT_VERIFIED),
    'reject': ({PAYMENT_SUBMITTED}, PAYMENT_REJECTED),
}


def _change_payment_status(payment_id: int, operation: str, changed_by: str = None,
                           notes: str = None, **fields) -> dict:
    """
    Move a payment along its axis in one transaction.

    Raises:
        NotFound: If the payment does not exist
        IllegalTransition: If the payment is not in an allowed source status
            or its booking is closed
    """
    allowed_from, to_status = PAYMENT_TRANSITIONS[operation]

    with write_transaction() as cursor:
        payment = get_payment_by_id(payment_id, cursor=cursor)
        if not payment:
            raise NotFound('payment', payment_id)

        from_state = {'payment_status': payment['payment_status'], 'rental_status': payment['rental_status']}
        if payment['payment_status'] not in allowed_from:
            raise IllegalTransition(from_state, f'payment.{operation}')
        if payment['rental_status'] in (CANCELLED, REJECTED):
            raise IllegalTransition(from_state, f'payment.{operation}', 'booking is closed')

        update_payment_fields(cursor, payment_id, payment_status=to_status, **fields)
        record_status_change(
            cursor, payment['booking_id'], 'payment', payment['payment_status'], to_status,
            f'payment.{operation}', changed_by=changed_by, notes=notes
        )

    logger.info(
        f"[Payment] Payment {payment_id} (booking {payment['booking_id']}): "
        f"{payment['payment_status']} -> {to_status}"
    )

    publish(
        f'payment.{to_status}', payment['booking_id'],
        payment_id=payment_id,
        extension_id=payment['extension_id'],
        owner_id=payment['owner_id']
    )
    return get_payment_by_id(payment_id)


def submit_payment_receipt(payment_id: int, receipt_ref: str, changed_by: str = None) -> dict:
    """
    Attach a receipt handle to a payment and mark it submitted.

    A rejected payment can be resubmitted with a new receipt.

    Args:
        payment_id: Payment ID
        receipt_ref: Opaque storage handle of the uploaded receipt
        changed_by: Username of the actor

    Returns:
        Updated payment dict

    Raises:
        ValidationError: If the handle is empty
        NotFound, IllegalTransition
    """
    if not receipt_ref:
        raise ValidationError('receipt_ref is required')

    return _change_payment_status(
        payment_id, 'submit_receipt', changed_by,
        receipt_ref=receipt_ref, rejection_reason=None
    )


def verify_payment(payment_id: int, changed_by: str = None) -> dict:
    """Confirm a submitted receipt."""
    return _change_payment_status(payment_id, 'verify', changed_by)


def reject_payment(payment_id: int, reason: str, changed_by: str = None) -> dict:
    """
    Reject a submitted receipt; the customer may upload another.

    Raises:
        ValidationError: If no reason is given
        NotFound, IllegalTransition
    """
    reason = sanitize_input(reason) if reason else ''
    if not reason:
        raise ValidationError('A rejection reason is required')

    return _change_payment_status(
        payment_id, 'reject', changed_by, notes=reason, rejection_reason=reason
    )


def get_payment(payment_id: int) -> dict:
    """Get one payment. Raises NotFound if it does not exist."""
    payment = get_payment_by_id(payment_id)
    if not payment:
        raise NotFound('payment', payment_id)
    return payment


def get_primary_payment(booking_id: int) -> dict:
    """
    Get the initial rental payment of a booking.

    Returns:
        Payment dict, or None before approval

    Raises:
        NotFound: If the booking does not exist
    """
    if not get_booking_by_id(booking_id):
        raise NotFound('booking', booking_id)
    return _get_primary_payment(booking_id)


def list_payments(booking_id: int) -> List[Dict[str, Any]]:
    """
    List every payment of a booking, primary first.

    Raises:
        NotFound: If the booking does not exist
    """
    if not get_booking_by_id(booking_id):
        raise NotFound('booking', booking_id)
    return get_payments_for_booking(booking_id)


def list_awaiting_verification() -> List[Dict[str, Any]]:
    """Submitted payments of confirmed or active bookings, newest first."""
    return get_payments_awaiting_verification()
