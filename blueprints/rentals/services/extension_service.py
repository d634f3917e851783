"""
Extension Service - Pushing a delivered rental's end date forward.

Handles:
- Eligibility (active, delivered, no pending request)
- Requests with availability check on the added days and an extension payment
- Staff approval and rejection
- Applying an approved, paid extension to the booking

Applying is the only path that moves a booking's end date after creation.
The booking, the extension and its payment are read and written in one
transaction.
"""

import logging
import sqlite3
from typing import List, Dict, Any

from flask import current_app

from database import write_transaction
from models.booking_crud import get_booking_by_id, update_booking_fields
from models.booking_state import (
    ACTIVE, DELIVERED, EXTENSION_PENDING, EXTENSION_APPROVED, EXTENSION_REJECTED,
    PAYMENT_VERIFIED, check_transition, requires_conflict_check, record_status_change, state_of
)
from models.extension import (
    insert_extension, set_extension_decision, mark_extension_applied,
    get_extension_by_id, get_extensions, has_pending_extension
)
from models.payment import insert_payment, get_extension_payment
from blueprints.rentals.services.pricing_service import resolve_price, calculate_rental_days
from blueprints.rentals.services.lifecycle_service import (
    ensure_no_conflict, is_overlap_error, conflict_from_overlap, get_booking
)
from utils.datetime_helpers import to_iso_date, add_days
from utils.errors import IllegalTransition, NotFound, ValidationError
from utils.notifications import publish
from utils.validators import sanitize_input

logger = logging.getLogger(__name__)


def _load_extension(extension_id: int, cursor=None) -> dict:
    extension = get_extension_by_id(extension_id, cursor=cursor)
    if not extension:
        raise NotFound('extension', extension_id)
    return extension


def _extension_state(extension: dict, payment: dict = None) -> dict:
    state = {
        'extension_status': extension['extension_status'],
        'rental_status': extension['rental_status'],
        'shipping_status': extension['shipping_status'],
    }
    if payment is not None:
        state['payment_status'] = payment['payment_status']
    return state


def _added_span(original_end_date: str, requested_end_date: str) -> tuple:
    """The days an extension adds: [original_end + 1, requested_end]."""
    return add_days(original_end_date, 1), requested_end_date


def check_extension_eligibility(booking_id: int) -> Dict[str, Any]:
    """
    Check whether a booking may be extended.

    Args:
        booking_id: Booking ID

    Returns:
        {'eligible': bool, 'reason': str or None}

    Raises:
        NotFound: If the booking does not exist
    """
    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFound('booking', booking_id)

    if booking['rental_status'] != ACTIVE:
        return {'eligible': False, 'reason': 'Rental must be active to extend'}
    if booking['shipping_status'] != DELIVERED:
        return {'eligible': False, 'reason': 'Item must be delivered to extend'}
    if has_pending_extension(booking_id):
        return {'eligible': False, 'reason': 'Rental already has a pending extension request'}
    return {'eligible': True, 'reason': None}


def request_extension(booking_id: int, requested_end_date, requested_by: int = None,
                      changed_by: str = None) -> dict:
    """
    Request a later end date for an active, delivered rental.

    Creates the pending extension and its payment. The payment amount is
    the re-resolved total for the extended range minus the current total,
    never below zero.

    Args:
        booking_id: Booking ID
        requested_end_date: New last rental day
        requested_by: User ID of the requester
        changed_by: Username of the actor

    Returns:
        Extension dict with its 'payment'

    Raises:
        NotFound, IllegalTransition, ValidationError, BookingConflict,
        NoTierForDuration
    """
    if not requested_end_date:
        raise ValidationError('requested_end_date is required')
    try:
        requested_end = to_iso_date(requested_end_date)
    except ValueError as e:
        raise ValidationError('requested_end_date must be a date in YYYY-MM-DD format') from e

    booking = None
    try:
        with write_transaction() as cursor:
            booking = get_booking_by_id(booking_id, cursor=cursor)
            if not booking:
                raise NotFound('booking', booking_id)

            if booking['rental_status'] != ACTIVE or booking['shipping_status'] != DELIVERED:
                raise IllegalTransition(state_of(booking), 'request_extension',
                                        'rental must be active and delivered')
            if has_pending_extension(booking_id, cursor=cursor):
                raise IllegalTransition(state_of(booking), 'request_extension',
                                        'a pending extension already exists')

            if requested_end <= booking['end_date']:
                raise ValidationError('New end date must be after the current end date')

            span_start, span_end = _added_span(booking['end_date'], requested_end)
            ensure_no_conflict(cursor, booking['item_id'], span_start, span_end,
                               exclude_booking_id=booking_id)

            quote = resolve_price(booking['item_id'], booking['start_date'], requested_end)
            places = current_app.config.get('CURRENCY_PLACES', 2)
            additional_price = round(max(quote.total_price - booking['total_price'], 0), places)
            extension_days = calculate_rental_days(span_start, span_end)

            extension_id = insert_extension(
                cursor, booking_id, booking['end_date'], requested_end,
                extension_days, additional_price, requested_by=requested_by
            )
            insert_payment(cursor, booking_id, additional_price, extension_id=extension_id)
            record_status_change(
                cursor, booking_id, 'extension', None, EXTENSION_PENDING,
                'request_extension', changed_by=changed_by, notes=f'until {requested_end}'
            )
    except sqlite3.IntegrityError as e:
        if booking is None or not is_overlap_error(e):
            raise
        raise conflict_from_overlap(
            booking['item_id'], *_added_span(booking['end_date'], requested_end), booking_id
        ) from e

    logger.info(
        f"[Extension] Booking {booking_id}: extension {extension_id} requested until "
        f"{requested_end} ({extension_days} day(s), {additional_price})"
    )

    publish('extension.requested', booking_id, extension_id=extension_id, owner_id=booking['owner_id'])
    return get_extension(extension_id)


def approve_extension(extension_id: int, notes: str = None, changed_by: str = None) -> dict:
    """
    Approve a pending extension after re-checking the added days.

    The booking's end date does not move until apply_extension().

    Raises:
        NotFound, IllegalTransition, BookingConflict
    """
    extension = None
    try:
        with write_transaction() as cursor:
            extension = _load_extension(extension_id, cursor=cursor)
            if extension['extension_status'] != EXTENSION_PENDING:
                raise IllegalTransition(_extension_state(extension), 'approve_extension')

            span_start, span_end = _added_span(
                extension['original_end_date'], extension['requested_end_date']
            )
            ensure_no_conflict(cursor, extension['item_id'], span_start, span_end,
                               exclude_booking_id=extension['booking_id'])

            set_extension_decision(cursor, extension_id, EXTENSION_APPROVED,
                                   sanitize_input(notes) if notes else None)
            record_status_change(
                cursor, extension['booking_id'], 'extension', EXTENSION_PENDING,
                EXTENSION_APPROVED, 'approve_extension', changed_by=changed_by, notes=notes
            )
    except sqlite3.IntegrityError as e:
        if extension is None or not is_overlap_error(e):
            raise
        raise conflict_from_overlap(
            extension['item_id'],
            *_added_span(extension['original_end_date'], extension['requested_end_date']),
            extension['booking_id']
        ) from e

    logger.info(f"[Extension] Extension {extension_id} approved by {changed_by or 'system'}")
    publish('extension.approved', extension['booking_id'], extension_id=extension_id)
    return get_extension(extension_id)


def reject_extension(extension_id: int, notes: str = None, changed_by: str = None) -> dict:
    """
    Reject a pending extension.

    Raises:
        NotFound, IllegalTransition
    """
    with write_transaction() as cursor:
        extension = _load_extension(extension_id, cursor=cursor)
        if extension['extension_status'] != EXTENSION_PENDING:
            raise IllegalTransition(_extension_state(extension), 'reject_extension')

        set_extension_decision(cursor, extension_id, EXTENSION_REJECTED,
                               sanitize_input(notes) if notes else None)
        record_status_change(
            cursor, extension['booking_id'], 'extension', EXTENSION_PENDING,
            EXTENSION_REJECTED, 'reject_extension', changed_by=changed_by, notes=notes
        )

    logger.info(f"[Extension] Extension {extension_id} rejected by {changed_by or 'system'}")
    publish('extension.rejected', extension['booking_id'], extension_id=extension_id)
    return get_extension(extension_id)


def apply_extension(extension_id: int, changed_by: str = None) -> dict:
    """
    Move the booking's end date to an approved, paid extension's date.

    Re-resolves the price for the whole new range and re-checks conflicts
    for the booking's new range, excluding itself. An extension applies
    once.

    Args:
        extension_id: Extension ID
        changed_by: Username of the actor

    Returns:
        Updated booking dict with derived fields

    Raises:
        NotFound: If the extension does not exist
        IllegalTransition: If the extension is not approved, its payment is
            not verified, it was already applied, the booking moved on, or
            the booking's end date changed since the request
        BookingConflict: If the new range overlaps a committed booking
    """
    booking = None
    extension = None
    try:
        with write_transaction() as cursor:
            extension = _load_extension(extension_id, cursor=cursor)
            payment = get_extension_payment(extension_id, cursor=cursor)
            state = _extension_state(extension, payment)

            if extension['extension_status'] != EXTENSION_APPROVED:
                raise IllegalTransition(state, 'apply_extension', 'extension is not approved')
            if payment is None or payment['payment_status'] != PAYMENT_VERIFIED:
                raise IllegalTransition(state, 'apply_extension', 'extension payment is not verified')
            if extension['applied_at']:
                raise IllegalTransition(state, 'apply_extension', 'extension already applied')

            booking = get_booking_by_id(extension['booking_id'], cursor=cursor)
            check_transition(booking, 'apply_extension')
            if booking['end_date'] != extension['original_end_date']:
                raise IllegalTransition(state, 'apply_extension',
                                        'booking end date changed since the request')

            new_end = extension['requested_end_date']
            if requires_conflict_check(booking, 'apply_extension'):
                ensure_no_conflict(cursor, booking['item_id'], booking['start_date'], new_end,
                                   exclude_booking_id=booking['id'])

            quote = resolve_price(booking['item_id'], booking['start_date'], new_end)
            update_booking_fields(cursor, booking['id'], {
                'end_date': new_end,
                'price_per_day': quote.price_per_day,
                'total_price': quote.total_price,
                'tier_description': quote.tier_description,
            })
            mark_extension_applied(cursor, extension_id)
            record_status_change(
                cursor, booking['id'], 'dates', booking['end_date'], new_end,
                'apply_extension', changed_by=changed_by,
                notes=f"extension {extension_id}, payment {payment['id']}"
            )
    except sqlite3.IntegrityError as e:
        if booking is None or not is_overlap_error(e):
            raise
        raise conflict_from_overlap(
            booking['item_id'], booking['start_date'], extension['requested_end_date'], booking['id']
        ) from e

    logger.info(
        f"[Extension] Extension {extension_id} applied: booking {booking['id']} now ends "
        f"{extension['requested_end_date']} ({quote.days} day(s), {quote.total_price})"
    )

    publish('extension.applied', booking['id'], extension_id=extension_id,
            end_date=extension['requested_end_date'], owner_id=booking['owner_id'])
    return get_booking(booking['id'])


def get_extension(extension_id: int) -> dict:
    """
    Get an extension with its payment.

    Raises:
        NotFound: If the extension does not exist
    """
    extension = _load_extension(extension_id)
    extension['payment'] = get_extension_payment(extension_id)
    return extension


def list_pending_extensions() -> List[Dict[str, Any]]:
    """Undecided extension requests, newest first, each with its payment."""
    extensions = get_extensions(status=EXTENSION_PENDING)
    for extension in extensions:
        extension['payment'] = get_extension_payment(extension['id'])
    return extensions


def list_extensions_for_user(user_id: int) -> List[Dict[str, Any]]:
    """A customer's extension history, newest first."""
    return get_extensions(requested_by=user_id)
