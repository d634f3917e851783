"""
Lifecycle Service - Guarded booking transitions.

Handles:
- Customer submission and staff direct entry
- Rental and shipping axis transitions driven by the transition table
- Detail edits with re-pricing and conflict re-checks
- Contract attachment and purge of expired rejections
- Booking reads with derived fields

Every operation runs in one write transaction. Operations that commit a
booking or move a committed booking's dates re-run the conflict check
inside that transaction, right before the commit; the overlap trigger in
the schema is the backstop. Notifications go out after the commit.
"""

import logging
import sqlite3
from datetime import timedelta
from typing import List, Dict, Any

from flask import current_app

from database import write_transaction
from models.booking import (
    insert_booking, get_booking_by_id, update_booking_fields, delete_booking,
    check_transition, requires_conflict_check, record_status_change,
    with_derived_fields, list_bookings, get_bookings_needing_action,
    get_expired_rejections, get_status_history, is_terminal,
    RENTAL_STATUSES, COMMITTED_STATUSES,
)
from models.booking_state import (
    PENDING, REJECTED, ORIGIN_CUSTOMER, ORIGIN_STAFF, STAFF_INITIAL_STATUSES,
    PAYMENT_PENDING, PAYMENT_SUBMITTED, state_of
)
from models.payment import insert_payment, get_primary_payment, get_payments_for_booking, update_payment_fields
from models.extension import get_extensions_for_booking
from blueprints.rentals.services.pricing_service import resolve_price
from blueprints.rentals.services.conflict_service import find_conflicts
from utils.datetime_helpers import to_iso_date, utc_timestamp, get_now
from utils.errors import BookingConflict, IllegalTransition, NotFound, ValidationError
from utils.notifications import publish
from utils.validators import validate_email, validate_contact_number, sanitize_input

logger = logging.getLogger(__name__)

# Message raised by the overlap triggers
OVERLAP_TRIGGER_MESSAGE = 'booking_overlap'

AXIS_NAMES = {
    'rental_status': 'rental',
    'shipping_status': 'shipping',
}


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _load_booking(cursor, booking_id: int) -> dict:
    booking = get_booking_by_id(booking_id, cursor=cursor)
    if not booking:
        raise NotFound('booking', booking_id)
    return booking


def ensure_no_conflict(cursor, item_id: int, start_date: str, end_date: str,
                       exclude_booking_id: int = None) -> None:
    """
    Raise BookingConflict if the range overlaps committed bookings.

    Runs on the caller's transaction cursor so it sees uncommitted writes.
    """
    conflicts = find_conflicts(item_id, start_date, end_date, exclude_booking_id, cursor=cursor)
    if conflicts:
        raise BookingConflict(conflicts)


def is_overlap_error(error: sqlite3.IntegrityError) -> bool:
    """True if the integrity error comes from the overlap triggers."""
    return OVERLAP_TRIGGER_MESSAGE in str(error)


def conflict_from_overlap(item_id: int, start_date: str, end_date: str,
                          exclude_booking_id: int = None) -> BookingConflict:
    """Build the BookingConflict reported when the overlap trigger aborts a write."""
    logger.warning(f"[Lifecycle] Overlap trigger fired for item {item_id} {start_date}..{end_date}")
    return BookingConflict(
        find_conflicts(item_id, start_date, end_date, exclude_booking_id),
        item_id=item_id, start_date=start_date, end_date=end_date
    )


def _record_changes(cursor, booking: dict, updates: dict, operation: str,
                    changed_by: str = None, notes: str = None) -> None:
    """Write one history row per status axis the update moves."""
    for column, axis in AXIS_NAMES.items():
        if column in updates and updates[column] != booking.get(column):
            record_status_change(
                cursor, booking['id'], axis, booking.get(column), updates[column],
                operation, changed_by=changed_by, notes=notes
            )


def _notify(event: str, booking_id: int, **payload) -> None:
    publish(event, booking_id, **payload)


def _apply_transition(booking_id: int, operation: str, changed_by: str = None,
                      fields: dict = None, notes: str = None, after=None) -> dict:
    """
    Run one table-driven transition.

    Args:
        booking_id: Booking ID
        operation: Key of the transition table
        changed_by: Username of the actor
        fields: Extra columns written with the effect (reasons, expiry)
        notes: History note
        after: Optional callable(cursor, booking) run before the commit

    Returns:
        Updated booking dict with derived fields

    Raises:
        NotFound, IllegalTransition, BookingConflict
    """
    booking = None
    try:
        with write_transaction() as cursor:
            booking = _load_booking(cursor, booking_id)
            updates = check_transition(booking, operation)
            updates.update(fields or {})

            if requires_conflict_check(booking, operation):
                ensure_no_conflict(
                    cursor, booking['item_id'], booking['start_date'], booking['end_date'],
                    exclude_booking_id=booking_id
                )

            update_booking_fields(cursor, booking_id, updates)
            _record_changes(cursor, booking, updates, operation, changed_by, notes)

            if after is not None:
                after(cursor, booking)

    except sqlite3.IntegrityError as e:
        if booking is None or not is_overlap_error(e):
            raise
        raise conflict_from_overlap(
            booking['item_id'], booking['start_date'], booking['end_date'], booking_id
        ) from e

    logger.info(f"[Lifecycle] Booking {booking_id}: {operation} by {changed_by or 'system'}")

    updated = get_booking(booking_id)
    _notify(
        f'booking.{operation}', booking_id,
        rental_status=updated['rental_status'],
        shipping_status=updated['shipping_status'],
        owner_id=updated.get('owner_id')
    )
    return updated


def _validate_customer_fields(customer_name=None, customer_contact=None, customer_email=None) -> dict:
    """Clean walk-in customer fields, raising ValidationError on bad values."""
    fields = {}
    if customer_name is not None:
        fields['customer_name'] = sanitize_input(customer_name, max_length=200) or None
    if customer_contact is not None:
        contact = sanitize_input(customer_contact, max_length=50)
        if contact and not validate_contact_number(contact):
            raise ValidationError('Invalid contact number')
        fields['customer_contact'] = contact or None
    if customer_email is not None:
        email = sanitize_input(customer_email, max_length=200)
        if email and not validate_email(email):
            raise ValidationError('Invalid email format')
        fields['customer_email'] = email or None
    return fields


def _normalize_date(value, field: str) -> str:
    if value in (None, ''):
        raise ValidationError(f'{field} is required')
    try:
        return to_iso_date(value)
    except ValueError as e:
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format') from e


# =============================================================================
# CREATION
# =============================================================================

def submit_booking(
    item_id: int,
    start_date,
    end_date,
    owner_id: int = None,
    customer_name: str = None,
    customer_contact: str = None,
    customer_email: str = None,
    notes: str = None,
    changed_by: str = None
) -> dict:
    """
    Submit a customer rental request.

    The booking starts pending with no shipping status and a resolved price.
    Pending bookings never block dates, so no conflict check runs here.

    Args:
        item_id: Rental item ID
        start_date: First rental day
        end_date: Last rental day (inclusive)
        owner_id: Submitting customer's user ID
        customer_name: Name when there is no owner account
        customer_contact: Contact number
        customer_email: Email
        notes: Free text
        changed_by: Username of the actor

    Returns:
        New booking dict with derived fields

    Raises:
        ValidationError, InvalidRange, NotFound, NoPricingConfigured, NoTierForDuration
    """
    start = _normalize_date(start_date, 'start_date')
    end = _normalize_date(end_date, 'end_date')

    fields = _validate_customer_fields(customer_name, customer_contact, customer_email)
    if not owner_id and not fields.get('customer_name'):
        raise ValidationError('customer_name is required')

    quote = resolve_price(item_id, start, end)

    fields.update({
        'item_id': item_id,
        'owner_id': owner_id,
        'start_date': start,
        'end_date': end,
        'rental_status': PENDING,
        'shipping_status': None,
        'booking_origin': ORIGIN_CUSTOMER,
        'price_per_day': quote.price_per_day,
        'total_price': quote.total_price,
        'tier_description': quote.tier_description,
        'notes': sanitize_input(notes) if notes else None,
    })

    with write_transaction() as cursor:
        booking_id = insert_booking(cursor, fields)
        record_status_change(cursor, booking_id, 'rental', None, PENDING, 'submit', changed_by=changed_by)

    logger.info(
        f"[Lifecycle] Booking {booking_id} submitted for item {item_id} "
        f"{start}..{end} ({quote.days} day(s), {quote.total_price})"
    )

    _notify('booking.submitted', booking_id, owner_id=owner_id, item_id=item_id)
    return get_booking(booking_id)


def create_staff_booking(
    item_id: int,
    start_date,
    end_date,
    customer_name: str,
    customer_contact: str = None,
    customer_email: str = None,
    initial_status: str = 'confirmed',
    receipt_ref: str = None,
    contract_ref: str = None,
    owner_id: int = None,
    notes: str = None,
    changed_by: str = None
) -> dict:
    """
    Enter a booking directly as staff (walk-in or phone order).

    Committed entries are conflict-checked and receive a primary payment,
    submitted when a receipt handle is supplied and pending otherwise.
    A pending entry is a "potential booking" that blocks nothing.

    Args:
        item_id: Rental item ID
        start_date: First rental day
        end_date: Last rental day (inclusive)
        customer_name: Customer display name
        customer_contact: Contact number
        customer_email: Email
        initial_status: 'pending', 'confirmed' or 'completed'
        receipt_ref: Opaque handle of an already received payment receipt
        contract_ref: Opaque handle of a signed contract
        owner_id: Linked customer account, if any
        notes: Free text
        changed_by: Username of the actor

    Returns:
        New booking dict with derived fields

    Raises:
        ValidationError, InvalidRange, NotFound, BookingConflict,
        NoPricingConfigured, NoTierForDuration
    """
    if initial_status not in STAFF_INITIAL_STATUSES:
        raise ValidationError(
            f"initial_status must be one of: {', '.join(STAFF_INITIAL_STATUSES)}"
        )

    start = _normalize_date(start_date, 'start_date')
    end = _normalize_date(end_date, 'end_date')

    fields = _validate_customer_fields(customer_name or '', customer_contact, customer_email)
    if not fields.get('customer_name'):
        raise ValidationError('customer_name is required')

    quote = resolve_price(item_id, start, end)
    committed = initial_status in COMMITTED_STATUSES

    fields.update({
        'item_id': item_id,
        'owner_id': owner_id,
        'start_date': start,
        'end_date': end,
        'rental_status': initial_status,
        'shipping_status': None,
        'booking_origin': ORIGIN_STAFF,
        'price_per_day': quote.price_per_day,
        'total_price': quote.total_price,
        'tier_description': quote.tier_description,
        'contract_ref': contract_ref,
        'notes': sanitize_input(notes) if notes else None,
    })

    try:
        with write_transaction() as cursor:
            if committed:
                ensure_no_conflict(cursor, item_id, start, end)

            booking_id = insert_booking(cursor, fields)
            record_status_change(
                cursor, booking_id, 'rental', None, initial_status,
                'create_staff_booking', changed_by=changed_by
            )

            if committed:
                insert_payment(
                    cursor, booking_id, quote.total_price,
                    payment_status=PAYMENT_SUBMITTED if receipt_ref else PAYMENT_PENDING,
                    receipt_ref=receipt_ref
                )
    except sqlite3.IntegrityError as e:
        if not is_overlap_error(e):
            raise
        raise conflict_from_overlap(item_id, start, end) from e

    logger.info(
        f"[Lifecycle] Staff booking {booking_id} ({initial_status}) for item {item_id} "
        f"{start}..{end} by {changed_by or 'system'}"
    )

    _notify('booking.created', booking_id, rental_status=initial_status, item_id=item_id)
    return get_booking(booking_id)


# =============================================================================
# RENTAL AXIS
# =============================================================================

def approve_booking(booking_id: int, changed_by: str = None) -> dict:
    """
    Approve a pending request: confirmed, with a pending primary payment.

    Raises:
        NotFound, IllegalTransition, BookingConflict
    """
    def create_primary_payment(cursor, booking):
        if not get_primary_payment(booking_id, cursor=cursor):
            insert_payment(cursor, booking_id, booking['total_price'], payment_status=PAYMENT_PENDING)

    return _apply_transition(booking_id, 'approve', changed_by, after=create_primary_payment)


def reject_booking(booking_id: int, reason: str, changed_by: str = None) -> dict:
    """
    Reject a pending request.

    The record is kept for REJECTION_RETENTION_DAYS so the customer can see
    why, then removed by purge_expired_rejections().

    Raises:
        ValidationError: If no reason is given
        NotFound, IllegalTransition
    """
    reason = sanitize_input(reason) if reason else ''
    if not reason:
        raise ValidationError('A rejection reason is required')

    retention_days = current_app.config.get('REJECTION_RETENTION_DAYS', 3)
    expires_at = utc_timestamp(get_now() + timedelta(days=retention_days))

    return _apply_transition(
        booking_id, 'reject', changed_by,
        fields={'rejection_reason': reason, 'rejection_expires_at': expires_at},
        notes=reason
    )


def activate_booking(booking_id: int, changed_by: str = None) -> dict:
    """Start the rental once the item is delivered."""
    return _apply_transition(booking_id, 'activate', changed_by)


def cancel_booking(booking_id: int, reason: str = None, changed_by: str = None) -> dict:
    """
    Customer cancellation: pending, or confirmed before the item ships.

    Raises:
        NotFound, IllegalTransition
    """
    reason = sanitize_input(reason) if reason else None
    return _apply_transition(
        booking_id, 'cancel', changed_by,
        fields={'cancellation_reason': reason} if reason else None,
        notes=reason
    )


def admin_cancel_booking(booking_id: int, reason: str = None, changed_by: str = None) -> dict:
    """
    Staff cancellation of any booking that is not closed yet.

    Raises:
        NotFound, IllegalTransition
    """
    reason = sanitize_input(reason) if reason else None
    return _apply_transition(
        booking_id, 'admin_cancel', changed_by,
        fields={'cancellation_reason': reason} if reason else None,
        notes=reason
    )


# =============================================================================
# SHIPPING AXIS
# =============================================================================

def mark_ready_to_ship(booking_id: int, changed_by: str = None) -> dict:
    """Staff packed the item. Repeating it is allowed."""
    return _apply_transition(booking_id, 'mark_ready_to_ship', changed_by)


def mark_in_transit_to_customer(booking_id: int, changed_by: str = None) -> dict:
    """Staff handed the item to the courier."""
    return _apply_transition(booking_id, 'mark_in_transit_to_customer', changed_by)


def confirm_delivered(booking_id: int, changed_by: str = None) -> dict:
    """Customer received the item."""
    return _apply_transition(booking_id, 'confirm_delivered', changed_by)


def schedule_return(booking_id: int, changed_by: str = None) -> dict:
    """Customer booked the return shipment."""
    return _apply_transition(booking_id, 'schedule_return', changed_by)


def confirm_shipped_back(booking_id: int, changed_by: str = None) -> dict:
    """Customer handed the item to the courier."""
    return _apply_transition(booking_id, 'confirm_shipped_back', changed_by)


def confirm_returned(booking_id: int, changed_by: str = None) -> dict:
    """Staff received the item back; the rental completes."""
    return _apply_transition(booking_id, 'confirm_returned', changed_by)


# =============================================================================
# EDITS
# =============================================================================

def update_booking_details(
    booking_id: int,
    item_id: int = None,
    start_date=None,
    end_date=None,
    customer_name: str = None,
    customer_contact: str = None,
    customer_email: str = None,
    notes: str = None,
    changed_by: str = None
) -> dict:
    """
    Edit a booking before dispatch.

    A date or item change re-resolves the price and, for a committed
    booking, re-checks conflicts excluding the booking itself. A still
    pending primary payment follows the new total.

    Raises:
        NotFound, IllegalTransition, ValidationError, InvalidRange,
        BookingConflict, NoPricingConfigured, NoTierForDuration
    """
    fields = _validate_customer_fields(customer_name, customer_contact, customer_email)
    if notes is not None:
        fields['notes'] = sanitize_input(notes) or None

    new_start = _normalize_date(start_date, 'start_date') if start_date is not None else None
    new_end = _normalize_date(end_date, 'end_date') if end_date is not None else None

    booking = None
    target = None
    try:
        with write_transaction() as cursor:
            booking = _load_booking(cursor, booking_id)
            check_transition(booking, 'update_details')

            target = {
                'item_id': item_id or booking['item_id'],
                'start_date': new_start or booking['start_date'],
                'end_date': new_end or booking['end_date'],
            }
            moved = any(target[k] != booking[k] for k in target)

            if moved:
                quote = resolve_price(target['item_id'], target['start_date'], target['end_date'])
                if requires_conflict_check(booking, 'update_details'):
                    ensure_no_conflict(
                        cursor, target['item_id'], target['start_date'], target['end_date'],
                        exclude_booking_id=booking_id
                    )
                fields.update(target)
                fields.update({
                    'price_per_day': quote.price_per_day,
                    'total_price': quote.total_price,
                    'tier_description': quote.tier_description,
                })

                primary = get_primary_payment(booking_id, cursor=cursor)
                if primary and primary['payment_status'] == PAYMENT_PENDING:
                    update_payment_fields(cursor, primary['id'], amount=quote.total_price)

                record_status_change(
                    cursor, booking_id, 'dates',
                    f"{booking['item_id']}:{booking['start_date']}..{booking['end_date']}",
                    f"{target['item_id']}:{target['start_date']}..{target['end_date']}",
                    'update_details', changed_by=changed_by
                )

            update_booking_fields(cursor, booking_id, fields)

    except sqlite3.IntegrityError as e:
        if target is None or not is_overlap_error(e):
            raise
        raise conflict_from_overlap(
            target['item_id'], target['start_date'], target['end_date'], booking_id
        ) from e

    logger.info(f"[Lifecycle] Booking {booking_id} details updated by {changed_by or 'system'}")
    _notify('booking.updated', booking_id, changed=sorted(fields))
    return get_booking(booking_id)


def attach_contract(booking_id: int, contract_ref: str, changed_by: str = None) -> dict:
    """
    Store the handle of a signed rental contract.

    Raises:
        ValidationError: If the handle is empty
        NotFound: If the booking does not exist
        IllegalTransition: If the booking is closed
    """
    if not contract_ref:
        raise ValidationError('contract_ref is required')

    with write_transaction() as cursor:
        booking = _load_booking(cursor, booking_id)
        if is_terminal(booking) or booking['rental_status'] == REJECTED:
            raise IllegalTransition(state_of(booking), 'attach_contract', 'booking is closed')
        update_booking_fields(cursor, booking_id, {'contract_ref': contract_ref})

    logger.info(f"[Lifecycle] Contract attached to booking {booking_id}")
    _notify('booking.contract_attached', booking_id)
    return get_booking(booking_id)


def purge_expired_rejections(now=None) -> List[Dict[str, Any]]:
    """
    Delete rejected bookings whose retention window has passed.

    Args:
        now: Reference moment (defaults to the current time)

    Returns:
        Removed records as {'id', 'contract_ref', 'receipt_refs'} so the
        caller can delete the referenced documents
    """
    cutoff = utc_timestamp(now)
    expired = get_expired_rejections(cutoff)
    if not expired:
        return []

    removed = []
    with write_transaction() as cursor:
        for booking in expired:
            receipt_refs = [
                p['receipt_ref'] for p in get_payments_for_booking(booking['id']) if p['receipt_ref']
            ]
            delete_booking(cursor, booking['id'])
            removed.append({
                'id': booking['id'],
                'contract_ref': booking.get('contract_ref'),
                'receipt_refs': receipt_refs,
            })

    logger.info(f"[Lifecycle] Purged {len(removed)} expired rejected booking(s)")
    return removed


# =============================================================================
# READS
# =============================================================================

def get_booking(booking_id: int) -> dict:
    """
    Get a booking with derived fields, payments and extensions.

    Raises:
        NotFound: If the booking does not exist
    """
    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFound('booking', booking_id)

    booking = with_derived_fields(booking)
    booking['payments'] = get_payments_for_booking(booking_id)
    booking['extensions'] = get_extensions_for_booking(booking_id)
    return booking


def list_bookings_by_status(statuses=None, item_id: int = None, owner_id: int = None,
                            month: str = None, payment_pending: bool = False) -> List[Dict[str, Any]]:
    """
    List bookings filtered by rental status.

    Args:
        statuses: A status token or list of tokens (all if None)
        item_id: Item filter
        owner_id: Owner filter
        month: 'YYYY-MM' filter
        payment_pending: Only confirmed bookings with a submitted primary payment

    Raises:
        ValidationError: On an unknown status token
    """
    if isinstance(statuses, str):
        statuses = [statuses]
    for status in statuses or []:
        if status not in RENTAL_STATUSES:
            raise ValidationError(f'Unknown rental status: {status}')
    return list_bookings(
        statuses=statuses, item_id=item_id, owner_id=owner_id,
        month=month, payment_pending=payment_pending
    )


def list_needing_action() -> List[Dict[str, Any]]:
    """Bookings awaiting a staff action, oldest start date first."""
    return get_bookings_needing_action()


def get_booking_history(booking_id: int) -> List[Dict[str, Any]]:
    """
    Get the status history of a booking.

    Raises:
        NotFound: If the booking does not exist
    """
    if not get_booking_by_id(booking_id):
        raise NotFound('booking', booking_id)
    return get_status_history(booking_id)


# Operations reachable through POST /bookings/<id>/<operation>
BOOKING_OPERATIONS = {
    'approve': approve_booking,
    'reject': reject_booking,
    'mark-ready-to-ship': mark_ready_to_ship,
    'mark-in-transit': mark_in_transit_to_customer,
    'confirm-delivered': confirm_delivered,
    'activate': activate_booking,
    'schedule-return': schedule_return,
    'confirm-shipped-back': confirm_shipped_back,
    'confirm-returned': confirm_returned,
    'cancel': cancel_booking,
    'admin-cancel': admin_cancel_booking,
}

# Operations a customer may run on their own booking
CUSTOMER_OPERATIONS = frozenset({
    'cancel', 'confirm-delivered', 'schedule-return', 'confirm-shipped-back'
})

# Operations that take a free-text reason
REASON_OPERATIONS = frozenset({'reject', 'cancel', 'admin-cancel'})
