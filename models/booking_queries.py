"""
Booking query operations.
Read-side accessors for listing, filtering and overlap lookups.
"""

from database import get_db
from .booking_crud import BOOKING_SELECT
from .booking_state import (
    COMMITTED_STATUSES, PENDING, CONFIRMED, REJECTED, READY_TO_SHIP, IN_TRANSIT_TO_OWNER,
    PAYMENT_SUBMITTED, with_derived_fields
)


# =============================================================================
# OVERLAP LOOKUPS
# =============================================================================

def get_committed_bookings_in_range(
    item_id: int,
    start_date: str,
    end_date: str,
    exclude_booking_id: int = None,
    cursor=None
) -> list:
    """
    Get committed bookings of an item whose closed range meets [start, end].

    Args:
        item_id: Item ID
        start_date: Range start (YYYY-MM-DD)
        end_date: Range end (YYYY-MM-DD)
        exclude_booking_id: Booking ID to skip (for re-checks during edits)
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        list: Booking dicts ordered by start_date
    """
    cur = cursor or get_db().cursor()

    placeholders = ','.join('?' * len(COMMITTED_STATUSES))
    query = BOOKING_SELECT + f'''
        WHERE b.item_id = ?
          AND b.rental_status IN ({placeholders})
          AND b.start_date <= ?
          AND b.end_date >= ?
    '''
    params = [item_id] + list(COMMITTED_STATUSES) + [end_date, start_date]

    if exclude_booking_id:
        query += ' AND b.id != ?'
        params.append(exclude_booking_id)

    query += ' ORDER BY b.start_date, b.id'

    cur.execute(query, params)
    return [dict(row) for row in cur.fetchall()]


def get_committed_bookings_between(range_start: str, range_end: str, item_id: int = None) -> list:
    """
    Get committed bookings intersecting a window (calendar view).

    Args:
        range_start: Window start (YYYY-MM-DD)
        range_end: Window end (YYYY-MM-DD)
        item_id: Optional item filter

    Returns:
        list: Booking dicts ordered by start_date
    """
    db = get_db()
    cursor = db.cursor()

    placeholders = ','.join('?' * len(COMMITTED_STATUSES))
    query = BOOKING_SELECT + f'''
        WHERE b.rental_status IN ({placeholders})
          AND b.start_date <= ?
          AND b.end_date >= ?
    '''
    params = list(COMMITTED_STATUSES) + [range_end, range_start]

    if item_id:
        query += ' AND b.item_id = ?'
        params.append(item_id)

    query += ' ORDER BY b.start_date, b.item_id'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# LIST QUERIES
# =============================================================================

def list_bookings(
    statuses: list = None,
    item_id: int = None,
    owner_id: int = None,
    month: str = None,
    payment_pending: bool = False
) -> list:
    """
    List bookings with optional filters, newest first.

    Args:
        statuses: Rental statuses to include (all if None)
        item_id: Item filter
        owner_id: Owner filter (customer's own bookings)
        month: 'YYYY-MM'; keeps bookings whose range meets that month
        payment_pending: Only confirmed bookings whose primary payment is submitted

    Returns:
        list: Booking dicts with derived fields
    """
    db = get_db()
    cursor = db.cursor()

    query = BOOKING_SELECT + ' WHERE 1=1'
    params = []

    if statuses:
        placeholders = ','.join('?' * len(statuses))
        query += f' AND b.rental_status IN ({placeholders})'
        params.extend(statuses)

    if item_id:
        query += ' AND b.item_id = ?'
        params.append(item_id)

    if owner_id:
        query += ' AND b.owner_id = ?'
        params.append(owner_id)

    if month:
        query += " AND b.start_date <= date(? || '-01', '+1 month', '-1 day') AND b.end_date >= ? || '-01'"
        params.extend([month, month])

    if payment_pending:
        query += '''
            AND b.rental_status = ?
            AND EXISTS (
                SELECT 1 FROM payments p
                WHERE p.booking_id = b.id
                  AND p.extension_id IS NULL
                  AND p.payment_status = ?
            )
        '''
        params.extend([CONFIRMED, PAYMENT_SUBMITTED])

    query += ' ORDER BY b.created_at DESC, b.id DESC'

    cursor.execute(query, params)
    return [with_derived_fields(dict(row)) for row in cursor.fetchall()]


def get_bookings_needing_action() -> list:
    """
    Get bookings awaiting staff action.

    Pre-filters in SQL with the same rule as booking_state.needs_action and
    re-applies the predicate on the rows.

    Returns:
        list: Booking dicts with derived fields, oldest first
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute(BOOKING_SELECT + '''
        WHERE b.rental_status = ?
           OR (b.rental_status = ? AND (b.shipping_status IS NULL OR b.shipping_status = ?))
           OR b.shipping_status = ?
        ORDER BY b.start_date, b.id
    ''', (PENDING, CONFIRMED, READY_TO_SHIP, IN_TRANSIT_TO_OWNER))

    bookings = [with_derived_fields(dict(row)) for row in cursor.fetchall()]
    return [b for b in bookings if b['needs_action']]


def get_pending_bookings() -> list:
    """
    Get all pending bookings (requests and staff potential bookings).

    Returns:
        list: Booking dicts, newest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(BOOKING_SELECT + '''
        WHERE b.rental_status = ?
        ORDER BY b.created_at DESC, b.id DESC
    ''', (PENDING,))
    return [dict(row) for row in cursor.fetchall()]


def get_expired_rejections(now_timestamp: str) -> list:
    """
    Get rejected bookings whose retention window has passed.

    Args:
        now_timestamp: Naive UTC 'YYYY-MM-DD HH:MM:SS'

    Returns:
        list: Booking dicts
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(BOOKING_SELECT + '''
        WHERE b.rental_status = ?
          AND b.rejection_expires_at IS NOT NULL
          AND b.rejection_expires_at <= ?
        ORDER BY b.rejection_expires_at
    ''', (REJECTED, now_timestamp))
    return [dict(row) for row in cursor.fetchall()]


def get_booking_stats() -> dict:
    """
    Count bookings per rental status plus the needs-action total.

    Returns:
        dict: {'by_status': {status: count}, 'needs_action': int, 'total': int}
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT rental_status, COUNT(*) AS count
        FROM bookings
        GROUP BY rental_status
    ''')
    by_status = {row['rental_status']: row['count'] for row in cursor.fetchall()}

    return {
        'by_status': by_status,
        'needs_action': len(get_bookings_needing_action()),
        'total': sum(by_status.values())
    }
