"""
Rental extension data access functions.
Writes take the cursor of the caller's open transaction; they never commit.
"""

from database import get_db
from .booking_state import EXTENSION_PENDING

EXTENSION_SELECT = '''
    SELECT e.*,
           b.item_id,
           b.owner_id,
           b.start_date,
           b.end_date,
           b.rental_status,
           b.shipping_status,
           i.name AS item_name,
           COALESCE(u.full_name, b.customer_name) AS display_name
    FROM extensions e
    JOIN bookings b ON e.booking_id = b.id
    JOIN rental_items i ON b.item_id = i.id
    LEFT JOIN users u ON b.owner_id = u.id
'''


def insert_extension(cursor, booking_id: int, original_end_date: str, requested_end_date: str,
                     extension_days: int, additional_price: float, requested_by: int = None) -> int:
    """
    Insert a pending extension request.

    Args:
        cursor: Cursor of the open write transaction
        booking_id: Booking ID
        original_end_date: Booking end date when requested (YYYY-MM-DD)
        requested_end_date: New end date (YYYY-MM-DD)
        extension_days: Days added
        additional_price: Amount due for the added days
        requested_by: User ID of the requester

    Returns:
        New extension ID
    """
    cursor.execute('''
        INSERT INTO extensions
        (booking_id, original_end_date, requested_end_date, extension_days,
         additional_price, extension_status, requested_by, requested_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
    ''', (booking_id, original_end_date, requested_end_date, extension_days,
          additional_price, EXTENSION_PENDING, requested_by))
    return cursor.lastrowid


def set_extension_decision(cursor, extension_id: int, status: str, notes: str = None) -> None:
    """
    Record approval or rejection of an extension.

    Args:
        cursor: Cursor of the open write transaction
        extension_id: Extension ID
        status: 'approved' or 'rejected'
        notes: Optional staff notes
    """
    cursor.execute('''
        UPDATE extensions
        SET extension_status = ?,
            admin_notes = COALESCE(?, admin_notes),
            decided_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (status, notes, extension_id))


def mark_extension_applied(cursor, extension_id: int) -> None:
    """Stamp an extension as applied to its booking."""
    cursor.execute('''
        UPDATE extensions
        SET applied_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (extension_id,))


def get_extension_by_id(extension_id: int, cursor=None) -> dict:
    """
    Get extension by ID with booking context.

    Args:
        extension_id: Extension ID
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        Extension dict or None
    """
    cur = cursor or get_db().cursor()
    cur.execute(EXTENSION_SELECT + ' WHERE e.id = ?', (extension_id,))
    row = cur.fetchone()
    return dict(row) if row else None


def get_extensions_for_booking(booking_id: int) -> list:
    """
    Get every extension of a booking, newest first.

    Args:
        booking_id: Booking ID

    Returns:
        list: Extension dicts
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(EXTENSION_SELECT + '''
        WHERE e.booking_id = ?
        ORDER BY e.requested_at DESC, e.id DESC
    ''', (booking_id,))
    return [dict(row) for row in cursor.fetchall()]


def get_extensions(status: str = None, requested_by: int = None) -> list:
    """
    Get extensions with optional filters, newest first.

    Args:
        status: Extension status filter
        requested_by: Requester filter (customer's own history)

    Returns:
        list: Extension dicts
    """
    db = get_db()
    cursor = db.cursor()

    query = EXTENSION_SELECT + ' WHERE 1=1'
    params = []

    if status:
        query += ' AND e.extension_status = ?'
        params.append(status)

    if requested_by:
        query += ' AND e.requested_by = ?'
        params.append(requested_by)

    query += ' ORDER BY e.requested_at DESC, e.id DESC'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def has_pending_extension(booking_id: int, cursor=None) -> bool:
    """True if the booking already has an undecided extension request."""
    cur = cursor or get_db().cursor()
    cur.execute('''
        SELECT 1 FROM extensions
        WHERE booking_id = ? AND extension_status = ?
        LIMIT 1
    ''', (booking_id, EXTENSION_PENDING))
    return cur.fetchone() is not None
