"""
Payment data access functions.
One primary payment per booking (extension_id NULL) plus one per extension.
Writes take the cursor of the caller's open transaction; they never commit.
"""

from database import get_db
from .booking_state import PAYMENT_PENDING, PAYMENT_SUBMITTED, CONFIRMED

PAYMENT_SELECT = '''
    SELECT p.*,
           b.item_id,
           b.owner_id,
           b.rental_status,
           COALESCE(u.full_name, b.customer_name) AS display_name
    FROM payments p
    JOIN bookings b ON p.booking_id = b.id
    LEFT JOIN users u ON b.owner_id = u.id
'''


def insert_payment(cursor, booking_id: int, amount: float, extension_id: int = None,
                   payment_status: str = PAYMENT_PENDING, receipt_ref: str = None) -> int:
    """
    Insert a payment row.

    Args:
        cursor: Cursor of the open write transaction
        booking_id: Booking ID
        amount: Amount due
        extension_id: Extension ID (None for the primary payment)
        payment_status: Initial status
        receipt_ref: Opaque storage handle of the receipt

    Returns:
        New payment ID
    """
    cursor.execute('''
        INSERT INTO payments
        (booking_id, extension_id, amount, payment_status, receipt_ref, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    ''', (booking_id, extension_id, amount, payment_status, receipt_ref))
    return cursor.lastrowid


def update_payment_fields(cursor, payment_id: int, **fields) -> None:
    """
    Update payment columns (payment_status, receipt_ref, rejection_reason, amount).

    Args:
        cursor: Cursor of the open write transaction
        payment_id: Payment ID
        **fields: Column values
    """
    allowed = {'payment_status', 'receipt_ref', 'rejection_reason', 'amount'}
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Not writable payment field(s): {', '.join(sorted(unknown))}")
    if not fields:
        return

    assignments = ', '.join(f'{column} = ?' for column in fields)
    cursor.execute(f'''
        UPDATE payments
        SET {assignments},
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', list(fields.values()) + [payment_id])


def get_payment_by_id(payment_id: int, cursor=None) -> dict:
    """
    Get payment by ID.

    Args:
        payment_id: Payment ID
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        Payment dict or None
    """
    cur = cursor or get_db().cursor()
    cur.execute(PAYMENT_SELECT + ' WHERE p.id = ?', (payment_id,))
    row = cur.fetchone()
    return dict(row) if row else None


def get_primary_payment(booking_id: int, cursor=None) -> dict:
    """
    Get a booking's primary (initial rental) payment.

    Args:
        booking_id: Booking ID
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        Payment dict or None
    """
    cur = cursor or get_db().cursor()
    cur.execute(PAYMENT_SELECT + ' WHERE p.booking_id = ? AND p.extension_id IS NULL', (booking_id,))
    row = cur.fetchone()
    return dict(row) if row else None


def get_extension_payment(extension_id: int, cursor=None) -> dict:
    """
    Get the payment linked to an extension.

    Args:
        extension_id: Extension ID
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        Payment dict or None
    """
    cur = cursor or get_db().cursor()
    cur.execute(PAYMENT_SELECT + ' WHERE p.extension_id = ?', (extension_id,))
    row = cur.fetchone()
    return dict(row) if row else None


def get_payments_for_booking(booking_id: int) -> list:
    """
    Get every payment of a booking, primary first.

    Args:
        booking_id: Booking ID

    Returns:
        list: Payment dicts
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(PAYMENT_SELECT + '''
        WHERE p.booking_id = ?
        ORDER BY p.extension_id IS NOT NULL, p.created_at, p.id
    ''', (booking_id,))
    return [dict(row) for row in cursor.fetchall()]


def get_payments_awaiting_verification() -> list:
    """
    Get submitted payments of confirmed or active bookings.

    Returns:
        list: Payment dicts, newest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(PAYMENT_SELECT + '''
        WHERE p.payment_status = ?
          AND b.rental_status IN (?, 'active')
        ORDER BY p.updated_at DESC, p.id DESC
    ''', (PAYMENT_SUBMITTED, CONFIRMED))
    return [dict(row) for row in cursor.fetchall()]
