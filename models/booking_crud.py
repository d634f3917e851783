"""
Booking CRUD operations.
Row-level create, read, update, delete used by the lifecycle services.
Writes take the cursor of the caller's open transaction; they never commit.
"""

from database import get_db

BOOKING_SELECT = '''
    SELECT b.*,
           i.name AS item_name,
           COALESCE(u.full_name, b.customer_name) AS display_name,
           COALESCE(u.email, b.customer_email) AS display_email,
           COALESCE(u.contact_number, b.customer_contact) AS display_contact
    FROM bookings b
    JOIN rental_items i ON b.item_id = i.id
    LEFT JOIN users u ON b.owner_id = u.id
'''

# Columns the services may write
WRITABLE_FIELDS = (
    'item_id', 'owner_id', 'customer_name', 'customer_contact', 'customer_email',
    'start_date', 'end_date', 'rental_status', 'shipping_status', 'booking_origin',
    'price_per_day', 'total_price', 'tier_description',
    'rejection_reason', 'rejection_expires_at', 'cancellation_reason',
    'contract_ref', 'notes'
)


# =============================================================================
# CREATE
# =============================================================================

def insert_booking(cursor, fields: dict) -> int:
    """
    Insert a booking row.

    Args:
        cursor: Cursor of the open write transaction
        fields: Column values (keys from WRITABLE_FIELDS)

    Returns:
        New booking ID

    Raises:
        ValueError: If a field is not writable
    """
    _check_writable(fields)
    columns = list(fields.keys())
    placeholders = ', '.join('?' * len(columns))

    cursor.execute(f'''
        INSERT INTO bookings ({', '.join(columns)}, created_at, updated_at)
        VALUES ({placeholders}, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    ''', [fields[c] for c in columns])
    return cursor.lastrowid


# =============================================================================
# READ
# =============================================================================

def get_booking_by_id(booking_id: int, cursor=None) -> dict:
    """
    Get booking by ID with item and customer display fields.

    Args:
        booking_id: Booking ID
        cursor: Optional cursor (to read inside an open transaction)

    Returns:
        dict: Booking or None
    """
    cur = cursor or get_db().cursor()
    cur.execute(BOOKING_SELECT + ' WHERE b.id = ?', (booking_id,))
    row = cur.fetchone()
    return dict(row) if row else None


# =============================================================================
# UPDATE
# =============================================================================

def update_booking_fields(cursor, booking_id: int, fields: dict) -> None:
    """
    Update columns on a booking row.

    Args:
        cursor: Cursor of the open write transaction
        booking_id: Booking ID
        fields: Column values (keys from WRITABLE_FIELDS)

    Raises:
        ValueError: If a field is not writable
    """
    if not fields:
        return
    _check_writable(fields)

    assignments = ', '.join(f'{column} = ?' for column in fields)
    params = list(fields.values()) + [booking_id]

    cursor.execute(f'''
        UPDATE bookings
        SET {assignments},
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', params)


# =============================================================================
# DELETE
# =============================================================================

def delete_booking(cursor, booking_id: int) -> None:
    """
    Delete a booking with its payments, extensions and history.

    Args:
        cursor: Cursor of the open write transaction
        booking_id: Booking ID
    """
    cursor.execute('DELETE FROM payments WHERE booking_id = ?', (booking_id,))
    cursor.execute('DELETE FROM extensions WHERE booking_id = ?', (booking_id,))
    cursor.execute('DELETE FROM booking_status_history WHERE booking_id = ?', (booking_id,))
    cursor.execute('DELETE FROM bookings WHERE id = ?', (booking_id,))


def _check_writable(fields: dict) -> None:
    unknown = set(fields) - set(WRITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Not writable booking field(s): {', '.join(sorted(unknown))}")
