"""
Rental item and pricing tier data access functions.
Handles the inventory catalog and each item's duration tier table.
"""

from database import get_db
from utils.errors import NotFound, ValidationError
from utils.validators import validate_pricing_tiers


# =============================================================================
# ITEMS
# =============================================================================

def get_all_items(active_only: bool = True) -> list:
    """
    Get rental items with their tier tables.

    Args:
        active_only: If True, only return active items

    Returns:
        List of item dicts, each with a 'pricing_tiers' list
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM rental_items'
    if active_only:
        query += ' WHERE active = 1'
    query += ' ORDER BY name'

    cursor.execute(query)
    items = [dict(row) for row in cursor.fetchall()]
    for item in items:
        item['pricing_tiers'] = get_pricing_tiers(item['id'])
    return items


def get_item_by_id(item_id: int) -> dict:
    """
    Get rental item by ID with its tiers.

    Args:
        item_id: Item ID

    Returns:
        Item dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM rental_items WHERE id = ?', (item_id,))
    row = cursor.fetchone()
    if not row:
        return None

    item = dict(row)
    item['pricing_tiers'] = get_pricing_tiers(item_id)
    return item


def create_item(name: str, description: str = None, tiers: list = None) -> int:
    """
    Create rental item, optionally with its tier table.

    Args:
        name: Display name
        description: Optional description
        tiers: Optional tier dicts (min_days, max_days, price_per_day, description)

    Returns:
        New item ID

    Raises:
        ValidationError: If the tier table is not contiguous
    """
    if tiers is not None:
        is_valid, error = validate_pricing_tiers(tiers)
        if not is_valid:
            raise ValidationError(error)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('''
            INSERT INTO rental_items (name, description)
            VALUES (?, ?)
        ''', (name, description))
        item_id = cursor.lastrowid

        if tiers:
            _insert_tiers(cursor, item_id, tiers)

        db.commit()
        return item_id

    except Exception:
        db.rollback()
        raise


# =============================================================================
# PRICING TIERS
# =============================================================================

def get_pricing_tiers(item_id: int) -> list:
    """
    Get an item's tier table sorted by min_days.

    Args:
        item_id: Item ID

    Returns:
        List of tier dicts (empty if none configured)
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT id, item_id, min_days, max_days, price_per_day, description
        FROM pricing_tiers
        WHERE item_id = ?
        ORDER BY min_days ASC
    ''', (item_id,))
    return [dict(row) for row in cursor.fetchall()]


def replace_pricing_tiers(item_id: int, tiers: list) -> list:
    """
    Replace an item's whole tier table.

    Existing bookings keep their cached price; only future price
    resolutions see the new table.

    Args:
        item_id: Item ID
        tiers: Tier dicts (min_days, max_days, price_per_day, description)

    Returns:
        The stored tier table

    Raises:
        NotFound: If the item does not exist
        ValidationError: If the tier table is not contiguous
    """
    if not get_item_by_id(item_id):
        raise NotFound('item', item_id)

    is_valid, error = validate_pricing_tiers(tiers)
    if not is_valid:
        raise ValidationError(error)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('DELETE FROM pricing_tiers WHERE item_id = ?', (item_id,))
        _insert_tiers(cursor, item_id, tiers)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_pricing_tiers(item_id)


def _insert_tiers(cursor, item_id: int, tiers: list) -> None:
    """Insert tier rows for an item inside the caller's transaction."""
    for tier in tiers:
        max_days = tier.get('max_days')
        cursor.execute('''
            INSERT INTO pricing_tiers (item_id, min_days, max_days, price_per_day, description)
            VALUES (?, ?, ?, ?, ?)
        ''', (
            item_id,
            int(tier['min_days']),
            int(max_days) if max_days is not None else None,
            float(tier['price_per_day']),
            tier.get('description')
        ))
