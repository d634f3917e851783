"""
Database seed data.
Initial data population for fresh database installations.
"""


def seed_database(db):
    """Insert initial seed data."""

    # 1. Users
    users_data = [
        ('admin', 'admin@camerarentals.local', 'Rental Desk', None, 'staff'),
        ('demo_customer', 'customer@camerarentals.local', 'Demo Customer', '09170000000', 'customer'),
    ]

    for username, email, full_name, contact_number, role in users_data:
        db.execute('''
            INSERT INTO users (username, email, full_name, contact_number, role)
            VALUES (?, ?, ?, ?, ?)
        ''', (username, email, full_name, contact_number, role))

    # 2. Inventory with duration tiers
    items_data = [
        ('Fujifilm X-T30 II', 'Mirrorless body with 18-55mm kit lens', [
            (1, 3, 100.0, 'Short rental'),
            (4, 7, 80.0, 'Weekly rate'),
            (8, None, 60.0, 'Long rental'),
        ]),
        ('Canon EOS R50', 'Mirrorless body with RF-S 18-45mm lens', [
            (1, 2, 120.0, 'Day rate'),
            (3, 6, 95.0, 'Multi-day rate'),
            (7, None, 75.0, 'Extended rate'),
        ]),
    ]

    for name, description, tiers in items_data:
        cursor = db.execute('''
            INSERT INTO rental_items (name, description)
            VALUES (?, ?)
        ''', (name, description))
        item_id = cursor.lastrowid

        for min_days, max_days, price_per_day, tier_description in tiers:
            db.execute('''
                INSERT INTO pricing_tiers (item_id, min_days, max_days, price_per_day, description)
                VALUES (?, ?, ?, ?, ?)
            ''', (item_id, min_days, max_days, price_per_day, tier_description))
