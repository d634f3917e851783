"""
Database schema definitions.
Table creation, indexes, overlap triggers and structure management.
"""

# Committed statuses, inlined into the trigger SQL below
COMMITTED_STATUSES_SQL = "('confirmed', 'active', 'completed')"


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'booking_status_history',
        'payments',
        'extensions',
        'bookings',
        'pricing_tiers',
        'rental_items',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Users (identities forwarded by the gateway)
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            contact_number TEXT,
            role TEXT NOT NULL DEFAULT 'customer'
                CHECK (role IN ('customer', 'staff')),
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Inventory
    db.execute('''
        CREATE TABLE rental_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE pricing_tiers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            item_id INTEGER NOT NULL REFERENCES rental_items(id) ON DELETE CASCADE,
            min_days INTEGER NOT NULL CHECK (min_days >= 1),
            max_days INTEGER CHECK (max_days IS NULL OR max_days >= min_days),
            price_per_day REAL NOT NULL CHECK (price_per_day >= 0),
            description TEXT,
            UNIQUE (item_id, min_days)
        )
    ''')

    # 3. Bookings
    db.execute('''
        CREATE TABLE bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            item_id INTEGER NOT NULL REFERENCES rental_items(id),
            owner_id INTEGER REFERENCES users(id),
            customer_name TEXT,
            customer_contact TEXT,
            customer_email TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            rental_status TEXT NOT NULL DEFAULT 'pending'
                CHECK (rental_status IN ('pending', 'confirmed', 'active',
                                         'completed', 'cancelled', 'rejected')),
            shipping_status TEXT
                CHECK (shipping_status IS NULL OR shipping_status IN (
                    'ready_to_ship', 'in_transit_to_user', 'delivered',
                    'return_scheduled', 'in_transit_to_owner', 'returned')),
            booking_origin TEXT NOT NULL DEFAULT 'customer_submitted'
                CHECK (booking_origin IN ('customer_submitted', 'staff_entered')),
            price_per_day REAL NOT NULL DEFAULT 0,
            total_price REAL NOT NULL DEFAULT 0,
            tier_description TEXT,
            rejection_reason TEXT,
            rejection_expires_at TEXT,
            cancellation_reason TEXT,
            contract_ref TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (end_date >= start_date)
        )
    ''')

    db.execute('''
        CREATE TABLE extensions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            original_end_date TEXT NOT NULL,
            requested_end_date TEXT NOT NULL,
            extension_days INTEGER NOT NULL,
            additional_price REAL NOT NULL DEFAULT 0,
            extension_status TEXT NOT NULL DEFAULT 'pending'
                CHECK (extension_status IN ('pending', 'approved', 'rejected')),
            requested_by INTEGER REFERENCES users(id),
            admin_notes TEXT,
            requested_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            decided_at TIMESTAMP,
            applied_at TIMESTAMP,
            CHECK (requested_end_date > original_end_date)
        )
    ''')

    db.execute('''
        CREATE TABLE payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            extension_id INTEGER REFERENCES extensions(id) ON DELETE CASCADE,
            amount REAL NOT NULL CHECK (amount >= 0),
            payment_status TEXT NOT NULL DEFAULT 'pending'
                CHECK (payment_status IN ('pending', 'submitted', 'rejected', 'verified')),
            receipt_ref TEXT,
            rejection_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 4. Audit trail of transitions
    db.execute('''
        CREATE TABLE booking_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id) ON DELETE CASCADE,
            axis TEXT NOT NULL,
            from_status TEXT,
            to_status TEXT,
            operation TEXT NOT NULL,
            changed_by TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create indexes for the hot query paths."""
    db.execute('CREATE INDEX IF NOT EXISTS idx_tiers_item ON pricing_tiers(item_id, min_days)')
    db.execute('''
        CREATE INDEX IF NOT EXISTS idx_bookings_item_dates
        ON bookings(item_id, rental_status, start_date, end_date)
    ''')
    db.execute('CREATE INDEX IF NOT EXISTS idx_bookings_status ON bookings(rental_status)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_bookings_owner ON bookings(owner_id)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_extensions_booking ON extensions(booking_id)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_payments_booking ON payments(booking_id)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_history_booking ON booking_status_history(booking_id)')

    # One primary payment per booking
    db.execute('''
        CREATE UNIQUE INDEX IF NOT EXISTS uq_payments_primary
        ON payments(booking_id) WHERE extension_id IS NULL
    ''')
    # One payment per extension
    db.execute('''
        CREATE UNIQUE INDEX IF NOT EXISTS uq_payments_extension
        ON payments(extension_id) WHERE extension_id IS NOT NULL
    ''')


def create_triggers(db):
    """
    Install the committed-range exclusivity guard.

    Any insert or update that leaves two committed bookings of the same item
    with intersecting closed date ranges is aborted with 'booking_overlap'.
    """
    db.execute(f'''
        CREATE TRIGGER IF NOT EXISTS trg_bookings_overlap_insert
        BEFORE INSERT ON bookings
        WHEN NEW.rental_status IN {COMMITTED_STATUSES_SQL}
        BEGIN
            SELECT RAISE(ABORT, 'booking_overlap')
            WHERE EXISTS (
                SELECT 1 FROM bookings b
                WHERE b.item_id = NEW.item_id
                  AND b.rental_status IN {COMMITTED_STATUSES_SQL}
                  AND b.start_date <= NEW.end_date
                  AND b.end_date >= NEW.start_date
            );
        END
    ''')

    db.execute(f'''
        CREATE TRIGGER IF NOT EXISTS trg_bookings_overlap_update
        BEFORE UPDATE OF rental_status, start_date, end_date, item_id ON bookings
        WHEN NEW.rental_status IN {COMMITTED_STATUSES_SQL}
         AND (OLD.rental_status NOT IN {COMMITTED_STATUSES_SQL}
              OR NEW.start_date != OLD.start_date
              OR NEW.end_date != OLD.end_date
              OR NEW.item_id != OLD.item_id)
        BEGIN
            SELECT RAISE(ABORT, 'booking_overlap')
            WHERE EXISTS (
                SELECT 1 FROM bookings b
                WHERE b.item_id = NEW.item_id
                  AND b.id != NEW.id
                  AND b.rental_status IN {COMMITTED_STATUSES_SQL}
                  AND b.start_date <= NEW.end_date
                  AND b.end_date >= NEW.start_date
            );
        END
    ''')
