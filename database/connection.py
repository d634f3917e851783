"""
Database connection management.
Handles per-request connections, initialization, teardown and write transactions.
"""

import sqlite3
import os
from contextlib import contextmanager
from flask import g, current_app


def get_db():
    """
    Get per-request database connection with row factory.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/rental_engine.db')
        if db_path != ':memory:':
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        g.db = sqlite3.connect(
            db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
            timeout=10
        )
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode for better concurrency
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


@contextmanager
def write_transaction():
    """
    Run a unit of work under SQLite's reserved write lock.

    BEGIN IMMEDIATE takes the write lock up front, so a read performed inside
    the block (e.g. a conflict check) cannot be invalidated by another writer
    before the block commits.

    Usage:
        with write_transaction() as cursor:
            cursor.execute(...)

    Yields:
        sqlite3.Cursor bound to the open transaction
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('BEGIN IMMEDIATE')
    try:
        yield cursor
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(seed: bool = True):
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!

    Args:
        seed: Insert the demo users and inventory
    """
    from database.schema import drop_tables, create_tables, create_indexes, create_triggers
    from database.seed import seed_database

    db = get_db()

    # Drop existing tables (in reverse order of dependencies)
    drop_tables(db)

    # Create all tables
    create_tables(db)

    # Create indexes
    create_indexes(db)

    # Create overlap guards
    create_triggers(db)

    # Insert seed data
    if seed:
        seed_database(db)

    db.commit()
    current_app.logger.info("Database initialized")
