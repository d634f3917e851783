"""
Pytest configuration and fixtures.
Ensures tests use an isolated test database, not the production database.
"""

import os
import pytest
import tempfile

# Set test database path BEFORE importing app
# This ensures all tests use an isolated database
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f'rental_engine_test_{os.getpid()}.db')
os.environ['DATABASE_PATH'] = TEST_DB_PATH

STAFF_USER_ID = 1
CUSTOMER_USER_ID = 2


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """Set up test environment before any tests run."""
    os.environ['DATABASE_PATH'] = TEST_DB_PATH
    os.environ['FLASK_ENV'] = 'test'

    yield

    # Cleanup: remove test database files after all tests
    for suffix in ('', '-wal', '-shm'):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            try:
                os.remove(path)
            except PermissionError:
                pass  # Windows may have file locked


@pytest.fixture
def app():
    """
    Create test application with a freshly seeded database.

    Seed data: staff user 1 ('admin'), customer user 2 ('demo_customer'),
    item 1 Fujifilm X-T30 II (1-3 days 100, 4-7 days 80, 8+ days 60) and
    item 2 Canon EOS R50 (1-2 days 120, 3-6 days 95, 7+ days 75).
    """
    from app import create_app
    from database import init_db
    from utils.notifications import clear_subscribers

    os.environ['DATABASE_PATH'] = TEST_DB_PATH

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['DATABASE_PATH'] = TEST_DB_PATH

    with app.app_context():
        init_db()

    yield app

    clear_subscribers()


@pytest.fixture
def client(app):
    """Create test client (no identity header)."""
    return app.test_client()


@pytest.fixture
def staff_client(app):
    """Test client authenticated as the seeded staff user."""
    test_client = app.test_client()
    test_client.environ_base['HTTP_X_USER_ID'] = str(STAFF_USER_ID)
    return test_client


@pytest.fixture
def customer_client(app):
    """Test client authenticated as the seeded customer."""
    test_client = app.test_client()
    test_client.environ_base['HTTP_X_USER_ID'] = str(CUSTOMER_USER_ID)
    return test_client


@pytest.fixture
def events():
    """Capture published notifications as (event, booking_id, payload)."""
    from utils.notifications import subscribe, unsubscribe

    captured = []

    def handler(event, booking_id, payload):
        captured.append((event, booking_id, payload))

    subscribe(handler)
    yield captured
    unsubscribe(handler)
