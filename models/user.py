"""
User model and data access functions.
Handles the identity records forwarded by the gateway and Flask-Login integration.
"""

from database import get_db

USER_ROLES = ('customer', 'staff')


class User:
    """
    User class for Flask-Login integration.
    Wraps database row dictionary with required Flask-Login properties.
    """

    def __init__(self, user_dict):
        """
        Initialize User from database row.

        Args:
            user_dict: Dictionary with user data from database
        """
        self.id = user_dict['id']
        self.username = user_dict['username']
        self.email = user_dict['email']
        self.full_name = user_dict.get('full_name')
        self.contact_number = user_dict.get('contact_number')
        self.role = user_dict['role']
        self.active = user_dict['active']

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    @property
    def is_staff(self):
        """True for rental desk staff."""
        return self.role == 'staff'

    def get_id(self):
        """Required by Flask-Login. Returns user ID as unicode string."""
        return str(self.id)


def get_user_by_id(user_id: int) -> dict:
    """
    Get active user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ? AND active = 1', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_user(username: str, email: str, full_name: str = None,
                contact_number: str = None, role: str = 'customer') -> int:
    """
    Create new user.

    Args:
        username: Unique username
        email: Unique email address
        full_name: Display name
        contact_number: Phone number
        role: 'customer' or 'staff'

    Returns:
        New user ID

    Raises:
        ValueError: If the role is unknown or username/email already exist
    """
    if role not in USER_ROLES:
        raise ValueError(f'Unknown role: {role}')

    db = get_db()
    cursor = db.cursor()

    cursor.execute('SELECT id FROM users WHERE username = ? OR email = ?', (username, email))
    if cursor.fetchone():
        raise ValueError('Username or email already exists')

    cursor.execute('''
        INSERT INTO users (username, email, full_name, contact_number, role)
        VALUES (?, ?, ?, ?, ?)
    ''', (username, email, full_name, contact_number, role))
    db.commit()
    return cursor.lastrowid
