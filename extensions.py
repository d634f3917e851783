"""
Flask extensions initialization.
Extensions are initialized here and then initialized with the app in app.py.
"""

from flask import current_app, jsonify
from flask_login import LoginManager

# Initialize Flask-Login
login_manager = LoginManager()


@login_manager.request_loader
def load_user_from_request(request):
    """
    Load the caller identified by the gateway header.

    Authentication happens upstream; the gateway forwards the user ID of the
    authenticated caller in the configured header.

    Args:
        request: Incoming Flask request

    Returns:
        User object or None if the header is missing or unknown
    """
    from models.user import get_user_by_id, User

    header = current_app.config.get('AUTH_USER_HEADER', 'X-User-Id')
    raw_id = request.headers.get(header)
    if not raw_id:
        return None

    try:
        user_id = int(raw_id)
    except ValueError:
        return None

    user_dict = get_user_by_id(user_id)
    if user_dict:
        return User(user_dict)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    """Return a JSON 401 instead of redirecting to a login page."""
    return jsonify({'success': False, 'error': 'Authentication required'}), 401
