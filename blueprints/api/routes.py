"""
Service-level API routes.
Health check for the load balancer and the gateway.
"""

from flask import jsonify, Blueprint, current_app

from database import get_db

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status, version and database reachability
    """
    database_ok = True
    try:
        get_db().execute('SELECT 1').fetchone()
    except Exception as e:
        current_app.logger.error(f"Health check database error: {e}")
        database_ok = False

    return jsonify({
        'status': 'ok' if database_ok else 'degraded',
        'database': database_ok,
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'CameraRentals')
    }), 200 if database_ok else 503
