"""
Rentals blueprint initialization.
Assembles the booking engine's route modules into the rentals blueprint.

Route logic lives in:
- routes/api/items.py - Catalog, tiers, quotes, availability, calendar
- routes/api/bookings.py - Submission, staff entry, lifecycle operations
- routes/api/payments.py - Receipts and verification
- routes/api/extensions.py - Extension requests and decisions
"""

from flask import Blueprint

# Create main rentals blueprint
rentals_bp = Blueprint('rentals', __name__)

# =============================================================================
# REGISTER SUB-BLUEPRINTS
# =============================================================================

# API routes (all JSON endpoints)
from blueprints.rentals.routes.api import api_bp
rentals_bp.register_blueprint(api_bp, url_prefix='/api')
