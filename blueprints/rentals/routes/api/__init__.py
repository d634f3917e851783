"""
Rentals API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint

# Create the API blueprint
api_bp = Blueprint('rentals_api', __name__)

# Import and register routes from submodules
from blueprints.rentals.routes.api import items
from blueprints.rentals.routes.api import bookings
from blueprints.rentals.routes.api import payments
from blueprints.rentals.routes.api import extensions

# Register all route functions on the blueprint
items.register_routes(api_bp)
bookings.register_routes(api_bp)
payments.register_routes(api_bp)
extensions.register_routes(api_bp)
