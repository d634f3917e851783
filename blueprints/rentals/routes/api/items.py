"""
Rental item API routes: catalog, pricing tiers, quotes and availability.
"""

from flask import request
from flask_login import login_required, current_user

from utils.decorators import staff_required
from utils.api_response import api_success
from utils.errors import NotFound, ValidationError
from utils.messages import get_message
from models.rental_item import get_all_items, get_item_by_id, replace_pricing_tiers
from blueprints.rentals.services.pricing_service import resolve_price
from blueprints.rentals.services.conflict_service import (
    find_conflicts, suggest_alternative_dates, get_calendar_bookings
)
from blueprints.rentals.routes.api.common import get_json_body, require_date


def register_routes(bp):
    """Register item API routes on the blueprint."""

    # ============================================================================
    # CATALOG
    # ============================================================================

    @bp.route('/items')
    @login_required
    def items_list():
        """List rental items with their tier tables."""
        active_only = request.args.get('active', 'true').lower() == 'true'
        if not current_user.is_staff:
            active_only = True
        items = get_all_items(active_only=active_only)
        return api_success(data=items, count=len(items))

    @bp.route('/items/<int:item_id>')
    @login_required
    def item_detail(item_id):
        """Get one item with its tiers."""
        item = get_item_by_id(item_id)
        if not item:
            raise NotFound('item', item_id)
        return api_success(data=item)

    @bp.route('/items/<int:item_id>/tiers', methods=['PUT'])
    @login_required
    @staff_required
    def item_tiers_replace(item_id):
        """Replace an item's tier table."""
        data = get_json_body()
        tiers = data.get('tiers')
        if not isinstance(tiers, list):
            raise ValidationError(get_message('field_required', field='tiers'))

        stored = replace_pricing_tiers(item_id, tiers)
        return api_success(data=stored, message=get_message('tiers_updated'))

    # ============================================================================
    # QUOTES & AVAILABILITY
    # ============================================================================

    @bp.route('/items/<int:item_id>/quote')
    @login_required
    def item_quote(item_id):
        """Price an item for a date range."""
        start_date = require_date(request.args, 'start_date')
        end_date = require_date(request.args, 'end_date')

        quote = resolve_price(item_id, start_date, end_date)
        return api_success(data=quote.to_dict())

    @bp.route('/items/<int:item_id>/conflicts')
    @login_required
    def item_conflicts(item_id):
        """
        Check a date range against committed bookings.

        Customers only learn whether the range is free; staff also get the
        conflicting bookings.
        """
        start_date = require_date(request.args, 'start_date')
        end_date = require_date(request.args, 'end_date')
        exclude_booking_id = request.args.get('exclude_booking_id', type=int)

        if not get_item_by_id(item_id):
            raise NotFound('item', item_id)

        conflicts = find_conflicts(item_id, start_date, end_date, exclude_booking_id)
        payload = {'available': not conflicts}
        if current_user.is_staff:
            payload['conflicts'] = conflicts
        return api_success(data=payload)

    @bp.route('/items/<int:item_id>/alternatives')
    @login_required
    def item_alternatives(item_id):
        """Suggest nearby free ranges of the same length."""
        start_date = require_date(request.args, 'start_date')
        end_date = require_date(request.args, 'end_date')

        if not get_item_by_id(item_id):
            raise NotFound('item', item_id)

        suggestions = suggest_alternative_dates(item_id, start_date, end_date)
        return api_success(data=suggestions, count=len(suggestions))

    @bp.route('/calendar')
    @login_required
    @staff_required
    def calendar():
        """Committed bookings intersecting a window."""
        start_date = require_date(request.args, 'start_date')
        end_date = require_date(request.args, 'end_date')
        item_id = request.args.get('item_id', type=int)

        bookings = get_calendar_bookings(start_date, end_date, item_id=item_id)
        return api_success(data=bookings, count=len(bookings))
