"""
Extension API routes: customer requests and staff decisions.
"""

from flask import request
from flask_login import login_required, current_user

from utils.decorators import staff_required
from utils.api_response import api_success
from utils.messages import get_message
from blueprints.rentals.services.extension_service import (
    check_extension_eligibility, request_extension, approve_extension, reject_extension,
    apply_extension, get_extension, list_pending_extensions, list_extensions_for_user
)
from blueprints.rentals.routes.api.common import (
    get_json_body, require_date, actor_name, load_accessible_booking
)


def register_routes(bp):
    """Register extension API routes on the blueprint."""

    # ============================================================================
    # CUSTOMER
    # ============================================================================

    @bp.route('/bookings/<int:booking_id>/extension-eligibility')
    @login_required
    def extension_eligibility(booking_id):
        """Whether the booking may be extended now."""
        load_accessible_booking(booking_id)
        return api_success(data=check_extension_eligibility(booking_id))

    @bp.route('/bookings/<int:booking_id>/extensions', methods=['POST'])
    @login_required
    def extension_request(booking_id):
        """Request a later end date."""
        booking = load_accessible_booking(booking_id)
        data = get_json_body()

        extension = request_extension(
            booking_id,
            require_date(data, 'requested_end_date'),
            requested_by=booking['owner_id'] if current_user.is_staff else current_user.id,
            changed_by=actor_name()
        )
        return api_success(data=extension, message=get_message('extension_requested'), status=201)

    @bp.route('/extensions/mine')
    @login_required
    def extensions_mine():
        """The current user's extension history."""
        extensions = list_extensions_for_user(current_user.id)
        return api_success(data=extensions, count=len(extensions))

    @bp.route('/extensions/<int:extension_id>')
    @login_required
    def extension_detail(extension_id):
        """Get one extension with its payment."""
        extension = get_extension(extension_id)
        load_accessible_booking(extension['booking_id'])
        return api_success(data=extension)

    # ============================================================================
    # STAFF
    # ============================================================================

    @bp.route('/extensions/pending')
    @login_required
    @staff_required
    def extensions_pending():
        """Undecided extension requests."""
        extensions = list_pending_extensions()
        return api_success(data=extensions, count=len(extensions))

    @bp.route('/extensions/<int:extension_id>/approve', methods=['POST'])
    @login_required
    @staff_required
    def extension_approve(extension_id):
        """Approve a pending extension."""
        data = request.get_json(silent=True) or {}
        extension = approve_extension(extension_id, notes=data.get('notes'), changed_by=actor_name())
        return api_success(data=extension, message=get_message('extension_approved'))

    @bp.route('/extensions/<int:extension_id>/reject', methods=['POST'])
    @login_required
    @staff_required
    def extension_reject(extension_id):
        """Reject a pending extension."""
        data = request.get_json(silent=True) or {}
        extension = reject_extension(extension_id, notes=data.get('notes'), changed_by=actor_name())
        return api_success(data=extension, message=get_message('extension_rejected'))

    @bp.route('/extensions/<int:extension_id>/apply', methods=['POST'])
    @login_required
    @staff_required
    def extension_apply(extension_id):
        """Apply an approved, paid extension to its booking."""
        booking = apply_extension(extension_id, changed_by=actor_name())
        return api_success(data=booking, message=get_message('extension_applied'))
