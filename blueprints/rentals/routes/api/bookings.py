"""
Booking API routes: submission, staff entry, lifecycle operations and reads.
"""

from flask import request
from flask_login import login_required, current_user

from utils.decorators import staff_required
from utils.api_response import api_success, api_error
from utils.messages import get_message
from models.booking_queries import get_booking_stats
from blueprints.rentals.services.lifecycle_service import (
    submit_booking, create_staff_booking, update_booking_details, attach_contract,
    get_booking, list_bookings_by_status, list_needing_action, get_booking_history,
    BOOKING_OPERATIONS, CUSTOMER_OPERATIONS, REASON_OPERATIONS
)
from blueprints.rentals.services.conflict_service import has_conflict, get_pending_conflicts
from blueprints.rentals.services.payment_service import list_payments
from blueprints.rentals.routes.api.common import (
    get_json_body, require_field, require_date, optional_int, actor_name, load_accessible_booking
)

OPERATION_MESSAGES = {
    'approve': 'booking_approved',
    'reject': 'booking_rejected',
    'mark-ready-to-ship': 'ready_to_ship',
    'mark-in-transit': 'in_transit_to_user',
    'confirm-delivered': 'delivered',
    'activate': 'activated',
    'schedule-return': 'return_scheduled',
    'confirm-shipped-back': 'in_transit_to_owner',
    'confirm-returned': 'returned',
    'cancel': 'booking_cancelled',
    'admin-cancel': 'booking_cancelled',
}


def register_routes(bp):
    """Register booking API routes on the blueprint."""

    # ============================================================================
    # CREATION
    # ============================================================================

    @bp.route('/bookings', methods=['POST'])
    @login_required
    def booking_submit():
        """Submit a rental request for the current customer."""
        data = get_json_body()
        require_field(data, 'item_id')
        item_id = optional_int(data, 'item_id')
        start_date = require_date(data, 'start_date')
        end_date = require_date(data, 'end_date')

        booking = submit_booking(
            item_id, start_date, end_date,
            owner_id=current_user.id,
            customer_contact=data.get('customer_contact'),
            customer_email=data.get('customer_email'),
            notes=data.get('notes'),
            changed_by=actor_name()
        )

        warning = None
        if has_conflict(item_id, start_date, end_date):
            warning = 'These dates overlap a confirmed rental; the request may be declined'

        return api_success(
            data=booking, message=get_message('booking_submitted'), warning=warning, status=201
        )

    @bp.route('/bookings/staff', methods=['POST'])
    @login_required
    @staff_required
    def booking_staff_create():
        """Enter a booking directly (walk-in or phone order)."""
        data = get_json_body()
        require_field(data, 'item_id')
        item_id = optional_int(data, 'item_id')

        booking = create_staff_booking(
            item_id,
            require_date(data, 'start_date'),
            require_date(data, 'end_date'),
            customer_name=require_field(data, 'customer_name'),
            customer_contact=data.get('customer_contact'),
            customer_email=data.get('customer_email'),
            initial_status=data.get('initial_status', 'confirmed'),
            receipt_ref=data.get('receipt_ref'),
            contract_ref=data.get('contract_ref'),
            owner_id=optional_int(data, 'owner_id'),
            notes=data.get('notes'),
            changed_by=actor_name()
        )
        return api_success(data=booking, message=get_message('booking_created'), status=201)

    # ============================================================================
    # LISTS
    # ============================================================================

    @bp.route('/bookings')
    @login_required
    def bookings_list():
        """
        List bookings.

        Query params:
            status: Comma-separated rental statuses
            item_id: Item filter
            month: 'YYYY-MM'
            payment_pending: 'true' for confirmed bookings awaiting receipt review

        Customers only see their own bookings.
        """
        status_param = request.args.get('status', '')
        statuses = [s.strip() for s in status_param.split(',') if s.strip()] or None
        owner_id = None if current_user.is_staff else current_user.id

        bookings = list_bookings_by_status(
            statuses,
            item_id=request.args.get('item_id', type=int),
            owner_id=owner_id,
            month=request.args.get('month'),
            payment_pending=request.args.get('payment_pending', 'false').lower() == 'true'
        )
        return api_success(data=bookings, count=len(bookings))

    @bp.route('/bookings/needs-action')
    @login_required
    @staff_required
    def bookings_needs_action():
        """Bookings awaiting a staff action."""
        bookings = list_needing_action()
        return api_success(data=bookings, count=len(bookings))

    @bp.route('/bookings/pending-conflicts')
    @login_required
    @staff_required
    def bookings_pending_conflicts():
        """Pending requests that collide with committed bookings."""
        results = get_pending_conflicts()
        return api_success(data=results, count=len(results))

    @bp.route('/bookings/stats')
    @login_required
    @staff_required
    def bookings_stats():
        """Booking counts per rental status."""
        return api_success(data=get_booking_stats())

    # ============================================================================
    # SINGLE BOOKING
    # ============================================================================

    @bp.route('/bookings/<int:booking_id>')
    @login_required
    def booking_detail(booking_id):
        """Get a booking with derived fields, payments and extensions."""
        load_accessible_booking(booking_id)
        return api_success(data=get_booking(booking_id))

    @bp.route('/bookings/<int:booking_id>', methods=['PATCH'])
    @login_required
    @staff_required
    def booking_update(booking_id):
        """Edit dates, item, customer fields or notes before dispatch."""
        data = get_json_body()
        booking = update_booking_details(
            booking_id,
            item_id=optional_int(data, 'item_id'),
            start_date=require_date(data, 'start_date') if 'start_date' in data else None,
            end_date=require_date(data, 'end_date') if 'end_date' in data else None,
            customer_name=data.get('customer_name'),
            customer_contact=data.get('customer_contact'),
            customer_email=data.get('customer_email'),
            notes=data.get('notes'),
            changed_by=actor_name()
        )
        return api_success(data=booking, message=get_message('booking_updated'))

    @bp.route('/bookings/<int:booking_id>/history')
    @login_required
    def booking_history(booking_id):
        """Status change history of a booking."""
        load_accessible_booking(booking_id)
        return api_success(data=get_booking_history(booking_id))

    @bp.route('/bookings/<int:booking_id>/payments')
    @login_required
    def booking_payments(booking_id):
        """Payments of a booking, primary first."""
        load_accessible_booking(booking_id)
        return api_success(data=list_payments(booking_id))

    @bp.route('/bookings/<int:booking_id>/contract', methods=['POST'])
    @login_required
    @staff_required
    def booking_contract(booking_id):
        """Attach a signed contract handle."""
        data = get_json_body()
        booking = attach_contract(booking_id, require_field(data, 'contract_ref'), changed_by=actor_name())
        return api_success(data=booking, message=get_message('contract_attached'))

    # ============================================================================
    # LIFECYCLE OPERATIONS
    # ============================================================================

    @bp.route('/bookings/<int:booking_id>/<operation>', methods=['POST'])
    @login_required
    def booking_operation(booking_id, operation):
        """
        Run a lifecycle operation on a booking.

        Customers may cancel, confirm delivery, schedule the return and
        confirm shipping back on their own bookings; everything else is staff.
        """
        handler = BOOKING_OPERATIONS.get(operation)
        if handler is None:
            return api_error(get_message('unknown_operation', operation=operation), status=404)

        if not current_user.is_staff and operation not in CUSTOMER_OPERATIONS:
            return api_error(get_message('permission_denied'), status=403)

        load_accessible_booking(booking_id)

        if operation in REASON_OPERATIONS:
            data = request.get_json(silent=True) or {}
            booking = handler(booking_id, data.get('reason'), changed_by=actor_name())
        else:
            booking = handler(booking_id, changed_by=actor_name())

        return api_success(data=booking, message=get_message(OPERATION_MESSAGES[operation]))
