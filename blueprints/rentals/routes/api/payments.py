"""
Payment API routes: receipt upload handles and staff verification.
"""

from flask import request
from flask_login import login_required

from utils.decorators import staff_required
from utils.api_response import api_success
from utils.messages import get_message
from blueprints.rentals.services.payment_service import (
    submit_payment_receipt, verify_payment, reject_payment, get_payment,
    list_awaiting_verification
)
from blueprints.rentals.routes.api.common import (
    get_json_body, require_field, actor_name, load_accessible_booking
)


def register_routes(bp):
    """Register payment API routes on the blueprint."""

    @bp.route('/payments/awaiting-verification')
    @login_required
    @staff_required
    def payments_awaiting_verification():
        """Submitted receipts waiting for staff review."""
        payments = list_awaiting_verification()
        return api_success(data=payments, count=len(payments))

    @bp.route('/payments/<int:payment_id>')
    @login_required
    def payment_detail(payment_id):
        """Get one payment."""
        payment = get_payment(payment_id)
        load_accessible_booking(payment['booking_id'])
        return api_success(data=payment)

    @bp.route('/payments/<int:payment_id>/receipt', methods=['POST'])
    @login_required
    def payment_receipt(payment_id):
        """Attach the handle of an uploaded receipt (owner or staff)."""
        payment = get_payment(payment_id)
        load_accessible_booking(payment['booking_id'])

        data = get_json_body()
        updated = submit_payment_receipt(
            payment_id, require_field(data, 'receipt_ref'), changed_by=actor_name()
        )
        return api_success(data=updated, message=get_message('receipt_submitted'))

    @bp.route('/payments/<int:payment_id>/verify', methods=['POST'])
    @login_required
    @staff_required
    def payment_verify(payment_id):
        """Confirm a submitted receipt."""
        updated = verify_payment(payment_id, changed_by=actor_name())
        return api_success(data=updated, message=get_message('payment_verified'))

    @bp.route('/payments/<int:payment_id>/reject', methods=['POST'])
    @login_required
    @staff_required
    def payment_reject(payment_id):
        """Reject a submitted receipt with a reason."""
        data = request.get_json(silent=True) or {}
        updated = reject_payment(payment_id, data.get('reason'), changed_by=actor_name())
        return api_success(data=updated, message=get_message('payment_rejected'))
