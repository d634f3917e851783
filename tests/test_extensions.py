"""
Tests for rental extensions: eligibility, request pricing, decisions and
applying a paid extension to the booking.
"""

import pytest

FUJI_ITEM_ID = 1
CANON_ITEM_ID = 2
CUSTOMER_ID = 2


def _active_booking(start='2024-06-01', end='2024-06-05', item_id=FUJI_ITEM_ID):
    """An active rental whose item is with the customer."""
    from blueprints.rentals.services import lifecycle_service as lc

    booking = lc.submit_booking(item_id, start, end, owner_id=CUSTOMER_ID)
    for operation in (lc.approve_booking, lc.mark_ready_to_ship,
                      lc.mark_in_transit_to_customer, lc.confirm_delivered):
        operation(booking['id'])
    return lc.activate_booking(booking['id'])


def _paid_extension(booking_id, requested_end):
    """Request, approve and pay an extension."""
    from blueprints.rentals.services import extension_service as es
    from blueprints.rentals.services import payment_service as ps

    extension = es.request_extension(booking_id, requested_end, requested_by=CUSTOMER_ID)
    es.approve_extension(extension['id'])
    ps.submit_payment_receipt(extension['payment']['id'], 'receipts/ext.png')
    ps.verify_payment(extension['payment']['id'])
    return extension


class TestEligibility:
    """Only active, delivered rentals without a pending request extend."""

    def test_active_delivered_is_eligible(self, app):
        from blueprints.rentals.services.extension_service import check_extension_eligibility

        with app.app_context():
            booking = _active_booking()
            assert check_extension_eligibility(booking['id']) == {'eligible': True, 'reason': None}

    def test_confirmed_is_not_eligible(self, app):
        from blueprints.rentals.services import lifecycle_service as lc
        from blueprints.rentals.services.extension_service import check_extension_eligibility

        with app.app_context():
            booking = lc.submit_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-05', owner_id=CUSTOMER_ID)
            lc.approve_booking(booking['id'])
            result = check_extension_eligibility(booking['id'])
            assert result['eligible'] is False
            assert 'active' in result['reason']

    def test_return_scheduled_is_not_eligible(self, app):
        from blueprints.rentals.services.extension_service import check_extension_eligibility
        from blueprints.rentals.services.lifecycle_service import schedule_return

        with app.app_context():
            booking = _active_booking()
            schedule_return(booking['id'])
            assert check_extension_eligibility(booking['id'])['eligible'] is False

    def test_pending_request_blocks_another(self, app):
        from blueprints.rentals.services import extension_service as es
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            es.request_extension(booking['id'], '2024-06-07')

            assert es.check_extension_eligibility(booking['id'])['eligible'] is False
            with pytest.raises(IllegalTransition):
                es.request_extension(booking['id'], '2024-06-08')

    def test_unknown_booking(self, app):
        from blueprints.rentals.services.extension_service import check_extension_eligibility
        from utils.errors import NotFound

        with app.app_context():
            with pytest.raises(NotFound):
                check_extension_eligibility(999)


class TestRequestExtension:
    """Tests for request validation and pricing."""

    def test_request_prices_the_difference(self, app):
        """Five days at 80 become ten days at 60: 200 more."""
        from blueprints.rentals.services.extension_service import request_extension

        with app.app_context():
            booking = _active_booking('2024-06-01', '2024-06-05')
            assert booking['total_price'] == 400.0

            extension = request_extension(booking['id'], '2024-06-10', requested_by=CUSTOMER_ID)

            assert extension['extension_status'] == 'pending'
            assert extension['original_end_date'] == '2024-06-05'
            assert extension['requested_end_date'] == '2024-06-10'
            assert extension['extension_days'] == 5
            assert extension['additional_price'] == 200.0
            assert extension['payment']['amount'] == 200.0
            assert extension['payment']['payment_status'] == 'pending'
            assert extension['payment']['extension_id'] == extension['id']

    def test_cheaper_tier_never_goes_negative(self, app):
        """Six days at 95 cost more than seven days at 75."""
        from blueprints.rentals.services.extension_service import request_extension

        with app.app_context():
            booking = _active_booking('2024-06-01', '2024-06-06', item_id=CANON_ITEM_ID)
            assert booking['total_price'] == 570.0

            extension = request_extension(booking['id'], '2024-06-07')
            assert extension['additional_price'] == 0.0

    def test_end_date_must_move_forward(self, app):
        from blueprints.rentals.services.extension_service import request_extension
        from utils.errors import ValidationError

        with app.app_context():
            booking = _active_booking('2024-06-01', '2024-06-05')
            with pytest.raises(ValidationError):
                request_extension(booking['id'], '2024-06-05')
            with pytest.raises(ValidationError):
                request_extension(booking['id'], 'next week')

    def test_added_days_are_conflict_checked(self, app):
        from blueprints.rentals.services.extension_service import request_extension
        from blueprints.rentals.services.lifecycle_service import create_staff_booking
        from utils.errors import BookingConflict

        with app.app_context():
            booking = _active_booking('2024-06-01', '2024-06-05')
            blocker = create_staff_booking(
                FUJI_ITEM_ID, '2024-06-08', '2024-06-09', customer_name='Next renter'
            )

            with pytest.raises(BookingConflict) as exc_info:
                request_extension(booking['id'], '2024-06-10')
            assert [c['id'] for c in exc_info.value.conflicts] == [blocker['id']]

            # Up to the day before the next rental is fine
            extension = request_extension(booking['id'], '2024-06-07')
            assert extension['extension_days'] == 2

    def test_history_and_notification(self, app, events):
        from blueprints.rentals.services.extension_service import request_extension
        from blueprints.rentals.services.lifecycle_service import get_booking_history

        with app.app_context():
            booking = _active_booking()
            extension = request_extension(booking['id'], '2024-06-07', changed_by='demo_customer')
            rows = [h for h in get_booking_history(booking['id']) if h['axis'] == 'extension']
            assert [(r['from_status'], r['to_status']) for r in rows] == [(None, 'pending')]

        requested = [p for e, b, p in events if e == 'extension.requested']
        assert requested == [{'extension_id': extension['id'], 'owner_id': CUSTOMER_ID}]


class TestExtensionDecisions:
    """Staff approve or reject pending requests."""

    def test_approve_does_not_move_dates(self, app):
        from blueprints.rentals.services import extension_service as es
        from blueprints.rentals.services.lifecycle_service import get_booking

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            approved = es.approve_extension(extension['id'], notes='OK', changed_by='admin')

            assert approved['extension_status'] == 'approved'
            assert approved['admin_notes'] == 'OK'
            assert approved['decided_at'] is not None
            assert get_booking(booking['id'])['end_date'] == '2024-06-05'

    def test_approve_rechecks_added_days(self, app):
        from blueprints.rentals.services import extension_service as es
        from blueprints.rentals.services.lifecycle_service import create_staff_booking
        from utils.errors import BookingConflict

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            create_staff_booking(FUJI_ITEM_ID, '2024-06-09', '2024-06-12', customer_name='Walk-in')

            with pytest.raises(BookingConflict):
                es.approve_extension(extension['id'])
            assert es.get_extension(extension['id'])['extension_status'] == 'pending'

    def test_reject_frees_the_booking_for_a_new_request(self, app):
        from blueprints.rentals.services import extension_service as es

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            rejected = es.reject_extension(extension['id'], notes='Lens booked')

            assert rejected['extension_status'] == 'rejected'
            assert es.check_extension_eligibility(booking['id'])['eligible'] is True

    def test_decisions_only_on_pending(self, app):
        from blueprints.rentals.services import extension_service as es
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            es.reject_extension(extension['id'])

            with pytest.raises(IllegalTransition):
                es.approve_extension(extension['id'])
            with pytest.raises(IllegalTransition):
                es.reject_extension(extension['id'])

    def test_unknown_extension(self, app):
        from blueprints.rentals.services import extension_service as es
        from utils.errors import NotFound

        with app.app_context():
            with pytest.raises(NotFound):
                es.approve_extension(999)
            with pytest.raises(NotFound):
                es.get_extension(999)


class TestApplyExtension:
    """Applying moves the end date once the extension is approved and paid."""

    def test_apply_moves_end_date_and_reprices(self, app, events):
        from blueprints.rentals.services.extension_service import apply_extension, get_extension

        with app.app_context():
            booking = _active_booking('2024-06-01', '2024-06-05')
            extension = _paid_extension(booking['id'], '2024-06-10')

            booking = apply_extension(extension['id'], changed_by='admin')
            assert booking['end_date'] == '2024-06-10'
            assert booking['price_per_day'] == 60.0
            assert booking['total_price'] == 600.0
            assert booking['rental_status'] == 'active'
            assert get_extension(extension['id'])['applied_at'] is not None

        applied = [p for e, b, p in events if e == 'extension.applied']
        assert applied[0]['end_date'] == '2024-06-10'

    def test_unverified_payment_blocks_apply(self, app):
        from blueprints.rentals.services import extension_service as es
        from blueprints.rentals.services import payment_service as ps
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            es.approve_extension(extension['id'])
            ps.submit_payment_receipt(extension['payment']['id'], 'receipts/ext.png')

            with pytest.raises(IllegalTransition):
                es.apply_extension(extension['id'])

    def test_unapproved_extension_blocks_apply(self, app):
        from blueprints.rentals.services import extension_service as es
        from blueprints.rentals.services import payment_service as ps
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            extension = es.request_extension(booking['id'], '2024-06-10')
            ps.submit_payment_receipt(extension['payment']['id'], 'receipts/ext.png')
            ps.verify_payment(extension['payment']['id'])

            with pytest.raises(IllegalTransition):
                es.apply_extension(extension['id'])

    def test_applies_only_once(self, app):
        from blueprints.rentals.services.extension_service import apply_extension
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            extension = _paid_extension(booking['id'], '2024-06-10')
            apply_extension(extension['id'])

            with pytest.raises(IllegalTransition):
                apply_extension(extension['id'])

    def test_cancelled_booking_cannot_be_extended(self, app):
        from blueprints.rentals.services.extension_service import apply_extension
        from blueprints.rentals.services.lifecycle_service import admin_cancel_booking
        from utils.errors import IllegalTransition

        with app.app_context():
            booking = _active_booking()
            extension = _paid_extension(booking['id'], '2024-06-10')
            admin_cancel_booking(booking['id'])

            with pytest.raises(IllegalTransition):
                apply_extension(extension['id'])

    def test_history_records_date_change(self, app):
        from blueprints.rentals.services.extension_service import apply_extension
        from blueprints.rentals.services.lifecycle_service import get_booking_history

        with app.app_context():
            booking = _active_booking()
            extension = _paid_extension(booking['id'], '2024-06-10')
            apply_extension(extension['id'])

            rows = [h for h in get_booking_history(booking['id']) if h['axis'] == 'dates']
            assert [(r['from_status'], r['to_status'], r['operation']) for r in rows] == [
                ('2024-06-05', '2024-06-10', 'apply_extension')
            ]


class TestExtensionLists:
    """Staff queue and customer history."""

    def test_pending_queue_and_user_history(self, app):
        from blueprints.rentals.services import extension_service as es

        with app.app_context():
            first = _active_booking('2024-06-01', '2024-06-05')
            second = _active_booking('2024-06-01', '2024-06-05', item_id=CANON_ITEM_ID)

            decided = es.request_extension(first['id'], '2024-06-07', requested_by=CUSTOMER_ID)
            es.reject_extension(decided['id'])
            waiting = es.request_extension(second['id'], '2024-06-07', requested_by=CUSTOMER_ID)

            pending = es.list_pending_extensions()
            assert [e['id'] for e in pending] == [waiting['id']]
            assert pending[0]['payment']['extension_id'] == waiting['id']

            mine = es.list_extensions_for_user(CUSTOMER_ID)
            assert sorted(e['id'] for e in mine) == sorted([decided['id'], waiting['id']])
            assert es.list_extensions_for_user(1) == []
