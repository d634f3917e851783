"""
Tests for derived booking views and list queries.
"""

import pytest

FUJI_ITEM_ID = 1
CANON_ITEM_ID = 2
CUSTOMER_ID = 2


def _state(rental_status, shipping_status=None):
    return {'rental_status': rental_status, 'shipping_status': shipping_status}


class TestNeedsAction:
    """Staff attention predicate."""

    @pytest.mark.parametrize('rental_status,shipping_status,expected', [
        ('pending', None, True),
        ('confirmed', None, True),
        ('confirmed', 'ready_to_ship', True),
        ('confirmed', 'in_transit_to_user', False),
        ('confirmed', 'delivered', False),
        ('active', 'delivered', False),
        ('active', 'return_scheduled', False),
        ('active', 'in_transit_to_owner', True),
        ('completed', 'returned', False),
        ('cancelled', None, False),
        ('rejected', None, False),
    ])
    def test_needs_action(self, rental_status, shipping_status, expected):
        from models.booking_state import needs_action
        assert needs_action(_state(rental_status, shipping_status)) is expected


class TestCurrentStep:
    """Furthest progress step reached."""

    @pytest.mark.parametrize('rental_status,shipping_status,expected', [
        ('pending', None, 'pending'),
        ('confirmed', None, 'confirmed'),
        ('confirmed', 'ready_to_ship', 'ready_to_ship'),
        ('confirmed', 'in_transit_to_user', 'in_transit_to_user'),
        ('confirmed', 'delivered', 'delivered'),
        ('active', 'delivered', 'active'),
        ('active', 'return_scheduled', 'return_scheduled'),
        ('active', 'in_transit_to_owner', 'in_transit_to_owner'),
        ('completed', 'returned', 'completed'),
        ('completed', None, 'completed'),
    ])
    def test_current_step(self, rental_status, shipping_status, expected):
        from models.booking_state import current_step
        assert current_step(_state(rental_status, shipping_status)) == expected

    def test_step_index_follows_progress(self):
        from models.booking_state import current_step_index, RENTAL_STEPS

        assert current_step_index(_state('pending')) == 0
        assert current_step_index(_state('active', 'delivered')) == RENTAL_STEPS.index('active')
        assert current_step_index(_state('completed', 'returned')) == len(RENTAL_STEPS) - 1


class TestTransitionTable:
    """Guard evaluation on plain state snapshots."""

    def test_allowed_operations_for_pending(self):
        from models.booking_state import allowed_operations

        assert sorted(allowed_operations(_state('pending'))) == [
            'admin_cancel', 'approve', 'cancel', 'reject', 'update_details'
        ]

    def test_allowed_operations_for_delivered(self):
        from models.booking_state import allowed_operations

        assert sorted(allowed_operations(_state('confirmed', 'delivered'))) == [
            'activate', 'admin_cancel', 'apply_extension'
        ]

    def test_check_transition_returns_effect(self):
        from models.booking_state import check_transition

        assert check_transition(_state('active', 'in_transit_to_owner'), 'confirm_returned') == {
            'shipping_status': 'returned', 'rental_status': 'completed'
        }

    def test_check_transition_raises(self):
        from models.booking_state import check_transition
        from utils.errors import IllegalTransition

        with pytest.raises(IllegalTransition):
            check_transition(_state('completed', 'returned'), 'admin_cancel')

    def test_conflict_check_only_when_entering_committed(self):
        from models.booking_state import requires_conflict_check

        assert requires_conflict_check(_state('pending'), 'approve') is True
        assert requires_conflict_check(_state('confirmed', 'delivered'), 'activate') is True
        assert requires_conflict_check(_state('pending'), 'update_details') is False
        assert requires_conflict_check(_state('confirmed'), 'update_details') is True
        assert requires_conflict_check(_state('pending'), 'reject') is False

    def test_table_copy_is_detached(self):
        from models.booking_state import get_valid_transitions, TRANSITIONS

        table = get_valid_transitions()
        table['approve']['effect']['rental_status'] = 'active'
        assert TRANSITIONS['approve']['effect']['rental_status'] == 'confirmed'


class TestListBookings:
    """Status, owner, item and month filters."""

    def test_filters(self, app):
        from blueprints.rentals.services import lifecycle_service as lc

        with app.app_context():
            pending = lc.submit_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', owner_id=CUSTOMER_ID)
            confirmed = lc.create_staff_booking(
                CANON_ITEM_ID, '2024-07-30', '2024-08-02', customer_name='Walk-in'
            )

            assert [b['id'] for b in lc.list_bookings_by_status('pending')] == [pending['id']]
            assert [b['id'] for b in lc.list_bookings_by_status(['pending', 'confirmed'])] == [
                confirmed['id'], pending['id']
            ]
            assert [b['id'] for b in lc.list_bookings_by_status(owner_id=CUSTOMER_ID)] == [pending['id']]
            assert [b['id'] for b in lc.list_bookings_by_status(item_id=CANON_ITEM_ID)] == [confirmed['id']]
            assert [b['id'] for b in lc.list_bookings_by_status(month='2024-08')] == [confirmed['id']]
            assert len(lc.list_bookings_by_status(month='2024-07')) == 1

    def test_rows_carry_derived_fields(self, app):
        from blueprints.rentals.services import lifecycle_service as lc

        with app.app_context():
            lc.submit_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', owner_id=CUSTOMER_ID)
            booking = lc.list_bookings_by_status()[0]
            assert booking['needs_action'] is True
            assert booking['current_step'] == 'pending'
            assert booking['item_name']
            assert booking['display_name']

    def test_payment_pending_filter(self, app):
        from blueprints.rentals.services import lifecycle_service as lc
        from blueprints.rentals.services.payment_service import submit_payment_receipt

        with app.app_context():
            waiting = lc.create_staff_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', customer_name='A')
            lc.create_staff_booking(FUJI_ITEM_ID, '2024-06-10', '2024-06-11', customer_name='B')
            submit_payment_receipt(waiting['payments'][0]['id'], 'receipts/a.png')

            assert [b['id'] for b in lc.list_bookings_by_status(payment_pending=True)] == [waiting['id']]

    def test_unknown_status_token(self, app):
        from blueprints.rentals.services.lifecycle_service import list_bookings_by_status
        from utils.errors import ValidationError

        with app.app_context():
            with pytest.raises(ValidationError):
                list_bookings_by_status(['pending', 'shipped'])


class TestNeedingActionList:
    """The staff work queue."""

    def test_queue_contents_and_order(self, app):
        from blueprints.rentals.services import lifecycle_service as lc

        with app.app_context():
            late_request = lc.submit_booking(FUJI_ITEM_ID, '2024-06-20', '2024-06-21', owner_id=CUSTOMER_ID)
            to_dispatch = lc.create_staff_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', customer_name='A')

            in_transit = lc.create_staff_booking(CANON_ITEM_ID, '2024-06-10', '2024-06-11', customer_name='B')
            lc.mark_ready_to_ship(in_transit['id'])
            lc.mark_in_transit_to_customer(in_transit['id'])

            cancelled = lc.submit_booking(FUJI_ITEM_ID, '2024-06-05', '2024-06-06', owner_id=CUSTOMER_ID)
            lc.cancel_booking(cancelled['id'])

            ids = [b['id'] for b in lc.list_needing_action()]
            assert ids == [to_dispatch['id'], late_request['id']]

    def test_returning_item_needs_a_check(self, app):
        from blueprints.rentals.services import lifecycle_service as lc

        with app.app_context():
            booking = lc.create_staff_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', customer_name='A')
            for operation in (lc.mark_ready_to_ship, lc.mark_in_transit_to_customer,
                              lc.confirm_delivered, lc.activate_booking,
                              lc.schedule_return):
                operation(booking['id'])
            assert lc.list_needing_action() == []

            lc.confirm_shipped_back(booking['id'])
            assert [b['id'] for b in lc.list_needing_action()] == [booking['id']]


class TestBookingStats:
    """Counts per rental status."""

    def test_stats(self, app):
        from blueprints.rentals.services import lifecycle_service as lc
        from models.booking import get_booking_stats

        with app.app_context():
            lc.submit_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', owner_id=CUSTOMER_ID)
            lc.create_staff_booking(FUJI_ITEM_ID, '2024-06-10', '2024-06-11', customer_name='A')
            rejected = lc.submit_booking(FUJI_ITEM_ID, '2024-06-01', '2024-06-02', owner_id=CUSTOMER_ID)
            lc.reject_booking(rejected['id'], 'No')

            stats = get_booking_stats()
            assert stats['by_status'] == {'pending': 1, 'confirmed': 1, 'rejected': 1}
            assert stats['total'] == 3
            assert stats['needs_action'] == 2
