"""
Tests for the rentals JSON API: authentication, roles, the error envelope
and the main request flows.
"""

API = '/rentals/api'


def _submit(client, start='2024-06-01', end='2024-06-05', item_id=1):
    return client.post(f'{API}/bookings', json={
        'item_id': item_id, 'start_date': start, 'end_date': end
    })


class TestHealth:
    """Tests for the service health endpoint."""

    def test_health_needs_no_identity(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'ok'
        assert data['database'] is True
        assert data['app'] == 'CameraRentals'


class TestAuthentication:
    """Identity comes from the gateway header."""

    def test_missing_header_is_401(self, client):
        response = client.get(f'{API}/bookings')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_unknown_user_is_401(self, client):
        response = client.get(f'{API}/bookings', headers={'X-User-Id': '999'})
        assert response.status_code == 401

    def test_non_numeric_header_is_401(self, client):
        response = client.get(f'{API}/bookings', headers={'X-User-Id': 'admin'})
        assert response.status_code == 401

    def test_customer_blocked_from_staff_routes(self, customer_client):
        for url in (f'{API}/bookings/needs-action', f'{API}/bookings/stats',
                    f'{API}/payments/awaiting-verification', f'{API}/extensions/pending'):
            response = customer_client.get(url)
            assert response.status_code == 403, url


class TestItemsApi:
    """Catalog, quote and availability endpoints."""

    def test_list_items_with_tiers(self, customer_client):
        response = customer_client.get(f'{API}/items')
        assert response.status_code == 200
        data = response.get_json()
        assert data['count'] == 2
        assert len(data['data'][0]['pricing_tiers']) == 3

    def test_quote(self, customer_client):
        response = customer_client.get(f'{API}/items/1/quote?start_date=2024-06-01&end_date=2024-06-05')
        assert response.status_code == 200
        assert response.get_json()['data'] == {
            'days': 5, 'price_per_day': 80.0, 'total_price': 400.0,
            'tier_description': 'Weekly rate'
        }

    def test_quote_invalid_range(self, customer_client):
        response = customer_client.get(f'{API}/items/1/quote?start_date=2024-06-05&end_date=2024-06-01')
        assert response.status_code == 422
        assert response.get_json()['code'] == 'invalid_range'

    def test_quote_bad_date(self, customer_client):
        response = customer_client.get(f'{API}/items/1/quote?start_date=June&end_date=2024-06-01')
        assert response.status_code == 422
        assert response.get_json()['code'] == 'validation_error'

    def test_unknown_item_is_404(self, customer_client):
        response = customer_client.get(f'{API}/items/999')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'not_found'

    def test_conflict_details_only_for_staff(self, staff_client, customer_client):
        staff_client.post(f'{API}/bookings/staff', json={
            'item_id': 1, 'start_date': '2024-06-01', 'end_date': '2024-06-05',
            'customer_name': 'Walk-in'
        })
        url = f'{API}/items/1/conflicts?start_date=2024-06-03&end_date=2024-06-04'

        customer_view = customer_client.get(url).get_json()['data']
        assert customer_view == {'available': False}

        staff_view = staff_client.get(url).get_json()['data']
        assert staff_view['available'] is False
        assert len(staff_view['conflicts']) == 1

    def test_replace_tiers_staff_only(self, staff_client, customer_client):
        body = {'tiers': [{'min_days': 1, 'max_days': None, 'price_per_day': 150}]}
        assert customer_client.put(f'{API}/items/1/tiers', json=body).status_code == 403

        response = staff_client.put(f'{API}/items/1/tiers', json=body)
        assert response.status_code == 200
        quote = staff_client.get(f'{API}/items/1/quote?start_date=2024-06-01&end_date=2024-06-02')
        assert quote.get_json()['data']['total_price'] == 300.0


class TestBookingsApi:
    """Submission, reads and lifecycle operations."""

    def test_submit_returns_201(self, customer_client):
        response = _submit(customer_client)
        assert response.status_code == 201
        data = response.get_json()
        assert data['success'] is True
        assert data['data']['rental_status'] == 'pending'
        assert data['data']['owner_id'] == 2
        assert data['data']['total_price'] == 400.0
        assert 'warning' not in data

    def test_submit_over_confirmed_dates_warns(self, staff_client, customer_client):
        staff_client.post(f'{API}/bookings/staff', json={
            'item_id': 1, 'start_date': '2024-06-01', 'end_date': '2024-06-05',
            'customer_name': 'Walk-in'
        })
        response = _submit(customer_client, '2024-06-04', '2024-06-06')
        assert response.status_code == 201
        assert 'warning' in response.get_json()

    def test_submit_validation(self, customer_client):
        response = customer_client.post(f'{API}/bookings', json={'start_date': '2024-06-01'})
        assert response.status_code == 422
        assert 'item_id' in response.get_json()['error']

        response = customer_client.post(f'{API}/bookings', data='not json')
        assert response.status_code == 422

    def test_customer_sees_only_own_bookings(self, app, staff_client, customer_client):
        from models.user import create_user

        with app.app_context():
            other_id = create_user('other_customer', 'other@example.com', full_name='Other')

        other_client = app.test_client()
        other_client.environ_base['HTTP_X_USER_ID'] = str(other_id)

        mine = _submit(customer_client).get_json()['data']
        theirs = _submit(other_client, '2024-07-01', '2024-07-02').get_json()['data']

        listed = customer_client.get(f'{API}/bookings').get_json()['data']
        assert [b['id'] for b in listed] == [mine['id']]

        assert customer_client.get(f"{API}/bookings/{theirs['id']}").status_code == 404
        assert customer_client.post(f"{API}/bookings/{theirs['id']}/cancel").status_code == 404

        all_bookings = staff_client.get(f'{API}/bookings').get_json()['data']
        assert len(all_bookings) == 2

    def test_list_status_filter(self, staff_client, customer_client):
        _submit(customer_client)
        response = staff_client.get(f'{API}/bookings?status=confirmed,active')
        assert response.get_json()['count'] == 0

        response = staff_client.get(f'{API}/bookings?status=shipped')
        assert response.status_code == 422

    def test_operation_flow(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']

        for operation, client in [
            ('approve', staff_client),
            ('mark-ready-to-ship', staff_client),
            ('mark-in-transit', staff_client),
            ('confirm-delivered', customer_client),
            ('activate', staff_client),
            ('schedule-return', customer_client),
            ('confirm-shipped-back', customer_client),
            ('confirm-returned', staff_client),
        ]:
            response = client.post(f'{API}/bookings/{booking_id}/{operation}')
            assert response.status_code == 200, operation

        booking = customer_client.get(f'{API}/bookings/{booking_id}').get_json()['data']
        assert booking['rental_status'] == 'completed'
        assert booking['shipping_status'] == 'returned'

        history = staff_client.get(f'{API}/bookings/{booking_id}/history').get_json()['data']
        assert history[0]['changed_by'] == 'admin'

    def test_customer_cannot_run_staff_operation(self, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        response = customer_client.post(f'{API}/bookings/{booking_id}/approve')
        assert response.status_code == 403

    def test_unknown_operation(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        response = staff_client.post(f'{API}/bookings/{booking_id}/teleport')
        assert response.status_code == 404
        assert 'teleport' in response.get_json()['error']

    def test_illegal_transition_envelope(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        response = staff_client.post(f'{API}/bookings/{booking_id}/activate')

        assert response.status_code == 409
        data = response.get_json()
        assert data['success'] is False
        assert data['code'] == 'illegal_transition'
        assert data['operation'] == 'activate'
        assert data['from_state'] == {'rental_status': 'pending', 'shipping_status': None}

    def test_conflict_envelope(self, staff_client, customer_client):
        first = _submit(customer_client).get_json()['data']['id']
        second = _submit(customer_client, '2024-06-05', '2024-06-08').get_json()['data']['id']
        staff_client.post(f'{API}/bookings/{first}/approve')

        response = staff_client.post(f'{API}/bookings/{second}/approve')
        assert response.status_code == 409
        data = response.get_json()
        assert data['code'] == 'booking_conflict'
        assert [c['id'] for c in data['conflicts']] == [first]

    def test_reject_reads_reason(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']

        response = staff_client.post(f'{API}/bookings/{booking_id}/reject')
        assert response.status_code == 422

        response = staff_client.post(f'{API}/bookings/{booking_id}/reject', json={'reason': 'Booked out'})
        assert response.status_code == 200
        assert response.get_json()['data']['rejection_reason'] == 'Booked out'

    def test_staff_entry_and_patch(self, staff_client):
        response = staff_client.post(f'{API}/bookings/staff', json={
            'item_id': 2, 'start_date': '2024-06-01', 'end_date': '2024-06-02',
            'customer_name': 'Phone order', 'receipt_ref': 'receipts/phone.png'
        })
        assert response.status_code == 201
        booking = response.get_json()['data']
        assert booking['booking_origin'] == 'staff_entered'
        assert booking['payments'][0]['payment_status'] == 'submitted'

        response = staff_client.patch(f"{API}/bookings/{booking['id']}", json={'end_date': '2024-06-03'})
        assert response.status_code == 200
        assert response.get_json()['data']['total_price'] == 285.0

    def test_attach_contract(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        response = staff_client.post(f'{API}/bookings/{booking_id}/contract',
                                     json={'contract_ref': 'contracts/42.pdf'})
        assert response.status_code == 200
        assert response.get_json()['data']['contract_ref'] == 'contracts/42.pdf'


class TestPaymentsApi:
    """Receipt submission and verification over HTTP."""

    def test_receipt_then_verify(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        booking = staff_client.post(f'{API}/bookings/{booking_id}/approve').get_json()['data']
        payment_id = booking['payments'][0]['id']

        response = customer_client.post(f'{API}/payments/{payment_id}/receipt',
                                        json={'receipt_ref': 'receipts/gcash.png'})
        assert response.status_code == 200
        assert response.get_json()['data']['payment_status'] == 'submitted'

        queue = staff_client.get(f'{API}/payments/awaiting-verification').get_json()
        assert [p['id'] for p in queue['data']] == [payment_id]

        assert customer_client.post(f'{API}/payments/{payment_id}/verify').status_code == 403
        response = staff_client.post(f'{API}/payments/{payment_id}/verify')
        assert response.get_json()['data']['payment_status'] == 'verified'


class TestExtensionsApi:
    """Extension request through application over HTTP."""

    def test_extension_flow(self, staff_client, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        for operation in ('approve', 'mark-ready-to-ship', 'mark-in-transit', 'confirm-delivered', 'activate'):
            staff_client.post(f'{API}/bookings/{booking_id}/{operation}')

        eligibility = customer_client.get(f'{API}/bookings/{booking_id}/extension-eligibility')
        assert eligibility.get_json()['data']['eligible'] is True

        response = customer_client.post(f'{API}/bookings/{booking_id}/extensions',
                                        json={'requested_end_date': '2024-06-10'})
        assert response.status_code == 201
        extension = response.get_json()['data']
        assert extension['additional_price'] == 200.0
        assert extension['requested_by'] == 2

        assert customer_client.post(f"{API}/extensions/{extension['id']}/approve").status_code == 403
        staff_client.post(f"{API}/extensions/{extension['id']}/approve", json={'notes': 'OK'})

        payment_id = extension['payment']['id']
        customer_client.post(f'{API}/payments/{payment_id}/receipt', json={'receipt_ref': 'receipts/ext.png'})
        staff_client.post(f'{API}/payments/{payment_id}/verify')

        response = staff_client.post(f"{API}/extensions/{extension['id']}/apply")
        assert response.status_code == 200
        assert response.get_json()['data']['end_date'] == '2024-06-10'

        mine = customer_client.get(f'{API}/extensions/mine').get_json()
        assert mine['count'] == 1

    def test_ineligible_request_is_409(self, customer_client):
        booking_id = _submit(customer_client).get_json()['data']['id']
        response = customer_client.post(f'{API}/bookings/{booking_id}/extensions',
                                        json={'requested_end_date': '2024-06-10'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'illegal_transition'
