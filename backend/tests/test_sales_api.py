# Overview: Pytest coverage for the sales HTTP API.

from datetime import timedelta

import pytest

from conftest import sale_payload
from shopkeeper.services import sale_lifecycle_service, sales_service
from shopkeeper.time_utils import utcnow


def _create(client, customer, product, qty=1, status=None):
    resp = client.post('/api/sales', json=sale_payload(
        customer.id, [(product.id, qty)], [('cash', f'{qty * 5}.00')], status
    ))
    assert resp.status_code == 201, resp.json
    return resp.json['sale']


class TestCreateSaleApi:

    def test_create(self, client, db_session, customer, product):
        resp = client.post('/api/sales', json=sale_payload(
            customer.id, [(product.id, 3)], [('cash', 15.0)]
        ))

        assert resp.status_code == 201
        sale = resp.json['sale']
        assert sale['total'] == '15.00'
        assert sale['status'] == 'completed'
        assert sale['items'][0]['unitPrice'] == '5.00'
        assert sale['createdAt'].endswith('Z')
        assert client.get(f'/api/products/{product.id}').json['product']['stock'] == 7

    def test_insufficient_stock(self, client, db_session, customer, make_product):
        p = make_product(stock=2)
        resp = client.post('/api/sales', json=sale_payload(customer.id, [(p.id, 3)], [('cash', 15)]))

        assert resp.status_code == 400
        assert resp.json == {
            'error': 'Insufficient stock for product: Widget',
            'code': 'INSUFFICIENT_STOCK',
            'details': {'productId': p.id, 'productName': 'Widget', 'requested': 3, 'available': 2},
        }

    def test_payment_mismatch(self, client, db_session, customer, product):
        resp = client.post('/api/sales', json=sale_payload(customer.id, [(product.id, 3)], [('cash', '14.00')]))
        assert resp.status_code == 400
        assert resp.json['code'] == 'PAYMENT_MISMATCH'

    def test_unknown_client(self, client, db_session, product):
        resp = client.post('/api/sales', json=sale_payload(99999, [(product.id, 1)], [('cash', 5)]))
        assert resp.status_code == 404
        assert resp.json['code'] == 'NOT_FOUND'

    def test_missing_items(self, client, db_session, customer):
        resp = client.post('/api/sales', json={'clientId': customer.id, 'paymentMethods': [{'type': 'cash', 'amount': 5}]})
        assert resp.status_code == 400
        assert resp.json['error'] == 'Missing required fields'

    @pytest.mark.parametrize('body,message', [
        ({'items': [], 'paymentMethods': []}, 'clientId is required'),
        ({'clientId': 'abc', 'items': [], 'paymentMethods': []}, 'clientId must be an integer'),
        ({'clientId': 1, 'items': [{'productId': 1, 'quantity': 0}], 'paymentMethods': []},
         'Quantity must be a positive integer'),
        ({'clientId': 1, 'items': [{'productId': 1, 'quantity': 1.5}], 'paymentMethods': []},
         'items[0].quantity must be an integer, not a decimal'),
        ({'clientId': 1, 'items': {}, 'paymentMethods': []}, 'items must be a list'),
        ({'clientId': 1, 'items': [], 'paymentMethods': [{'type': 'barter', 'amount': 1}]},
         'paymentMethods[0].type must be one of: cash, credit, debit, transfer, other'),
        ({'clientId': 1, 'items': [], 'paymentMethods': [{'type': 'cash', 'amount': -1}]},
         'paymentMethods[0].amount must be >= 0'),
        ({'clientId': 1, 'items': [], 'paymentMethods': [], 'status': 'shipped'},
         'status must be one of: pending, completed, cancelled'),
    ])
    def test_malformed_bodies(self, client, db_session, body, message):
        resp = client.post('/api/sales', json=body)
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_REQUEST'
        assert resp.json['error'] == message

    def test_non_object_body(self, client, db_session):
        resp = client.post('/api/sales', json=[1, 2, 3])
        assert resp.status_code == 400
        assert resp.json['error'] == 'Invalid JSON payload'

    def test_unexpected_failure_is_500(self, client, db_session, customer, product, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(sales_service, 'create_sale', boom)
        resp = client.post('/api/sales', json=sale_payload(customer.id, [(product.id, 1)], [('cash', 5)]))

        assert resp.status_code == 500
        assert resp.json == {'error': 'Internal server error', 'code': 'INTERNAL', 'details': {}}


class TestListSalesApi:

    def test_filters(self, client, db_session, customer, make_client, product):
        other = make_client()
        s1 = _create(client, customer, product)
        s2 = _create(client, customer, product, status='pending')
        _create(client, other, product)

        assert client.get('/api/sales').json['count'] == 3
        by_client = client.get(f'/api/sales?clientId={customer.id}').json
        assert [s['id'] for s in by_client['items']] == [s2['id'], s1['id']]
        pending = client.get('/api/sales?status=pending').json
        assert [s['id'] for s in pending['items']] == [s2['id']]

    def test_date_range(self, client, db_session, customer, product):
        _create(client, customer, product)
        today = utcnow().date()
        tomorrow = today + timedelta(days=1)

        assert client.get(f'/api/sales?startDate={today.isoformat()}&endDate={today.isoformat()}').json['count'] == 1
        assert client.get(f'/api/sales?startDate={tomorrow.isoformat()}').json['count'] == 0

    def test_bad_filters(self, client, db_session):
        assert client.get('/api/sales?clientId=abc').json['error'] == 'clientId must be an integer'
        assert client.get('/api/sales?clientId=abc').status_code == 400
        assert client.get('/api/sales?status=shipped').status_code == 400
        assert client.get('/api/sales?startDate=yesterday').status_code == 400


class TestSaleDetailApi:

    def test_get_with_client(self, client, db_session, customer, product):
        sale = _create(client, customer, product)

        resp = client.get(f"/api/sales/{sale['id']}")

        assert resp.status_code == 200
        assert resp.json['sale']['client']['name'] == 'Ada Buyer'

    def test_get_unknown(self, client, db_session):
        resp = client.get('/api/sales/99999')
        assert resp.status_code == 404
        assert resp.json['error'] == 'Sale not found'

    def test_update_status(self, client, db_session, customer, product):
        sale = _create(client, customer, product, status='pending')

        resp = client.put(f"/api/sales/{sale['id']}", json={'status': 'completed'})
        assert resp.status_code == 200
        assert resp.json['sale']['status'] == 'completed'

        again = client.put(f"/api/sales/{sale['id']}", json={'status': 'pending'})
        assert again.status_code == 400
        assert again.json['code'] == 'INVALID_STATE'

    def test_cancel_completed_sale(self, client, db_session, customer, product):
        sale = _create(client, customer, product, qty=2)

        resp = client.put(f"/api/sales/{sale['id']}", json={'status': 'cancelled'})

        assert resp.status_code == 200
        assert resp.json['sale']['status'] == 'cancelled'
        assert client.get(f'/api/products/{product.id}').json['product']['stock'] == 8

    def test_update_rejects_non_object_body(self, client, db_session, customer, product):
        sale = _create(client, customer, product, status='pending')

        resp = client.put(f"/api/sales/{sale['id']}", json=['completed'])

        assert resp.status_code == 400
        assert resp.json['error'] == 'Invalid JSON payload'
        assert client.get(f"/api/sales/{sale['id']}").json['sale']['status'] == 'pending'

    def test_update_requires_status(self, client, db_session, customer, product):
        sale = _create(client, customer, product, status='pending')
        resp = client.put(f"/api/sales/{sale['id']}", json={'total': '0.00'})
        assert resp.status_code == 400
        assert resp.json['error'] == 'Only status can be updated'

    def test_delete_pending(self, client, db_session, customer, product):
        sale = _create(client, customer, product, qty=2, status='pending')
        assert client.get(f'/api/products/{product.id}').json['product']['stock'] == 8

        resp = client.delete(f"/api/sales/{sale['id']}")

        assert resp.status_code == 200
        assert resp.json['ok'] is True
        assert resp.json['restored'] == [{'productId': product.id, 'quantity': 2}]
        assert client.get(f'/api/products/{product.id}').json['product']['stock'] == 10
        assert client.get(f"/api/sales/{sale['id']}").status_code == 404

    def test_delete_completed_refused(self, client, db_session, customer, product):
        sale = _create(client, customer, product)
        resp = client.delete(f"/api/sales/{sale['id']}")
        assert resp.status_code == 400
        assert resp.json['error'] == 'Only pending sales can be deleted'


def test_unexpected_failure_in_update_is_500(client, db_session, customer, product, monkeypatch):
    sale = _create(client, customer, product, status='pending')

    def boom(*args, **kwargs):
        raise RuntimeError("lock table corrupted")

    monkeypatch.setattr(sale_lifecycle_service, 'update_status', boom)
    resp = client.put(f"/api/sales/{sale['id']}", json={'status': 'completed'})

    assert resp.status_code == 500
    assert resp.json['code'] == 'INTERNAL'
