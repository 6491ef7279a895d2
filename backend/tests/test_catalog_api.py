# Overview: Pytest coverage for the products, categories and clients API.

from decimal import Decimal

from conftest import sale_payload
from shopkeeper.models import Product


class TestProductsApi:

    def test_create_product(self, client, db_session, make_category):
        tools = make_category(name="Tools")

        resp = client.post('/api/products', json={
            'name': 'Hammer',
            'price': '12.50',
            'cost': 7.25,
            'stock': 4,
            'categoryId': tools.id,
        })

        assert resp.status_code == 201
        product = resp.json['product']
        assert product['price'] == '12.50'
        assert product['cost'] == '7.25'
        assert product['stock'] == 4
        assert product['categoryName'] == 'Tools'

        history = client.get(f"/api/products/{product['id']}/price-history").json
        assert history['count'] == 1
        assert history['items'][0]['reason'] == 'Initial price'
        assert history['items'][0]['priceBefore'] is None

    def test_create_product_missing_fields(self, client, db_session):
        resp = client.post('/api/products', json={'name': 'Hammer'})
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_REQUEST'
        assert resp.json['error'] == 'Missing required fields: cost, price'

    def test_create_product_rejects_sub_cent_price(self, client, db_session):
        resp = client.post('/api/products', json={'name': 'Hammer', 'price': '1.005', 'cost': '1'})
        assert resp.status_code == 400

    def test_create_product_rejects_unknown_field(self, client, db_session):
        resp = client.post('/api/products', json={'name': 'Hammer', 'price': 1, 'cost': 1, 'sku': 'H-1'})
        assert resp.status_code == 400
        assert resp.json['error'] == 'Field not allowed: sku'

    def test_create_product_unknown_category(self, client, db_session):
        resp = client.post('/api/products', json={'name': 'Hammer', 'price': 1, 'cost': 1, 'categoryId': 99999})
        assert resp.status_code == 404

    def test_update_price_records_history(self, client, db_session, product):
        resp = client.put(
            f'/api/products/{product.id}',
            json={'price': '6.00', 'priceChangeReason': 'Supplier increase'},
            headers={'X-Actor-Id': 'u-7'},
        )
        assert resp.status_code == 200
        assert resp.json['product']['price'] == '6.00'

        history = client.get(f'/api/products/{product.id}/price-history').json
        assert history['count'] == 1
        entry = history['items'][0]
        assert entry['priceBefore'] == '5.00'
        assert entry['priceAfter'] == '6.00'
        assert entry['costBefore'] == entry['costAfter'] == '3.00'
        assert entry['reason'] == 'Supplier increase'
        assert entry['userId'] == 'u-7'

    def test_update_without_price_change_records_nothing(self, client, db_session, product):
        resp = client.put(f'/api/products/{product.id}', json={'name': 'Widget XL', 'price': '5.0'})
        assert resp.status_code == 200
        assert resp.json['product']['name'] == 'Widget XL'
        assert client.get(f'/api/products/{product.id}/price-history').json['count'] == 0

    def test_update_rejects_stock(self, client, db_session, product):
        resp = client.put(f'/api/products/{product.id}', json={'stock': 99})
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_REQUEST'
        assert client.get(f'/api/products/{product.id}').json['product']['stock'] == 10

    def test_update_unknown_product(self, client, db_session):
        resp = client.put('/api/products/99999', json={'name': 'Ghost'})
        assert resp.status_code == 404

    def test_delete_product_keeps_history(self, client, db_session):
        created = client.post('/api/products', json={'name': 'Temp', 'price': 1, 'cost': 1}).json['product']

        assert client.delete(f"/api/products/{created['id']}").status_code == 200
        assert client.get(f"/api/products/{created['id']}").status_code == 404
        assert client.delete(f"/api/products/{created['id']}").status_code == 404
        assert client.get(f"/api/products/{created['id']}/price-history").json['count'] == 1

    def test_list_filters(self, client, db_session, make_product, make_category):
        drinks = make_category(name="Drinks")
        make_product(name="Cola", stock=0, category=drinks)
        make_product(name="Water", stock=3, category=drinks)
        make_product(name="Soap", stock=3)

        all_products = client.get('/api/products').json
        assert [p['name'] for p in all_products['items']] == ['Cola', 'Soap', 'Water']

        in_category = client.get(f'/api/products?categoryId={drinks.id}').json
        assert in_category['count'] == 2

        in_stock = client.get(f'/api/products?categoryId={drinks.id}&inStock=1').json
        assert [p['name'] for p in in_stock['items']] == ['Water']

    def test_list_is_cached_until_a_write(self, client, db_session, make_product):
        make_product(name="First")
        assert client.get('/api/products').json['count'] == 1

        # Written behind the API's back: the cached listing does not see it
        make_product(name="Second")
        assert client.get('/api/products').json['count'] == 1

        client.post('/api/products', json={'name': 'Third', 'price': 1, 'cost': 1})
        assert client.get('/api/products').json['count'] == 3

    def test_sale_refreshes_cached_stock(self, client, db_session, customer, product):
        assert client.get('/api/products').json['items'][0]['stock'] == 10

        resp = client.post('/api/sales', json=sale_payload(customer.id, [(product.id, 3)], [('cash', 15)]))
        assert resp.status_code == 201

        assert client.get('/api/products').json['items'][0]['stock'] == 7


class TestStockAdjustment:

    def test_restock(self, client, db_session, product):
        resp = client.post(f'/api/products/{product.id}/stock', json={'delta': 5, 'reason': 'Delivery'})
        assert resp.status_code == 200
        assert resp.json['product']['stock'] == 15

    def test_shrinkage(self, client, db_session, product):
        resp = client.post(f'/api/products/{product.id}/stock', json={'delta': -4})
        assert resp.status_code == 200
        assert resp.json['product']['stock'] == 6

    def test_cannot_go_negative(self, client, db_session, product):
        resp = client.post(f'/api/products/{product.id}/stock', json={'delta': -11})
        assert resp.status_code == 400
        assert resp.json['code'] == 'INSUFFICIENT_STOCK'
        assert resp.json['details']['available'] == 10
        assert db_session.get(Product, product.id, populate_existing=True).stock == 10

    def test_invalid_delta(self, client, db_session, product):
        assert client.post(f'/api/products/{product.id}/stock', json={'delta': 0}).status_code == 400
        assert client.post(f'/api/products/{product.id}/stock', json={'delta': 'ten'}).status_code == 400
        assert client.post(f'/api/products/{product.id}/stock', json={'delta': True}).status_code == 400

    def test_non_object_body(self, client, db_session, product):
        resp = client.post(f'/api/products/{product.id}/stock', json=[1])
        assert resp.status_code == 400
        assert resp.json['error'] == 'Invalid JSON payload'

    def test_unknown_product(self, client, db_session):
        resp = client.post('/api/products/99999/stock', json={'delta': 1})
        assert resp.status_code == 404


class TestCategoriesApi:

    def test_list_seeds_defaults(self, client, db_session):
        resp = client.get('/api/categories')

        assert resp.status_code == 200
        names = [c['name'] for c in resp.json['items']]
        assert resp.json['count'] == 6
        assert names == sorted(names)
        assert 'Electronics' in names

    def test_create_and_duplicate(self, client, db_session):
        resp = client.post('/api/categories', json={'name': 'Garden'})
        assert resp.status_code == 201
        assert resp.json['category']['color'] == '#6B7280'

        dup = client.post('/api/categories', json={'name': 'Garden'})
        assert dup.status_code == 409
        assert dup.json['code'] == 'CONFLICT'

    def test_rename_shows_in_product_listing(self, client, db_session, make_category, make_product):
        cat = make_category(name="Drinks")
        make_product(name="Cola", category=cat)
        assert client.get('/api/products').json['items'][0]['categoryName'] == 'Drinks'

        resp = client.put(f'/api/categories/{cat.id}', json={'name': 'Beverages', 'color': '#000000'})
        assert resp.status_code == 200
        assert client.get('/api/products').json['items'][0]['categoryName'] == 'Beverages'

    def test_delete_in_use_refused(self, client, db_session, make_category, make_product):
        cat = make_category(name="Drinks")
        make_product(name="Cola", category=cat)

        resp = client.delete(f'/api/categories/{cat.id}')
        assert resp.status_code == 400
        assert resp.json['code'] == 'INVALID_STATE'
        assert resp.json['details'] == {'productsCount': 1}

    def test_delete_unused(self, client, db_session, make_category):
        cat = make_category(name="Seasonal")
        assert client.delete(f'/api/categories/{cat.id}').status_code == 200
        assert client.get(f'/api/categories/{cat.id}').status_code == 404


class TestClientsApi:

    def test_create_and_get(self, client, db_session):
        resp = client.post('/api/clients', json={
            'name': 'Grace Shopper',
            'email': 'grace@example.com',
            'phone': '555-0100',
        })
        assert resp.status_code == 201
        created = resp.json['client']
        assert created['address'] == ''

        fetched = client.get(f"/api/clients/{created['id']}").json['client']
        assert fetched['email'] == 'grace@example.com'

    def test_duplicate_email_case_insensitive(self, client, db_session, customer):
        resp = client.post('/api/clients', json={'name': 'Other Ada', 'email': 'ADA@example.com'})
        assert resp.status_code == 409
        assert resp.json['error'] == 'Email already in use'

    def test_update_to_taken_email(self, client, db_session, customer, make_client):
        other = make_client(email='other@example.com')
        resp = client.put(f'/api/clients/{other.id}', json={'email': 'ada@example.com'})
        assert resp.status_code == 409

    def test_invalid_email(self, client, db_session):
        resp = client.post('/api/clients', json={'name': 'Nobody', 'email': 'not-an-email'})
        assert resp.status_code == 400

    def test_search(self, client, db_session, make_client):
        make_client(name='Alice Smith', email='alice@example.com')
        make_client(name='Bob Jones', email='bob@shop.test')

        assert client.get('/api/clients?search=smith').json['count'] == 1
        assert client.get('/api/clients?search=SHOP.TEST').json['items'][0]['name'] == 'Bob Jones'
        assert client.get('/api/clients').json['count'] == 2

    def test_delete_with_sales_refused(self, client, db_session, customer, product):
        client.post('/api/sales', json=sale_payload(customer.id, [(product.id, 1)], [('cash', '5.00')]))

        resp = client.delete(f'/api/clients/{customer.id}')
        assert resp.status_code == 400
        assert resp.json['details'] == {'salesCount': 1}

    def test_delete_without_sales(self, client, db_session, customer):
        resp = client.delete(f'/api/clients/{customer.id}')
        assert resp.status_code == 200
        assert client.get(f'/api/clients/{customer.id}').status_code == 404

    def test_unknown_client(self, client, db_session):
        assert client.get('/api/clients/99999').status_code == 404
        assert client.put('/api/clients/99999', json={'name': 'Ghost'}).status_code == 404
        assert client.delete('/api/clients/99999').status_code == 404


def test_decimal_prices_survive_round_trip(client, db_session):
    created = client.post('/api/products', json={'name': 'Penny', 'price': 0.1, 'cost': '0.05'}).json['product']
    assert created['price'] == '0.10'
    assert db_session.get(Product, created['id']).price == Decimal('0.10')
