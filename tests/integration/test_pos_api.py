"""
Integration tests for the point-of-sale HTTP API.
"""

import pytest
from decimal import Decimal

from branchpos.models import Order, Product
from conftest import make_product, order_count, stock_of


def select_branch(client, branch):
    response = client.patch('/pos/cart/session', json={'branch_id': branch.id})
    assert response.status_code == 200
    return response.get_json()


def add(client, product, quantity=1):
    response = client.post('/pos/cart/items', json={'product_id': product.id})
    if quantity != 1:
        response = client.patch(f'/pos/cart/items/{product.id}', json={'quantity': quantity})
    return response


@pytest.fixture
def pos(authenticated_client, branch):
    """Signed-in client with a branch selected."""
    select_branch(authenticated_client, branch)
    return authenticated_client


class TestProducts:

    def test_requires_login(self, client):
        assert client.get('/pos/products').status_code == 401

    def test_without_branch_lists_shared_products_only(self, authenticated_client, laptop, tea):
        data = authenticated_client.get('/pos/products').get_json()
        assert [p['id'] for p in data['products']] == [tea.id]
        assert data['branch_id'] is None

    def test_branch_catalog_and_search(self, pos, laptop, tea, headphones):
        data = pos.get('/pos/products').get_json()
        assert {p['id'] for p in data['products']} == {laptop.id, tea.id, headphones.id}
        assert data['categories'] == ['Accessories', 'Electronics', 'Food']

        data = pos.get('/pos/products?q=slv').get_json()
        assert [p['name'] for p in data['products']] == ['Laptop Sleeve']

        data = pos.get('/pos/products?category=Food').get_json()
        assert [p['id'] for p in data['products']] == [tea.id]


class TestCart:

    def test_new_cart_uses_default_tax(self, authenticated_client):
        data = authenticated_client.get('/pos/cart').get_json()
        assert data['lines'] == []
        assert Decimal(data['session']['tax_percent']) == Decimal('18')
        assert data['can_checkout'] is False

    def test_add_and_increment(self, pos, laptop):
        add(pos, laptop)
        data = pos.post('/pos/cart/items', json={'product_id': laptop.id}).get_json()

        assert data['changed'] is True
        assert data['lines'][0]['quantity'] == 2
        assert data['totals']['subtotal'] == '200.00'
        assert data['can_checkout'] is True

    def test_add_is_capped_at_stock(self, pos, headphones):
        add(pos, headphones, 3)
        data = pos.post('/pos/cart/items', json={'product_id': headphones.id}).get_json()

        assert data['changed'] is False
        assert data['lines'][0]['quantity'] == 3

    def test_quantity_above_stock_is_rejected(self, pos, laptop):
        add(pos, laptop, 2)
        data = pos.patch(f'/pos/cart/items/{laptop.id}', json={'quantity': 9}).get_json()

        assert data['changed'] is False
        assert data['lines'][0]['quantity'] == 2

    def test_quantity_zero_removes_line(self, pos, laptop):
        add(pos, laptop)
        data = pos.patch(f'/pos/cart/items/{laptop.id}', json={'quantity': 0}).get_json()
        assert data['lines'] == []

    def test_line_discount(self, pos, headphones):
        add(pos, headphones)
        data = pos.patch(f'/pos/cart/items/{headphones.id}', json={'discount_percent': 50}).get_json()

        assert data['totals']['lines'][0]['line_total'] == '100.00'
        assert data['totals']['lines'][0]['discount_amount'] == '100.00'

    def test_unknown_product_is_not_found(self, pos):
        response = pos.post('/pos/cart/items', json={'product_id': 999999})
        assert response.status_code == 404

    def test_product_of_another_business_is_not_found(self, pos, session, other_business):
        foreign = make_product(session, other_business, 'Foreign', 10, 5)
        response = pos.post('/pos/cart/items', json={'product_id': foreign.id})
        assert response.status_code == 404

    def test_invalid_product_id(self, pos):
        response = pos.post('/pos/cart/items', json={'product_id': 'abc'})
        assert response.status_code == 400

    def test_update_line_not_in_cart(self, pos, laptop):
        response = pos.patch(f'/pos/cart/items/{laptop.id}', json={'quantity': 1})
        assert response.status_code == 404

    def test_remove_and_clear(self, pos, laptop, tea):
        add(pos, laptop)
        add(pos, tea)

        data = pos.delete(f'/pos/cart/items/{laptop.id}').get_json()
        assert [l['product_id'] for l in data['lines']] == [tea.id]

        data = pos.delete('/pos/cart').get_json()
        assert data['lines'] == []
        assert data['session']['branch_id'] is not None

    def test_changing_branch_drops_lines_not_sold_there(self, pos, second_branch, laptop, tea):
        add(pos, laptop)
        add(pos, tea)

        data = select_branch(pos, second_branch)

        assert [l['product_id'] for l in data['lines']] == [tea.id]
        assert data['session']['branch_id'] == second_branch.id


class TestSessionFields:

    def test_discount_tax_customer_and_payment(self, pos, cashier):
        response = pos.patch('/pos/cart/session', json={
            'staff_id': cashier.id,
            'customer_name': 'Ravi',
            'customer_phone': '98765',
            'discount_percent': 150,
            'tax_percent': '5',
            'payment_method': 'UPI'
        })

        session_data = response.get_json()['session']
        assert session_data['staff_id'] == cashier.id
        assert session_data['customer_name'] == 'Ravi'
        assert Decimal(session_data['order_discount_percent']) == Decimal('100')
        assert Decimal(session_data['tax_percent']) == Decimal('5')
        assert session_data['payment_method'] == 'mobile'

    def test_invalid_payment_method(self, pos):
        response = pos.patch('/pos/cart/session', json={'payment_method': 'cheque'})
        assert response.status_code == 400

    def test_unknown_branch(self, authenticated_client):
        response = authenticated_client.patch('/pos/cart/session', json={'branch_id': 999999})
        assert response.status_code == 404

    def test_staff_from_another_branch_is_rejected(self, pos, session, business, second_branch):
        from branchpos.models import Employee
        other = Employee(business_id=business.id, branch_id=second_branch.id, name='Kiran', is_active=True)
        session.add(other)
        session.commit()

        response = pos.patch('/pos/cart/session', json={'staff_id': other.id})
        assert response.status_code == 404

    def test_branch_change_clears_staff_of_the_old_branch(self, pos, session, business, branch, second_branch,
                                                        cashier, tea):
        from branchpos.models import Employee
        floater = Employee(business_id=business.id, branch_id=None, name='Meena', is_active=True)
        session.add(floater)
        session.commit()

        pos.patch('/pos/cart/session', json={'staff_id': cashier.id})
        data = select_branch(pos, second_branch)
        assert data['session']['staff_id'] is None

        add(pos, tea)
        pos.post('/pos/checkout')
        order = session.query(Order).filter(Order.business_id == business.id).one()
        assert order.employee_id is None

        select_branch(pos, branch)
        pos.patch('/pos/cart/session', json={'staff_id': floater.id})
        assert select_branch(pos, second_branch)['session']['staff_id'] == floater.id

    def test_carts_are_kept_per_business(self, authenticated_client, business, other_business, tea):
        with authenticated_client.session_transaction() as sess:
            sess['cart_by_business'] = {
                str(other_business.id): {'lines': [{'product_id': tea.id, 'quantity': 2}]}
            }

        assert authenticated_client.get('/pos/cart').get_json()['lines'] == []

        add(authenticated_client, tea)
        with authenticated_client.session_transaction() as sess:
            carts = sess['cart_by_business']
            assert set(carts) == {str(business.id), str(other_business.id)}
            assert carts[str(business.id)]['lines'][0]['quantity'] == 1


class TestCheckout:

    def test_checkout_commits_and_returns_receipt(self, pos, session, business, laptop):
        add(pos, laptop, 2)
        pos.patch('/pos/cart/session', json={'discount_percent': 10, 'customer_name': 'Ravi'})

        response = pos.post('/pos/checkout', json={'idempotency_key': 'till-1-0001'})

        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == 'committed'
        assert data['receipt']['total'] == '212.40'
        assert data['receipt']['tax_amount'] == '32.40'
        assert data['receipt']['customer']['name'] == 'Ravi'
        assert 'TOTAL:' in data['receipt_text']
        assert '₹212.40' in data['receipt_text']
        assert 'Payment Method: CASH' in data['receipt_text']

        assert stock_of(session, laptop.id) == 3
        assert order_count(session, business.id) == 1

        cart = pos.get('/pos/cart').get_json()
        assert cart['lines'] == []
        assert cart['session']['customer_name'] is None
        assert Decimal(cart['session']['order_discount_percent']) == Decimal('0')
        assert cart['session']['branch_id'] is not None

    def test_mixed_line_discounts(self, pos, session, tea, headphones):
        add(pos, tea)
        add(pos, headphones)
        pos.patch(f'/pos/cart/items/{headphones.id}', json={'discount_percent': 50})
        pos.patch('/pos/cart/session', json={'tax_percent': 0})

        data = pos.post('/pos/checkout').get_json()

        assert data['receipt']['subtotal'] == '150.00'
        assert data['receipt']['total'] == '150.00'
        assert stock_of(session, tea.id) == 9
        assert stock_of(session, headphones.id) == 2

    def test_empty_cart_is_ignored(self, pos, session, business):
        response = pos.post('/pos/checkout')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'ignored'
        assert order_count(session, business.id) == 0

    def test_cart_without_branch_is_ignored(self, authenticated_client, session, business, tea):
        add(authenticated_client, tea)

        response = authenticated_client.post('/pos/checkout')

        assert response.get_json()['status'] == 'ignored'
        assert stock_of(session, tea.id) == 10

    def test_stock_shortfall_keeps_cart(self, pos, session, business, laptop):
        add(pos, laptop, 3)
        session.query(Product).filter(Product.id == laptop.id).update({Product.stock_quantity: 1})
        session.commit()

        response = pos.post('/pos/checkout')

        assert response.status_code == 409
        data = response.get_json()
        assert data['status'] == 'error'
        assert data['product'] == 'Laptop Sleeve'
        assert order_count(session, business.id) == 0
        assert stock_of(session, laptop.id) == 1

        cart = pos.get('/pos/cart').get_json()
        assert cart['lines'][0]['quantity'] == 3

    def test_repeated_idempotency_key_is_rejected(self, pos, session, business, laptop):
        add(pos, laptop)
        first = pos.post('/pos/checkout', json={'idempotency_key': 'dup-1'})
        assert first.status_code == 201

        add(pos, laptop)
        second = pos.post('/pos/checkout', json={'idempotency_key': 'dup-1'})

        assert second.status_code == 409
        assert second.get_json()['order_id'] == first.get_json()['receipt']['order_id']
        assert order_count(session, business.id) == 1
        assert stock_of(session, laptop.id) == 4


class TestReceipts:

    def test_reprint_json_and_text(self, pos, laptop):
        add(pos, laptop, 2)
        order_id = pos.post('/pos/checkout').get_json()['receipt']['order_id']

        data = pos.get(f'/pos/orders/{order_id}/receipt').get_json()
        assert data['total'] == '236.00'
        assert data['lines'][0]['name'] == 'Laptop Sleeve'

        response = pos.get(f'/pos/orders/{order_id}/receipt?format=text')
        assert response.status_code == 200
        assert response.mimetype == 'text/plain'
        text = response.get_data(as_text=True)
        assert 'Corner Electronics' in text
        assert f'Receipt #: {str(order_id).zfill(8)}' in text

    def test_receipt_of_unknown_order(self, pos):
        assert pos.get('/pos/orders/999999/receipt').status_code == 404

    def test_receipt_of_another_business(self, pos, session, other_business):
        from branchpos.models import Branch
        foreign_branch = Branch(business_id=other_business.id, name='Elsewhere', is_active=True)
        session.add(foreign_branch)
        session.flush()
        order = Order(business_id=other_business.id, branch_id=foreign_branch.id, subtotal=1,
                      total_amount=1, payment_method='cash')
        session.add(order)
        session.commit()

        assert pos.get(f'/pos/orders/{order.id}/receipt').status_code == 404


def test_metrics_endpoint(client):
    client.get('/auth/me')
    response = client.get('/metrics')

    assert response.status_code == 200
    assert b'http_requests_total' in response.data
    assert b'pos_checkouts' in response.data
