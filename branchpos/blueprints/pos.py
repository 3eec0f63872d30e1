"""Point of sale blueprint - cart, checkout and receipts (JSON, business-scoped)."""
import time
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Response, current_app, g, jsonify, request, session
from branchpos.database import get_session
from branchpos.exceptions import BusinessLogicError, CheckoutError, NotFoundError
from branchpos.middleware import require_login, require_business
from branchpos.blueprints.metrics import record_checkout
from branchpos.services import business_service, order_service
from branchpos.services.cart_service import Cart
from branchpos.services.catalog_service import Catalog, load_catalog, invalidate_catalog
from branchpos.services.checkout_service import Checkout
from branchpos.services.order_service import OrderGateway
from branchpos.services.pricing_service import price_cart
from branchpos.services.receipt_service import receipt_from_order, receipt_to_dict, render_text

pos_bp = Blueprint('pos', __name__, url_prefix='/pos')


# ============================================================================
# Helpers
# ============================================================================

def _payload() -> Dict[str, Any]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _parse_int(value, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BusinessLogicError(f'Invalid {field}: {value!r}')


def _optional_int(value, field: str) -> Optional[int]:
    if value in (None, ''):
        return None
    return _parse_int(value, field)


def _load_catalog(db_session, branch_id: Optional[int]) -> Catalog:
    return load_catalog(
        db_session, g.pos.business_id, branch_id,
        cache=current_app.extensions.get('cache'),
        ttl=current_app.config.get('CACHE_CATALOG_TTL')
    )


def get_cart(db_session) -> Cart:
    """Rebuild the cart of the current business from the session cookie."""
    raw = session.get('cart_by_business', {}).get(str(g.pos.business_id))
    branch_id = (raw or {}).get('branch_id')
    catalog = _load_catalog(db_session, branch_id)
    return Cart.from_dict(raw, catalog, default_tax_percent=current_app.config.get('POS_DEFAULT_TAX_PERCENT', '0'))


def save_cart(cart: Cart) -> None:
    carts = dict(session.get('cart_by_business', {}))
    carts[str(g.pos.business_id)] = cart.to_dict()
    session['cart_by_business'] = carts
    session.modified = True


def _cart_view(cart: Cart, changed: Optional[bool] = None) -> Dict[str, Any]:
    view = {
        'lines': [
            {
                'product_id': line.product_id,
                'name': line.product.name,
                'unit_price': str(line.unit_price),
                'quantity': line.quantity,
                'stock': line.product.stock,
                'discount_percent': str(line.discount_percent),
            }
            for line in cart.lines
        ],
        'session': {
            'branch_id': cart.branch_id,
            'staff_id': cart.staff_id,
            'customer_name': cart.customer_name,
            'customer_phone': cart.customer_phone,
            'order_discount_percent': str(cart.order_discount_percent),
            'tax_percent': str(cart.tax_percent),
            'payment_method': cart.payment_method.value,
        },
        'totals': price_cart(cart).to_dict(),
        'can_checkout': not cart.is_empty() and cart.branch_id is not None,
    }
    if changed is not None:
        view['changed'] = changed
    return view


def _product_view(product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'name': product.name,
        'price': str(product.price),
        'stock': product.stock,
        'category': product.category,
        'sku': product.sku,
    }


# ============================================================================
# Catalog
# ============================================================================

@pos_bp.route('/products', methods=['GET'])
@require_login
@require_business
def products() -> Tuple[Response, int]:
    """Search the catalog of the cart's branch."""
    cart = get_cart(get_session())
    found = cart.catalog.search(request.args.get('q', ''), request.args.get('category', ''))
    return jsonify({
        'branch_id': cart.branch_id,
        'products': [_product_view(p) for p in found],
        'categories': cart.catalog.categories(),
    }), 200


# ============================================================================
# Cart
# ============================================================================

@pos_bp.route('/cart', methods=['GET'])
@require_login
@require_business
def cart_show() -> Tuple[Response, int]:
    return jsonify(_cart_view(get_cart(get_session()))), 200


@pos_bp.route('/cart/items', methods=['POST'])
@require_login
@require_business
def cart_add() -> Tuple[Response, int]:
    """Add one unit of a product; silently capped at available stock."""
    cart = get_cart(get_session())
    product_id = _parse_int(_payload().get('product_id'), 'product_id')

    product = cart.catalog.get(product_id)
    if product is None:
        raise NotFoundError('Product not found or out of stock at this branch.')

    changed = cart.add_line(product)
    save_cart(cart)
    current_app.logger.info(
        f"[cart_add] business={g.pos.business_id} product={product_id} changed={changed}"
    )
    return jsonify(_cart_view(cart, changed)), 200


@pos_bp.route('/cart/items/<int:product_id>', methods=['PATCH'])
@require_login
@require_business
def cart_update(product_id: int) -> Tuple[Response, int]:
    """Update quantity and/or discount of a line. quantity <= 0 removes it."""
    cart = get_cart(get_session())
    if cart.get_line(product_id) is None:
        raise NotFoundError('Product is not in the cart.')

    payload = _payload()
    changed = False
    if 'discount_percent' in payload:
        changed = cart.set_line_discount(product_id, payload['discount_percent']) or changed
    if 'quantity' in payload:
        changed = cart.set_quantity(product_id, _parse_int(payload['quantity'], 'quantity')) or changed

    save_cart(cart)
    return jsonify(_cart_view(cart, changed)), 200


@pos_bp.route('/cart/items/<int:product_id>', methods=['DELETE'])
@require_login
@require_business
def cart_remove(product_id: int) -> Tuple[Response, int]:
    cart = get_cart(get_session())
    changed = cart.remove_line(product_id)
    save_cart(cart)
    return jsonify(_cart_view(cart, changed)), 200


@pos_bp.route('/cart', methods=['DELETE'])
@require_login
@require_business
def cart_clear() -> Tuple[Response, int]:
    cart = get_cart(get_session())
    cart.clear()
    save_cart(cart)
    return jsonify(_cart_view(cart, True)), 200


@pos_bp.route('/cart/session', methods=['PATCH'])
@require_login
@require_business
def cart_session() -> Tuple[Response, int]:
    """Branch, staff, customer, order discount, tax and payment method."""
    db_session = get_session()
    cart = get_cart(db_session)
    payload = _payload()

    if 'branch_id' in payload:
        branch_id = _optional_int(payload['branch_id'], 'branch_id')
        if branch_id is not None:
            business_service.get_active_branch(db_session, g.pos.business_id, branch_id)
        if branch_id != cart.branch_id:
            cart.select_branch(branch_id)
            # Different branch, different stock: rebind lines to its catalog
            cart = Cart.from_dict(cart.to_dict(), _load_catalog(db_session, branch_id))
            if cart.staff_id is not None and 'staff_id' not in payload:
                try:
                    business_service.get_active_employee(db_session, g.pos.business_id, cart.staff_id, branch_id)
                except NotFoundError:
                    current_app.logger.info(
                        f"[cart_session] staff={cart.staff_id} not at branch={branch_id}, cleared"
                    )
                    cart.select_staff(None)

    if 'staff_id' in payload:
        staff_id = _optional_int(payload['staff_id'], 'staff_id')
        if staff_id is not None:
            business_service.get_active_employee(db_session, g.pos.business_id, staff_id, cart.branch_id)
        cart.select_staff(staff_id)

    if 'customer_name' in payload or 'customer_phone' in payload:
        cart.set_customer(
            payload.get('customer_name', cart.customer_name),
            payload.get('customer_phone', cart.customer_phone)
        )

    if 'discount_percent' in payload:
        cart.set_order_discount(payload['discount_percent'])

    if 'tax_percent' in payload:
        cart.set_tax(payload['tax_percent'])

    if 'payment_method' in payload:
        try:
            cart.set_payment_method(payload['payment_method'])
        except ValueError:
            raise BusinessLogicError(f"Invalid payment method: {payload['payment_method']!r}")

    save_cart(cart)
    return jsonify(_cart_view(cart)), 200


# ============================================================================
# Checkout & receipts
# ============================================================================

@pos_bp.route('/checkout', methods=['POST'])
@require_login
@require_business
def checkout() -> Tuple[Response, int]:
    """
    Commit the cart as an order.

    Empty cart or no branch: nothing happens ('ignored'). On failure the
    cart stays as it was so the cashier can retry.
    """
    db_session = get_session()
    cart = get_cart(db_session)
    idempotency_key = (_payload().get('idempotency_key') or '').strip() or None

    flow = Checkout(
        OrderGateway(db_session, g.pos.business_id),
        footer=current_app.config.get('RECEIPT_FOOTER', 'Thank you for your business!')
    )
    started_at = time.perf_counter()
    try:
        receipt = flow.commit(cart, idempotency_key=idempotency_key)
    except CheckoutError:
        record_checkout('failed')
        raise

    if receipt is None:
        record_checkout('ignored')
        return jsonify({'status': 'ignored', 'cart': _cart_view(cart)}), 200

    record_checkout('committed', started_at, receipt.total)
    invalidate_catalog(current_app.extensions.get('cache'), g.pos.business_id)
    save_cart(cart)

    currency = current_app.config.get('POS_CURRENCY_SYMBOL', '₹')
    return jsonify({
        'status': 'committed',
        'receipt': receipt_to_dict(receipt),
        'receipt_text': render_text(receipt, currency),
    }), 201


@pos_bp.route('/orders/<int:order_id>/receipt', methods=['GET'])
@require_login
@require_business
def order_receipt(order_id: int):
    """Reprint the receipt of a committed order (JSON, or ?format=text)."""
    db_session = get_session()
    order = order_service.get_order(db_session, g.pos.business_id, order_id)
    profile = business_service.get_business_profile(db_session, g.pos.business_id)
    receipt = receipt_from_order(
        order, profile, current_app.config.get('RECEIPT_FOOTER', 'Thank you for your business!')
    )

    if request.args.get('format') == 'text':
        currency = current_app.config.get('POS_CURRENCY_SYMBOL', '₹')
        return Response(render_text(receipt, currency), mimetype='text/plain; charset=utf-8')
    return jsonify(receipt_to_dict(receipt)), 200
