"""
Order persistence - the storage side of checkout (business-scoped).

create_order, create_order_lines and decrement_stock only flush; the caller
owns the transaction (see OrderGateway.transaction).
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from branchpos.database import transaction
from branchpos.models import Order, OrderLine, Product
from branchpos.exceptions import DuplicateSubmissionError, InsufficientStockError, NotFoundError
from branchpos.services.business_service import get_business_profile
from branchpos.services.pricing_service import PricedLine, to_money
from branchpos.services.receipt_service import BusinessProfile

logger = logging.getLogger(__name__)


def find_order_by_idempotency_key(session, business_id: int, idempotency_key: str) -> Optional[Order]:
    return session.query(Order).filter(
        Order.business_id == business_id,
        Order.idempotency_key == idempotency_key
    ).first()


def create_order(session, business_id: int, draft) -> Order:
    """Insert the order header from a frozen OrderDraft."""
    if draft.idempotency_key:
        existing = find_order_by_idempotency_key(session, business_id, draft.idempotency_key)
        if existing:
            raise DuplicateSubmissionError(existing.id)

    pricing = draft.pricing
    order = Order(
        business_id=business_id,
        branch_id=draft.branch_id,
        employee_id=draft.employee_id,
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        subtotal=to_money(pricing.subtotal),
        discount_percent=pricing.order_discount_percent,
        discount_amount=to_money(pricing.order_discount_amount),
        tax_percent=pricing.tax_percent,
        tax_amount=to_money(pricing.tax_amount),
        total_amount=to_money(pricing.grand_total),
        payment_method=draft.payment_method.value,
        payment_status='paid',
        idempotency_key=draft.idempotency_key,
        created_at=datetime.now(),
    )
    session.add(order)
    try:
        session.flush()
    except IntegrityError:
        if not draft.idempotency_key:
            raise
        # A concurrent submit with the same key committed first
        session.rollback()
        existing = find_order_by_idempotency_key(session, business_id, draft.idempotency_key)
        if existing is None:
            raise
        logger.warning(f"[CHECKOUT] Duplicate submit business={business_id} key={draft.idempotency_key}")
        raise DuplicateSubmissionError(existing.id)
    return order


def create_order_lines(session, order_id: int, lines: Iterable[PricedLine]) -> List[OrderLine]:
    rows = [
        OrderLine(
            order_id=order_id,
            product_id=line.product_id,
            product_name=line.name,
            quantity=line.quantity,
            unit_price=to_money(line.unit_price),
            discount_percent=line.discount_percent,
            discount_amount=to_money(line.discount_amount),
            line_total=to_money(line.line_total),
        )
        for line in lines
    ]
    session.add_all(rows)
    session.flush()
    return rows


def decrement_stock(session, business_id: int, product_id: int, quantity: int, product_name: str = None) -> None:
    """
    Take quantity out of stock only if enough is left.

    A single conditional UPDATE, so two cashiers selling the same product
    cannot both read the same level and drive it negative.
    """
    updated = session.query(Product).filter(
        Product.id == product_id,
        Product.business_id == business_id,
        Product.stock_quantity >= quantity
    ).update(
        {Product.stock_quantity: Product.stock_quantity - quantity},
        synchronize_session=False
    )
    if updated == 1:
        return

    product = session.query(Product).filter(
        Product.id == product_id,
        Product.business_id == business_id
    ).first()
    if not product:
        raise NotFoundError(f'Product {product_id} not found.')
    raise InsufficientStockError(product_name or product.name, quantity, product.stock_quantity)


def get_order(session, business_id: int, order_id: int) -> Order:
    order = session.query(Order).filter(
        Order.id == order_id,
        Order.business_id == business_id
    ).first()
    if not order:
        raise NotFoundError(f'Order {order_id} not found.')
    return order


class OrderGateway:
    """
    Storage collaborator of Checkout, bound to one session and business.

    Every write happens inside ``transaction()`` so a failure at any step
    leaves neither order, lines nor stock changes behind.
    """

    def __init__(self, session, business_id: int):
        self.session = session
        self.business_id = business_id

    def transaction(self):
        return transaction(self.session)

    def get_business_profile(self) -> BusinessProfile:
        return get_business_profile(self.session, self.business_id)

    def create_order(self, draft) -> Order:
        return create_order(self.session, self.business_id, draft)

    def create_order_lines(self, order_id: int, lines: Iterable[PricedLine]) -> List[OrderLine]:
        return create_order_lines(self.session, order_id, lines)

    def decrement_stock(self, product_id: int, quantity: int, product_name: str = None) -> None:
        decrement_stock(self.session, self.business_id, product_id, quantity, product_name)
