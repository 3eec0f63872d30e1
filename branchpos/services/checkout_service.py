"""
Checkout service - turns an open cart into a committed order.

States: IDLE -> VALIDATING -> COMMITTING -> COMMITTED | FAILED.

A commit request on an empty cart, without a branch, or while another commit
is in flight is a guard rejection: nothing changes and None is returned.
Totals are frozen into an OrderDraft before any I/O. Order insert, line
inserts and stock decrements run in one transaction; on failure the cart is
left exactly as it was and CheckoutError is raised for the caller to surface.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from branchpos.exceptions import CheckoutError, PosError
from branchpos.models import PaymentMethod
from branchpos.services.pricing_service import PricingSnapshot, price_cart
from branchpos.services.receipt_service import DEFAULT_FOOTER, Receipt, build_receipt

logger = logging.getLogger(__name__)


class CheckoutState(enum.Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    COMMITTING = 'committing'
    COMMITTED = 'committed'
    FAILED = 'failed'


@dataclass(frozen=True)
class OrderDraft:
    """Everything needed to persist an order, captured at commit time."""
    branch_id: int
    employee_id: Optional[int]
    customer_name: Optional[str]
    customer_phone: Optional[str]
    payment_method: PaymentMethod
    pricing: PricingSnapshot
    idempotency_key: Optional[str] = None


def freeze_cart(cart, idempotency_key: Optional[str] = None) -> OrderDraft:
    return OrderDraft(
        branch_id=cart.branch_id,
        employee_id=cart.staff_id,
        customer_name=cart.customer_name,
        customer_phone=cart.customer_phone,
        payment_method=cart.payment_method,
        pricing=price_cart(cart),
        idempotency_key=idempotency_key or None,
    )


class Checkout:
    """One checkout session over an OrderGateway."""

    def __init__(self, gateway, footer: str = DEFAULT_FOOTER):
        self.gateway = gateway
        self.footer = footer
        self.state = CheckoutState.IDLE
        self.receipt: Optional[Receipt] = None
        self.error: Optional[Exception] = None

    @property
    def in_flight(self) -> bool:
        return self.state in (CheckoutState.VALIDATING, CheckoutState.COMMITTING)

    def can_commit(self, cart) -> bool:
        return not self.in_flight and not cart.is_empty() and cart.branch_id is not None

    def commit(self, cart, idempotency_key: Optional[str] = None) -> Optional[Receipt]:
        if not self.can_commit(cart):
            logger.info(
                f"[CHECKOUT] commit ignored: state={self.state.value}, "
                f"lines={len(cart)}, branch={cart.branch_id}"
            )
            return None

        self.state = CheckoutState.VALIDATING
        self.error = None
        try:
            draft = freeze_cart(cart, idempotency_key)
            profile = self.gateway.get_business_profile()

            self.state = CheckoutState.COMMITTING
            with self.gateway.transaction():
                order = self.gateway.create_order(draft)
                self.gateway.create_order_lines(order.id, draft.pricing.lines)
                for line in draft.pricing.lines:
                    self.gateway.decrement_stock(line.product_id, line.quantity, line.name)
            order_id, created_at = order.id, order.created_at
        except PosError as e:
            self._fail(e)
            raise CheckoutError(e.message, cause=e) from e
        except Exception as e:
            self._fail(e)
            raise CheckoutError(cause=e) from e

        self.receipt = build_receipt(order_id, created_at, profile, draft, self.footer)
        cart.clear()
        self.state = CheckoutState.COMMITTED
        logger.info(
            f"[CHECKOUT] order={order_id} branch={draft.branch_id} "
            f"lines={len(draft.pricing.lines)} total={self.receipt.total}"
        )
        return self.receipt

    def _fail(self, error: Exception) -> None:
        self.state = CheckoutState.FAILED
        self.error = error
        logger.warning(f"[CHECKOUT] commit failed: {error}")
