"""
Cart service - in-memory staging area for an in-progress sale.

The cart never performs I/O. Stock ceilings come from the Catalog it is bound
to; mutations that would exceed them are ignored rather than clamped, so the
cart always holds a sellable state.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from branchpos.models import PaymentMethod, normalize_payment_method
from branchpos.services.catalog_service import Catalog, CatalogProduct

ZERO = Decimal('0')
HUNDRED = Decimal('100')
PERCENT_STEP = Decimal('0.01')


def clamp_percent(value) -> Decimal:
    """
    Coerce a percent into [0, 100] with two decimals ('1e1' becomes 10.00).

    Unparseable input becomes 0.
    """
    try:
        percent = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not percent.is_finite():
        return ZERO
    percent = min(max(percent, ZERO), HUNDRED)
    return percent.quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


@dataclass
class CartLine:
    """One product entry in the cart."""
    product: CatalogProduct
    quantity: int = 1
    discount_percent: Decimal = ZERO

    @property
    def product_id(self) -> int:
        return self.product.id

    @property
    def unit_price(self) -> Decimal:
        return self.product.price


class Cart:
    """Ordered cart lines plus the session-level fields of a sale."""

    def __init__(self, catalog: Catalog, tax_percent=ZERO, branch_id: Optional[int] = None,
                 staff_id: Optional[int] = None, payment_method=PaymentMethod.CASH):
        self.catalog = catalog
        self._lines: Dict[int, CartLine] = {}
        self.branch_id = branch_id
        self.staff_id = staff_id
        self.customer_name: Optional[str] = None
        self.customer_phone: Optional[str] = None
        self.order_discount_percent = ZERO
        self.tax_percent = clamp_percent(tax_percent)
        self.payment_method = normalize_payment_method(payment_method)

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def get_line(self, product_id: int) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def _stock_ceiling(self, product_id: int, fallback: CatalogProduct) -> int:
        current = self.catalog.get(product_id)
        return (current or fallback).stock

    def add_line(self, product: CatalogProduct) -> bool:
        """
        Add one unit of product.

        Existing lines grow by one only while the result fits in stock;
        otherwise nothing changes. Returns True when the cart changed.
        """
        line = self._lines.get(product.id)
        if line is not None:
            if line.quantity + 1 > product.stock:
                return False
            line.product = product
            line.quantity += 1
            return True

        if product.stock < 1:
            return False
        self._lines[product.id] = CartLine(product=product, quantity=1)
        return True

    def set_quantity(self, product_id: int, quantity: int) -> bool:
        """
        Set a line's quantity.

        quantity <= 0 removes the line. A quantity above the product's
        current stock is rejected and the line keeps its old quantity.
        """
        line = self._lines.get(product_id)
        if line is None:
            return False
        quantity = int(quantity)
        if quantity <= 0:
            return self.remove_line(product_id)
        if quantity > self._stock_ceiling(product_id, line.product):
            return False
        line.quantity = quantity
        return True

    def set_line_discount(self, product_id: int, percent) -> bool:
        line = self._lines.get(product_id)
        if line is None:
            return False
        line.discount_percent = clamp_percent(percent)
        return True

    def remove_line(self, product_id: int) -> bool:
        return self._lines.pop(product_id, None) is not None

    def clear(self) -> None:
        """Empty the cart and reset customer fields and the order discount."""
        self._lines.clear()
        self.customer_name = None
        self.customer_phone = None
        self.order_discount_percent = ZERO

    # ------------------------------------------------------------------
    # Session-level fields
    # ------------------------------------------------------------------

    def set_order_discount(self, percent) -> None:
        self.order_discount_percent = clamp_percent(percent)

    def set_tax(self, percent) -> None:
        self.tax_percent = clamp_percent(percent)

    def set_customer(self, name: Optional[str] = None, phone: Optional[str] = None) -> None:
        self.customer_name = (name or '').strip() or None
        self.customer_phone = (phone or '').strip() or None

    def set_payment_method(self, method) -> None:
        """Raises ValueError for an unknown method."""
        self.payment_method = normalize_payment_method(method)

    def select_branch(self, branch_id: Optional[int]) -> None:
        self.branch_id = branch_id

    def select_staff(self, staff_id: Optional[int]) -> None:
        self.staff_id = staff_id

    # ------------------------------------------------------------------
    # Session cookie round trip
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation (Decimals as strings)."""
        return {
            'lines': [
                {
                    'product_id': line.product_id,
                    'quantity': line.quantity,
                    'discount_percent': str(line.discount_percent),
                }
                for line in self._lines.values()
            ],
            'branch_id': self.branch_id,
            'staff_id': self.staff_id,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'order_discount_percent': str(self.order_discount_percent),
            'tax_percent': str(self.tax_percent),
            'payment_method': self.payment_method.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], catalog: Catalog, default_tax_percent=ZERO) -> 'Cart':
        """
        Rebuild a cart against a freshly loaded catalog.

        Lines whose product left the catalog are dropped; the rest pick up the
        catalog's current price and stock.
        """
        data = data or {}
        try:
            payment_method = normalize_payment_method(data.get('payment_method') or PaymentMethod.CASH)
        except ValueError:
            payment_method = PaymentMethod.CASH

        cart = cls(
            catalog,
            tax_percent=data.get('tax_percent', default_tax_percent),
            branch_id=data.get('branch_id'),
            staff_id=data.get('staff_id'),
            payment_method=payment_method,
        )
        cart.customer_name = data.get('customer_name')
        cart.customer_phone = data.get('customer_phone')
        cart.order_discount_percent = clamp_percent(data.get('order_discount_percent', ZERO))

        for raw in data.get('lines', []):
            product = catalog.get(raw.get('product_id'))
            quantity = int(raw.get('quantity') or 0)
            if product is None or quantity <= 0:
                continue
            cart._lines[product.id] = CartLine(
                product=product,
                quantity=quantity,
                discount_percent=clamp_percent(raw.get('discount_percent', ZERO)),
            )
        return cart
