"""
Pricing engine - pure functions over cart lines and two rates.

All arithmetic runs on Decimal at full precision. Rounding to cents happens
only through to_money(), which callers apply when persisting or displaying.
Percent inputs are expected to be clamped already (see cart_service).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Tuple

HUNDRED = Decimal('100')
CENT = Decimal('0.01')


def to_money(value) -> Decimal:
    """Round to two decimals, half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_gross(unit_price: Decimal, quantity: int) -> Decimal:
    return unit_price * quantity


def line_total(unit_price: Decimal, quantity: int, discount_percent: Decimal) -> Decimal:
    """price * quantity * (1 - discount / 100)."""
    return unit_price * quantity * (1 - discount_percent / HUNDRED)


def line_discount_amount(unit_price: Decimal, quantity: int, discount_percent: Decimal) -> Decimal:
    return line_gross(unit_price, quantity) - line_total(unit_price, quantity, discount_percent)


def subtotal(line_totals: Iterable[Decimal]) -> Decimal:
    return sum(line_totals, Decimal('0'))


def order_discount_amount(subtotal: Decimal, discount_percent: Decimal) -> Decimal:
    return subtotal * discount_percent / HUNDRED


def tax_amount(taxable: Decimal, tax_percent: Decimal) -> Decimal:
    return taxable * tax_percent / HUNDRED


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int
    discount_percent: Decimal
    gross: Decimal
    discount_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class PricingSnapshot:
    """Frozen totals of a cart; unaffected by later cart mutations."""
    lines: Tuple[PricedLine, ...]
    subtotal: Decimal
    order_discount_percent: Decimal
    order_discount_amount: Decimal
    taxable_amount: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    grand_total: Decimal

    def to_dict(self) -> Dict[str, Any]:
        """Presentation form: money rounded to cents, as strings."""
        return {
            'lines': [
                {
                    'product_id': line.product_id,
                    'name': line.name,
                    'unit_price': str(to_money(line.unit_price)),
                    'quantity': line.quantity,
                    'discount_percent': str(line.discount_percent),
                    'discount_amount': str(to_money(line.discount_amount)),
                    'line_total': str(to_money(line.line_total)),
                }
                for line in self.lines
            ],
            'subtotal': str(to_money(self.subtotal)),
            'order_discount_percent': str(self.order_discount_percent),
            'order_discount_amount': str(to_money(self.order_discount_amount)),
            'taxable_amount': str(to_money(self.taxable_amount)),
            'tax_percent': str(self.tax_percent),
            'tax_amount': str(to_money(self.tax_amount)),
            'grand_total': str(to_money(self.grand_total)),
        }


def price_line(line) -> PricedLine:
    """Price anything shaped like a CartLine (product, quantity, discount_percent)."""
    product = line.product
    discount = Decimal(line.discount_percent)
    return PricedLine(
        product_id=product.id,
        name=product.name,
        unit_price=product.price,
        quantity=line.quantity,
        discount_percent=discount,
        gross=line_gross(product.price, line.quantity),
        discount_amount=line_discount_amount(product.price, line.quantity, discount),
        line_total=line_total(product.price, line.quantity, discount),
    )


def price_lines(lines: Iterable, order_discount_percent=Decimal('0'), tax_percent=Decimal('0')) -> PricingSnapshot:
    priced = tuple(price_line(line) for line in lines)
    order_discount_percent = Decimal(order_discount_percent)
    tax_percent = Decimal(tax_percent)

    cart_subtotal = subtotal(line.line_total for line in priced)
    discount = order_discount_amount(cart_subtotal, order_discount_percent)
    taxable = cart_subtotal - discount
    tax = tax_amount(taxable, tax_percent)

    return PricingSnapshot(
        lines=priced,
        subtotal=cart_subtotal,
        order_discount_percent=order_discount_percent,
        order_discount_amount=discount,
        taxable_amount=taxable,
        tax_percent=tax_percent,
        tax_amount=tax,
        grand_total=taxable + tax,
    )


def price_cart(cart, tax_percent: Optional[Decimal] = None) -> PricingSnapshot:
    """Price a Cart with its own order discount and tax rate."""
    return price_lines(
        cart.lines,
        cart.order_discount_percent,
        cart.tax_percent if tax_percent is None else tax_percent,
    )
