"""Receipt service - immutable receipt snapshot and its printable forms."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from branchpos.models import Business, Order, normalize_payment_method
from branchpos.services.pricing_service import to_money
from branchpos.utils.formatters import money, percent, receipt_datetime

DEFAULT_FOOTER = 'Thank you for your business!'


@dataclass(frozen=True)
class BusinessProfile:
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_business(cls, business: Business) -> 'BusinessProfile':
        return cls(name=business.name, address=business.address,
                   phone=business.phone, email=business.email)


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class Receipt:
    order_id: int
    created_at: datetime
    business: BusinessProfile
    lines: Tuple[ReceiptLine, ...]
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    total: Decimal
    payment_method: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    footer: str = DEFAULT_FOOTER

    @property
    def number(self) -> str:
        return str(self.order_id).zfill(8)


def build_receipt(order_id: int, created_at: datetime, profile: BusinessProfile, draft,
                  footer: str = DEFAULT_FOOTER) -> Receipt:
    """Receipt for an order just committed from an OrderDraft."""
    pricing = draft.pricing
    return Receipt(
        order_id=order_id,
        created_at=created_at,
        business=profile,
        lines=tuple(
            ReceiptLine(
                name=line.name,
                quantity=line.quantity,
                unit_price=to_money(line.unit_price),
                discount_percent=line.discount_percent,
                discount_amount=to_money(line.discount_amount),
                line_total=to_money(line.line_total),
            )
            for line in pricing.lines
        ),
        subtotal=to_money(pricing.subtotal),
        discount_percent=pricing.order_discount_percent,
        discount_amount=to_money(pricing.order_discount_amount),
        tax_percent=pricing.tax_percent,
        tax_amount=to_money(pricing.tax_amount),
        total=to_money(pricing.grand_total),
        payment_method=draft.payment_method.value,
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        footer=footer,
    )


def receipt_from_order(order: Order, profile: BusinessProfile, footer: str = DEFAULT_FOOTER) -> Receipt:
    """Rebuild the receipt of a persisted order (reprints)."""
    return Receipt(
        order_id=order.id,
        created_at=order.created_at,
        business=profile,
        lines=tuple(
            ReceiptLine(
                name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount_percent=line.discount_percent,
                discount_amount=line.discount_amount,
                line_total=line.line_total,
            )
            for line in order.lines
        ),
        subtotal=order.subtotal,
        discount_percent=order.discount_percent,
        discount_amount=order.discount_amount,
        tax_percent=order.tax_percent,
        tax_amount=order.tax_amount,
        total=order.total_amount,
        payment_method=order.payment_method,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        footer=footer,
    )


def receipt_to_dict(receipt: Receipt) -> Dict[str, Any]:
    return {
        'order_id': receipt.order_id,
        'number': receipt.number,
        'created_at': receipt.created_at.isoformat() if receipt.created_at else None,
        'business': {
            'name': receipt.business.name,
            'address': receipt.business.address,
            'phone': receipt.business.phone,
            'email': receipt.business.email,
        },
        'customer': {
            'name': receipt.customer_name,
            'phone': receipt.customer_phone,
        },
        'lines': [
            {
                'name': line.name,
                'quantity': line.quantity,
                'unit_price': str(line.unit_price),
                'discount_percent': str(line.discount_percent),
                'discount_amount': str(line.discount_amount),
                'line_total': str(line.line_total),
            }
            for line in receipt.lines
        ],
        'subtotal': str(receipt.subtotal),
        'discount_percent': str(receipt.discount_percent),
        'discount_amount': str(receipt.discount_amount),
        'tax_percent': str(receipt.tax_percent),
        'tax_amount': str(receipt.tax_amount),
        'total': str(receipt.total),
        'payment_method': receipt.payment_method,
        'footer': receipt.footer,
    }


def _row(left: str, right: str, width: int) -> str:
    gap = max(width - len(left) - len(right), 1)
    return f"{left}{' ' * gap}{right}"


def render_text(receipt: Receipt, currency: str = '₹', width: int = 40) -> str:
    """
    Plain-text receipt for thermal printers and the print dialog.

    The discount row only appears when an order discount was given.
    """
    rule = '-' * width
    out: List[str] = []

    out.append(receipt.business.name.center(width).rstrip())
    if receipt.business.address:
        out.append(receipt.business.address.center(width).rstrip())
    if receipt.business.phone:
        out.append(f"Tel: {receipt.business.phone}".center(width).rstrip())
    out.append(rule)
    out.append('SALE RECEIPT'.center(width).rstrip())
    out.append(f"Receipt #: {receipt.number}")
    if receipt.created_at:
        out.append(f"Date: {receipt_datetime(receipt.created_at)}")

    if receipt.customer_name:
        out.append(f"Customer: {receipt.customer_name}")
        if receipt.customer_phone:
            out.append(f"Phone: {receipt.customer_phone}")
    out.append(rule)

    for line in receipt.lines:
        out.append(line.name[:width])
        out.append(_row(f"  {line.quantity} x {money(line.unit_price, currency)}",
                        money(line.line_total, currency), width))
        if line.discount_amount > 0:
            out.append(f"  less {percent(line.discount_percent)}: -{money(line.discount_amount, currency)}")
    out.append(rule)

    out.append(_row('Subtotal:', money(receipt.subtotal, currency), width))
    if receipt.discount_amount > 0:
        out.append(_row(f"Discount ({percent(receipt.discount_percent)}):",
                        f"-{money(receipt.discount_amount, currency)}", width))
    out.append(_row(f"Tax ({percent(receipt.tax_percent)}):", money(receipt.tax_amount, currency), width))
    out.append(_row('TOTAL:', money(receipt.total, currency), width))
    out.append(rule)

    try:
        method_label = normalize_payment_method(receipt.payment_method).label
    except ValueError:
        method_label = str(receipt.payment_method)
    out.append(f"Payment Method: {method_label.upper()}")
    out.append('')
    out.append(receipt.footer.center(width).rstrip())
    return '\n'.join(out) + '\n'
