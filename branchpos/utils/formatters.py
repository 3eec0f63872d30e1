"""
Formatting helpers for receipts and JSON views.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import datetime
from typing import Union, Optional


def num(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Format a number with comma thousands separators.

    Without ``decimals`` trailing zeros are dropped.

    Examples:
        num(1500) -> "1,500"
        num(1500.5) -> "1,500.5"
        num(212.40, 2) -> "212.40"
        num(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if decimals is not None:
        number = number.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)
        return f"{number:,.{decimals}f}"

    if number == number.to_integral_value():
        return f"{number:,.0f}"
    text = format(number.normalize(), 'f')
    integer_part, decimal_part = text.split('.')
    return f"{Decimal(integer_part):,.0f}.{decimal_part}"


def money(value: Union[int, float, Decimal, str, None], symbol: str = '₹') -> str:
    """money(1234.5) -> "₹1,234.50"."""
    formatted = num(value, 2)
    if formatted == "-":
        return formatted
    return f"{symbol}{formatted}"


def percent(value: Union[int, float, Decimal, str, None]) -> str:
    """percent(Decimal('12.50')) -> "12.5%"."""
    return f"{num(value)}%"


def receipt_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime('%d/%m/%Y %H:%M')
