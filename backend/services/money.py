"""
Montants: toujours en Decimal, jamais d'addition float sur de la devise.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """order_value stocké en float, int, str ou Decimal -> Decimal exact (via str)"""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return ZERO


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def safe_average(total: Decimal, count: int) -> Decimal:
    """Moyenne au centime, 0 si count = 0"""
    if count <= 0:
        return quantize_money(ZERO)
    return quantize_money(total / count)
