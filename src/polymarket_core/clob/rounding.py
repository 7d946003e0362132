"""
Fixed-point rounding helpers keyed by market tick size.

Every value is converted through ``Decimal(str(value))`` before rounding, so a
float such as ``0.1 + 0.2`` is treated as the decimal it prints as, never as
its binary expansion.
"""

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from polymarket_core.common.exceptions import UnsupportedTickSizeError
from polymarket_core.constants import TOKEN_DECIMALS

Number = float | int | str | Decimal


@dataclass(frozen=True)
class RoundConfig:
    """Decimal places for price, size and amount."""

    price: int
    size: int
    amount: int


# Rounding configuration based on tick size
ROUNDING_CONFIG: dict[str, RoundConfig] = {
    "0.1": RoundConfig(price=1, size=2, amount=3),
    "0.01": RoundConfig(price=2, size=2, amount=4),
    "0.001": RoundConfig(price=3, size=2, amount=5),
    "0.0001": RoundConfig(price=4, size=2, amount=6),
}


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal via its string form."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_down(value: Number, places: int) -> Decimal:
    """Round toward negative infinity at ``places`` decimals."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_FLOOR)


def round_up(value: Number, places: int) -> Decimal:
    """Round toward positive infinity at ``places`` decimals."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_CEILING)


def round_normal(value: Number, places: int) -> Decimal:
    """Round half-up at ``places`` decimals."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)


def decimal_places(value: Number) -> int:
    """Count fractional digits, ignoring trailing zeros."""
    d = to_decimal(value)
    if d == d.to_integral_value():
        return 0
    exponent = d.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def to_token_decimals(value: Number) -> int:
    """Convert to integer token units (6 decimals), truncating."""
    return int(to_decimal(value).scaleb(TOKEN_DECIMALS))


def normalize_tick_size(tick_size: Number) -> str:
    """Canonical string key for a tick size, e.g. ``Decimal("0.010")`` -> "0.01"."""
    d = to_decimal(tick_size).normalize()
    return format(d, "f")


def get_round_config(tick_size: Number) -> RoundConfig:
    """
    Look up the rounding configuration for a tick size.

    Raises:
        UnsupportedTickSizeError: If tick size is not in the table
    """
    key = normalize_tick_size(tick_size)
    config = ROUNDING_CONFIG.get(key)
    if config is None:
        raise UnsupportedTickSizeError(key)
    return config


def price_valid(price: Number, tick_size: Number) -> bool:
    """Check ``tick_size <= price <= 1 - tick_size``."""
    p = to_decimal(price)
    tick = to_decimal(tick_size)
    return tick <= p <= Decimal(1) - tick


def is_tick_size_smaller(a: Number, b: Number) -> bool:
    """True if tick size ``a`` is strictly finer than ``b``."""
    return to_decimal(a) < to_decimal(b)
