"""
Order amount calculation.

Converts (side, price, size) or (side, price, amount) into the integer
maker/taker amounts signed into an exchange order, and derives a market
price by walking an order book.

BUY:  maker spends USDC, taker receives shares
SELL: maker spends shares, taker receives USDC
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from polymarket_core.clob.rounding import (
    Number,
    RoundConfig,
    decimal_places,
    round_down,
    round_normal,
    round_up,
    to_decimal,
    to_token_decimals,
)
from polymarket_core.clob.types import OrderSummary, OrderType, Side
from polymarket_core.common.exceptions import InvalidOrderError, NoMatchError


@dataclass(frozen=True)
class OrderAmounts:
    """Integer amounts in 6-decimal token units."""

    side: Side
    maker_amount: int
    taker_amount: int


def parse_side(side: Side | str) -> Side:
    """
    Normalize a side given as enum or "BUY"/"SELL".

    Raises:
        InvalidOrderError: For any other value
    """
    if isinstance(side, Side):
        return side
    if isinstance(side, str) and side.upper() in Side.__members__:
        return Side[side.upper()]
    raise InvalidOrderError(
        f"side must be 'BUY' or 'SELL', got {side!r}",
        field="side",
        bound=("BUY", "SELL"),
    )


def _fit_amount(raw: Decimal, places: int) -> Decimal:
    # Try a slightly higher precision first, then truncate.
    if decimal_places(raw) > places:
        raw = round_up(raw, places + 4)
        if decimal_places(raw) > places:
            raw = round_down(raw, places)
    return raw


def get_order_amounts(
    side: Side | str,
    size: Number,
    price: Number,
    round_config: RoundConfig,
) -> OrderAmounts:
    """Amounts for a limit order of ``size`` shares at ``price``."""
    side = parse_side(side)
    raw_price = round_normal(price, round_config.price)

    if side == Side.BUY:
        raw_taker = round_down(size, round_config.size)
        raw_maker = _fit_amount(raw_taker * raw_price, round_config.amount)
    else:
        raw_maker = round_down(size, round_config.size)
        raw_taker = _fit_amount(raw_maker * raw_price, round_config.amount)

    return OrderAmounts(
        side=side,
        maker_amount=to_token_decimals(raw_maker),
        taker_amount=to_token_decimals(raw_taker),
    )


def get_market_order_amounts(
    side: Side | str,
    amount: Number,
    price: Number,
    round_config: RoundConfig,
) -> OrderAmounts:
    """
    Amounts for a market order.

    For BUY, ``amount`` is USDC to spend; the share count is rounded down
    and the USDC side is recomputed as shares * price so the pair encodes
    the price exactly. For SELL, ``amount`` is the share count.
    """
    side = parse_side(side)
    raw_price = round_normal(price, round_config.price)

    if side == Side.BUY:
        raw_maker = round_down(amount, round_config.size)
        raw_taker = raw_maker / raw_price
        if decimal_places(raw_taker) > round_config.size:
            raw_taker = round_down(raw_taker, round_config.size)
        raw_maker = _fit_amount(raw_taker * raw_price, round_config.amount)
    else:
        raw_maker = round_down(amount, round_config.size)
        raw_taker = raw_maker * raw_price
        if decimal_places(raw_taker) > round_config.amount:
            raw_taker = round_down(raw_taker, round_config.amount)

    return OrderAmounts(
        side=side,
        maker_amount=to_token_decimals(raw_maker),
        taker_amount=to_token_decimals(raw_taker),
    )


def calculate_market_price(
    levels: Iterable[OrderSummary],
    amount: Number,
    side: Side | str,
    order_type: OrderType = OrderType.FOK,
) -> Decimal:
    """
    Walk the book from the best price until ``amount`` is covered.

    Args:
        levels: Opposite side of the book (asks for BUY, bids for SELL)
        amount: USDC to spend for BUY, shares to sell for SELL
        side: Order side
        order_type: FOK fails when depth is insufficient

    Returns:
        Price of the level at which cumulative depth reaches ``amount``,
        or the best price when depth runs out on a non-FOK order.

    Raises:
        NoMatchError: Empty book, or insufficient depth for FOK
    """
    side = parse_side(side)
    target = to_decimal(amount)

    # Best ask is the lowest, best bid the highest
    ordered = sorted(levels, key=lambda lvl: lvl.price, reverse=side == Side.SELL)
    if not ordered:
        raise NoMatchError("no match: order book is empty")

    total = Decimal(0)
    for level in ordered:
        total += level.size * level.price if side == Side.BUY else level.size
        if total >= target:
            return level.price

    if OrderType(order_type) == OrderType.FOK:
        raise NoMatchError(f"no match: book depth {total} is below requested {target}")
    return ordered[0].price
