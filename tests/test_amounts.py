"""Tests for order amounts and the market price walk."""

from decimal import Decimal
from fractions import Fraction

import pytest

from polymarket_core.clob.amounts import (
    _fit_amount,
    calculate_market_price,
    get_market_order_amounts,
    get_order_amounts,
    parse_side,
)
from polymarket_core.clob.rounding import ROUNDING_CONFIG, get_round_config, round_normal
from polymarket_core.clob.types import OrderSummary, OrderType, Side
from polymarket_core.common.exceptions import InvalidOrderError, NoMatchError


def levels(*pairs):
    return [OrderSummary(Decimal(p), Decimal(s)) for p, s in pairs]


class TestLimitOrderAmounts:
    def test_buy(self):
        amounts = get_order_amounts(Side.BUY, 10, 0.55, get_round_config("0.01"))
        assert amounts.maker_amount == 5_500_000
        assert amounts.taker_amount == 10_000_000

    def test_sell(self):
        amounts = get_order_amounts("SELL", 10, 0.55, get_round_config("0.01"))
        assert amounts.side == Side.SELL
        assert amounts.maker_amount == 10_000_000
        assert amounts.taker_amount == 5_500_000

    def test_size_rounds_down_and_price_rounds_normal(self):
        amounts = get_order_amounts("buy", 10.129, 0.556, get_round_config("0.01"))
        assert amounts.taker_amount == 10_120_000
        assert amounts.maker_amount == 5_667_200  # 10.12 * 0.56

    def test_fine_tick(self):
        amounts = get_order_amounts(Side.BUY, 3, 0.123, get_round_config("0.001"))
        assert amounts.maker_amount == 369_000
        assert amounts.taker_amount == 3_000_000


class TestMarketOrderAmounts:
    def test_buy_spends_usdc(self):
        amounts = get_market_order_amounts(Side.BUY, 100, 0.50, get_round_config("0.01"))
        assert amounts.maker_amount == 100_000_000
        assert amounts.taker_amount == 200_000_000

    def test_buy_reconciles_maker_with_rounded_shares(self):
        amounts = get_market_order_amounts(Side.BUY, 100, 0.55, get_round_config("0.01"))
        # 100 / 0.55 = 181.8181... -> 181.81 shares, 181.81 * 0.55 = 99.9955 USDC
        assert amounts.taker_amount == 181_810_000
        assert amounts.maker_amount == 99_995_500

    def test_sell_spends_shares(self):
        amounts = get_market_order_amounts(Side.SELL, 50, 0.4, get_round_config("0.01"))
        assert amounts.maker_amount == 50_000_000
        assert amounts.taker_amount == 20_000_000


class TestFitAmount:
    def test_truncates_excess_precision(self):
        assert _fit_amount(Decimal("1.23456789"), 4) == Decimal("1.2345")

    def test_rounding_up_absorbs_float_noise(self):
        assert _fit_amount(Decimal("0.99999999999"), 4) == Decimal("1")

    def test_leaves_fitting_values(self):
        assert _fit_amount(Decimal("5.5"), 4) == Decimal("5.5")


class TestParseSide:
    def test_accepts_enum_and_strings(self):
        assert parse_side(Side.SELL) is Side.SELL
        assert parse_side("buy") is Side.BUY

    def test_rejects_other_values(self):
        with pytest.raises(InvalidOrderError) as exc:
            parse_side("HOLD")
        assert exc.value.field == "side"


class TestMarketPrice:
    asks = levels(("0.52", "100"), ("0.50", "100"), ("0.55", "500"))
    bids = levels(("0.45", "10"), ("0.48", "10"), ("0.40", "100"))

    def test_buy_walks_asks_from_lowest(self):
        assert calculate_market_price(self.asks, 40, Side.BUY) == Decimal("0.50")
        # 0.50 * 100 = 50 is not enough, 50 + 0.52 * 100 = 102 covers 60
        assert calculate_market_price(self.asks, 60, Side.BUY) == Decimal("0.52")

    def test_sell_walks_bids_from_highest(self):
        assert calculate_market_price(self.bids, 5, Side.SELL) == Decimal("0.48")
        assert calculate_market_price(self.bids, 15, Side.SELL) == Decimal("0.45")

    def test_fok_requires_full_depth(self):
        with pytest.raises(NoMatchError):
            calculate_market_price(self.asks, 1000, Side.BUY, OrderType.FOK)

    def test_non_fok_falls_back_to_best_price(self):
        assert calculate_market_price(self.asks, 1000, Side.BUY, OrderType.FAK) == Decimal("0.50")
        assert calculate_market_price(self.bids, 1000, Side.SELL, OrderType.GTC) == Decimal("0.48")

    def test_empty_book(self):
        with pytest.raises(NoMatchError):
            calculate_market_price([], 1, Side.BUY, OrderType.FAK)


PRICES_BY_TICK = {
    "0.1": ["0.1", "0.3", "0.54", "0.9"],
    "0.01": ["0.01", "0.37", "0.3712", "0.99"],
    "0.001": ["0.001", "0.457", "0.6666", "0.999"],
    "0.0001": ["0.0001", "0.3333", "0.52019", "0.9999"],
}
SIZES = ["0.51", "1", "7.77", "123.456", "1000"]


def price_cases():
    for tick_size in ROUNDING_CONFIG:
        for price in PRICES_BY_TICK[tick_size]:
            yield tick_size, price


def implied_price(amounts):
    if amounts.side == Side.BUY:
        return Fraction(amounts.maker_amount, amounts.taker_amount)
    return Fraction(amounts.taker_amount, amounts.maker_amount)


class TestAmountsEncodePrice:
    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    @pytest.mark.parametrize("tick_size,price", list(price_cases()))
    def test_limit_order(self, tick_size, price, side):
        cfg = get_round_config(tick_size)
        expected = Fraction(round_normal(price, cfg.price))
        for size in SIZES:
            amounts = get_order_amounts(side, size, price, cfg)
            assert implied_price(amounts) == expected, size

    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    @pytest.mark.parametrize("tick_size,price", list(price_cases()))
    def test_market_order(self, tick_size, price, side):
        cfg = get_round_config(tick_size)
        expected = Fraction(round_normal(price, cfg.price))
        for amount in SIZES:
            amounts = get_market_order_amounts(side, amount, price, cfg)
            assert implied_price(amounts) == expected, amount
