"""Shared fixtures: a throwaway key and in-memory fakes for HTTP and RPC."""

import json
from decimal import Decimal
from typing import Any

import pytest
from eth_abi import encode
from eth_account import Account

from polymarket_core.clob.types import OrderBookSummary, OrderSummary
from polymarket_core.common.exceptions import GasEstimationError
from polymarket_core.onchain.ctf import function_selector
from polymarket_core.onchain.rpc import TransactionReceipt

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TOKEN_ID = "71321045679252212594626385532706912750332728571942532289631379312455583992563"
CONDITION_ID = "0x" + "ab" * 32
PROXY_WALLET = "0x1111111111111111111111111111111111111111"
SAFE_WALLET = "0x2222222222222222222222222222222222222222"
SAFE_TX_HASH = bytes.fromhex("cd" * 32)
TX_HASH = "0x" + "ef" * 32


@pytest.fixture
def private_key() -> str:
    return PRIVATE_KEY


@pytest.fixture
def eoa() -> str:
    return Account.from_key(PRIVATE_KEY).address


# === CLOB ===


class FakeClobApi:
    """In-memory market metadata and transport with call counters."""

    def __init__(
        self,
        tick_size: str = "0.01",
        neg_risk: bool = False,
        fee_rate: int = 0,
        asks: list[tuple[str, str]] | None = None,
        bids: list[tuple[str, str]] | None = None,
    ) -> None:
        self.tick_size = tick_size
        self.neg_risk = neg_risk
        self.fee_rate = fee_rate
        self.asks = asks or []
        self.bids = bids or []
        self.calls: dict[str, int] = {}
        self.requests: list[dict[str, Any]] = []
        self.responses: dict[tuple[str, str], Any] = {}
        self.closed = False

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    @property
    def remote_calls(self) -> int:
        return sum(self.calls.values()) + len(self.requests)

    async def get_tick_size(self, token_id: str) -> str:
        self._count("tick_size")
        return self.tick_size

    async def get_neg_risk(self, token_id: str) -> bool:
        self._count("neg_risk")
        return self.neg_risk

    async def get_fee_rate_bps(self, token_id: str) -> int:
        self._count("fee_rate")
        return self.fee_rate

    async def get_order_book(self, token_id: str) -> OrderBookSummary:
        self._count("book")
        return OrderBookSummary(
            asset_id=token_id,
            asks=[OrderSummary(Decimal(p), Decimal(s)) for p, s in self.asks],
            bids=[OrderSummary(Decimal(p), Decimal(s)) for p, s in self.bids],
        )

    async def request(self, method, path, headers=None, body=None, params=None) -> Any:
        self.requests.append(
            {"method": method, "path": path, "headers": headers, "body": body, "params": params}
        )
        response = self.responses.get((method, path), {"success": True})
        if callable(response):
            response = response(params)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_api() -> FakeClobApi:
    return FakeClobApi()


# === RPC ===


class FakeRpc:
    """
    ChainRpc double.

    ``receipt_after`` is the number of polls that return no receipt before
    a successful one is produced.
    """

    def __init__(
        self,
        gas_estimate: int | None = 100_000,
        receipt_after: int = 0,
        proxy_wallet: str = PROXY_WALLET,
        safe_wallet: str = SAFE_WALLET,
        safe_nonce: int = 7,
    ) -> None:
        self.gas_estimate = gas_estimate
        self.receipt_after = receipt_after
        self.proxy_wallet = proxy_wallet
        self.safe_wallet = safe_wallet
        self.safe_nonce = safe_nonce
        self.estimates: list[dict[str, Any]] = []
        self.calls: list[tuple[str, bytes]] = []
        self.sent: list[bytes] = []
        self.receipt_polls = 0

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        self.estimates.append(tx)
        if self.gas_estimate is None:
            raise GasEstimationError("execution reverted")
        return self.gas_estimate

    def call(self, to: str, data: bytes) -> bytes:
        self.calls.append((to, data))
        selector = data[:4]
        if selector == function_selector("getPolyProxyWalletAddress(address)"):
            return encode(["address"], [self.proxy_wallet])
        if selector == function_selector("computeProxyAddress(address)"):
            return encode(["address"], [self.safe_wallet])
        if selector == function_selector("nonce()"):
            return encode(["uint256"], [self.safe_nonce])
        return encode(["bytes32"], [SAFE_TX_HASH])

    def gas_price(self) -> int:
        return 30_000_000_000

    def get_transaction_count(self, address: str) -> int:
        return 3

    def send_raw_transaction(self, raw: bytes) -> str:
        self.sent.append(raw)
        return TX_HASH

    def get_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        self.receipt_polls += 1
        if self.receipt_polls <= self.receipt_after:
            return None
        return TransactionReceipt(tx_hash=tx_hash, status=1, block_number=100, gas_used=21_000)


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


# === requests ===


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = json.dumps(self._payload)

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """requests.Session double routed on (method, path suffix)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[dict[str, Any]] = []

    def route(self, method: str, suffix: str, response: Any) -> None:
        self.routes[(method, suffix)] = response

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        for (m, suffix), response in self.routes.items():
            if m == method and url.endswith(suffix):
                if callable(response):
                    response = response(url=url, **kwargs)
                return response
        return FakeResponse(404, {"error": "not found"})

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("POST", url, **kwargs)

    def sent(self, method: str, suffix: str) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["method"] == method and r["url"].endswith(suffix)]


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
