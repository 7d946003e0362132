"""
CLOB REST transport.

Thin aiohttp wrapper around the order-book service. It knows nothing about
authentication: callers pass ready-made headers and an already serialized
body, so the bytes that were signed are the bytes that are sent.

API Documentation: https://docs.polymarket.com/
"""

from typing import Any, Protocol

import aiohttp

from polymarket_core.clob.types import OrderBookSummary
from polymarket_core.common.exceptions import (
    AuthenticationError,
    ConnectionError,
    ExchangeError,
    InsufficientFundsError,
    InvalidOrderError,
    MarketNotFoundError,
    RateLimitError,
)
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import CLOB_URL

logger = get_logger("clob.rest")

EXCHANGE_ID = "polymarket"

# Endpoint paths
TICK_SIZE = "/tick-size"
NEG_RISK = "/neg-risk"
FEE_RATE = "/fee-rate"
GET_ORDER_BOOK = "/book"
CREATE_API_KEY = "/auth/api-key"
DERIVE_API_KEY = "/auth/derive-api-key"
POST_ORDER = "/order"
POST_ORDERS = "/orders"
CANCEL = "/order"
CANCEL_ORDERS = "/orders"
CANCEL_ALL = "/cancel-all"
CANCEL_MARKET_ORDERS = "/cancel-market-orders"
GET_ORDER = "/data/order/"
ORDERS = "/data/orders"

# Pagination cursors of list endpoints
INITIAL_CURSOR = "MA=="
END_CURSOR = "LTE="


class MarketMetadataSource(Protocol):
    """Per-token market parameters needed to build an order."""

    async def get_tick_size(self, token_id: str) -> str: ...

    async def get_neg_risk(self, token_id: str) -> bool: ...

    async def get_fee_rate_bps(self, token_id: str) -> int: ...

    async def get_order_book(self, token_id: str) -> OrderBookSummary: ...


class ClobTransport(Protocol):
    """Sends a request whose headers were computed by the caller."""

    async def request(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        body: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any: ...


def parse_error(status: int, data: Any) -> Exception:
    """Map a rejected response to the exception hierarchy."""
    error_message = "Unknown error"

    if isinstance(data, dict):
        error_message = str(data.get("message", data.get("error", data)))
    elif isinstance(data, str) and data:
        error_message = data

    if status == 401:
        return AuthenticationError(error_message, exchange=EXCHANGE_ID, raw=data, status=status)
    elif status == 403:
        return AuthenticationError(
            f"Forbidden: {error_message}", exchange=EXCHANGE_ID, raw=data, status=status
        )
    elif status == 404:
        return MarketNotFoundError(error_message, exchange=EXCHANGE_ID, raw=data)
    elif status == 429:
        return RateLimitError(error_message, exchange=EXCHANGE_ID, raw=data)
    elif status == 400:
        if "insufficient" in error_message.lower():
            return InsufficientFundsError(error_message, exchange=EXCHANGE_ID, raw=data)
        return InvalidOrderError(error_message, exchange=EXCHANGE_ID, raw=data)
    else:
        return ExchangeError(
            f"HTTP {status}: {error_message}", exchange=EXCHANGE_ID, raw=data, status=status
        )


class ClobRestApi:
    """
    aiohttp client for the CLOB API.

    Example:
        ```python
        api = ClobRestApi()
        tick = await api.get_tick_size(token_id)
        await api.close()
        ```
    """

    def __init__(
        self,
        host: str = CLOB_URL,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._host = host.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    @property
    def host(self) -> str:
        return self._host

    # === Lifecycle ===

    async def init(self) -> None:
        """Initialize HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "ClobRestApi":
        await self.init()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # === HTTP ===

    async def request(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        body: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make HTTP request.

        Args:
            method: HTTP method
            path: Endpoint path (joined to host)
            headers: Auth headers, if any
            body: Serialized JSON body, sent byte for byte
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            ExchangeError (or subclass): Any non-200 response
            ConnectionError: Transport failure
        """
        if self._session is None:
            await self.init()

        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        url = f"{self._host}{path}"
        logger.debug("%s %s params=%s", method, path, params)

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                data=body,
                headers=request_headers,
            ) as response:
                if response.content_type == "application/json":
                    response_data = await response.json()
                else:
                    response_data = await response.text()

                if response.status != 200:
                    logger.debug("%s %s -> %s %s", method, path, response.status, response_data)
                    raise parse_error(response.status, response_data)

                return response_data

        except aiohttp.ClientError as e:
            raise ConnectionError(f"Network error: {e}", exchange=EXCHANGE_ID) from e

    # === Market metadata (L0) ===

    async def get_tick_size(self, token_id: str) -> str:
        data = await self.request("GET", TICK_SIZE, params={"token_id": token_id})
        return str(data["minimum_tick_size"])

    async def get_neg_risk(self, token_id: str) -> bool:
        data = await self.request("GET", NEG_RISK, params={"token_id": token_id})
        return bool(data["neg_risk"])

    async def get_fee_rate_bps(self, token_id: str) -> int:
        data = await self.request("GET", FEE_RATE, params={"token_id": token_id})
        return int(data.get("base_fee") or 0)

    async def get_order_book(self, token_id: str) -> OrderBookSummary:
        data = await self.request("GET", GET_ORDER_BOOK, params={"token_id": token_id})
        return OrderBookSummary.from_dict(data)
