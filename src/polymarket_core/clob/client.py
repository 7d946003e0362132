"""
CLOB client: order construction, signing and submission.

The client moves between three auth levels:

- L0: no private key, public endpoints only
- L1: private key, can sign orders and the ClobAuth challenge
- L2: private key and API credentials, can post and cancel orders

Every validation and auth-level check runs before any network call.
"""

import threading
from decimal import Decimal
from typing import Any

from polymarket_core.clob.amounts import (
    calculate_market_price,
    get_market_order_amounts,
    get_order_amounts,
    parse_side,
)
from polymarket_core.clob.headers import (
    create_level_1_headers,
    create_level_2_headers,
    serialize_body,
)
from polymarket_core.clob.rest_api import (
    CANCEL,
    CANCEL_ALL,
    CANCEL_MARKET_ORDERS,
    CANCEL_ORDERS,
    CREATE_API_KEY,
    DERIVE_API_KEY,
    END_CURSOR,
    GET_ORDER,
    INITIAL_CURSOR,
    ORDERS,
    POST_ORDER,
    POST_ORDERS,
    ClobRestApi,
)
from polymarket_core.clob.rounding import (
    get_round_config,
    is_tick_size_smaller,
    normalize_tick_size,
    price_valid,
    to_decimal,
)
from polymarket_core.clob.signer import OrderSigner, Signer
from polymarket_core.clob.types import (
    ApiCreds,
    AuthLevel,
    CreateOrderOptions,
    MarketOrderArgs,
    OpenOrderParams,
    OrderArgs,
    OrderBookSummary,
    OrderType,
    PartialCreateOrderOptions,
    PostOrdersArgs,
    RequestArgs,
    Side,
    SignatureType,
    SignedOrder,
)
from polymarket_core.common.exceptions import (
    AuthLevelError,
    ConfigurationError,
    ExchangeError,
    InvalidOrderError,
    NoMatchError,
)
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import (
    CLOB_URL,
    DEFAULT_REGISTRY,
    POLYGON_MAINNET_CHAIN_ID,
    ZERO_ADDRESS,
    ChainRegistry,
)

logger = get_logger("clob")

POST_ONLY_ORDER_TYPES = (OrderType.GTC, OrderType.GTD)


def order_to_json(
    order: SignedOrder,
    owner: str,
    order_type: OrderType,
    post_only: bool = False,
) -> dict[str, Any]:
    """Body of a single order submission."""
    return {
        "order": order.to_dict(),
        "owner": owner,
        "orderType": OrderType(order_type).value,
        "postOnly": post_only,
    }


def _check_post_only(order_type: OrderType, post_only: bool) -> None:
    if post_only and OrderType(order_type) not in POST_ONLY_ORDER_TYPES:
        raise InvalidOrderError(
            f"post_only orders can only be of type GTC or GTD, got {OrderType(order_type).value}",
            field="post_only",
            bound=[t.value for t in POST_ONLY_ORDER_TYPES],
        )


class ClobClient:
    """
    Builds, signs and submits orders.

    Example:
        ```python
        client = ClobClient(private_key="0x...", chain_id=137)
        creds = await client.create_or_derive_api_creds()
        client.set_api_creds(creds)

        order = await client.create_order(
            OrderArgs(token_id="123", price=0.55, size=10, side="BUY")
        )
        await client.post_order(order)
        await client.close()
        ```
    """

    def __init__(
        self,
        host: str = CLOB_URL,
        chain_id: int = POLYGON_MAINNET_CHAIN_ID,
        private_key: str | None = None,
        creds: ApiCreds | None = None,
        signature_type: SignatureType = SignatureType.EOA,
        funder: str | None = None,
        api: Any = None,
        registry: ChainRegistry = DEFAULT_REGISTRY,
    ) -> None:
        """
        Initialize CLOB client.

        Args:
            host: CLOB API base URL
            chain_id: Chain ID (137 for Polygon mainnet)
            private_key: Wallet private key; enables L1
            creds: API credentials; with a key, enables L2
            signature_type: Wallet kind orders are signed for
            funder: Maker address for proxy/Safe wallets
            api: Object implementing MarketMetadataSource and ClobTransport;
                defaults to ClobRestApi(host)
            registry: Chain contract registry
        """
        self._chain_id = chain_id
        self._contracts = registry.get(chain_id)
        self._api = api if api is not None else ClobRestApi(host)

        self._signer: Signer | None = None
        self._order_signer: OrderSigner | None = None
        if private_key:
            self._signer = Signer(private_key, chain_id)
            self._order_signer = OrderSigner(
                self._signer, self._contracts, signature_type, funder
            )

        self._creds: ApiCreds | None = creds
        self._mode = self._get_client_mode()

        self._cache_lock = threading.Lock()
        self._tick_sizes: dict[str, str] = {}
        self._neg_risk: dict[str, bool] = {}
        self._fee_rates: dict[str, int] = {}

    @property
    def address(self) -> str | None:
        """Signer address, if a key is configured."""
        return self._signer.address if self._signer else None

    @property
    def mode(self) -> AuthLevel:
        return self._mode

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def _get_client_mode(self, creds: ApiCreds | None = None) -> AuthLevel:
        creds = creds if creds is not None else self._creds
        if self._signer is None:
            return AuthLevel.L0
        if creds is None:
            return AuthLevel.L1
        return AuthLevel.L2

    def set_api_creds(self, creds: ApiCreds | None) -> None:
        """Set API credentials for L2 auth; the auth level is recomputed."""
        self._creds = creds
        self._mode = self._get_client_mode(creds)
        logger.debug("Client auth level is now L%d", self._mode)

    def _assert_level_1(self, operation: str) -> Signer:
        if self._signer is None:
            raise AuthLevelError(AuthLevel.L1, self._mode, operation)
        return self._signer

    def _assert_level_2(self, operation: str) -> tuple[Signer, ApiCreds]:
        # Snapshot credentials once; a concurrent set_api_creds must not
        # mix two credential sets in one request.
        creds = self._creds
        if self._signer is None or creds is None:
            raise AuthLevelError(AuthLevel.L2, self._get_client_mode(creds), operation)
        return self._signer, creds

    # === Lifecycle ===

    async def close(self) -> None:
        close = getattr(self._api, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "ClobClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # === Market metadata (cached) ===

    async def get_tick_size(self, token_id: str) -> str:
        with self._cache_lock:
            cached = self._tick_sizes.get(token_id)
        if cached is not None:
            return cached

        tick_size = normalize_tick_size(await self._api.get_tick_size(token_id))
        with self._cache_lock:
            self._tick_sizes[token_id] = tick_size
        return tick_size

    async def get_neg_risk(self, token_id: str) -> bool:
        with self._cache_lock:
            cached = self._neg_risk.get(token_id)
        if cached is not None:
            return cached

        neg_risk = bool(await self._api.get_neg_risk(token_id))
        with self._cache_lock:
            self._neg_risk[token_id] = neg_risk
        return neg_risk

    async def get_fee_rate_bps(self, token_id: str) -> int:
        with self._cache_lock:
            cached = self._fee_rates.get(token_id)
        if cached is not None:
            return cached

        fee_rate = int(await self._api.get_fee_rate_bps(token_id))
        with self._cache_lock:
            self._fee_rates[token_id] = fee_rate
        return fee_rate

    async def get_order_book(self, token_id: str) -> OrderBookSummary:
        """Current book of a token; not cached."""
        return await self._api.get_order_book(token_id)

    async def _resolve_tick_size(self, token_id: str, tick_size: str | None) -> str:
        min_tick_size = await self.get_tick_size(token_id)
        if tick_size is None:
            return min_tick_size
        if is_tick_size_smaller(tick_size, min_tick_size):
            raise InvalidOrderError(
                f"invalid tick size ({tick_size}), minimum for the market is {min_tick_size}",
                field="tick_size",
                bound=min_tick_size,
            )
        return normalize_tick_size(tick_size)

    async def _resolve_fee_rate(self, token_id: str, user_fee_rate: int) -> int:
        market_fee_rate = await self.get_fee_rate_bps(token_id)
        if market_fee_rate > 0 and user_fee_rate > 0 and user_fee_rate != market_fee_rate:
            raise InvalidOrderError(
                f"invalid user provided fee rate: ({user_fee_rate}), "
                f"fee rate for the market must be {market_fee_rate}",
                field="fee_rate_bps",
                bound=market_fee_rate,
            )
        return market_fee_rate

    async def _resolve_options(
        self,
        token_id: str,
        options: PartialCreateOrderOptions | None,
        user_fee_rate: int,
    ) -> tuple[CreateOrderOptions, int]:
        options = options or PartialCreateOrderOptions()

        if options.raw:
            if options.tick_size is None:
                raise ConfigurationError("raw order mode requires tick_size in options")
            if options.neg_risk is None:
                raise ConfigurationError("raw order mode requires neg_risk in options")
            tick_size = normalize_tick_size(options.tick_size)
            get_round_config(tick_size)
            return CreateOrderOptions(tick_size, options.neg_risk), user_fee_rate

        tick_size = await self._resolve_tick_size(token_id, options.tick_size)
        if options.neg_risk is not None:
            neg_risk = options.neg_risk
        else:
            neg_risk = await self.get_neg_risk(token_id)
        fee_rate = await self._resolve_fee_rate(token_id, user_fee_rate)
        return CreateOrderOptions(tick_size, neg_risk), fee_rate

    @staticmethod
    def _check_price(price: Decimal, tick_size: str) -> None:
        if not price_valid(price, tick_size):
            upper = Decimal(1) - to_decimal(tick_size)
            raise InvalidOrderError(
                f"price ({price}), min: {tick_size} - max: {upper}",
                field="price",
                bound=(tick_size, str(upper)),
            )

    # === Order creation (L1) ===

    async def create_order(
        self,
        args: OrderArgs,
        options: PartialCreateOrderOptions | None = None,
    ) -> SignedOrder:
        """
        Create and sign a limit order.

        Args:
            args: Order intent
            options: Tick size / neg risk overrides, or raw mode

        Returns:
            Signed order ready for post_order()
        """
        self._assert_level_1("create_order")
        side = parse_side(args.side)

        resolved, fee_rate = await self._resolve_options(args.token_id, options, args.fee_rate_bps)
        price = to_decimal(args.price)
        self._check_price(price, resolved.tick_size)

        amounts = get_order_amounts(
            side, args.size, price, get_round_config(resolved.tick_size)
        )
        return self._order_signer.sign(
            args.token_id,
            amounts,
            neg_risk=resolved.neg_risk,
            fee_rate_bps=fee_rate,
            nonce=args.nonce,
            expiration=args.expiration,
            taker=args.taker or ZERO_ADDRESS,
        )

    async def create_market_order(
        self,
        args: MarketOrderArgs,
        options: PartialCreateOrderOptions | None = None,
    ) -> SignedOrder:
        """
        Create and sign a market order.

        When ``args.price`` is 0 the price is derived from the order book.
        Market orders never expire.

        Raises:
            NoMatchError: Book cannot fill the order (FOK) or is empty
        """
        self._assert_level_1("create_market_order")
        side = parse_side(args.side)

        if options is not None and options.raw and not args.price:
            raise ConfigurationError("raw order mode requires an explicit price for market orders")

        resolved, fee_rate = await self._resolve_options(args.token_id, options, args.fee_rate_bps)

        price = to_decimal(args.price)
        if price <= 0:
            price = await self.calculate_market_price(
                args.token_id, side, args.amount, args.order_type
            )
        self._check_price(price, resolved.tick_size)

        amounts = get_market_order_amounts(
            side, args.amount, price, get_round_config(resolved.tick_size)
        )
        return self._order_signer.sign(
            args.token_id,
            amounts,
            neg_risk=resolved.neg_risk,
            fee_rate_bps=fee_rate,
            nonce=args.nonce,
            expiration=0,
            taker=args.taker or ZERO_ADDRESS,
        )

    async def calculate_market_price(
        self,
        token_id: str,
        side: Side | str,
        amount: float | Decimal,
        order_type: OrderType = OrderType.FOK,
    ) -> Decimal:
        """Price at which ``amount`` is matched against the opposite book side."""
        side = parse_side(side)
        book = await self.get_order_book(token_id)
        levels = book.asks if side == Side.BUY else book.bids
        if not levels:
            raise NoMatchError("no match: order book side is empty", token_id=token_id)
        try:
            return calculate_market_price(levels, amount, side, order_type)
        except NoMatchError as e:
            e.token_id = token_id
            raise

    # === Order submission (L2) ===

    async def post_order(
        self,
        order: SignedOrder,
        order_type: OrderType = OrderType.GTC,
        post_only: bool = False,
    ) -> Any:
        """
        Post a signed order.

        Raises:
            InvalidOrderError: post_only with an order type other than GTC/GTD
            AuthLevelError: Client is not at L2
        """
        _check_post_only(order_type, post_only)
        signer, creds = self._assert_level_2("post_order")

        body = serialize_body(order_to_json(order, creds.api_key, order_type, post_only))
        headers = create_level_2_headers(signer, creds, RequestArgs("POST", POST_ORDER, body))
        response = await self._api.request("POST", POST_ORDER, headers=headers, body=body)
        logger.info("Posted %s order for token %s", OrderType(order_type).value, order.token_id)
        return response

    async def post_orders(self, args: list[PostOrdersArgs]) -> Any:
        """Post several signed orders in one request."""
        for arg in args:
            _check_post_only(arg.order_type, arg.post_only)
        signer, creds = self._assert_level_2("post_orders")

        body = serialize_body(
            [order_to_json(a.order, creds.api_key, a.order_type, a.post_only) for a in args]
        )
        headers = create_level_2_headers(signer, creds, RequestArgs("POST", POST_ORDERS, body))
        response = await self._api.request("POST", POST_ORDERS, headers=headers, body=body)
        logger.info("Posted batch of %d orders", len(args))
        return response

    async def create_and_post_order(
        self,
        args: OrderArgs,
        options: PartialCreateOrderOptions | None = None,
        order_type: OrderType = OrderType.GTC,
        post_only: bool = False,
    ) -> Any:
        _check_post_only(order_type, post_only)
        self._assert_level_2("create_and_post_order")
        order = await self.create_order(args, options)
        return await self.post_order(order, order_type, post_only)

    # === Cancellation (L2) ===

    async def _delete(self, operation: str, path: str, payload: Any = None) -> Any:
        signer, creds = self._assert_level_2(operation)
        body = serialize_body(payload)
        headers = create_level_2_headers(signer, creds, RequestArgs("DELETE", path, body))
        return await self._api.request("DELETE", path, headers=headers, body=body)

    async def cancel(self, order_id: str) -> Any:
        """Cancel a single order."""
        return await self._delete("cancel", CANCEL, {"orderID": order_id})

    async def cancel_orders(self, order_ids: list[str]) -> Any:
        """Cancel several orders."""
        return await self._delete("cancel_orders", CANCEL_ORDERS, list(order_ids))

    async def cancel_all(self) -> Any:
        """Cancel every open order of the API key."""
        return await self._delete("cancel_all", CANCEL_ALL)

    async def cancel_market_orders(self, market: str = "", asset_id: str = "") -> Any:
        """Cancel open orders of a market (condition ID) and/or one of its tokens."""
        return await self._delete(
            "cancel_market_orders",
            CANCEL_MARKET_ORDERS,
            {"market": market, "asset_id": asset_id},
        )

    # === Orders (L2) ===

    async def get_order(self, order_id: str) -> Any:
        """Fetch a single order by ID."""
        signer, creds = self._assert_level_2("get_order")
        path = f"{GET_ORDER}{order_id}"
        headers = create_level_2_headers(signer, creds, RequestArgs("GET", path))
        return await self._api.request("GET", path, headers=headers)

    async def get_orders(
        self,
        params: OpenOrderParams | None = None,
        next_cursor: str = INITIAL_CURSOR,
    ) -> list[dict[str, Any]]:
        """
        List open orders, following the cursor until the last page.

        Args:
            params: Optional id/market/asset_id filters
            next_cursor: Cursor to start from (first page by default)

        Returns:
            Orders of every page, in server order

        Raises:
            AuthLevelError: Client is not at L2
            ExchangeError: A page is not a ``{"data", "next_cursor"}`` object
        """
        signer, creds = self._assert_level_2("get_orders")
        query = params.to_params() if params else {}

        orders: list[dict[str, Any]] = []
        cursor = next_cursor or INITIAL_CURSOR
        while cursor != END_CURSOR:
            # The query string is not part of the signed path
            headers = create_level_2_headers(signer, creds, RequestArgs("GET", ORDERS))
            page = await self._api.request(
                "GET", ORDERS, headers=headers, params={**query, "next_cursor": cursor}
            )
            if not isinstance(page, dict):
                raise ExchangeError(f"invalid orders page: {page!r}", raw=page)
            orders.extend(page.get("data") or [])
            cursor = page.get("next_cursor") or END_CURSOR

        logger.debug("Fetched %d open orders", len(orders))
        return orders

    # === API keys (L1) ===

    async def create_api_key(self, nonce: int | None = None) -> ApiCreds:
        """Create new API credentials."""
        signer = self._assert_level_1("create_api_key")
        headers = create_level_1_headers(signer, nonce)
        data = await self._api.request("POST", CREATE_API_KEY, headers=headers)
        return ApiCreds.from_response(data)

    async def derive_api_key(self, nonce: int | None = None) -> ApiCreds:
        """Derive the existing API credentials for a nonce."""
        signer = self._assert_level_1("derive_api_key")
        headers = create_level_1_headers(signer, nonce)
        data = await self._api.request("GET", DERIVE_API_KEY, headers=headers)
        return ApiCreds.from_response(data)

    async def create_or_derive_api_creds(self, nonce: int | None = None) -> ApiCreds:
        """
        Create API credentials, deriving the existing ones if creation fails.

        The credentials are not installed; call set_api_creds() with them.
        """
        try:
            return await self.create_api_key(nonce)
        except ExchangeError as e:
            logger.debug("create_api_key failed (%s), deriving instead", e)
            return await self.derive_api_key(nonce)
