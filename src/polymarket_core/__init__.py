"""
polymarket-core: order construction, signing and settlement for Polymarket.

Example:
    ```python
    from polymarket_core import OrderArgs, create_clob_client, get_polymarket_config, load_env

    async def main():
        load_env()
        async with create_clob_client(get_polymarket_config()) as client:
            order = await client.create_order(
                OrderArgs(token_id="123", price=0.55, size=10, side="BUY")
            )
            await client.post_order(order)

    asyncio.run(main())
    ```
"""

from polymarket_core.clob import (
    ApiCreds,
    AuthLevel,
    ClobClient,
    MarketOrderArgs,
    OpenOrderParams,
    OrderArgs,
    OrderType,
    PartialCreateOrderOptions,
    PostOrdersArgs,
    Side,
    SignatureType,
    SignedOrder,
    Signer,
)
from polymarket_core.common.exceptions import (
    AuthenticationError,
    AuthLevelError,
    ConfigurationError,
    ConnectionError,
    ExchangeError,
    InvalidOrderError,
    NetworkError,
    NoMatchError,
    OperationCancelledError,
    PredictionMarketError,
    RelayError,
    SigningError,
    TimeoutError,
    UnsupportedFeatureError,
    UnsupportedTickSizeError,
)
from polymarket_core.config import (
    PolymarketConfig,
    create_clob_client,
    create_relay_client,
    create_web3_client,
    get_polymarket_config,
    load_env,
)
from polymarket_core.onchain import RedeemRequest, RelayClient, WalletType, Web3Client, Web3Rpc

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Clients
    "ClobClient",
    "RelayClient",
    "Web3Client",
    "Web3Rpc",
    "Signer",
    # Types
    "ApiCreds",
    "AuthLevel",
    "MarketOrderArgs",
    "OpenOrderParams",
    "OrderArgs",
    "OrderType",
    "PartialCreateOrderOptions",
    "PostOrdersArgs",
    "RedeemRequest",
    "Side",
    "SignatureType",
    "SignedOrder",
    "WalletType",
    # Exceptions
    "PredictionMarketError",
    "ExchangeError",
    "AuthenticationError",
    "AuthLevelError",
    "InvalidOrderError",
    "NoMatchError",
    "RelayError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "OperationCancelledError",
    "ConfigurationError",
    "UnsupportedTickSizeError",
    "UnsupportedFeatureError",
    "SigningError",
    # Config
    "PolymarketConfig",
    "create_clob_client",
    "create_relay_client",
    "create_web3_client",
    "get_polymarket_config",
    "load_env",
]
