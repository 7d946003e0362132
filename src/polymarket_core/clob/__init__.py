"""Order-book client: rounding, amounts, signing and submission."""

from polymarket_core.clob.amounts import (
    OrderAmounts,
    calculate_market_price,
    get_market_order_amounts,
    get_order_amounts,
)
from polymarket_core.clob.client import ClobClient
from polymarket_core.clob.headers import (
    build_hmac_signature,
    create_level_1_headers,
    create_level_2_headers,
)
from polymarket_core.clob.rest_api import ClobRestApi, MarketMetadataSource
from polymarket_core.clob.signer import OrderSigner, Signer
from polymarket_core.clob.types import (
    ApiCreds,
    AuthLevel,
    MarketOrderArgs,
    OpenOrderParams,
    OrderArgs,
    OrderType,
    PartialCreateOrderOptions,
    PostOrdersArgs,
    Side,
    SignatureType,
    SignedOrder,
)

__all__ = [
    "ApiCreds",
    "AuthLevel",
    "ClobClient",
    "ClobRestApi",
    "MarketMetadataSource",
    "MarketOrderArgs",
    "OpenOrderParams",
    "OrderAmounts",
    "OrderArgs",
    "OrderSigner",
    "OrderType",
    "PartialCreateOrderOptions",
    "PostOrdersArgs",
    "Side",
    "SignatureType",
    "SignedOrder",
    "Signer",
    "build_hmac_signature",
    "calculate_market_price",
    "create_level_1_headers",
    "create_level_2_headers",
    "get_market_order_amounts",
    "get_order_amounts",
]
