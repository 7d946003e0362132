"""
CLOB data types: order intent, options, signed orders and book levels.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from polymarket_core.constants import ZERO_ADDRESS


class Side(IntEnum):
    """Order side."""

    BUY = 0
    SELL = 1


class SignatureType(IntEnum):
    """Signature type for different wallet types."""

    EOA = 0  # Plain externally owned account
    POLY_PROXY = 1  # Polymarket proxy wallet (Magic / email login)
    POLY_GNOSIS_SAFE = 2  # Gnosis Safe proxy (browser wallet login)


class OrderType(str, Enum):
    """Order time-in-force."""

    GTC = "GTC"  # Good till cancelled
    GTD = "GTD"  # Good till date
    FOK = "FOK"  # Fill or kill
    FAK = "FAK"  # Fill and kill (immediate or cancel)


class AuthLevel(IntEnum):
    """
    Client authentication level.

    L0: public endpoints only
    L1: signer present, can sign the CLOB auth challenge
    L2: signer and API credentials, can call HMAC-signed endpoints
    """

    L0 = 0
    L1 = 1
    L2 = 2


@dataclass(frozen=True)
class ApiCreds:
    """API credentials for L2 and builder authentication."""

    api_key: str
    api_secret: str
    api_passphrase: str

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "ApiCreds":
        return cls(
            api_key=data["apiKey"],
            api_secret=data["secret"],
            api_passphrase=data["passphrase"],
        )


@dataclass(frozen=True)
class OrderArgs:
    """Arguments for creating a limit order."""

    token_id: str
    price: float | Decimal
    size: float | Decimal  # Number of shares
    side: Side | str
    fee_rate_bps: int = 0
    nonce: int = 0
    expiration: int = 0  # Unix timestamp, 0 = no expiration
    taker: str = ZERO_ADDRESS


@dataclass(frozen=True)
class MarketOrderArgs:
    """
    Arguments for creating a market order.

    amount is USD for BUY and shares for SELL. When price is 0 it is
    derived from the live order book.
    """

    token_id: str
    amount: float | Decimal
    side: Side | str
    price: float | Decimal = 0
    fee_rate_bps: int = 0
    nonce: int = 0
    taker: str = ZERO_ADDRESS
    order_type: OrderType = OrderType.FOK


@dataclass(frozen=True)
class CreateOrderOptions:
    """Resolved market parameters used to build an order."""

    tick_size: str
    neg_risk: bool


@dataclass(frozen=True)
class PartialCreateOrderOptions:
    """
    Caller overrides for order creation.

    raw skips every remote lookup; tick_size and neg_risk are then required.
    """

    tick_size: str | None = None
    neg_risk: bool | None = None
    raw: bool = False


@dataclass(frozen=True)
class OrderSummary:
    """One price level of an order book."""

    price: Decimal
    size: Decimal

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderSummary":
        return cls(price=Decimal(str(data["price"])), size=Decimal(str(data["size"])))


@dataclass
class OrderBookSummary:
    """Order book snapshot for a token."""

    asset_id: str
    bids: list[OrderSummary] = field(default_factory=list)
    asks: list[OrderSummary] = field(default_factory=list)
    market: str | None = None
    tick_size: str | None = None
    neg_risk: bool | None = None
    timestamp: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderBookSummary":
        return cls(
            asset_id=str(data.get("asset_id", "")),
            bids=[OrderSummary.from_dict(b) for b in data.get("bids") or []],
            asks=[OrderSummary.from_dict(a) for a in data.get("asks") or []],
            market=data.get("market"),
            tick_size=data.get("tick_size"),
            neg_risk=data.get("neg_risk"),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class SignedOrder:
    """Exchange order with its EIP-712 signature."""

    salt: int
    maker: str
    signer: str
    taker: str
    token_id: str
    maker_amount: int
    taker_amount: int
    expiration: int
    nonce: int
    fee_rate_bps: int
    side: Side
    signature_type: SignatureType
    signature: str  # 0x-prefixed lowercase hex

    def to_dict(self) -> dict[str, Any]:
        """Wire representation expected by the order endpoint."""
        return {
            "salt": self.salt,
            "maker": self.maker,
            "signer": self.signer,
            "taker": self.taker,
            "tokenId": self.token_id,
            "makerAmount": str(self.maker_amount),
            "takerAmount": str(self.taker_amount),
            "expiration": str(self.expiration),
            "nonce": str(self.nonce),
            "feeRateBps": str(self.fee_rate_bps),
            "side": self.side.name,
            "signatureType": int(self.signature_type),
            "signature": self.signature,
        }


@dataclass(frozen=True)
class PostOrdersArgs:
    """One entry of a batch order submission."""

    order: SignedOrder
    order_type: OrderType = OrderType.GTC
    post_only: bool = False


@dataclass(frozen=True)
class RequestArgs:
    """Request description used for header signing."""

    method: str
    request_path: str
    body: str | None = None  # Serialized exactly as sent


@dataclass(frozen=True)
class OpenOrderParams:
    """Filters for listing open orders; unset fields are not sent."""

    id: str | None = None
    market: str | None = None
    asset_id: str | None = None

    def to_params(self) -> dict[str, str]:
        params = {"id": self.id, "market": self.market, "asset_id": self.asset_id}
        return {k: v for k, v in params.items() if v}
