"""
Custom exceptions for the Polymarket core library.

Exception hierarchy:
    PredictionMarketError (base)
    ├── ExchangeError
    │   ├── AuthenticationError
    │   │   └── AuthLevelError
    │   ├── InsufficientFundsError
    │   ├── InvalidOrderError
    │   ├── MarketNotFoundError
    │   ├── OrderNotFoundError
    │   ├── NoMatchError
    │   └── RelayError
    ├── NetworkError
    │   ├── ConnectionError
    │   ├── TimeoutError
    │   ├── OperationCancelledError
    │   └── GasEstimationError
    ├── RateLimitError
    ├── ConfigurationError
    │   └── UnsupportedTickSizeError
    ├── UnsupportedFeatureError
    └── CryptographicError
        └── SigningError
"""

from typing import Any


class PredictionMarketError(Exception):
    """Base exception for all prediction market errors."""

    def __init__(self, message: str, exchange: str | None = None, raw: Any = None) -> None:
        self.message = message
        self.exchange = exchange
        self.raw = raw  # Raw error response from exchange
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.exchange:
            return f"[{self.exchange}] {self.message}"
        return self.message


# === Exchange Errors ===


class ExchangeError(PredictionMarketError):
    """General exchange-related error."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        raw: Any = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.status = status  # HTTP status of the rejecting response, if any


class AuthenticationError(ExchangeError):
    """Authentication or authorization failure."""

    pass


class AuthLevelError(AuthenticationError):
    """Operation requires a higher client auth level than is configured."""

    def __init__(self, required: int, current: int, operation: str | None = None) -> None:
        what = f"'{operation}'" if operation else "operation"
        super().__init__(f"{what} requires auth level L{required}, client is at L{current}")
        self.required = required
        self.current = current
        self.operation = operation


class InsufficientFundsError(ExchangeError):
    """Insufficient balance to execute order."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        required: float | None = None,
        available: float | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.required = required
        self.available = available


class InvalidOrderError(ExchangeError):
    """Invalid order parameters."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        field: str | None = None,
        bound: Any = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.field = field  # Offending input field
        self.bound = bound  # Limit that was violated


class MarketNotFoundError(ExchangeError):
    """Market not found or not available."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        market_id: str | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.market_id = market_id


class OrderNotFoundError(ExchangeError):
    """Order not found."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        order_id: str | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.order_id = order_id


class NoMatchError(ExchangeError):
    """Order book has no liquidity to fill a market order."""

    def __init__(
        self,
        message: str = "no match",
        exchange: str | None = None,
        token_id: str | None = None,
    ) -> None:
        super().__init__(message, exchange)
        self.token_id = token_id


class RelayError(ExchangeError):
    """Relay service rejected a request or reported a failed transaction."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        raw: Any = None,
        status: int | None = None,
        transaction_id: str | None = None,
    ) -> None:
        super().__init__(message, exchange, raw, status)
        self.transaction_id = transaction_id


# === Network Errors ===


class NetworkError(PredictionMarketError):
    """Network-related error."""

    pass


class ConnectionError(NetworkError):
    """Failed to establish connection."""

    pass


class TimeoutError(NetworkError):
    """Request or operation timed out."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        timeout_seconds: float | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.timeout_seconds = timeout_seconds


class OperationCancelledError(NetworkError):
    """A blocking wait was cancelled by the caller."""

    pass


class GasEstimationError(NetworkError):
    """Node could not estimate gas for a call."""

    pass


# === Rate Limiting ===


class RateLimitError(PredictionMarketError):
    """Rate limit exceeded."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        retry_after: float | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message, exchange, raw)
        self.retry_after = retry_after  # Seconds until rate limit resets


# === Configuration Errors ===


class ConfigurationError(PredictionMarketError):
    """Invalid configuration."""

    pass


class UnsupportedTickSizeError(ConfigurationError):
    """Tick size is not in the rounding table."""

    def __init__(self, tick_size: str) -> None:
        super().__init__(f"Tick size '{tick_size}' is not supported")
        self.tick_size = tick_size


class UnsupportedFeatureError(PredictionMarketError):
    """Feature not supported for this wallet or chain."""

    def __init__(
        self,
        feature: str,
        exchange: str | None = None,
    ) -> None:
        message = f"Feature '{feature}' is not supported"
        super().__init__(message, exchange)
        self.feature = feature


# === Cryptographic Errors ===


class CryptographicError(PredictionMarketError):
    """Key handling or signature failure."""

    pass


class SigningError(CryptographicError):
    """Private key is malformed or signing failed."""

    pass
