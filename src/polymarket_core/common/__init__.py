"""Common utilities and exceptions."""

from polymarket_core.common.exceptions import (
    AuthenticationError,
    AuthLevelError,
    ConfigurationError,
    ConnectionError,
    CryptographicError,
    ExchangeError,
    GasEstimationError,
    InsufficientFundsError,
    InvalidOrderError,
    MarketNotFoundError,
    NetworkError,
    NoMatchError,
    OperationCancelledError,
    OrderNotFoundError,
    PredictionMarketError,
    RateLimitError,
    RelayError,
    SigningError,
    TimeoutError,
    UnsupportedFeatureError,
    UnsupportedTickSizeError,
)
from polymarket_core.common.logger import get_logger, setup_logger

__all__ = [
    "AuthenticationError",
    "AuthLevelError",
    "ConfigurationError",
    "ConnectionError",
    "CryptographicError",
    "ExchangeError",
    "GasEstimationError",
    "InsufficientFundsError",
    "InvalidOrderError",
    "MarketNotFoundError",
    "NetworkError",
    "NoMatchError",
    "OperationCancelledError",
    "OrderNotFoundError",
    "PredictionMarketError",
    "RateLimitError",
    "RelayError",
    "SigningError",
    "TimeoutError",
    "UnsupportedFeatureError",
    "UnsupportedTickSizeError",
    "get_logger",
    "setup_logger",
]
