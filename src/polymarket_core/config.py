"""
Configuration management for the Polymarket clients.

Loads configuration from environment variables with sensible defaults.
Nothing is read at import time; call ``load_env`` to pull in ``.env`` files.

Usage:
    ```python
    from polymarket_core.config import get_polymarket_config, load_env

    load_env()
    config = get_polymarket_config(chain_id=80002)

    async with create_clob_client(config) as client:
        ...
    ```
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

from polymarket_core.clob.client import ClobClient
from polymarket_core.clob.signer import Signer
from polymarket_core.clob.types import ApiCreds, SignatureType
from polymarket_core.common.exceptions import ConfigurationError
from polymarket_core.constants import CLOB_URL, DEFAULT_RELAY_CONFIG, POLYGON_MAINNET_CHAIN_ID
from polymarket_core.onchain.relay import RelayClient, WalletLocks, WalletType
from polymarket_core.onchain.rpc import ChainRpc, Web3Rpc
from polymarket_core.onchain.web3_client import Web3Client

DEFAULT_RPC_URL = "https://polygon-rpc.com"


def load_env(env_path: str | Path | None = None) -> bool:
    """
    Load environment variables from .env and .env.config files.

    Files loaded (in order):
    1. .env.config - General configuration (can be shared)
    2. .env - Secrets (private keys, etc.) - overrides .env.config

    Args:
        env_path: Path to .env file. If None, searches in current dir and parent dirs.

    Returns:
        True if any .env file was found and loaded, False otherwise.
    """
    if env_path:
        return load_dotenv(env_path)

    current = Path.cwd()
    for _ in range(5):  # Max 5 levels up
        loaded = False

        config_file = current / ".env.config"
        if config_file.exists():
            load_dotenv(config_file)
            loaded = True

        env_file = current / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=True)
            loaded = True

        if loaded:
            return True
        current = current.parent

    return False


def _get_str(key: str) -> str | None:
    """Get non-placeholder string from environment variable."""
    value = os.environ.get(key, "").strip()
    if not value or value == "0x...":
        return None
    return value


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class PolymarketConfig:
    """Polymarket client configuration."""

    # Authentication
    private_key: str | None = None
    chain_id: int = POLYGON_MAINNET_CHAIN_ID
    funder: str | None = None
    proxy_wallet: str | None = None
    signature_type: SignatureType = SignatureType.EOA

    # L2 API credentials
    api_key: str | None = None
    api_secret: str | None = None
    api_passphrase: str | None = None

    # Builder credentials (relayer headers); the sign server is used without them
    builder_api_key: str | None = None
    builder_secret: str | None = None
    builder_passphrase: str | None = None

    # Endpoints
    clob_url: str = CLOB_URL
    relay_url: str = DEFAULT_RELAY_CONFIG.relay_url
    sign_url: str = DEFAULT_RELAY_CONFIG.sign_url
    rpc_url: str | None = None

    # Receipt waiting
    receipt_timeout: float = 120.0
    receipt_poll_interval: float = 1.0

    @property
    def api_creds(self) -> ApiCreds | None:
        if self.api_key and self.api_secret and self.api_passphrase:
            return ApiCreds(self.api_key, self.api_secret, self.api_passphrase)
        return None

    @property
    def builder_creds(self) -> ApiCreds | None:
        if self.builder_api_key and self.builder_secret and self.builder_passphrase:
            return ApiCreds(self.builder_api_key, self.builder_secret, self.builder_passphrase)
        return None

    @property
    def maker(self) -> str | None:
        """Funder for order signing; the proxy wallet when no funder is set."""
        return self.funder or self.proxy_wallet

    @property
    def secrets(self) -> list[str]:
        """Values that must never reach a log line."""
        values = [
            self.private_key,
            self.api_secret,
            self.api_passphrase,
            self.builder_secret,
            self.builder_passphrase,
        ]
        return [v for v in values if v]

    @classmethod
    def from_env(cls) -> "PolymarketConfig":
        """Load config from environment variables."""
        # RPC URL: MATIC_RPC or POLYMARKET_RPC_URL
        rpc_url = _get_str("MATIC_RPC") or _get_str("POLYMARKET_RPC_URL")

        signature_type = _get_int("POLYMARKET_SIGNATURE_TYPE", SignatureType.EOA)
        try:
            signature_type = SignatureType(signature_type)
        except ValueError as e:
            raise ConfigurationError(
                f"POLYMARKET_SIGNATURE_TYPE must be 0, 1 or 2, got {signature_type}"
            ) from e

        return cls(
            private_key=_get_str("POLYMARKET_PRIVATE_KEY"),
            chain_id=_get_int("POLYMARKET_CHAIN_ID", POLYGON_MAINNET_CHAIN_ID),
            funder=_get_str("POLYMARKET_FUNDER"),
            proxy_wallet=_get_str("POLYMARKET_PROXY_WALLET"),
            signature_type=signature_type,
            api_key=_get_str("POLYMARKET_API_KEY"),
            api_secret=_get_str("POLYMARKET_API_SECRET"),
            api_passphrase=_get_str("POLYMARKET_API_PASSPHRASE"),
            builder_api_key=_get_str("POLYMARKET_BUILDER_API_KEY"),
            builder_secret=_get_str("POLYMARKET_BUILDER_SECRET"),
            builder_passphrase=_get_str("POLYMARKET_BUILDER_PASSPHRASE"),
            clob_url=_get_str("POLYMARKET_CLOB_URL") or CLOB_URL,
            relay_url=_get_str("POLYMARKET_RELAY_URL") or DEFAULT_RELAY_CONFIG.relay_url,
            sign_url=_get_str("POLYMARKET_SIGN_URL") or DEFAULT_RELAY_CONFIG.sign_url,
            rpc_url=rpc_url,
            receipt_timeout=_get_float("POLYMARKET_RECEIPT_TIMEOUT", 120.0),
            receipt_poll_interval=_get_float("POLYMARKET_RECEIPT_POLL_INTERVAL", 1.0),
        )


def get_polymarket_config(**overrides) -> PolymarketConfig:
    """
    Get Polymarket configuration.

    Loads from environment variables, with optional overrides.

    Args:
        **overrides: Field values replacing the environment ones; None is ignored

    Returns:
        PolymarketConfig

    Example:
        ```python
        config = get_polymarket_config(rpc_url="https://polygon-mainnet.g.alchemy.com/v2/xxx")
        ```
    """
    config = PolymarketConfig.from_env()
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        return replace(config, **overrides)
    except TypeError as e:
        raise ConfigurationError(f"Unknown config option: {e}") from e


# === Client construction ===


def _require_key(config: PolymarketConfig, what: str) -> Signer:
    if not config.private_key:
        raise ConfigurationError(f"{what} requires POLYMARKET_PRIVATE_KEY")
    return Signer(config.private_key, config.chain_id)


def create_clob_client(config: PolymarketConfig) -> ClobClient:
    """Order client at the auth level the config allows (L0 without a key)."""
    return ClobClient(
        host=config.clob_url,
        chain_id=config.chain_id,
        private_key=config.private_key,
        creds=config.api_creds,
        signature_type=config.signature_type,
        funder=config.maker,
    )


def create_rpc(config: PolymarketConfig) -> Web3Rpc:
    return Web3Rpc(config.rpc_url or DEFAULT_RPC_URL)


def create_relay_client(
    config: PolymarketConfig,
    rpc: ChainRpc | None = None,
    locks: WalletLocks | None = None,
) -> RelayClient:
    """
    Gasless settlement client; Safe signature type selects Safe wallets.

    Pass the same ``locks`` to every relay client that signs for one wallet
    so their nonce fetch and submit are serialized.
    """
    signer = _require_key(config, "Relay client")
    wallet_type = (
        WalletType.SAFE
        if config.signature_type == SignatureType.POLY_GNOSIS_SAFE
        else WalletType.PROXY
    )
    relay_config = replace(DEFAULT_RELAY_CONFIG, relay_url=config.relay_url, sign_url=config.sign_url)
    return RelayClient(
        signer=signer,
        rpc=rpc or create_rpc(config),
        wallet_type=wallet_type,
        chain_id=config.chain_id,
        relay_config=relay_config,
        builder_creds=config.builder_creds,
        proxy_wallet=config.proxy_wallet,
        locks=locks,
        receipt_timeout=config.receipt_timeout,
        poll_interval=config.receipt_poll_interval,
    )


def create_web3_client(config: PolymarketConfig, rpc: ChainRpc | None = None) -> Web3Client:
    """Settlement client that pays gas from the owner key."""
    signer = _require_key(config, "Web3 client")
    return Web3Client(
        signer=signer,
        rpc=rpc or create_rpc(config),
        signature_type=config.signature_type,
        chain_id=config.chain_id,
        proxy_wallet=config.proxy_wallet,
        receipt_timeout=config.receipt_timeout,
        poll_interval=config.receipt_poll_interval,
    )
