"""Tests for environment configuration and client construction."""

import pytest

from polymarket_core.clob.types import ApiCreds, AuthLevel, SignatureType
from polymarket_core.common.exceptions import ConfigurationError
from polymarket_core.config import (
    PolymarketConfig,
    create_clob_client,
    create_relay_client,
    create_web3_client,
    get_polymarket_config,
    load_env,
)
from polymarket_core.onchain.relay import WalletLocks, WalletType

from conftest import PROXY_WALLET, FakeRpc

ENV_KEYS = [
    "POLYMARKET_PRIVATE_KEY",
    "POLYMARKET_CHAIN_ID",
    "POLYMARKET_FUNDER",
    "POLYMARKET_PROXY_WALLET",
    "POLYMARKET_SIGNATURE_TYPE",
    "POLYMARKET_API_KEY",
    "POLYMARKET_API_SECRET",
    "POLYMARKET_API_PASSPHRASE",
    "POLYMARKET_BUILDER_API_KEY",
    "POLYMARKET_BUILDER_SECRET",
    "POLYMARKET_BUILDER_PASSPHRASE",
    "POLYMARKET_CLOB_URL",
    "POLYMARKET_RELAY_URL",
    "POLYMARKET_SIGN_URL",
    "MATIC_RPC",
    "POLYMARKET_RPC_URL",
    "POLYMARKET_RECEIPT_TIMEOUT",
    "POLYMARKET_RECEIPT_POLL_INTERVAL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestFromEnv:
    def test_defaults(self):
        config = PolymarketConfig.from_env()
        assert config.private_key is None
        assert config.chain_id == 137
        assert config.signature_type == SignatureType.EOA
        assert config.api_creds is None
        assert config.receipt_timeout == 120.0

    def test_reads_values(self, monkeypatch, private_key):
        monkeypatch.setenv("POLYMARKET_PRIVATE_KEY", private_key)
        monkeypatch.setenv("POLYMARKET_CHAIN_ID", "80002")
        monkeypatch.setenv("POLYMARKET_SIGNATURE_TYPE", "1")
        monkeypatch.setenv("POLYMARKET_PROXY_WALLET", PROXY_WALLET)
        monkeypatch.setenv("POLYMARKET_API_KEY", "k")
        monkeypatch.setenv("POLYMARKET_API_SECRET", "s")
        monkeypatch.setenv("POLYMARKET_API_PASSPHRASE", "p")
        monkeypatch.setenv("POLYMARKET_RPC_URL", "https://rpc.example")
        monkeypatch.setenv("POLYMARKET_RECEIPT_TIMEOUT", "30")

        config = PolymarketConfig.from_env()
        assert config.chain_id == 80002
        assert config.signature_type == SignatureType.POLY_PROXY
        assert config.maker == PROXY_WALLET
        assert config.api_creds == ApiCreds("k", "s", "p")
        assert config.rpc_url == "https://rpc.example"
        assert config.receipt_timeout == 30.0

    def test_placeholders_ignored(self, monkeypatch):
        monkeypatch.setenv("POLYMARKET_PROXY_WALLET", "0x...")
        monkeypatch.setenv("POLYMARKET_CHAIN_ID", "not-a-number")
        config = PolymarketConfig.from_env()
        assert config.proxy_wallet is None
        assert config.chain_id == 137

    def test_matic_rpc_preferred(self, monkeypatch):
        monkeypatch.setenv("MATIC_RPC", "https://a")
        monkeypatch.setenv("POLYMARKET_RPC_URL", "https://b")
        assert PolymarketConfig.from_env().rpc_url == "https://a"

    def test_bad_signature_type(self, monkeypatch):
        monkeypatch.setenv("POLYMARKET_SIGNATURE_TYPE", "7")
        with pytest.raises(ConfigurationError):
            PolymarketConfig.from_env()


class TestOverrides:
    def test_override(self):
        config = get_polymarket_config(chain_id=80002, rpc_url=None)
        assert config.chain_id == 80002
        assert config.rpc_url is None

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            get_polymarket_config(max_markets=10)


class TestLoadEnv:
    def test_explicit_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("POLYMARKET_CHAIN_ID=80002\n")
        assert load_env(env_file)
        assert PolymarketConfig.from_env().chain_id == 80002

    def test_env_overrides_env_config(self, tmp_path, monkeypatch):
        (tmp_path / ".env.config").write_text("POLYMARKET_CLOB_URL=https://shared\nPOLYMARKET_SIGN_URL=https://sign\n")
        (tmp_path / ".env").write_text("POLYMARKET_CLOB_URL=https://private\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("POLYMARKET_CLOB_URL", raising=False)

        assert load_env()
        config = PolymarketConfig.from_env()
        assert config.clob_url == "https://private"
        assert config.sign_url == "https://sign"


class TestClientConstruction:
    def test_clob_client_levels(self, private_key):
        assert create_clob_client(PolymarketConfig()).mode == AuthLevel.L0
        config = PolymarketConfig(private_key=private_key, api_key="k", api_secret="s", api_passphrase="p")
        assert create_clob_client(config).mode == AuthLevel.L2

    def test_relay_client(self, private_key):
        config = PolymarketConfig(
            private_key=private_key,
            signature_type=SignatureType.POLY_GNOSIS_SAFE,
            relay_url="https://relay.example",
        )
        relay = create_relay_client(config, rpc=FakeRpc())
        assert relay.wallet_type == WalletType.SAFE

    def test_relay_clients_share_lock_registry(self, private_key):
        config = PolymarketConfig(private_key=private_key, proxy_wallet=PROXY_WALLET)
        locks = WalletLocks()
        first = create_relay_client(config, rpc=FakeRpc(), locks=locks)
        second = create_relay_client(config, rpc=FakeRpc(), locks=locks)
        assert first._locks is second._locks is locks
        assert create_relay_client(config, rpc=FakeRpc())._locks is not locks

    def test_settlement_clients_need_key(self):
        with pytest.raises(ConfigurationError):
            create_relay_client(PolymarketConfig(), rpc=FakeRpc())
        with pytest.raises(ConfigurationError):
            create_web3_client(PolymarketConfig(), rpc=FakeRpc())

    def test_web3_client(self, private_key):
        client = create_web3_client(
            PolymarketConfig(private_key=private_key, proxy_wallet=PROXY_WALLET, signature_type=SignatureType.POLY_PROXY),
            rpc=FakeRpc(),
        )
        assert client.wallet_address == PROXY_WALLET
