"""
Polymarket contract addresses and relay defaults.

Contract addresses for Polygon mainnet and Amoy testnet are collected in an
immutable ``ChainRegistry``. Components receive the registry (or a single
``ContractConfig``) explicitly, so a test can build its own registry next to
the default one.

Reference: https://docs.polymarket.com/#contract-addresses
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from polymarket_core.common.exceptions import ConfigurationError

# Chain IDs
POLYGON_MAINNET_CHAIN_ID = 137
POLYGON_AMOY_CHAIN_ID = 80002

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = bytes(32)

# Outcome tokens and collateral both use 6 decimals
TOKEN_DECIMALS = 6

CLOB_URL = "https://clob.polymarket.com"


@dataclass(frozen=True)
class ContractConfig:
    """Contract addresses for a specific network."""

    exchange: str  # CTF Exchange (order matching)
    neg_risk_exchange: str  # Neg Risk CTF Exchange
    neg_risk_adapter: str
    collateral: str  # USDC
    conditional_tokens: str  # Conditional Token Framework
    proxy_factory: str  # Proxy Wallet Factory
    safe_proxy_factory: str  # Gnosis Safe Proxy Factory

    def exchange_for(self, neg_risk: bool) -> str:
        """Verifying contract for orders on a normal or neg-risk market."""
        return self.neg_risk_exchange if neg_risk else self.exchange


@dataclass(frozen=True)
class RelayConfig:
    """Gasless relay endpoints and GSN addresses."""

    relay_url: str = "https://relayer-v2.polymarket.com"
    relay_hub: str = "0xD216153c06E857cD7f72665E0aF1d7D82172F494"
    relay_address: str = "0x7db63fe6d62eb73fb01f8009416f4c2bb4fbda6a"
    sign_url: str = "https://builder-signing-server.vercel.app/sign"


# Polygon Mainnet (chain_id: 137)
MAINNET_CONTRACTS = ContractConfig(
    exchange="0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
    neg_risk_exchange="0xC5d563A36AE78145C45a50134d48A1215220f80a",
    neg_risk_adapter="0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
    collateral="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    conditional_tokens="0x4D97DCd97eC945f40cF65F87097ACe5EA0476045",
    proxy_factory="0xaB45c5A4B0c941a2F231C04C3f49182e1A254052",
    safe_proxy_factory="0xaacFeEa03eb1561C4e67d661e40682Bd20E3541b",
)

# Polygon Amoy Testnet (chain_id: 80002)
TESTNET_CONTRACTS = ContractConfig(
    exchange="0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40",
    neg_risk_exchange="0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
    neg_risk_adapter="0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
    collateral="0x9c4e1703476e875070ee25b56a58b008cfb8fa78",
    conditional_tokens="0x69308FB512518e39F9b16112fA8d994F4e2Bf8bB",
    proxy_factory="0xaB45c5A4B0c941a2F231C04C3f49182e1A254052",  # Same as mainnet
    safe_proxy_factory="0xaacFeEa03eb1561C4e67d661e40682Bd20E3541b",  # Same as mainnet
)


@dataclass(frozen=True)
class ChainRegistry:
    """Read-only mapping of chain id to contract addresses."""

    chains: Mapping[int, ContractConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "chains", MappingProxyType(dict(self.chains)))

    def get(self, chain_id: int) -> ContractConfig:
        """
        Get contract addresses for a specific chain.

        Raises:
            ConfigurationError: If chain_id is not registered
        """
        try:
            return self.chains[chain_id]
        except KeyError:
            supported = ", ".join(str(c) for c in sorted(self.chains))
            raise ConfigurationError(
                f"Unsupported chain_id: {chain_id}. Supported: {supported}"
            ) from None

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self.chains


DEFAULT_REGISTRY = ChainRegistry(
    {
        POLYGON_MAINNET_CHAIN_ID: MAINNET_CONTRACTS,
        POLYGON_AMOY_CHAIN_ID: TESTNET_CONTRACTS,
    }
)

DEFAULT_RELAY_CONFIG = RelayConfig()


def get_contracts(chain_id: int) -> ContractConfig:
    """Get contract addresses for a chain from the default registry."""
    return DEFAULT_REGISTRY.get(chain_id)
