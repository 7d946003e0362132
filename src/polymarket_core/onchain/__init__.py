"""On-chain settlement: call encoders, relayer and direct clients."""

from polymarket_core.onchain.actions import SettlementActions
from polymarket_core.onchain.ctf import Transaction
from polymarket_core.onchain.relay import (
    RedeemRequest,
    RelayClient,
    RelayResponse,
    RelaySubmitRequest,
    TransactionState,
    WalletLocks,
    WalletType,
)
from polymarket_core.onchain.rpc import ChainRpc, TransactionReceipt, Web3Rpc, wait_for_receipt
from polymarket_core.onchain.web3_client import Web3Client

__all__ = [
    "ChainRpc",
    "RedeemRequest",
    "RelayClient",
    "RelayResponse",
    "RelaySubmitRequest",
    "SettlementActions",
    "Transaction",
    "TransactionReceipt",
    "TransactionState",
    "WalletLocks",
    "WalletType",
    "Web3Client",
    "Web3Rpc",
    "wait_for_receipt",
]
