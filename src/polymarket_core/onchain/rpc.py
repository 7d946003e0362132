"""
JSON-RPC access and receipt waiting.

``Web3Rpc`` wraps a synchronous ``web3.Web3`` HTTP provider behind the small
``ChainRpc`` surface the settlement clients need. Contract reads used by the
relay (proxy and Safe address lookups, Safe transaction hashes) are plain
functions over ``ChainRpc.call``.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from eth_abi import decode, encode
from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from polymarket_core.common.exceptions import (
    ConnectionError,
    GasEstimationError,
    NetworkError,
    OperationCancelledError,
    TimeoutError,
)
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import ZERO_ADDRESS
from polymarket_core.onchain.ctf import function_selector

logger = get_logger("rpc")


@dataclass
class TransactionReceipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    status: int  # 1 success, 0 revert
    block_number: int
    gas_used: int
    logs: list[dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_web3(cls, receipt: Any) -> "TransactionReceipt":
        return cls(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            status=int(receipt["status"]),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            logs=[dict(log) for log in receipt.get("logs", [])],
        )


class ChainRpc(Protocol):
    """Node operations used by the settlement clients."""

    def estimate_gas(self, tx: dict[str, Any]) -> int: ...

    def call(self, to: str, data: bytes) -> bytes: ...

    def gas_price(self) -> int: ...

    def get_transaction_count(self, address: str) -> int: ...

    def send_raw_transaction(self, raw: bytes) -> str: ...

    def get_receipt(self, tx_hash: str) -> TransactionReceipt | None: ...


class Web3Rpc:
    """
    ChainRpc over an HTTP JSON-RPC endpoint.

    Example:
        ```python
        rpc = Web3Rpc("https://polygon-rpc.com")
        gas = rpc.estimate_gas({"from": eoa, "to": target, "data": data})
        ```
    """

    def __init__(self, rpc_url: str, request_timeout: float = 30.0) -> None:
        self._rpc_url = rpc_url
        self._w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))

    @property
    def web3(self) -> Web3:
        return self._w3

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        """
        Raises:
            GasEstimationError: Node rejected the estimate (revert or transport)
        """
        try:
            return int(self._w3.eth.estimate_gas(tx))
        except (Web3Exception, ValueError, OSError) as e:
            raise GasEstimationError(f"Gas estimation failed: {e}") from e

    def call(self, to: str, data: bytes) -> bytes:
        try:
            return bytes(self._w3.eth.call({"to": to_checksum_address(to), "data": data}))
        except ContractLogicError as e:
            raise NetworkError(f"eth_call to {to} reverted: {e}") from e
        except (Web3Exception, OSError) as e:
            raise ConnectionError(f"eth_call to {to} failed: {e}") from e

    def gas_price(self) -> int:
        return int(self._w3.eth.gas_price)

    def chain_id(self) -> int:
        return int(self._w3.eth.chain_id)

    def get_transaction_count(self, address: str) -> int:
        return int(self._w3.eth.get_transaction_count(to_checksum_address(address), "pending"))

    def send_raw_transaction(self, raw: bytes) -> str:
        try:
            return Web3.to_hex(self._w3.eth.send_raw_transaction(raw))
        except (Web3Exception, ValueError, OSError) as e:
            raise NetworkError(f"Broadcast failed: {e}") from e

    def get_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """
        Returns None while the transaction is not mined.

        Raises:
            ConnectionError: Transport failure talking to the node
        """
        try:
            receipt = self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except (Web3Exception, OSError) as e:
            raise ConnectionError(f"Receipt lookup failed for {tx_hash}: {e}") from e
        return TransactionReceipt.from_web3(receipt)


def wait_for_receipt(
    rpc: ChainRpc,
    tx_hash: str,
    timeout: float = 120.0,
    poll_interval: float = 1.0,
    max_interval: float = 10.0,
    backoff: float = 2.0,
    cancel: threading.Event | None = None,
) -> TransactionReceipt:
    """
    Poll for a receipt with exponential backoff.

    Lookup failures are retried like a missing receipt, until the timeout.

    Args:
        rpc: Node access
        tx_hash: Transaction hash (0x hex)
        timeout: Total seconds to wait
        poll_interval: First sleep between polls
        max_interval: Upper bound for the sleep
        backoff: Multiplier applied to the sleep after each poll
        cancel: Set to abort the wait

    Raises:
        TimeoutError: No receipt within ``timeout``
        OperationCancelledError: ``cancel`` was set
    """
    cancel = cancel or threading.Event()
    deadline = time.monotonic() + timeout
    interval = poll_interval
    attempts = 0

    while True:
        if cancel.is_set():
            raise OperationCancelledError(f"Wait for receipt {tx_hash} cancelled")

        attempts += 1
        try:
            receipt = rpc.get_receipt(tx_hash)
        except NetworkError as e:
            logger.debug("Receipt poll %d for %s failed: %s", attempts, tx_hash, e)
            receipt = None

        if receipt is not None:
            logger.debug("Receipt for %s after %d polls", tx_hash, attempts)
            return receipt

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError(
                f"No receipt for {tx_hash} after {timeout}s ({attempts} polls)",
                timeout_seconds=timeout,
            )

        if cancel.wait(min(interval, remaining)):
            raise OperationCancelledError(f"Wait for receipt {tx_hash} cancelled")
        interval = min(interval * backoff, max_interval)


# === Contract reads ===


def _read_address(rpc: ChainRpc, contract: str, signature: str, owner: str) -> str:
    data = function_selector(signature) + encode(["address"], [to_checksum_address(owner)])
    (address,) = decode(["address"], rpc.call(contract, data))
    return to_checksum_address(address)


def get_poly_proxy_address(rpc: ChainRpc, exchange: str, owner: str) -> str:
    """Proxy wallet of ``owner``, as reported by the CTF exchange."""
    return _read_address(rpc, exchange, "getPolyProxyWalletAddress(address)", owner)


def get_safe_proxy_address(rpc: ChainRpc, safe_proxy_factory: str, owner: str) -> str:
    """Counterfactual Safe address of ``owner``."""
    return _read_address(rpc, safe_proxy_factory, "computeProxyAddress(address)", owner)


def get_safe_nonce(rpc: ChainRpc, safe: str) -> int:
    (nonce,) = decode(["uint256"], rpc.call(safe, function_selector("nonce()")))
    return int(nonce)


SAFE_TX_HASH_SIGNATURE = (
    "getTransactionHash(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,uint256)"
)


def get_safe_transaction_hash(
    rpc: ChainRpc, safe: str, to: str, data: bytes, nonce: int, operation: int = 0
) -> bytes:
    """Hash the Safe itself computes for a call with zeroed gas and refund fields."""
    calldata = function_selector(SAFE_TX_HASH_SIGNATURE) + encode(
        [
            "address", "uint256", "bytes", "uint8", "uint256",
            "uint256", "uint256", "address", "address", "uint256",
        ],
        [
            to_checksum_address(to), 0, data, operation, 0,
            0, 0, ZERO_ADDRESS, ZERO_ADDRESS, nonce,
        ],
    )
    (tx_hash,) = decode(["bytes32"], rpc.call(safe, calldata))
    return bytes(tx_hash)
