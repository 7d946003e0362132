"""
Gasless relay client for Polymarket proxy and Safe wallets.

A settlement call is wrapped in a meta-transaction, signed by the wallet
owner and handed to the relayer, which pays gas. Two wallet kinds are
supported:

- PROXY: the call is encoded as ``proxy(calls)`` on the proxy factory. The
  owner signs keccak("rlx:" ‖ from ‖ to ‖ data ‖ fee ‖ gasPrice ‖ gasLimit ‖
  nonce ‖ relayHub ‖ relay) with personal-sign; v is 27/28. Several calls
  can be batched into one meta-transaction.
- SAFE: the owner personal-signs the hash returned by the Safe's own
  ``getTransactionHash``; v is moved to Safe's eth_sign range 31/32.

The relay nonce is fetched and consumed in separate round-trips, so
fetch, sign and submit run under a lock per wallet address.

Usage:
    ```python
    relay = RelayClient(
        signer=Signer("0x..."),
        rpc=Web3Rpc("https://polygon-rpc.com"),
        wallet_type=WalletType.PROXY,
        builder_creds=ApiCreds("key", "secret", "passphrase"),
    )
    receipt = relay.split_position(condition_id, 10.0)
    ```
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

import requests
from eth_utils import keccak, to_checksum_address
from py_builder_signing_sdk.config import BuilderApiKeyCreds
from py_builder_signing_sdk.signer import BuilderSigner

from polymarket_core.clob.headers import serialize_body
from polymarket_core.clob.signer import Signer
from polymarket_core.clob.types import ApiCreds
from polymarket_core.common.exceptions import (
    ConnectionError,
    GasEstimationError,
    OperationCancelledError,
    RelayError,
    TimeoutError,
    UnsupportedFeatureError,
)
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import (
    DEFAULT_REGISTRY,
    DEFAULT_RELAY_CONFIG,
    POLYGON_MAINNET_CHAIN_ID,
    ZERO_ADDRESS,
    ChainRegistry,
    RelayConfig,
)
from polymarket_core.onchain.actions import SettlementActions
from polymarket_core.onchain.ctf import Transaction, encode_proxy_calls, redeem_position_call, to_wei
from polymarket_core.onchain.rpc import (
    ChainRpc,
    TransactionReceipt,
    get_poly_proxy_address,
    get_safe_proxy_address,
    get_safe_transaction_hash,
    wait_for_receipt,
)

logger = get_logger("relay")

RELAY_PREFIX = b"rlx:"

# Gas limit = estimate * factor + buffer, or the fallback when estimation fails
PROXY_GAS_FACTOR = 1.3
PROXY_GAS_BUFFER = 100_000
PROXY_GAS_FALLBACK = 10_000_000
BATCH_GAS_FACTOR = 1.5
BATCH_GAS_BUFFER = 200_000
BATCH_GAS_FALLBACK = 15_000_000

SUBMIT_PATH = "/submit"


class WalletType(str, Enum):
    """Wallet type for relayer transactions."""

    SAFE = "SAFE"
    PROXY = "PROXY"


class TransactionState:
    """Relayer transaction states."""

    NEW = "STATE_NEW"
    EXECUTED = "STATE_EXECUTED"
    MINED = "STATE_MINED"
    CONFIRMED = "STATE_CONFIRMED"
    FAILED = "STATE_FAILED"
    INVALID = "STATE_INVALID"

    PENDING_STATES = {NEW, EXECUTED}
    SUCCESS_STATES = {MINED, CONFIRMED}
    FAILURE_STATES = {FAILED, INVALID}


@dataclass
class RelayResponse:
    """Response from relayer submission."""

    transaction_id: str
    state: str = TransactionState.NEW
    transaction_hash: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RelayResponse":
        return cls(
            transaction_id=str(data.get("transactionID") or data.get("transactionId") or ""),
            state=data.get("state") or TransactionState.NEW,
            transaction_hash=data.get("transactionHash") or None,
        )

    def is_failed(self) -> bool:
        return self.state in TransactionState.FAILURE_STATES


@dataclass
class RelaySubmitRequest:
    """Body of POST /submit."""

    data: str
    from_address: str
    metadata: str
    nonce: str
    proxy_wallet: str
    signature: str
    signature_params: dict[str, str]
    to: str
    type: WalletType

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "from": self.from_address,
            "metadata": self.metadata,
            "nonce": self.nonce,
            "proxyWallet": self.proxy_wallet,
            "signature": self.signature,
            "signatureParams": dict(self.signature_params),
            "to": self.to,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class RedeemRequest:
    """One redemption of a batch."""

    condition_id: str
    amounts: Sequence[float] = ()
    neg_risk: bool = False


class WalletLocks:
    """
    One mutex per wallet address, created on first use.

    Entries are never evicted; a registry lives as long as the clients
    sharing it and holds one lock per wallet they have signed for.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, address: str) -> threading.Lock:
        key = address.lower()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def create_proxy_struct(
    from_address: str,
    to: str,
    data: bytes,
    tx_fee: int,
    gas_price: int,
    gas_limit: int,
    nonce: int,
    relay_hub: str,
    relay_address: str,
) -> bytes:
    """Raw concatenation signed for a proxy meta-transaction (not ABI encoding)."""
    return (
        RELAY_PREFIX
        + bytes.fromhex(to_checksum_address(from_address)[2:])
        + bytes.fromhex(to_checksum_address(to)[2:])
        + data
        + tx_fee.to_bytes(32, "big")
        + gas_price.to_bytes(32, "big")
        + gas_limit.to_bytes(32, "big")
        + nonce.to_bytes(32, "big")
        + bytes.fromhex(to_checksum_address(relay_hub)[2:])
        + bytes.fromhex(to_checksum_address(relay_address)[2:])
    )


def to_safe_signature(signature: bytes) -> bytes:
    """Remap v from {0,1} or {27,28} to Safe's eth_sign range {31,32}."""
    sig = bytearray(signature)
    if sig[64] in (0, 27):
        sig[64] = 31
    elif sig[64] in (1, 28):
        sig[64] = 32
    return bytes(sig)


def gas_limit_from_estimate(
    estimate: Callable[[], int], factor: float, buffer: int, fallback: int
) -> int:
    """Padded estimate, or ``fallback`` when the node cannot estimate."""
    try:
        gas = estimate()
    except GasEstimationError as e:
        logger.debug("Gas estimation failed, using %d: %s", fallback, e)
        return fallback
    return int(gas * factor) + buffer


class RelayClient(SettlementActions):
    """
    Client for the Polymarket relayer.

    Builds, signs and submits meta-transactions, then waits for the
    on-chain receipt.
    """

    def __init__(
        self,
        signer: Signer,
        rpc: ChainRpc,
        wallet_type: WalletType = WalletType.PROXY,
        chain_id: int = POLYGON_MAINNET_CHAIN_ID,
        registry: ChainRegistry = DEFAULT_REGISTRY,
        relay_config: RelayConfig = DEFAULT_RELAY_CONFIG,
        builder_creds: ApiCreds | None = None,
        proxy_wallet: str | None = None,
        session: requests.Session | None = None,
        locks: WalletLocks | None = None,
        request_timeout: float = 30.0,
        receipt_timeout: float = 120.0,
        poll_interval: float = 1.0,
        max_poll_interval: float = 10.0,
    ) -> None:
        """
        Initialize relay client.

        Args:
            signer: Wallet owner key
            rpc: Node access (gas estimation, Safe hashes, receipts)
            wallet_type: PROXY or SAFE
            chain_id: Chain ID (137 for mainnet)
            registry: Chain contract registry
            relay_config: Relayer URLs and GSN addresses
            builder_creds: Local builder credentials; without them the remote
                signing service produces the builder headers
            proxy_wallet: Wallet address; looked up on-chain when omitted
            session: requests session (a new one by default)
            locks: Per-wallet lock registry; clients that may sign for the
                same wallet must share one (a private registry by default)
            request_timeout: HTTP timeout in seconds
            receipt_timeout: Seconds to wait for a receipt
            poll_interval: First receipt poll interval in seconds
            max_poll_interval: Upper bound of the poll interval
        """
        self._signer = signer
        self._rpc = rpc
        self._wallet_type = WalletType(wallet_type)
        self._contracts = registry.get(chain_id)
        self._relay_config = relay_config
        self._builder_signer = (
            BuilderSigner(
                BuilderApiKeyCreds(
                    key=builder_creds.api_key,
                    secret=builder_creds.api_secret,
                    passphrase=builder_creds.api_passphrase,
                )
            )
            if builder_creds is not None
            else None
        )
        self._proxy_wallet = to_checksum_address(proxy_wallet) if proxy_wallet else None
        self._session = session or requests.Session()
        self._locks = locks if locks is not None else WalletLocks()
        self._request_timeout = request_timeout
        self._receipt_timeout = receipt_timeout
        self._poll_interval = poll_interval
        self._max_poll_interval = max_poll_interval

    @property
    def address(self) -> str:
        """EOA that signs relay transactions."""
        return self._signer.address

    @property
    def wallet_type(self) -> WalletType:
        return self._wallet_type

    @property
    def wallet_address(self) -> str:
        """Proxy or Safe wallet that executes the calls."""
        if self._proxy_wallet is None:
            if self._wallet_type == WalletType.PROXY:
                self._proxy_wallet = get_poly_proxy_address(
                    self._rpc, self._contracts.exchange, self.address
                )
            else:
                self._proxy_wallet = get_safe_proxy_address(
                    self._rpc, self._contracts.safe_proxy_factory, self.address
                )
            logger.debug("Resolved %s wallet %s", self._wallet_type.value, self._proxy_wallet)
        return self._proxy_wallet

    # === Relay HTTP ===

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self._relay_config.relay_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._request_timeout)
        except requests.RequestException as e:
            raise ConnectionError(f"Relayer request {path} failed: {e}") from e
        if response.status_code != 200:
            raise RelayError(
                f"Relayer error on {path} ({response.status_code}): {response.text}",
                raw=response.text,
                status=response.status_code,
            )
        return response.json()

    def get_nonce(self) -> int:
        """Current relay nonce of the owner for this wallet type."""
        data = self._get("/nonce", {"address": self.address, "type": self._wallet_type.value})
        return int(data["nonce"])

    def get_relay_payload(self) -> tuple[str, int]:
        """Relay node address and nonce to sign a proxy transaction with."""
        data = self._get(
            "/relay-payload", {"address": self.address, "type": self._wallet_type.value}
        )
        relay_address = data.get("address") or self._relay_config.relay_address
        return relay_address, int(data["nonce"])

    def get_transaction(self, transaction_id: str) -> dict[str, Any] | None:
        """Relayer record of a submitted transaction."""
        data = self._get("/transaction", {"id": transaction_id})
        if isinstance(data, list):
            return data[0] if data else None
        return data

    def get_relay_headers(self, method: str, path: str, body: str) -> dict[str, str]:
        """
        Builder headers for a relayer request.

        With local builder credentials the builder signing SDK signs the
        request; otherwise the remote signing service returns the headers.
        """
        if self._builder_signer is not None:
            payload = self._builder_signer.create_builder_header_payload(method, path, body)
            return {
                "POLY_BUILDER_API_KEY": payload.POLY_BUILDER_API_KEY,
                "POLY_BUILDER_TIMESTAMP": payload.POLY_BUILDER_TIMESTAMP,
                "POLY_BUILDER_PASSPHRASE": payload.POLY_BUILDER_PASSPHRASE,
                "POLY_BUILDER_SIGNATURE": payload.POLY_BUILDER_SIGNATURE,
            }

        payload = {"method": method, "path": path, "body": body}
        try:
            response = self._session.post(
                self._relay_config.sign_url, json=payload, timeout=self._request_timeout
            )
        except requests.RequestException as e:
            raise ConnectionError(f"Signing service request failed: {e}") from e
        if response.status_code != 200:
            raise RelayError(
                f"Signing service error ({response.status_code}): {response.text}",
                raw=response.text,
                status=response.status_code,
            )
        return {str(k): str(v) for k, v in response.json().items()}

    def submit(self, request: RelaySubmitRequest) -> RelayResponse:
        """POST the signed meta-transaction; the signed body is the body sent."""
        body = serialize_body(request.to_dict())
        headers = self.get_relay_headers("POST", SUBMIT_PATH, body)
        headers["Content-Type"] = "application/json"

        url = f"{self._relay_config.relay_url}{SUBMIT_PATH}"
        try:
            response = self._session.post(
                url, data=body, headers=headers, timeout=self._request_timeout
            )
        except requests.RequestException as e:
            raise ConnectionError(f"Relayer submit failed: {e}") from e
        if response.status_code != 200:
            raise RelayError(
                f"Relayer error ({response.status_code}): {response.text}",
                raw=response.text,
                status=response.status_code,
            )

        result = RelayResponse.from_dict(response.json())
        logger.info(
            "Relay %s transaction submitted: id=%s hash=%s state=%s",
            request.type.value,
            result.transaction_id,
            result.transaction_hash,
            result.state,
        )
        return result

    # === Meta-transaction assembly ===

    def _proxy_gas_limit(self, data: bytes, batch: bool) -> int:
        def estimate() -> int:
            return self._rpc.estimate_gas(
                {
                    "from": self.address,
                    "to": to_checksum_address(self._contracts.proxy_factory),
                    "data": data,
                }
            )

        if batch:
            return gas_limit_from_estimate(estimate, BATCH_GAS_FACTOR, BATCH_GAS_BUFFER, BATCH_GAS_FALLBACK)
        return gas_limit_from_estimate(estimate, PROXY_GAS_FACTOR, PROXY_GAS_BUFFER, PROXY_GAS_FALLBACK)

    def build_proxy_transaction(
        self,
        calls: Sequence[Transaction],
        metadata: str = "",
        batch: bool = False,
    ) -> RelaySubmitRequest:
        """Fetch the relay nonce and sign a proxy meta-transaction."""
        relay_address, nonce = self.get_relay_payload()
        gas_price = 0
        relayer_fee = 0

        data = encode_proxy_calls(calls)
        gas_limit = self._proxy_gas_limit(data, batch)

        struct = create_proxy_struct(
            self.address,
            self._contracts.proxy_factory,
            data,
            relayer_fee,
            gas_price,
            gas_limit,
            nonce,
            self._relay_config.relay_hub,
            relay_address,
        )
        signature = self._signer.sign_personal_hash(keccak(struct))

        return RelaySubmitRequest(
            data="0x" + data.hex(),
            from_address=self.address,
            metadata=metadata,
            nonce=str(nonce),
            proxy_wallet=self.wallet_address,
            signature="0x" + signature.hex(),
            signature_params={
                "gasPrice": str(gas_price),
                "gasLimit": str(gas_limit),
                "relayerFee": str(relayer_fee),
                "relayHub": self._relay_config.relay_hub,
                "relay": relay_address,
            },
            to=to_checksum_address(self._contracts.proxy_factory),
            type=WalletType.PROXY,
        )

    def build_safe_transaction(self, call: Transaction, metadata: str = "") -> RelaySubmitRequest:
        """Fetch the Safe nonce and sign the Safe's own transaction hash."""
        nonce = self.get_nonce()
        safe = self.wallet_address
        tx_hash = get_safe_transaction_hash(self._rpc, safe, call.to, call.data, nonce)
        signature = to_safe_signature(self._signer.sign_personal_hash(tx_hash))

        return RelaySubmitRequest(
            data=call.data_hex,
            from_address=self.address,
            metadata=metadata,
            nonce=str(nonce),
            proxy_wallet=safe,
            signature="0x" + signature.hex(),
            signature_params={
                "baseGas": "0",
                "gasPrice": "0",
                "gasToken": ZERO_ADDRESS,
                "operation": "0",
                "refundReceiver": ZERO_ADDRESS,
                "safeTxnGas": "0",
            },
            to=to_checksum_address(call.to),
            type=WalletType.SAFE,
        )

    # === Execution ===

    def _submit_serialized(self, build: Callable[[], RelaySubmitRequest]) -> RelayResponse:
        # Nonce fetch, signing and submission must not interleave for one wallet
        with self._locks.get(self.wallet_address):
            request = build()
            return self.submit(request)

    def _await_transaction_hash(
        self, response: RelayResponse, cancel: threading.Event
    ) -> str:
        deadline = time.monotonic() + self._receipt_timeout
        interval = self._poll_interval
        while response.transaction_hash is None:
            if response.is_failed():
                raise RelayError(
                    f"Relay transaction {response.transaction_id} ended in {response.state}",
                    transaction_id=response.transaction_id,
                )
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(
                    f"Relay transaction {response.transaction_id} has no hash after "
                    f"{self._receipt_timeout}s (state {response.state})",
                    timeout_seconds=self._receipt_timeout,
                )
            if cancel.wait(min(interval, remaining)):
                raise OperationCancelledError(
                    f"Wait for relay transaction {response.transaction_id} cancelled"
                )
            interval = min(interval * 2, self._max_poll_interval)

            record = self.get_transaction(response.transaction_id)
            if record:
                response.state = record.get("state", response.state)
                response.transaction_hash = record.get("transactionHash") or None
        return response.transaction_hash

    def _finish(
        self, response: RelayResponse, operation: str, cancel: threading.Event | None
    ) -> TransactionReceipt:
        cancel = cancel or threading.Event()
        tx_hash = self._await_transaction_hash(response, cancel)
        receipt = wait_for_receipt(
            self._rpc,
            tx_hash,
            timeout=self._receipt_timeout,
            poll_interval=self._poll_interval,
            max_interval=self._max_poll_interval,
            cancel=cancel,
        )
        if receipt.succeeded:
            logger.info("%s succeeded: %s (block %d)", operation, tx_hash, receipt.block_number)
        else:
            logger.warning("%s reverted: %s", operation, tx_hash)
        return receipt

    def execute(
        self,
        call: Transaction,
        metadata: str = "",
        operation: str = "relay call",
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Relay a single call and wait for its receipt."""
        if self._wallet_type == WalletType.PROXY:
            response = self._submit_serialized(
                lambda: self.build_proxy_transaction([call], metadata)
            )
        else:
            response = self._submit_serialized(
                lambda: self.build_safe_transaction(call, metadata)
            )
        return self._finish(response, operation, cancel)

    def execute_batch(
        self,
        calls: Sequence[Transaction],
        metadata: str = "",
        operation: str = "relay batch",
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """
        Relay several calls as one proxy meta-transaction.

        Raises:
            UnsupportedFeatureError: For Safe wallets
            ValueError: Empty batch
        """
        if self._wallet_type != WalletType.PROXY:
            raise UnsupportedFeatureError("batch execution for SAFE wallets")
        if not calls:
            raise ValueError("execute_batch requires at least one call")
        response = self._submit_serialized(
            lambda: self.build_proxy_transaction(list(calls), metadata, batch=True)
        )
        return self._finish(response, operation, cancel)

    # === Batch operations ===

    def redeem_positions(
        self,
        redeems: Sequence[RedeemRequest],
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Redeem several positions in one proxy meta-transaction."""
        if not redeems:
            raise ValueError("no redeem requests provided")
        calls = [
            redeem_position_call(
                self._contracts, r.condition_id, [to_wei(a) for a in r.amounts], r.neg_risk
            )
            for r in redeems
        ]
        return self.execute_batch(calls, "batch_redeem", "Batch Redeem Positions", cancel)
