"""
Direct settlement client that pays its own gas.

Transactions are legacy (gasPrice) transactions signed by the owner key:

- EOA: the call is sent as is.
- POLY_PROXY: the call is wrapped in ``proxy(calls)`` and sent to the
  proxy factory.
- POLY_GNOSIS_SAFE: the owner signs the Safe's ``getTransactionHash`` for
  its current ``nonce()`` and sends ``execTransaction`` to the Safe.
"""

import threading

from eth_abi import encode
from eth_utils import to_checksum_address

from polymarket_core.clob.signer import Signer
from polymarket_core.clob.types import SignatureType
from polymarket_core.common.exceptions import GasEstimationError
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import (
    DEFAULT_REGISTRY,
    POLYGON_MAINNET_CHAIN_ID,
    ZERO_ADDRESS,
    ChainRegistry,
)
from polymarket_core.onchain.actions import SettlementActions
from polymarket_core.onchain.ctf import (
    Transaction,
    encode_approve,
    encode_proxy_calls,
    encode_set_approval_for_all,
    function_selector,
)
from polymarket_core.onchain.relay import to_safe_signature
from polymarket_core.onchain.rpc import (
    ChainRpc,
    TransactionReceipt,
    get_poly_proxy_address,
    get_safe_nonce,
    get_safe_proxy_address,
    get_safe_transaction_hash,
    wait_for_receipt,
)

logger = get_logger("web3")

GAS_PRICE_MULTIPLIER_PCT = 105
GAS_MULTIPLIER = 1.05
GAS_FALLBACK = 500_000
WRAPPED_GAS_BUFFER = 100_000

EXEC_TRANSACTION_SIGNATURE = (
    "execTransaction(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,bytes)"
)


def encode_exec_transaction(to: str, data: bytes, signature: bytes, operation: int = 0) -> bytes:
    """Safe execTransaction with zeroed gas and refund fields."""
    return function_selector(EXEC_TRANSACTION_SIGNATURE) + encode(
        [
            "address", "uint256", "bytes", "uint8", "uint256",
            "uint256", "uint256", "address", "address", "bytes",
        ],
        [
            to_checksum_address(to), 0, data, operation, 0,
            0, 0, ZERO_ADDRESS, ZERO_ADDRESS, signature,
        ],
    )


class Web3Client(SettlementActions):
    """
    Settlement client that submits transactions to the chain directly.

    Example:
        ```python
        client = Web3Client(Signer("0x..."), Web3Rpc(rpc_url), SignatureType.POLY_PROXY)
        client.set_all_approvals()
        client.merge_positions(condition_id, 5.0)
        ```
    """

    def __init__(
        self,
        signer: Signer,
        rpc: ChainRpc,
        signature_type: SignatureType = SignatureType.EOA,
        chain_id: int = POLYGON_MAINNET_CHAIN_ID,
        registry: ChainRegistry = DEFAULT_REGISTRY,
        proxy_wallet: str | None = None,
        receipt_timeout: float = 120.0,
        poll_interval: float = 1.0,
        max_poll_interval: float = 10.0,
    ) -> None:
        self._signer = signer
        self._rpc = rpc
        self._signature_type = SignatureType(signature_type)
        self._chain_id = chain_id
        self._contracts = registry.get(chain_id)
        self._proxy_wallet = to_checksum_address(proxy_wallet) if proxy_wallet else None
        self._receipt_timeout = receipt_timeout
        self._poll_interval = poll_interval
        self._max_poll_interval = max_poll_interval

    @property
    def address(self) -> str:
        """Owner EOA; pays gas."""
        return self._signer.address

    @property
    def signature_type(self) -> SignatureType:
        return self._signature_type

    @property
    def wallet_address(self) -> str:
        """Address holding the positions."""
        if self._signature_type == SignatureType.EOA:
            return self.address
        if self._proxy_wallet is None:
            if self._signature_type == SignatureType.POLY_PROXY:
                self._proxy_wallet = get_poly_proxy_address(
                    self._rpc, self._contracts.exchange, self.address
                )
            else:
                self._proxy_wallet = get_safe_proxy_address(
                    self._rpc, self._contracts.safe_proxy_factory, self.address
                )
        return self._proxy_wallet

    def _estimate(self, sender: str, call: Transaction) -> int:
        try:
            gas = self._rpc.estimate_gas(
                {"from": sender, "to": to_checksum_address(call.to), "data": call.data}
            )
        except GasEstimationError as e:
            logger.debug("Gas estimation failed, using %d: %s", GAS_FALLBACK, e)
            gas = GAS_FALLBACK
        return int(gas * GAS_MULTIPLIER)

    def _wrap(self, call: Transaction) -> tuple[Transaction, int]:
        """Transaction the EOA actually sends, with its gas limit."""
        if self._signature_type == SignatureType.EOA:
            return call, self._estimate(self.address, call)

        gas = self._estimate(self.wallet_address, call) + WRAPPED_GAS_BUFFER
        if self._signature_type == SignatureType.POLY_PROXY:
            wrapped = Transaction(
                to=self._contracts.proxy_factory, data=encode_proxy_calls([call])
            )
            return wrapped, gas

        safe = self.wallet_address
        nonce = get_safe_nonce(self._rpc, safe)
        tx_hash = get_safe_transaction_hash(self._rpc, safe, call.to, call.data, nonce)
        signature = to_safe_signature(self._signer.sign_personal_hash(tx_hash))
        return Transaction(to=safe, data=encode_exec_transaction(call.to, call.data, signature)), gas

    def build_transaction(self, call: Transaction) -> bytes:
        """Signed raw legacy transaction carrying ``call``."""
        wrapped, gas = self._wrap(call)
        gas_price = self._rpc.gas_price() * GAS_PRICE_MULTIPLIER_PCT // 100
        tx = {
            "nonce": self._rpc.get_transaction_count(self.address),
            "gasPrice": gas_price,
            "gas": gas,
            "to": to_checksum_address(wrapped.to),
            "value": wrapped.value,
            "data": wrapped.data,
            "chainId": self._chain_id,
        }
        return self._signer.sign_transaction(tx)

    def execute(
        self,
        call: Transaction,
        metadata: str = "",
        operation: str = "transaction",
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Sign, broadcast and wait for ``call``."""
        raw = self.build_transaction(call)
        tx_hash = self._rpc.send_raw_transaction(raw)
        logger.info("%s sent: %s", operation, tx_hash)

        receipt = wait_for_receipt(
            self._rpc,
            tx_hash,
            timeout=self._receipt_timeout,
            poll_interval=self._poll_interval,
            max_interval=self._max_poll_interval,
            cancel=cancel,
        )
        if receipt.succeeded:
            logger.info("%s succeeded: %s (gas used %d)", operation, tx_hash, receipt.gas_used)
        else:
            logger.warning("%s reverted: %s", operation, tx_hash)
        return receipt

    # === Approvals ===

    def set_collateral_approval(self, spender: str) -> TransactionReceipt:
        """Approve ``spender`` for unlimited USDC."""
        call = Transaction(to=self._contracts.collateral, data=encode_approve(spender))
        return self.execute(call, operation="Collateral Approval")

    def set_conditional_tokens_approval(self, spender: str) -> TransactionReceipt:
        """Approve ``spender`` as operator of all conditional tokens."""
        call = Transaction(
            to=self._contracts.conditional_tokens, data=encode_set_approval_for_all(spender)
        )
        return self.execute(call, operation="Conditional Tokens Approval")

    def set_all_approvals(self) -> list[TransactionReceipt]:
        """Every approval trading and settlement needs, in order."""
        contracts = self._contracts
        receipts = []
        for spender in (
            contracts.conditional_tokens,
            contracts.exchange,
            contracts.neg_risk_exchange,
            contracts.neg_risk_adapter,
        ):
            logger.info("Approving %s as spender on USDC", spender)
            receipts.append(self.set_collateral_approval(spender))
        for spender in (contracts.exchange, contracts.neg_risk_exchange, contracts.neg_risk_adapter):
            logger.info("Approving %s as spender on ConditionalTokens", spender)
            receipts.append(self.set_conditional_tokens_approval(spender))
        logger.info("All approvals set")
        return receipts
