"""
Signing primitives.

Two EIP-712 messages are signed here and must not be confused:

- ClobAuth: the L1 challenge proving wallet ownership. The domain has no
  verifying contract. The 32-byte EIP-712 digest is signed as is.
- Order: the exchange order struct, built and signed through
  ``py_order_utils`` against the exchange or neg-risk exchange contract.

``Signer`` also produces the personal-sign ("\\x19Ethereum Signed
Message:\\n32") signatures used by the gasless relay.
"""

from eth_abi import encode
from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_utils import keccak, to_checksum_address
from py_order_utils.builders import OrderBuilder as UtilsOrderBuilder
from py_order_utils.model import OrderData
from py_order_utils.signer import Signer as UtilsSigner

from polymarket_core.clob.amounts import OrderAmounts
from polymarket_core.clob.types import SignatureType, SignedOrder
from polymarket_core.common.exceptions import SigningError
from polymarket_core.common.logger import get_logger
from polymarket_core.constants import ContractConfig

logger = get_logger("signer")

CLOB_DOMAIN_NAME = "ClobAuthDomain"
CLOB_VERSION = "1"
MSG_TO_SIGN = "This message attests that I control the given wallet"

EXCHANGE_DOMAIN_NAME = "Polymarket CTF Exchange"
EXCHANGE_DOMAIN_VERSION = "1"

CLOB_AUTH_TYPEHASH = keccak(
    text="ClobAuth(address address,string timestamp,uint256 nonce,string message)"
)
ORDER_TYPEHASH = keccak(
    text=(
        "Order(uint256 salt,address maker,address signer,address taker,"
        "uint256 tokenId,uint256 makerAmount,uint256 takerAmount,"
        "uint256 expiration,uint256 nonce,uint256 feeRateBps,"
        "uint8 side,uint8 signatureType)"
    )
)
_DOMAIN_TYPEHASH = keccak(text="EIP712Domain(string name,string version,uint256 chainId)")
_DOMAIN_WITH_CONTRACT_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)


def _hex(signature: bytes) -> str:
    return "0x" + bytes(signature).hex()


def clob_auth_domain_separator(chain_id: int) -> bytes:
    """Domain separator of the ClobAuth message."""
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256"],
            [
                _DOMAIN_TYPEHASH,
                keccak(text=CLOB_DOMAIN_NAME),
                keccak(text=CLOB_VERSION),
                chain_id,
            ],
        )
    )


def clob_auth_struct_hash(address: str, timestamp: str, nonce: int) -> bytes:
    """Struct hash of ClobAuth; string members are hashed first."""
    return keccak(
        encode(
            ["bytes32", "address", "bytes32", "uint256", "bytes32"],
            [
                CLOB_AUTH_TYPEHASH,
                to_checksum_address(address),
                keccak(text=timestamp),
                nonce,
                keccak(text=MSG_TO_SIGN),
            ],
        )
    )


def _typed_message(domain_separator: bytes, struct_hash: bytes) -> SignableMessage:
    # keccak(0x19 0x01 domain struct), the standard EIP-712 digest
    return SignableMessage(version=b"\x01", header=domain_separator, body=struct_hash)


def clob_auth_digest(address: str, chain_id: int, timestamp: str, nonce: int) -> bytes:
    """keccak256(0x1901 ‖ domainSeparator ‖ structHash)."""
    return keccak(
        b"\x19\x01"
        + clob_auth_domain_separator(chain_id)
        + clob_auth_struct_hash(address, timestamp, nonce)
    )


def order_domain_separator(chain_id: int, verifying_contract: str) -> bytes:
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                _DOMAIN_WITH_CONTRACT_TYPEHASH,
                keccak(text=EXCHANGE_DOMAIN_NAME),
                keccak(text=EXCHANGE_DOMAIN_VERSION),
                chain_id,
                to_checksum_address(verifying_contract),
            ],
        )
    )


def order_struct_hash(order: SignedOrder) -> bytes:
    return keccak(
        encode(
            [
                "bytes32", "uint256", "address", "address", "address", "uint256",
                "uint256", "uint256", "uint256", "uint256", "uint256", "uint8", "uint8",
            ],
            [
                ORDER_TYPEHASH,
                order.salt,
                to_checksum_address(order.maker),
                to_checksum_address(order.signer),
                to_checksum_address(order.taker),
                int(order.token_id),
                order.maker_amount,
                order.taker_amount,
                order.expiration,
                order.nonce,
                order.fee_rate_bps,
                int(order.side),
                int(order.signature_type),
            ],
        )
    )


class Signer:
    """
    Wraps a private key.

    Example:
        ```python
        signer = Signer("0x...", chain_id=137)
        signature = signer.sign_clob_auth(timestamp="1700000000", nonce=0)
        ```
    """

    def __init__(self, private_key: str, chain_id: int = 137) -> None:
        """
        Args:
            private_key: Wallet private key (hex string)
            chain_id: Chain ID (137 for Polygon mainnet)

        Raises:
            SigningError: If the key is malformed
        """
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise SigningError(f"Invalid private key: {e}") from e
        self._private_key = private_key
        self._chain_id = chain_id

    @property
    def address(self) -> str:
        """Checksummed signer address."""
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def private_key(self) -> str:
        return self._private_key

    def sign_clob_auth(self, timestamp: str, nonce: int = 0) -> str:
        """Sign the ClobAuth challenge; returns 0x hex."""
        message = _typed_message(
            clob_auth_domain_separator(self._chain_id),
            clob_auth_struct_hash(self.address, timestamp, nonce),
        )
        try:
            signed = self._account.sign_message(message)
        except Exception as e:
            raise SigningError(f"ClobAuth signing failed: {e}") from e
        return _hex(signed.signature)

    def sign_personal_hash(self, message_hash: bytes) -> bytes:
        """
        Personal-sign a 32-byte hash.

        Returns the 65-byte r ‖ s ‖ v signature with v in {27, 28}.
        """
        if len(message_hash) != 32:
            raise SigningError(f"Expected a 32-byte hash, got {len(message_hash)} bytes")
        try:
            signed = self._account.sign_message(encode_defunct(primitive=message_hash))
        except Exception as e:
            raise SigningError(f"Personal signing failed: {e}") from e
        signature = bytearray(signed.signature)
        if signature[64] < 27:
            signature[64] += 27
        return bytes(signature)

    def sign_transaction(self, tx: dict) -> bytes:
        """Sign a raw transaction dict; returns the serialized transaction."""
        try:
            signed = self._account.sign_transaction(tx)
        except Exception as e:
            raise SigningError(f"Transaction signing failed: {e}") from e
        return bytes(signed.raw_transaction)


def recover_clob_auth_signer(
    signature: str, address: str, chain_id: int, timestamp: str, nonce: int
) -> str:
    """Recover the address that signed a ClobAuth challenge."""
    message = _typed_message(
        clob_auth_domain_separator(chain_id),
        clob_auth_struct_hash(address, timestamp, nonce),
    )
    return Account.recover_message(message, signature=signature)


def recover_order_signer(order: SignedOrder, chain_id: int, verifying_contract: str) -> str:
    """Recover the address that signed an exchange order."""
    message = _typed_message(
        order_domain_separator(chain_id, verifying_contract),
        order_struct_hash(order),
    )
    return Account.recover_message(message, signature=order.signature)


class OrderSigner:
    """
    Builds and signs exchange orders with py_order_utils.

    One builder per verifying contract is kept, the regular exchange and
    the neg-risk exchange of the signer's chain.
    """

    def __init__(
        self,
        signer: Signer,
        contracts: ContractConfig,
        signature_type: SignatureType = SignatureType.EOA,
        funder: str | None = None,
    ) -> None:
        """
        Args:
            signer: Key wrapper
            contracts: Contract addresses of the signer's chain
            signature_type: Wallet kind the order is signed for
            funder: Maker address holding the funds (proxy/Safe wallet);
                defaults to the signer address
        """
        self._signer = signer
        self._contracts = contracts
        self._signature_type = SignatureType(signature_type)
        self._funder = to_checksum_address(funder) if funder else signer.address

        utils_signer = UtilsSigner(signer.private_key)
        self._builder = UtilsOrderBuilder(contracts.exchange, signer.chain_id, utils_signer)
        self._builder_neg_risk = UtilsOrderBuilder(
            contracts.neg_risk_exchange, signer.chain_id, utils_signer
        )

    @property
    def funder(self) -> str:
        return self._funder

    @property
    def signature_type(self) -> SignatureType:
        return self._signature_type

    def sign(
        self,
        token_id: str,
        amounts: OrderAmounts,
        *,
        neg_risk: bool,
        fee_rate_bps: int = 0,
        nonce: int = 0,
        expiration: int = 0,
        taker: str,
    ) -> SignedOrder:
        """Build the order struct from computed amounts and sign it."""
        order_data = OrderData(
            maker=self._funder,
            taker=taker,
            tokenId=str(token_id),
            makerAmount=str(amounts.maker_amount),
            takerAmount=str(amounts.taker_amount),
            side=int(amounts.side),
            feeRateBps=str(fee_rate_bps),
            nonce=str(nonce),
            signer=self._signer.address,
            expiration=str(expiration),
            signatureType=int(self._signature_type),
        )

        builder = self._builder_neg_risk if neg_risk else self._builder
        try:
            signed = builder.build_signed_order(order_data)
        except Exception as e:
            raise SigningError(f"Order signing failed: {e}") from e

        signature = signed.signature
        if not signature.startswith("0x"):
            signature = "0x" + signature

        order = signed.order
        logger.debug(
            "Signed order token=%s side=%s maker=%s taker=%s neg_risk=%s",
            token_id,
            amounts.side.name,
            amounts.maker_amount,
            amounts.taker_amount,
            neg_risk,
        )
        return SignedOrder(
            salt=int(order["salt"]),
            maker=to_checksum_address(order["maker"]),
            signer=to_checksum_address(order["signer"]),
            taker=to_checksum_address(order["taker"]),
            token_id=str(order["tokenId"]),
            maker_amount=int(order["makerAmount"]),
            taker_amount=int(order["takerAmount"]),
            expiration=int(order["expiration"]),
            nonce=int(order["nonce"]),
            fee_rate_bps=int(order["feeRateBps"]),
            side=amounts.side,
            signature_type=self._signature_type,
            signature=signature.lower(),
        )
