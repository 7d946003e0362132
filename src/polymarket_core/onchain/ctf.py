"""
Calldata encoders for settlement actions.

Split, merge and redeem go to the Conditional Tokens contract for normal
markets and to the NegRiskAdapter for neg-risk markets. Binary markets use
the partition [1, 2] (YES=1, NO=2) under the zero parent collection.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from polymarket_core.clob.rounding import to_decimal
from polymarket_core.common.exceptions import InvalidOrderError
from polymarket_core.constants import TOKEN_DECIMALS, ZERO_BYTES32, ContractConfig

BINARY_PARTITION = [1, 2]
MAX_UINT256 = 2**256 - 1

# Polymarket's proxy factory treats typeCode 1 as a plain CALL
PROXY_CALL_TYPE = 1

PROXY_SELECTOR = bytes.fromhex("34ee9791")  # proxy((uint8,address,uint256,bytes)[])


@dataclass(frozen=True)
class Transaction:
    """A single contract call."""

    to: str
    data: bytes
    value: int = 0

    @property
    def data_hex(self) -> str:
        return "0x" + self.data.hex()


def function_selector(signature: str) -> bytes:
    """Get first 4 bytes of keccak256 hash of function signature."""
    return keccak(text=signature)[:4]


def _call(signature: str, types: list[str], args: list) -> bytes:
    return function_selector(signature) + encode(types, args)


def to_bytes32(value: str | bytes) -> bytes:
    """Accept a 0x hex string or raw bytes of length 32."""
    if isinstance(value, str):
        raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    else:
        raw = bytes(value)
    if len(raw) != 32:
        raise InvalidOrderError(
            f"expected 32 bytes, got {len(raw)}", field="condition_id", bound=32
        )
    return raw


def to_wei(amount: float | int | str | Decimal, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human amount to integer units, truncating."""
    return int(to_decimal(amount).scaleb(decimals))


# === ERC20 / ERC1155 ===


def encode_approve(spender: str, amount: int = MAX_UINT256) -> bytes:
    """Encode ERC20 approve(address,uint256)."""
    return _call(
        "approve(address,uint256)",
        ["address", "uint256"],
        [to_checksum_address(spender), amount],
    )


def encode_set_approval_for_all(operator: str, approved: bool = True) -> bytes:
    """Encode ERC1155 setApprovalForAll(address,bool)."""
    return _call(
        "setApprovalForAll(address,bool)",
        ["address", "bool"],
        [to_checksum_address(operator), approved],
    )


# === Conditional Tokens ===


def encode_split(collateral: str, condition_id: str | bytes, amount: int) -> bytes:
    """splitPosition(address,bytes32,bytes32,uint256[],uint256)."""
    return _call(
        "splitPosition(address,bytes32,bytes32,uint256[],uint256)",
        ["address", "bytes32", "bytes32", "uint256[]", "uint256"],
        [to_checksum_address(collateral), ZERO_BYTES32, to_bytes32(condition_id), BINARY_PARTITION, amount],
    )


def encode_merge(collateral: str, condition_id: str | bytes, amount: int) -> bytes:
    """mergePositions(address,bytes32,bytes32,uint256[],uint256)."""
    return _call(
        "mergePositions(address,bytes32,bytes32,uint256[],uint256)",
        ["address", "bytes32", "bytes32", "uint256[]", "uint256"],
        [to_checksum_address(collateral), ZERO_BYTES32, to_bytes32(condition_id), BINARY_PARTITION, amount],
    )


def encode_redeem(collateral: str, condition_id: str | bytes) -> bytes:
    """redeemPositions(address,bytes32,bytes32,uint256[])."""
    return _call(
        "redeemPositions(address,bytes32,bytes32,uint256[])",
        ["address", "bytes32", "bytes32", "uint256[]"],
        [to_checksum_address(collateral), ZERO_BYTES32, to_bytes32(condition_id), BINARY_PARTITION],
    )


# === NegRiskAdapter ===


def encode_redeem_neg_risk(condition_id: str | bytes, amounts: Sequence[int]) -> bytes:
    """NegRiskAdapter.redeemPositions(bytes32,uint256[])."""
    return _call(
        "redeemPositions(bytes32,uint256[])",
        ["bytes32", "uint256[]"],
        [to_bytes32(condition_id), list(amounts)],
    )


def encode_convert(market_id: str | bytes, index_set: int, amount: int) -> bytes:
    """NegRiskAdapter.convertPositions(bytes32,uint256,uint256)."""
    return _call(
        "convertPositions(bytes32,uint256,uint256)",
        ["bytes32", "uint256", "uint256"],
        [to_bytes32(market_id), index_set, amount],
    )


def get_market_index(question_id: str) -> int:
    """Question index within a neg-risk market: the last byte of its id."""
    if len(question_id) < 2:
        return 0
    return int(question_id[-2:], 16)


def get_index_set(question_ids: Iterable[str]) -> int:
    """Bitmask with one bit per distinct question index."""
    index_set = 0
    for index in {get_market_index(q) for q in question_ids}:
        index_set |= 1 << index
    return index_set


def neg_risk_market_id(question_id: str) -> str:
    """Market id shared by a neg-risk market's questions: last byte zeroed."""
    return question_id[:-2] + "00"


# === Proxy factory ===


def encode_proxy_calls(calls: Sequence[Transaction]) -> bytes:
    """
    Encode proxy((uint8,address,uint256,bytes)[]) for a batch of calls.

    Every call is sent with typeCode 1.
    """
    encoded_calls = [
        (PROXY_CALL_TYPE, to_checksum_address(c.to), c.value, c.data) for c in calls
    ]
    return PROXY_SELECTOR + encode(["(uint8,address,uint256,bytes)[]"], [encoded_calls])


# === Action builders ===


def split_position_call(
    contracts: ContractConfig, condition_id: str | bytes, amount: int, neg_risk: bool = False
) -> Transaction:
    """Split collateral into a full YES/NO set."""
    target = contracts.neg_risk_adapter if neg_risk else contracts.conditional_tokens
    return Transaction(to=target, data=encode_split(contracts.collateral, condition_id, amount))


def merge_positions_call(
    contracts: ContractConfig, condition_id: str | bytes, amount: int, neg_risk: bool = False
) -> Transaction:
    """Merge a full YES/NO set back into collateral."""
    target = contracts.neg_risk_adapter if neg_risk else contracts.conditional_tokens
    return Transaction(to=target, data=encode_merge(contracts.collateral, condition_id, amount))


def redeem_position_call(
    contracts: ContractConfig,
    condition_id: str | bytes,
    amounts: Sequence[int] = (),
    neg_risk: bool = False,
) -> Transaction:
    """
    Redeem resolved positions.

    Neg-risk redemptions name the amount of each outcome token to burn;
    normal redemptions burn the whole balance.
    """
    if neg_risk:
        return Transaction(
            to=contracts.neg_risk_adapter,
            data=encode_redeem_neg_risk(condition_id, amounts),
        )
    return Transaction(
        to=contracts.conditional_tokens,
        data=encode_redeem(contracts.collateral, condition_id),
    )


def convert_positions_call(
    contracts: ContractConfig, question_ids: Sequence[str], amount: int
) -> Transaction:
    """Convert NO positions of a neg-risk market into YES positions and collateral."""
    if not question_ids:
        raise InvalidOrderError("question_ids must not be empty", field="question_ids")
    return Transaction(
        to=contracts.neg_risk_adapter,
        data=encode_convert(
            neg_risk_market_id(question_ids[0]), get_index_set(question_ids), amount
        ),
    )
