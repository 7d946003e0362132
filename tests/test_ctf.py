"""Tests for settlement calldata encoders."""

from eth_abi import decode

import pytest

from polymarket_core.common.exceptions import InvalidOrderError
from polymarket_core.constants import MAINNET_CONTRACTS
from polymarket_core.onchain.ctf import (
    MAX_UINT256,
    Transaction,
    convert_positions_call,
    encode_approve,
    encode_proxy_calls,
    encode_redeem_neg_risk,
    encode_set_approval_for_all,
    function_selector,
    get_index_set,
    get_market_index,
    merge_positions_call,
    neg_risk_market_id,
    redeem_position_call,
    split_position_call,
    to_bytes32,
    to_wei,
)

from conftest import CONDITION_ID

SPLIT_TYPES = ["address", "bytes32", "bytes32", "uint256[]", "uint256"]


class TestEncoders:
    def test_selectors(self):
        assert function_selector("approve(address,uint256)").hex() == "095ea7b3"
        assert function_selector("setApprovalForAll(address,bool)").hex() == "a22cb465"

    def test_approve(self):
        data = encode_approve(MAINNET_CONTRACTS.exchange)
        spender, amount = decode(["address", "uint256"], data[4:])
        assert spender.lower() == MAINNET_CONTRACTS.exchange.lower()
        assert amount == MAX_UINT256

    def test_set_approval_for_all(self):
        _, approved = decode(["address", "bool"], encode_set_approval_for_all(MAINNET_CONTRACTS.exchange)[4:])
        assert approved is True

    def test_split_call(self):
        call = split_position_call(MAINNET_CONTRACTS, CONDITION_ID, 10_000_000)
        assert call.to == MAINNET_CONTRACTS.conditional_tokens
        assert call.data[:4] == function_selector(
            "splitPosition(address,bytes32,bytes32,uint256[],uint256)"
        )
        collateral, parent, condition, partition, amount = decode(SPLIT_TYPES, call.data[4:])
        assert collateral.lower() == MAINNET_CONTRACTS.collateral.lower()
        assert parent == bytes(32)
        assert condition == bytes.fromhex("ab" * 32)
        assert list(partition) == [1, 2]
        assert amount == 10_000_000

    def test_neg_risk_split_and_merge_go_to_adapter(self):
        split = split_position_call(MAINNET_CONTRACTS, CONDITION_ID, 1, neg_risk=True)
        merge = merge_positions_call(MAINNET_CONTRACTS, CONDITION_ID, 1, neg_risk=True)
        assert split.to == merge.to == MAINNET_CONTRACTS.neg_risk_adapter
        assert merge.data[:4] == function_selector(
            "mergePositions(address,bytes32,bytes32,uint256[],uint256)"
        )

    def test_redeem(self):
        normal = redeem_position_call(MAINNET_CONTRACTS, CONDITION_ID)
        assert normal.to == MAINNET_CONTRACTS.conditional_tokens

        neg_risk = redeem_position_call(MAINNET_CONTRACTS, CONDITION_ID, [5, 0], neg_risk=True)
        assert neg_risk.to == MAINNET_CONTRACTS.neg_risk_adapter
        assert neg_risk.data == encode_redeem_neg_risk(CONDITION_ID, [5, 0])
        _, amounts = decode(["bytes32", "uint256[]"], neg_risk.data[4:])
        assert list(amounts) == [5, 0]

    def test_proxy_calls(self):
        calls = [Transaction(to=MAINNET_CONTRACTS.exchange, data=b"\xaa"), Transaction(to=MAINNET_CONTRACTS.collateral, data=b"")]
        data = encode_proxy_calls(calls)
        assert data[:4] == function_selector("proxy((uint8,address,uint256,bytes)[])")
        (decoded,) = decode(["(uint8,address,uint256,bytes)[]"], data[4:])
        assert [(c[0], c[3]) for c in decoded] == [(1, b"\xaa"), (1, b"")]


class TestNegRiskConvert:
    question_ids = ["0x" + "12" * 31 + "00", "0x" + "12" * 31 + "03"]

    def test_market_index_and_index_set(self):
        assert get_market_index(self.question_ids[1]) == 3
        assert get_index_set(self.question_ids) == 0b1001
        assert get_index_set(self.question_ids + self.question_ids) == 0b1001

    def test_market_id(self):
        assert neg_risk_market_id(self.question_ids[1]) == self.question_ids[0]

    def test_convert_call(self):
        call = convert_positions_call(MAINNET_CONTRACTS, self.question_ids, 2_000_000)
        market_id, index_set, amount = decode(["bytes32", "uint256", "uint256"], call.data[4:])
        assert call.to == MAINNET_CONTRACTS.neg_risk_adapter
        assert market_id == bytes.fromhex("12" * 31 + "00")
        assert (index_set, amount) == (0b1001, 2_000_000)

    def test_convert_needs_questions(self):
        with pytest.raises(InvalidOrderError):
            convert_positions_call(MAINNET_CONTRACTS, [], 1)


class TestConversions:
    def test_to_wei(self):
        assert to_wei(10) == 10_000_000
        assert to_wei(0.1 + 0.2) == 300_000

    def test_to_bytes32_length(self):
        assert to_bytes32(bytes(32)) == bytes(32)
        with pytest.raises(InvalidOrderError):
            to_bytes32("0x1234")
