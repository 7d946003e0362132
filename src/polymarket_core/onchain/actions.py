"""
Settlement actions shared by the relay and direct clients.

Subclasses provide ``execute``, which sends one call from the user's wallet
and waits for its receipt; the actions here only encode the calls.
"""

import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Sequence

from polymarket_core.constants import ContractConfig
from polymarket_core.onchain.ctf import (
    Transaction,
    convert_positions_call,
    merge_positions_call,
    redeem_position_call,
    split_position_call,
    to_wei,
)
from polymarket_core.onchain.rpc import TransactionReceipt


class SettlementActions(ABC):
    """Split, merge, redeem and convert positions through ``execute``."""

    _contracts: ContractConfig

    @abstractmethod
    def execute(
        self,
        call: Transaction,
        metadata: str = "",
        operation: str = "",
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Send ``call`` from the wallet and wait for the receipt."""

    def split_position(
        self,
        condition_id: str,
        amount: float | Decimal,
        neg_risk: bool = False,
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """
        Split USDC into YES + NO tokens.

        Args:
            condition_id: Market condition ID (0x hex)
            amount: USDC amount (6 decimals applied here)
            neg_risk: True for negative risk markets
        """
        call = split_position_call(self._contracts, condition_id, to_wei(amount), neg_risk)
        return self.execute(call, "split", "Split Position", cancel)

    def merge_positions(
        self,
        condition_id: str,
        amount: float | Decimal,
        neg_risk: bool = False,
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Merge YES + NO tokens back into USDC."""
        call = merge_positions_call(self._contracts, condition_id, to_wei(amount), neg_risk)
        return self.execute(call, "merge", "Merge Position", cancel)

    def redeem_position(
        self,
        condition_id: str,
        amounts: Sequence[float] = (),
        neg_risk: bool = False,
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Redeem a resolved position; neg-risk markets need per-outcome amounts."""
        call = redeem_position_call(
            self._contracts, condition_id, [to_wei(a) for a in amounts], neg_risk
        )
        return self.execute(call, "redeem", "Redeem Position", cancel)

    def convert_positions(
        self,
        question_ids: Sequence[str],
        amount: float | Decimal,
        cancel: threading.Event | None = None,
    ) -> TransactionReceipt:
        """Convert NO positions of a neg-risk market into YES positions and USDC."""
        call = convert_positions_call(self._contracts, question_ids, to_wei(amount))
        return self.execute(call, "convert", "Convert Positions", cancel)
