"""Tests for receipt polling and contract reads."""

import pytest

from polymarket_core.common.exceptions import ConnectionError, OperationCancelledError, TimeoutError
from polymarket_core.onchain.rpc import (
    get_poly_proxy_address,
    get_safe_nonce,
    get_safe_proxy_address,
    get_safe_transaction_hash,
    wait_for_receipt,
)

from conftest import PROXY_WALLET, SAFE_TX_HASH, SAFE_WALLET, TX_HASH, FakeRpc


class RecordingEvent:
    """Cancel event that never fires and records requested sleeps."""

    def __init__(self, fire_after: int | None = None) -> None:
        self.sleeps: list[float] = []
        self.fire_after = fire_after

    def is_set(self) -> bool:
        return False

    def wait(self, timeout: float) -> bool:
        self.sleeps.append(timeout)
        return self.fire_after is not None and len(self.sleeps) >= self.fire_after


class FlakyRpc(FakeRpc):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def get_receipt(self, tx_hash):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("node unavailable")
        return super().get_receipt(tx_hash)


class TestWaitForReceipt:
    def test_returns_once_mined(self):
        rpc = FakeRpc(receipt_after=3)
        event = RecordingEvent()
        receipt = wait_for_receipt(rpc, TX_HASH, timeout=60, poll_interval=1, cancel=event)

        assert receipt.succeeded
        assert rpc.receipt_polls == 4
        assert len(event.sleeps) == 3

    def test_exponential_backoff_is_capped(self):
        event = RecordingEvent()
        wait_for_receipt(
            FakeRpc(receipt_after=6),
            TX_HASH,
            timeout=600,
            poll_interval=1,
            max_interval=5,
            backoff=2,
            cancel=event,
        )
        assert event.sleeps == [1, 2, 4, 5, 5, 5]

    def test_lookup_errors_are_retried(self):
        rpc = FlakyRpc(failures=2)
        receipt = wait_for_receipt(rpc, TX_HASH, timeout=60, cancel=RecordingEvent())
        assert receipt.tx_hash == TX_HASH

    def test_timeout(self):
        with pytest.raises(TimeoutError) as exc:
            wait_for_receipt(FakeRpc(receipt_after=10**9), TX_HASH, timeout=0.02, poll_interval=0.005)
        assert exc.value.timeout_seconds == 0.02

    def test_cancel_during_sleep(self):
        with pytest.raises(OperationCancelledError):
            wait_for_receipt(
                FakeRpc(receipt_after=10**9), TX_HASH, timeout=60, cancel=RecordingEvent(fire_after=2)
            )


class TestContractReads:
    def test_wallet_lookups(self, eoa):
        rpc = FakeRpc()
        assert get_poly_proxy_address(rpc, "0x" + "aa" * 20, eoa) == PROXY_WALLET
        assert get_safe_proxy_address(rpc, "0x" + "bb" * 20, eoa) == SAFE_WALLET

    def test_safe_reads(self):
        rpc = FakeRpc(safe_nonce=42)
        assert get_safe_nonce(rpc, SAFE_WALLET) == 42
        assert get_safe_transaction_hash(rpc, SAFE_WALLET, PROXY_WALLET, b"\x01", 42) == SAFE_TX_HASH
