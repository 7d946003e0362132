"""Tests for HMAC signatures and header sets."""

import base64
import hashlib
import hmac

import pytest

from polymarket_core.clob.headers import (
    POLY_ADDRESS,
    POLY_API_KEY,
    POLY_NONCE,
    POLY_PASSPHRASE,
    POLY_SIGNATURE,
    POLY_TIMESTAMP,
    build_hmac_signature,
    create_level_1_headers,
    create_level_2_headers,
    serialize_body,
)
from polymarket_core.clob.signer import Signer, recover_clob_auth_signer
from polymarket_core.clob.types import ApiCreds, RequestArgs

SECRET = base64.urlsafe_b64encode(b"super-secret-key-material-32byte").decode()
CREDS = ApiCreds(api_key="key-1", api_secret=SECRET, api_passphrase="pass-1")
BODIES = [
    "{}",
    '{"orderID":"0xabc"}',
    '{"order":{"salt":1,"maker":"0x1","side":"BUY"},"owner":"k","orderType":"GTC"}',
    '["0x1","0x2","0x3"]',
]


def expected_hmac(message: str) -> str:
    digest = hmac.new(base64.urlsafe_b64decode(SECRET), message.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode()


class TestHmac:
    def test_message_layout(self):
        signature = build_hmac_signature(SECRET, "1000", "POST", "/order", '{"a":1}')
        assert signature == expected_hmac('1000POST/order{"a":1}')

    def test_body_omitted_when_none(self):
        assert build_hmac_signature(SECRET, 1000, "DELETE", "/cancel-all") == expected_hmac(
            "1000DELETE/cancel-all"
        )

    def test_output_is_url_safe(self):
        signature = build_hmac_signature(SECRET, "1", "GET", "/x")
        assert "+" not in signature and "/" not in signature

    @pytest.mark.parametrize("body", BODIES)
    def test_deterministic(self, body):
        first = build_hmac_signature(SECRET, "1700000000", "POST", "/order", body)
        assert first == build_hmac_signature(SECRET, "1700000000", "POST", "/order", body)

    @pytest.mark.parametrize("body", BODIES)
    def test_any_flipped_body_byte_changes_signature(self, body):
        original = build_hmac_signature(SECRET, "1700000000", "POST", "/order", body)
        raw = body.encode()
        for i in range(len(raw)):
            flipped = raw[:i] + bytes([raw[i] ^ 0x01]) + raw[i + 1 :]
            tampered = flipped.decode()
            assert build_hmac_signature(SECRET, "1700000000", "POST", "/order", tampered) != original

    def test_each_field_is_signed(self):
        base = build_hmac_signature(SECRET, "1", "POST", "/order", "{}")
        assert build_hmac_signature(SECRET, "2", "POST", "/order", "{}") != base
        assert build_hmac_signature(SECRET, "1", "DELETE", "/order", "{}") != base
        assert build_hmac_signature(SECRET, "1", "POST", "/orders", "{}") != base
        assert build_hmac_signature(SECRET, "1", "POST", "/order", None) != base


class TestSerializeBody:
    def test_compact_json(self):
        assert serialize_body({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_passthrough(self):
        assert serialize_body(None) is None
        assert serialize_body('{"x":1}') == '{"x":1}'


class TestHeaderSets:
    def test_level_1(self, private_key, eoa):
        headers = create_level_1_headers(Signer(private_key), nonce=5, timestamp="1700000000")

        assert headers[POLY_ADDRESS] == eoa
        assert headers[POLY_TIMESTAMP] == "1700000000"
        assert headers[POLY_NONCE] == "5"
        assert recover_clob_auth_signer(headers[POLY_SIGNATURE], eoa, 137, "1700000000", 5) == eoa

    def test_level_1_default_nonce(self, private_key):
        headers = create_level_1_headers(Signer(private_key), timestamp="1")
        assert headers[POLY_NONCE] == "0"

    def test_level_2(self, private_key, eoa):
        args = RequestArgs("POST", "/order", '{"order":{}}')
        headers = create_level_2_headers(Signer(private_key), CREDS, args, timestamp="1234")

        assert headers == {
            POLY_ADDRESS: eoa,
            POLY_SIGNATURE: expected_hmac('1234POST/order{"order":{}}'),
            POLY_TIMESTAMP: "1234",
            POLY_API_KEY: "key-1",
            POLY_PASSPHRASE: "pass-1",
        }
