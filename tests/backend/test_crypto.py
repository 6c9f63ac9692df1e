"""Tests for the JSON-RPC payload coder."""

import hashlib
import json

import pytest
from Crypto.Cipher import AES

from rainbird_stick.protocol.crypto import (
    PayloadCoder,
    add_padding,
    decrypt,
    derive_session_key,
    encrypt,
)
from rainbird_stick.protocol.exceptions import PayloadError


PASSWORD = "testpass"

NETWORK_RESPONSE = {"id": 1, "jsonrpc": "2.0", "result": {"networkUp": True, "internetUp": True}}


class TestSessionKey:
    def test_key_is_sha256_of_password(self):
        assert derive_session_key(PASSWORD) == hashlib.sha256(b"testpass").digest()

    def test_blank_password_means_no_key(self):
        assert derive_session_key(None) is None
        assert derive_session_key("") is None
        assert derive_session_key("   ") is None

    def test_coder_mode(self):
        assert PayloadCoder(PASSWORD).encrypted
        assert not PayloadCoder(None).encrypted
        assert not PayloadCoder("").encrypted


class TestPadding:
    def test_pads_to_block_size_with_0x10(self):
        padded = add_padding(b"abc")
        assert len(padded) == 16
        assert padded == b"abc" + b"\x10" * 13

    def test_aligned_data_unchanged(self):
        data = b"x" * 32
        assert add_padding(data) == data


class TestEncryptedPayload:
    def test_layout(self):
        key = derive_session_key(PASSWORD)
        text = '{"id":1}'
        payload = encrypt(text, key)
        assert payload[:32] == hashlib.sha256(text.encode()).digest()
        assert (len(payload) - 48) % 16 == 0

        iv = payload[32:48]
        plain = AES.new(key, AES.MODE_CBC, iv).decrypt(payload[48:])
        assert plain.startswith(b'{"id":1}\x00\x10')
        assert plain.rstrip(b"\x10").endswith(b"\x00")

    def test_round_trip(self):
        coder = PayloadCoder(PASSWORD)
        assert coder.decode(coder.encode(NETWORK_RESPONSE)) == NETWORK_RESPONSE

    def test_fresh_iv_per_call(self):
        coder = PayloadCoder(PASSWORD)
        first = coder.encode(NETWORK_RESPONSE)
        second = coder.encode(NETWORK_RESPONSE)
        assert first != second
        assert first[32:48] != second[32:48]
        # Same plaintext, same digest
        assert first[:32] == second[:32]

    def test_decrypts_firmware_style_trailer(self):
        """Responses may end with newline, NUL and 0x10 fill."""
        key = derive_session_key(PASSWORD)
        iv = b"\x01" * 16
        plain = add_padding(b'{"result":{"data":"0138"}}\n\x00\x10')
        payload = b"\x00" * 32 + iv + AES.new(key, AES.MODE_CBC, iv).encrypt(plain)
        assert decrypt(payload, key) == '{"result":{"data":"0138"}}'

    def test_digest_is_not_checked(self):
        coder = PayloadCoder(PASSWORD)
        payload = bytearray(coder.encode(NETWORK_RESPONSE))
        payload[:32] = b"\xff" * 32
        assert coder.decode(bytes(payload)) == NETWORK_RESPONSE

    def test_short_payload_rejected(self):
        coder = PayloadCoder(PASSWORD)
        with pytest.raises(PayloadError):
            coder.decode(b"\x00" * 47)

    def test_ciphertext_not_block_aligned_rejected(self):
        coder = PayloadCoder(PASSWORD)
        with pytest.raises(PayloadError):
            coder.decode(b"\x00" * 48 + b"\x01\x02\x03")

    def test_wrong_password_fails(self):
        payload = PayloadCoder(PASSWORD).encode(NETWORK_RESPONSE)
        with pytest.raises(PayloadError):
            PayloadCoder("other").decode(payload)


class TestPlaintextPayload:
    def test_encode_is_utf8_json(self):
        body = PayloadCoder(None).encode({"id": 1, "method": "getNetworkStatus"})
        assert body == b'{"id":1,"method":"getNetworkStatus"}'

    def test_decode(self):
        coder = PayloadCoder("")
        assert coder.decode(json.dumps(NETWORK_RESPONSE).encode()) == NETWORK_RESPONSE

    def test_invalid_json_rejected(self):
        with pytest.raises(PayloadError):
            PayloadCoder(None).decode(b"not json")

    def test_invalid_utf8_rejected(self):
        with pytest.raises(PayloadError):
            PayloadCoder(None).decode(b"\xff\xfe")
