"""Payload coder for the stick's JSON-RPC bodies.

Without a password the body is plain UTF-8 JSON. With a password the body is

    sha256(plaintext) [32 bytes] || iv [16 bytes] || AES-CBC(ciphertext)

keyed with sha256(password). The stick firmware does its own padding: the
plaintext gets a NUL + 0x10 terminator and is then filled to the block size
with 0x10 bytes (a constant fill byte, not PKCS#7). The leading digest is
not checked on decode.
"""

import hashlib
import json
import logging
from typing import Any, Optional

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from .constants import (
    BLOCK_SIZE,
    DIGEST_SIZE,
    HEADER_SIZE,
    IV_SIZE,
    PAD_BYTE,
    PAYLOAD_TERMINATOR,
)
from .exceptions import PayloadError

logger = logging.getLogger(__name__)


def derive_session_key(password: Optional[str]) -> Optional[bytes]:
    """Return the AES-256 key for a password, or None when no password is set."""
    if password is None or not password.strip():
        return None
    return hashlib.sha256(password.encode("utf-8")).digest()


def add_padding(data: bytes) -> bytes:
    """Fill data up to a multiple of the block size with 0x10 bytes."""
    remainder = len(data) % BLOCK_SIZE
    if remainder == 0:
        return data
    return data + bytes([PAD_BYTE]) * (BLOCK_SIZE - remainder)


def _strip_plaintext(text: str) -> str:
    """Remove the firmware's padding and terminator, in the firmware's order."""
    text = text.rstrip(chr(PAD_BYTE))
    text = text.rstrip("\n")
    text = text.rstrip("\x00")
    return text.rstrip()


def encrypt(plaintext: str, key: bytes) -> bytes:
    """Encrypt a JSON text into digest || iv || ciphertext. A fresh IV is drawn per call."""
    padded = add_padding((plaintext + PAYLOAD_TERMINATOR).encode("utf-8"))
    iv = get_random_bytes(IV_SIZE)
    try:
        ciphertext = AES.new(key, AES.MODE_CBC, iv).encrypt(padded)
    except ValueError as exc:
        raise PayloadError(f"Unable to encrypt payload: {exc}") from exc
    digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
    return digest + iv + ciphertext


def decrypt(payload: bytes, key: bytes) -> str:
    """Decrypt a digest || iv || ciphertext payload back to JSON text."""
    if len(payload) < HEADER_SIZE:
        raise PayloadError(
            f"Encrypted payload too short: {len(payload)} bytes, expected at least {HEADER_SIZE}"
        )
    iv = payload[DIGEST_SIZE:HEADER_SIZE]
    ciphertext = payload[HEADER_SIZE:]
    try:
        decrypted = AES.new(key, AES.MODE_CBC, iv).decrypt(ciphertext)
        text = decrypted.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        raise PayloadError(f"Unable to decrypt payload: {exc}") from exc
    return _strip_plaintext(text)


class PayloadCoder:
    """Encodes JSON-RPC envelopes into request bodies and decodes response bodies.

    The session key is derived once from the password and never changes.
    """

    def __init__(self, password: Optional[str] = None):
        self._key = derive_session_key(password)

    @property
    def encrypted(self) -> bool:
        return self._key is not None

    def encode(self, payload: Any) -> bytes:
        text = json.dumps(payload, separators=(",", ":"))
        if self._key is None:
            return text.encode("utf-8")
        return encrypt(text, self._key)

    def decode(self, payload: bytes) -> Any:
        if self._key is None:
            try:
                text = payload.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise PayloadError(f"Response is not UTF-8: {exc}") from exc
        else:
            text = decrypt(payload, self._key)
        logger.debug("Decoded JSON payload: %s", text)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"Response is not valid JSON: {exc}") from exc
