"""AES-256-GCM sealing for API keys stored in SQLite."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.errors import CredentialError

KEY_BYTES = 32
NONCE_BYTES = 12


def derive_key(secret: str) -> bytes:
    """Use base64 of exactly 32 bytes as-is, otherwise SHA-256 the passphrase."""

    if not secret:
        raise ValueError("empty master key")
    try:
        raw = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        raw = b""
    if len(raw) == KEY_BYTES:
        return raw
    return hashlib.sha256(secret.encode("utf-8")).digest()


class SecretBox:
    def __init__(self, master_key: str) -> None:
        self._aead = AESGCM(derive_key(master_key))

    def seal(self, plaintext: str) -> tuple[str, str]:
        """Return (nonce_b64, ciphertext_b64)."""

        nonce = os.urandom(NONCE_BYTES)
        ciphertext = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce).decode("ascii"), base64.b64encode(ciphertext).decode("ascii")

    def open(self, nonce_b64: str, ciphertext_b64: str) -> str:
        try:
            nonce = base64.b64decode(nonce_b64, validate=True)
            ciphertext = base64.b64decode(ciphertext_b64, validate=True)
            return self._aead.decrypt(nonce, ciphertext, None).decode("utf-8")
        except (binascii.Error, ValueError, InvalidTag) as e:
            raise CredentialError(f"decrypt: {e.__class__.__name__}") from e
