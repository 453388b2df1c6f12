"""
At-rest protection for provider email credentials.

Values are encrypted with AES-256-CBC under a single application key and
stored as ``hex(iv):hex(ciphertext)``. The key is derived once by
``CredentialVault.from_secrets`` when the app starts and lives on the vault
instance only.
"""
import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_SECRET = "default-key-please-change-in-production"
KEY_HEX_LENGTH = 64  # 32 bytes
IV_BYTES = 16


def derive_key(encryption_key: Optional[str] = None, fallback_secret: Optional[str] = None) -> bytes:
    """
    Explicit key material is padded with "0" or truncated to 64 hex chars.
    Without it the key is sha256 of the fallback secret, so it stays stable
    across restarts as long as that secret does.
    """
    if encryption_key:
        key_hex = encryption_key[:KEY_HEX_LENGTH].ljust(KEY_HEX_LENGTH, "0")
        try:
            return bytes.fromhex(key_hex)
        except ValueError as exc:
            raise ValueError("ENCRYPTION_KEY must be hexadecimal") from exc

    base = fallback_secret or DEFAULT_FALLBACK_SECRET
    return hashlib.sha256(base.encode("utf-8")).digest()


class CredentialVault:
    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != 32:
            raise ValueError("CredentialVault key must be exactly 32 bytes")
        self._key = bytes(key)

    @classmethod
    def from_secrets(cls, encryption_key: Optional[str] = None, fallback_secret: Optional[str] = None):
        if not encryption_key:
            logger.info("ENCRYPTION_KEY not set, deriving credential key from application secret")
        return cls(derive_key(encryption_key, fallback_secret))

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        if not plaintext:
            return None
        if not isinstance(plaintext, str):
            raise TypeError("Only text credentials can be encrypted")

        iv = os.urandom(IV_BYTES)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return iv.hex() + ":" + ciphertext.hex()

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """Returns None instead of raising; callers treat that as "no credential"."""
        if not ciphertext:
            return None

        parts = ciphertext.split(":")
        if len(parts) != 2:
            logger.warning("Stored credential has an invalid format")
            return None

        try:
            iv = bytes.fromhex(parts[0])
            data = bytes.fromhex(parts[1])

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except (ValueError, TypeError, UnicodeDecodeError) as exc:
            logger.warning("Stored credential could not be decrypted: %s", type(exc).__name__)
            return None


def init_vault(app) -> CredentialVault:
    vault = CredentialVault.from_secrets(
        app.config.get("ENCRYPTION_KEY"),
        app.config.get("SECRET_KEY"),
    )
    app.extensions["credential_vault"] = vault
    return vault


def get_vault() -> CredentialVault:
    return current_app.extensions["credential_vault"]
