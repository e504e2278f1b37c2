"""
Encryption Codec

Turns any JSON-serializable value into an opaque string and back,
under a user password or the application default passphrase.

FORMAT (URL-safe base64 of):
    version (1 byte) | iterations (4 bytes, big-endian) |
    salt (16 bytes) | nonce (12 bytes) | AES-256-GCM ciphertext + tag

Everything needed to decrypt except the password travels inside the
string, so the iteration count can be raised later without breaking
old backups.

CRITICAL: decrypt() never raises for bad input. Wrong password,
tampering, truncation and non-JSON plaintext all return None, and
callers branch on that to tell "bad password" from "not a backup".
"""

import base64
import binascii
import json
import os
import struct
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from kanakku.config import get_settings


FORMAT_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
KEY_SIZE = 32
MAX_ITERATIONS = 5_000_000
_HEADER = struct.Struct(">BI")
_PREFIX_SIZE = _HEADER.size + SALT_SIZE + NONCE_SIZE


class EncryptionCodec:
    """
    Password-based symmetric codec (PBKDF2-HMAC-SHA256 + AES-256-GCM).

    Key derivation is a bounded synchronous CPU cost; callers do not
    await it.
    """

    def __init__(
        self,
        default_passphrase: Optional[str] = None,
        iterations: Optional[int] = None,
    ):
        if default_passphrase is None or iterations is None:
            security = get_settings().security
            default_passphrase = default_passphrase or security.default_passphrase
            iterations = iterations or security.kdf_iterations
        self._default_passphrase = default_passphrase
        self._iterations = iterations

    def _passphrase(self, password: Optional[str]) -> bytes:
        # Empty password means "no password": fall back to the default key
        return (password or self._default_passphrase).encode("utf-8")

    @staticmethod
    def _derive_key(passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(passphrase)

    @staticmethod
    def serialize(value: Any) -> bytes:
        """Canonical JSON text for a value."""
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def encrypt(self, value: Any, password: Optional[str] = None) -> str:
        """
        Encrypt a JSON-serializable value.

        Fresh salt and nonce every call: the same value encrypts to a
        different string each time.

        Raises:
            TypeError: If value is not JSON-serializable
        """
        plaintext = self.serialize(value)
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        key = self._derive_key(self._passphrase(password), salt, self._iterations)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
        blob = _HEADER.pack(FORMAT_VERSION, self._iterations) + salt + nonce + ciphertext
        return base64.urlsafe_b64encode(blob).decode("ascii")

    def decrypt(self, cipher_text: str, password: Optional[str] = None) -> Optional[Any]:
        """
        Decrypt a string produced by encrypt().

        Returns the original value, or None on any failure.
        """
        try:
            blob = base64.urlsafe_b64decode(cipher_text.strip().encode("ascii"))
        except (AttributeError, UnicodeEncodeError, binascii.Error, ValueError):
            return None

        if len(blob) <= _PREFIX_SIZE:
            return None

        version, iterations = _HEADER.unpack_from(blob)
        if version != FORMAT_VERSION or not 1 <= iterations <= MAX_ITERATIONS:
            return None

        offset = _HEADER.size
        salt = blob[offset:offset + SALT_SIZE]
        offset += SALT_SIZE
        nonce = blob[offset:offset + NONCE_SIZE]
        ciphertext = blob[offset + NONCE_SIZE:]

        key = self._derive_key(self._passphrase(password), salt, iterations)
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
            return json.loads(plaintext.decode("utf-8"))
        except (InvalidTag, UnicodeDecodeError, json.JSONDecodeError):
            return None
