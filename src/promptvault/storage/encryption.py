"""
Optional at-rest encryption of vaulted payloads.

Payloads are sealed with AES-256-GCM. The persisted blob is:

    MAGIC (8 bytes) | nonce (12 bytes) | ciphertext + tag

Checksums in references are always computed over the plaintext, so the
same content keeps the same checksum whether or not it was encrypted.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.exceptions import ChecksumMismatchError


logger = logging.getLogger(__name__)


MAGIC = b"PVAULT1\x00"
NONCE_SIZE = 12


class PayloadCipher:
    """
    Seals and opens vault payloads with a process-wide key.

    Example:
        >>> cipher = PayloadCipher(b"my secret")
        >>> blob = cipher.encrypt(b"hello")
        >>> cipher.decrypt(blob)
        b'hello'
    """

    def __init__(self, key: bytes):
        if not key:
            raise ValueError("Encryption key is required for encryption")

        # Hash the key to get consistent 32 bytes for AES-256
        if len(key) != 32:
            key = hashlib.sha256(key).digest()

        self._aesgcm = AESGCM(key)

    def encrypt(self, data: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return MAGIC + nonce + self._aesgcm.encrypt(nonce, data, None)

    def decrypt(self, blob: bytes) -> bytes:
        """
        Open a sealed blob.

        Raises:
            ChecksumMismatchError: If the blob is truncated or fails
                authentication (the stored bytes were altered)
        """
        if not self.is_sealed(blob):
            raise ChecksumMismatchError("Vault object is not an encrypted payload")

        body = blob[len(MAGIC):]
        nonce, ciphertext = body[:NONCE_SIZE], body[NONCE_SIZE:]
        try:
            return self._aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise ChecksumMismatchError(
                "Encrypted vault object failed authentication"
            ) from e

    @staticmethod
    def is_sealed(blob: bytes) -> bool:
        return len(blob) >= len(MAGIC) + NONCE_SIZE and blob.startswith(MAGIC)


def get_encryption_key(
    key_env_var: str = "PROMPTVAULT_ENCRYPTION_KEY",
    key_file_path: Optional[str] = None,
) -> Optional[bytes]:
    """
    Get the encryption key from a key file or environment variable.

    A configured key file takes precedence over the environment.

    Args:
        key_env_var: Environment variable name
        key_file_path: Path to key file

    Returns:
        Encryption key as bytes, or None if not available
    """
    if key_file_path:
        key_path = Path(key_file_path)
        if key_path.exists():
            return key_path.read_bytes().strip()
        logger.warning(f"Encryption key file not found: {key_file_path}")

    key_str = os.environ.get(key_env_var)
    if key_str:
        return key_str.encode("utf-8")

    return None
