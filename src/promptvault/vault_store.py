"""
Vault Store - content-addressed store/retrieve engine.

Wraps a pluggable VaultBackend with the guarantees every backend shares:
SHA-256 checksums computed at store time, checksum verification on read,
optional encryption at rest, and a uniform error taxonomy.
"""

import logging
from typing import Optional, Union

from .core.exceptions import (
    BackendWriteError,
    ChecksumMismatchError,
    ObjectConflictError,
    VaultError,
)
from .core.models import AttributePath
from .core.reference import Reference, decode
from .core.storage import VaultBackend
from .core.utils import compute_checksum
from .storage.encryption import PayloadCipher


logger = logging.getLogger(__name__)


class VaultStore:
    """
    Stores payloads in a backend and resolves references back to bytes.

    Safe to share between threads: the only shared state is the backend's
    storage medium, and backends only ever add objects.

    Example:
        >>> store = VaultStore(FilesystemBackend(Path("/data/vault")))
        >>> ref = store.store(AttributePath("t1", "s1", "gen_ai.prompt"), b"hi")
        >>> store.retrieve(ref)
        b'hi'
    """

    def __init__(
        self,
        backend: VaultBackend,
        cipher: Optional[PayloadCipher] = None,
    ):
        """
        Initialize the store.

        Args:
            backend: Storage backend that owns the physical layout
            cipher: Optional cipher; when set, payloads are encrypted at rest
        """
        self.backend = backend
        self.cipher = cipher

    @property
    def backend_name(self) -> str:
        return self.backend.get_name()

    def store(self, path: AttributePath, payload: Union[bytes, bytearray]) -> Reference:
        """
        Persist a payload and return its reference.

        Zero-length payloads are supported.

        Args:
            path: Addressing context of the attribute
            payload: Raw bytes to vault

        Returns:
            Reference carrying the locator, checksum and size

        Raises:
            BackendWriteError: If the backend could not persist the payload
        """
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError(f"payload must be bytes, got {type(payload).__name__}")
        payload = bytes(payload)

        checksum = compute_checksum(payload)
        data = self.cipher.encrypt(payload) if self.cipher else payload

        try:
            uri = self.backend.store(path, checksum, data)
        except ObjectConflictError as e:
            if not self._holds(e.uri, checksum):
                raise
            uri = e.uri
        except BackendWriteError:
            raise
        except Exception as e:
            raise BackendWriteError(
                f"Failed to write vault object for {path.storage_key()}: {e}"
            ) from e

        return Reference(
            uri=uri,
            checksum=checksum,
            encrypted=self.cipher is not None,
            size_bytes=len(payload),
        )

    def retrieve(self, ref: Reference) -> bytes:
        """
        Read a payload back and verify it against the reference.

        Verification is skipped for legacy references with no checksum.

        Args:
            ref: Reference returned by store()

        Returns:
            The exact payload bytes

        Raises:
            NotFoundError: If the locator resolves to nothing
            ChecksumMismatchError: If the content does not match the checksum
        """
        blob = self.backend.retrieve(ref.uri)
        payload = self._open(ref, blob)

        if ref.verification_available:
            actual = compute_checksum(payload)
            if actual != ref.checksum:
                raise ChecksumMismatchError(
                    f"Checksum mismatch for {ref.uri}: expected {ref.checksum}, got {actual}",
                    expected=ref.checksum,
                    actual=actual,
                )
        else:
            logger.debug(f"No checksum on reference {ref.uri}; verification unavailable")

        return payload

    def retrieve_encoded(self, text: str) -> bytes:
        """Decode a reference string and retrieve its payload."""
        return self.retrieve(decode(text))

    def exists(self, ref: Reference) -> bool:
        return self.backend.exists(ref.uri)

    def close(self) -> None:
        self.backend.close()

    def __enter__(self) -> "VaultStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _open(self, ref: Reference, blob: bytes) -> bytes:
        """Decrypt the stored blob when the reference says it is encrypted."""
        if not ref.encrypted:
            return blob
        if self.cipher is None:
            raise VaultError(
                f"Vault object {ref.uri} is encrypted but no encryption key is configured"
            )
        return self.cipher.decrypt(blob)

    def _holds(self, uri: str, checksum: str) -> bool:
        """Check whether the object already at uri carries the given plaintext."""
        existing = Reference(uri=uri, checksum=checksum, encrypted=self.cipher is not None)
        try:
            self.retrieve(existing)
        except VaultError as e:
            logger.debug(f"Existing vault object {uri} does not match: {e}")
            return False
        return True
