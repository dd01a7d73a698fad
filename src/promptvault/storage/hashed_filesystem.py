"""
Hash-addressed filesystem backend.

Objects are named by the SHA-256 of their content and grouped into
date partitions by the day they were first written:

    {base_path}/{YYYY}/{MM}/{DD}/{sha256}.vault

Locators take the form ``vault://{sha256}``, which is also the bare legacy
reference format, so references written before checksums were recorded
still resolve through this backend.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..core.exceptions import BackendWriteError, NotFoundError, VaultError
from ..core.models import AttributePath
from ..core.storage import VaultBackend
from .filesystem import atomic_write


logger = logging.getLogger(__name__)


URI_PREFIX = "vault://"
OBJECT_SUFFIX = ".vault"

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


class HashedFilesystemBackend(VaultBackend):
    """
    Stores each distinct payload exactly once, named by its checksum.

    Identical content converges on one physical object regardless of
    which span or attribute produced it.
    """

    def __init__(
        self,
        base_path: Path,
        create_dirs: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the hash-addressed backend.

        Args:
            base_path: Root directory of the vault
            create_dirs: Whether to create the root directory
            clock: Returns the current UTC time (for date partitions)
        """
        self.base_path = Path(base_path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        if create_dirs:
            try:
                self.base_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BackendWriteError(
                    f"Failed to create vault directory {self.base_path}: {e}"
                ) from e

        logger.debug(f"Initialized HashedFilesystemBackend: base_path={self.base_path}")

    def store(self, path: AttributePath, checksum: str, data: bytes) -> str:
        if not _HASH_RE.match(checksum or ""):
            raise ValueError(f"checksum must be 64 lowercase hex characters, got {checksum!r}")

        uri = URI_PREFIX + checksum
        existing = self._find(checksum)
        if existing is not None:
            logger.debug(f"Deduplicated vault object {checksum} at {existing}")
            return uri

        partition = self._partition()
        partition.mkdir(parents=True, exist_ok=True)

        file_path = partition / f"{checksum}{OBJECT_SUFFIX}"
        atomic_write(file_path, data)

        logger.debug(f"Wrote vault object: {file_path} ({len(data)} bytes)")
        return uri

    def retrieve(self, uri: str) -> bytes:
        checksum = self._parse(uri)
        file_path = self._find(checksum)
        if file_path is None:
            raise NotFoundError(f"Vault object not found: {uri}", uri=uri)
        try:
            return file_path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Vault object not found: {uri}", uri=uri) from e
        except OSError as e:
            raise VaultError(f"Failed to read vault object {uri}: {e}") from e

    def exists(self, uri: str) -> bool:
        try:
            return self._find(self._parse(uri)) is not None
        except NotFoundError:
            return False

    def get_name(self) -> str:
        return "filesystem_hashed"

    def _parse(self, uri: str) -> str:
        if not isinstance(uri, str) or not uri.startswith(URI_PREFIX):
            raise NotFoundError(f"Locator is not a hashed vault uri: {uri}", uri=uri)
        checksum = uri[len(URI_PREFIX):]
        if not _HASH_RE.match(checksum):
            raise NotFoundError(f"Invalid hashed vault locator: {uri}", uri=uri)
        return checksum

    def _partition(self) -> Path:
        """Directory of today's date partition."""
        now = self._clock()
        return self.base_path / now.strftime("%Y") / now.strftime("%m") / now.strftime("%d")

    def _find(self, checksum: str) -> Optional[Path]:
        """Locate an object by checksum, trying today's partition before the rest."""
        today = self._partition() / f"{checksum}{OBJECT_SUFFIX}"
        if today.is_file():
            return today

        for candidate in sorted(self.base_path.glob(f"*/*/*/{checksum}{OBJECT_SUFFIX}")):
            if candidate.is_file():
                return candidate
        return None
