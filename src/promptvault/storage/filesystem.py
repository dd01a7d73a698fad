"""
Path-addressed filesystem backend.

Objects are laid out by the telemetry context that produced them:

    {base_path}/{trace_id}/{span_id}/{attribute_key}
    {base_path}/{trace_id}/{span_id}/event_{n}/{attribute_key}

and named by ``promptvault://fs/{trace_id}/{span_id}/...``.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List

from ..core.exceptions import BackendWriteError, NotFoundError, ObjectConflictError, VaultError
from ..core.models import AttributePath
from ..core.storage import VaultBackend


logger = logging.getLogger(__name__)


URI_PREFIX = "promptvault://fs/"


def atomic_write(file_path: Path, data: bytes) -> None:
    """
    Write bytes so that readers see either nothing or the complete file.

    Data goes to a hidden temp file in the target directory, is fsynced,
    then renamed over the target. On failure the temp file is removed.
    """
    fd, tmp_name = tempfile.mkstemp(
        dir=str(file_path.parent),
        prefix=f".{file_path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, file_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class FilesystemBackend(VaultBackend):
    """
    Stores vaulted payloads as files keyed by trace/span/attribute.

    Objects are never overwritten. A second store for the same attribute
    path succeeds only when it carries the same bytes; otherwise it raises
    ObjectConflictError and the first object is kept.
    """

    def __init__(self, base_path: Path, create_dirs: bool = True):
        """
        Initialize the filesystem backend.

        Args:
            base_path: Root directory of the vault
            create_dirs: Whether to create the root directory

        Raises:
            BackendWriteError: If the root directory cannot be created
        """
        self.base_path = Path(base_path)

        if create_dirs:
            try:
                self.base_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BackendWriteError(
                    f"Failed to create vault directory {self.base_path}: {e}"
                ) from e

        logger.debug(f"Initialized FilesystemBackend: base_path={self.base_path}")

    def store(self, path: AttributePath, checksum: str, data: bytes) -> str:
        relative = "/".join([path.trace_id, path.span_id, path.storage_key()])
        uri = URI_PREFIX + relative
        file_path = self._object_path(relative)

        if file_path.is_file():
            if file_path.read_bytes() != data:
                raise ObjectConflictError(
                    f"Vault object {uri} already exists with different content",
                    uri=uri,
                )
            logger.debug(f"Vault object already present, skipping write: {uri}")
            return uri

        # Parents of the final path, including event_{n} segments
        file_path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(file_path, data)

        logger.debug(f"Wrote vault object: {file_path} ({len(data)} bytes)")
        return uri

    def retrieve(self, uri: str) -> bytes:
        file_path = self._resolve(uri)
        try:
            return file_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise NotFoundError(f"Vault object not found: {uri}", uri=uri) from e
        except OSError as e:
            raise VaultError(f"Failed to read vault object {uri}: {e}") from e

    def exists(self, uri: str) -> bool:
        try:
            return self._resolve(uri).is_file()
        except NotFoundError:
            return False

    def get_name(self) -> str:
        return "filesystem"

    def _resolve(self, uri: str) -> Path:
        """Map a locator back to its file path."""
        if not isinstance(uri, str) or not uri.startswith(URI_PREFIX):
            raise NotFoundError(
                f"Locator is not a filesystem vault uri: {uri}", uri=uri
            )
        try:
            return self._object_path(uri[len(URI_PREFIX):])
        except ValueError as e:
            raise NotFoundError(f"Invalid vault locator {uri}: {e}", uri=uri) from e

    def _object_path(self, relative: str) -> Path:
        """
        Join a '/'-separated relative key under the base path.

        Raises:
            ValueError: If a segment is empty or would leave the base path
        """
        segments: List[str] = relative.split("/")
        for segment in segments:
            if segment in ("", ".", "..") or "\\" in segment or "\x00" in segment:
                raise ValueError(f"invalid path segment {segment!r} in {relative!r}")
        return self.base_path.joinpath(*segments)
