"""
Backend selection by configured tag.
"""

import logging
from typing import Any, Dict

from ..core.exceptions import VaultConfigError
from ..core.storage import VaultBackend
from .filesystem import FilesystemBackend
from .hashed_filesystem import HashedFilesystemBackend


logger = logging.getLogger(__name__)


BACKENDS = {
    "filesystem": FilesystemBackend,
    "filesystem_hashed": HashedFilesystemBackend,
}

# Recognized tags with no implementation in this package
RESERVED_BACKENDS = ("s3",)

DEFAULT_BASE_PATH = "/data/vault"


def create_backend(storage_config: Dict[str, Any]) -> VaultBackend:
    """
    Build the configured storage backend.
    
    Args:
        storage_config: The ``storage`` section of the vault config, e.g.
            {"backend": "filesystem", "filesystem": {"base_path": "/data/vault"}}
    
    Returns:
        A ready-to-use backend
        
    Raises:
        VaultConfigError: If the backend tag is unknown or unsupported
        BackendWriteError: If the backend cannot initialize its storage
    """
    tag = str(storage_config.get("backend") or "filesystem").strip().lower()

    if tag in RESERVED_BACKENDS:
        raise VaultConfigError(f"Storage backend '{tag}' is not supported by this build")

    backend_cls = BACKENDS.get(tag)
    if backend_cls is None:
        allowed = ", ".join(sorted(BACKENDS))
        raise VaultConfigError(f"Unknown storage backend '{tag}' (expected one of: {allowed})")

    fs_config = storage_config.get("filesystem") or {}
    base_path = fs_config.get("base_path") or DEFAULT_BASE_PATH

    logger.info(f"Using vault backend '{tag}' at {base_path}")
    return backend_cls(base_path)
