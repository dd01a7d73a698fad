"""
Storage backends for vaulted payloads.
"""

from .filesystem import FilesystemBackend
from .hashed_filesystem import HashedFilesystemBackend
from .encryption import PayloadCipher, get_encryption_key
from .factory import create_backend

__all__ = [
    "FilesystemBackend",
    "HashedFilesystemBackend",
    "PayloadCipher",
    "get_encryption_key",
    "create_backend",
]
