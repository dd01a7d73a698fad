"""
Storage backend interface for vaulted payloads.
"""

from abc import ABC, abstractmethod

from .models import AttributePath


class VaultBackend(ABC):
    """
    Abstract base class for vault storage backends.
    
    A backend owns the physical layout of stored objects and the locator
    scheme that names them. Checksums and integrity checks are handled by
    VaultStore, so every backend gets read verification for free.
    """

    @abstractmethod
    def store(self, path: AttributePath, checksum: str, data: bytes) -> str:
        """
        Persist bytes and return the locator (uri) that names them.
        
        If an object already exists under the target identity the write
        is skipped and the existing locator is returned.
        
        Args:
            path: Addressing context of the attribute
            checksum: Hex SHA-256 of the plaintext payload
            data: Bytes to persist (possibly ciphertext)
            
        Returns:
            Locator string understood by retrieve()
            
        Raises:
            Exception if the write fails; no partial object may remain visible
        """
        pass

    @abstractmethod
    def retrieve(self, uri: str) -> bytes:
        """
        Read the full object named by a locator.
        
        Raises:
            NotFoundError: If the locator does not resolve to an object
        """
        pass

    @abstractmethod
    def exists(self, uri: str) -> bool:
        """Return True if the locator resolves to an object."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the backend name/identifier."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
