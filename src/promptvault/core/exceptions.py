"""
Custom exceptions for the prompt vault.
"""


class VaultError(Exception):
    """Base exception for all vault errors."""
    pass


class BackendWriteError(VaultError):
    """
    The storage medium rejected a write.
    
    Raised when:
    - Permission is denied on the vault directory
    - The disk or quota is full
    - The object path is too long or otherwise invalid
    """
    
    def __init__(self, message: str, uri: str = None):
        super().__init__(message)
        self.uri = uri


class ObjectConflictError(BackendWriteError):
    """An object already exists at the target locator with different bytes."""


class NotFoundError(VaultError):
    """A locator does not resolve to any stored object."""
    
    def __init__(self, message: str, uri: str = None):
        super().__init__(message)
        self.uri = uri


class ChecksumMismatchError(VaultError):
    """
    Stored content does not match the checksum recorded in its reference.
    
    Either the object was altered after it was written or the backend
    resolved the locator to a different object.
    """
    
    def __init__(self, message: str, expected: str = None, actual: str = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class MalformedReference(VaultError):
    """A reference string could not be decoded."""
    
    def __init__(self, message: str, raw: str = None):
        super().__init__(message)
        self.raw = raw


class VaultConfigError(VaultError):
    """
    Error in vault configuration.
    
    Raised when:
    - An unknown storage backend or mode is configured
    - Configuration values are out of valid range
    - Encryption is enabled without a key
    """
    pass
