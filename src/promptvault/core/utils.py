"""
Core Utilities - hashing and sizing helpers shared by the store and processor.
"""

import hashlib
from typing import Any, Optional


def compute_checksum(data: bytes) -> str:
    """
    Compute the SHA-256 checksum of a payload.
    
    Args:
        data: Raw payload bytes
        
    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters)
        
    Example:
        >>> compute_checksum(b"Hello, World!")
        'dffd6021bb2bd5b0af676290809ec3a53191dd81c7f70a4b28688a362182986f'
    """
    return hashlib.sha256(data).hexdigest()


def encode_value(value: Any) -> Optional[bytes]:
    """
    Encode an attribute value for vaulting.
    
    Only string values are vaultable; anything else returns None.
    """
    if isinstance(value, str):
        return value.encode("utf-8")
    return None
