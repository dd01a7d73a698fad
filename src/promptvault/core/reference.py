"""
Vault reference record and its wire codec.

A Reference is what a store operation returns and what gets embedded back
into a rewritten telemetry attribute. Its textual form is compact JSON:

    {"checksum":"<sha256 hex>","encrypted":false,"size_bytes":42,"uri":"promptvault://fs/..."}

Older records carry only a bare locator such as ``vault://<sha256>``. Those
still decode, with an empty checksum and an unknown size of -1.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict

from .exceptions import MalformedReference


UNKNOWN_SIZE = -1

_CHECKSUM_RE = re.compile(r"^[0-9a-f]{64}$")
_LOCATOR_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://\S+$")


@dataclass(frozen=True)
class Reference:
    """
    Immutable pointer to a vaulted payload.

    Attributes:
        uri: Opaque locator, understood by the backend that produced it
        checksum: Lowercase hex SHA-256 of the payload, or "" when unknown
        encrypted: True if the backend persisted ciphertext
        size_bytes: Exact payload length, or -1 when unknown
    """
    uri: str
    checksum: str = ""
    encrypted: bool = False
    size_bytes: int = UNKNOWN_SIZE

    @property
    def verification_available(self) -> bool:
        """False for legacy references that predate checksums."""
        return self.checksum != ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "uri": self.uri,
            "checksum": self.checksum,
            "encrypted": self.encrypted,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reference":
        """
        Create from dictionary, validating every field.

        Raises:
            MalformedReference: If a field is missing or has the wrong shape
        """
        if not isinstance(data, dict):
            raise MalformedReference(
                f"Reference must be a JSON object, got {type(data).__name__}"
            )

        for name in ("uri", "checksum", "encrypted", "size_bytes"):
            if name not in data:
                raise MalformedReference(f"Reference is missing field '{name}'")

        uri = data["uri"]
        checksum = data["checksum"]
        encrypted = data["encrypted"]
        size_bytes = data["size_bytes"]

        if not isinstance(uri, str) or not uri:
            raise MalformedReference("Reference field 'uri' must be a non-empty string")
        if not isinstance(checksum, str) or (checksum and not _CHECKSUM_RE.match(checksum)):
            raise MalformedReference(
                "Reference field 'checksum' must be empty or 64 lowercase hex characters"
            )
        if not isinstance(encrypted, bool):
            raise MalformedReference("Reference field 'encrypted' must be a boolean")
        # bool is a subclass of int
        if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
            raise MalformedReference("Reference field 'size_bytes' must be an integer")
        if size_bytes < UNKNOWN_SIZE:
            raise MalformedReference(
                f"Reference field 'size_bytes' must be >= {UNKNOWN_SIZE}, got {size_bytes}"
            )

        return cls(
            uri=uri,
            checksum=checksum,
            encrypted=encrypted,
            size_bytes=size_bytes,
        )


def encode(ref: Reference) -> str:
    """
    Encode a reference to its compact JSON wire form.

    Keys are sorted and no whitespace is emitted, so equal references
    always encode to identical strings.
    """
    return json.dumps(ref.to_dict(), sort_keys=True, separators=(",", ":"))


def decode(text: str) -> Reference:
    """
    Decode a reference from either wire shape.

    Args:
        text: Structured JSON reference or a bare legacy locator

    Returns:
        The decoded Reference

    Raises:
        MalformedReference: If the text is neither shape
    """
    if not isinstance(text, str):
        raise MalformedReference(
            f"Reference must be a string, got {type(text).__name__}"
        )

    stripped = text.strip()
    if not stripped:
        raise MalformedReference("Reference is empty", raw=text)

    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise MalformedReference(f"Reference is not valid JSON: {e}", raw=text) from e
        try:
            return Reference.from_dict(data)
        except MalformedReference as e:
            e.raw = text
            raise

    if _LOCATOR_RE.match(stripped):
        return Reference(uri=stripped)

    raise MalformedReference(f"Unrecognized reference format: {stripped[:80]!r}", raw=text)


def is_reference(text: Any) -> bool:
    """Return True if the value decodes as a vault reference."""
    try:
        decode(text)
    except MalformedReference:
        return False
    return True
