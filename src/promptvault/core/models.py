"""
Core data models for the prompt vault.

Defines the addressing context handed to storage backends and the
offload policy applied by the processor.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from .exceptions import VaultConfigError


# Suffix of the sibling attribute that carries the encoded reference
VAULT_REF_SUFFIX = ".vault_ref"


class VaultMode(str, Enum):
    """How a record is rewritten after its attribute has been vaulted."""
    REPLACE_WITH_REF = "replace_with_ref"
    REMOVE = "remove"
    KEEP_AND_REF = "keep_and_ref"

    @classmethod
    def parse(cls, value: str) -> "VaultMode":
        """
        Parse a configured mode name.

        ``drop`` is accepted as an alias of ``remove``.

        Raises:
            VaultConfigError: If the name is not a known mode
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "drop":
            return cls.REMOVE
        try:
            return cls(name)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise VaultConfigError(
                f"Unknown vault mode '{value}' (expected one of: {allowed}, drop)"
            )


@dataclass(frozen=True)
class AttributePath:
    """
    Addressing context of a single attribute value.

    Attributes:
        trace_id: Hex trace ID of the owning span
        span_id: Hex span ID of the owning span
        attribute_key: Attribute name, e.g. 'gen_ai.input.messages'
        event_index: Index of the span event carrying the attribute,
            or None for span-level attributes
    """
    trace_id: str
    span_id: str
    attribute_key: str
    event_index: Optional[int] = None

    @property
    def is_event_scoped(self) -> bool:
        return self.event_index is not None

    def storage_key(self) -> str:
        """
        Relative key below the span, using '/' as separator.

        Span attributes map to ``{attribute_key}``; event attributes map to
        ``event_{n}/{attribute_key}``.
        """
        if self.event_index is None:
            return self.attribute_key
        return f"event_{self.event_index}/{self.attribute_key}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (used as logging context)."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "event_index": self.event_index,
            "attribute_key": self.attribute_key,
        }


@dataclass(frozen=True)
class VaultPolicy:
    """
    Offload policy, fixed for the lifetime of a processor.

    Attributes:
        keys: Attribute names eligible for offload
        size_threshold: Values shorter than this many bytes are left untouched
        mode: Rewrite applied after a successful store
    """
    keys: FrozenSet[str] = field(default_factory=frozenset)
    size_threshold: int = 0
    mode: VaultMode = VaultMode.REPLACE_WITH_REF

    def __post_init__(self):
        if self.size_threshold < 0:
            raise VaultConfigError(
                f"size_threshold must be >= 0, got {self.size_threshold}"
            )

    @classmethod
    def create(
        cls,
        keys: Iterable[str],
        size_threshold: int = 0,
        mode: str = VaultMode.REPLACE_WITH_REF.value,
    ) -> "VaultPolicy":
        """Build a policy from plain configuration values."""
        return cls(
            keys=frozenset(keys),
            size_threshold=int(size_threshold),
            mode=VaultMode.parse(mode),
        )

    def is_eligible(self, key: str) -> bool:
        return key in self.keys

    def clears_threshold(self, size_bytes: int) -> bool:
        return size_bytes >= self.size_threshold
