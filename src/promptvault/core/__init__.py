"""
Core abstractions for the prompt vault: references, models, interfaces.
"""

from .exceptions import (
    VaultError, BackendWriteError, ObjectConflictError, NotFoundError,
    ChecksumMismatchError, MalformedReference, VaultConfigError,
)
from .models import AttributePath, VaultPolicy, VaultMode, VAULT_REF_SUFFIX
from .reference import Reference, encode, decode
from .traces import Traces, ResourceSpans, ScopeSpans, Span, SpanEvent
from .storage import VaultBackend
from .consumer import TracesConsumer

__all__ = [
    "VaultError",
    "BackendWriteError",
    "ObjectConflictError",
    "NotFoundError",
    "ChecksumMismatchError",
    "MalformedReference",
    "VaultConfigError",
    "AttributePath",
    "VaultPolicy",
    "VaultMode",
    "VAULT_REF_SUFFIX",
    "Reference",
    "encode",
    "decode",
    "Traces",
    "ResourceSpans",
    "ScopeSpans",
    "Span",
    "SpanEvent",
    "VaultBackend",
    "TracesConsumer",
]
