"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from promptvault.core.models import VaultPolicy
from promptvault.core.traces import Span, SpanEvent, Traces
from promptvault.processor.sink import TracesSink
from promptvault.processor.vault_processor import VaultProcessor
from promptvault.storage.filesystem import FilesystemBackend
from promptvault.storage.hashed_filesystem import HashedFilesystemBackend
from promptvault.vault_store import VaultStore


logger = logging.getLogger(__name__)


TEST_TRACE_ID = "0102030405060708090a0b0c0d0e0f10"
TEST_SPAN_ID = "0102030405060708"


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "e2e: End-to-end tests over the full processor")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Helpers
# ============================================================================

def make_span(
    attributes: Optional[Dict[str, str]] = None,
    event_attributes: Optional[Dict[str, str]] = None,
    trace_id: str = TEST_TRACE_ID,
    span_id: str = TEST_SPAN_ID,
    name: str = "chat",
) -> Span:
    """Build a span with optional single event."""
    span = Span(
        trace_id=trace_id,
        span_id=span_id,
        name=name,
        attributes=dict(attributes or {}),
    )
    if event_attributes is not None:
        span.events.append(SpanEvent(name="gen_ai.content", attributes=dict(event_attributes)))
    return span


def make_traces(attributes: Dict[str, str], **kwargs) -> Traces:
    """Wrap a single span with the given attributes in a batch."""
    return Traces.single_span(make_span(attributes, **kwargs))


def first_span(sink: TracesSink) -> Span:
    return sink.all_traces()[0].resource_spans[0].scope_spans[0].spans[0]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """Fresh vault root directory."""
    return tmp_path / "vault"


@pytest.fixture
def fs_backend(vault_dir: Path) -> FilesystemBackend:
    return FilesystemBackend(vault_dir)


@pytest.fixture
def hashed_backend(vault_dir: Path) -> HashedFilesystemBackend:
    return HashedFilesystemBackend(vault_dir)


@pytest.fixture
def vault_store(fs_backend: FilesystemBackend) -> VaultStore:
    """Path-addressed store without encryption."""
    return VaultStore(fs_backend)


@pytest.fixture
def sink() -> TracesSink:
    return TracesSink()


@pytest.fixture
def make_processor(vault_store: VaultStore, sink: TracesSink) -> Callable[..., VaultProcessor]:
    """
    Factory fixture building a processor over the shared store and sink.

    Usage: make_processor(keys=[...], size_threshold=0, mode="replace_with_ref")
    """
    def _make(
        keys=("gen_ai.input.messages",),
        size_threshold: int = 0,
        mode: str = "replace_with_ref",
        store: Optional[VaultStore] = None,
        max_workers: int = 1,
    ) -> VaultProcessor:
        policy = VaultPolicy.create(keys=keys, size_threshold=size_threshold, mode=mode)
        return VaultProcessor(policy, store or vault_store, sink, max_workers=max_workers)

    return _make
