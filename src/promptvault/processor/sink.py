"""
In-memory consumers for processed batches.
"""

import threading
from typing import List

from ..core.consumer import TracesConsumer
from ..core.traces import Traces


class TracesSink(TracesConsumer):
    """
    Collects every batch it receives.
    
    Used as the terminal stage by the CLI and in tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._traces: List[Traces] = []

    def consume_traces(self, traces: Traces) -> None:
        with self._lock:
            self._traces.append(traces)

    def all_traces(self) -> List[Traces]:
        with self._lock:
            return list(self._traces)

    def span_count(self) -> int:
        with self._lock:
            return sum(t.span_count() for t in self._traces)

    def reset(self) -> None:
        with self._lock:
            self._traces = []
