"""
Vault processor - offloads eligible span and event attributes to the vault.

For each span in a batch, and for each event on that span:

1. Collect: snapshot the attributes whose key is a vault key and whose
   UTF-8 length clears the size threshold.
2. Offload: store each collected value; a failed store leaves that
   attribute exactly as it was and is logged as a warning.
3. Rewrite: apply the policy mode, always adding ``<key>.vault_ref``.

The batch is then forwarded to the next consumer with the same spans in
the same order. Only a failure of that forwarding call propagates.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..core.consumer import TracesConsumer
from ..core.exceptions import VaultError
from ..core.models import AttributePath, VaultMode, VaultPolicy, VAULT_REF_SUFFIX
from ..core.reference import encode
from ..core.traces import Span, Traces
from ..core.utils import encode_value
from ..vault_store import VaultStore


logger = logging.getLogger(__name__)


@dataclass
class ProcessorStats:
    """Running counters for a processor instance."""
    batches: int = 0
    spans: int = 0
    vaulted: int = 0
    skipped_below_threshold: int = 0
    skipped_non_string: int = 0
    skipped_missing_ids: int = 0
    failed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, **counts: int) -> None:
        with self._lock:
            for name, value in counts.items():
                setattr(self, name, getattr(self, name) + value)

    def to_dict(self) -> Dict[str, int]:
        with self._lock:
            return {
                "batches": self.batches,
                "spans": self.spans,
                "vaulted": self.vaulted,
                "skipped_below_threshold": self.skipped_below_threshold,
                "skipped_non_string": self.skipped_non_string,
                "skipped_missing_ids": self.skipped_missing_ids,
                "failed": self.failed,
            }


class VaultProcessor(TracesConsumer):
    """
    Trace processor that moves large or sensitive attribute values into a
    VaultStore and leaves encoded references in their place.

    May be called concurrently for different batches. Within a batch, spans
    are independent and can be offloaded in parallel with max_workers > 1.
    """

    def __init__(
        self,
        policy: VaultPolicy,
        store: VaultStore,
        next_consumer: TracesConsumer,
        max_workers: int = 1,
    ):
        """
        Initialize the processor.

        Args:
            policy: Which keys to vault, the size threshold and the rewrite mode
            store: Vault store used for offloading
            next_consumer: Downstream stage receiving every processed batch
            max_workers: Threads used to offload spans within one batch
        """
        self.policy = policy
        self.store = store
        self.next_consumer = next_consumer
        self.max_workers = max(1, int(max_workers))
        self._stats = ProcessorStats()

    def start(self) -> None:
        logger.info(
            f"promptvault processor started: vault_keys={len(self.policy.keys)} "
            f"mode={self.policy.mode.value} threshold={self.policy.size_threshold} "
            f"backend={self.store.backend_name}",
            extra={"backend": self.store.backend_name},
        )

    def shutdown(self) -> None:
        logger.info(f"promptvault processor stopped: {self._stats.to_dict()}")
        self.store.close()

    def capabilities(self) -> Dict[str, Any]:
        return {"mutates_data": True}

    def stats(self) -> Dict[str, int]:
        return self._stats.to_dict()

    def consume_traces(self, traces: Traces) -> None:
        self.process_batch(traces)

    def process_batch(
        self,
        traces: Traces,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Offload eligible attributes in place and forward the batch.

        Args:
            traces: Batch to process; mutated in place
            cancel_event: When set, no further stores are started and a store
                that completes after cancellation is not written back

        Raises:
            Whatever the next consumer raises
        """
        spans = list(traces.iter_spans())

        if self.max_workers > 1 and len(spans) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self._vault_span, span, cancel_event) for span in spans]
                for future in futures:
                    future.result()
        else:
            for span in spans:
                self._vault_span(span, cancel_event)

        self._stats.add(batches=1, spans=len(spans))
        self.next_consumer.consume_traces(traces)

    def _vault_span(self, span: Span, cancel_event: Optional[threading.Event]) -> None:
        trace_id = span.trace_id
        span_id = span.span_id

        # Objects are addressed by trace and span ID
        if not trace_id or not span_id:
            self._stats.add(skipped_missing_ids=1)
            logger.warning(
                f"span '{span.name}' has no trace or span ID; leaving its attributes unvaulted",
                extra={"trace_id": trace_id, "span_id": span_id},
            )
            return

        self._vault_attributes(span.attributes, trace_id, span_id, None, cancel_event)

        for index, event in enumerate(span.events):
            self._vault_attributes(event.attributes, trace_id, span_id, index, cancel_event)

    def _collect(self, attributes: Dict[str, Any]) -> List[Tuple[str, bytes]]:
        """Snapshot the (key, payload) pairs to offload; never mutates."""
        pending = []
        for key, value in list(attributes.items()):
            if not self.policy.is_eligible(key):
                continue

            payload = encode_value(value)
            if payload is None:
                self._stats.add(skipped_non_string=1)
                continue

            if not self.policy.clears_threshold(len(payload)):
                self._stats.add(skipped_below_threshold=1)
                continue

            pending.append((key, payload))
        return pending

    def _vault_attributes(
        self,
        attributes: Dict[str, Any],
        trace_id: str,
        span_id: str,
        event_index: Optional[int],
        cancel_event: Optional[threading.Event],
    ) -> None:
        for key, payload in self._collect(attributes):
            if cancel_event is not None and cancel_event.is_set():
                return

            path = AttributePath(
                trace_id=trace_id,
                span_id=span_id,
                attribute_key=key,
                event_index=event_index,
            )

            try:
                ref = self.store.store(path, payload)
            except VaultError as e:
                self._stats.add(failed=1)
                logger.warning(
                    f"vault store failed for attribute '{key}': {e}",
                    extra=path.to_dict(),
                )
                continue

            if cancel_event is not None and cancel_event.is_set():
                logger.debug(
                    f"batch cancelled after store; leaving '{key}' unmodified",
                    extra=path.to_dict(),
                )
                return

            self._rewrite(attributes, key, encode(ref))
            self._stats.add(vaulted=1)

            logger.debug(
                f"vaulted attribute '{key}'",
                extra={**path.to_dict(), "vault_uri": ref.uri, "content_bytes": ref.size_bytes},
            )

    def _rewrite(self, attributes: Dict[str, Any], key: str, encoded: str) -> None:
        mode = self.policy.mode
        if mode == VaultMode.REPLACE_WITH_REF:
            attributes[key] = encoded
        elif mode == VaultMode.REMOVE:
            attributes.pop(key, None)
        attributes[key + VAULT_REF_SUFFIX] = encoded
