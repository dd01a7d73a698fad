"""
Telemetry data model consumed by the vault processor.

Mirrors the OTLP trace shape: a Traces batch holds ResourceSpans, each with
ScopeSpans, each with Spans. A Span carries an attribute mapping and a list
of SpanEvents with their own attributes. Attribute dicts preserve insertion
order and are mutated in place by the processor.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class SpanEvent:
    """A timestamped event recorded on a span."""
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    time_unix_nano: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "time_unix_nano": self.time_unix_nano,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpanEvent":
        return cls(
            name=data.get("name", ""),
            attributes=dict(data.get("attributes") or {}),
            time_unix_nano=data.get("time_unix_nano"),
        )


@dataclass
class Span:
    """
    A single span.

    Attributes:
        trace_id: 32-char hex trace ID
        span_id: 16-char hex span ID
        name: Span name
        attributes: Attribute key -> value mapping
        events: Span-scoped events
    """
    trace_id: str
    span_id: str
    name: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    events: List[SpanEvent] = field(default_factory=list)
    parent_span_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "name": self.name,
            "attributes": dict(self.attributes),
            "events": [e.to_dict() for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Span":
        return cls(
            trace_id=data.get("trace_id", ""),
            span_id=data.get("span_id", ""),
            parent_span_id=data.get("parent_span_id"),
            name=data.get("name", ""),
            attributes=dict(data.get("attributes") or {}),
            events=[SpanEvent.from_dict(e) for e in data.get("events") or []],
        )


@dataclass
class ScopeSpans:
    """Spans emitted by one instrumentation scope."""
    scope_name: str = ""
    spans: List[Span] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope_name": self.scope_name,
            "spans": [s.to_dict() for s in self.spans],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScopeSpans":
        return cls(
            scope_name=data.get("scope_name", ""),
            spans=[Span.from_dict(s) for s in data.get("spans") or []],
        )


@dataclass
class ResourceSpans:
    """Scope groups emitted by one resource (service instance)."""
    resource_attributes: Dict[str, Any] = field(default_factory=dict)
    scope_spans: List[ScopeSpans] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_attributes": dict(self.resource_attributes),
            "scope_spans": [s.to_dict() for s in self.scope_spans],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceSpans":
        return cls(
            resource_attributes=dict(data.get("resource_attributes") or {}),
            scope_spans=[ScopeSpans.from_dict(s) for s in data.get("scope_spans") or []],
        )


@dataclass
class Traces:
    """A batch of trace data delivered by the host pipeline."""
    resource_spans: List[ResourceSpans] = field(default_factory=list)

    def iter_spans(self) -> Iterator[Span]:
        """Yield every span in batch order."""
        for rs in self.resource_spans:
            for ss in rs.scope_spans:
                for span in ss.spans:
                    yield span

    def span_count(self) -> int:
        return sum(1 for _ in self.iter_spans())

    def to_dict(self) -> Dict[str, Any]:
        return {"resource_spans": [rs.to_dict() for rs in self.resource_spans]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Traces":
        return cls(
            resource_spans=[
                ResourceSpans.from_dict(rs) for rs in data.get("resource_spans") or []
            ],
        )

    @classmethod
    def single_span(cls, span: Span, scope_name: str = "") -> "Traces":
        """Wrap one span in a batch."""
        return cls(resource_spans=[
            ResourceSpans(scope_spans=[ScopeSpans(scope_name=scope_name, spans=[span])])
        ])
