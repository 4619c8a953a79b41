# trace_analyzer/collector/events.py - Trace event model and parsing
"""
Structured representation of browser trace events.

Raw trace records are loosely typed: the shape of ``args`` depends on the
event name and any key may be missing. Events are parsed once into an
immutable ``TraceEvent`` whose ``payload`` is a typed variant selected by
the event name, so analyzers read optional attributes instead of probing
nested dictionaries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import logging
import math


logger = logging.getLogger(__name__)


# Event name families shared by the analyzers
LAYOUT_EVENT_NAMES = frozenset(['Layout', 'UpdateLayoutTree'])
STYLE_EVENT_NAMES = frozenset(['RecalculateStyles'])
SCRIPT_EVENT_NAMES = frozenset(['V8.Execute', 'FunctionCall', 'EvaluateScript'])
RESOURCE_EVENT_NAMES = frozenset(['ResourceSendRequest', 'ResourceReceiveResponse', 'ResourceFinish'])
COUNTER_EVENT_NAMES = frozenset(['UpdateCounters'])
DOM_ADD_EVENT_NAMES = frozenset(['AddElement', 'DOMNodeInserted'])
DOM_REMOVE_EVENT_NAMES = frozenset(['RemoveElement', 'DOMNodeRemoved'])


@dataclass(frozen=True)
class StackFrame:
    """
    One frame of a captured JavaScript call stack.
    """
    url: Optional[str] = None
    function_name: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Any) -> 'StackFrame':
        if not isinstance(raw, Mapping):
            return cls()
        return cls(
            url=_as_str(raw.get('url')),
            function_name=_as_str(raw.get('functionName')),
            line_number=_as_int(raw.get('lineNumber')),
            column_number=_as_int(raw.get('columnNumber')),
        )

    @property
    def key(self) -> Tuple[Optional[str], Optional[str], Optional[int]]:
        """Grouping key used for call-site rankings"""
        return (self.url, self.function_name, self.line_number)

    def to_dict(self) -> Dict:
        return {
            'url': self.url,
            'functionName': self.function_name or 'anonymous',
            'lineNumber': self.line_number,
            'columnNumber': self.column_number,
        }


@dataclass(frozen=True)
class RenderPayload:
    """
    Payload of layout and style events.
    """
    stack_trace: Tuple[StackFrame, ...] = ()
    has_stack_field: bool = False
    target: Optional[str] = None


@dataclass(frozen=True)
class ScriptPayload:
    """
    Payload of script execution events.
    """
    function_name: Optional[str] = None
    url: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None


@dataclass(frozen=True)
class ResourcePayload:
    """
    Payload of network resource lifecycle events.
    """
    request_id: Optional[str] = None
    url: Optional[str] = None
    priority: Optional[str] = None
    status_code: Optional[int] = None
    mime_type: Optional[str] = None
    from_cache: bool = False
    from_service_worker: bool = False
    encoded_data_length: Optional[float] = None
    decoded_body_length: Optional[float] = None


@dataclass(frozen=True)
class CounterPayload:
    """
    Payload of periodic ``UpdateCounters`` snapshots.
    """
    js_heap_size_used: Optional[float] = None
    js_heap_size_total: Optional[float] = None
    js_heap_size_limit: Optional[float] = None
    nodes: Optional[int] = None
    documents: Optional[int] = None
    js_event_listeners: Optional[int] = None


@dataclass(frozen=True)
class DomNodePayload:
    """
    Payload of DOM node insertion and removal events.
    """
    node_type: Optional[str] = None


@dataclass(frozen=True)
class UnknownPayload:
    """
    Payload of events with no dedicated variant.
    """
    data: Mapping = field(default_factory=dict)


Payload = Union[RenderPayload, ScriptPayload, ResourcePayload, CounterPayload,
                DomNodePayload, UnknownPayload]


@dataclass(frozen=True, eq=False)
class TraceEvent:
    """
    Immutable trace event.

    Timestamps and durations are microseconds relative to an arbitrary
    epoch; only differences are meaningful.
    """
    name: str
    ts: float
    dur: Optional[float] = None
    category: Optional[str] = None
    pid: Optional[int] = None
    tid: Optional[int] = None
    ph: Optional[str] = None
    args: Mapping = field(default_factory=dict)
    payload: Payload = field(default_factory=UnknownPayload)

    @classmethod
    def from_dict(cls, raw: Mapping) -> Optional['TraceEvent']:
        """
        Build an event from a JSON-shaped trace record.

        Args:
            raw: Trace record with ``name``, ``ts``, ``dur``, ``cat``,
                ``pid``, ``tid``, ``ph`` and ``args`` keys, any of which
                may be missing

        Returns:
            TraceEvent, or None when the record has no usable timestamp
        """
        if not isinstance(raw, Mapping):
            return None

        ts = _as_float(raw.get('ts'))
        if ts is None:
            return None

        dur = _as_float(raw.get('dur'))
        if dur is not None and dur < 0:
            dur = None

        name = raw.get('name')
        name = name if isinstance(name, str) else ''

        args = raw.get('args')
        if not isinstance(args, Mapping):
            args = {}

        return cls(
            name=name,
            ts=ts,
            dur=dur,
            category=_as_str(raw.get('cat', raw.get('category'))),
            pid=_as_int(raw.get('pid')),
            tid=_as_int(raw.get('tid')),
            ph=_as_str(raw.get('ph')),
            args=args,
            payload=parse_payload(name, args),
        )

    @property
    def duration_us(self) -> float:
        """Duration in microseconds, 0 for instant events"""
        return self.dur or 0.0

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds"""
        return self.duration_us / 1000.0

    @property
    def end_ts(self) -> float:
        """End timestamp in microseconds"""
        return self.ts + self.duration_us

    @property
    def ts_ms(self) -> float:
        """Timestamp in milliseconds"""
        return self.ts / 1000.0

    @property
    def data(self) -> Mapping:
        """The ``args.data`` mapping, empty when absent"""
        return _data_of(self.args)

    def data_get(self, *keys: str, default: Any = None) -> Any:
        """
        Look up a nested value under ``args.data``.

        Args:
            keys: Path below ``args.data``
            default: Value returned when any step is missing

        Returns:
            The value found, or ``default``
        """
        value: Any = self.data
        for key in keys:
            if isinstance(value, Mapping) and key in value:
                value = value[key]
            else:
                return default
        return value

    @property
    def stack_trace(self) -> Tuple[StackFrame, ...]:
        """Captured call stack of layout/style events"""
        if isinstance(self.payload, RenderPayload):
            return self.payload.stack_trace
        return ()

    @property
    def has_stack_trace(self) -> bool:
        """Whether a call stack was captured (possibly empty)"""
        return isinstance(self.payload, RenderPayload) and self.payload.has_stack_field

    def name_contains(self, *fragments: str) -> bool:
        """Whether the event name contains any of the fragments"""
        return any(fragment in self.name for fragment in fragments)


def parse_payload(name: str, args: Mapping) -> Payload:
    """
    Select and build the payload variant for an event name.

    Args:
        name: Event name
        args: Raw ``args`` mapping

    Returns:
        Payload variant; never raises on malformed input
    """
    data = _data_of(args)

    if name in LAYOUT_EVENT_NAMES or name in STYLE_EVENT_NAMES:
        return _parse_render_payload(data)

    if name in SCRIPT_EVENT_NAMES:
        return ScriptPayload(
            function_name=_as_str(data.get('functionName')) or None,
            url=_as_str(data.get('url')) or _as_str(data.get('fileName')) or None,
            line_number=_as_int(data.get('lineNumber')),
            column_number=_as_int(data.get('columnNumber')),
        )

    if name in RESOURCE_EVENT_NAMES:
        return ResourcePayload(
            request_id=_as_str(data.get('requestId')),
            url=_as_str(data.get('url')) or None,
            priority=_as_str(data.get('priority')),
            status_code=_as_int(data.get('statusCode')),
            mime_type=_as_str(data.get('mimeType')),
            from_cache=bool(data.get('fromCache')),
            from_service_worker=bool(data.get('fromServiceWorker')),
            encoded_data_length=_as_float(data.get('encodedDataLength')),
            decoded_body_length=_as_float(data.get('decodedBodyLength')),
        )

    if name in COUNTER_EVENT_NAMES:
        return CounterPayload(
            js_heap_size_used=_as_float(data.get('jsHeapSizeUsed')),
            js_heap_size_total=_as_float(data.get('jsHeapSizeTotal')),
            js_heap_size_limit=_as_float(data.get('jsHeapSizeLimit')),
            nodes=_as_int(data.get('nodes')),
            documents=_as_int(data.get('documents')),
            js_event_listeners=_as_int(data.get('jsEventListeners')),
        )

    if name in DOM_ADD_EVENT_NAMES or name in DOM_REMOVE_EVENT_NAMES:
        node_type = data.get('nodeType') or data.get('nodeName')
        return DomNodePayload(node_type=str(node_type) if node_type else None)

    return UnknownPayload(data=data)


def parse_events(raw_events: List) -> Tuple[List[TraceEvent], int]:
    """
    Parse a list of raw trace records, keeping capture order.

    Args:
        raw_events: Trace records or already-parsed TraceEvent objects

    Returns:
        Tuple of (parsed events, number of records skipped)
    """
    events = []
    skipped = 0

    for raw in raw_events:
        if isinstance(raw, TraceEvent):
            events.append(raw)
            continue

        event = TraceEvent.from_dict(raw)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.debug(f"Skipped {skipped} trace records without a usable timestamp")

    return events, skipped


def _parse_render_payload(data: Mapping) -> RenderPayload:
    begin_data = data.get('beginData')
    raw_stack = None
    if isinstance(begin_data, Mapping) and 'stackTrace' in begin_data:
        raw_stack = begin_data.get('stackTrace')
    elif 'stackTrace' in data:
        raw_stack = data.get('stackTrace')

    has_stack_field = isinstance(raw_stack, list)
    stack = tuple(StackFrame.from_dict(frame) for frame in raw_stack) if has_stack_field else ()

    target = data.get('nodeName') or data.get('selector') or data.get('tagName')

    return RenderPayload(
        stack_trace=stack,
        has_stack_field=has_stack_field,
        target=str(target) if target else None,
    )


def _data_of(args: Any) -> Mapping:
    if isinstance(args, Mapping):
        data = args.get('data')
        if isinstance(data, Mapping):
            return data
    return {}


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    if _as_float(value) is None:
        return None
    return int(value)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None
