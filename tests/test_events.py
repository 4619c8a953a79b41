# tests/test_events.py - Tests for trace event parsing
"""
Unit tests for the trace event model.
"""

from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.events import (
    CounterPayload,
    RenderPayload,
    ResourcePayload,
    ScriptPayload,
    TraceEvent,
    UnknownPayload,
    parse_events,
)


class TestTraceEvent:
    """Test cases for TraceEvent.from_dict"""

    def test_basic_fields(self, make_event):
        """Test that core fields are parsed"""
        event = TraceEvent.from_dict(make_event('FunctionCall', 1000, 250, pid=7, tid=9,
                                                functionName='onClick', url='app.js'))

        assert event.name == 'FunctionCall'
        assert event.ts == 1000
        assert event.dur == 250
        assert event.end_ts == 1250
        assert event.duration_ms == 0.25
        assert (event.pid, event.tid) == (7, 9)
        assert isinstance(event.payload, ScriptPayload)
        assert event.payload.function_name == 'onClick'
        assert event.payload.url == 'app.js'

    def test_missing_timestamp_is_rejected(self):
        """Test that records without a numeric ts are dropped"""
        assert TraceEvent.from_dict({'name': 'Layout'}) is None
        assert TraceEvent.from_dict({'name': 'Layout', 'ts': 'soon'}) is None
        assert TraceEvent.from_dict('not a record') is None

    def test_instant_event(self, make_event):
        """Test that events without dur have zero duration"""
        event = TraceEvent.from_dict(make_event('MarkLoad', 500))

        assert event.dur is None
        assert event.duration_us == 0
        assert event.end_ts == 500

    def test_malformed_args_are_tolerated(self):
        """Test that non-mapping args produce an empty payload"""
        event = TraceEvent.from_dict({'name': 'Whatever', 'ts': 1, 'args': [1, 2]})

        assert event.args == {}
        assert isinstance(event.payload, UnknownPayload)
        assert event.data_get('anything', default='x') == 'x'

    def test_non_finite_numbers_are_treated_as_missing(self, make_event, make_layout,
                                                        make_frame, make_counters):
        """Test that NaN and infinite numbers parse to None instead of raising"""
        call = TraceEvent.from_dict(make_event('FunctionCall', 100, float('inf'),
                                               pid=float('inf'), tid=float('nan')))
        layout = TraceEvent.from_dict(make_layout(200, stack=[make_frame(line=float('nan'))]))
        counters = TraceEvent.from_dict(make_counters(300, heap=float('nan'),
                                                      nodes=float('-inf'), listeners=10 ** 400))

        assert call.pid is None
        assert call.tid is None
        assert call.dur is None
        assert layout.stack_trace[0].line_number is None
        assert counters.payload.js_heap_size_used is None
        assert counters.payload.nodes is None
        assert counters.payload.js_event_listeners is None

    def test_non_finite_timestamp_is_rejected(self, make_event):
        """Test that a NaN or infinite ts drops the record like a missing one"""
        raw = [make_event('A', float('nan')), make_event('B', float('inf')), make_event('C', 10)]

        events, skipped = parse_events(raw)

        assert [e.name for e in events] == ['C']
        assert skipped == 2

    def test_oversized_integer_timestamp_is_rejected(self):
        """Test that an integer ts beyond float range is dropped"""
        assert TraceEvent.from_dict({'name': 'A', 'ts': 10 ** 400}) is None

    def test_layout_stack_from_begin_data(self, make_layout, make_frame):
        """Test that a stack trace under beginData is parsed"""
        event = TraceEvent.from_dict(make_layout(100, stack=[make_frame('measure', line=3)]))

        assert isinstance(event.payload, RenderPayload)
        assert event.has_stack_trace
        assert event.stack_trace[0].function_name == 'measure'
        assert event.stack_trace[0].line_number == 3

    def test_layout_without_stack(self, make_layout):
        """Test that layouts without a stack field are not stack-bearing"""
        event = TraceEvent.from_dict(make_layout(100))

        assert not event.has_stack_trace
        assert event.stack_trace == ()

    def test_empty_stack_is_still_a_stack_field(self, make_layout):
        """Test that an empty stack list counts as captured"""
        event = TraceEvent.from_dict(make_layout(100, stack=[]))

        assert event.has_stack_trace
        assert event.stack_trace == ()

    def test_resource_and_counter_payloads(self, make_event, make_counters):
        """Test resource and counter payload variants"""
        finish = TraceEvent.from_dict(make_event('ResourceFinish', 10, url='a.js',
                                                 requestId='1', encodedDataLength=42))
        counters = TraceEvent.from_dict(make_counters(20, heap=1000, nodes=5, listeners=2))

        assert isinstance(finish.payload, ResourcePayload)
        assert finish.payload.encoded_data_length == 42
        assert finish.payload.request_id == '1'
        assert isinstance(counters.payload, CounterPayload)
        assert counters.payload.js_heap_size_used == 1000
        assert counters.payload.nodes == 5
        assert counters.payload.js_event_listeners == 2


class TestParseEvents:
    """Test cases for parse_events"""

    def test_order_and_skip_count(self, make_event):
        """Test that capture order is kept and bad records counted"""
        raw = [make_event('B', 20), {'name': 'bad'}, make_event('A', 10)]

        events, skipped = parse_events(raw)

        assert [e.name for e in events] == ['B', 'A']
        assert skipped == 1

    def test_parsed_events_pass_through(self, make_event):
        """Test that TraceEvent objects are accepted as-is"""
        event = TraceEvent.from_dict(make_event('A', 1))

        events, skipped = parse_events([event])

        assert events[0] is event
        assert skipped == 0


class TestEventIndex:
    """Test cases for EventIndex"""

    def test_sub_filters(self, make_event, make_layout, make_counters):
        """Test that events are grouped by class"""
        raw = [
            make_layout(10),
            make_event('UpdateLayoutTree', 20, 100),
            make_event('RecalculateStyles', 30, 100),
            make_event('FunctionCall', 40, 100),
            make_event('ResourceSendRequest', 50, url='a.js'),
            make_counters(60, heap=1),
            make_event('MinorGC', 70, 10),
            make_event('AddElement', 80),
        ]
        events, _ = parse_events(raw)

        index = EventIndex.build(events)

        assert len(index.layout_events) == 2
        assert [e.name for e in index.style_events] == ['UpdateLayoutTree', 'RecalculateStyles']
        assert len(index.script_events) == 1
        assert len(index.resource_events) == 1
        assert [e.name for e in index.memory_events] == ['UpdateCounters', 'MinorGC']
        assert len(index.dom_events) == 1
        assert index.has_style_events
        assert index.has_memory_or_dom_events

    def test_summary(self, make_event):
        """Test summary statistics"""
        events, _ = parse_events([make_event('A', 1000, 1000), make_event('A', 2000, 1000, tid=2),
                                  make_event('B', 5000)])

        index = EventIndex.build(events)
        summary = index.get_summary()

        assert summary['total_events'] == 3
        assert summary['unique_names'] == 2
        assert summary['threads'] == 2
        assert summary['span_ms'] == 4.0
        assert index.count_by_name() == [('A', 2), ('B', 1)]
        assert index.count_by_name(limit=1) == [('A', 2)]
