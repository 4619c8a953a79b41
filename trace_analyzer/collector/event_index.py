# trace_analyzer/collector/event_index.py - Shared event sub-filters
"""
Groups normalized events once per analysis call so that analyzers share the
same derived sub-filters (layout events, style events, and so on) instead of
re-scanning the full stream.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Tuple
import logging

from trace_analyzer.collector.events import (
    COUNTER_EVENT_NAMES,
    DOM_ADD_EVENT_NAMES,
    DOM_REMOVE_EVENT_NAMES,
    LAYOUT_EVENT_NAMES,
    RESOURCE_EVENT_NAMES,
    SCRIPT_EVENT_NAMES,
    TraceEvent,
)


# Names that make a trace eligible for the CSS cascade analysis
STYLE_CLASS_EVENT_NAMES = frozenset(['RecalculateStyles', 'UpdateLayoutTree', 'ParseAuthorStyleSheet'])


def is_gc_event(event: TraceEvent) -> bool:
    """Whether the event is a garbage collection record"""
    return 'GC' in event.name


@dataclass(frozen=True)
class EventIndex:
    """
    Immutable view of one normalized event stream and its sub-filters.

    All tuples keep capture order.
    """
    events: Tuple[TraceEvent, ...]
    layout_events: Tuple[TraceEvent, ...]
    style_events: Tuple[TraceEvent, ...]
    script_events: Tuple[TraceEvent, ...]
    resource_events: Tuple[TraceEvent, ...]
    memory_events: Tuple[TraceEvent, ...]
    dom_events: Tuple[TraceEvent, ...]

    @classmethod
    def build(cls, events: List[TraceEvent]) -> 'EventIndex':
        """
        Build the index in a single pass.

        Args:
            events: Normalized events

        Returns:
            EventIndex
        """
        layout, style, script, resource, memory, dom = [], [], [], [], [], []

        for event in events:
            name = event.name
            if name in LAYOUT_EVENT_NAMES:
                layout.append(event)
            if name in STYLE_CLASS_EVENT_NAMES:
                style.append(event)
            if name in SCRIPT_EVENT_NAMES:
                script.append(event)
            if name in RESOURCE_EVENT_NAMES:
                resource.append(event)
            if name in COUNTER_EVENT_NAMES or is_gc_event(event):
                memory.append(event)
            if name in DOM_ADD_EVENT_NAMES or name in DOM_REMOVE_EVENT_NAMES:
                dom.append(event)

        index = cls(
            events=tuple(events),
            layout_events=tuple(layout),
            style_events=tuple(style),
            script_events=tuple(script),
            resource_events=tuple(resource),
            memory_events=tuple(memory),
            dom_events=tuple(dom),
        )

        logging.getLogger(__name__).debug(
            f"Indexed {len(events)} events: {len(layout)} layout, {len(style)} style, "
            f"{len(script)} script, {len(resource)} resource, {len(memory)} memory, {len(dom)} DOM"
        )

        return index

    @property
    def has_style_events(self) -> bool:
        return bool(self.style_events)

    @property
    def has_memory_or_dom_events(self) -> bool:
        return bool(self.memory_events or self.dom_events)

    def count_by_name(self, limit: int = 0) -> List[Tuple[str, int]]:
        """
        Count events per name, most frequent first.

        Args:
            limit: Maximum number of names to return (0 for all)

        Returns:
            List of (name, count) tuples
        """
        counts = Counter(e.name for e in self.events).most_common()
        return counts[:limit] if limit else counts

    def get_summary(self) -> Dict:
        """
        Get overall summary statistics of the stream.

        Returns:
            Dictionary with event, thread and time span statistics
        """
        summary = {
            'total_events': len(self.events),
            'unique_names': len({e.name for e in self.events}),
            'processes': len({e.pid for e in self.events if e.pid is not None}),
            'threads': len({(e.pid, e.tid) for e in self.events if e.tid is not None}),
            'layout_events': len(self.layout_events),
            'style_events': len(self.style_events),
            'script_events': len(self.script_events),
            'resource_events': len(self.resource_events),
            'memory_events': len(self.memory_events),
            'dom_events': len(self.dom_events),
        }

        if self.events:
            start = min(e.ts for e in self.events)
            end = max(e.end_ts for e in self.events)
            summary['start_ts'] = start
            summary['end_ts'] = end
            summary['span_ms'] = (end - start) / 1000.0

        return summary
