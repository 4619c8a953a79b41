# trace_analyzer/analyzer/memory_dom.py - Memory and DOM growth analysis
"""
Growth trends and leak candidates from periodic heap, DOM node and event
listener counters.

All leak findings are heuristics: sustained growth over a window is a
signal worth investigating, not proof of a leak.
"""

from collections import Counter, OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.timeline import US_PER_S
from trace_analyzer.collector.event_index import is_gc_event
from trace_analyzer.collector.events import (
    COUNTER_EVENT_NAMES,
    DOM_ADD_EVENT_NAMES,
    DOM_REMOVE_EVENT_NAMES,
    CounterPayload,
    DomNodePayload,
    TraceEvent,
)
from trace_analyzer.utils.options import Thresholds


BYTES_PER_KB = 1000.0

HEAP_RAPID_GROWTH_BYTES_PER_S = 100 * BYTES_PER_KB
HEAP_GROWTH_BYTES_PER_S = 10 * BYTES_PER_KB
DOM_RAPID_GROWTH_NODES_PER_S = 10.0
DOM_GROWTH_NODES_PER_S = 1.0

MIN_LEAK_SNAPSHOTS = 3
TOP_GROWING_ELEMENT_TYPES = 5
ELEMENT_GROWTH_WARNING = 50


@dataclass(frozen=True)
class CounterSnapshot:
    """
    One ``UpdateCounters`` reading.
    """
    timestamp: float
    js_heap_size_used: float = 0.0
    js_heap_size_total: float = 0.0
    js_heap_size_limit: float = 0.0
    nodes: int = 0
    documents: int = 0
    js_event_listeners: int = 0

    @classmethod
    def from_event(cls, event: TraceEvent) -> Optional['CounterSnapshot']:
        payload = event.payload
        if not isinstance(payload, CounterPayload):
            return None
        return cls(
            timestamp=event.ts,
            js_heap_size_used=payload.js_heap_size_used or 0.0,
            js_heap_size_total=payload.js_heap_size_total or 0.0,
            js_heap_size_limit=payload.js_heap_size_limit or 0.0,
            nodes=payload.nodes or 0,
            documents=payload.documents or 0,
            js_event_listeners=payload.js_event_listeners or 0,
        )


@dataclass(frozen=True)
class Growth:
    """
    Change of one counter between the first and last snapshot of a series.
    """
    delta: float
    span_s: float

    @property
    def rate(self) -> float:
        """Change per second, 0 for a zero-length span"""
        return self.delta / self.span_s if self.span_s > 0 else 0.0


def measure_growth(series: Sequence[CounterSnapshot],
                   reading: Callable[[CounterSnapshot], float]) -> Growth:
    """
    Measure the growth of a counter over a time-sorted series.

    Args:
        series: Snapshots sorted by timestamp, at least one
        reading: Accessor for the counter value

    Returns:
        Growth
    """
    first, last = series[0], series[-1]
    return Growth(
        delta=reading(last) - reading(first),
        span_s=(last.timestamp - first.timestamp) / US_PER_S,
    )


def classify_trend(rate: float, rapid: float, growing: float) -> str:
    """
    Classify a growth rate into a trend band.

    Args:
        rate: Growth per second
        rapid: Rate above which growth is rapid
        growing: Rate above which growth is steady; its negation bounds
            the decreasing band

    Returns:
        Trend label
    """
    if rate > rapid:
        return 'rapidly increasing'
    if rate > growing:
        return 'increasing'
    if rate < -growing:
        return 'decreasing'
    return 'stable'


class MemoryDomAnalyzer:
    """
    Analyzes memory and DOM growth from counter snapshots and DOM events.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, memory_events: Sequence[TraceEvent],
                dom_events: Sequence[TraceEvent],
                all_events: Sequence[TraceEvent],
                leak_threshold_kb: float = 10.0) -> Dict:
        """
        Analyze memory and DOM growth.

        Args:
            memory_events: Counter and garbage collection events
            dom_events: DOM node insertion and removal events
            all_events: All normalized events
            leak_threshold_kb: Heap growth rate (KB/s) above which sustained
                growth is reported as a potential leak

        Returns:
            Dictionary with memoryUsage, domSize, potentialLeaks,
            eventListenerLeaks, elementGrowth and recommendations
        """
        snapshots = self.extract_snapshots(memory_events)
        heap_series = [s for s in snapshots if s.js_heap_size_used]
        node_series = [s for s in snapshots if s.nodes]
        listener_series = [s for s in snapshots if s.js_event_listeners]

        memory_usage = self.analyze_memory_usage(heap_series)
        dom_size = self.analyze_dom_size(node_series)
        potential_leaks = self.detect_potential_leaks(
            heap_series, node_series, listener_series, all_events, leak_threshold_kb
        )
        listener_leaks = self.detect_listener_leaks(listener_series)
        element_growth = self.analyze_element_growth(dom_events)

        self.logger.debug(
            f"Memory/DOM: {len(snapshots)} snapshots, {len(potential_leaks)} potential leaks, "
            f"{len(listener_leaks)} listener leaks"
        )

        return {
            'memoryUsage': memory_usage,
            'domSize': dom_size,
            'potentialLeaks': potential_leaks,
            'eventListenerLeaks': listener_leaks,
            'elementGrowth': element_growth,
            'recommendations': self._generate_recommendations(
                memory_usage, dom_size, potential_leaks, listener_leaks, element_growth
            ),
        }

    def extract_snapshots(self, events: Sequence[TraceEvent]) -> List[CounterSnapshot]:
        """
        Extract counter snapshots sorted by timestamp.

        Args:
            events: Events to scan for ``UpdateCounters``

        Returns:
            Sorted snapshots
        """
        snapshots = []
        for event in events:
            if event.name not in COUNTER_EVENT_NAMES:
                continue
            snapshot = CounterSnapshot.from_event(event)
            if snapshot is not None:
                snapshots.append(snapshot)
        snapshots.sort(key=lambda s: s.timestamp)
        return snapshots

    def analyze_memory_usage(self, heap_series: List[CounterSnapshot]) -> Dict:
        """
        Summarize JS heap usage.

        Args:
            heap_series: Snapshots with a heap reading, sorted

        Returns:
            Memory usage dictionary; growthRate in bytes per second
        """
        data_points = [
            {
                'timestamp': s.timestamp,
                'jsHeapSizeUsed': s.js_heap_size_used,
                'jsHeapSizeTotal': s.js_heap_size_total,
                'jsHeapSizeLimit': s.js_heap_size_limit,
            }
            for s in heap_series
        ]

        peak = max((s.js_heap_size_used for s in heap_series), default=0.0)
        average = sum(s.js_heap_size_used for s in heap_series) / len(heap_series) if heap_series else 0.0
        limit = heap_series[0].js_heap_size_limit if heap_series else 0.0

        if len(heap_series) < 2:
            trend, rate = 'unknown', 0.0
        else:
            rate = measure_growth(heap_series, lambda s: s.js_heap_size_used).rate
            trend = classify_trend(rate, HEAP_RAPID_GROWTH_BYTES_PER_S, HEAP_GROWTH_BYTES_PER_S)

        return {
            'dataPoints': data_points,
            'trend': trend,
            'growthRate': rate,
            'peakUsage': peak,
            'averageUsage': average,
            'percentOfLimit': peak / limit * 100 if limit > 0 else None,
        }

    def analyze_dom_size(self, node_series: List[CounterSnapshot]) -> Dict:
        """
        Summarize DOM node counts.

        Args:
            node_series: Snapshots with a node reading, sorted

        Returns:
            DOM size dictionary; growthRate in nodes per second
        """
        data_points = [
            {
                'timestamp': s.timestamp,
                'nodes': s.nodes,
                'documents': s.documents,
                'jsEventListeners': s.js_event_listeners,
            }
            for s in node_series
        ]

        peak = max((s.nodes for s in node_series), default=0)
        average = sum(s.nodes for s in node_series) / len(node_series) if node_series else 0.0

        if len(node_series) < 2:
            trend, rate = 'unknown', 0.0
        else:
            rate = measure_growth(node_series, lambda s: s.nodes).rate
            trend = classify_trend(rate, DOM_RAPID_GROWTH_NODES_PER_S, DOM_GROWTH_NODES_PER_S)

        last = node_series[-1] if node_series else None
        return {
            'dataPoints': data_points,
            'trend': trend,
            'growthRate': rate,
            'peakNodes': peak,
            'averageNodes': average,
            'eventListenersPerNode': last.js_event_listeners / last.nodes if last else 0.0,
        }

    def detect_potential_leaks(self, heap_series: List[CounterSnapshot],
                               node_series: List[CounterSnapshot],
                               listener_series: List[CounterSnapshot],
                               all_events: Sequence[TraceEvent],
                               leak_threshold_kb: float) -> List[Dict]:
        """
        Flag sustained heap, DOM node and listener growth.

        Args:
            heap_series: Snapshots with a heap reading, sorted
            node_series: Snapshots with a node reading, sorted
            listener_series: Snapshots with a listener reading, sorted
            all_events: All events, searched for garbage collection
            leak_threshold_kb: Heap growth threshold in KB/s

        Returns:
            List of potential leak dictionaries
        """
        leaks = []
        min_span = self.thresholds.leak_min_span_s

        if len(heap_series) >= MIN_LEAK_SNAPSHOTS:
            growth = measure_growth(heap_series, lambda s: s.js_heap_size_used)
            if growth.rate > leak_threshold_kb * BYTES_PER_KB and growth.span_s > min_span:
                start, end = heap_series[0].timestamp, heap_series[-1].timestamp
                gc_count = sum(1 for e in all_events if is_gc_event(e) and start <= e.ts <= end)
                rate_kb = growth.rate / BYTES_PER_KB
                leak = {
                    'type': 'continuous_memory_growth',
                    'severity': 'high' if gc_count else 'medium',
                    'growthRate': growth.rate,
                    'timeSpan': growth.span_s,
                    'gcEvents': gc_count,
                }
                if gc_count:
                    leak['description'] = (
                        f"Memory is continuously growing at {rate_kb:.2f}KB/s "
                        f"despite {gc_count} garbage collection events"
                    )
                else:
                    leak['description'] = f"Memory is continuously growing at {rate_kb:.2f}KB/s"
                leaks.append(leak)

        if len(node_series) >= MIN_LEAK_SNAPSHOTS:
            growth = measure_growth(node_series, lambda s: s.nodes)
            if (growth.rate > self.thresholds.dom_leak_rate_per_s
                    and growth.span_s > min_span
                    and growth.delta >= self.thresholds.dom_leak_min_nodes):
                leaks.append({
                    'type': 'continuous_dom_growth',
                    'severity': 'high',
                    'growthRate': growth.rate,
                    'timeSpan': growth.span_s,
                    'nodeGrowth': int(growth.delta),
                    'description': (
                        f"DOM is continuously growing at {growth.rate:.2f} nodes/s "
                        f"({int(growth.delta)} nodes added over {growth.span_s:.1f}s)"
                    ),
                })

        if len(listener_series) >= MIN_LEAK_SNAPSHOTS:
            growth = measure_growth(listener_series, lambda s: s.js_event_listeners)
            if (growth.rate > self.thresholds.listener_leak_rate_per_s
                    and growth.span_s > min_span
                    and growth.delta >= self.thresholds.listener_leak_min_count):
                leaks.append({
                    'type': 'event_listener_growth',
                    'severity': 'high',
                    'growthRate': growth.rate,
                    'timeSpan': growth.span_s,
                    'listenerGrowth': int(growth.delta),
                    'description': (
                        f"Event listeners are continuously growing at {growth.rate:.2f} listeners/s "
                        f"({int(growth.delta)} listeners added over {growth.span_s:.1f}s)"
                    ),
                })

        return leaks

    def detect_listener_leaks(self, listener_series: List[CounterSnapshot]) -> List[Dict]:
        """
        Flag listener growth out of proportion to node growth.

        Args:
            listener_series: Snapshots with a listener reading, sorted

        Returns:
            List of listener leak dictionaries
        """
        if len(listener_series) < MIN_LEAK_SNAPSHOTS:
            return []

        with_nodes = [s for s in listener_series if s.nodes]
        if len(with_nodes) < 2:
            return []

        listener_growth = measure_growth(listener_series, lambda s: s.js_event_listeners)
        node_delta = with_nodes[-1].nodes - with_nodes[0].nodes
        delta = listener_growth.delta

        if delta <= 0:
            return []
        if node_delta != 0 and delta / node_delta <= self.thresholds.listener_node_ratio:
            return []

        return [{
            'type': 'disproportionate_listener_growth',
            'severity': 'medium',
            'listenerGrowth': int(delta),
            'nodeGrowth': node_delta,
            'ratio': delta / node_delta if node_delta > 0 else delta,
            'timeSpan': listener_growth.span_s,
            'description': (
                f"Event listeners ({int(delta)}) are growing faster than DOM nodes ({node_delta})"
            ),
        }]

    def analyze_element_growth(self, dom_events: Sequence[TraceEvent]) -> Dict:
        """
        Tally DOM node additions and removals by node type.

        Args:
            dom_events: DOM node insertion and removal events

        Returns:
            Element growth dictionary
        """
        additions: Dict[str, int] = OrderedDict()
        removals: Counter = Counter()

        for event in dom_events:
            node_type = self._node_type_of(event)
            if event.name in DOM_ADD_EVENT_NAMES:
                additions[node_type] = additions.get(node_type, 0) + 1
            elif event.name in DOM_REMOVE_EVENT_NAMES:
                removals[node_type] += 1

        total_additions = sum(additions.values())
        total_removals = sum(removals.values())
        ranked = sorted(additions.items(), key=lambda item: item[1], reverse=True)

        return {
            'totalAdditions': total_additions,
            'totalRemovals': total_removals,
            'netGrowth': total_additions - total_removals,
            'fastestGrowingTypes': [
                {'type': node_type, 'count': count, 'netGrowth': count - removals[node_type]}
                for node_type, count in ranked[:TOP_GROWING_ELEMENT_TYPES]
            ],
        }

    def _node_type_of(self, event: TraceEvent) -> str:
        if isinstance(event.payload, DomNodePayload) and event.payload.node_type:
            return event.payload.node_type
        return 'unknown'

    def _generate_recommendations(self, memory_usage: Dict, dom_size: Dict,
                                  potential_leaks: List[Dict], listener_leaks: List[Dict],
                                  element_growth: Dict) -> List[Dict]:
        recommendations = []
        leak_types = {leak['type'] for leak in potential_leaks}

        if 'continuous_memory_growth' in leak_types:
            recommendations.append({
                'type': 'memory_leak_prevention',
                'description': "Potential memory leak detected",
                'recommendation': (
                    "Check for objects that aren't being garbage collected, such as event "
                    "listeners that aren't removed, or references held in closures"
                ),
            })

        if 'continuous_dom_growth' in leak_types:
            recommendations.append({
                'type': 'dom_growth_prevention',
                'description': "Continuous DOM growth detected",
                'recommendation': (
                    "Ensure DOM elements are properly removed when no longer needed, "
                    "and consider using DOM recycling for dynamic content"
                ),
            })

        if listener_leaks or 'event_listener_growth' in leak_types:
            recommendations.append({
                'type': 'event_listener_cleanup',
                'description': "Potential event listener leak detected",
                'recommendation': (
                    "Ensure all event listeners are properly removed when components "
                    "are unmounted or destroyed"
                ),
            })

        if dom_size['peakNodes'] > self.thresholds.large_dom_nodes:
            recommendations.append({
                'type': 'dom_size_optimization',
                'description': f"Large DOM size detected ({dom_size['peakNodes']} nodes)",
                'recommendation': (
                    "Reduce DOM size by using virtualization for long lists, lazy loading "
                    "components, and removing unnecessary elements"
                ),
            })

        percent = memory_usage['percentOfLimit']
        if percent is not None and percent > self.thresholds.heap_limit_warning_percent:
            recommendations.append({
                'type': 'memory_usage_optimization',
                'description': f"High memory usage detected ({percent:.1f}% of limit)",
                'recommendation': (
                    "Optimize memory usage by reusing objects, using object pools, "
                    "and avoiding large arrays or strings"
                ),
            })

        growing = element_growth['fastestGrowingTypes']
        if growing and growing[0]['netGrowth'] > ELEMENT_GROWTH_WARNING:
            top = growing[0]
            recommendations.append({
                'type': 'element_growth_optimization',
                'description': f"Rapid growth of {top['type']} elements ({top['netGrowth']} net increase)",
                'recommendation': (
                    f"Check for {top['type']} elements that aren't being properly "
                    f"cleaned up or recycled"
                ),
            })

        return recommendations


def analyze_memory_and_dom_growth(memory_events: Sequence[TraceEvent],
                                  dom_events: Sequence[TraceEvent],
                                  all_events: Sequence[TraceEvent],
                                  leak_threshold_kb: float = 10.0,
                                  thresholds: Optional[Thresholds] = None) -> Dict:
    """
    Analyze memory and DOM growth with a one-off analyzer.

    Args:
        memory_events: Counter and garbage collection events
        dom_events: DOM node insertion and removal events
        all_events: All normalized events
        leak_threshold_kb: Heap leak threshold in KB/s
        thresholds: Heuristic constants

    Returns:
        Memory and DOM dictionary
    """
    return MemoryDomAnalyzer(thresholds).analyze(memory_events, dom_events, all_events, leak_threshold_kb)
