# trace_analyzer/analyzer/layout_thrashing.py - Layout thrashing detection
"""
Detects forced synchronous layout: script reading layout, mutating the
DOM, then reading layout again.
"""

from collections import OrderedDict, defaultdict
from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.analyzer.timeline import describe_script, find_enclosing_script, to_ms
from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.events import RenderPayload, TraceEvent
from trace_analyzer.utils.options import Thresholds


def is_mutation_event(event: TraceEvent) -> bool:
    """Whether the event writes to the DOM or layout tree"""
    return event.name == 'UpdateLayoutTree' or 'Mutation' in event.name


def group_top_frames(layouts: Sequence[TraceEvent]) -> List[Dict]:
    """
    Group stack-bearing layouts by the top frame of their stack.

    Args:
        layouts: Layout events

    Returns:
        Offender dictionaries ranked by count, ties in first-seen order
    """
    offenders: Dict = OrderedDict()

    for layout in layouts:
        stack = layout.stack_trace
        if not stack:
            continue
        top = stack[0]
        entry = offenders.get(top.key)
        if entry is None:
            entry = dict(top.to_dict(), count=0, totalDuration=0.0)
            offenders[top.key] = entry
        entry['count'] += 1
        entry['totalDuration'] += layout.duration_ms

    ranked = sorted(offenders.values(), key=lambda o: o['count'], reverse=True)
    for offender in ranked:
        offender['averageDuration'] = offender['totalDuration'] / offender['count']
    return ranked


class LayoutThrashingDetector:
    """
    Finds read-write-read layout sequences, forced layouts, mutation
    hotspots and the call sites responsible for them.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, index: EventIndex) -> Optional[Bottleneck]:
        """
        Analyze layout thrashing.

        Args:
            index: Indexed normalized events

        Returns:
            ``layout_thrashing`` Bottleneck, or None without layout events
        """
        layout_events = index.layout_events
        if not layout_events:
            return None

        style_events = [e for e in index.events if e.name == 'RecalculateStyles']
        reads = sorted(
            (e for e in layout_events if e.name == 'Layout' and e.has_stack_trace),
            key=lambda e: e.ts,
        )

        sequences = self.find_thrashing_sequences(reads, index.events)
        forced = self.find_forced_layouts(reads, index.script_events)
        heatmap = self.build_mutation_heatmap(
            [e for e in index.events if e.name in ('Layout', 'UpdateLayoutTree', 'RecalculateStyles')]
        )
        offenders = group_top_frames(reads)[:self.thresholds.top_offenders]

        details = {
            'layoutOperations': len(layout_events),
            'styleRecalculations': len(style_events),
            'layoutThrashingSequences': sequences,
            'forcedLayouts': forced,
            'domMutationHeatmap': heatmap,
            'worstOffenders': offenders,
            'recommendations': self._generate_recommendations(
                layout_events, style_events, sequences, forced, offenders
            ),
        }

        self.logger.debug(
            f"Layout thrashing: {len(sequences)} sequences, {len(forced)} forced layouts"
        )

        return Bottleneck(
            type='layout_thrashing',
            description=(
                f"Detected {len(sequences)} layout thrashing sequences "
                f"and {len(forced)} forced layouts"
            ),
            details=details,
        )

    def find_thrashing_sequences(self, reads: Sequence[TraceEvent],
                                 events: Sequence[TraceEvent]) -> List[Dict]:
        """
        Find read-write-read sequences.

        Each consecutive pair of layout reads forms a sequence when at
        least one mutation event starts strictly between them.

        Args:
            reads: Stack-bearing Layout events sorted by timestamp
            events: All events

        Returns:
            List of sequence dictionaries
        """
        mutations = sorted((e for e in events if is_mutation_event(e)), key=lambda e: e.ts)
        sequences = []

        for first, second in zip(reads, reads[1:]):
            writes = [m for m in mutations if first.ts < m.ts < second.ts]
            if not writes:
                continue
            sequences.append({
                'firstRead': self._describe_read(first),
                'writes': [
                    {'time': w.ts, 'type': w.name, 'duration': w.duration_ms}
                    for w in writes
                ],
                'secondRead': self._describe_read(second),
                'timeBetweenReads': to_ms(second.ts - first.ts),
                'impact': second.duration_ms,
            })

        return sequences

    def find_forced_layouts(self, reads: Sequence[TraceEvent],
                            scripts: Sequence[TraceEvent]) -> List[Dict]:
        """
        Attribute layouts with a non-empty stack to the script running
        when they started.

        Args:
            reads: Stack-bearing Layout events
            scripts: Script execution events

        Returns:
            List of forced layout dictionaries; ``javascript`` is None when
            no enclosing script exists
        """
        forced = []

        for layout in reads:
            if not layout.stack_trace:
                continue
            script = find_enclosing_script(scripts, layout.ts)
            forced.append({
                'layout': {'time': layout.ts, 'duration': layout.duration_ms},
                'javascript': describe_script(script) if script is not None else None,
                'stackTrace': [frame.to_dict() for frame in layout.stack_trace],
            })

        return forced

    def build_mutation_heatmap(self, mutations: Sequence[TraceEvent]) -> Dict:
        """
        Group mutation events by target.

        Args:
            mutations: Layout and style events

        Returns:
            Dictionary with topMutationTargets, totalMutations and
            totalMutationTime (ms)
        """
        by_target = defaultdict(list)
        for event in mutations:
            by_target[self._target_of(event)].append(event)

        entries = []
        for target, group in by_target.items():
            total = sum(e.duration_ms for e in group)
            entries.append({
                'target': target,
                'count': len(group),
                'totalDuration': total,
                'averageDuration': total / len(group),
                'events': [
                    {'type': e.name, 'time': e.ts, 'duration': e.duration_ms}
                    for e in group[:self.thresholds.samples_per_group]
                ],
            })

        entries.sort(key=lambda entry: entry['count'], reverse=True)

        return {
            'topMutationTargets': entries[:self.thresholds.top_offenders],
            'totalMutations': len(mutations),
            'totalMutationTime': sum(e.duration_ms for e in mutations),
        }

    def _target_of(self, event: TraceEvent) -> str:
        if isinstance(event.payload, RenderPayload) and event.payload.target:
            return event.payload.target
        return 'unknown'

    def _describe_read(self, event: TraceEvent) -> Dict:
        return {
            'time': event.ts,
            'duration': event.duration_ms,
            'stackTrace': [frame.to_dict() for frame in event.stack_trace],
        }

    def _generate_recommendations(self, layout_events, style_events, sequences,
                                  forced, offenders) -> List[Dict]:
        recommendations = []

        if sequences:
            recommendations.append({
                'type': 'layout_thrashing_prevention',
                'description': f"{len(sequences)} layout thrashing sequences detected",
                'recommendation': (
                    "Batch DOM reads and writes to prevent layout thrashing. "
                    "Read all properties first, then perform all DOM updates."
                ),
            })

            if offenders:
                top = offenders[0]
                recommendations.append({
                    'type': 'specific_layout_thrashing',
                    'description': (
                        f"Function {top['functionName']} in {top['url']} "
                        f"triggered {top['count']} layout operations"
                    ),
                    'recommendation': (
                        f"Review this function at line {top['lineNumber']} "
                        f"and batch DOM reads and writes."
                    ),
                })

        if forced:
            recommendations.append({
                'type': 'forced_layout_prevention',
                'description': f"{len(forced)} forced layout operations detected",
                'recommendation': (
                    "Avoid accessing properties that trigger layout calculations "
                    "(like offsetWidth, clientHeight) immediately after DOM modifications."
                ),
            })

        if len(style_events) > self.thresholds.style_recalc_warning_count:
            recommendations.append({
                'type': 'style_recalculation_optimization',
                'description': f"{len(style_events)} style recalculations detected",
                'recommendation': (
                    "Minimize style changes, use CSS classes instead of inline styles, "
                    "and consider using CSS containment."
                ),
            })

        if len(layout_events) > self.thresholds.layout_warning_count:
            recommendations.append({
                'type': 'layout_frequency_reduction',
                'description': f"High number of layout operations ({len(layout_events)})",
                'recommendation': (
                    "Reduce the frequency of layout operations by batching DOM updates "
                    "and using requestAnimationFrame for visual changes."
                ),
            })

        return recommendations


def analyze_layout_thrashing(events: Sequence[TraceEvent],
                             thresholds: Optional[Thresholds] = None) -> Optional[Bottleneck]:
    """
    Analyze layout thrashing over a plain event list.

    Args:
        events: Normalized trace events
        thresholds: Heuristic constants

    Returns:
        ``layout_thrashing`` Bottleneck or None
    """
    return LayoutThrashingDetector(thresholds).analyze(EventIndex.build(list(events)))
