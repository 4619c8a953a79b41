# trace_analyzer/analyzer/long_tasks.py - Long task attribution
"""
Finds main-thread tasks above a duration threshold and attributes each one
to the dominant activity running inside it and to the trigger that
preceded it.
"""

from bisect import bisect_left, bisect_right
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.analyzer.timeline import US_PER_MS
from trace_analyzer.collector.events import SCRIPT_EVENT_NAMES, ResourcePayload, TraceEvent
from trace_analyzer.utils.options import Thresholds


# Activity classes in tie-break priority order
ACTIVITY_CLASSES = (
    ('layout', lambda e: e.name == 'Layout'),
    ('style', lambda e: e.name == 'RecalculateStyles'),
    ('javascript', lambda e: e.name in SCRIPT_EVENT_NAMES),
    ('paint', lambda e: e.name_contains('Paint', 'Composite')),
    ('parse-html', lambda e: e.name_contains('ParseHTML')),
    ('garbage-collection', lambda e: e.name_contains('GC')),
)

INPUT_NAME_FRAGMENTS = ('Input', 'Click', 'Key', 'Scroll', 'Touch')
NETWORK_NAME_FRAGMENTS = ('Resource', 'XHR', 'Fetch')
TIMER_NAME_FRAGMENTS = ('Timer', 'RequestAnimation')

VERY_LONG_TASK_MS = 500.0


class LongTaskAnalyzer:
    """
    Detects long tasks and classifies them.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        """
        Initialize the analyzer.

        Args:
            thresholds: Heuristic constants, defaults when omitted
        """
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, events: Sequence[TraceEvent], threshold_ms: float = 50.0) -> Optional[Bottleneck]:
        """
        Analyze long tasks.

        Args:
            events: Normalized trace events
            threshold_ms: Minimum task duration in milliseconds (inclusive)

        Returns:
            ``long_tasks`` Bottleneck, or None when no task qualifies
        """
        threshold_us = threshold_ms * US_PER_MS
        long_tasks = [e for e in events if e.dur is not None and e.dur >= threshold_us]

        if not long_tasks:
            self.logger.debug(f"No tasks of {threshold_ms}ms or longer")
            return None

        timeline = sorted(events, key=lambda e: e.ts)
        timestamps = [e.ts for e in timeline]

        records = []
        tasks_by_type: Dict[str, List[TraceEvent]] = OrderedDict()
        tasks_by_frame: Dict[str, List[TraceEvent]] = OrderedDict()

        for task in long_tasks:
            task_type = self.classify_task(task, timeline, timestamps)
            context = self.find_task_context(task, timeline, timestamps)
            frame = self._frame_of(task)

            tasks_by_type.setdefault(task_type, []).append(task)
            tasks_by_frame.setdefault(frame, []).append(task)
            records.append({
                'duration': task.duration_ms,
                'startTime': task.ts,
                'name': task.name,
                'type': task_type,
                'frame': frame,
                'context': context,
            })

        records.sort(key=lambda r: r['duration'], reverse=True)

        total_blocking_time = sum(max(0.0, t.duration_us - threshold_us) for t in long_tasks) / US_PER_MS
        average_duration = sum(t.duration_ms for t in long_tasks) / len(long_tasks)

        details = {
            'threshold': threshold_ms,
            'tasks': records,
            'tasksByType': [
                {
                    'type': task_type,
                    'count': len(tasks),
                    'totalDuration': sum(t.duration_ms for t in tasks),
                    'averageDuration': sum(t.duration_ms for t in tasks) / len(tasks),
                }
                for task_type, tasks in tasks_by_type.items()
            ],
            'tasksByFrame': [
                {
                    'frame': frame,
                    'count': len(tasks),
                    'totalDuration': sum(t.duration_ms for t in tasks),
                }
                for frame, tasks in tasks_by_frame.items()
            ],
            'interactionBlockingTasks': sum(
                1 for r in records if r['context']['userInteraction']['detected']
            ),
            'longestTasks': records[:5],
            'statistics': {
                'totalBlockingTime': total_blocking_time,
                'averageTaskDuration': average_duration,
                'taskCount': len(long_tasks),
                'tasksOver100ms': sum(1 for t in long_tasks if t.duration_ms > 100),
                'tasksOver200ms': sum(1 for t in long_tasks if t.duration_ms > 200),
            },
            'recommendations': self._generate_recommendations(long_tasks, tasks_by_type),
        }

        self.logger.debug(f"Found {len(long_tasks)} long tasks, {total_blocking_time:.2f}ms blocking")

        return Bottleneck(
            type='long_tasks',
            description=(
                f"Found {len(long_tasks)} long tasks (>{threshold_ms:g}ms) "
                f"with {total_blocking_time:.2f}ms total blocking time"
            ),
            details=details,
        )

    def classify_task(self, task: TraceEvent,
                      timeline: Sequence[TraceEvent],
                      timestamps: Sequence[float]) -> str:
        """
        Determine the dominant activity of a task.

        Counts events starting inside ``[task.ts, task.end_ts]``, the task
        itself included.

        Args:
            task: Long task event
            timeline: All events sorted by timestamp
            timestamps: Timestamps of ``timeline``

        Returns:
            Activity class name, or 'other'
        """
        lo = bisect_left(timestamps, task.ts)
        hi = bisect_right(timestamps, task.end_ts)
        inside = timeline[lo:hi]

        counts = [(name, sum(1 for e in inside if matches(e))) for name, matches in ACTIVITY_CLASSES]
        best_name, best_count = max(counts, key=lambda item: item[1])

        return best_name if best_count > 0 else 'other'

    def find_task_context(self, task: TraceEvent,
                          timeline: Sequence[TraceEvent],
                          timestamps: Sequence[float]) -> Dict:
        """
        Find what triggered a task.

        Looks at events in the window before the task start and reports
        the nearest input, network and timer event.

        Args:
            task: Long task event
            timeline: All events sorted by timestamp
            timestamps: Timestamps of ``timeline``

        Returns:
            Dictionary with userInteraction, networkActivity and timer
        """
        window_us = self.thresholds.task_context_window_ms * US_PER_MS
        lo = bisect_left(timestamps, task.ts - window_us)
        hi = bisect_left(timestamps, task.ts)
        preceding = timeline[lo:hi]

        user_input = _latest(preceding, INPUT_NAME_FRAGMENTS)
        network = _latest(preceding, NETWORK_NAME_FRAGMENTS)
        timer = _latest(preceding, TIMER_NAME_FRAGMENTS)

        context = {
            'userInteraction': {'detected': False},
            'networkActivity': {'detected': False},
            'timer': {'detected': False},
        }
        if user_input is not None:
            context['userInteraction'] = {
                'detected': True,
                'type': user_input.name,
                'timestamp': user_input.ts,
            }
        if network is not None:
            url = network.payload.url if isinstance(network.payload, ResourcePayload) else None
            context['networkActivity'] = {
                'detected': True,
                'type': network.name,
                'url': url or network.data_get('url') or 'unknown',
                'timestamp': network.ts,
            }
        if timer is not None:
            context['timer'] = {
                'detected': True,
                'type': timer.name,
                'timestamp': timer.ts,
            }

        return context

    def _frame_of(self, task: TraceEvent) -> str:
        frame = task.data_get('frame')
        return str(frame) if frame else 'unknown'

    def _generate_recommendations(self, long_tasks: List[TraceEvent],
                                  tasks_by_type: Dict[str, List[TraceEvent]]) -> List[Dict]:
        recommendations = []

        if tasks_by_type.get('javascript'):
            recommendations.append({
                'type': 'javascript_optimization',
                'description': f"{len(tasks_by_type['javascript'])} long JavaScript tasks detected",
                'recommendation': (
                    "Consider breaking up long JavaScript tasks using requestIdleCallback or "
                    "setTimeout, or moving heavy computation to Web Workers"
                ),
            })

        if tasks_by_type.get('layout'):
            recommendations.append({
                'type': 'layout_optimization',
                'description': f"{len(tasks_by_type['layout'])} long layout tasks detected",
                'recommendation': (
                    "Reduce layout thrashing by batching DOM reads and writes, "
                    "and minimize style recalculations"
                ),
            })

        if tasks_by_type.get('garbage-collection'):
            recommendations.append({
                'type': 'memory_optimization',
                'description': (
                    f"{len(tasks_by_type['garbage-collection'])} long garbage collection tasks detected"
                ),
                'recommendation': (
                    "Reduce memory churn by reusing objects, avoiding large arrays, "
                    "and managing object references carefully"
                ),
            })

        if any(t.duration_ms > VERY_LONG_TASK_MS for t in long_tasks):
            recommendations.append({
                'type': 'task_splitting',
                'description': f"Very long tasks (>{VERY_LONG_TASK_MS:g}ms) detected",
                'recommendation': (
                    "Break up long tasks into smaller chunks and use requestAnimationFrame "
                    "or requestIdleCallback to schedule them"
                ),
            })

        return recommendations


def _latest(events: Sequence[TraceEvent], fragments: Sequence[str]) -> Optional[TraceEvent]:
    for event in reversed(events):
        if event.name_contains(*fragments):
            return event
    return None


def analyze_long_tasks(events: Sequence[TraceEvent],
                       threshold_ms: float = 50.0,
                       thresholds: Optional[Thresholds] = None) -> Optional[Bottleneck]:
    """
    Analyze long tasks with a one-off analyzer.

    Args:
        events: Normalized trace events
        threshold_ms: Minimum task duration in milliseconds
        thresholds: Heuristic constants

    Returns:
        ``long_tasks`` Bottleneck or None
    """
    return LongTaskAnalyzer(thresholds).analyze(events, threshold_ms)
