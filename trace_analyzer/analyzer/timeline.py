# trace_analyzer/analyzer/timeline.py - Temporal helpers shared by analyzers
"""
Clustering of event bursts and cause/effect correlation on the trace
timeline.
"""

from dataclasses import dataclass
from functools import reduce
from typing import Dict, Iterable, Optional, Sequence, Tuple

from trace_analyzer.collector.events import ScriptPayload, TraceEvent


US_PER_MS = 1000.0
US_PER_S = 1_000_000.0


def to_ms(micros: Optional[float]) -> float:
    """Convert a microsecond quantity to milliseconds"""
    return (micros or 0.0) / US_PER_MS


@dataclass(frozen=True)
class Cluster:
    """
    A maximal run of events whose starts follow the running end of the
    run within a fixed gap.
    """
    start_time: float
    end_time: float
    events: Tuple[TraceEvent, ...]
    total_duration: float

    @classmethod
    def start(cls, event: TraceEvent) -> 'Cluster':
        return cls(
            start_time=event.ts,
            end_time=event.end_ts,
            events=(event,),
            total_duration=event.duration_us,
        )

    def extend(self, event: TraceEvent) -> 'Cluster':
        return Cluster(
            start_time=self.start_time,
            end_time=max(self.end_time, event.end_ts),
            events=self.events + (event,),
            total_duration=self.total_duration + event.duration_us,
        )

    @property
    def event_count(self) -> int:
        return len(self.events)


def cluster_events(events: Iterable[TraceEvent], gap_us: float) -> Tuple[Cluster, ...]:
    """
    Group events into clusters.

    Events are taken in timestamp order (stable for equal timestamps). An
    event joins the current cluster when its start is at most ``gap_us``
    after the cluster's running end, otherwise it opens a new cluster.

    Args:
        events: Events to cluster
        gap_us: Maximum gap in microseconds

    Returns:
        Tuple of clusters in time order
    """
    def step(clusters: Tuple[Cluster, ...], event: TraceEvent) -> Tuple[Cluster, ...]:
        if clusters and event.ts - clusters[-1].end_time <= gap_us:
            return clusters[:-1] + (clusters[-1].extend(event),)
        return clusters + (Cluster.start(event),)

    return reduce(step, sorted(events, key=lambda e: e.ts), ())


def find_preceding_script(scripts: Sequence[TraceEvent],
                          instant: float,
                          window_us: float) -> Optional[TraceEvent]:
    """
    Find the script that ended closest before an instant.

    Candidates end within ``[instant - window_us, instant]``; the smallest
    gap wins and ties keep the first candidate in capture order.

    Args:
        scripts: Script execution events
        instant: Timestamp of the effect, in microseconds
        window_us: Look-back window in microseconds

    Returns:
        The closest script event, or None
    """
    best = None
    best_gap = None
    for script in scripts:
        gap = instant - script.end_ts
        if 0 <= gap <= window_us and (best_gap is None or gap < best_gap):
            best, best_gap = script, gap
    return best


@dataclass(frozen=True)
class Correlation:
    """
    A script execution paired with a layout or style event that started
    shortly after the script ended.
    """
    cause: TraceEvent
    effect: TraceEvent
    time_between: float

    @property
    def time_between_ms(self) -> float:
        return to_ms(self.time_between)


def correlate(scripts: Sequence[TraceEvent],
              effect: TraceEvent,
              window_us: float) -> Optional[Correlation]:
    """
    Pair an effect event with the script that ended closest before it.

    Args:
        scripts: Script execution events
        effect: Layout or style event
        window_us: Look-back window in microseconds

    Returns:
        Correlation, or None when no script ended inside the window
    """
    script = find_preceding_script(scripts, effect.ts, window_us)
    if script is None:
        return None
    return Correlation(cause=script, effect=effect, time_between=effect.ts - script.end_ts)


def find_enclosing_script(scripts: Sequence[TraceEvent], instant: float) -> Optional[TraceEvent]:
    """
    Find the most recent script whose span covers an instant.

    A script covers ``instant`` when ``ts < instant <= end_ts``.

    Args:
        scripts: Script execution events in capture order
        instant: Timestamp in microseconds

    Returns:
        The latest covering script, or None
    """
    covering = [s for s in scripts if s.ts < instant <= s.end_ts]
    if not covering:
        return None
    return max(covering, key=lambda s: s.ts)


def script_function_name(event: TraceEvent) -> str:
    payload = event.payload
    if isinstance(payload, ScriptPayload) and payload.function_name:
        return payload.function_name
    return 'anonymous'


def script_url(event: TraceEvent) -> str:
    payload = event.payload
    if isinstance(payload, ScriptPayload) and payload.url:
        return payload.url
    return 'unknown'


def describe_script(event: TraceEvent) -> Dict:
    """
    JSON-shaped description of a script execution event.

    Args:
        event: Script execution event

    Returns:
        Dictionary with time, duration (ms) and source location
    """
    payload = event.payload if isinstance(event.payload, ScriptPayload) else ScriptPayload()
    return {
        'time': event.ts,
        'duration': event.duration_ms,
        'functionName': script_function_name(event),
        'url': script_url(event),
        'lineNumber': payload.line_number,
        'columnNumber': payload.column_number,
    }
