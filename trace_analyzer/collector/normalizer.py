# trace_analyzer/collector/normalizer.py - Event normalization
"""
Turns the raw event list handed over by the trace collector into the
typed, optionally windowed collection every analyzer reads.
"""

from typing import List, Optional, Sequence, Set, Tuple, Union
import logging

from trace_analyzer.collector.events import TraceEvent, parse_events


logger = logging.getLogger(__name__)

MAIN_THREAD_NAME = 'CrRendererMain'

TimeRange = Union[str, Sequence[float]]


def parse_time_range(time_range: Optional[TimeRange]) -> Optional[Tuple[float, float]]:
    """
    Parse a focus time range given in milliseconds.

    Args:
        time_range: ``"start-end"`` string or a (start, end) pair, in ms

    Returns:
        (start, end) in microseconds, or None when absent or malformed
    """
    if time_range is None:
        return None

    if isinstance(time_range, str):
        text = time_range.strip()
        if not text:
            return None
        parts = text.split('-')
    elif isinstance(time_range, Sequence):
        parts = list(time_range)
    else:
        logger.warning(f"Ignoring focus time range of unsupported type: {type(time_range).__name__}")
        return None

    if len(parts) != 2:
        logger.warning(f"Ignoring malformed focus time range: {time_range!r}")
        return None

    try:
        start_ms, end_ms = (float(part) for part in parts)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed focus time range: {time_range!r}")
        return None

    if start_ms > end_ms:
        logger.warning(f"Ignoring focus time range with start after end: {time_range!r}")
        return None

    return (start_ms * 1000.0, end_ms * 1000.0)


def find_main_threads(events: List[TraceEvent]) -> Set[Tuple[Optional[int], Optional[int]]]:
    """
    Find renderer main threads from ``thread_name`` metadata events.

    Args:
        events: Parsed trace events

    Returns:
        Set of (pid, tid) pairs
    """
    threads = set()
    for event in events:
        if event.name == 'thread_name' and event.args.get('name') == MAIN_THREAD_NAME:
            threads.add((event.pid, event.tid))
    return threads


def normalize_events(raw_events: Optional[List],
                     focus_time_range: Optional[TimeRange] = None,
                     main_thread_only: bool = False) -> List[TraceEvent]:
    """
    Validate and filter raw trace events.

    The input list is never modified. Capture order is preserved; analyzers
    that need time order sort their own copy.

    Args:
        raw_events: Raw trace records (dicts) or TraceEvent objects
        focus_time_range: Optional ``"start-end"`` window in milliseconds
        main_thread_only: Keep only renderer main thread events when the
            trace names one

    Returns:
        Normalized events; an empty list means there is nothing to analyze
    """
    if not raw_events:
        logger.info("No trace events to normalize")
        return []

    events, skipped = parse_events(raw_events)

    if main_thread_only:
        main_threads = find_main_threads(events)
        if main_threads:
            events = [e for e in events if (e.pid, e.tid) in main_threads]
            logger.debug(f"Kept {len(events)} events on {len(main_threads)} main thread(s)")
        else:
            logger.debug("No renderer main thread metadata found, keeping all threads")

    window = parse_time_range(focus_time_range)
    if window is not None:
        start, end = window
        events = [e for e in events if start <= e.ts <= end]
        logger.debug(f"Kept {len(events)} events inside focus window {start:.0f}-{end:.0f}us")

    logger.info(f"Normalized {len(events)} trace events ({skipped} skipped)")

    return events
