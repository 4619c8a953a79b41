# trace_analyzer/utils/helpers.py - Helper functions
"""
Trace file loading and human-readable formatting.
"""

import gzip
import json
from pathlib import Path
from typing import Any, List, Union
import logging


logger = logging.getLogger(__name__)


class TraceFileError(Exception):
    """Raised when a trace file cannot be read or has an unknown shape"""


def extract_trace_events(document: Any) -> List:
    """
    Get the event list out of a parsed trace document.

    Args:
        document: Parsed JSON, either an event array or an object with a
            ``traceEvents`` array

    Returns:
        List of raw trace records

    Raises:
        TraceFileError: if no event list is found
    """
    if isinstance(document, list):
        return document
    if isinstance(document, dict) and isinstance(document.get('traceEvents'), list):
        return document['traceEvents']
    raise TraceFileError("Trace must be a JSON array or an object with a 'traceEvents' array")


def load_trace_file(path: Union[str, Path]) -> List:
    """
    Load trace events from a JSON trace file.

    Files ending in ``.gz`` are decompressed.

    Args:
        path: Trace file path

    Returns:
        List of raw trace records

    Raises:
        TraceFileError: if the file cannot be read or parsed
    """
    path = Path(path)
    opener = gzip.open if path.suffix == '.gz' else open

    try:
        with opener(path, 'rt', encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        raise TraceFileError(f"Failed to read trace file {path}: {e}") from e

    events = extract_trace_events(document)
    logger.info(f"Loaded {len(events)} trace records from {path}")
    return events


def format_bytes(bytes_count: float) -> str:
    """
    Format bytes into human-readable string.

    Args:
        bytes_count: Number of bytes

    Returns:
        Formatted string (e.g., "1.5 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if abs(bytes_count) < 1000.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1000.0

    return f"{bytes_count:.1f} PB"


def format_duration_ms(duration_ms: float) -> str:
    """
    Format a duration in milliseconds to human-readable string.

    Args:
        duration_ms: Duration in milliseconds

    Returns:
        Formatted string (e.g., "1.5s")
    """
    if duration_ms < 1:
        return f"{duration_ms * 1000:.0f}us"
    elif duration_ms < 1000:
        return f"{duration_ms:.1f}ms"
    else:
        return f"{duration_ms / 1000:.2f}s"
