# trace_analyzer/analyzer/css_heuristics.py - CSS variable change classifier
"""
Heuristic guess of whether a script changes CSS custom properties.

The trace carries no CSS, so the guess looks only at the name of the
script function (or its file when the function is anonymous). It is a
plain yes/no hint with no confidence attached and does not parse CSS.
"""

from typing import Optional

from trace_analyzer.collector.events import ScriptPayload, TraceEvent


CSS_NAME_HINTS = ('style', 'css', 'theme', 'color', 'var')


def name_suggests_css_change(name: Optional[str]) -> bool:
    """
    Whether a function or file name hints at style manipulation.

    Matching is case-sensitive.

    Args:
        name: Function or file name

    Returns:
        True when the name contains one of the hint substrings
    """
    if not name:
        return False
    return any(hint in name for hint in CSS_NAME_HINTS)


def might_change_css_variables(script: TraceEvent) -> bool:
    """
    Guess whether a script execution event changes CSS variables.

    Args:
        script: Script execution event

    Returns:
        Heuristic boolean
    """
    payload = script.payload
    if not isinstance(payload, ScriptPayload):
        return False
    if payload.function_name:
        return name_suggests_css_change(payload.function_name)
    return name_suggests_css_change(payload.url)
