# trace_analyzer/analyzer/bottleneck.py - Bottleneck record and detail shaping
"""
The unit of analysis output and the post-processing applied to it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


ANALYSIS_ERROR = 'analysis_error'

# Keys holding sample lists, dropped at the 'basic' detail level
VERBOSE_DETAIL_KEYS = frozenset([
    'events',
    'correlations',
    'correlatedEvents',
    'dataPoints',
    'loadSequence',
    'stackTrace',
    'writes',
])

# Keys holding raw trace payloads, dropped below 'comprehensive'
RAW_PAYLOAD_KEYS = frozenset(['args'])

RECOMMENDATION_KEYS = frozenset(['recommendations', 'optimizationSuggestions'])


@dataclass(frozen=True)
class Bottleneck:
    """
    One detected performance bottleneck.

    Attributes:
        type: Discriminator such as ``long_tasks`` or ``analysis_error``
        description: One-line human summary
        details: Analyzer specific JSON-shaped payload
    """
    type: str
    description: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.type == ANALYSIS_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'description': self.description,
            'details': self.details,
        }


def make_error_bottleneck(description: str,
                          error: Optional[BaseException] = None,
                          analyzer: Optional[str] = None) -> Bottleneck:
    """
    Build an ``analysis_error`` bottleneck.

    Args:
        description: Human summary
        error: Exception that caused the failure, if any
        analyzer: Name of the failing analyzer, if any

    Returns:
        Bottleneck
    """
    details: Dict[str, Any] = {}
    if analyzer is not None:
        details['analyzer'] = analyzer
    if error is not None:
        details['error'] = str(error)
        details['errorType'] = type(error).__name__

    return Bottleneck(type=ANALYSIS_ERROR, description=description, details=details)


def strip_keys(value: Any, keys: Iterable[str]) -> Any:
    """
    Return a copy of a JSON-shaped value without the given mapping keys.

    Args:
        value: Nested dicts, lists and scalars
        keys: Keys removed at every depth

    Returns:
        New value; the input is left untouched
    """
    keys = frozenset(keys)
    return _strip(value, keys)


def _strip(value: Any, keys: frozenset) -> Any:
    if isinstance(value, dict):
        return {k: _strip(v, keys) for k, v in value.items() if k not in keys}
    if isinstance(value, (list, tuple)):
        return [_strip(v, keys) for v in value]
    return value


def shape_bottleneck(bottleneck: Bottleneck,
                     detail_level: str = 'detailed',
                     include_recommendations: bool = True) -> Bottleneck:
    """
    Apply detail level and recommendation options to a bottleneck.

    Error bottlenecks are returned unchanged.

    Args:
        bottleneck: Bottleneck to shape
        detail_level: 'basic', 'detailed' or 'comprehensive'
        include_recommendations: Keep recommendation lists

    Returns:
        Shaped Bottleneck
    """
    if bottleneck.is_error:
        return bottleneck

    dropped = set()
    if detail_level == 'basic':
        dropped |= VERBOSE_DETAIL_KEYS | RAW_PAYLOAD_KEYS
    elif detail_level == 'detailed':
        dropped |= RAW_PAYLOAD_KEYS
    if not include_recommendations:
        dropped |= RECOMMENDATION_KEYS

    if not dropped:
        return bottleneck

    return Bottleneck(
        type=bottleneck.type,
        description=bottleneck.description,
        details=strip_keys(bottleneck.details, dropped),
    )
