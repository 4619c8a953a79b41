# trace_analyzer/utils/options.py - Analysis options
"""
Options accepted by the analysis engine.

``AnalysisOptions`` mirrors the flat option object of the trace analysis
request; ``Thresholds`` keeps the heuristic constants as overridable
defaults.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple
import re


DETAIL_LEVELS = ('basic', 'detailed', 'comprehensive')

ANALYZER_NAMES = (
    'long_tasks',
    'layout_thrashing',
    'js_execution',
    'css_variables',
    'memory_and_dom',
    'resource_loading',
)


@dataclass(frozen=True)
class Thresholds:
    """
    Heuristic constants used by the analyzers.

    Time values are milliseconds, sizes are bytes.
    """
    # Long tasks
    task_context_window_ms: float = 500.0

    # Layout thrashing / JS correlation
    layout_correlation_window_ms: float = 100.0
    style_recalc_warning_count: int = 50
    layout_warning_count: int = 100
    js_layout_correlation_warning_count: int = 10
    script_group_warning_ms: float = 100.0
    total_script_warning_ms: float = 1000.0
    call_stack_frame_warning_count: int = 20

    # CSS cascade
    style_cluster_gap_ms: float = 50.0
    css_script_lookback_ms: float = 100.0
    recalc_script_lookback_ms: float = 50.0
    long_recalc_ms: float = 5.0

    # Memory and DOM
    leak_min_span_s: float = 5.0
    dom_leak_rate_per_s: float = 1.0
    dom_leak_min_nodes: int = 10
    listener_leak_rate_per_s: float = 0.5
    listener_leak_min_count: int = 5
    listener_node_ratio: float = 1.5
    large_dom_nodes: int = 1000
    heap_limit_warning_percent: float = 70.0

    # Resource loading
    large_resource_bytes: int = 500_000
    contention_concurrency: int = 6
    critical_script_bytes: int = 100_000
    critical_style_bytes: int = 50_000

    # Ranking sizes
    top_offenders: int = 10
    top_call_stack_functions: int = 15
    samples_per_group: int = 10
    correlations_per_function: int = 5

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> 'Thresholds':
        """
        Build thresholds from a mapping, ignoring unknown keys.

        Raises:
            ValueError: if a value is not numeric
        """
        if not values:
            return cls()

        known = {f.name: f for f in fields(cls)}
        overrides = {}
        for key, value in values.items():
            name = _snake_case(key)
            if name not in known:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Threshold {key} must be numeric, got {value!r}")
            overrides[name] = int(value) if known[name].type in (int, 'int') else float(value)

        return replace(cls(), **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class AnalysisOptions:
    """
    Options of one ``analyze_trace_data`` call.
    """
    analyze_layout_thrashing: bool = True
    analyze_css_variables: bool = True
    analyze_js_execution: bool = True
    analyze_long_tasks: bool = True
    analyze_memory_and_dom: bool = True
    analyze_resource_loading: bool = True
    long_task_threshold_ms: float = 50.0
    layout_thrashing_threshold: float = 10.0
    memory_leak_threshold_kb: float = 10.0
    detail_level: str = 'detailed'
    include_recommendations: bool = True
    focus_selector: Optional[str] = None
    focus_time_range_ms: Optional[Any] = None
    main_thread_only: bool = False
    thresholds: Thresholds = field(default_factory=Thresholds)

    def __post_init__(self):
        if self.detail_level not in DETAIL_LEVELS:
            raise ValueError(
                f"detail_level must be one of {', '.join(DETAIL_LEVELS)}, got {self.detail_level!r}"
            )
        for name in ('long_task_threshold_ms', 'layout_thrashing_threshold', 'memory_leak_threshold_kb'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be numeric, got {value!r}")

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]]) -> 'AnalysisOptions':
        """
        Build options from a flat mapping.

        Accepts the camelCase names of the analysis request
        (``analyzeLongTasks``, ``focusTimeRangeMs``...) as well as the
        snake_case attribute names. Unknown keys are ignored.

        Args:
            options: Option mapping, may be None

        Returns:
            AnalysisOptions
        """
        if not options:
            return cls()

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in options.items():
            name = _snake_case(key)
            if name not in known or value is None and name != 'focus_time_range_ms':
                continue
            values[name] = value

        thresholds = values.get('thresholds')
        if not isinstance(thresholds, Thresholds):
            values['thresholds'] = Thresholds.from_dict(thresholds)

        return cls(**values)

    def enabled_analyzers(self) -> Tuple[str, ...]:
        """Names of the analyzers switched on, in invocation order"""
        flags = {
            'long_tasks': self.analyze_long_tasks,
            'layout_thrashing': self.analyze_layout_thrashing,
            'js_execution': self.analyze_js_execution,
            'css_variables': self.analyze_css_variables,
            'memory_and_dom': self.analyze_memory_and_dom,
            'resource_loading': self.analyze_resource_loading,
        }
        return tuple(name for name in ANALYZER_NAMES if flags[name])

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'thresholds'}
        result['thresholds'] = self.thresholds.to_dict()
        return result


def _snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()
