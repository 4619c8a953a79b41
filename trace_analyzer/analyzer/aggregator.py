# trace_analyzer/analyzer/aggregator.py - Bottleneck aggregation
"""
Runs the enabled analyzers over one normalized event stream and collects
their bottlenecks in a fixed order.

Failures never escape: an analyzer that raises is reported as an
``analysis_error`` bottleneck and the remaining analyzers still run.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Union
import logging
import time

from trace_analyzer.analyzer.bottleneck import Bottleneck, make_error_bottleneck, shape_bottleneck
from trace_analyzer.analyzer.css_variables import CssVariablesAnalyzer
from trace_analyzer.analyzer.js_execution import JavaScriptExecutionAnalyzer
from trace_analyzer.analyzer.layout_thrashing import LayoutThrashingDetector
from trace_analyzer.analyzer.long_tasks import LongTaskAnalyzer
from trace_analyzer.analyzer.memory_dom import MemoryDomAnalyzer
from trace_analyzer.analyzer.resource_loading import ResourceLoadingAnalyzer
from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.normalizer import normalize_events
from trace_analyzer.utils.options import AnalysisOptions


logger = logging.getLogger(__name__)

NO_EVENTS_DESCRIPTION = "No trace events found"

OptionsLike = Union[AnalysisOptions, Mapping[str, Any], None]


class BottleneckAggregator:
    """
    Runs analyzers and assembles the ordered bottleneck list.
    """

    def __init__(self, options: Optional[AnalysisOptions] = None):
        """
        Initialize the aggregator.

        Args:
            options: Analysis options, defaults when omitted
        """
        self.options = options or AnalysisOptions()
        self.logger = logging.getLogger(__name__)

        thresholds = self.options.thresholds
        self.long_tasks = LongTaskAnalyzer(thresholds)
        self.layout_thrashing = LayoutThrashingDetector(thresholds)
        self.js_execution = JavaScriptExecutionAnalyzer(thresholds)
        self.css_variables = CssVariablesAnalyzer(thresholds)
        self.memory_dom = MemoryDomAnalyzer(thresholds)
        self.resource_loading = ResourceLoadingAnalyzer(thresholds)

        self._runners: Dict[str, Callable[[EventIndex], Optional[Bottleneck]]] = {
            'long_tasks': self._run_long_tasks,
            'layout_thrashing': self.layout_thrashing.analyze,
            'js_execution': self.js_execution.analyze,
            'css_variables': self._run_css_variables,
            'memory_and_dom': self._run_memory_and_dom,
            'resource_loading': self.resource_loading.analyze,
        }

    def analyze(self, raw_events: Optional[List]) -> List[Bottleneck]:
        """
        Normalize events and run every enabled analyzer.

        Args:
            raw_events: Raw trace records

        Returns:
            Ordered list of bottlenecks
        """
        opts = self.options
        if opts.focus_selector:
            self.logger.debug(f"Focus selector {opts.focus_selector!r} is informational only")

        events = normalize_events(
            raw_events,
            focus_time_range=opts.focus_time_range_ms,
            main_thread_only=opts.main_thread_only,
        )
        if not events:
            return [make_error_bottleneck(NO_EVENTS_DESCRIPTION)]

        index = EventIndex.build(events)
        bottlenecks = []

        for name in opts.enabled_analyzers():
            if name == 'css_variables' and not index.has_style_events:
                self.logger.debug("Skipping css_variables analysis: no style events")
                continue
            if name == 'memory_and_dom' and not index.has_memory_or_dom_events:
                self.logger.debug("Skipping memory_and_dom analysis: no memory or DOM events")
                continue

            result = self._run_isolated(name, index)
            if result is not None:
                bottlenecks.append(
                    shape_bottleneck(result, opts.detail_level, opts.include_recommendations)
                )

        self.logger.info(f"Trace analysis completed: {len(bottlenecks)} bottlenecks found")

        return bottlenecks

    def _run_isolated(self, name: str, index: EventIndex) -> Optional[Bottleneck]:
        started = time.perf_counter()
        try:
            result = self._runners[name](index)
        except Exception as e:
            self.logger.exception(f"Error in {name} analysis")
            return make_error_bottleneck(f"Error in {name} analysis: {e}", e, analyzer=name)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.logger.debug(f"{name} analysis took {elapsed_ms:.1f}ms")
        return result

    def _run_long_tasks(self, index: EventIndex) -> Optional[Bottleneck]:
        return self.long_tasks.analyze(index.events, self.options.long_task_threshold_ms)

    def _run_css_variables(self, index: EventIndex) -> Optional[Bottleneck]:
        result = self.css_variables.analyze(index.style_events, index.events)
        cascade = result['cascadeImpact']
        if not cascade['recalcStyleCount']:
            self.logger.debug("No style recalculations, skipping CSS variables report")
            return None
        return Bottleneck(
            type='css_variables_impact',
            description=(
                f"Detected {len(result['variableChanges'])} possible CSS variable changes "
                f"across {cascade['recalcStyleCount']} style recalculations"
            ),
            details=result,
        )

    def _run_memory_and_dom(self, index: EventIndex) -> Bottleneck:
        result = self.memory_dom.analyze(
            index.memory_events,
            index.dom_events,
            index.events,
            self.options.memory_leak_threshold_kb,
        )
        leaks = len(result['potentialLeaks']) + len(result['eventListenerLeaks'])
        return Bottleneck(
            type='memory_dom_growth',
            description=(
                f"Memory trend: {result['memoryUsage']['trend']}, "
                f"DOM trend: {result['domSize']['trend']}, "
                f"{leaks} potential leaks detected"
            ),
            details=result,
        )


def analyze_trace_data(raw_events: Optional[List], options: OptionsLike = None) -> List[Bottleneck]:
    """
    Analyze trace data for performance bottlenecks.

    Never raises: any failure is returned as an ``analysis_error``
    bottleneck.

    Args:
        raw_events: Trace records as JSON-shaped dicts
        options: AnalysisOptions or a flat option mapping

    Returns:
        Ordered list of Bottleneck
    """
    try:
        if not isinstance(options, AnalysisOptions):
            options = AnalysisOptions.from_dict(options)
        logger.info(f"Starting trace data analysis of {len(raw_events or [])} events")
        return BottleneckAggregator(options).analyze(raw_events)
    except Exception as e:
        logger.exception("Error analyzing trace data")
        return [make_error_bottleneck("Error analyzing trace data", e)]
