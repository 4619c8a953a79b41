# trace_analyzer/analyzer/js_execution.py - JavaScript to layout correlation
"""
Links script execution to the layouts that start shortly after it and
ranks the functions and scripts responsible.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.analyzer.layout_thrashing import group_top_frames
from trace_analyzer.analyzer.timeline import US_PER_MS, correlate, describe_script, script_url
from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.events import TraceEvent
from trace_analyzer.utils.options import Thresholds


class JavaScriptExecutionAnalyzer:
    """
    Correlates script execution with layout work.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, index: EventIndex) -> Optional[Bottleneck]:
        """
        Analyze JavaScript execution.

        Args:
            index: Indexed normalized events

        Returns:
            ``javascript_execution`` Bottleneck, or None without script events
        """
        scripts = index.script_events
        if not scripts:
            return None

        total_time = sum(e.duration_ms for e in scripts)
        stack_layouts = [
            e for e in index.layout_events if e.name == 'Layout' and e.stack_trace
        ]

        correlation = self.correlate_with_layout(scripts, index.layout_events)
        call_stacks = self.analyze_call_stacks(stack_layouts)
        snippets = self.build_code_snippets(stack_layouts)
        evaluations = self.rank_script_evaluations(scripts)

        correlated = correlation['correlatedEvents']
        details = {
            'totalExecutionTime': total_time,
            'scriptEvaluation': evaluations,
            'jsLayoutCorrelation': correlation,
            'callStackAnalysis': call_stacks,
            'layoutThrashingCodeSnippets': snippets,
            'recommendations': self._generate_recommendations(
                total_time, correlation, call_stacks, evaluations
            ),
        }

        self.logger.debug(
            f"JavaScript execution: {total_time:.2f}ms over {len(scripts)} events, "
            f"{len(correlated)} layout correlations"
        )

        return Bottleneck(
            type='javascript_execution',
            description=(
                f"Total JavaScript execution time: {total_time:.2f}ms "
                f"with {len(correlated)} layout-triggering operations"
            ),
            details=details,
        )

    def correlate_with_layout(self, scripts: Sequence[TraceEvent],
                              layouts: Sequence[TraceEvent]) -> Dict:
        """
        Pair each layout with the script that ended closest before it.

        Args:
            scripts: Script execution events
            layouts: Layout events

        Returns:
            Dictionary with correlatedEvents and functionImpact
        """
        window_us = self.thresholds.layout_correlation_window_ms * US_PER_MS
        correlated = []

        for layout in layouts:
            correlation = correlate(scripts, layout, window_us)
            if correlation is None:
                continue
            correlated.append({
                'layout': {'time': layout.ts, 'duration': layout.duration_ms, 'type': layout.name},
                'javascript': describe_script(correlation.cause),
                'timeBetween': correlation.time_between_ms,
            })

        by_function: Dict = OrderedDict()
        for corr in correlated:
            js = corr['javascript']
            key = (js['url'], js['functionName'])
            entry = by_function.get(key)
            if entry is None:
                entry = {
                    'url': js['url'],
                    'functionName': js['functionName'],
                    'layoutCount': 0,
                    'totalLayoutDuration': 0.0,
                    'correlations': [],
                }
                by_function[key] = entry
            entry['layoutCount'] += 1
            entry['totalLayoutDuration'] += corr['layout']['duration']
            entry['correlations'].append(corr)

        ranked = sorted(by_function.values(), key=lambda f: f['layoutCount'], reverse=True)
        function_impact = [
            dict(
                f,
                averageLayoutDuration=f['totalLayoutDuration'] / f['layoutCount'],
                correlations=f['correlations'][:self.thresholds.correlations_per_function],
            )
            for f in ranked[:self.thresholds.top_offenders]
        ]

        return {
            'correlatedEvents': correlated,
            'functionImpact': function_impact,
        }

    def analyze_call_stacks(self, stack_layouts: Sequence[TraceEvent]) -> Dict:
        """
        Tally every frame of every captured layout stack.

        Args:
            stack_layouts: Layout events with a non-empty stack

        Returns:
            Dictionary with stacksAnalyzed and, when true,
            layoutsWithStackTraces and topFunctions
        """
        if not stack_layouts:
            return {'stacksAnalyzed': False}

        functions: Dict = OrderedDict()
        for layout in stack_layouts:
            for frame in layout.stack_trace:
                entry = functions.get(frame.key)
                if entry is None:
                    entry = dict(frame.to_dict(), count=0, totalDuration=0.0)
                    functions[frame.key] = entry
                entry['count'] += 1
                entry['totalDuration'] += layout.duration_ms

        ranked = sorted(functions.values(), key=lambda f: f['count'], reverse=True)

        return {
            'stacksAnalyzed': True,
            'layoutsWithStackTraces': len(stack_layouts),
            'topFunctions': [
                dict(f, averageDuration=f['totalDuration'] / f['count'])
                for f in ranked[:self.thresholds.top_call_stack_functions]
            ],
        }

    def build_code_snippets(self, stack_layouts: Sequence[TraceEvent]) -> List[Dict]:
        """
        Describe the worst top-frame offenders as pseudo code snippets.

        Only the call site is known from the trace, so the snippet is a
        location comment with the layout counts.

        Args:
            stack_layouts: Layout events with a non-empty stack

        Returns:
            List of snippet dictionaries
        """
        snippets = []

        for offender in group_top_frames(stack_layouts)[:self.thresholds.top_offenders]:
            location = f"{offender['url']}:{offender['lineNumber']}:{offender['columnNumber']}"
            snippets.append({
                'url': offender['url'],
                'functionName': offender['functionName'],
                'lineNumber': offender['lineNumber'],
                'columnNumber': offender['columnNumber'],
                'layoutCount': offender['count'],
                'totalLayoutDuration': offender['totalDuration'],
                'pseudoCode': (
                    f"/* At {location} */\n"
                    f"function {offender['functionName']}() {{\n"
                    f"  // This function triggered layout {offender['count']} times\n"
                    f"  // Total layout time: {offender['totalDuration']:.2f}ms\n"
                    f"  // Potential layout thrashing detected\n"
                    f"}}"
                ),
            })

        return snippets

    def rank_script_evaluations(self, scripts: Sequence[TraceEvent]) -> List[Dict]:
        """
        Rank evaluated scripts by total evaluation time.

        Args:
            scripts: Script execution events

        Returns:
            Top script dictionaries by total duration
        """
        by_url: Dict = OrderedDict()
        for script in scripts:
            if script.name != 'EvaluateScript':
                continue
            url = script_url(script)
            entry = by_url.setdefault(url, {'url': url, 'count': 0, 'totalDuration': 0.0})
            entry['count'] += 1
            entry['totalDuration'] += script.duration_ms

        ranked = sorted(by_url.values(), key=lambda s: s['totalDuration'], reverse=True)

        return [
            dict(s, averageDuration=s['totalDuration'] / s['count'])
            for s in ranked[:self.thresholds.top_offenders]
        ]

    def _generate_recommendations(self, total_time: float, correlation: Dict,
                                  call_stacks: Dict, evaluations: List[Dict]) -> List[Dict]:
        recommendations = []
        correlated = correlation['correlatedEvents']

        if len(correlated) > self.thresholds.js_layout_correlation_warning_count:
            recommendations.append({
                'type': 'js_layout_optimization',
                'description': f"{len(correlated)} layout operations triggered by JavaScript",
                'recommendation': (
                    "Batch DOM reads and writes, and use requestAnimationFrame for visual "
                    "updates to avoid layout thrashing"
                ),
            })

            if correlation['functionImpact']:
                top = correlation['functionImpact'][0]
                recommendations.append({
                    'type': 'specific_js_layout_optimization',
                    'description': (
                        f"Function {top['functionName']} in {top['url']} "
                        f"triggered {top['layoutCount']} layout operations"
                    ),
                    'recommendation': (
                        "Review this function and batch DOM reads and writes "
                        "to avoid layout thrashing"
                    ),
                })

        slow_scripts = [
            s for s in evaluations if s['totalDuration'] > self.thresholds.script_group_warning_ms
        ]
        if slow_scripts:
            recommendations.append({
                'type': 'script_optimization',
                'description': (
                    f"{len(slow_scripts)} scripts take more than "
                    f"{self.thresholds.script_group_warning_ms:g}ms to evaluate"
                ),
                'recommendation': (
                    "Consider code splitting, lazy loading, or optimizing these scripts "
                    "to improve page load performance"
                ),
            })

        if total_time > self.thresholds.total_script_warning_ms:
            recommendations.append({
                'type': 'js_execution_reduction',
                'description': f"High JavaScript execution time ({total_time:.2f}ms)",
                'recommendation': (
                    "Reduce JavaScript execution by deferring non-critical operations, using "
                    "web workers for heavy computation, and optimizing hot functions"
                ),
            })

        if call_stacks['stacksAnalyzed'] and any(
            f['count'] >= self.thresholds.call_stack_frame_warning_count
            for f in call_stacks['topFunctions']
        ):
            recommendations.append({
                'type': 'call_stack_optimization',
                'description': "Deep call stacks detected that trigger layout operations",
                'recommendation': (
                    "Flatten call hierarchies and avoid nested functions "
                    "that trigger layout operations"
                ),
            })

        return recommendations


def analyze_javascript_execution(events: Sequence[TraceEvent],
                                 thresholds: Optional[Thresholds] = None) -> Optional[Bottleneck]:
    """
    Analyze JavaScript execution over a plain event list.

    Args:
        events: Normalized trace events
        thresholds: Heuristic constants

    Returns:
        ``javascript_execution`` Bottleneck or None
    """
    return JavaScriptExecutionAnalyzer(thresholds).analyze(EventIndex.build(list(events)))
