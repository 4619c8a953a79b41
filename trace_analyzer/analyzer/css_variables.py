# trace_analyzer/analyzer/css_variables.py - CSS cascade impact analysis
"""
Estimates the cost of style recalculation bursts and which scripts may
have caused them by changing CSS variables.
"""

from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.css_heuristics import might_change_css_variables
from trace_analyzer.analyzer.timeline import (
    US_PER_MS,
    Cluster,
    cluster_events,
    correlate,
    describe_script,
    to_ms,
)
from trace_analyzer.collector.events import LAYOUT_EVENT_NAMES, SCRIPT_EVENT_NAMES, TraceEvent
from trace_analyzer.utils.options import Thresholds


MAX_AFFECTED_ELEMENTS = 1000
ELEMENTS_PER_RECALCULATION = 10
MAX_RECALCULATION_BOTTLENECKS = 5


def estimate_cascade_depth(max_recalc_ms: float) -> int:
    """Bucket the longest single recalculation into a depth estimate (1-4)"""
    if max_recalc_ms > 20:
        return 4
    if max_recalc_ms > 10:
        return 3
    if max_recalc_ms > 5:
        return 2
    return 1


def estimate_cascade_width(recalc_count: int) -> int:
    """Bucket the number of recalculations into a width estimate (1-4)"""
    if recalc_count > 100:
        return 4
    if recalc_count > 50:
        return 3
    if recalc_count > 20:
        return 2
    return 1


class CssVariablesAnalyzer:
    """
    Analyzes style recalculation clusters and their likely triggers.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, style_events: Sequence[TraceEvent], all_events: Sequence[TraceEvent]) -> Dict:
        """
        Analyze the impact of CSS variable changes.

        Args:
            style_events: Style-class events
            all_events: All normalized events

        Returns:
            Dictionary with variablesDetected, variableChanges,
            cascadeImpact, recalculationBottlenecks and recommendations
        """
        recalcs = [e for e in style_events if e.name == 'RecalculateStyles']
        scripts = [e for e in all_events if e.name in SCRIPT_EVENT_NAMES]

        changes = self.detect_variable_changes(recalcs, scripts)
        cascade = self.estimate_cascade_impact(recalcs, all_events)
        bottlenecks = self.find_recalculation_bottlenecks(recalcs, scripts)

        self.logger.debug(
            f"CSS variables: {len(recalcs)} recalculations, {len(changes)} possible variable changes"
        )

        return {
            'variablesDetected': bool(changes),
            'variableChanges': changes,
            'cascadeImpact': cascade,
            'recalculationBottlenecks': bottlenecks,
            'recommendations': self._generate_recommendations(changes, cascade, bottlenecks),
        }

    def detect_variable_changes(self, recalcs: Sequence[TraceEvent],
                                scripts: Sequence[TraceEvent]) -> List[Dict]:
        """
        Attribute recalculation clusters to preceding scripts.

        Args:
            recalcs: RecalculateStyles events
            scripts: Script execution events

        Returns:
            List of possible CSS variable changes
        """
        gap_us = self.thresholds.style_cluster_gap_ms * US_PER_MS
        lookback_us = self.thresholds.css_script_lookback_ms * US_PER_MS
        changes = []

        for cluster in cluster_events(recalcs, gap_us):
            correlation = correlate(scripts, cluster.events[0], lookback_us)
            if correlation is None or not might_change_css_variables(correlation.cause):
                continue
            changes.append({
                'cluster': self._describe_cluster(cluster),
                'javascript': describe_script(correlation.cause),
                'timeBetween': correlation.time_between_ms,
                'impactScore': cluster.event_count * cluster.total_duration / 1_000_000,
            })

        return changes

    def estimate_cascade_impact(self, recalcs: Sequence[TraceEvent],
                                all_events: Sequence[TraceEvent]) -> Dict:
        """
        Coarse cascade size estimates from recalculation counts and
        durations.

        Args:
            recalcs: RecalculateStyles events
            all_events: All normalized events

        Returns:
            Dictionary of cascade estimates
        """
        count = len(recalcs)
        max_recalc_ms = max((e.duration_ms for e in recalcs), default=0.0)

        return {
            'recalcStyleCount': count,
            'layoutUpdateCount': sum(1 for e in all_events if e.name in LAYOUT_EVENT_NAMES),
            'estimatedAffectedElements': min(count * ELEMENTS_PER_RECALCULATION, MAX_AFFECTED_ELEMENTS),
            'cascadeDepthEstimate': estimate_cascade_depth(max_recalc_ms),
            'cascadeWidthEstimate': estimate_cascade_width(count),
        }

    def find_recalculation_bottlenecks(self, recalcs: Sequence[TraceEvent],
                                       scripts: Sequence[TraceEvent]) -> List[Dict]:
        """
        Report the longest recalculations with their likely trigger.

        Args:
            recalcs: RecalculateStyles events
            scripts: Script execution events

        Returns:
            Up to five bottleneck dictionaries, longest first
        """
        long_recalcs = sorted(
            (e for e in recalcs if e.duration_ms > self.thresholds.long_recalc_ms),
            key=lambda e: e.duration_us,
            reverse=True,
        )
        lookback_us = self.thresholds.recalc_script_lookback_ms * US_PER_MS
        bottlenecks = []

        for recalc in long_recalcs[:MAX_RECALCULATION_BOTTLENECKS]:
            correlation = correlate(scripts, recalc, lookback_us)
            bottlenecks.append({
                'recalculation': {
                    'time': recalc.ts,
                    'duration': recalc.duration_ms,
                    'args': dict(recalc.args),
                },
                'javascript': describe_script(correlation.cause) if correlation is not None else None,
                'timeBetween': correlation.time_between_ms if correlation is not None else None,
            })

        return bottlenecks

    def _describe_cluster(self, cluster: Cluster) -> Dict:
        return {
            'startTime': cluster.start_time,
            'endTime': cluster.end_time,
            'eventCount': cluster.event_count,
            'totalDuration': to_ms(cluster.total_duration),
        }

    def _generate_recommendations(self, changes: List[Dict], cascade: Dict,
                                  bottlenecks: List[Dict]) -> List[Dict]:
        recommendations = []

        if len(changes) > 5:
            recommendations.append({
                'type': 'css_variable_change_frequency',
                'description': f"High frequency of CSS variable changes ({len(changes)} detected)",
                'recommendation': (
                    "Batch CSS variable changes and minimize the frequency of updates "
                    "to reduce style recalculations"
                ),
            })

        if cascade['cascadeWidthEstimate'] >= 3:
            recommendations.append({
                'type': 'css_variable_cascade_width',
                'description': (
                    f"Wide cascade impact (affecting approximately "
                    f"{cascade['estimatedAffectedElements']} elements)"
                ),
                'recommendation': (
                    "Limit the scope of CSS variables by using more specific selectors "
                    "or consider CSS containment"
                ),
            })

        if cascade['cascadeDepthEstimate'] >= 3:
            recommendations.append({
                'type': 'css_variable_cascade_depth',
                'description': "Deep cascade impact detected",
                'recommendation': "Flatten your CSS hierarchy and reduce the depth of nested CSS variables",
            })

        if bottlenecks:
            longest = bottlenecks[0]
            recommendations.append({
                'type': 'style_recalculation_bottleneck',
                'description': (
                    f"Style recalculation bottleneck detected "
                    f"({longest['recalculation']['duration']:.2f}ms)"
                ),
                'recommendation': (
                    "Identify and optimize the CSS variables that trigger "
                    "expensive style recalculations"
                ),
            })

            if longest['javascript'] is not None:
                js = longest['javascript']
                recommendations.append({
                    'type': 'specific_css_variable_optimization',
                    'description': (
                        f"Function {js['functionName']} in {js['url']} may be triggering "
                        f"expensive style recalculations"
                    ),
                    'recommendation': "Review this function and optimize how it updates CSS variables",
                })

        return recommendations


def analyze_css_variables_impact(style_events: Sequence[TraceEvent],
                                 all_events: Sequence[TraceEvent],
                                 thresholds: Optional[Thresholds] = None) -> Dict:
    """
    Analyze CSS variable impact with a one-off analyzer.

    Args:
        style_events: Style-class events
        all_events: All normalized events
        thresholds: Heuristic constants

    Returns:
        CSS impact dictionary
    """
    return CssVariablesAnalyzer(thresholds).analyze(style_events, all_events)
