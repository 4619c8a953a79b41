# trace_analyzer/__init__.py - Trace performance analyzer
"""
Browser trace performance analysis.

Turns a list of trace events into an ordered list of bottlenecks:

    from trace_analyzer import analyze_trace_data

    for bottleneck in analyze_trace_data(events, {'longTaskThresholdMs': 100}):
        print(bottleneck.type, bottleneck.description)
"""

from trace_analyzer.analyzer.aggregator import analyze_trace_data
from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.utils.options import AnalysisOptions, Thresholds

__version__ = '0.1.0'

__all__ = ['analyze_trace_data', 'AnalysisOptions', 'Bottleneck', 'Thresholds', '__version__']
