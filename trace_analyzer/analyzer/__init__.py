# trace_analyzer/analyzer/__init__.py - Analysis module
"""
Analyzer module for detecting performance bottlenecks in trace events.

This module provides:
- bottleneck.py: Bottleneck record and detail shaping
- timeline.py: Clustering and cause/effect correlation helpers
- long_tasks.py: Long task attribution
- layout_thrashing.py: Layout thrashing detection
- js_execution.py: JavaScript to layout correlation
- css_heuristics.py: CSS variable change classifier
- css_variables.py: CSS cascade impact analysis
- memory_dom.py: Memory and DOM growth analysis
- resources.py: Resource typing and grouping
- resource_loading.py: Resource loading waterfall analysis
- aggregator.py: Runs the analyzers and collects bottlenecks
"""
