# trace_analyzer/collector/__init__.py - Event input module
"""
Collector module for turning raw trace records into analyzable events.

This module provides:
- events.py: Typed trace event model and parsing
- normalizer.py: Validation, windowing and main thread filtering
- event_index.py: Shared event sub-filters computed once per analysis
"""
