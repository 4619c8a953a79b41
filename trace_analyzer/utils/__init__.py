# trace_analyzer/utils/__init__.py - Utilities module
"""
Utility functions and helpers.

This module provides:
- config.py: Configuration management
- options.py: Analysis options and thresholds
- logger.py: Logging setup
- helpers.py: Trace file loading and formatting helpers
"""
