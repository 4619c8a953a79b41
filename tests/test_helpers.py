# tests/test_helpers.py - Tests for helper functions
"""
Unit tests for trace file loading and formatting helpers.
"""

import gzip
import json
import logging

import pytest

from trace_analyzer.utils.helpers import (
    TraceFileError,
    extract_trace_events,
    format_bytes,
    format_duration_ms,
    load_trace_file,
)
from trace_analyzer.utils.logger import ColoredFormatter


class TestLoadTraceFile:
    """Test cases for trace file loading"""

    def test_object_format(self, tmp_path):
        """Test a trace object with a traceEvents array"""
        path = tmp_path / 'trace.json'
        path.write_text(json.dumps({'traceEvents': [{'name': 'Layout', 'ts': 1}], 'metadata': {}}))

        assert load_trace_file(path) == [{'name': 'Layout', 'ts': 1}]

    def test_array_format_gzip(self, tmp_path):
        """Test a gzip-compressed event array"""
        path = tmp_path / 'trace.json.gz'
        with gzip.open(path, 'wt', encoding='utf-8') as f:
            json.dump([{'name': 'Layout', 'ts': 1}], f)

        assert load_trace_file(str(path)) == [{'name': 'Layout', 'ts': 1}]

    def test_invalid_json(self, tmp_path):
        """Test that unparseable files raise TraceFileError"""
        path = tmp_path / 'trace.json'
        path.write_text('{not json')

        with pytest.raises(TraceFileError):
            load_trace_file(path)

    def test_unknown_shape(self):
        """Test that documents without events are rejected"""
        with pytest.raises(TraceFileError):
            extract_trace_events({'events': []})


class TestFormatting:
    """Test cases for formatting helpers"""

    @pytest.mark.parametrize('value,text', [(512, '512.0 B'), (1500, '1.5 KB'), (2_500_000, '2.5 MB')])
    def test_format_bytes(self, value, text):
        """Test byte formatting"""
        assert format_bytes(value) == text

    @pytest.mark.parametrize('value,text', [(0.25, '250us'), (12.34, '12.3ms'), (1500, '1.50s')])
    def test_format_duration(self, value, text):
        """Test duration formatting"""
        assert format_duration_ms(value) == text


class TestColoredFormatter:
    """Test cases for ColoredFormatter"""

    def test_record_is_restored(self):
        """Test that coloring does not leak into other handlers"""
        record = logging.LogRecord('x', logging.WARNING, __file__, 1, 'hello', None, None)

        output = ColoredFormatter('%(levelname)s %(message)s').format(record)

        assert 'WARNING' in output
        assert record.levelname == 'WARNING'
