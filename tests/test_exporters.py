# tests/test_exporters.py - Tests for exporters
"""
Unit tests for the JSON, Prometheus and stdout exporters.
"""

import json

import pytest

from trace_analyzer.analyzer.bottleneck import Bottleneck, make_error_bottleneck
from trace_analyzer.exporters.json_exporter import JSONExporter
from trace_analyzer.exporters.prometheus import PrometheusExporter
from trace_analyzer.exporters.stdout import StdoutExporter


@pytest.fixture
def bottlenecks():
    """A long task finding and an analyzer error"""
    return [
        Bottleneck(
            type='long_tasks',
            description='Found 1 long tasks (>50ms) with 10.00ms total blocking time',
            details={
                'tasks': [{'duration': 60.0}],
                'statistics': {'totalBlockingTime': 10.0, 'averageTaskDuration': 60.0},
                'recommendations': [{'type': 'task_splitting', 'description': 'Split it',
                                     'recommendation': 'Use requestIdleCallback'}],
            },
        ),
        make_error_bottleneck("Error in layout_thrashing analysis: boom",
                              RuntimeError('boom'), analyzer='layout_thrashing'),
    ]


class TestJSONExporter:
    """Test cases for JSONExporter"""

    def test_to_json(self, bottlenecks):
        """Test serialization to a JSON array"""
        data = json.loads(JSONExporter().to_json(bottlenecks))

        assert [b['type'] for b in data] == ['long_tasks', 'analysis_error']
        assert data[1]['details']['analyzer'] == 'layout_thrashing'

    def test_export_bottlenecks(self, bottlenecks, tmp_path):
        """Test writing a report file"""
        exporter = JSONExporter(output_dir=str(tmp_path / 'reports'))

        path = exporter.export_bottlenecks(bottlenecks, filename='report.json', source='trace.json')

        with open(path) as f:
            data = json.load(f)
        assert data['source'] == 'trace.json'
        assert data['bottleneck_count'] == 2
        assert data['error_count'] == 1
        assert len(data['bottlenecks']) == 2

    def test_export_summary(self, tmp_path):
        """Test writing a summary file"""
        exporter = JSONExporter(output_dir=str(tmp_path))

        path = exporter.export_summary({'total_events': 3}, [('Layout', 2)], filename='summary.json')

        with open(path) as f:
            data = json.load(f)
        assert data['summary'] == {'total_events': 3}
        assert data['event_names'] == [{'name': 'Layout', 'count': 2}]


class TestPrometheusExporter:
    """Test cases for PrometheusExporter"""

    def test_record_bottlenecks(self, bottlenecks):
        """Test that metrics reflect the analysis"""
        exporter = PrometheusExporter()

        exporter.record_bottlenecks(bottlenecks)
        text = exporter.render()

        assert 'trace_analyzer_bottlenecks_total{type="long_tasks"} 1.0' in text
        assert 'trace_analyzer_analysis_errors_total{analyzer="layout_thrashing"} 1.0' in text
        assert 'trace_analyzer_total_blocking_time_milliseconds 10.0' in text
        assert 'trace_analyzer_long_task_duration_milliseconds_count 1.0' in text

    def test_exporters_are_independent(self, bottlenecks):
        """Test that private registries do not collide"""
        first = PrometheusExporter()
        second = PrometheusExporter()

        first.record_bottlenecks(bottlenecks)

        assert 'type="long_tasks"' not in second.render()

    def test_resource_metrics(self):
        """Test per-type resource gauges"""
        exporter = PrometheusExporter()

        exporter.record_bottlenecks([Bottleneck(
            type='large_resources',
            description='Analyzed 1 resources',
            details={'resourcesByType': [{'type': 'script', 'count': 1, 'totalSize': 2000}]},
        )])
        text = exporter.render()

        assert 'trace_analyzer_resources{type="script"} 1.0' in text
        assert 'trace_analyzer_resource_bytes{type="script"} 2000.0' in text


class TestStdoutExporter:
    """Test cases for StdoutExporter"""

    def test_print_bottlenecks(self, bottlenecks, capsys):
        """Test console report output"""
        StdoutExporter(use_colors=False).print_bottlenecks(bottlenecks)

        out = capsys.readouterr().out
        assert 'Performance Bottlenecks (2)' in out
        assert '1. [long_tasks]' in out
        assert 'Total blocking time: 10.0ms' in out
        assert '- Split it' in out
        assert 'Error: RuntimeError: boom' in out

    def test_print_resource_totals(self, capsys):
        """Test that resource totals are printed in readable units"""
        bottleneck = Bottleneck(
            type='large_resources',
            description='Found 1 large resources (>500KB)',
            details={'totalResources': 2, 'totalSize': 1_500_000, 'totalTransferSize': 600_000},
        )

        StdoutExporter(use_colors=False).print_bottlenecks([bottleneck])

        assert 'Total size: 1.5 MB in 2 resources (600.0 KB transferred)' in capsys.readouterr().out

    def test_print_nothing(self, capsys):
        """Test output for a clean trace"""
        StdoutExporter(use_colors=False).print_bottlenecks([])

        assert 'No bottlenecks detected' in capsys.readouterr().out

    def test_print_summary(self, capsys):
        """Test trace summary output"""
        StdoutExporter(use_colors=False).print_summary(
            {'total_events': 3, 'unique_names': 2, 'span_ms': 1500.0, 'layout_events': 2},
            [('Layout', 2), ('', 1)],
        )

        out = capsys.readouterr().out
        assert 'Total Events: 3' in out
        assert 'Time Span: 1.50s' in out
        assert 'Layout events: 2' in out
        assert '<unnamed>' in out
