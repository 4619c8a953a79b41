# tests/test_cli.py - Tests for the command-line interface
"""
Integration tests for the click commands.
"""

import json

import pytest
from click.testing import CliRunner

from trace_analyzer.cli import cli


@pytest.fixture
def runner(restore_logging):
    """Create a CLI runner"""
    return CliRunner()


@pytest.fixture
def trace_file(tmp_path, make_event, make_resource):
    """A small trace file on disk"""
    events = [make_event('FunctionCall', 0, 80_000, functionName='main', url='app.js')]
    events += make_resource('https://example.com/app.js', 0, 50_000, 700_000)
    path = tmp_path / 'trace.json'
    path.write_text(json.dumps({'traceEvents': events}))
    return path


class TestAnalyzeCommand:
    """Test cases for the analyze command"""

    def test_json_report(self, runner, trace_file, tmp_path):
        """Test writing a JSON report"""
        output = tmp_path / 'out' / 'report.json'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file),
                                     '--output-format', 'json', '--output', str(output)])

        assert result.exit_code == 0, result.output
        assert 'Report written to' in result.output
        data = json.loads(output.read_text())
        assert [b['type'] for b in data['bottlenecks']] == [
            'long_tasks', 'javascript_execution', 'large_resources',
        ]
        assert data['source'] == str(trace_file)

    def test_skip_and_threshold(self, runner, trace_file, tmp_path):
        """Test analyzer skipping and threshold override"""
        output = tmp_path / 'report.json'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file),
                                     '--output-format', 'json', '--output', str(output),
                                     '--skip', 'resource_loading', '--long-task-threshold', '100'])

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert [b['type'] for b in data['bottlenecks']] == ['javascript_execution']

    def test_stdout_report(self, runner, trace_file):
        """Test the console report"""
        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file)])

        assert result.exit_code == 0, result.output
        assert 'Performance Bottlenecks (3)' in result.output
        assert '[large_resources]' in result.output

    def test_prometheus_output(self, runner, trace_file, tmp_path):
        """Test writing metrics in Prometheus text format"""
        output = tmp_path / 'metrics.prom'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file),
                                     '--output-format', 'prometheus', '--output', str(output)])

        assert result.exit_code == 0, result.output
        assert 'trace_analyzer_bottlenecks_total{type="large_resources"} 1.0' in output.read_text()

    def test_serve_prometheus_metrics(self, runner, trace_file, monkeypatch):
        """Test that --serve exposes the recorded metrics over HTTP"""
        served = []

        def fake_start_http_server(port, registry=None):
            served.append((port, registry))

        monkeypatch.setattr('trace_analyzer.exporters.prometheus.start_http_server',
                            fake_start_http_server)

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file),
                                     '--serve', '--port', '9123', '--serve-duration', '0'])

        assert result.exit_code == 0, result.output
        assert 'Serving metrics on port 9123' in result.output
        assert 'trace_analyzer_bottlenecks_total' not in result.output
        assert len(served) == 1
        port, registry = served[0]
        assert port == 9123
        assert registry.get_sample_value('trace_analyzer_bottlenecks_total',
                                         {'type': 'large_resources'}) == 1.0

    def test_serve_port_in_use(self, runner, trace_file, monkeypatch):
        """Test that a server start failure is reported as a usage error"""
        def fake_start_http_server(port, registry=None):
            raise OSError('Address already in use')

        monkeypatch.setattr('trace_analyzer.exporters.prometheus.start_http_server',
                            fake_start_http_server)

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file), '--serve'])

        assert result.exit_code == 1
        assert 'Cannot serve metrics on port 9090' in result.output

    def test_config_file(self, runner, trace_file, tmp_path):
        """Test that a configuration file is applied"""
        config = tmp_path / 'config.yaml'
        config.write_text("analysis:\n  analyze_js_execution: false\n  analyze_long_tasks: false\n")
        output = tmp_path / 'report.json'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(trace_file),
                                     '--config', str(config),
                                     '--output-format', 'json', '--output', str(output)])

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert [b['type'] for b in data['bottlenecks']] == ['large_resources']

    def test_invalid_trace_file(self, runner, tmp_path):
        """Test that an unreadable trace is a usage error"""
        path = tmp_path / 'broken.json'
        path.write_text('{"nothing": true}')

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'analyze', str(path)])

        assert result.exit_code == 1
        assert 'traceEvents' in result.output


class TestInspectCommand:
    """Test cases for the inspect command"""

    def test_summary_output(self, runner, trace_file):
        """Test the console summary"""
        result = runner.invoke(cli, ['--log-level', 'ERROR', 'inspect', str(trace_file), '--top', '2'])

        assert result.exit_code == 0, result.output
        assert 'Total Events: 4' in result.output
        assert 'Resource events: 3' in result.output

    def test_summary_json(self, runner, trace_file, tmp_path):
        """Test writing the summary as JSON"""
        output = tmp_path / 'summary.json'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'inspect', str(trace_file),
                                     '--output', str(output)])

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data['summary']['script_events'] == 1


class TestInitConfigCommand:
    """Test cases for the init-config command"""

    def test_writes_defaults(self, runner, tmp_path):
        """Test writing the default configuration"""
        path = tmp_path / 'config.yaml'

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'init-config', str(path)])

        assert result.exit_code == 0, result.output
        assert 'long_task_threshold_ms: 50' in path.read_text()

    def test_refuses_to_overwrite(self, runner, tmp_path):
        """Test that an existing file is kept without --force"""
        path = tmp_path / 'config.yaml'
        path.write_text('keep: me\n')

        result = runner.invoke(cli, ['--log-level', 'ERROR', 'init-config', str(path)])

        assert result.exit_code == 1
        assert path.read_text() == 'keep: me\n'

        forced = runner.invoke(cli, ['--log-level', 'ERROR', 'init-config', str(path), '--force'])

        assert forced.exit_code == 0
