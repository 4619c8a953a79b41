# trace_analyzer/cli.py - Command-line interface
"""
Command-line interface for the trace performance analyzer.
"""

import click
import logging
from pathlib import Path

from trace_analyzer.utils.logger import setup_logging
from trace_analyzer.utils.config import Config
from trace_analyzer.utils.helpers import TraceFileError, load_trace_file
from trace_analyzer.utils.options import ANALYZER_NAMES, DETAIL_LEVELS


logger = logging.getLogger(__name__)


def _load_events(trace_file: str):
    try:
        return load_trace_file(trace_file)
    except TraceFileError as e:
        raise click.ClickException(str(e))


def _serve_metrics(exporter, duration=None):
    import time

    try:
        exporter.start()
    except OSError as e:
        raise click.ClickException(f"Cannot serve metrics on port {exporter.port}: {e}")

    click.echo(f"Serving metrics on port {exporter.port}. Press Ctrl+C to stop.")
    try:
        start_time = time.time()
        while duration is None or time.time() - start_time < duration:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping metrics server...")


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']))
@click.option('--log-file', type=click.Path(), help='Log file path')
@click.pass_context
def cli(ctx, log_level, log_file):
    """
    Trace Performance Analyzer

    Finds performance bottlenecks in browser trace event files.
    """
    ctx.ensure_object(dict)

    # Setup logging
    setup_logging(level=log_level, log_file=log_file)

    # Store context
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file


@cli.command()
@click.argument('trace_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--config', type=click.Path(exists=True, dir_okay=False), help='Configuration file')
@click.option('--output-format', type=click.Choice(['stdout', 'json', 'prometheus']), help='Output format')
@click.option('--output', type=click.Path(dir_okay=False), help='Output file (json and prometheus formats)')
@click.option('--long-task-threshold', type=float, help='Long task threshold in milliseconds')
@click.option('--time-range', help='Focus time range in milliseconds, e.g. "1000-5000"')
@click.option('--detail-level', type=click.Choice(DETAIL_LEVELS), help='Verbosity of bottleneck details')
@click.option('--no-recommendations', is_flag=True, help='Omit recommendations')
@click.option('--skip', multiple=True, type=click.Choice(ANALYZER_NAMES), help='Analyzer to skip (repeatable)')
@click.option('--main-thread-only', is_flag=True, help='Only analyze renderer main thread events')
@click.option('--serve', is_flag=True, help='Serve Prometheus metrics over HTTP instead of printing them')
@click.option('--port', type=int, help='Port for --serve')
@click.option('--serve-duration', type=float, help='Seconds to serve metrics (default: until Ctrl+C)')
@click.pass_context
def analyze(ctx, trace_file, config, output_format, output, long_task_threshold, time_range,
            detail_level, no_recommendations, skip, main_thread_only, serve, port, serve_duration):
    """
    Analyze a trace file for performance bottlenecks.

    Example:
        trace-analyzer analyze trace.json
        trace-analyzer analyze trace.json.gz --output-format json --output report.json
        trace-analyzer analyze trace.json --skip resource_loading --time-range 0-5000
        trace-analyzer analyze trace.json --output-format prometheus --serve --port 9100
    """
    from trace_analyzer.analyzer.aggregator import analyze_trace_data

    # Load configuration
    try:
        cfg = Config(config)
    except Exception as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    # Override config with CLI options
    if output_format:
        cfg.set('output.format', output_format)
    if serve:
        cfg.set('output.format', 'prometheus')
    if port is not None:
        cfg.set('output.prometheus_port', port)
    if long_task_threshold is not None:
        cfg.set('analysis.long_task_threshold_ms', long_task_threshold)
    if time_range:
        cfg.set('analysis.focus_time_range_ms', time_range)
    if detail_level:
        cfg.set('analysis.detail_level', detail_level)
    if no_recommendations:
        cfg.set('analysis.include_recommendations', False)
    if main_thread_only:
        cfg.set('analysis.main_thread_only', True)
    for name in skip:
        cfg.set(f'analysis.analyze_{name}', False)

    try:
        options = cfg.analysis_options()
    except ValueError as e:
        raise click.ClickException(f"Invalid analysis options: {e}")

    events = _load_events(trace_file)
    bottlenecks = analyze_trace_data(events, options)

    errors = sum(1 for b in bottlenecks if b.is_error)
    if errors:
        logger.warning(f"{errors} analysis errors reported")

    fmt = cfg.get('output.format', 'stdout')

    if fmt == 'json':
        from trace_analyzer.exporters.json_exporter import JSONExporter

        if output:
            output_path = Path(output)
            exporter = JSONExporter(output_dir=str(output_path.parent))
            path = exporter.export_bottlenecks(bottlenecks, filename=output_path.name, source=trace_file)
            click.echo(f"Report written to {path}")
        else:
            click.echo(JSONExporter().to_json(bottlenecks))

    elif fmt == 'prometheus':
        from trace_analyzer.exporters.prometheus import PrometheusExporter

        exporter = PrometheusExporter(port=cfg.get('output.prometheus_port', 9090))
        exporter.record_bottlenecks(bottlenecks)
        if serve:
            _serve_metrics(exporter, serve_duration)
            return
        text = exporter.render()
        if output:
            Path(output).write_text(text)
            click.echo(f"Metrics written to {output}")
        else:
            click.echo(text, nl=False)

    else:
        from trace_analyzer.exporters.stdout import StdoutExporter

        StdoutExporter().print_bottlenecks(bottlenecks)


@cli.command()
@click.argument('trace_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--top', type=int, default=15, show_default=True, help='Number of event names to list')
@click.option('--output', type=click.Path(dir_okay=False), help='Write the summary as JSON')
def inspect(trace_file, top, output):
    """
    Show event statistics of a trace file.

    Example:
        trace-analyzer inspect trace.json --top 20
    """
    from trace_analyzer.collector.event_index import EventIndex
    from trace_analyzer.collector.normalizer import normalize_events
    from trace_analyzer.exporters.stdout import StdoutExporter

    events = normalize_events(_load_events(trace_file))
    index = EventIndex.build(events)
    summary = index.get_summary()
    top_names = index.count_by_name(limit=top)

    if output:
        from trace_analyzer.exporters.json_exporter import JSONExporter

        output_path = Path(output)
        exporter = JSONExporter(output_dir=str(output_path.parent))
        path = exporter.export_summary(summary, top_names, filename=output_path.name)
        click.echo(f"Summary written to {path}")
    else:
        StdoutExporter().print_summary(summary, top_names)


@cli.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False))
@click.option('--force', is_flag=True, help='Overwrite an existing file')
def init_config(path, force):
    """
    Write the default configuration to a YAML file.

    Example:
        trace-analyzer init-config configs/local.yaml
    """
    if Path(path).exists() and not force:
        raise click.ClickException(f"{path} already exists, use --force to overwrite")

    Config().save_to_file(path)
    click.echo(f"Default configuration written to {path}")


if __name__ == '__main__':
    cli(obj={})
