# trace_analyzer/exporters/prometheus.py - Prometheus metrics exporter
"""
Exports analysis metrics in Prometheus format.
Provides HTTP endpoint for Prometheus to scrape.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)
from typing import Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck


class PrometheusExporter:
    """
    Exports analysis results to Prometheus.

    Metrics live in a private registry so several exporters can coexist in
    one process.
    """

    def __init__(self, port: int = 9090, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
            registry: Registry to register metrics in (a new one by default)
        """
        self.port = port
        self.registry = registry or CollectorRegistry()
        self.logger = logging.getLogger(__name__)

        # Define metrics
        self.bottleneck_count = Counter(
            'trace_analyzer_bottlenecks',
            'Number of detected bottlenecks',
            ['type'],
            registry=self.registry,
        )

        self.analysis_errors = Counter(
            'trace_analyzer_analysis_errors',
            'Number of failed analyzers',
            ['analyzer'],
            registry=self.registry,
        )

        self.long_task_duration = Histogram(
            'trace_analyzer_long_task_duration_milliseconds',
            'Duration of long tasks in milliseconds',
            buckets=[50, 100, 200, 500, 1000, 2000, 5000],
            registry=self.registry,
        )

        self.total_blocking_time = Gauge(
            'trace_analyzer_total_blocking_time_milliseconds',
            'Total blocking time of long tasks in milliseconds',
            registry=self.registry,
        )

        self.javascript_time = Gauge(
            'trace_analyzer_javascript_execution_milliseconds',
            'Total JavaScript execution time in milliseconds',
            registry=self.registry,
        )

        self.heap_growth_rate = Gauge(
            'trace_analyzer_heap_growth_bytes_per_second',
            'JS heap growth rate in bytes per second',
            registry=self.registry,
        )

        self.resource_count = Gauge(
            'trace_analyzer_resources',
            'Number of loaded resources',
            ['type'],
            registry=self.registry,
        )

        self.resource_bytes = Gauge(
            'trace_analyzer_resource_bytes',
            'Total size of loaded resources in bytes',
            ['type'],
            registry=self.registry,
        )

        self.logger.debug(f"Prometheus exporter initialized on port {port}")

    def start(self):
        """
        Start the Prometheus HTTP server.
        """
        try:
            start_http_server(self.port, registry=self.registry)
            self.logger.info(f"Prometheus metrics available at http://localhost:{self.port}/metrics")
        except Exception as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")
            raise

    def record_bottlenecks(self, bottlenecks: Sequence[Bottleneck]):
        """
        Record metrics for an analysis result.

        Args:
            bottlenecks: Analysis output
        """
        for bottleneck in bottlenecks:
            self.bottleneck_count.labels(type=bottleneck.type).inc()
            details = bottleneck.details

            if bottleneck.is_error:
                self.analysis_errors.labels(analyzer=details.get('analyzer', 'pipeline')).inc()
            elif bottleneck.type == 'long_tasks':
                for task in details.get('tasks', []):
                    self.long_task_duration.observe(task['duration'])
                statistics = details.get('statistics', {})
                self.total_blocking_time.set(statistics.get('totalBlockingTime', 0))
            elif bottleneck.type == 'javascript_execution':
                self.javascript_time.set(details.get('totalExecutionTime', 0))
            elif bottleneck.type == 'memory_dom_growth':
                self.heap_growth_rate.set(details.get('memoryUsage', {}).get('growthRate', 0))
            elif bottleneck.type == 'large_resources':
                for group in details.get('resourcesByType', []):
                    self.resource_count.labels(type=group['type']).set(group['count'])
                    self.resource_bytes.labels(type=group['type']).set(group['totalSize'])

    def render(self) -> str:
        """
        Get current metrics in Prometheus text format.

        Returns:
            Metrics as text
        """
        return generate_latest(self.registry).decode('utf-8')
