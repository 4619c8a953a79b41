# trace_analyzer/exporters/stdout.py - Console output exporter
"""
Exports analysis results to stdout in human-readable format.
"""

from typing import Dict, List, Sequence, Tuple
from colorama import Fore, Style, init
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.utils.helpers import format_bytes, format_duration_ms


# Initialize colorama
init(autoreset=True)


class StdoutExporter:
    """
    Exports bottlenecks to stdout with colored output.

    Provides formatted, human-readable console output.
    """

    def __init__(self, use_colors: bool = True):
        """
        Initialize the stdout exporter.

        Args:
            use_colors: Whether to use colored output
        """
        self.use_colors = use_colors
        self.logger = logging.getLogger(__name__)

    def print_bottlenecks(self, bottlenecks: Sequence[Bottleneck]):
        """
        Print all bottlenecks with their recommendations.

        Args:
            bottlenecks: Analysis output
        """
        self._print_header(f"Performance Bottlenecks ({len(bottlenecks)})")

        if not bottlenecks:
            print(f"{self._color(Fore.GREEN)}No bottlenecks detected{self._reset()}")

        for i, bottleneck in enumerate(bottlenecks, 1):
            self.print_bottleneck(bottleneck, i)

        print()

    def print_bottleneck(self, bottleneck: Bottleneck, rank: int = 1):
        """
        Print a single bottleneck.

        Args:
            bottleneck: Bottleneck to print
            rank: Position in the report
        """
        color = self._get_type_color(bottleneck)
        print(f"\n{color}{rank}. [{bottleneck.type}] {bottleneck.description}{self._reset()}")

        details = bottleneck.details
        if bottleneck.is_error:
            if 'analyzer' in details:
                print(f"   Analyzer: {details['analyzer']}")
            if 'error' in details:
                print(f"   Error: {details.get('errorType', 'Error')}: {details['error']}")
            return

        statistics = details.get('statistics')
        if isinstance(statistics, dict):
            print(f"   Total blocking time: {format_duration_ms(statistics.get('totalBlockingTime', 0))}")
            print(f"   Average task duration: {format_duration_ms(statistics.get('averageTaskDuration', 0))}")

        if bottleneck.type == 'large_resources':
            print(f"   Total size: {format_bytes(details.get('totalSize', 0))} "
                  f"in {details.get('totalResources', 0)} resources "
                  f"({format_bytes(details.get('totalTransferSize', 0))} transferred)")

        for recommendation in self._collect_recommendations(details):
            print(f"   {self._color(Fore.GREEN)}- {recommendation.get('description', '')}{self._reset()}")
            if recommendation.get('recommendation'):
                print(f"     {recommendation['recommendation']}")

    def print_summary(self, summary: Dict, top_names: List[Tuple[str, int]]):
        """
        Print trace summary statistics.

        Args:
            summary: Event index summary
            top_names: (name, count) pairs, most frequent first
        """
        self._print_header("Trace Summary")

        print(f"{self._color(Fore.YELLOW)}Summary:{self._reset()}")
        print(f"  Total Events: {summary.get('total_events', 0)}")
        print(f"  Unique Names: {summary.get('unique_names', 0)}")
        print(f"  Processes: {summary.get('processes', 0)}")
        print(f"  Threads: {summary.get('threads', 0)}")
        if 'span_ms' in summary:
            print(f"  Time Span: {format_duration_ms(summary['span_ms'])}")

        print(f"\n{self._color(Fore.YELLOW)}Event Classes:{self._reset()}")
        for key in ('layout_events', 'style_events', 'script_events',
                    'resource_events', 'memory_events', 'dom_events'):
            label = key.replace('_', ' ').capitalize()
            print(f"  {label}: {summary.get(key, 0)}")

        if top_names:
            print(f"\n{'Name':<40} {'Count':<10}")
            print(f"{'-'*52}")
            for name, count in top_names:
                print(f"{(name or '<unnamed>')[:40]:<40} {count:<10}")

        print()

    def _collect_recommendations(self, details: Dict) -> List[Dict]:
        recommendations = []
        for key in ('recommendations', 'optimizationSuggestions'):
            value = details.get(key)
            if isinstance(value, list):
                recommendations.extend(r for r in value if isinstance(r, dict))
        return recommendations

    def _print_header(self, title: str):
        print(f"\n{self._color(Fore.CYAN)}{'='*80}{self._reset()}")
        print(f"{self._color(Fore.CYAN)}{title}{self._reset()}")
        print(f"{self._color(Fore.CYAN)}{'='*80}{self._reset()}")

    def _get_type_color(self, bottleneck: Bottleneck) -> str:
        """
        Get color based on bottleneck type.

        Args:
            bottleneck: Bottleneck to color

        Returns:
            Color code
        """
        if bottleneck.is_error:
            return self._color(Fore.RED)
        return self._color(Fore.YELLOW)

    def _color(self, code: str) -> str:
        return code if self.use_colors else ""

    def _reset(self) -> str:
        return Style.RESET_ALL if self.use_colors else ""
