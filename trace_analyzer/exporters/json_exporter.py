# trace_analyzer/exporters/json_exporter.py - JSON format exporter
"""
Exports analysis results as JSON.
"""

import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck


class JSONExporter:
    """
    Exports bottlenecks to JSON format.

    Provides structured JSON output for further processing or visualization.
    """

    def __init__(self, output_dir: Optional[str] = None, indent: int = 2):
        """
        Initialize the JSON exporter.

        Args:
            output_dir: Directory to save JSON files (default: current directory)
            indent: Indentation of written JSON
        """
        self.output_dir = Path(output_dir) if output_dir else Path('.')
        self.indent = indent
        self.logger = logging.getLogger(__name__)

    def to_json(self, bottlenecks: Sequence[Bottleneck]) -> str:
        """
        Serialize bottlenecks to a JSON array.

        The result depends only on the bottlenecks, so equal analyses give
        identical text.

        Args:
            bottlenecks: Analysis output

        Returns:
            JSON string
        """
        return json.dumps([b.to_dict() for b in bottlenecks], indent=self.indent)

    def export_bottlenecks(self, bottlenecks: Sequence[Bottleneck],
                           filename: Optional[str] = None,
                           source: Optional[str] = None) -> str:
        """
        Export bottlenecks to a JSON file.

        Args:
            bottlenecks: Analysis output
            filename: Output filename (auto-generated if not provided)
            source: Trace file the analysis was run on

        Returns:
            Path to output file
        """
        if not filename:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            filename = f'bottlenecks_{timestamp}.json'

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / filename

        output_data: Dict = {
            'timestamp': datetime.now().isoformat(),
            'source': source,
            'bottleneck_count': len(bottlenecks),
            'error_count': sum(1 for b in bottlenecks if b.is_error),
            'bottlenecks': [b.to_dict() for b in bottlenecks],
        }

        with open(output_path, 'w') as f:
            json.dump(output_data, f, indent=self.indent)

        self.logger.info(f"Exported {len(bottlenecks)} bottlenecks to {output_path}")
        return str(output_path)

    def export_summary(self, summary: Dict, top_names: List, filename: Optional[str] = None) -> str:
        """
        Export trace summary statistics to a JSON file.

        Args:
            summary: Event index summary
            top_names: (name, count) pairs
            filename: Output filename (auto-generated if not provided)

        Returns:
            Path to output file
        """
        if not filename:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            filename = f'summary_{timestamp}.json'

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / filename

        with open(output_path, 'w') as f:
            json.dump({
                'timestamp': datetime.now().isoformat(),
                'summary': summary,
                'event_names': [{'name': name, 'count': count} for name, count in top_names],
            }, f, indent=self.indent)

        self.logger.info(f"Exported trace summary to {output_path}")
        return str(output_path)
