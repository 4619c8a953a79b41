# trace_analyzer/analyzer/resource_loading.py - Resource loading waterfall
"""
Reconstructs network request lifecycles and analyzes the loading
waterfall: large resources, concurrency contention, render blocking and
time to first byte.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import logging

from trace_analyzer.analyzer.bottleneck import Bottleneck
from trace_analyzer.analyzer.resources import (
    determine_resource_type,
    generate_optimization_suggestions,
    group_resources_by_type,
)
from trace_analyzer.analyzer.timeline import to_ms
from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.events import ResourcePayload, TraceEvent
from trace_analyzer.utils.options import Thresholds


FIRST_PAINT_EVENT_NAMES = frozenset(['firstPaint', 'firstContentfulPaint'])
RENDER_BLOCKING_TYPES = frozenset(['script', 'style', 'font'])
CRITICAL_PRIORITIES = frozenset(['High', 'VeryHigh'])
DEFAULT_PRIORITY = 'Low'


@dataclass
class _Lifecycle:
    """Request state collected while scanning the event stream"""
    url: str
    request_id: Optional[str]
    request_time: float
    priority: str
    response_time: Optional[float] = None
    status: int = 0
    mime_type: str = ''
    from_cache: bool = False
    from_service_worker: bool = False
    emitted: bool = False


class ResourceLoadingAnalyzer:
    """
    Analyzes resource loading from request lifecycle events.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.logger = logging.getLogger(__name__)

    def analyze(self, index: EventIndex) -> Optional[Bottleneck]:
        """
        Analyze resource loading.

        Args:
            index: Indexed normalized events

        Returns:
            ``large_resources`` Bottleneck, or None without resource events
        """
        if not index.resource_events:
            return None

        resources = self.extract_resources(index.resource_events)
        large = [r for r in resources if r['large']]
        groups = group_resources_by_type(resources)

        details = {
            'resources': large,
            'resourcesByType': groups,
            'optimizationSuggestions': generate_optimization_suggestions(groups),
            'waterfall': self.analyze_waterfall(resources, index.events),
            'totalResources': len(resources),
            'totalSize': sum(r['size'] for r in resources),
            'totalTransferSize': sum(r['transferSize'] for r in resources),
            'totalDuration': sum(r['duration'] for r in resources),
        }

        self.logger.debug(f"Resource loading: {len(resources)} resources, {len(large)} large")

        limit_kb = self.thresholds.large_resource_bytes / 1000
        if large:
            description = f"Found {len(large)} large resources (>{limit_kb:g}KB)"
        else:
            description = f"Analyzed {len(resources)} resources"

        return Bottleneck(type='large_resources', description=description, details=details)

    def extract_resources(self, resource_events: Sequence[TraceEvent]) -> List[Dict]:
        """
        Rebuild completed request lifecycles.

        A lifecycle is opened by the first ``ResourceSendRequest`` for a
        URL. Response and finish events are matched by URL, or by request
        id when they carry no URL. Each lifecycle is emitted once, at its
        first ``ResourceFinish``; unfinished lifecycles are dropped.

        Args:
            resource_events: Resource events in capture order

        Returns:
            Resource dictionaries in completion order
        """
        by_url: Dict[str, _Lifecycle] = {}
        url_by_request_id: Dict[str, str] = {}
        resources = []

        for event in resource_events:
            payload = event.payload
            if not isinstance(payload, ResourcePayload):
                continue

            if event.name == 'ResourceSendRequest':
                if not payload.url:
                    continue
                if payload.request_id:
                    url_by_request_id.setdefault(payload.request_id, payload.url)
                if payload.url not in by_url:
                    by_url[payload.url] = _Lifecycle(
                        url=payload.url,
                        request_id=payload.request_id,
                        request_time=event.ts,
                        priority=payload.priority or DEFAULT_PRIORITY,
                    )
                continue

            url = payload.url or url_by_request_id.get(payload.request_id or '')
            lifecycle = by_url.get(url) if url else None
            if lifecycle is None or lifecycle.emitted:
                continue

            if event.name == 'ResourceReceiveResponse':
                lifecycle.response_time = event.ts
                lifecycle.status = payload.status_code or 0
                lifecycle.mime_type = payload.mime_type or ''
                lifecycle.from_cache = payload.from_cache
                lifecycle.from_service_worker = payload.from_service_worker
            elif event.name == 'ResourceFinish':
                lifecycle.emitted = True
                resources.append(self._finish(lifecycle, event.ts, payload))

        return resources

    def _finish(self, lifecycle: _Lifecycle, finish_time: float, payload: ResourcePayload) -> Dict:
        encoded = payload.encoded_data_length or 0
        decoded = payload.decoded_body_length or 0
        size = decoded or encoded
        rtype = determine_resource_type(lifecycle.url)

        return {
            'url': lifecycle.url,
            'requestId': lifecycle.request_id,
            'type': rtype,
            'requestTime': lifecycle.request_time,
            'responseTime': lifecycle.response_time,
            'finishTime': finish_time,
            'duration': to_ms(finish_time - lifecycle.request_time),
            'size': size,
            'transferSize': encoded,
            'encodedDataLength': encoded,
            'decodedBodyLength': decoded,
            'large': size > self.thresholds.large_resource_bytes,
            'status': lifecycle.status,
            'mimeType': lifecycle.mime_type,
            'priority': lifecycle.priority,
            'fromCache': lifecycle.from_cache,
            'fromServiceWorker': lifecycle.from_service_worker,
        }

    def analyze_waterfall(self, resources: List[Dict], events: Sequence[TraceEvent]) -> Dict:
        """
        Analyze the loading waterfall.

        Args:
            resources: Completed resources
            events: All normalized events

        Returns:
            Dictionary with criticalPath, contention,
            renderBlockingResources, timeToFirstByte and loadSequence
        """
        ordered = sorted(resources, key=lambda r: r['requestTime'])

        return {
            'criticalPath': self.find_critical_path(ordered),
            'contention': self.measure_contention(ordered),
            'renderBlockingResources': self.find_render_blocking(ordered, events),
            'timeToFirstByte': self.time_to_first_byte(ordered),
            'loadSequence': [
                {
                    'url': r['url'],
                    'type': r['type'],
                    'startTime': r['requestTime'],
                    'endTime': r['finishTime'],
                    'duration': r['duration'],
                    'size': r['size'],
                    'transferSize': r['transferSize'],
                    'status': r['status'],
                    'priority': r['priority'],
                    'fromCache': r['fromCache'],
                    'fromServiceWorker': r['fromServiceWorker'],
                }
                for r in ordered
            ],
        }

    def find_critical_path(self, resources: Sequence[Dict]) -> List[Dict]:
        """
        Resources likely on the critical path: high priority requests and
        large scripts or stylesheets.
        """
        critical = [
            r for r in resources
            if r['priority'] in CRITICAL_PRIORITIES
            or (r['type'] == 'script' and r['size'] > self.thresholds.critical_script_bytes)
            or (r['type'] == 'style' and r['size'] > self.thresholds.critical_style_bytes)
        ]
        return [
            {
                'url': r['url'],
                'type': r['type'],
                'duration': r['duration'],
                'size': r['size'],
                'priority': r['priority'],
            }
            for r in critical
        ]

    def measure_contention(self, resources: Sequence[Dict]) -> Dict:
        """
        Sweep request start and end instants to measure concurrency.

        Ends are processed before starts at equal instants, so
        back-to-back requests do not overlap.

        Args:
            resources: Completed resources

        Returns:
            Dictionary with maxConcurrentRequests and contentionPeriods
        """
        # (time, order, delta); order 0 sorts ends first
        instants = []
        for r in resources:
            instants.append((r['requestTime'], 1, 1))
            instants.append((r['finishTime'], 0, -1))
        instants.sort(key=lambda item: (item[0], item[1]))

        limit = self.thresholds.contention_concurrency
        current = peak = 0
        period_start = None
        period_peak = 0
        periods = []

        for time, _, delta in instants:
            current += delta
            peak = max(peak, current)

            if current >= limit:
                if period_start is None:
                    period_start, period_peak = time, current
                period_peak = max(period_peak, current)
            elif period_start is not None:
                periods.append(self._contention_period(period_start, time, period_peak))
                period_start = None

        if period_start is not None:
            periods.append(self._contention_period(period_start, instants[-1][0], period_peak))

        return {
            'maxConcurrentRequests': peak,
            'contentionPeriods': periods,
        }

    def _contention_period(self, start: float, end: float, concurrent: int) -> Dict:
        return {
            'startTime': start,
            'endTime': end,
            'duration': to_ms(end - start),
            'concurrentRequests': concurrent,
        }

    def find_render_blocking(self, resources: Sequence[Dict], events: Sequence[TraceEvent]) -> List[Dict]:
        """
        Find resources that finished after first paint and could have
        delayed rendering.

        Args:
            resources: Completed resources
            events: All normalized events

        Returns:
            List of render-blocking resource dictionaries; empty when the
            trace has no first paint marker
        """
        paints = [
            e.ts for e in events
            if e.name in FIRST_PAINT_EVENT_NAMES or 'MarkFirstPaint' in e.name
        ]
        if not paints:
            return []
        first_paint = min(paints)

        return [
            {
                'url': r['url'],
                'type': r['type'],
                'finishTime': r['finishTime'],
                'delayToFirstPaint': to_ms(r['finishTime'] - first_paint),
                'size': r['size'],
                'priority': r['priority'],
            }
            for r in resources
            if r['finishTime'] > first_paint
            and r['type'] in RENDER_BLOCKING_TYPES
            and not r['fromCache']
            and r['priority'] != 'Low'
        ]

    def time_to_first_byte(self, resources: Sequence[Dict]) -> Optional[float]:
        """
        Time to first byte of the main document in ms.

        Args:
            resources: Completed resources sorted by request time

        Returns:
            TTFB in ms, or None without a document response
        """
        documents = [r for r in resources if r['type'] == 'document' or 'html' in r['mimeType']]
        if not documents:
            return None
        main = documents[0]
        if main['responseTime'] is None:
            return None
        return to_ms(main['responseTime'] - main['requestTime'])


def analyze_resource_loading(events: Sequence[TraceEvent],
                             thresholds: Optional[Thresholds] = None) -> Optional[Bottleneck]:
    """
    Analyze resource loading over a plain event list.

    Args:
        events: Normalized trace events
        thresholds: Heuristic constants

    Returns:
        ``large_resources`` Bottleneck or None
    """
    return ResourceLoadingAnalyzer(thresholds).analyze(EventIndex.build(list(events)))
