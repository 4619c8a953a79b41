# tests/test_resource_loading.py - Tests for resource loading analysis
"""
Unit tests for ResourceLoadingAnalyzer and resource typing.
"""

import pytest

from trace_analyzer.analyzer.resource_loading import ResourceLoadingAnalyzer, analyze_resource_loading
from trace_analyzer.analyzer.resources import (
    determine_resource_type,
    generate_optimization_suggestions,
    group_resources_by_type,
)
from trace_analyzer.collector.event_index import EventIndex
from trace_analyzer.collector.normalizer import normalize_events


URL = 'https://example.com/static/bundle.js'


class TestResourceLoadingAnalyzer:
    """Test cases for ResourceLoadingAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        """Create analyzer instance"""
        return ResourceLoadingAnalyzer()

    def _analyze(self, analyzer, raw):
        return analyzer.analyze(EventIndex.build(normalize_events(raw)))

    def test_repeated_url_is_one_resource(self, analyzer, make_resource):
        """Test that two lifecycles for the same URL yield one large resource"""
        raw = make_resource(URL, 0, 100_000, 600_000) + make_resource(URL, 200_000, 300_000, 600_000)

        result = self._analyze(analyzer, raw)

        assert result.type == 'large_resources'
        assert len(result.details['resources']) == 1
        resource = result.details['resources'][0]
        assert resource['url'] == URL
        assert resource['type'] == 'script'
        assert resource['size'] == 600_000
        assert resource['duration'] == 100.0
        assert resource['large'] is True
        assert result.details['totalResources'] == 1
        assert result.description == "Found 1 large resources (>500KB)"

    def test_small_resources(self, analyzer, make_resource):
        """Test the description when nothing is large"""
        result = self._analyze(analyzer, make_resource('https://example.com/a.css', 0, 1_000, 2_000))

        assert result.details['resources'] == []
        assert result.description == "Analyzed 1 resources"

    def test_no_resource_events(self, analyzer, make_event):
        """Test that traces without network events yield nothing"""
        assert self._analyze(analyzer, [make_event('Layout', 0, 10)]) is None

    def test_unfinished_request_is_dropped(self, analyzer, make_event):
        """Test that lifecycles without a finish are not reported"""
        result = self._analyze(analyzer, [make_event('ResourceSendRequest', 0, url=URL)])

        assert result.details['totalResources'] == 0

    def test_match_by_request_id(self, analyzer, make_event):
        """Test that finish events without a URL resolve through the request id"""
        result = self._analyze(analyzer, [
            make_event('ResourceSendRequest', 0, url=URL, requestId='42'),
            make_event('ResourceReceiveResponse', 10_000, requestId='42', statusCode=200),
            make_event('ResourceFinish', 20_000, requestId='42', encodedDataLength=10),
        ])

        resource = result.details['waterfall']['loadSequence'][0]
        assert resource['url'] == URL
        assert resource['status'] == 200
        assert resource['priority'] == 'Low'

    def test_contention(self, analyzer, make_resource):
        """Test peak concurrency and contention periods"""
        raw = []
        for i in range(7):
            raw += make_resource(f'https://example.com/img{i}.png', i * 1_000, 100_000, 100)
        # starts exactly where one of the others ends
        raw += make_resource('https://example.com/late.png', 100_000, 150_000, 100)

        contention = self._analyze(analyzer, raw).details['waterfall']['contention']

        assert contention['maxConcurrentRequests'] == 7
        assert len(contention['contentionPeriods']) == 1
        period = contention['contentionPeriods'][0]
        assert period['startTime'] == 5_000
        assert period['concurrentRequests'] == 7

    def test_back_to_back_requests_do_not_overlap(self, analyzer, make_resource):
        """Test that a request ending when another starts is not concurrent"""
        raw = make_resource('https://example.com/a.js', 0, 1_000, 10) + \
            make_resource('https://example.com/b.js', 1_000, 2_000, 10)

        contention = self._analyze(analyzer, raw).details['waterfall']['contention']

        assert contention['maxConcurrentRequests'] == 1

    def test_render_blocking_and_ttfb(self, analyzer, make_event, make_resource):
        """Test render blocking resources and time to first byte"""
        raw = (
            make_resource('https://example.com/index.html', 0, 50_000, 5_000, response_ts=30_000)
            + [make_event('firstPaint', 100_000)]
            + make_resource('https://example.com/late.css', 60_000, 150_000, 5_000)
            + make_resource('https://example.com/lazy.js', 60_000, 160_000, 5_000, priority='Low')
        )

        waterfall = self._analyze(analyzer, raw).details['waterfall']

        assert waterfall['timeToFirstByte'] == 30.0
        blocking = waterfall['renderBlockingResources']
        assert [r['url'] for r in blocking] == ['https://example.com/late.css']
        assert blocking[0]['delayToFirstPaint'] == 50.0

    def test_critical_path(self, make_resource):
        """Test that high priority and large script resources are critical"""
        raw = (
            make_resource('https://example.com/app.js', 0, 1_000, 200_000, priority='Low')
            + make_resource('https://example.com/logo.png', 0, 1_000, 10, priority='VeryHigh')
            + make_resource('https://example.com/tiny.js', 0, 1_000, 10, priority='Low')
        )

        result = analyze_resource_loading(normalize_events(raw))

        urls = [r['url'] for r in result.details['waterfall']['criticalPath']]
        assert sorted(urls) == ['https://example.com/app.js', 'https://example.com/logo.png']


class TestResourceTypes:
    """Test cases for resource typing and grouping"""

    @pytest.mark.parametrize('url,rtype', [
        ('https://example.com/a.js', 'script'),
        ('https://example.com/a.JS?v=1', 'script'),
        ('https://example.com/site.css#x', 'style'),
        ('https://example.com/photo.webp', 'image'),
        ('https://example.com/font.woff2', 'font'),
        ('https://example.com/index.html', 'document'),
        ('https://example.com/api/data.json', 'data'),
        ('https://example.com/api/users', 'other'),
        ('https://example.com/', 'other'),
        (None, 'other'),
    ])
    def test_determine_resource_type(self, url, rtype):
        """Test type inference from the URL extension"""
        assert determine_resource_type(url) == rtype

    def test_grouping_and_suggestions(self):
        """Test grouping by type and size based suggestions"""
        resources = [
            {'url': 'a.png', 'type': 'image', 'size': 800_000},
            {'url': 'b.png', 'type': 'image', 'size': 400_000},
            {'url': 'c.js', 'type': 'script', 'size': 100_000},
        ] + [{'url': f'f{i}.woff', 'type': 'font', 'size': 10} for i in range(4)]

        groups = group_resources_by_type(resources)
        suggestions = generate_optimization_suggestions(groups)

        assert [g['type'] for g in groups] == ['image', 'script', 'font']
        assert groups[0]['count'] == 2
        assert groups[0]['averageSize'] == 600_000
        assert [s['type'] for s in suggestions] == ['image_optimization', 'font_optimization']
