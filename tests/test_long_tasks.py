# tests/test_long_tasks.py - Tests for long task analysis
"""
Unit tests for LongTaskAnalyzer.
"""

import pytest

from trace_analyzer.analyzer.long_tasks import LongTaskAnalyzer, analyze_long_tasks
from trace_analyzer.collector.normalizer import normalize_events


class TestLongTaskAnalyzer:
    """Test cases for LongTaskAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        """Create analyzer instance"""
        return LongTaskAnalyzer()

    def test_single_layout_task(self, analyzer, make_event):
        """Test that a lone 60ms Layout is a layout task without interaction"""
        events = normalize_events([make_event('Layout', 1_000_000, 60_000)])

        result = analyzer.analyze(events, threshold_ms=50)

        assert result.type == 'long_tasks'
        task = result.details['tasks'][0]
        assert task['type'] == 'layout'
        assert task['duration'] == 60.0
        assert task['startTime'] == 1_000_000
        assert task['context']['userInteraction'] == {'detected': False}
        assert result.details['interactionBlockingTasks'] == 0
        assert result.description == "Found 1 long tasks (>50ms) with 10.00ms total blocking time"

    def test_threshold_is_inclusive(self, analyzer, make_event):
        """Test the threshold boundary"""
        at_threshold = normalize_events([make_event('Task', 0, 50_000)])
        below = normalize_events([make_event('Task', 0, 49_999)])

        assert analyzer.analyze(at_threshold, threshold_ms=50) is not None
        assert analyzer.analyze(below, threshold_ms=50) is None

    def test_no_events(self, analyzer):
        """Test that no input yields no bottleneck"""
        assert analyzer.analyze([], threshold_ms=50) is None

    def test_dominant_activity(self, analyzer, make_event):
        """Test classification by the most frequent contained activity"""
        events = normalize_events([
            make_event('RunTask', 0, 100_000),
            make_event('FunctionCall', 1_000, 10_000),
            make_event('FunctionCall', 20_000, 10_000),
            make_event('Layout', 40_000, 5_000),
        ])

        result = analyzer.analyze(events, threshold_ms=50)

        assert [t['type'] for t in result.details['tasks']] == ['javascript']

    def test_task_context(self, analyzer, make_event):
        """Test that preceding triggers are reported"""
        events = normalize_events([
            make_event('EventDispatch', 0, 10),
            make_event('InputLatency::MouseDown', 100_000, 10),
            make_event('ResourceReceiveResponse', 200_000, url='https://example.com/data.json'),
            make_event('TimerFire', 300_000, 10),
            make_event('RunTask', 400_000, 80_000),
        ])

        result = analyzer.analyze(events, threshold_ms=50)
        context = result.details['tasks'][0]['context']

        assert context['userInteraction'] == {
            'detected': True, 'type': 'InputLatency::MouseDown', 'timestamp': 100_000,
        }
        assert context['networkActivity']['url'] == 'https://example.com/data.json'
        assert context['timer']['type'] == 'TimerFire'
        assert result.details['interactionBlockingTasks'] == 1

    def test_context_window_excludes_old_events(self, analyzer, make_event):
        """Test that triggers older than the look-back window are ignored"""
        events = normalize_events([
            make_event('KeyDown', 0, 10),
            make_event('RunTask', 600_000, 80_000),
        ])

        result = analyzer.analyze(events, threshold_ms=50)

        assert not result.details['tasks'][0]['context']['userInteraction']['detected']

    def test_statistics_and_ordering(self, make_event):
        """Test blocking time, sort order and recommendations"""
        events = normalize_events([
            make_event('FunctionCall', 0, 60_000),
            make_event('FunctionCall', 1_000_000, 600_000),
        ])

        result = analyze_long_tasks(events, threshold_ms=50)
        details = result.details

        assert [t['duration'] for t in details['tasks']] == [600.0, 60.0]
        assert details['statistics']['totalBlockingTime'] == pytest.approx(560.0)
        assert details['statistics']['tasksOver200ms'] == 1
        types = {r['type'] for r in details['recommendations']}
        assert types == {'javascript_optimization', 'task_splitting'}
