# tests/conftest.py - Shared test fixtures
"""
Factories for JSON-shaped trace records.
"""

import logging

import pytest


def _event(name, ts, dur=None, pid=1, tid=1, cat='devtools.timeline', **data):
    record = {'name': name, 'ts': ts, 'pid': pid, 'tid': tid, 'cat': cat, 'ph': 'X' if dur is not None else 'I'}
    if dur is not None:
        record['dur'] = dur
    if data:
        record['args'] = {'data': data}
    return record


def _frame(function_name='update', url='https://example.com/app.js', line=10, column=4):
    return {'functionName': function_name, 'url': url, 'lineNumber': line, 'columnNumber': column}


def _layout(ts, dur=1000, stack=None, **data):
    if stack is not None:
        data['beginData'] = {'stackTrace': stack}
    return _event('Layout', ts, dur, **data)


def _counters(ts, heap=None, nodes=None, listeners=None, limit=None):
    data = {}
    if heap is not None:
        data['jsHeapSizeUsed'] = heap
    if limit is not None:
        data['jsHeapSizeLimit'] = limit
    if nodes is not None:
        data['nodes'] = nodes
    if listeners is not None:
        data['jsEventListeners'] = listeners
    return _event('UpdateCounters', ts, **data)


def _resource(url, send_ts, finish_ts, size, request_id=None, response_ts=None,
              priority='High', mime_type='', from_cache=False):
    ids = {'requestId': request_id} if request_id else {}
    response_ts = response_ts if response_ts is not None else (send_ts + finish_ts) / 2
    return [
        _event('ResourceSendRequest', send_ts, url=url, priority=priority, **ids),
        _event('ResourceReceiveResponse', response_ts, url=url, statusCode=200,
               mimeType=mime_type, fromCache=from_cache, **ids),
        _event('ResourceFinish', finish_ts, url=url, encodedDataLength=size, **ids),
    ]


@pytest.fixture
def make_event():
    """Factory for a single trace record"""
    return _event


@pytest.fixture
def make_frame():
    """Factory for a stack frame"""
    return _frame


@pytest.fixture
def make_layout():
    """Factory for a Layout record, stack-bearing when a stack is given"""
    return _layout


@pytest.fixture
def make_counters():
    """Factory for an UpdateCounters record"""
    return _counters


@pytest.fixture
def make_resource():
    """Factory for a send/response/finish resource triple"""
    return _resource


@pytest.fixture
def restore_logging():
    """Restore root logger handlers replaced by setup_logging"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
