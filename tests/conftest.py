import json

import pytest

from adguard_exporter.registry import MetricsRegistry


class FakeResponse(object):
    def __init__(self, status_code=200, body=None, content=None):
        self.status_code = status_code
        if content is None:
            content = json.dumps(body if body is not None else {}).encode('UTF-8')
        self.content = content


class FakeSession(object):
    """Stands in for requests.Session: maps URL -> response or exception."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.auth = None

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        outcome = self.routes[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClient(object):
    """Stands in for AdGuardClient: returns payloads or raises FetchErrors."""

    def __init__(self, stats=None, status=None, querylog=None):
        self.stats = stats if stats is not None else {}
        self.status = status if status is not None else {}
        self.querylog = querylog if querylog is not None else {'data': []}
        self.querylog_limits = []

    def _answer(self, outcome):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_stats(self):
        return self._answer(self.stats)

    def get_status(self):
        return self._answer(self.status)

    def get_querylog(self, limit=None):
        self.querylog_limits.append(limit)
        return self._answer(self.querylog)


@pytest.fixture
def registry():
    return MetricsRegistry()


def labelled(registry, name, label):
    """{label value: sample value} for a single-label family."""
    result = {}
    for labels in registry.family_labels(name):
        result[labels[label]] = registry.get_value(name, labels)
    return result
