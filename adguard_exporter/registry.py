# -*- encoding: utf-8 -*-
"""In-memory metric store shared by the collector and the scrape handler."""

import contextlib
import threading

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.exposition import generate_latest

GAUGE = 'gauge'
COUNTER = 'counter'
HISTOGRAM = 'histogram'

# 1ms, 6ms, ... 46ms expressed in seconds.
ELAPSED_BUCKETS = tuple(round(0.001 + 0.005 * i, 3) for i in range(10))

# name -> (kind, help, labels)
METRICS = {
    # /control/stats
    'adguard_dns_queries': (
        GAUGE, 'DNS queries processed by AdGuard Home.', []),
    'adguard_blocked_filtering': (
        GAUGE, 'DNS queries blocked by filtering rules.', []),
    'adguard_replaced_parental': (
        GAUGE, 'DNS queries replaced by parental control.', []),
    'adguard_replaced_safebrowsing': (
        GAUGE, 'DNS queries replaced by safe browsing.', []),
    'adguard_replaced_safesearch': (
        GAUGE, 'DNS queries replaced by safe search.', []),
    'adguard_avg_processing_time_seconds': (
        GAUGE, 'Average DNS query processing time.', []),
    'adguard_top_queried_domain': (
        GAUGE, 'Queries per domain for the most queried domains.',
        ['domain']),
    'adguard_top_blocked_domain': (
        GAUGE, 'Blocked queries per domain for the most blocked domains.',
        ['domain']),
    'adguard_top_client': (
        GAUGE, 'Queries per client for the most active clients.',
        ['client']),
    'adguard_top_upstream': (
        GAUGE, 'Responses per upstream for the most used upstreams.',
        ['upstream']),
    'adguard_upstream_avg_response_time_seconds': (
        GAUGE, 'Average response time per upstream.', ['upstream']),

    # /control/status
    'adguard_running': (
        GAUGE, 'AdGuard Home DNS service running (1/0).', []),
    'adguard_protection_enabled': (
        GAUGE, 'Filtering protection enabled (1/0).', []),
    'adguard_protection_disabled_duration_seconds': (
        GAUGE, 'Remaining time protection stays disabled.', []),
    'adguard_dhcp_enabled': (
        GAUGE, 'DHCP server enabled (1/0).', []),
    'adguard_dhcp_leases': (
        GAUGE, 'Number of active DHCP leases.', []),
    'adguard_version_info': (
        GAUGE, 'AdGuard Home version.', ['version']),

    # /control/querylog
    'adguard_query_reason_total': (
        COUNTER, 'Logged queries by filtering reason.', ['reason']),
    'adguard_query_type_total': (
        COUNTER, 'Logged queries by DNS record type.', ['type']),
    'adguard_query_upstream_total': (
        COUNTER, 'Logged queries by upstream server.', ['upstream']),
    'adguard_query_domain_total': (
        COUNTER, 'Logged queries by domain.', ['domain']),
    'adguard_query_client_reason_total': (
        COUNTER, 'Logged queries by client and filtering reason.',
        ['client', 'reason']),
    'adguard_query_elapsed_seconds': (
        HISTOGRAM, 'Query processing time by client.', ['client']),

    # exporter internals
    'adguard_exporter_fetch_errors_total': (
        COUNTER, 'Failed attempts to update a source.', ['source', 'kind']),
    'adguard_exporter_processing_seconds': (
        GAUGE, 'Time spent fetching and reconciling a source.', ['source']),
    'adguard_exporter_last_success_timestamp_seconds': (
        GAUGE, 'Unix time of the last successful update of a source.',
        ['source']),
}


class MetricsRegistry(object):
    """Named, labelled series backed by a private prometheus registry.

    Every mutation and every export runs under one re-entrant lock, so a
    ``with registry.batch():`` block (reset a family, then repopulate it) is
    never observed half-done by a scrape.
    """

    def __init__(self, definitions=None):
        self._lock = threading.RLock()
        self._registry = CollectorRegistry(auto_describe=True)
        self._metrics = {}
        self._kinds = {}
        self._labels = {}

        for name, (kind, documentation, labels) in (definitions or METRICS).items():
            self._metrics[name] = self._create(name, kind, documentation, labels)
            self._kinds[name] = kind
            self._labels[name] = tuple(labels)

    def _create(self, name, kind, documentation, labels):
        if kind == GAUGE:
            return Gauge(name, documentation, labels, registry=self._registry)
        if kind == COUNTER:
            return Counter(name, documentation, labels, registry=self._registry)
        if kind == HISTOGRAM:
            return Histogram(name, documentation, labels,
                             registry=self._registry, buckets=ELAPSED_BUCKETS)
        raise ValueError('Unknown metric kind "%s" for %s' % (kind, name))

    def _series(self, name, kind, labels):
        if self._kinds.get(name) != kind:
            raise KeyError('%s is not a registered %s' % (name, kind))
        metric = self._metrics[name]
        if labels:
            return metric.labels(**labels)
        return metric

    @contextlib.contextmanager
    def batch(self):
        with self._lock:
            yield self

    def set_gauge(self, name, labels, value):
        with self._lock:
            self._series(name, GAUGE, labels).set(value)

    def inc_counter(self, name, labels, delta=1):
        if delta < 0:
            raise ValueError('Counters can only be incremented, got %r' % delta)
        with self._lock:
            self._series(name, COUNTER, labels).inc(delta)

    def observe(self, name, labels, value):
        with self._lock:
            self._series(name, HISTOGRAM, labels).observe(value)

    def reset_family(self, name):
        """Drop every label combination of a labelled family."""
        if name not in self._metrics:
            raise KeyError(name)
        with self._lock:
            if self._labels[name]:
                self._metrics[name].clear()

    def collect(self):
        with self._lock:
            families = list(self._registry.collect())
        for family in families:
            yield family

    def export(self):
        return generate_latest(self)

    def get_value(self, sample_name, labels=None):
        """Value of one exported sample, or None when it is not exposed."""
        with self._lock:
            return self._registry.get_sample_value(sample_name, labels or {})

    def label_names(self, name):
        return self._labels[name]

    def family_labels(self, name):
        """Label sets currently exposed under sample name ``name``."""
        with self._lock:
            families = list(self._registry.collect())
        return [sample.labels for family in families
                for sample in family.samples if sample.name == name]
