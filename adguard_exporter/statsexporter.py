#!/usr/bin/env python
# -*- encoding: utf-8 -*-

import json
import logging

from . import schema as schemas

logger = logging.getLogger(__name__)

# Schema field -> gauge set unconditionally.
SCALARS = {
    'dns_queries': 'adguard_dns_queries',
    'blocked_filtering': 'adguard_blocked_filtering',
    'replaced_parental': 'adguard_replaced_parental',
    'replaced_safebrowsing': 'adguard_replaced_safebrowsing',
    'replaced_safesearch': 'adguard_replaced_safesearch',
    'avg_processing_time': 'adguard_avg_processing_time_seconds',
}

# Schema field -> (labelled gauge family, label name).
BREAKDOWNS = {
    'top_queried_domains': ('adguard_top_queried_domain', 'domain'),
    'top_blocked_domains': ('adguard_top_blocked_domain', 'domain'),
    'top_clients': ('adguard_top_client', 'client'),
    'top_upstreams': ('adguard_top_upstream', 'upstream'),
    'top_upstreams_avg_time': (
        'adguard_upstream_avg_response_time_seconds', 'upstream'),
}


def process(raw_data, registry, schema=schemas.DEFAULT):
    """Reconcile a /control/stats payload into ``registry``.

    The whole payload is decoded before anything is written, so a malformed
    payload raises DecodeError and leaves the previous series in place.
    """
    scalars = dict(
        (field, schema.value(raw_data, field)) for field in SCALARS)
    breakdowns = dict(
        (field, schema.breakdown(raw_data, field)) for field in BREAKDOWNS)

    with registry.batch():
        for field, value in scalars.items():
            registry.set_gauge(SCALARS[field], None, value)

        for field, pairs in breakdowns.items():
            name, label = BREAKDOWNS[field]
            registry.reset_family(name)
            for key, value in pairs:
                registry.set_gauge(name, {label: key}, value)

    logger.debug('Reconciled stats: %s queries, %d top clients',
                 scalars['dns_queries'], len(breakdowns['top_clients']))


if __name__ == "__main__":
    import sys

    from .registry import MetricsRegistry

    registry = MetricsRegistry()
    with open(sys.argv[1]) as f:
        process(json.load(f), registry)
    print(registry.export().decode())
