#!/usr/bin/env python
# -*- encoding: utf-8 -*-

import json
import logging

import delorean

from . import schema as schemas
from .exceptions import DecodeError

logger = logging.getLogger(__name__)


def entry_time(entry, schema=schemas.DEFAULT):
    """Epoch seconds of a query log entry, or None when it has no usable time."""
    occurred_at = schema.value(entry, 'time', default=None)
    if not occurred_at:
        return None
    try:
        return delorean.parse(occurred_at).epoch
    except (ValueError, OverflowError):
        logger.debug('Unparseable query log time: %r', occurred_at)
        return None


def process(raw_data, registry, schema=schemas.DEFAULT, since=None):
    """Count the events of one /control/querylog page into ``registry``.

    Entries stamped at or before ``since`` (epoch seconds) were counted by an
    earlier poll and are skipped.  Returns the newest entry time seen, to be
    passed back as ``since`` on the next call.
    """
    entries = schema.lookup(raw_data, 'entries')
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise DecodeError('Query log "data" is not a list: %r' % (entries,))

    events = []
    untimed = 0
    newest = since
    for entry in entries:
        if not isinstance(entry, dict):
            raise DecodeError('Query log entry is not an object: %r' % (entry,))

        occurred_at = entry_time(entry, schema)
        if occurred_at is not None:
            if newest is None or occurred_at > newest:
                newest = occurred_at
            if since is not None and occurred_at <= since:
                continue
        else:
            untimed += 1

        events.append({
            'reason': schema.value(entry, 'reason', default=''),
            'type': schema.value(entry, 'question_type', default=''),
            'domain': schema.value(entry, 'question_name', default=''),
            'client': schema.value(entry, 'client', default=''),
            'upstream': schema.value(entry, 'upstream', default=''),
            'elapsed': schema.value(entry, 'elapsed', default=0.0),
        })

    with registry.batch():
        for e in events:
            registry.inc_counter(
                'adguard_query_reason_total', {'reason': e['reason']})
            registry.inc_counter(
                'adguard_query_type_total', {'type': e['type']})
            registry.inc_counter(
                'adguard_query_upstream_total', {'upstream': e['upstream']})
            registry.inc_counter(
                'adguard_query_domain_total', {'domain': e['domain']})
            registry.inc_counter(
                'adguard_query_client_reason_total',
                {'client': e['client'], 'reason': e['reason']})
            registry.observe(
                'adguard_query_elapsed_seconds', {'client': e['client']},
                e['elapsed'])

    logger.debug('Processed %d query log entries (%d new, %d untimed)',
                 len(entries), len(events) - untimed, untimed)
    return newest


if __name__ == "__main__":
    import sys

    from .registry import MetricsRegistry

    registry = MetricsRegistry()
    with open(sys.argv[1]) as f:
        process(json.load(f), registry)
    print(registry.export().decode())
