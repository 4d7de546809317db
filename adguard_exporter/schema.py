# -*- encoding: utf-8 -*-
"""Field mappings for the AdGuard Home control API.

Field names differ between appliance releases (``num_dns_queries`` versus
``dns_queries``, a flat ``dhcp_available`` versus a nested ``dhcp`` object,
``question.name`` versus ``question.host``).  Rather than hard-coding one
layout, every logical field is described by an ordered list of dotted JSON
paths, the first one present in the payload wins, and a unit that says how
the raw value is normalised.
"""

import collections
import logging

from .exceptions import DecodeError

logger = logging.getLogger(__name__)

# Units understood by Schema.value().
COUNT = 'count'
SECONDS = 'seconds'
MILLISECONDS = 'ms'
BOOL = 'bool'
LENGTH = 'len'
STRING = 'str'

Field = collections.namedtuple('Field', ['paths', 'unit'])

_MISSING = object()


def _walk(payload, path):
    node = payload
    for key in path.split('.'):
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def _to_float(field, raw):
    # JSON booleans are ints in Python; they are valid counts only for BOOL.
    if isinstance(raw, bool):
        raise DecodeError('Field "%s" is a boolean, expected a number' % field)
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise DecodeError('Field "%s" is not numeric: %r' % (field, raw))


def normalise(field, raw, unit):
    """Convert one raw JSON value to the exported representation."""
    if unit == STRING:
        if raw is None:
            return ''
        if isinstance(raw, (dict, list)):
            raise DecodeError('Field "%s" is not a scalar: %r' % (field, raw))
        return str(raw)

    if unit == BOOL:
        if isinstance(raw, bool):
            return 1.0 if raw else 0.0
        if isinstance(raw, (int, float)):
            return 1.0 if raw else 0.0
        raise DecodeError('Field "%s" is not a boolean: %r' % (field, raw))

    if unit == LENGTH:
        if raw is None:
            return 0.0
        if not isinstance(raw, (list, dict)):
            raise DecodeError('Field "%s" is not a collection: %r' % (field, raw))
        return float(len(raw))

    value = _to_float(field, raw)
    if unit == MILLISECONDS:
        return value / 1000.0
    return value


class Schema(object):
    def __init__(self, name, fields):
        self.name = name
        self.fields = fields

    def __repr__(self):
        return 'Schema(%r)' % self.name

    def lookup(self, payload, field, default=None):
        """Return the raw value of ``field``, or ``default`` if no path matches."""
        for path in self.fields[field].paths:
            raw = _walk(payload, path)
            if raw is not _MISSING:
                return raw
        return default

    def value(self, payload, field, default=0.0):
        """Return the normalised value of ``field``.

        Missing fields and explicit nulls yield ``default`` untouched.
        """
        raw = self.lookup(payload, field)
        if raw is None:
            return default
        return normalise(field, raw, self.fields[field].unit)

    def breakdown(self, payload, field):
        """Flatten a top-N list of single entry mappings into (key, value) pairs.

        ``[{"a.com": 5}, {"b.com": 3}]`` becomes ``[("a.com", 5.0), ("b.com", 3.0)]``.
        """
        raw = self.lookup(payload, field)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise DecodeError('Field "%s" is not a list: %r' % (field, raw))

        unit = self.fields[field].unit
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict):
                raise DecodeError(
                    'Field "%s" contains a non-mapping entry: %r' % (field, entry))
            for key, count in entry.items():
                pairs.append((str(key), normalise(field, count, unit)))
        return pairs


DEFAULT = Schema('default', {
    # /control/stats
    'dns_queries': Field(['num_dns_queries', 'dns_queries'], COUNT),
    'blocked_filtering': Field(
        ['num_blocked_filtering', 'blocked_filtering'], COUNT),
    'replaced_parental': Field(
        ['num_replaced_parental', 'replaced_parental'], COUNT),
    'replaced_safebrowsing': Field(
        ['num_replaced_safebrowsing', 'replaced_safebrowsing'], COUNT),
    'replaced_safesearch': Field(
        ['num_replaced_safesearch', 'replaced_safesearch'], COUNT),
    'avg_processing_time': Field(['avg_processing_time'], MILLISECONDS),
    'top_queried_domains': Field(['top_queried_domains'], COUNT),
    'top_blocked_domains': Field(['top_blocked_domains'], COUNT),
    'top_clients': Field(['top_clients'], COUNT),
    'top_upstreams': Field(
        ['top_upstreams_responses', 'top_upstreams'], COUNT),
    'top_upstreams_avg_time': Field(
        ['top_upstreams_avg_time', 'top_upstream_avg_time'], MILLISECONDS),

    # /control/status
    'running': Field(['running'], BOOL),
    'protection_enabled': Field(['protection_enabled'], BOOL),
    'protection_disabled_duration': Field(
        ['protection_disabled_duration'], MILLISECONDS),
    'dhcp_enabled': Field(['dhcp.enabled', 'dhcp_available'], BOOL),
    'dhcp_leases': Field(['dhcp.leases', 'dhcp_leases'], LENGTH),
    'version': Field(['version'], STRING),

    # /control/querylog
    'entries': Field(['data'], LENGTH),
    'time': Field(['time'], STRING),
    'question_name': Field(['question.name', 'question.host'], STRING),
    'question_type': Field(['question.type'], STRING),
    'client': Field(['client'], STRING),
    'reason': Field(['reason'], STRING),
    'upstream': Field(['upstream'], STRING),
    'elapsed': Field(['elapsedMs', 'elapsed_ms'], MILLISECONDS),
})

STRICT = Schema('strict', {
    'dns_queries': Field(['num_dns_queries'], COUNT),
    'blocked_filtering': Field(['num_blocked_filtering'], COUNT),
    'replaced_parental': Field(['num_replaced_parental'], COUNT),
    'replaced_safebrowsing': Field(['num_replaced_safebrowsing'], COUNT),
    'replaced_safesearch': Field(['num_replaced_safesearch'], COUNT),
    'avg_processing_time': Field(['avg_processing_time'], MILLISECONDS),
    'top_queried_domains': Field(['top_queried_domains'], COUNT),
    'top_blocked_domains': Field(['top_blocked_domains'], COUNT),
    'top_clients': Field(['top_clients'], COUNT),
    'top_upstreams': Field(['top_upstreams_responses'], COUNT),
    'top_upstreams_avg_time': Field(['top_upstreams_avg_time'], MILLISECONDS),

    'running': Field(['running'], BOOL),
    'protection_enabled': Field(['protection_enabled'], BOOL),
    'protection_disabled_duration': Field(
        ['protection_disabled_duration'], MILLISECONDS),
    'dhcp_enabled': Field(['dhcp_available'], BOOL),
    'dhcp_leases': Field([], LENGTH),
    'version': Field(['version'], STRING),

    'entries': Field(['data'], LENGTH),
    'time': Field(['time'], STRING),
    'question_name': Field(['question.name'], STRING),
    'question_type': Field(['question.type'], STRING),
    'client': Field(['client'], STRING),
    'reason': Field(['reason'], STRING),
    'upstream': Field(['upstream'], STRING),
    'elapsed': Field(['elapsedMs'], MILLISECONDS),
})

SCHEMAS = {schema.name: schema for schema in (DEFAULT, STRICT)}


def get_schema(name):
    if not name:
        return DEFAULT
    schema = SCHEMAS.get(name.lower())
    if schema is None:
        logger.warning('Unknown schema "%s", falling back to "%s"',
                       name, DEFAULT.name)
        return DEFAULT
    return schema
