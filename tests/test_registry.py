import threading

import pytest
from prometheus_client import parser

from adguard_exporter.registry import ELAPSED_BUCKETS, MetricsRegistry

from .conftest import labelled


def test_set_gauge_last_write_wins(registry):
    registry.set_gauge('adguard_dns_queries', None, 10)
    registry.set_gauge('adguard_dns_queries', None, 4)
    assert registry.get_value('adguard_dns_queries') == 4


def test_counter_accumulates(registry):
    labels = {'reason': 'FilteredBlackList'}
    registry.inc_counter('adguard_query_reason_total', labels)
    registry.inc_counter('adguard_query_reason_total', labels, 2)
    assert registry.get_value('adguard_query_reason_total', labels) == 3


def test_counter_rejects_negative_delta(registry):
    with pytest.raises(ValueError):
        registry.inc_counter('adguard_query_reason_total', {'reason': 'x'}, -1)


def test_wrong_kind_or_unknown_name(registry):
    with pytest.raises(KeyError):
        registry.set_gauge('adguard_query_reason_total', {'reason': 'x'}, 1)
    with pytest.raises(KeyError):
        registry.inc_counter('adguard_nope_total', None)
    with pytest.raises(KeyError):
        registry.reset_family('adguard_nope')


def test_reset_family_drops_all_labels(registry):
    registry.set_gauge('adguard_top_client', {'client': 'a'}, 1)
    registry.set_gauge('adguard_top_client', {'client': 'b'}, 2)
    registry.reset_family('adguard_top_client')
    assert registry.family_labels('adguard_top_client') == []


def test_reset_family_on_unlabelled_gauge_is_harmless(registry):
    registry.set_gauge('adguard_running', None, 1)
    registry.reset_family('adguard_running')
    assert registry.get_value('adguard_running') == 1


def test_observe_uses_elapsed_buckets(registry):
    registry.observe('adguard_query_elapsed_seconds', {'client': 'c'}, 0.004)
    assert ELAPSED_BUCKETS[0] == 0.001
    assert ELAPSED_BUCKETS[-1] == 0.046
    assert registry.get_value(
        'adguard_query_elapsed_seconds_bucket', {'client': 'c', 'le': '0.001'}) == 0
    assert registry.get_value(
        'adguard_query_elapsed_seconds_bucket', {'client': 'c', 'le': '0.006'}) == 1
    assert registry.get_value(
        'adguard_query_elapsed_seconds_count', {'client': 'c'}) == 1


def test_export_is_parseable_exposition(registry):
    registry.set_gauge('adguard_top_queried_domain', {'domain': 'example.org'}, 5)
    text = registry.export().decode('UTF-8')

    families = dict((f.name, f) for f in parser.text_string_to_metric_families(text))
    samples = families['adguard_top_queried_domain'].samples
    assert [(s.labels, s.value) for s in samples] == [({'domain': 'example.org'}, 5.0)]
    assert families['adguard_top_queried_domain'].type == 'gauge'


def test_export_never_sees_a_half_reset_family(registry):
    for i in range(20):
        registry.set_gauge('adguard_top_client', {'client': str(i)}, i)

    observed = []
    stop = threading.Event()

    def scrape():
        while not stop.is_set():
            observed.append(len(labelled(registry, 'adguard_top_client', 'client')))

    reader = threading.Thread(target=scrape)
    reader.start()
    try:
        for _ in range(200):
            with registry.batch():
                registry.reset_family('adguard_top_client')
                for i in range(20):
                    registry.set_gauge('adguard_top_client', {'client': str(i)}, i)
    finally:
        stop.set()
        reader.join()

    assert observed
    assert set(observed) == {20}


def test_custom_definitions():
    registry = MetricsRegistry({'x_total': ('counter', 'X.', [])})
    registry.inc_counter('x_total', None)
    assert registry.get_value('x_total') == 1


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        MetricsRegistry({'x': ('summary', 'X.', [])})


def test_label_names_come_from_definitions(registry):
    assert registry.label_names('adguard_query_client_reason_total') == ('client', 'reason')
    assert registry.label_names('adguard_running') == ()


def test_reset_family_with_custom_definitions():
    registry = MetricsRegistry({
        'g': ('gauge', 'G.', ['k']),
        'u': ('gauge', 'U.', []),
    })
    registry.set_gauge('g', {'k': 'a'}, 1)
    registry.set_gauge('u', None, 3)
    registry.reset_family('g')
    registry.reset_family('u')
    assert registry.family_labels('g') == []
    assert registry.get_value('u') == 3
