import pytest

from adguard_exporter import statusexporter
from adguard_exporter.exceptions import DecodeError

from .conftest import labelled


def test_nested_status(registry):
    statusexporter.process({
        'version': 'v0.107.43',
        'running': True,
        'protection_enabled': False,
        'protection_disabled_duration': 60000,
        'dhcp': {'enabled': True, 'leases': [{'ip': '10.0.0.9'}, {'ip': '10.0.0.10'}]},
    }, registry)

    assert registry.get_value('adguard_running') == 1
    assert registry.get_value('adguard_protection_enabled') == 0
    assert registry.get_value('adguard_protection_disabled_duration_seconds') == 60
    assert registry.get_value('adguard_dhcp_enabled') == 1
    assert registry.get_value('adguard_dhcp_leases') == 2
    assert labelled(registry, 'adguard_version_info', 'version') == {'v0.107.43': 1}


def test_flat_status(registry):
    statusexporter.process(
        {'running': False, 'protection_enabled': True, 'dhcp_available': True},
        registry)

    assert registry.get_value('adguard_running') == 0
    assert registry.get_value('adguard_protection_enabled') == 1
    assert registry.get_value('adguard_dhcp_enabled') == 1
    assert registry.get_value('adguard_dhcp_leases') == 0


def test_version_label_is_replaced(registry):
    statusexporter.process({'version': 'v0.107.0'}, registry)
    statusexporter.process({'version': 'v0.107.1'}, registry)
    assert labelled(registry, 'adguard_version_info', 'version') == {'v0.107.1': 1}


def test_missing_version_clears_version_info(registry):
    statusexporter.process({'version': 'v0.107.0'}, registry)
    statusexporter.process({}, registry)
    assert registry.family_labels('adguard_version_info') == []


def test_bad_flag_keeps_previous_values(registry):
    statusexporter.process({'running': True, 'version': 'v1'}, registry)
    with pytest.raises(DecodeError):
        statusexporter.process({'running': 'sure', 'version': 'v2'}, registry)
    assert registry.get_value('adguard_running') == 1
    assert labelled(registry, 'adguard_version_info', 'version') == {'v1': 1}
