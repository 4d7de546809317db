#!/usr/bin/env python
# -*- encoding: utf-8 -*-

import json
import logging

from . import schema as schemas

logger = logging.getLogger(__name__)

FLAGS = {
    'running': 'adguard_running',
    'protection_enabled': 'adguard_protection_enabled',
    'protection_disabled_duration':
        'adguard_protection_disabled_duration_seconds',
    'dhcp_enabled': 'adguard_dhcp_enabled',
    'dhcp_leases': 'adguard_dhcp_leases',
}


def process(raw_data, registry, schema=schemas.DEFAULT):
    """Reconcile a /control/status payload into ``registry``."""
    values = dict((field, schema.value(raw_data, field)) for field in FLAGS)
    version = schema.value(raw_data, 'version', default=None)

    with registry.batch():
        for field, value in values.items():
            registry.set_gauge(FLAGS[field], None, value)

        registry.reset_family('adguard_version_info')
        if version:
            registry.set_gauge('adguard_version_info', {'version': version}, 1)

    logger.debug('Reconciled status: version=%s running=%s protection=%s',
                 version, values['running'], values['protection_enabled'])


if __name__ == "__main__":
    import sys

    from .registry import MetricsRegistry

    registry = MetricsRegistry()
    with open(sys.argv[1]) as f:
        process(json.load(f), registry)
    print(registry.export().decode())
