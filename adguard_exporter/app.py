# -*- encoding: utf-8 -*-

import collections
import functools
import logging
import os
import sys
import time

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from flask import Flask, Response
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from . import querylogexporter
from . import statsexporter
from . import statusexporter
from .client import DEFAULT_TIMEOUT, AdGuardClient
from .exceptions import FetchError
from .registry import MetricsRegistry
from .schema import DEFAULT, get_schema

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9617
DEFAULT_INTERVAL = 15

Settings = collections.namedtuple('Settings', [
    'host', 'username', 'password', 'port', 'interval', 'timeout',
    'schema', 'querylog_limit', 'querylog_dedup', 'log_level',
])


def _positive_int(environ, key, default):
    raw = environ.get(key)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning('Invalid value "%s" for %s, using %s', raw, key, default)
        return default
    if value < 1:
        logger.warning('Invalid value "%s" for %s, using %s', raw, key, default)
        return default
    return value


def load_settings(environ=None):
    environ = os.environ if environ is None else environ
    return Settings(
        host=environ.get('ADGUARD_HOST', 'http://localhost:3000'),
        username=environ.get('ADGUARD_USER', ''),
        password=environ.get('ADGUARD_PASS', ''),
        port=_positive_int(environ, 'EXPORTER_PORT', DEFAULT_PORT),
        interval=_positive_int(environ, 'SCRAPE_INTERVAL', DEFAULT_INTERVAL),
        timeout=_positive_int(environ, 'ADGUARD_TIMEOUT', DEFAULT_TIMEOUT),
        schema=environ.get('ADGUARD_SCHEMA', DEFAULT.name),
        querylog_limit=_positive_int(environ, 'QUERYLOG_LIMIT', None),
        querylog_dedup=environ.get('QUERYLOG_DEDUP', 'true').lower()
        not in ('0', 'false', 'no', 'off'),
        log_level=environ.get('LOG_LEVEL', 'INFO').upper(),
    )


def configure_logging(level):
    numeric = logging.getLevelName(str(level).upper())
    logging.basicConfig()
    # basicConfig leaves the level alone when handlers are already attached.
    if isinstance(numeric, int):
        logging.getLogger().setLevel(numeric)
    else:
        logging.getLogger().setLevel(logging.INFO)
        logger.warning('Unknown log level "%s", using INFO', level)


def metric_processing_time(name):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            now = time.time()
            try:
                return func(self, *args, **kwargs)
            finally:
                elapsed = time.time() - now
                logger.debug('Processing %s took %s seconds', name, elapsed)
                self.registry.set_gauge(
                    'adguard_exporter_processing_seconds',
                    {'source': name}, elapsed)
        return wrapper
    return decorator


class Collector(object):
    """Fetches the three sources and reconciles them into the registry.

    Sources are independent: a failing one is counted, logged and skipped,
    keeping whatever it published last.
    """

    def __init__(self, client, registry, schema=DEFAULT,
                 querylog_limit=None, querylog_dedup=True):
        self.client = client
        self.registry = registry
        self.schema = schema
        self.querylog_limit = querylog_limit
        self.querylog_dedup = querylog_dedup
        self.querylog_since = None

    def _reconcile(self, source, fetch, process):
        try:
            result = process(fetch())
        except FetchError as e:
            logger.error('Failed to update %s metrics: %s', source, e)
            self.registry.inc_counter(
                'adguard_exporter_fetch_errors_total',
                {'source': source, 'kind': e.kind})
            return False, None

        self.registry.set_gauge(
            'adguard_exporter_last_success_timestamp_seconds',
            {'source': source}, time.time())
        return True, result

    @metric_processing_time('stats')
    def update_stats(self):
        logger.info('Fetching stats metrics data')
        ok, _ = self._reconcile(
            'stats', self.client.get_stats,
            lambda raw: statsexporter.process(raw, self.registry, self.schema))
        return ok

    @metric_processing_time('status')
    def update_status(self):
        logger.info('Fetching status metrics data')
        ok, _ = self._reconcile(
            'status', self.client.get_status,
            lambda raw: statusexporter.process(raw, self.registry, self.schema))
        return ok

    @metric_processing_time('querylog')
    def update_querylog(self):
        logger.info('Fetching query log data')
        since = self.querylog_since if self.querylog_dedup else None
        ok, newest = self._reconcile(
            'querylog',
            lambda: self.client.get_querylog(limit=self.querylog_limit),
            lambda raw: querylogexporter.process(
                raw, self.registry, self.schema, since=since))
        if ok:
            self.querylog_since = newest
        return ok

    def update_latest(self):
        start = time.time()
        results = [self.update_stats(), self.update_status(),
                   self.update_querylog()]
        logger.info('Metrics updated in %.3f seconds (%d/%d sources)',
                    time.time() - start, sum(results), len(results))
        return all(results)


INDEX = """<h3>Welcome to the AdGuard Home prometheus exporter!</h3>
The following endpoints are available:<br/>
<a href="/metrics">/metrics</a> - Prometheus metrics<br/>
<a href="/status">/status</a> - A simple status endpoint returning "OK"<br/>"""


def create_app(registry):
    app = Flask(__name__)

    @app.route("/")
    def home():
        return INDEX

    @app.route("/status")
    def status():
        return "OK"

    @app.route("/metrics")
    def metrics():
        return Response(registry.export(), content_type=CONTENT_TYPE_LATEST)

    return app


def run():
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)

    registry = MetricsRegistry()
    client = AdGuardClient(settings.host, settings.username,
                           settings.password, timeout=settings.timeout)
    collector = Collector(client, registry,
                          schema=get_schema(settings.schema),
                          querylog_limit=settings.querylog_limit,
                          querylog_dedup=settings.querylog_dedup)

    logger.info('Starting scrape service for %s as user "%s", every %ds',
                settings.host, settings.username, settings.interval)

    collector.update_latest()

    scheduler = BackgroundScheduler({'apscheduler.timezone': 'UTC'})
    scheduler.add_job(collector.update_latest, 'interval',
                      seconds=settings.interval,
                      max_instances=1, coalesce=True)
    scheduler.start()

    app = create_app(registry)
    try:
        app.run(host="0.0.0.0", port=settings.port, threaded=True)
    except OSError as e:
        logger.error('Unable to listen on port %d: %s', settings.port, e)
        sys.exit(1)
    finally:
        scheduler.shutdown(wait=False)
