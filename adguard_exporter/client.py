# -*- encoding: utf-8 -*-

import json
import logging

import requests

from .exceptions import AuthorizationError, DecodeError, TransportError

logger = logging.getLogger(__name__)

STATS_PATH = '/control/stats'
STATUS_PATH = '/control/status'
QUERYLOG_PATH = '/control/querylog'

DEFAULT_TIMEOUT = 10


class AdGuardClient(object):
    """Thin wrapper around the AdGuard Home control API.

    Every call is a single GET; failures are raised as FetchError subclasses
    and never retried here, the next collector cycle is the retry.
    """

    def __init__(self, base_url, username=None, password=None,
                 timeout=DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        if username or password:
            self.session.auth = (username or '', password or '')

    def fetch(self, path, params=None):
        url = '%s%s' % (self.base_url, path)
        logger.debug('GET %s', url)

        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError('Request failed: %s' % e, url)

        if not 200 <= r.status_code < 300:
            raise AuthorizationError(
                'Unexpected HTTP status %d' % r.status_code, url,
                status_code=r.status_code)

        try:
            data = json.loads(r.content.decode('UTF-8'))
        except ValueError as e:
            raise DecodeError('Malformed JSON body: %s' % e, url)

        if not isinstance(data, dict):
            raise DecodeError(
                'Expected a JSON object, got %s' % type(data).__name__, url)
        return data

    def get_stats(self):
        return self.fetch(STATS_PATH)

    def get_status(self):
        return self.fetch(STATUS_PATH)

    def get_querylog(self, limit=None):
        params = {'limit': limit} if limit else None
        return self.fetch(QUERYLOG_PATH, params=params)
