# -*- encoding: utf-8 -*-


class FetchError(Exception):
    """Base class for a source that could not be turned into metrics.

    ``kind`` ends up as the ``kind`` label of the fetch error counter.
    """
    kind = 'fetch'

    def __init__(self, message, url=None):
        super(FetchError, self).__init__(message)
        self.message = message
        self.url = url

    def __str__(self):
        if self.url:
            return '%s (%s)' % (self.message, self.url)
        return self.message


class TransportError(FetchError):
    kind = 'transport'


class AuthorizationError(FetchError):
    """The appliance answered, but not with a 2xx status."""
    kind = 'authorization'

    def __init__(self, message, url=None, status_code=None):
        super(AuthorizationError, self).__init__(message, url)
        self.status_code = status_code


class DecodeError(FetchError):
    """Malformed body, or a JSON document of an unexpected shape."""
    kind = 'decode'
