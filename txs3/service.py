# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

from txs3.util import default_port, parse


__all__ = ["AWSServiceEndpoint", "S3_ENDPOINT"]


S3_ENDPOINT = "https://s3.amazonaws.com/"


class AWSServiceEndpoint(object):
    """
    The location of the storage service.

    @param uri: The URL for the service.  Defaults to L{S3_ENDPOINT}.
    """

    def __init__(self, uri=S3_ENDPOINT):
        self.host = ""
        self.port = None
        self.path = "/"
        self._parse_uri(uri)
        if not self.scheme:
            self.scheme = "http"

    def _parse_uri(self, uri):
        scheme, host, port, path = parse(uri, defaultPort=False)
        self.scheme = scheme
        self.host = host
        self.port = port
        self.path = path

    def get_host(self):
        return self.host

    def get_port(self):
        """
        Return the explicit port, or the default port for the scheme.
        """
        if self.port is None:
            return default_port(self.scheme)
        return self.port

    def get_canonical_host(self):
        """
        Return the I{Host} header value for this endpoint, with an IPv6
        address in brackets.
        """
        host = self.host.lower()
        if ":" in host:
            host = "[%s]" % (host,)
        if self.port is not None:
            host = "%s:%s" % (host, self.port)
        return host

    def get_uri(self, path="/"):
        """
        Get a URL for C{path} on the service.

        @param path: An already encoded absolute path, optionally with a
            query string.
        """
        return "%s://%s%s" % (self.scheme, self.get_canonical_host(), path)
