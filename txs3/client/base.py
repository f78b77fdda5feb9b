# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

import os
from io import BytesIO
from urllib.parse import urlparse

import attr
from attr import validators

from pyrsistent import PMap, freeze, pmap

from twisted.logger import Logger
from twisted.internet.endpoints import TCP4ClientEndpoint
from twisted.internet.protocol import Protocol
from twisted.internet.defer import Deferred, succeed
from twisted.python.reflect import namedAny
from twisted.web.iweb import UNKNOWN_LENGTH
from twisted.web.client import (
    Agent, ProxyAgent, ResponseDone, FileBodyProducer,
)
from twisted.web.http import NO_CONTENT, PotentialDataLoss

from txs3.credentials import AWSCredentials
from txs3.service import AWSServiceEndpoint
from txs3.s3.auth import (
    add_auth_header, check_method, merge_meta, to_headers,
)


class BaseClient(object):
    """
    State shared by the storage clients.

    @param creds: The L{AWSCredentials} to sign with.  If C{None} they are
        looked up in the environment and the shared credentials file.
    @param endpoint: The L{AWSServiceEndpoint} of the service.  If C{None},
        the public S3 endpoint is used.
    @param query_factory: A callable like L{query} building the object
        which submits one request.
    """
    def __init__(self, creds=None, endpoint=None, query_factory=None):
        if creds is None:
            creds = AWSCredentials()
        if endpoint is None:
            endpoint = AWSServiceEndpoint()
        self.creds = creds
        self.endpoint = endpoint
        self.query_factory = query_factory


class StreamingError(Exception):
    """
    A response body was longer or shorter than its I{Content-Length}.
    """


class StreamingBodyReceiver(Protocol):
    """
    Collect a response body in memory.

    @ivar finished: A L{Deferred} which fires with the body as L{bytes}.  It
        fails with L{StreamingError} when the connection ends before the
        announced length arrived, or with the reason the transfer was
        interrupted.
    @ivar content_length: The announced length of the body, or
        L{UNKNOWN_LENGTH}.
    """
    def __init__(self, finished, content_length=UNKNOWN_LENGTH):
        self.finished = finished
        self.content_length = content_length
        self._chunks = []
        self._received = 0

    def _length_known(self):
        return self.content_length is not UNKNOWN_LENGTH

    def dataReceived(self, data):
        self._chunks.append(data)
        self._received += len(data)
        if self._length_known() and self._received > self.content_length:
            self.transport.loseConnection()
            raise StreamingError(
                "Received %d bytes, Content-Length is %d" % (
                    self._received, self.content_length))

    def connectionLost(self, reason):
        finished, self.finished = self.finished, None
        if not reason.check(ResponseDone, PotentialDataLoss):
            finished.errback(reason)
            return
        if self._length_known() and self._received != self.content_length:
            finished.errback(StreamingError(
                "Connection lost after %d of %d bytes" % (
                    self._received, self.content_length)))
            return
        body = b"".join(self._chunks)
        self._chunks = []
        finished.callback(body)


@attr.s(frozen=True)
class RequestDetails(object):
    """
    One storage request, before it is signed.

    @ivar method: C{"GET"}, C{"PUT"} or C{"DELETE"}.
    @type method: L{str}

    @ivar path: The escaped resource path, starting with C{/} and
        optionally carrying a sub-resource query such as C{?acl}.
    @type path: L{str}

    @ivar headers: Headers chosen by the caller, such as I{Content-Type}.
        I{Authorization} and I{Date} are added when the request is signed.
    @type headers: L{pmap}

    @ivar body: The request body, or C{None} for an empty one.
    @type body: L{bytes}

    @ivar metadata: User metadata to send as C{x-amz-meta-*} headers.
    @type metadata: L{pmap}
    """
    method = attr.ib(converter=check_method)
    path = attr.ib(validator=validators.instance_of(str))
    headers = attr.ib(
        default=pmap(),
        converter=freeze,
        validator=validators.instance_of(PMap),
    )
    body = attr.ib(
        default=None,
        validator=validators.optional(validators.instance_of(bytes)),
    )
    metadata = attr.ib(
        default=pmap(),
        converter=freeze,
        validator=validators.instance_of(PMap),
    )


def query(**kw):
    """
    Build the object which signs and submits one request.

    @param credentials: L{AWSCredentials} to sign with, or C{None} to send
        the request anonymously.
    @param details: The L{RequestDetails} to send.
    @param endpoint: The L{AWSServiceEndpoint} receiving the request.
    """
    return _Query(**kw)


@attr.s(frozen=True)
class _Query(object):
    """
    A signed-on-demand request bound to an endpoint.
    """
    _log = Logger()

    _credentials = attr.ib()
    _details = attr.ib(validator=validators.instance_of(RequestDetails))
    _endpoint = attr.ib(validator=validators.instance_of(AWSServiceEndpoint))

    def _get_headers(self, now):
        """
        Build the complete, signed request headers.
        """
        headers = merge_meta(self._details.headers, self._details.metadata)
        if self._credentials is None:
            return to_headers(headers)
        return add_auth_header(
            self._credentials,
            self._details.method,
            self._details.path,
            headers,
            now,
        )

    def submit(self, agent, now=None):
        """
        Send this request to the service.

        @param agent: The agent to use to issue the request.
        @type agent: L{IAgent} provider

        @param now: A function like L{time.time} giving the time to sign
            into the request, or C{None} for the current time.

        @return: A L{Deferred} that fires with a C{(response, body)} tuple
            whatever the response status, or fails if the request could
            not be made.
        """
        method = self._details.method
        url = self._endpoint.get_uri(self._details.path)
        headers = self._get_headers(None if now is None else now())

        self._log.info(
            "Submitting query: {method} {url}",
            method=method,
            url=url,
        )
        body = self._details.body
        if body is None:
            body = b""
        d = agent.request(
            method.encode("ascii"),
            url.encode("ascii"),
            headers,
            FileBodyProducer(BytesIO(body)),
        )
        d.addCallback(self._handle_response, method)
        return d

    def _handle_response(self, response, method):
        self._log.debug(
            "Received {code} for {method} query",
            code=response.code,
            method=method,
        )
        if response.code == NO_CONTENT:
            return succeed((response, b""))
        d = Deferred()
        response.deliverBody(StreamingBodyReceiver(d, response.length))
        d.addCallback(lambda body: (response, body))
        return d


def get_agent(scheme, reactor=None, pool=None):
    """
    Create an agent for talking to a service, going through the proxy named
    by C{http_proxy} or C{https_proxy} when one is set.

    @param scheme: C{"http"} or C{"https"}.
    @param reactor: The reactor to use, or C{None} for the global reactor.
    @param pool: An L{HTTPConnectionPool} for connection reuse, or C{None}
        for a new connection per request.
    """
    if reactor is None:
        reactor = namedAny("twisted.internet.reactor")
    proxy_endpoint = os.environ.get("%s_proxy" % (scheme,))
    if proxy_endpoint:
        proxy_url = urlparse(proxy_endpoint)
        endpoint = TCP4ClientEndpoint(
            reactor, proxy_url.hostname, proxy_url.port)
        return ProxyAgent(endpoint, reactor, pool=pool)
    return Agent(reactor, pool=pool)
