# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

"""
Tests for L{txs3.client.base}.
"""

import os

from zope.interface import implementer

import attr

from pyrsistent import pmap

from twisted.internet.defer import Deferred
from twisted.internet.error import ConnectionLost, ConnectionRefusedError
from twisted.internet.testing import MemoryReactorClock, StringTransport
from twisted.python.failure import Failure
from twisted.web.client import Agent, ProxyAgent, ResponseDone, ResponseFailed
from twisted.web.http import PotentialDataLoss
from twisted.web.http_headers import Headers
from twisted.web.iweb import IAgent, UNKNOWN_LENGTH

from txs3.client import base
from txs3.client.base import (
    BaseClient, RequestDetails, StreamingBodyReceiver, StreamingError,
    get_agent,
)
from txs3.credentials import AWSCredentials
from txs3.exception import UnsupportedMethodError
from txs3.service import AWSServiceEndpoint
from txs3.testing.agent import MemoryResponse
from txs3.testing.base import TXS3TestCase


class BaseClientTestCase(TXS3TestCase):

    def test_creation(self):
        creds = AWSCredentials("foo", "bar")
        endpoint = AWSServiceEndpoint("http://localhost/")
        client = BaseClient(creds, endpoint, base.query)
        self.assertIdentical(creds, client.creds)
        self.assertIdentical(endpoint, client.endpoint)
        self.assertIdentical(base.query, client.query_factory)

    def test_default_endpoint(self):
        client = BaseClient(AWSCredentials("foo", "bar"))
        self.assertEqual("s3.amazonaws.com", client.endpoint.get_host())

    def test_credentials_from_environment(self):
        os.environ["AWS_ACCESS_KEY_ID"] = "foo"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "bar"
        client = BaseClient()
        self.assertEqual(AWSCredentials("foo", "bar"), client.creds)


class StreamingBodyReceiverTestCase(TXS3TestCase):

    def test_body(self):
        """
        The chunks delivered are joined and passed to C{finished} once the
        response is done.
        """
        d = Deferred()
        receiver = StreamingBodyReceiver(d, 5)
        receiver.dataReceived(b"hel")
        receiver.dataReceived(b"lo")
        self.assertNoResult(d)
        receiver.connectionLost(Failure(ResponseDone("done")))
        self.assertEqual(b"hello", self.successResultOf(d))
        self.assertIs(None, receiver.finished)

    def test_unknown_length(self):
        d = Deferred()
        receiver = StreamingBodyReceiver(d)
        self.assertIs(UNKNOWN_LENGTH, receiver.content_length)
        receiver.dataReceived(b"hello")
        receiver.connectionLost(Failure(ResponseDone()))
        self.assertEqual(b"hello", self.successResultOf(d))

    def test_potential_data_loss(self):
        """
        A body without a length which ends with the connection is complete.
        """
        d = Deferred()
        receiver = StreamingBodyReceiver(d)
        receiver.dataReceived(b"hello")
        receiver.connectionLost(Failure(PotentialDataLoss()))
        self.assertEqual(b"hello", self.successResultOf(d))

    def test_too_much_data(self):
        """
        An overlong body aborts the transfer, and C{finished} fails with the
        reason the connection then ends with.
        """
        d = Deferred()
        transport = StringTransport()
        receiver = StreamingBodyReceiver(d, 2)
        receiver.makeConnection(transport)
        self.assertRaises(StreamingError, receiver.dataReceived, b"hello")
        self.assertTrue(transport.disconnecting)
        self.assertNoResult(d)
        receiver.connectionLost(
            Failure(ResponseFailed([Failure(ConnectionLost())])))
        self.failureResultOf(d, ResponseFailed)

    def test_interrupted(self):
        """
        A transfer which fails part way through fails C{finished} with the
        same reason.
        """
        d = Deferred()
        receiver = StreamingBodyReceiver(d, 10)
        receiver.dataReceived(b"hello")
        receiver.connectionLost(
            Failure(ResponseFailed([Failure(ConnectionLost())])))
        failure = self.failureResultOf(d, ResponseFailed)
        self.assertTrue(failure.value.reasons[0].check(ConnectionLost))
        self.assertIs(None, receiver.finished)

    def test_too_little_data(self):
        d = Deferred()
        receiver = StreamingBodyReceiver(d, 10)
        receiver.dataReceived(b"hello")
        receiver.connectionLost(Failure(ResponseDone()))
        failure = self.failureResultOf(d, StreamingError)
        self.assertIn("5 of 10", str(failure.value))


class RequestDetailsTestCase(TXS3TestCase):

    def test_defaults(self):
        details = RequestDetails(method="GET", path="/")
        self.assertEqual(pmap(), details.headers)
        self.assertEqual(pmap(), details.metadata)
        self.assertIs(None, details.body)

    def test_frozen_headers(self):
        headers = {"Content-Type": "text/plain"}
        details = RequestDetails(method="PUT", path="/b/k", headers=headers)
        headers["Content-Type"] = "image/png"
        self.assertEqual("text/plain", details.headers["Content-Type"])

    def test_method_bytes(self):
        self.assertEqual(
            "DELETE", RequestDetails(method=b"DELETE", path="/").method)

    def test_unsupported_method(self):
        self.assertRaises(
            UnsupportedMethodError, RequestDetails, method="POST", path="/")

    def test_path_must_be_text(self):
        self.assertRaises(TypeError, RequestDetails, method="GET", path=b"/")

    def test_body_must_be_bytes(self):
        self.assertRaises(
            TypeError, RequestDetails, method="PUT", path="/b/k", body="x")


@attr.s
@implementer(IAgent)
class StubAgent(object):
    _requests = attr.ib(init=False, default=attr.Factory(list))

    def request(self, method, url, headers, bodyProducer):
        result = Deferred()
        self._requests.append((method, url, headers, bodyProducer, result))
        return result


class QueryTestCase(TXS3TestCase):
    """
    Tests for L{query}.
    """
    def setUp(self):
        TXS3TestCase.setUp(self)
        self.credentials = AWSCredentials(
            "access key id", "secret access key",
        )
        self.agent = StubAgent()
        self.endpoint = AWSServiceEndpoint()

    def submit(self, credentials, **kw):
        details = RequestDetails(**kw)
        q = base.query(
            credentials=credentials, details=details, endpoint=self.endpoint)
        return q.submit(self.agent, now=lambda: 0)

    def test_submit(self):
        self.submit(
            self.credentials, method="PUT", path="/b/k",
            headers={"Content-Type": "text/plain"},
            metadata={"color": "red"}, body=b"data",
        )
        [(method, url, headers, producer, _)] = self.agent._requests
        self.assertEqual(b"PUT", method)
        self.assertEqual(b"https://s3.amazonaws.com/b/k", url)
        self.assertEqual(["red"], headers.getRawHeaders("x-amz-meta-color"))
        self.assertEqual(["text/plain"], headers.getRawHeaders("content-type"))
        self.assertEqual(
            ["Thu, 01 Jan 1970 00:00:00 GMT"], headers.getRawHeaders("date"))
        [authorization] = headers.getRawHeaders("authorization")
        self.assertTrue(authorization.startswith("AWS access key id:"))
        self.assertEqual(4, producer.length)

    def test_anonymous(self):
        """
        Without credentials the request is sent unsigned.
        """
        self.submit(None, method="GET", path="/b/k")
        [(_, _, headers, _, _)] = self.agent._requests
        self.assertFalse(headers.hasHeader("authorization"))
        self.assertFalse(headers.hasHeader("date"))

    def test_response_body(self):
        d = self.submit(self.credentials, method="GET", path="/b/k")
        [(_, _, _, _, result)] = self.agent._requests
        response = MemoryResponse(404, Headers(), b"not here")
        result.callback(response)
        self.assertEqual((response, b"not here"), self.successResultOf(d))

    def test_no_content(self):
        d = self.submit(self.credentials, method="DELETE", path="/b/k")
        [(_, _, _, _, result)] = self.agent._requests
        response = MemoryResponse(204, Headers(), b"ignored")
        result.callback(response)
        self.assertEqual((response, b""), self.successResultOf(d))

    def test_connection_failure(self):
        d = self.submit(self.credentials, method="GET", path="/b/k")
        [(_, _, _, _, result)] = self.agent._requests
        result.errback(ConnectionRefusedError())
        self.failureResultOf(d, ConnectionRefusedError)


class GetAgentTestCase(TXS3TestCase):

    def test_agent(self):
        agent = get_agent("https", MemoryReactorClock())
        self.assertIsInstance(agent, Agent)

    def test_proxy(self):
        os.environ["https_proxy"] = "http://proxy.example.invalid:3128/"
        agent = get_agent("https", MemoryReactorClock())
        self.assertIsInstance(agent, ProxyAgent)

    def test_proxy_per_scheme(self):
        os.environ["http_proxy"] = "http://proxy.example.invalid:3128/"
        agent = get_agent("https", MemoryReactorClock())
        self.assertIsInstance(agent, Agent)
