# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

"""
Client wrappers for S3 style object storage.

L{S3Client} performs operations and fires with wrapped responses.
L{QueryStringAuthGenerator} offers the same operations but returns URLs
carrying query string authentication instead, which can be handed to any
HTTP client (such as a web browser) until they expire.
"""

import calendar
import time
from datetime import datetime
from urllib.parse import quote, quote_plus

from twisted.logger import Logger

from txs3.client.base import BaseClient, RequestDetails, get_agent, query
from txs3.exception import InvalidExpiryStateError
from txs3.s3.auth import canonical_string, check_method, encode, merge_meta
from txs3.s3.response import (
    GetResponse, ListAllMyBucketsResponse, ListBucketResponse, Response,
)


def _to_bytes(data):
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def _object_path(bucket, key):
    return "%s/%s" % (bucket, quote(key, safe=""))


class _S3Operations(object):
    """
    The S3 operations, as paths relative to the service root.

    Subclasses implement C{_operation(method, path, headers, data, metadata,
    response_class)}.
    """

    def create_bucket(self, bucket, headers=None):
        return self._operation("PUT", bucket, headers)

    def list_bucket(self, bucket, options=None, headers=None):
        """
        List the objects in a bucket.

        @param options: A mapping of listing arguments, any of C{prefix},
            C{marker}, C{max-keys} and C{delimiter}.
        """
        path = bucket
        if options:
            path += "?" + "&".join(
                "%s=%s" % (name, quote_plus(str(value)))
                for (name, value) in options.items()
            )
        return self._operation(
            "GET", path, headers, response_class=ListBucketResponse)

    def delete_bucket(self, bucket, headers=None):
        return self._operation("DELETE", bucket, headers)

    def put(self, bucket, key, data=b"", metadata=None, headers=None):
        """
        Store C{data} under C{key}, replacing any existing object.

        @param metadata: A mapping used to build C{x-amz-meta-*} headers.
        """
        return self._operation(
            "PUT", _object_path(bucket, key), headers,
            data=data, metadata=metadata)

    def put_object(self, bucket, key, s3_object, headers=None):
        """
        Store an L{S3Object} under C{key}, replacing any existing object.
        """
        return self.put(
            bucket, key, s3_object.data, s3_object.metadata, headers)

    def get(self, bucket, key, headers=None):
        return self._operation(
            "GET", _object_path(bucket, key), headers,
            response_class=GetResponse)

    def delete(self, bucket, key, headers=None):
        return self._operation("DELETE", _object_path(bucket, key), headers)

    def get_acl(self, bucket, key="", headers=None):
        """
        Get the access control policy document of an object, or of the
        bucket itself if C{key} is empty.
        """
        return self._operation(
            "GET", _object_path(bucket, key) + "?acl", headers,
            response_class=GetResponse)

    def get_bucket_acl(self, bucket, headers=None):
        return self.get_acl(bucket, "", headers)

    def put_acl(self, bucket, key, acl_xml_doc, headers=None):
        """
        Set the access control policy of an object, or of the bucket itself
        if C{key} is empty.

        @param acl_xml_doc: The policy as an C{AccessControlPolicy} XML
            document.
        """
        return self._operation(
            "PUT", _object_path(bucket, key) + "?acl", headers,
            data=acl_xml_doc)

    def put_bucket_acl(self, bucket, acl_xml_doc, headers=None):
        return self.put_acl(bucket, "", acl_xml_doc, headers)

    def list_all_my_buckets(self, headers=None):
        return self._operation(
            "GET", "", headers, response_class=ListAllMyBucketsResponse)


class S3Client(_S3Operations, BaseClient):
    """
    A client for S3 signing each request with an I{Authorization} header.

    Every operation returns a L{Deferred} firing with a L{Response} (or one
    of its subclasses) whatever the status of the response.

    @param agent: The L{IAgent} provider used to issue requests.  If
        C{None}, one is created on first use, honouring the C{http_proxy} and
        C{https_proxy} environment variables.
    @param pool: An L{HTTPConnectionPool} given to the agent created when
        C{agent} is C{None}.
    @param reactor: The reactor given to the agent created when C{agent} is
        C{None}.
    @param now: A function like L{time.time}, used to date requests.
    """

    def __init__(self, creds=None, endpoint=None, query_factory=None,
                 agent=None, pool=None, reactor=None, now=None):
        if query_factory is None:
            query_factory = query
        super(S3Client, self).__init__(creds, endpoint, query_factory)
        self.agent = agent
        self.pool = pool
        self.reactor = reactor
        self.now = now

    def _get_agent(self):
        if self.agent is None:
            self.agent = get_agent(
                self.endpoint.scheme, self.reactor, self.pool)
        return self.agent

    def _details(self, method, path, headers, data, metadata):
        return RequestDetails(
            method=method,
            path="/" + path,
            headers=headers or {},
            body=_to_bytes(data),
            metadata=metadata or {},
        )

    def _operation(self, method, path, headers, data=None, metadata=None,
                   response_class=Response):
        details = self._details(method, path, headers, data, metadata)
        q = self.query_factory(
            credentials=self.creds, details=details, endpoint=self.endpoint)
        d = q.submit(self._get_agent(), self.now)
        d.addCallback(lambda result: response_class.from_response(*result))
        return d


def _to_timestamp(expires):
    if isinstance(expires, datetime):
        return calendar.timegm(expires.utctimetuple())
    return int(expires)


class QueryStringAuthGenerator(_S3Operations, BaseClient):
    """
    Generate URLs which perform S3 operations when requested, authenticated
    by a signature in their query string.

    The URLs expire either at a fixed time (L{expires}) or a number of
    seconds after they are generated (L{expires_in}).  Setting one clears
    the other.

    @param creds: The L{AWSCredentials} to sign with.
    @param endpoint: The L{AWSServiceEndpoint} the URLs point at.
    @param now: A function like L{time.time}, used to compute relative
        expiry.
    """
    _log = Logger()

    DEFAULT_EXPIRES_IN = 60

    def __init__(self, creds=None, endpoint=None, now=time.time):
        super(QueryStringAuthGenerator, self).__init__(creds, endpoint)
        self._now = now
        self._expires = None
        self._expires_in = self.DEFAULT_EXPIRES_IN

    @property
    def expires(self):
        """
        The fixed expiry, as Unix seconds or a naive UTC L{datetime}.
        """
        return self._expires

    @expires.setter
    def expires(self, value):
        self._expires = value
        self._expires_in = None

    @property
    def expires_in(self):
        """
        The number of seconds a URL stays valid after it is generated.
        """
        return self._expires_in

    @expires_in.setter
    def expires_in(self, value):
        self._expires_in = value
        self._expires = None

    def _get_expiry(self):
        if self._expires_in is not None:
            return int(self._now()) + self._expires_in
        elif self._expires is not None:
            return _to_timestamp(self._expires)
        raise InvalidExpiryStateError(
            "Neither expires nor expires_in is set")

    def generate_url(self, method, path, headers=None):
        """
        Generate a query string authenticated URL.

        @param path: The encoded path relative to the service root,
            optionally with a query string.
        @param headers: The headers the request will be made with.  Only
            those taking part in the signature matter.

        @raise InvalidExpiryStateError: If no expiry is configured.
        @raise UnsupportedMethodError: If C{method} is not supported.
        """
        method = check_method(method)
        expires = self._get_expiry()
        signature = encode(
            self.creds.secret_key,
            canonical_string(method, "/" + path, headers, expires),
            urlencode=True,
        )
        if "?" in path:
            arg_sep = "&"
        else:
            arg_sep = "?"
        self._log.debug(
            "Generated {method} URL for /{path} expiring at {expires}",
            method=method,
            path=path,
            expires=expires,
        )
        return "%s://%s:%d/%s%sSignature=%s&Expires=%d&AWSAccessKeyId=%s" % (
            self.endpoint.scheme, self.endpoint.get_host(),
            self.endpoint.get_port(), path, arg_sep, signature, expires,
            self.creds.access_key,
        )

    def _operation(self, method, path, headers, data=None, metadata=None,
                   response_class=None):
        return self.generate_url(method, path, merge_meta(headers, metadata))
