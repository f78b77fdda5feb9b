# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

"""
Wrappers pairing the raw status and headers of a service response with its
decoded payload.
"""

import attr
from attr import validators

from lxml.etree import XMLSyntaxError

from twisted.logger import Logger
from twisted.web.http_headers import Headers

from txs3.exception import AWSResponseParseError
from txs3.s3.auth import METADATA_PREFIX
from txs3.s3.exception import S3Error
from txs3.s3.model import S3Object
from txs3.s3.parser import ListAllMyBucketsParser, ListBucketParser


@attr.s
class Response(object):
    """
    The raw status and headers of a service response, along with its body.

    A non-success status is never raised; use L{is_success} and
    L{get_error} to tell a failed request from an empty result.
    """
    _log = Logger()

    status = attr.ib(validator=validators.instance_of(int))
    headers = attr.ib(validator=validators.instance_of(Headers))
    body = attr.ib(default=b"", repr=False)

    @classmethod
    def from_response(cls, response, body):
        """
        Wrap a Twisted L{IResponse} and the body read from it.
        """
        return cls(response.code, response.headers, body)

    @property
    def is_success(self):
        return 200 <= self.status < 300

    def get_error(self):
        """
        Describe why the request failed.

        @return: An L{S3Error} built from the error document in the body, or
            C{None} for a successful response or a body which is not an
            error document.
        """
        if self.is_success or not self.body:
            return None
        try:
            return S3Error(self.body, self.status)
        except (XMLSyntaxError, AWSResponseParseError):
            self._log.debug(
                "Response with status {status} has no S3 error document",
                status=self.status,
            )
            return None


def get_aws_metadata(headers):
    """
    Collect user metadata from response headers.

    @param headers: The response L{Headers}.
    @return: A L{dict} mapping each metadata key, prefix removed, to its
        value.  Values are decoded as UTF-8, with any other bytes kept as
        surrogate escapes.
    """
    metadata = {}
    for name, values in headers.getAllRawHeaders():
        name = name.decode("latin-1").lower()
        if name.startswith(METADATA_PREFIX):
            value = values[-1].decode("utf-8", "surrogateescape")
            metadata[name[len(METADATA_PREFIX):]] = value
    return metadata


@attr.s
class GetResponse(Response):
    """
    The response to an object fetch.

    @ivar object: The object payload and its user metadata.
    @type object: L{S3Object}
    """
    object = attr.ib(init=False, repr=False)

    def __attrs_post_init__(self):
        self.object = S3Object(self.body, get_aws_metadata(self.headers))


class _ListResponseMixin(object):
    """
    Decode a successful listing with a fresh parser.  Any other response,
    including a success with an empty body, decodes to no entries.
    """
    parser_factory = None

    def _decode(self):
        if not self.is_success:
            self._log.info(
                "Listing failed with status {status}, no entries decoded",
                status=self.status,
            )
            return None
        if not self.body:
            return None
        parser = self.parser_factory()
        parser.parse(self.body)
        return parser


@attr.s
class ListBucketResponse(_ListResponseMixin, Response):
    """
    The response to a bucket listing.

    @ivar entries: The listed objects in document order.
    @type entries: L{list} of L{BucketItem}

    @ivar is_truncated: Whether the service holds back further entries.
    """
    parser_factory = ListBucketParser

    entries = attr.ib(init=False)
    is_truncated = attr.ib(init=False)

    def __attrs_post_init__(self):
        parser = self._decode()
        if parser is None:
            self.entries = []
            self.is_truncated = False
        else:
            self.entries = parser.entries
            self.is_truncated = parser.is_truncated


@attr.s
class ListAllMyBucketsResponse(_ListResponseMixin, Response):
    """
    The response to a listing of all buckets of the requester.

    @ivar entries: The buckets in document order.
    @type entries: L{list} of L{Bucket}
    """
    parser_factory = ListAllMyBucketsParser

    entries = attr.ib(init=False)

    def __attrs_post_init__(self):
        parser = self._decode()
        if parser is None:
            self.entries = []
        else:
            self.entries = parser.entries
