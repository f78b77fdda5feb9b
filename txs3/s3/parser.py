# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

"""
Event driven decoding of S3 listing documents.

Listing documents are decoded from element open, element close and text
events without building a document tree.  The events drive a small state
machine whose state lives in a L{DecoderContext} passed explicitly to each
transition function.  A L{_Schema} describes which element is a list item and
how its child elements map to record fields, so the same transitions decode
both object listings and bucket listings.
"""

import attr

from constantly import Names, NamedConstant

from lxml import etree

from pyrsistent import pmap

from txs3.exception import AWSResponseParseError
from txs3.s3.model import Bucket, BucketItem, ItemOwner
from txs3.util import local_name


__all__ = [
    "DecoderState", "DecoderContext",
    "element_open", "element_text", "element_close",
    "ListBucketParser", "ListAllMyBucketsParser",
]


_OWNER_TAG = "Owner"


class DecoderState(Names):
    """
    The states of the listing decoder.
    """
    IDLE = NamedConstant()
    BUILDING_ENTRY = NamedConstant()
    BUILDING_OWNER = NamedConstant()
    BUILDING_BUCKET = NamedConstant()


@attr.s
class DecoderContext(object):
    """
    The mutable state of one decoding run.

    @ivar record: The record being built, a L{BucketItem} while in
        C{BUILDING_ENTRY} or C{BUILDING_OWNER}, a L{Bucket} while in
        C{BUILDING_BUCKET}, otherwise C{None}.

    @ivar owner: The L{ItemOwner} being built while in C{BUILDING_OWNER}.

    @ivar text: Text fragments received since the last element boundary.

    @ivar entries: Completed records in document order.

    @ivar properties: Text of top level elements the schema asks for, keyed
        by tag.
    """
    state = attr.ib(default=DecoderState.IDLE)
    record = attr.ib(default=None)
    owner = attr.ib(default=None)
    text = attr.ib(default=attr.Factory(list))
    entries = attr.ib(default=attr.Factory(list))
    properties = attr.ib(default=attr.Factory(dict))


def _decimal(text):
    try:
        return int(text)
    except ValueError:
        raise AWSResponseParseError("Not a decimal number: %r" % (text,))


@attr.s(frozen=True)
class _Schema(object):
    """
    How the elements of one kind of listing document map onto records.

    @ivar item_tag: The tag of the element holding one record.
    @ivar building_state: The state while such an element is open.
    @ivar record_factory: A no-argument callable creating an empty record.
    @ivar fields: Record fields by tag, as C{(attribute, converter)} pairs.
    @ivar owner_fields: L{ItemOwner} attributes by tag.  Empty if records
        of this kind have no owner.
    @ivar properties: Tags of top level elements to keep the text of.
    """
    item_tag = attr.ib()
    building_state = attr.ib()
    record_factory = attr.ib()
    fields = attr.ib(converter=pmap)
    owner_fields = attr.ib(default=pmap(), converter=pmap)
    properties = attr.ib(default=frozenset(), converter=frozenset)


LIST_BUCKET_SCHEMA = _Schema(
    item_tag="Contents",
    building_state=DecoderState.BUILDING_ENTRY,
    record_factory=BucketItem,
    fields={
        "Key": ("key", str),
        "LastModified": ("last_modified", str),
        "ETag": ("etag", str),
        "Size": ("size", _decimal),
        "StorageClass": ("storage_class", str),
    },
    owner_fields={
        "ID": "id",
        "DisplayName": "display_name",
    },
    properties={"IsTruncated"},
)


LIST_ALL_MY_BUCKETS_SCHEMA = _Schema(
    item_tag="Bucket",
    building_state=DecoderState.BUILDING_BUCKET,
    record_factory=Bucket,
    fields={
        "Name": ("name", str),
        "CreationDate": ("creation_date", str),
    },
)


def element_open(schema, context, name, attributes):
    """
    Handle the start of an element.

    @raise AWSResponseParseError: If an owner element opens while no list
        entry is open.
    """
    del context.text[:]
    if name == schema.item_tag:
        context.record = schema.record_factory()
        context.owner = None
        context.state = schema.building_state
    elif name == _OWNER_TAG and schema.owner_fields:
        if context.state is not DecoderState.BUILDING_ENTRY:
            raise AWSResponseParseError(
                "%s element outside of %s" % (_OWNER_TAG, schema.item_tag))
        context.owner = ItemOwner()
        context.record.owner = context.owner
        context.state = DecoderState.BUILDING_OWNER


def element_text(context, text):
    """
    Handle character data, which may arrive in several fragments.
    """
    context.text.append(text)


def element_close(schema, context, name):
    """
    Handle the end of an element.
    """
    text = "".join(context.text)
    del context.text[:]

    if name == schema.item_tag:
        if context.record is not None:
            context.entries.append(context.record)
        context.record = None
        context.owner = None
        context.state = DecoderState.IDLE
    elif context.state is DecoderState.BUILDING_OWNER:
        if name == _OWNER_TAG:
            context.owner = None
            context.state = DecoderState.BUILDING_ENTRY
        elif name in schema.owner_fields:
            setattr(context.owner, schema.owner_fields[name], text)
    elif context.record is not None:
        if name in schema.fields:
            attribute, convert = schema.fields[name]
            setattr(context.record, attribute, convert(text))
    elif name in schema.properties:
        context.properties[name] = text


class _StreamingParser(object):
    """
    An lxml parser target decoding one kind of listing document.

    An instance decodes one document at a time; L{parse} resets it first.
    """
    schema = None

    def __init__(self):
        self.reset()

    def reset(self):
        """
        Forget everything decoded so far.
        """
        self._context = DecoderContext()

    @property
    def entries(self):
        return self._context.entries

    def start(self, tag, attrib):
        element_open(self.schema, self._context, local_name(tag), attrib)

    def end(self, tag):
        element_close(self.schema, self._context, local_name(tag))

    def data(self, data):
        element_text(self._context, data)

    def close(self):
        return self._context.entries

    def parse(self, source):
        """
        Decode a listing document.

        @param source: The document as L{bytes}, or an iterable of L{bytes}
            chunks which are fed to the parser as they are produced.

        @return: The decoded records in document order.
        @raise lxml.etree.XMLSyntaxError: If the document is not well formed.
        """
        self.reset()
        parser = etree.XMLParser(
            target=self, resolve_entities=False, no_network=True)
        if isinstance(source, bytes):
            source = [source]
        for chunk in source:
            parser.feed(chunk)
        return parser.close()


class ListBucketParser(_StreamingParser):
    """
    Decode a C{ListBucketResult} document into L{BucketItem} records.
    """
    schema = LIST_BUCKET_SCHEMA

    @property
    def is_truncated(self):
        return self._context.properties.get("IsTruncated") == "true"


class ListAllMyBucketsParser(_StreamingParser):
    """
    Decode a C{ListAllMyBucketsResult} document into L{Bucket} records.
    """
    schema = LIST_ALL_MY_BUCKETS_SCHEMA
