# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

import attr
from attr import validators

from dateutil.parser import parse as parseTime

from pyrsistent import PMap, freeze, pmap


@attr.s
class Bucket(object):
    """
    An S3 storage bucket.

    @ivar creation_date: The creation timestamp exactly as the service
        reported it.
    """
    name = attr.ib(default=None)
    creation_date = attr.ib(default=None)

    @property
    def creation_datetime(self):
        if self.creation_date is None:
            return None
        return parseTime(self.creation_date)


@attr.s
class ItemOwner(object):
    """
    The owner of a content item.
    """
    id = attr.ib(default=None)
    display_name = attr.ib(default=None)


@attr.s
class BucketItem(object):
    """
    One entry of a bucket listing.

    @ivar size: The size of the object in bytes.
    @type size: L{int}
    """
    key = attr.ib(default=None)
    last_modified = attr.ib(default=None)
    etag = attr.ib(default=None)
    size = attr.ib(
        default=None,
        validator=validators.optional(validators.instance_of(int)),
    )
    storage_class = attr.ib(default=None)
    owner = attr.ib(
        default=None,
        validator=validators.optional(validators.instance_of(ItemOwner)),
    )

    @property
    def modification_date(self):
        if self.last_modified is None:
            return None
        return parseTime(self.last_modified)


@attr.s(frozen=True)
class S3Object(object):
    """
    Object data together with its user metadata.

    @ivar data: The object payload.
    @type data: L{bytes}

    @ivar metadata: User metadata, without the C{x-amz-meta-} prefix.
    @type metadata: L{pmap}
    """
    data = attr.ib(validator=validators.instance_of(bytes))
    metadata = attr.ib(
        default=pmap(),
        converter=freeze,
        validator=validators.instance_of(PMap),
    )
