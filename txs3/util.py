"""Generally useful utilities for S3 style web services.

New things in this module should be of relevance to more than one part of
the client.
"""

from base64 import b64encode
from hashlib import sha1
import hmac
from urllib.parse import urlparse, urlunparse

from lxml import etree


__all__ = ["hmac_sha1", "local_name", "XML", "parse"]


def _to_bytes(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def hmac_sha1(secret, data):
    """
    Produce the base64 encoded SHA-1 HMAC of C{data}.

    @param secret: The key, as L{bytes} or L{str}.
    @param data: The message, as L{bytes} or L{str}.
    @rtype: L{bytes}
    """
    digest = hmac.new(_to_bytes(secret), _to_bytes(data), sha1).digest()
    return b64encode(digest)


# Entity resolution and network access are never wanted for service
# responses.
_SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def local_name(tag):
    """
    Strip any C{{namespace}} qualification from an element tag.
    """
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    return tag


def XML(text):
    """
    Parse a complete XML document, discarding namespaces from tag names.

    @raise lxml.etree.XMLSyntaxError: If C{text} is not well formed.
    """
    root = etree.fromstring(_to_bytes(text), _SAFE_PARSER)
    for element in root.iter(tag=etree.Element):
        element.tag = local_name(element.tag)
    return root


def parse(url, defaultPort=True):
    """
    Split C{url} into C{(scheme, host, port, path)}.

    The host is lower-cased, with any user information and IPv6 brackets
    removed.  The path keeps any query string and is C{/} when the URL has
    none.  A missing or invalid port is C{None}, or the default port of the
    scheme when C{defaultPort} is true.
    """
    if isinstance(url, bytes):
        url = url.decode("ascii")
    parsed = urlparse(url.strip())
    host = parsed.hostname or ""
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is None and defaultPort:
        port = default_port(parsed.scheme)
    path = urlunparse(("", "") + parsed[2:]) or "/"
    return (parsed.scheme, host, port, path)


def default_port(scheme):
    return 443 if scheme == "https" else 80
