# Licenced under the txs3 licence available at /LICENSE in the txs3 source.
"""
S3 request authentication using HMAC-SHA1 signatures.

A request is reduced to a canonical string which the client and the service
compute identically.  The string is signed with the secret access key and
the signature travels either in an I{Authorization} header or, for query
string authentication, in the URL itself.

See U{http://docs.aws.amazon.com/AmazonS3/latest/dev/RESTAuthentication.html}
"""

import re
from urllib.parse import quote_plus

from twisted.web.http import datetimeToString
from twisted.web.http_headers import Headers

from txs3.exception import UnsupportedMethodError
from txs3.util import hmac_sha1


__all__ = [
    "AMAZON_HEADER_PREFIX", "METADATA_PREFIX", "SUPPORTED_METHODS",
    "canonical_string", "encode", "add_auth_header", "merge_meta",
    "check_method", "to_headers",
]


METADATA_PREFIX = "x-amz-meta-"
AMAZON_HEADER_PREFIX = "x-amz-"

SUPPORTED_METHODS = ("GET", "PUT", "DELETE")

# The only non-prefixed headers which take part in the signature, and which
# are emitted positionally (without their names).
_POSITIONAL_HEADERS = ("content-md5", "content-type", "date")

# Only these subresources are part of the signed resource; any other query
# argument (prefix, marker, ...) is left out.
_SUBRESOURCES = (
    ("?acl", re.compile(r"[&?]acl($|&|=)")),
    ("?torrent", re.compile(r"[&?]torrent($|&|=)")),
)


def _text(value):
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _header_items(headers):
    """
    Iterate over C{(name, value)} pairs of a header map.

    @param headers: A L{Headers} instance or a mapping.  For L{Headers} the
        last raw value of each header is used.
    """
    if headers is None:
        return []
    if isinstance(headers, Headers):
        return [
            (name, values[-1])
            for (name, values) in headers.getAllRawHeaders()
        ]
    return headers.items()


def to_headers(headers):
    """
    Copy a header map into a new L{Headers} instance.
    """
    request_headers = Headers()
    for name, value in _header_items(headers):
        request_headers.setRawHeaders(_text(name), [_text(value)])
    return request_headers


def check_method(method):
    """
    Make sure C{method} is one of L{SUPPORTED_METHODS}.

    @return: The method as a native string.
    @raise UnsupportedMethodError: For any other method.
    """
    method = _text(method)
    if method not in SUPPORTED_METHODS:
        raise UnsupportedMethodError("Unsupported method %r" % (method,))
    return method


def canonical_string(method, path, headers=None, expires=None):
    """
    Build the canonical string for signing a request.

    @param method: The HTTP method, eg C{"GET"}.
    @param path: The encoded request path, optionally with a query string.
    @param headers: The request headers, a mapping or L{Headers}.
    @param expires: If not C{None}, the expiry (Unix seconds) of a query
        string authenticated URL.  It replaces the date.

    @return: The canonical string.
    @rtype: L{bytes}
    """
    interesting_headers = {}
    for key, value in _header_items(headers):
        name = _text(key).lower()
        if (name in _POSITIONAL_HEADERS or
                name.startswith(AMAZON_HEADER_PREFIX)):
            interesting_headers[name] = _text(value).strip()

    interesting_headers.setdefault("content-type", "")
    interesting_headers.setdefault("content-md5", "")

    if "x-amz-date" in interesting_headers:
        interesting_headers["date"] = ""

    if expires is not None:
        interesting_headers["date"] = _text(expires)

    lines = [_text(method)]
    for name, value in sorted(interesting_headers.items()):
        if name.startswith(AMAZON_HEADER_PREFIX):
            lines.append("%s:%s" % (name, value))
        else:
            lines.append(value)

    path = _text(path)
    resource = path.split("?", 1)[0]
    for subresource, pattern in _SUBRESOURCES:
        if pattern.search(path):
            resource += subresource
            break
    lines.append(resource)
    return "\n".join(lines).encode("utf-8")


def encode(secret_key, data, urlencode=False):
    """
    Sign C{data} with C{secret_key}.

    @param urlencode: Percent-encode the signature so it can be placed in a
        URL query component.

    @return: The base64 encoded HMAC-SHA1 signature.
    @rtype: L{str}
    """
    b64_hmac = hmac_sha1(secret_key, data).strip().decode("ascii")
    if urlencode:
        return quote_plus(b64_hmac)
    return b64_hmac


def merge_meta(headers, metadata):
    """
    Fold object metadata into a header mapping.

    @param headers: A mapping of header names to values, or C{None}.
    @param metadata: A mapping of metadata keys to values, or C{None}.

    @return: A new L{dict} holding C{headers} plus one
        C{x-amz-meta-<key>} header per metadata item.
    """
    final_headers = dict(_header_items(headers))
    if metadata:
        for key, value in metadata.items():
            final_headers[METADATA_PREFIX + _text(key)] = value
    return final_headers


def add_auth_header(credentials, method, path, headers=None, now=None):
    """
    Sign a request with an I{Authorization} header.

    A I{Date} header is added if the request has none and an empty
    I{Content-Type} is added if it has none, so that nothing added later
    on the way to the service changes what was signed.

    @param credentials: The L{AWSCredentials} to sign with.
    @param path: The encoded request path, optionally with a query string.
    @param headers: The request headers, a mapping or L{Headers}.
    @param now: Seconds since the epoch to use for a missing I{Date}, or
        C{None} for the current time.

    @return: A new L{Headers} instance including the I{Authorization}
        header.
    @raise UnsupportedMethodError: If C{method} is not supported.
    """
    method = check_method(method)
    request_headers = to_headers(headers)

    if not request_headers.hasHeader("date"):
        date = datetimeToString(now).decode("ascii")
        request_headers.setRawHeaders("date", [date])
    if not request_headers.hasHeader("content-type"):
        request_headers.setRawHeaders("content-type", [""])

    signature = encode(
        credentials.secret_key,
        canonical_string(method, path, request_headers),
    )
    request_headers.setRawHeaders(
        "authorization",
        ["AWS %s:%s" % (credentials.access_key, signature)],
    )
    return request_headers
