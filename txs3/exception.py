# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

from twisted.web.error import Error

from txs3.util import XML


def _node_to_dict(node):
    data = {}
    for child in node:
        if isinstance(child.tag, str) and child.text:
            data[child.tag] = child.text
    return data


class AWSError(Error):
    """
    An error document returned by the storage service.

    The document is parsed when the error is created.  Each element
    describing an error becomes a L{dict} of its children's text in
    C{errors}.  The identifiers the service attaches for support requests
    are kept in C{request_id} and C{host_id}.

    @param xml_bytes: The response body.
    @param status: The HTTP status of the response.
    @raise ValueError: If C{xml_bytes} is empty.
    @raise AWSResponseParseError: If the body is an HTML page, as sent by
        proxies and load balancers, rather than an error document.
    @raise lxml.etree.XMLSyntaxError: If the body is not XML.
    """
    def __init__(self, xml_bytes, status, message=None, response=None):
        super(AWSError, self).__init__(status, message, response)
        if not xml_bytes:
            raise ValueError("XML cannot be empty.")
        self.original = xml_bytes
        self.errors = []
        self.request_id = ""
        self.host_id = ""
        self.parse()

    def __str__(self):
        return "Error %s (status %s): %s" % (
            self.get_error_code(), int(self.status), self.get_error_message())

    def __repr__(self):
        return "<%s object with Error code: %s>" % (
            self.__class__.__name__, self.get_error_code())

    def _error_nodes(self, tree):
        """
        Find the elements describing individual errors.  Subclasses know the
        layout of their service's error documents.
        """
        return []

    def parse(self, xml_bytes=b""):
        """
        Parse C{xml_bytes}, or the original body if it is empty.
        """
        if xml_bytes:
            self.original = xml_bytes
        tree = XML(self.original.strip())
        if tree.tag == "html":
            raise AWSResponseParseError(
                "Could not parse HTML in the response.")
        self.request_id = tree.findtext(".//RequestId") or ""
        self.host_id = tree.findtext(".//HostId") or ""
        errors = [_node_to_dict(node) for node in self._error_nodes(tree)]
        self.errors = [error for error in errors if error]

    def has_error(self, code):
        return any(error.get("Code") == code for error in self.errors)

    def get_error_code(self):
        if not self.errors:
            return None
        return self.errors[0].get("Code")

    def get_error_message(self):
        if not self.errors:
            return "Empty error list"
        return self.errors[0].get("Message")


class AWSResponseParseError(Exception):
    """
    txs3 was unable to parse the server response.
    """


class CredentialsNotFoundError(Exception):
    """
    No credentials were given and none could be found in the environment or
    the shared credentials file.
    """


class UnsupportedMethodError(ValueError):
    """
    The HTTP method of a request is not one the service accepts for signed
    requests.
    """


class InvalidExpiryStateError(Exception):
    """
    A query string authenticated URL was requested without either an absolute
    expiry or a relative expiry window being configured.
    """
