# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

from txs3.exception import AWSError


_COMMON_FIELDS = frozenset(["Code", "Message", "RequestId", "HostId"])


class S3Error(AWSError):
    """
    An S3 error document, a single C{Error} root element.
    """
    def _error_nodes(self, tree):
        if tree.tag == "Error":
            return [tree]
        return []

    @property
    def details(self):
        """
        The fields S3 reports beyond the common ones, for example the
        C{StringToSign} it computed when a signature does not match.
        """
        if not self.errors:
            return {}
        return dict(
            (name, value) for (name, value) in self.errors[0].items()
            if name not in _COMMON_FIELDS
        )
