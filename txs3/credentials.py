# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

"""Credentials for signing storage service requests."""

import configparser
import os

import attr

from txs3.exception import CredentialsNotFoundError


__all__ = ["AWSCredentials"]


ENV_ACCESS_KEY = "AWS_ACCESS_KEY_ID"
ENV_PROFILE = "AWS_PROFILE"
ENV_SECRET_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SHARED_CREDENTIALS_FILE = "AWS_SHARED_CREDENTIALS_FILE"

DEFAULT_PROFILE = "default"
DEFAULT_SHARED_CREDENTIALS_FILE = "~/.aws/credentials"

_ACCESS_KEY_OPTION = "aws_access_key_id"
_SECRET_KEY_OPTION = "aws_secret_access_key"


@attr.s(init=False)
class AWSCredentials(object):
    """
    An access key id and the secret key requests are signed with.

    Each key not given explicitly is taken from the environment
    (C{AWS_ACCESS_KEY_ID}, C{AWS_SECRET_ACCESS_KEY}) or, failing that, from
    the C{AWS_PROFILE} profile (C{default} unless set) of the shared
    credentials file at C{AWS_SHARED_CREDENTIALS_FILE} (C{~/.aws/credentials}
    unless set).

    The secret key is only ever used as an HMAC key and is left out of the
    C{repr}.

    @param environ: The environment. If unspecified, L{os.environ} is used.
    @raise CredentialsNotFoundError: A key is missing everywhere.
    """

    access_key = attr.ib()
    secret_key = attr.ib(repr=False)

    def __init__(self, access_key="", secret_key="", environ=os.environ):
        access_key = access_key or environ.get(ENV_ACCESS_KEY)
        secret_key = secret_key or environ.get(ENV_SECRET_KEY)
        if not (access_key and secret_key):
            shared_access_key, shared_secret_key = _load_shared_credentials(
                environ)
            access_key = access_key or shared_access_key
            secret_key = secret_key or shared_secret_key

        self.access_key = access_key
        self.secret_key = secret_key


def _load_shared_credentials(environ):
    """
    Read both keys of the selected profile from the shared credentials file.
    """
    profile = environ.get(ENV_PROFILE, DEFAULT_PROFILE)
    path = environ.get(
        ENV_SHARED_CREDENTIALS_FILE,
        os.path.expanduser(DEFAULT_SHARED_CREDENTIALS_FILE),
    )
    # Secrets may contain "%".
    config = configparser.ConfigParser(interpolation=None)
    if not config.read([path]):
        raise CredentialsNotFoundError(
            "Could not find credentials in the environment or filesystem",
        )
    if not config.has_section(profile):
        raise CredentialsNotFoundError(
            "No such profile %r in %s" % (profile, path))

    section = config[profile]
    missing = [
        option for option in (_ACCESS_KEY_OPTION, _SECRET_KEY_OPTION)
        if not section.get(option)
    ]
    if missing:
        raise CredentialsNotFoundError(
            "Profile %r has no %s" % (
                profile, " or ".join(repr(option) for option in missing)))
    return section[_ACCESS_KEY_OPTION], section[_SECRET_KEY_OPTION]
