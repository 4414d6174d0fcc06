"""API endpoint and credential types, plus the on-disk cache record format."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from ..errors import CacheCorruptError, StorageError

_DELIMITER = ":"


@dataclass(frozen=True)
class Endpoint:
    """A deploy.io API server.

    Attributes:
        base_url: Base URL, e.g. ``https://api.example.test``.
    """

    base_url: str

    @property
    def cache_key(self) -> str:
        """Stable file name for this endpoint's cached credential.

        MD5 of the exact base URL, hex-encoded. Used as a name, not for security.
        """
        return hashlib.md5(self.base_url.encode("utf-8"), usedforsecurity=False).hexdigest()

    def url(self, path: str) -> str:
        """Join a resource path (``/hosts``) onto the base URL."""
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")


@dataclass(frozen=True)
class Credential:
    """Username and secret key used for HTTP Basic auth against the API.

    Attributes:
        username: Account name. Empty when the key came from ``DEPLOY_API_KEY``.
        secret_key: API key issued by ``/login``.
    """

    username: str
    secret_key: str

    def __repr__(self) -> str:
        """Return masked representation to prevent credential leakage in logs."""
        return f"Credential(username={self.username!r}, secret_key='***')"

    def __str__(self) -> str:
        """Return masked string representation."""
        return self.__repr__()

    def basic_auth(self) -> tuple[str, str]:
        """Return the ``(user, password)`` pair for HTTP Basic auth."""
        return (self.username, self.secret_key)


def parse_cached_credential(content: str) -> Credential:
    """Parse a cached ``username:secret_key`` record.

    Splits on the first colon only, so secret keys may contain colons.
    A single trailing newline (left by hand editing) is ignored.

    Raises:
        CacheCorruptError: If there is no colon or the secret key is empty.
    """
    if content.endswith("\n"):
        content = content[:-1].rstrip("\r")

    username, sep, secret_key = content.partition(_DELIMITER)
    if not sep:
        raise CacheCorruptError("Cached credential is missing the ':' delimiter")
    if not secret_key:
        raise CacheCorruptError("Cached credential has an empty secret key")

    return Credential(username=username, secret_key=secret_key)


def format_cached_credential(credential: Credential) -> str:
    """Serialize a credential to the cache record format.

    Raises:
        StorageError: If the credential would not parse back unchanged.
    """
    if _DELIMITER in credential.username:
        raise StorageError(
            f"Cannot cache credential: username {credential.username!r} contains ':'"
        )
    if not credential.secret_key:
        raise StorageError("Cannot cache credential: secret key is empty")
    if any(c in value for value in credential.basic_auth() for c in "\r\n"):
        raise StorageError("Cannot cache credential: value contains a line break")

    return f"{credential.username}{_DELIMITER}{credential.secret_key}"
