"""CredentialStore: resolve, cache and prompt for API credentials."""

from __future__ import annotations

import getpass
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from ..errors import AuthError, StorageError
from .credentials import (
    Credential,
    Endpoint,
    format_cached_credential,
    parse_cached_credential,
)

logger = logging.getLogger(__name__)

LoginFunc = Callable[[str, str], Credential]


class Prompter(ABC):
    """Asks the operator for a username and password."""

    @abstractmethod
    def ask(self, endpoint: Endpoint) -> tuple[str, str]:
        """Return ``(username, password)`` entered by the operator.

        Raises:
            AuthError: If no credentials could be read.
        """


class TerminalPrompter(Prompter):
    """Prompts on the controlling terminal; the password is not echoed."""

    def ask(self, endpoint: Endpoint) -> tuple[str, str]:
        try:
            username = input("Deploy username: ").strip()
            password = getpass.getpass("Password: ")
        except EOFError as e:
            raise AuthError(
                "No credentials entered. Run interactively or set DEPLOY_API_KEY."
            ) from e
        return username, password


class CredentialStore:
    """Resolves the credential for an API endpoint.

    Resolution order, first match wins:

    1. ``api_key`` override (``DEPLOY_API_KEY``), used verbatim with an
       empty username. Nothing is read from or written to disk.
    2. The cached ``username:secret_key`` file for the endpoint.
    3. An interactive login; the issued credential is then cached.

    Cached credentials are never rotated. Deleting the cache file is the
    only way to force a new login.

    Args:
        key_dir: Directory holding one cache file per endpoint.
        login: Exchanges ``(username, password)`` for a credential,
            normally ``AuthClient.login``.
        api_key: Optional secret key override.
        prompter: Source of interactive credentials. Defaults to
            ``TerminalPrompter``.
    """

    def __init__(
        self,
        key_dir: str | Path,
        login: LoginFunc,
        api_key: str | None = None,
        prompter: Prompter | None = None,
    ) -> None:
        self._key_dir = Path(key_dir)
        self._login = login
        self._api_key = api_key
        self._prompter = prompter or TerminalPrompter()

    @property
    def key_dir(self) -> Path:
        """Directory holding cached credentials."""
        return self._key_dir

    def cache_path(self, endpoint: Endpoint) -> Path:
        """Return the cache file path for ``endpoint``."""
        return self._key_dir / endpoint.cache_key

    def resolve(self, endpoint: Endpoint) -> Credential:
        """Return the credential to use against ``endpoint``.

        Raises:
            CacheCorruptError: If the cache file is malformed.
            StorageError: If the cache cannot be read or written.
            AuthError: If the interactive login fails.
        """
        if self._api_key:
            logger.debug("Using API key from environment for %s", endpoint.base_url)
            return Credential(username="", secret_key=self._api_key)

        path = self.cache_path(endpoint)
        cached = self._read(path)
        if cached is not None:
            logger.debug("Using cached credential for %s from %s", endpoint.base_url, path)
            return cached

        logger.debug("No cached credential for %s, prompting", endpoint.base_url)
        username, password = self._prompter.ask(endpoint)
        credential = self._login(username, password)
        if not credential.secret_key:
            raise AuthError("Login succeeded but the API issued an empty key")

        self._write(path, credential)
        logger.info("Saved credential for %s to %s", credential.username, path)
        return credential

    def _read(self, path: Path) -> Credential | None:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read cached credential {path}: {e}") from e
        return parse_cached_credential(content)

    def _write(self, path: Path, credential: Credential) -> None:
        """Atomically replace the cache file, so a failed write leaves no partial record."""
        record = format_cached_credential(credential)
        tmp_path: str | None = None
        try:
            self._key_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
            # mkstemp creates the file owner-only (0600)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}-", dir=self._key_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(record)
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to save credential to {path}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning("Failed to remove %s: %s", tmp_path, e)
