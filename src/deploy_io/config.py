"""DeployConfig: the one place the client reads its environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .auth.credentials import Endpoint

DEFAULT_API_URL = "http://104.131.158.124:8001"
DEFAULT_HOST_NAME = "default"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DeployConfig:
    """Client configuration.

    Components receive the values they need through their constructors,
    so nothing below the CLI touches ``os.environ``.

    Attributes:
        api_url: Base URL of the deploy.io API.
        api_key: Secret key override. When set, the credential cache and
            interactive login are skipped entirely.
        host_ca_path: PEM bundle used to trust hosts instead of the
            packaged default CA.
        home: Home directory; the credential cache lives under it.
        log_format: ``"text"`` or ``"json"``.
        verbose: Enable debug logging.
        docker_executable: Name (or path) of the Docker CLI to wrap.

    Example:
        ```python
        config = DeployConfig.from_environment()
        store = CredentialStore(config.key_dir, login=client.login, api_key=config.api_key)
        ```
    """

    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    host_ca_path: Path | None = None
    home: Path = Path("~")
    log_format: str = "text"
    verbose: bool = False
    docker_executable: str = "docker"

    @property
    def endpoint(self) -> Endpoint:
        """The API endpoint credentials are cached against."""
        return Endpoint(self.api_url)

    @property
    def key_dir(self) -> Path:
        """Directory holding one cached credential file per endpoint."""
        return self.home.expanduser() / ".deploy" / "api_keys"

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> DeployConfig:
        """Create configuration from environment variables.

        Expected env vars:
        - DEPLOY_API_URL: API base URL (default: built-in address)
        - DEPLOY_API_KEY: Secret key override
        - DEPLOY_HOST_CA: Path to a PEM CA bundle
        - HOME: Home directory for the credential cache
        - DEPLOY_LOG_FORMAT: ``text`` or ``json``
        - DEPLOY_DEBUG: Set to ``1`` for debug logging

        Args:
            environ: Mapping to read instead of ``os.environ``.
        """
        env = os.environ if environ is None else environ

        home = env.get("HOME")
        ca_path = env.get("DEPLOY_HOST_CA")

        return cls(
            api_url=env.get("DEPLOY_API_URL") or DEFAULT_API_URL,
            api_key=env.get("DEPLOY_API_KEY") or None,
            host_ca_path=Path(ca_path) if ca_path else None,
            home=Path(home) if home else Path.home(),
            log_format=env.get("DEPLOY_LOG_FORMAT") or "text",
            verbose=env.get("DEPLOY_DEBUG", "").lower() in _TRUTHY,
        )
