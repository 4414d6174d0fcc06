"""DeployContext: wires configuration, credentials, API client and launcher together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .api.client import AuthClient
from .api.models import HostDescriptor
from .auth.credentials import Credential
from .auth.store import CredentialStore, Prompter
from .config import DEFAULT_HOST_NAME, DeployConfig
from .errors import HostNotFoundError
from .gateway.launcher import DockerGatewayLauncher
from .tls.channel import SecureChannelBuilder
from .utils import capitalize, human_host_name

logger = logging.getLogger(__name__)


@dataclass
class DeployContext:
    """Everything a command needs to talk to the API and to a host.

    The credential is resolved lazily, on the first call that needs it,
    so commands that fail early never prompt.

    Attributes:
        config: Client configuration.
        client: API client bound to ``config.endpoint``.
        store: Credential resolution and cache.
        launcher: Runs Docker against a host.

    Example:
        ```python
        context = DeployContext.from_config(DeployConfig.from_environment())
        host = context.get_host("default")
        context.launcher.run(host, ["ps"])
        ```
    """

    config: DeployConfig
    client: AuthClient
    store: CredentialStore
    launcher: DockerGatewayLauncher
    _credential: Credential | None = field(default=None, repr=False)

    @classmethod
    def from_config(
        cls,
        config: DeployConfig,
        prompter: Prompter | None = None,
    ) -> DeployContext:
        """Build a context from configuration.

        Args:
            config: Client configuration.
            prompter: Interactive credential source. Defaults to the terminal.
        """
        client = AuthClient(config.endpoint)
        store = CredentialStore(
            config.key_dir,
            login=client.login,
            api_key=config.api_key,
            prompter=prompter,
        )
        launcher = DockerGatewayLauncher(
            SecureChannelBuilder(ca_path=config.host_ca_path),
            executable=config.docker_executable,
        )
        return cls(config=config, client=client, store=store, launcher=launcher)

    def credential(self) -> Credential:
        """Resolve (once) and return the API credential."""
        if self._credential is None:
            self._credential = self.store.resolve(self.client.endpoint)
        return self._credential

    def list_hosts(self) -> list[HostDescriptor]:
        return self.client.list_hosts(self.credential())

    def get_host(self, name: str = DEFAULT_HOST_NAME) -> HostDescriptor:
        """Look up a host by name.

        Raises:
            HostNotFoundError: With a hint on how to create the host.
        """
        try:
            return self.client.get_host(self.credential(), name)
        except HostNotFoundError as e:
            raise HostNotFoundError(
                f"{capitalize(human_host_name(name))} doesn't seem to be running.\n"
                f"You can create it with `deploy hosts create {name}`.",
                status=e.status,
            ) from e

    def create_host(self, name: str, size_mb: int) -> HostDescriptor:
        return self.client.create_host(self.credential(), name, size_mb)

    def delete_host(self, name: str) -> None:
        self.client.delete_host(self.credential(), name)
