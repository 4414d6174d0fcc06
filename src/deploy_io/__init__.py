"""Deploy.IO client.

Command-line client for running Docker against remote deploy.io hosts.
Handles API credential resolution and caching, host lookup, mutual-TLS
channel validation, and scoped provisioning of the TLS material the
local Docker CLI needs.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("deploy-io")
except PackageNotFoundError:
    __version__ = "0.0.0"

from .api.client import AuthClient
from .api.models import HostDescriptor
from .auth.credentials import Credential, Endpoint
from .auth.store import CredentialStore
from .config import DeployConfig
from .context import DeployContext
from .errors import (
    APIError,
    AuthError,
    CacheCorruptError,
    DeployError,
    ExternalToolError,
    StorageError,
    SubprocessFailedError,
)
from .gateway.launcher import DockerGatewayLauncher, GatewayState
from .logging import configure_logging, get_logger
from .tls.channel import SecureChannelBuilder, SecureChannelConfig

__all__ = [
    "APIError",
    "AuthClient",
    "AuthError",
    "CacheCorruptError",
    "Credential",
    "CredentialStore",
    "DeployConfig",
    "DeployContext",
    "DeployError",
    "DockerGatewayLauncher",
    "Endpoint",
    "ExternalToolError",
    "GatewayState",
    "HostDescriptor",
    "SecureChannelBuilder",
    "SecureChannelConfig",
    "StorageError",
    "SubprocessFailedError",
    "configure_logging",
    "get_logger",
]
