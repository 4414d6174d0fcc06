"""Wire models for the deploy.io API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_DOCKER_TLS_PORT = 2376


class HostDescriptor(BaseModel):
    """A remote Docker-capable host, as returned by ``/hosts``.

    The client certificate and key are issued by the server for this host;
    the client never generates key material itself. Both are left out of
    ``repr`` so a host can be logged safely.

    Attributes:
        id: Server-side identifier (``_id`` on the wire).
        name: Host name, ``default`` for the default host.
        address: Public IPv4 address (``ipv4_address`` on the wire).
        port: Docker TLS port.
        size: Memory size in megabytes.
        client_cert_pem: PEM client certificate for this host.
        client_key_pem: PEM private key matching ``client_cert_pem``.
        url: Server-provided URL of the host resource.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("_id", "id", "ID"))
    name: str = Field(default="", validation_alias=AliasChoices("Name", "name"))
    address: str = Field(
        default="",
        validation_alias=AliasChoices("ipv4_address", "IPAddress", "address"),
    )
    port: int = Field(
        default=DEFAULT_DOCKER_TLS_PORT,
        validation_alias=AliasChoices("Port", "port"),
    )
    size: int = Field(default=0, validation_alias=AliasChoices("Size", "size"))
    client_cert_pem: str = Field(
        default="",
        validation_alias=AliasChoices("client_cert", "client_cert_pem"),
        repr=False,
    )
    client_key_pem: str = Field(
        default="",
        validation_alias=AliasChoices("client_key", "client_key_pem"),
        repr=False,
    )
    url: str = Field(default="", validation_alias=AliasChoices("URL", "url"))

    @property
    def docker_url(self) -> str:
        """``DOCKER_HOST`` value for this host's daemon."""
        return f"tcp://{self.address}:{self.port}"


class HostList(BaseModel):
    """Envelope of ``GET /hosts``."""

    model_config = ConfigDict(extra="ignore")

    data: list[HostDescriptor] | None = Field(
        default=None, validation_alias=AliasChoices("Data", "data")
    )


class Session(BaseModel):
    """Credential issued by ``POST /login``."""

    model_config = ConfigDict(extra="ignore")

    username: str = Field(default="", validation_alias=AliasChoices("username", "Username"))
    key: str = Field(default="", validation_alias=AliasChoices("key", "Key"), repr=False)


class LoginResponse(BaseModel):
    """Envelope of ``POST /login``."""

    model_config = ConfigDict(extra="ignore")

    session: Session = Field(validation_alias=AliasChoices("session", "Session"))
