"""SecureChannelBuilder: validate mutual-TLS material for a host.

Hosts present certificates signed by the deploy.io CA, and expect the
client to present the per-host certificate the API issued. This module
checks that material before anything is written to disk or handed to
Docker. It never touches the network.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from ..errors import ConfigurationError, InvalidCertificateError

logger = logging.getLogger(__name__)

_DEFAULT_CA_RESOURCE = ("assets", "deploy_ca.pem")


def _as_bytes(pem: str | bytes) -> bytes:
    return pem.encode("ascii", errors="replace") if isinstance(pem, str) else pem


def load_default_ca_bundle() -> bytes:
    """Return the packaged deploy.io CA bundle."""
    resource = resources.files("deploy_io")
    for part in _DEFAULT_CA_RESOURCE:
        resource = resource.joinpath(part)
    return resource.read_bytes()


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _server_names(cert: x509.Certificate) -> tuple[str, ...]:
    """Names a certificate is bound to: SAN DNS and IP entries, then the CN."""
    names: list[str] = []
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        pass
    else:
        names.extend(san.get_values_for_type(x509.DNSName))
        names.extend(str(ip) for ip in san.get_values_for_type(x509.IPAddress))

    for attr in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        value = attr.value if isinstance(attr.value, str) else attr.value.decode()
        if value not in names:
            names.append(value)
    return tuple(names)


@dataclass(frozen=True)
class SecureChannelConfig:
    """Validated mutual-TLS material for one host.

    Built once per command and never persisted.

    Attributes:
        trusted_ca: Certificates hosts are verified against.
        ca_bundle_pem: PEM form of ``trusted_ca``.
        client_certificate: Parsed client certificate.
        client_cert_pem: PEM client certificate, as issued.
        client_key_pem: PEM private key, as issued.
        server_names: Names the client certificate is bound to.
    """

    trusted_ca: tuple[x509.Certificate, ...]
    ca_bundle_pem: bytes = field(repr=False)
    client_certificate: x509.Certificate
    client_cert_pem: bytes = field(repr=False)
    client_key_pem: bytes = field(repr=False)
    server_names: tuple[str, ...] = ()

    def certificate_for(self, name: str) -> x509.Certificate | None:
        """Return the client certificate if it is bound to ``name``.

        Wildcard names (``*.example.test``) match one label. The ``deploy``
        CLI does not call this; it is for Python callers that talk to a
        host's daemon directly and pick a client certificate per server name.
        """
        for bound in self.server_names:
            if bound == name:
                return self.client_certificate
            if bound.startswith("*."):
                label, _, rest = name.partition(".")
                if label and rest == bound[2:]:
                    return self.client_certificate
        return None

    def ssl_context(self, cert_file: str | Path, key_file: str | Path) -> ssl.SSLContext:
        """Build a client ``SSLContext`` that trusts ``trusted_ca`` and presents the cert.

        ``ssl`` only loads a certificate chain from files, so the caller
        passes the provisioned secret files. The ``deploy`` CLI hands the PEM
        files to the Docker CLI instead; this is for Python callers reaching
        the daemon themselves, e.g. through ``http.client`` or the docker SDK::

            with provision_secret_files(channel) as files:
                context = channel.ssl_context(files.cert, files.key)
        """
        context = ssl.create_default_context(
            ssl.Purpose.SERVER_AUTH,
            cadata=self.ca_bundle_pem.decode("ascii"),
        )
        context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
        return context


class SecureChannelBuilder:
    """Turns issued certificate material into a ``SecureChannelConfig``.

    The CA bundle comes from, in order: the ``ca_bundle_pem`` argument,
    the file at ``ca_path`` (``DEPLOY_HOST_CA``), or the packaged default.

    Args:
        ca_path: Optional path to a PEM CA bundle.
    """

    def __init__(self, ca_path: str | Path | None = None) -> None:
        self._ca_path = Path(ca_path) if ca_path else None

    def load_ca_bundle(self) -> bytes:
        """Return the configured CA bundle PEM.

        Raises:
            ConfigurationError: If ``ca_path`` cannot be read.
        """
        if self._ca_path is None:
            return load_default_ca_bundle()
        try:
            return self._ca_path.read_bytes()
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read CA bundle from {self._ca_path}: {e}"
            ) from e

    def build(
        self,
        ca_bundle_pem: str | bytes | None,
        client_cert_pem: str | bytes,
        client_key_pem: str | bytes,
    ) -> SecureChannelConfig:
        """Parse and cross-check CA bundle, client certificate and key.

        Args:
            ca_bundle_pem: CA bundle PEM, or ``None`` to use the configured one.
            client_cert_pem: Client certificate issued for the host.
            client_key_pem: Unencrypted private key for that certificate.

        Returns:
            The validated channel configuration.

        Raises:
            InvalidCertificateError: If any input is malformed, or the key does
                not belong to the certificate.
            ConfigurationError: If the configured CA file cannot be read.
        """
        ca_pem = self.load_ca_bundle() if ca_bundle_pem is None else _as_bytes(ca_bundle_pem)
        cert_pem = _as_bytes(client_cert_pem)
        key_pem = _as_bytes(client_key_pem)

        try:
            trusted = tuple(x509.load_pem_x509_certificates(ca_pem))
        except ValueError as e:
            raise InvalidCertificateError(f"Invalid CA bundle: {e}") from e
        if not trusted:
            raise InvalidCertificateError("CA bundle contains no certificates")

        try:
            certificate = x509.load_pem_x509_certificate(cert_pem)
        except ValueError as e:
            raise InvalidCertificateError(f"Invalid client certificate: {e}") from e

        try:
            private_key = serialization.load_pem_private_key(key_pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise InvalidCertificateError(f"Invalid client key: {e}") from e

        if _public_key_der(certificate.public_key()) != _public_key_der(private_key.public_key()):
            raise InvalidCertificateError(
                "Client certificate and key do not match"
            )

        names = _server_names(certificate)
        logger.debug(
            "Validated client certificate (serial=%x, names=%s) against %d CA certificate(s)",
            certificate.serial_number,
            ", ".join(names) or "-",
            len(trusted),
        )

        return SecureChannelConfig(
            trusted_ca=trusted,
            ca_bundle_pem=ca_pem,
            client_certificate=certificate,
            client_cert_pem=cert_pem,
            client_key_pem=key_pem,
            server_names=names,
        )
