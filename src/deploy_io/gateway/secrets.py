"""Scoped secret files: TLS material on disk for exactly one command.

Both helpers are context managers. Files are created owner-only, with
names unique to the invocation, and removed when the ``with`` block exits,
whether it exits normally, with an error, or part-way through writing.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from ..errors import StorageError
from ..tls.channel import SecureChannelConfig

logger = logging.getLogger(__name__)

_PREFIX = "deploy-"


@dataclass(frozen=True)
class SecretFiles:
    """Paths of the provisioned CA bundle, client certificate and key."""

    ca: Path
    cert: Path
    key: Path

    def paths(self) -> tuple[Path, Path, Path]:
        return (self.ca, self.cert, self.key)


@dataclass(frozen=True)
class CertificateDirectory:
    """A private directory laid out the way ``DOCKER_CERT_PATH`` expects."""

    path: Path

    @property
    def ca(self) -> Path:
        return self.path / "ca.pem"

    @property
    def cert(self) -> Path:
        return self.path / "cert.pem"

    @property
    def key(self) -> Path:
        return self.path / "key.pem"


def _write_private(path: Path, data: bytes, fd: int | None = None) -> None:
    if fd is None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


@contextmanager
def provision_secret_files(
    channel: SecureChannelConfig,
    temp_dir: str | Path | None = None,
) -> Iterator[SecretFiles]:
    """Write the channel's CA bundle, certificate and key to temp files.

    Args:
        channel: Validated TLS material.
        temp_dir: Directory for the files. Defaults to the system temp dir.

    Yields:
        The three file paths.

    Raises:
        StorageError: If a file cannot be created or written. Files already
            created are removed first.
    """
    created: list[Path] = []
    try:
        try:
            for label, data in (
                ("ca", channel.ca_bundle_pem),
                ("cert", channel.client_cert_pem),
                ("key", channel.client_key_pem),
            ):
                fd, name = tempfile.mkstemp(prefix=f"{_PREFIX}{label}-", suffix=".pem", dir=temp_dir)
                path = Path(name)
                created.append(path)
                _write_private(path, data, fd=fd)
        except OSError as e:
            raise StorageError(f"Failed to write TLS material to a temp file: {e}") from e

        logger.debug("Provisioned TLS material in %s", ", ".join(str(p) for p in created))
        yield SecretFiles(*created)
    finally:
        for path in created:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)
        logger.debug("Released %d TLS file(s)", len(created))


@contextmanager
def provision_certificate_directory(
    channel: SecureChannelConfig,
    temp_dir: str | Path | None = None,
) -> Iterator[CertificateDirectory]:
    """Write the channel's material as ``ca.pem``/``cert.pem``/``key.pem`` in a private dir.

    Used when the wrapped command reads ``DOCKER_CERT_PATH`` rather than
    accepting TLS flags.

    Raises:
        StorageError: If the directory or a file cannot be written.
    """
    path: Path | None = None
    try:
        try:
            path = Path(tempfile.mkdtemp(prefix=_PREFIX, dir=temp_dir))
            directory = CertificateDirectory(path)
            _write_private(directory.ca, channel.ca_bundle_pem)
            _write_private(directory.cert, channel.client_cert_pem)
            _write_private(directory.key, channel.client_key_pem)
        except OSError as e:
            raise StorageError(f"Failed to write TLS material to a temp directory: {e}") from e

        logger.debug("Provisioned TLS material in %s", path)
        yield directory
    finally:
        if path is not None:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Released %s", path)
