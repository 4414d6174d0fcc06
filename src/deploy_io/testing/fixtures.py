"""Pytest fixtures for testing code built on the deploy.io client."""

from __future__ import annotations

from pathlib import Path

import pytest

from ..api.models import HostDescriptor
from ..auth.store import CredentialStore
from ..config import DeployConfig
from ..context import DeployContext
from ..gateway.launcher import DockerGatewayLauncher
from ..tls.channel import SecureChannelBuilder
from .mocks import MockAuthClient, MockExecutor, MockPrompter
from .pki import SamplePKI, make_sample_pki


@pytest.fixture(scope="session")
def sample_pki() -> SamplePKI:
    """Pytest fixture providing a generated CA and client certificate/key.

    Generated once per test session.
    """
    return make_sample_pki()


@pytest.fixture
def ca_file(tmp_path: Path, sample_pki: SamplePKI) -> Path:
    """Pytest fixture writing ``sample_pki.ca_pem`` to a file, for ``DEPLOY_HOST_CA``."""
    path = tmp_path / "ca.pem"
    path.write_bytes(sample_pki.ca_pem)
    return path


@pytest.fixture
def sample_host(sample_pki: SamplePKI) -> HostDescriptor:
    """Pytest fixture providing the ``default`` host, carrying ``sample_pki`` material."""
    return HostDescriptor(
        id="h-1",
        name="default",
        address="203.0.113.10",
        port=2376,
        size=512,
        client_cert_pem=sample_pki.cert_pem.decode("ascii"),
        client_key_pem=sample_pki.key_pem.decode("ascii"),
    )


@pytest.fixture
def fake_docker(tmp_path: Path) -> Path:
    """Pytest fixture creating an executable ``docker`` file on a private ``PATH`` dir.

    Returns:
        The directory to pass as ``search_path``.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    docker = bin_dir / "docker"
    docker.write_text("#!/bin/sh\nexit 0\n")
    docker.chmod(0o755)
    return bin_dir


@pytest.fixture
def secrets_dir(tmp_path: Path) -> Path:
    """Pytest fixture providing an empty directory for provisioned TLS files."""
    path = tmp_path / "secrets"
    path.mkdir()
    return path


@pytest.fixture
def mock_executor() -> MockExecutor:
    """Pytest fixture providing a ``MockExecutor`` that reports success."""
    return MockExecutor()


@pytest.fixture
def mock_context(
    tmp_path: Path,
    ca_file: Path,
    sample_host: HostDescriptor,
    fake_docker: Path,
    secrets_dir: Path,
    mock_executor: MockExecutor,
) -> DeployContext:
    """Pytest fixture providing a fully wired ``DeployContext`` with no I/O.

    Uses a ``MockAuthClient`` serving ``sample_host``, a credential cache
    under ``tmp_path``, a ``MockPrompter`` for ``alice``, and a launcher
    whose executor is ``mock_executor``.
    """
    config = DeployConfig(
        api_url="http://api.test",
        home=tmp_path / "home",
        host_ca_path=ca_file,
    )
    client = MockAuthClient(hosts={sample_host.name: sample_host}, endpoint=config.endpoint)
    store = CredentialStore(config.key_dir, login=client.login, prompter=MockPrompter())
    launcher = DockerGatewayLauncher(
        SecureChannelBuilder(ca_path=ca_file),
        executor=mock_executor,
        search_path=str(fake_docker),
        temp_dir=secrets_dir,
    )
    return DeployContext(config=config, client=client, store=store, launcher=launcher)
