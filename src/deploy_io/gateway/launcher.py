"""DockerGatewayLauncher: run the local Docker CLI against a remote host over mutual TLS."""

from __future__ import annotations

import enum
import logging
import os
import shutil
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path

from ..api.models import HostDescriptor
from ..errors import ExecutableNotFoundError, SubprocessFailedError
from ..tls.channel import SecureChannelBuilder, SecureChannelConfig
from .process import Executor, execute
from .secrets import provision_certificate_directory, provision_secret_files

logger = logging.getLogger(__name__)

DOCKER_INSTALL_URL = "https://docs.docker.com/engine/install/"


class GatewayState(enum.Enum):
    """Lifecycle of one launcher invocation."""

    IDLE = "idle"
    CERTS_PROVISIONED = "certs_provisioned"
    SUBPROCESS_RUNNING = "subprocess_running"
    COMPLETED = "completed"
    FAILED = "failed"
    CERTS_RELEASED = "certs_released"


class DockerGatewayLauncher:
    """Runs a local command configured to talk to a host's Docker daemon.

    For each invocation the host's TLS material is validated, written to
    owner-only temp files, passed to the child, and removed again once the
    child exits, on every path out of ``run``.

    Args:
        channel_builder: Validates the host's certificate material.
        executable: Docker CLI to wrap, looked up on ``search_path``.
        executor: Runs the child; see ``deploy_io.gateway.process.execute``.
        search_path: ``PATH``-style lookup string. Defaults to ``$PATH``.
        temp_dir: Where to put the secret files. Defaults to the system temp dir.
        base_env: Environment the child inherits. Defaults to ``os.environ``.

    Attributes:
        state: Where the most recent invocation got to; ``CERTS_RELEASED``
            once it has returned, however it ended.
        outcome: ``COMPLETED`` or ``FAILED`` once the invocation has ended.
            ``FAILED`` also covers failures before the child starts.
    """

    def __init__(
        self,
        channel_builder: SecureChannelBuilder,
        executable: str = "docker",
        executor: Executor = execute,
        search_path: str | None = None,
        temp_dir: str | Path | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._channel_builder = channel_builder
        self._executable = executable
        self._executor = executor
        self._search_path = search_path
        self._temp_dir = temp_dir
        self._base_env = base_env
        self.state = GatewayState.IDLE
        self.outcome: GatewayState | None = None

    def locate(self, name: str | None = None) -> str:
        """Return the absolute path of ``name`` (default: the Docker CLI).

        Raises:
            ExecutableNotFoundError: If it is not on the search path.
        """
        name = name or self._executable
        path = shutil.which(name, path=self._search_path)
        if path is None:
            if name == self._executable:
                raise ExecutableNotFoundError(
                    f"Can't find `{name}` executable in $PATH.\n"
                    f"You might need to install it: {DOCKER_INSTALL_URL}"
                )
            raise ExecutableNotFoundError(f"Can't find `{name}` executable in $PATH.")
        return path

    def run(self, host: HostDescriptor, command_args: Sequence[str]) -> int:
        """Run ``docker <command_args>`` against ``host``.

        Returns:
            ``0`` when the Docker CLI succeeds.

        Raises:
            ExecutableNotFoundError: If the Docker CLI is missing. Nothing has
                been written to disk at that point.
            InvalidCertificateError: If the host's TLS material is unusable.
            SubprocessFailedError: If the Docker CLI exits non-zero; its
                ``exit_code`` is the CLI's status.
        """
        with self._invocation():
            docker_path = self.locate()
            channel = self._build_channel(host)

            with provision_secret_files(channel, temp_dir=self._temp_dir) as files:
                self._transition(GatewayState.CERTS_PROVISIONED)
                args = [
                    "--tlsverify",
                    f"--tlscacert={files.ca}",
                    f"--tlscert={files.cert}",
                    f"--tlskey={files.key}",
                    *command_args,
                ]
                return self._execute(docker_path, args, self._child_env(host))

    def run_command(self, host: HostDescriptor, argv: Sequence[str]) -> int:
        """Run an arbitrary command with ``DOCKER_*`` variables pointing at ``host``.

        The TLS material goes in a private ``DOCKER_CERT_PATH`` directory, so
        any Docker-aware tool (``docker compose``, ``fig``) works unchanged.

        Raises:
            ExecutableNotFoundError: If ``argv[0]`` is not on the search path.
            SubprocessFailedError: If the command exits non-zero.
        """
        if not argv:
            raise ValueError("run_command needs a command to run")

        with self._invocation():
            command_path = self.locate(argv[0])
            channel = self._build_channel(host)

            with provision_certificate_directory(channel, temp_dir=self._temp_dir) as cert_dir:
                self._transition(GatewayState.CERTS_PROVISIONED)
                env = self._child_env(host)
                env["DOCKER_CERT_PATH"] = str(cert_dir.path)
                return self._execute(command_path, list(argv[1:]), env)

    @contextmanager
    def _invocation(self) -> Iterator[None]:
        """Reset state, then end in ``CERTS_RELEASED`` on every path out."""
        self._reset()
        try:
            yield
        except BaseException:
            if self.outcome is None:
                self._finish(GatewayState.FAILED)
            raise
        finally:
            self._transition(GatewayState.CERTS_RELEASED)

    def _build_channel(self, host: HostDescriptor) -> SecureChannelConfig:
        return self._channel_builder.build(None, host.client_cert_pem, host.client_key_pem)

    def _child_env(self, host: HostDescriptor) -> dict[str, str]:
        env = dict(os.environ if self._base_env is None else self._base_env)
        env.pop("DOCKER_CERT_PATH", None)
        env["DOCKER_HOST"] = host.docker_url
        env["DOCKER_TLS_VERIFY"] = "1"
        return env

    def _execute(self, path: str, args: list[str], env: dict[str, str]) -> int:
        self._transition(GatewayState.SUBPROCESS_RUNNING)
        logger.debug("Running %s against %s", path, env["DOCKER_HOST"])
        try:
            returncode = self._executor(path, args, env)
        except BaseException:
            self._finish(GatewayState.FAILED)
            raise

        if returncode != 0:
            self._finish(GatewayState.FAILED)
            raise SubprocessFailedError(
                f"{Path(path).name} exited with status {returncode}",
                returncode=returncode,
            )
        self._finish(GatewayState.COMPLETED)
        return 0

    def _reset(self) -> None:
        self.state = GatewayState.IDLE
        self.outcome = None

    def _finish(self, outcome: GatewayState) -> None:
        self.outcome = outcome
        self._transition(outcome)

    def _transition(self, state: GatewayState) -> None:
        logger.debug("Gateway state %s -> %s", self.state.value, state.value)
        self.state = state
