"""Command-line interface: the ``deploy`` command.

Host management, and running Docker (or any Docker-aware tool) against a
remote host over mutual TLS.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from ..api.models import HostDescriptor
from ..auth.store import Prompter
from ..config import DEFAULT_HOST_NAME, DeployConfig
from ..context import DeployContext
from ..errors import (
    APIError,
    DeployError,
    HostNotFoundError,
    InvalidHostSizeError,
    SubprocessFailedError,
    ValidationError,
)
from ..logging import configure_logging
from ..utils import capitalize, human_host_name, human_size, ram_in_bytes

logger = logging.getLogger(__name__)

VALID_SIZES = "512M, 1G, 2G, 4G and 8G"
MIB = 1024 * 1024


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="deploy",
        description="Deploy.IO command-line client.",
        epilog="Run 'deploy COMMAND -h' for more information on a command.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Deploy {__version__}",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging on stderr",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log output format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Docker command
    docker_parser = subparsers.add_parser(
        "docker",
        help="Run a Docker command against a host",
        description=(
            "Wraps the 'docker' command-line tool. You can optionally specify a "
            "host by name - if you don't, the default host will be used."
        ),
    )
    docker_parser.add_argument(
        "-H",
        dest="host",
        metavar="HOST",
        default=DEFAULT_HOST_NAME,
        help="Host to run against (default: default)",
    )
    docker_parser.add_argument(
        "docker_args",
        nargs=argparse.REMAINDER,
        metavar="COMMAND",
        help="Arguments passed to docker",
    )

    # Hosts command group
    hosts_parser = subparsers.add_parser(
        "hosts",
        help="Manage hosts",
        description="Manage hosts. Lists hosts when no subcommand is given.",
    )
    hosts_subparsers = hosts_parser.add_subparsers(
        dest="hosts_command",
        help="Host commands",
    )
    hosts_subparsers.add_parser("ls", help="List hosts (default)")

    create_host = hosts_subparsers.add_parser(
        "create",
        help="Create a host",
        description=(
            "Create a host. If no name is given it is named 'default', and "
            "'deploy docker' commands will use it automatically. "
            f"Valid memory sizes are {VALID_SIZES}."
        ),
    )
    create_host.add_argument("name", nargs="?", default=DEFAULT_HOST_NAME)
    create_host.add_argument(
        "-m",
        dest="memory",
        metavar="MEMORY",
        default="512M",
        help="Memory size (default: 512M)",
    )

    remove_host = hosts_subparsers.add_parser(
        "rm",
        help="Remove a host",
        description=(
            "Remove a host. If no name is given the default host is removed."
        ),
    )
    remove_host.add_argument("name", nargs="?", default=DEFAULT_HOST_NAME)
    remove_host.add_argument(
        "-f",
        dest="force",
        action="store_true",
        help="Skip the confirmation step, at your peril",
    )

    # IP command
    ip_parser = subparsers.add_parser(
        "ip",
        help="Print a host's IP address to stdout",
    )
    ip_parser.add_argument("name", nargs="?", default=DEFAULT_HOST_NAME)

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a command with the DOCKER_HOST envvar set",
        description=(
            "Run a command locally with DOCKER_HOST, DOCKER_TLS_VERIFY and "
            "DOCKER_CERT_PATH pointing at a host, e.g. 'deploy run docker compose up'."
        ),
    )
    run_parser.add_argument(
        "-H",
        dest="host",
        metavar="HOST",
        default=DEFAULT_HOST_NAME,
        help="Host to run against (default: default)",
    )
    run_parser.add_argument(
        "run_args",
        nargs=argparse.REMAINDER,
        metavar="COMMAND",
        help="Command and arguments to run",
    )

    # Proxy command
    proxy_parser = subparsers.add_parser(
        "proxy",
        help="Start a local proxy to a host's Docker daemon",
    )
    proxy_parser.add_argument(
        "-H",
        dest="host",
        metavar="HOST",
        default=DEFAULT_HOST_NAME,
    )
    proxy_parser.add_argument("listen_url", nargs="?", metavar="LISTEN_URL")

    return parser


def format_hosts_table(hosts: list[HostDescriptor]) -> str:
    """Format hosts as an ``ID NAME SIZE IP`` table, one line per host."""
    rows = [("ID", "NAME", "SIZE", "IP")]
    for host in hosts:
        rows.append((host.id, host.name, human_size(host.size * MIB), host.address))

    widths = [max(20, max(len(row[i]) for row in rows) + 3) for i in range(3)]
    lines = []
    for row in rows:
        cells = [cell.ljust(width) for cell, width in zip(row[:3], widths)]
        lines.append("".join(cells) + row[3])
    return "\n".join(lines)


def parse_host_size(value: str) -> int:
    """Convert a ``-m`` value such as ``1G`` to whole megabytes.

    Raises:
        InvalidHostSizeError: If the value is not a size or is under 1 MB.
    """
    megs = ram_in_bytes(value) // MIB
    if megs < 1:
        raise InvalidHostSizeError(f"Invalid size: {value!r}")
    return megs


def cmd_docker(context: DeployContext, args: argparse.Namespace) -> int:
    host = context.get_host(args.host)
    return context.launcher.run(host, args.docker_args)


def cmd_run(context: DeployContext, args: argparse.Namespace) -> int:
    if not args.run_args:
        raise ValidationError("`deploy run` expects a command to run")
    host = context.get_host(args.host)
    return context.launcher.run_command(host, args.run_args)


def cmd_ip(context: DeployContext, args: argparse.Namespace) -> int:
    host = context.get_host(args.name)
    print(host.address)
    return 0


def cmd_proxy(context: DeployContext, args: argparse.Namespace) -> int:
    print(
        "Error: `deploy proxy` is not available in this client.\n"
        f"Use `deploy run -H {args.host} COMMAND` to point a local tool at the host.",
        file=sys.stderr,
    )
    return 1


def cmd_hosts(context: DeployContext, args: argparse.Namespace) -> int:
    """Dispatch ``hosts``, ``hosts ls``, ``hosts create`` and ``hosts rm``."""
    if args.hosts_command in (None, "ls"):
        print(format_hosts_table(context.list_hosts()))
        return 0

    if args.hosts_command == "create":
        return _create_host(context, args)

    if args.hosts_command == "rm":
        return _remove_host(context, args)

    print(f"Unknown `hosts` subcommand: {args.hosts_command}", file=sys.stderr)
    return 1


def _create_host(context: DeployContext, args: argparse.Namespace) -> int:
    human_name = capitalize(human_host_name(args.name))

    try:
        size = parse_host_size(args.memory)
    except InvalidHostSizeError:
        print(
            f"Sorry, {args.memory!r} isn't a size we support.\nValid sizes are {VALID_SIZES}.",
            file=sys.stderr,
        )
        return 1

    try:
        host = context.create_host(args.name, size)
    except APIError as e:
        if "already exists" in e.message:
            print(
                f"{human_name} is already running.\n"
                "You can create additional hosts with `deploy hosts create [NAME]`.",
                file=sys.stderr,
            )
            return 1
        if "Invalid value" in e.message:
            print(
                f"Sorry, '{args.name}' isn't a valid host name.\n"
                "Host names can only contain lowercase letters, numbers and underscores.",
                file=sys.stderr,
            )
            return 1
        if "Unsupported size" in e.message:
            print(
                f"Sorry, {args.memory!r} isn't a size we support.\nValid sizes are {VALID_SIZES}.",
                file=sys.stderr,
            )
            return 1
        raise

    print(f"{human_name} running at {host.address}", file=sys.stderr)
    return 0


def _remove_host(context: DeployContext, args: argparse.Namespace) -> int:
    human_name = human_host_name(args.name)

    if not args.force:
        print(f"Going to remove {human_name}. All data on it will be lost.")
        try:
            confirm = input("Are you sure you're ready? [yN] ")
        except EOFError:
            confirm = ""
        if confirm.strip().lower() != "y":
            return 0

    try:
        context.delete_host(args.name)
    except HostNotFoundError:
        print(
            f"{capitalize(human_name)} doesn't seem to be running.\n"
            "You can view your running hosts with `deploy hosts`.",
            file=sys.stderr,
        )
        return 1

    print(f"Removed {human_name}", file=sys.stderr)
    return 0


COMMANDS = {
    "docker": cmd_docker,
    "hosts": cmd_hosts,
    "ip": cmd_ip,
    "proxy": cmd_proxy,
    "run": cmd_run,
}


def main(
    args: list[str] | None = None,
    config: DeployConfig | None = None,
    prompter: Prompter | None = None,
) -> int:
    """Entry point for the ``deploy`` console script.

    Args:
        args: Command-line arguments. Defaults to ``sys.argv[1:]``.
        config: Client configuration. Defaults to the process environment.
        prompter: Interactive credential source. Defaults to the terminal.

    Returns:
        Exit code: 0 on success, the wrapped command's status when it
        fails, otherwise the raised error's ``exit_code``.
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if config is None:
        config = DeployConfig.from_environment()
    configure_logging(
        log_format=parsed_args.log_format or config.log_format,
        verbose=parsed_args.verbose or config.verbose,
    )

    if parsed_args.command is None:
        parser.print_help()
        return 0

    handler = COMMANDS.get(parsed_args.command)
    if handler is None:
        # Unknown command (shouldn't happen with argparse)
        print(f"Unknown command: {parsed_args.command}", file=sys.stderr)
        return 1

    context = DeployContext.from_config(config, prompter=prompter)
    try:
        return handler(context, parsed_args)
    except KeyboardInterrupt:
        return 130
    except SubprocessFailedError as e:
        # the child has already reported its own error
        logger.debug("%s", e)
        return e.exit_code
    except DeployError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
