"""Structured logging configuration for the deploy.io client.

Uses ``structlog`` for human-readable console output by default and
machine-readable JSON output when scripting (``--log-format json``).
Everything goes to stderr so it never mixes with Docker's own stdout.

Usage::

    from deploy_io.logging import configure_logging, get_logger

    configure_logging(log_format="json", verbose=True)
    logger = get_logger(__name__)
    logger.info("host_resolved", host="default")
"""

from __future__ import annotations

import logging
import sys

import structlog

_SECRET_FIELDS = frozenset({"password", "secret_key", "api_key", "client_key_pem", "authorization"})
_REDACTED = "<redacted>"


def redact_secrets(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Replace the value of any secret-bearing key with ``<redacted>``."""
    for key in _SECRET_FIELDS.intersection(event_dict):
        event_dict[key] = _REDACTED
    return event_dict


def configure_logging(
    log_format: str = "text",
    verbose: bool = False,
) -> None:
    """Configure structured logging for the client.

    Called once by the CLI before dispatching a command.

    Args:
        log_format: ``"json"`` for machine-readable output, ``"text"``
            for human-readable console output.
        verbose: If ``True``, set log level to ``DEBUG``; otherwise ``WARNING``
            so interactive commands stay quiet.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    # Basic auth headers show up in urllib3 debug output
    for name in ("requests", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog BoundLogger wrapping a stdlib logger.

    Args:
        name: Logger name, typically ``__name__``.

    Returns:
        A ``structlog.stdlib.BoundLogger`` instance.
    """
    return structlog.get_logger(name)
