"""Error hierarchy for the deploy.io client.

Exit code ranges:
- 10-19: Authentication errors
- 20-29: Credential storage errors
- 30-39: API errors
- 40-49: Validation errors
- 50-59: TLS material errors
- 70-79: External tool errors

``SubprocessFailedError`` is the exception to the ranges: it carries the
child's own exit status so ``deploy docker`` exits the way ``docker`` did.
"""

from __future__ import annotations


class DeployError(Exception):
    """Base error for all deploy.io client errors.

    Every subclass defines a class-level ``exit_code`` so the CLI can map
    exceptions to process exit codes automatically.

    Attributes:
        exit_code: Process exit code returned when this error reaches
            ``main()``. Defaults to ``1``.

    Args:
        message: Human-readable error description.
        exit_code: Override the class-level exit code for this instance.
    """

    exit_code: int = 1

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


# ============================================================================
# Authentication errors (10-19)
# ============================================================================


class AuthError(DeployError):
    """Login or credential exchange failed.

    The message is what the API said (its ``detail`` field when present),
    so it can be shown to the user as-is.
    """

    exit_code = 10


# ============================================================================
# Credential storage errors (20-29)
# ============================================================================


class StorageError(DeployError):
    """The credential cache directory or file could not be read or written."""

    exit_code = 20


class CacheCorruptError(StorageError):
    """A cached credential file does not hold ``username:secret_key``.

    Delete the file to force a fresh login.
    """

    exit_code = 21


# ============================================================================
# API errors (30-39)
# ============================================================================


class APIError(DeployError):
    """The deploy.io API rejected a request.

    Attributes:
        status: HTTP status code (``0`` when no response was received).
        message: Server-provided explanation, or the raw response body.
    """

    exit_code = 30

    def __init__(
        self,
        message: str,
        *,
        status: int = 0,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code=exit_code)
        self.status = status
        self.message = message


class HostNotFoundError(APIError):
    """The requested host does not exist (HTTP 404)."""

    exit_code = 31


class APIUnavailableError(APIError):
    """The API could not be reached (connection refused, DNS, timeout)."""

    exit_code = 32


class ResponseDecodeError(APIError):
    """A successful response carried a body that is not the expected JSON."""

    exit_code = 33


# ============================================================================
# Validation errors (40-49)
# ============================================================================


class ValidationError(DeployError):
    """Base validation error (exit codes 40–49)."""

    exit_code = 40


class ConfigurationError(ValidationError):
    """Missing or invalid client configuration.

    Raised e.g. when ``DEPLOY_HOST_CA`` points at a file that cannot be read.
    """

    exit_code = 41


class InvalidHostSizeError(ValidationError):
    """A host memory size is not one the API supports."""

    exit_code = 42


# ============================================================================
# TLS material errors (50-59)
# ============================================================================


class CertificateError(DeployError):
    """Base error for TLS material problems (exit codes 50–59)."""

    exit_code = 50


class InvalidCertificateError(CertificateError):
    """A CA bundle, client certificate or key is malformed, or the pair does not match.

    This points at the server or the transport, not at anything the user did.
    """

    exit_code = 51


# ============================================================================
# External tool errors (70-79)
# ============================================================================


class ExternalToolError(DeployError):
    """Base external tool error (exit codes 70–79).

    Raised when the local Docker CLI (or another wrapped command) cannot
    be run or fails.
    """

    exit_code = 70


class ExecutableNotFoundError(ExternalToolError):
    """The wrapped executable is not on the search path."""

    exit_code = 71


class SubprocessLaunchError(ExternalToolError):
    """The wrapped executable was found but could not be started."""

    exit_code = 72


class SubprocessFailedError(ExternalToolError):
    """The wrapped command exited with a non-zero status.

    The instance ``exit_code`` is the child's status so it propagates as the
    command's own.

    Attributes:
        returncode: The process exit code.
    """

    exit_code = 73

    def __init__(
        self,
        message: str,
        *,
        returncode: int = 1,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code=exit_code if exit_code is not None else returncode)
        self.returncode = returncode
