"""AuthClient: login exchange and host lookups against the deploy.io API."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TypeVar
from urllib.parse import quote

import pydantic
import requests

from .. import __version__
from ..auth.credentials import Credential, Endpoint
from ..errors import (
    APIError,
    APIUnavailableError,
    AuthError,
    HostNotFoundError,
    ResponseDecodeError,
)
from .models import HostDescriptor, HostList, LoginResponse

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30  # seconds

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _explain(response: requests.Response) -> str:
    """Return the API's ``detail`` message, or the raw body."""
    body = response.text
    try:
        payload = json.loads(body)
    except ValueError:
        return body
    if isinstance(payload, dict) and payload.get("detail") is not None:
        detail = payload["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail)
    return body


def decode_response(response: requests.Response, model: type[ModelT]) -> ModelT:
    """Decode a JSON API response into ``model``.

    Args:
        response: Response to decode.
        model: Pydantic model describing the expected body.

    Returns:
        The validated model instance.

    Raises:
        APIError: On a non-2xx status.
        ResponseDecodeError: If a 2xx body is not the expected JSON.
    """
    check_status(response)
    try:
        payload = response.json()
    except ValueError as e:
        raise ResponseDecodeError(
            f"Expected JSON from {response.url}, got: {response.text[:200]!r}",
            status=response.status_code,
        ) from e
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ResponseDecodeError(
            f"Unexpected response shape from {response.url}: {e}",
            status=response.status_code,
        ) from e


def check_status(response: requests.Response) -> None:
    """Raise ``APIError`` unless the response status is 2xx."""
    if 200 <= response.status_code < 300:
        return
    raise APIError(_explain(response), status=response.status_code)


@contextmanager
def _host_not_found(name: str) -> Iterator[None]:
    """Turn a 404 from a ``/hosts/{name}`` call into ``HostNotFoundError``."""
    try:
        yield
    except APIError as e:
        if e.status == 404:
            raise HostNotFoundError(e.message or f"Host not found: {name}", status=404) from e
        raise


class AuthClient:
    """HTTP client for the deploy.io API.

    ``login`` exchanges a username and password for an API key. Every other
    call authenticates with HTTP Basic auth using a resolved ``Credential``.
    Nothing is retried: a failure is reported once and the command ends.

    Args:
        endpoint: API server to talk to.
        session: ``requests.Session`` to use. A new one is created if omitted.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        session: requests.Session | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._endpoint = endpoint
        self._session = session or requests.Session()
        self._timeout = timeout
        self._user_agent = f"deploy.io/{__version__}"

    @property
    def endpoint(self) -> Endpoint:
        """API server this client talks to."""
        return self._endpoint

    def login(self, username: str, password: str) -> Credential:
        """Exchange a username and password for an API key.

        Returns:
            The credential issued by the server.

        Raises:
            AuthError: If the server is unreachable, rejects the login, or
                returns no key. The message is the server's explanation.
        """
        url = self._endpoint.url("/login")
        logger.debug("Logging in to %s as %s", url, username)
        try:
            response = self._session.post(
                url,
                data={"username": username, "password": password},
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Could not reach {self._endpoint.base_url}: {e}") from e

        try:
            result = decode_response(response, LoginResponse)
        except APIError as e:
            raise AuthError(e.message) from e

        if not result.session.key:
            raise AuthError("The API did not issue a key for this login")

        return Credential(username=result.session.username, secret_key=result.session.key)

    def list_hosts(self, credential: Credential) -> list[HostDescriptor]:
        """Return every host owned by ``credential``."""
        response = self._request("GET", "/hosts", credential)
        return decode_response(response, HostList).data or []

    def get_host(self, credential: Credential, name: str) -> HostDescriptor:
        """Return the host called ``name``.

        Raises:
            HostNotFoundError: If no such host exists.
        """
        response = self._request("GET", f"/hosts/{quote(name, safe='')}", credential)
        with _host_not_found(name):
            return decode_response(response, HostDescriptor)

    def create_host(self, credential: Credential, name: str, size_mb: int) -> HostDescriptor:
        """Create a host with ``size_mb`` megabytes of memory."""
        response = self._request(
            "POST", "/hosts", credential, body={"name": name, "size": size_mb}
        )
        return decode_response(response, HostDescriptor)

    def delete_host(self, credential: Credential, name: str) -> None:
        """Delete the host called ``name``."""
        response = self._request("DELETE", f"/hosts/{quote(name, safe='')}", credential)
        with _host_not_found(name):
            check_status(response)

    def _request(
        self,
        method: str,
        path: str,
        credential: Credential,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = self._endpoint.url(path)
        logger.debug("%s %s", method, url)
        try:
            return self._session.request(
                method,
                url,
                auth=credential.basic_auth(),
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self._user_agent,
                },
                data=json.dumps(body) if body is not None else None,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise APIUnavailableError(
                f"Could not reach {self._endpoint.base_url}: {e}"
            ) from e
