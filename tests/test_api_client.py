"""Tests for the API client and response decoding."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from deploy_io.api.client import AuthClient, check_status, decode_response
from deploy_io.api.models import HostDescriptor, HostList
from deploy_io.auth.credentials import Credential, Endpoint
from deploy_io.errors import (
    APIError,
    APIUnavailableError,
    AuthError,
    HostNotFoundError,
    ResponseDecodeError,
)

CRED = Credential(username="bob", secret_key="xyz")

HOST_JSON = {
    "_id": "h-1",
    "Name": "default",
    "ipv4_address": "203.0.113.10",
    "Size": 512,
    "client_cert": "CERT",
    "client_key": "KEY",
    "URL": "http://api.test/hosts/default",
}


def _response(status: int, body, url: str = "http://api.test/x") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return AuthClient(Endpoint("http://api.test"), session=session)


class TestCheckStatus:
    def test_2xx_ok(self):
        check_status(_response(200, ""))
        check_status(_response(204, ""))

    def test_detail_message(self):
        with pytest.raises(APIError) as exc_info:
            check_status(_response(403, {"detail": "bad credentials"}))
        assert exc_info.value.status == 403
        assert exc_info.value.message == "bad credentials"

    def test_raw_body_fallback(self):
        with pytest.raises(APIError) as exc_info:
            check_status(_response(500, "Internal Server Error"))
        assert exc_info.value.message == "Internal Server Error"
        assert exc_info.value.status == 500

    def test_non_string_detail(self):
        with pytest.raises(APIError) as exc_info:
            check_status(_response(422, {"detail": [{"msg": "Invalid value"}]}))
        assert "Invalid value" in exc_info.value.message

    def test_3xx_is_error(self):
        with pytest.raises(APIError):
            check_status(_response(302, ""))

    def test_404_is_plain_api_error(self):
        with pytest.raises(APIError) as exc_info:
            check_status(_response(404, {"detail": "nope"}))
        assert not isinstance(exc_info.value, HostNotFoundError)


class TestDecodeResponse:
    def test_decodes_model(self):
        hosts = decode_response(_response(200, {"Data": [HOST_JSON]}), HostList)
        assert hosts.data[0].name == "default"

    def test_non_json_success_body(self):
        with pytest.raises(ResponseDecodeError) as exc_info:
            decode_response(_response(200, "<html>oops</html>"), HostList)
        assert exc_info.value.status == 200

    def test_wrong_shape(self):
        with pytest.raises(ResponseDecodeError):
            decode_response(_response(200, {"Data": "not-a-list"}), HostList)


class TestLogin:
    def test_form_post(self, client, session):
        session.post.return_value = _response(
            200, {"session": {"username": "alice", "key": "abc123"}}
        )

        cred = client.login("alice", "s3cret")

        assert cred == Credential("alice", "abc123")
        args, kwargs = session.post.call_args
        assert args[0] == "http://api.test/login"
        assert kwargs["data"] == {"username": "alice", "password": "s3cret"}
        assert kwargs["headers"]["User-Agent"].startswith("deploy.io/")

    def test_rejected_login_uses_detail(self, client, session):
        session.post.return_value = _response(403, {"detail": "bad credentials"})

        with pytest.raises(AuthError) as exc_info:
            client.login("alice", "wrong")
        assert str(exc_info.value) == "bad credentials"

    def test_unreachable(self, client, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(AuthError, match="Could not reach"):
            client.login("alice", "s3cret")

    def test_empty_key(self, client, session):
        session.post.return_value = _response(200, {"session": {"username": "alice", "key": ""}})

        with pytest.raises(AuthError):
            client.login("alice", "s3cret")

    def test_password_not_logged(self, client, session, caplog):
        caplog.set_level("DEBUG", logger="deploy_io")
        session.post.return_value = _response(
            200, {"session": {"username": "alice", "key": "abc123"}}
        )
        client.login("alice", "s3cret")
        assert "s3cret" not in caplog.text
        assert "abc123" not in caplog.text


class TestHosts:
    def test_list_hosts(self, client, session):
        session.request.return_value = _response(200, {"Data": [HOST_JSON]})

        hosts = client.list_hosts(CRED)

        assert [h.name for h in hosts] == ["default"]
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://api.test/hosts")
        assert kwargs["auth"] == ("bob", "xyz")
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert "User-Agent" in kwargs["headers"]

    def test_list_hosts_null_data(self, client, session):
        session.request.return_value = _response(200, {"Data": None})
        assert client.list_hosts(CRED) == []

    def test_get_host(self, client, session):
        session.request.return_value = _response(200, HOST_JSON)

        host = client.get_host(CRED, "default")

        assert host.address == "203.0.113.10"
        assert host.client_cert_pem == "CERT"
        assert session.request.call_args[0] == ("GET", "http://api.test/hosts/default")

    def test_get_host_quotes_name(self, client, session):
        session.request.return_value = _response(200, HOST_JSON)
        client.get_host(CRED, "a/b")
        assert session.request.call_args[0][1] == "http://api.test/hosts/a%2Fb"

    def test_get_host_not_found(self, client, session):
        session.request.return_value = _response(404, {"detail": "Host not found"})

        with pytest.raises(HostNotFoundError) as exc_info:
            client.get_host(CRED, "web")
        assert exc_info.value.status == 404

    def test_get_host_other_error(self, client, session):
        session.request.return_value = _response(401, {"detail": "unauthorized"})

        with pytest.raises(APIError) as exc_info:
            client.get_host(CRED, "web")
        assert not isinstance(exc_info.value, HostNotFoundError)
        assert exc_info.value.status == 401

    def test_create_host(self, client, session):
        session.request.return_value = _response(201, HOST_JSON)

        host = client.create_host(CRED, "default", 512)

        assert host.name == "default"
        args, kwargs = session.request.call_args
        assert args == ("POST", "http://api.test/hosts")
        assert json.loads(kwargs["data"]) == {"name": "default", "size": 512}

    def test_create_host_conflict(self, client, session):
        session.request.return_value = _response(400, {"detail": "Host default already exists"})

        with pytest.raises(APIError, match="already exists"):
            client.create_host(CRED, "default", 512)

    def test_delete_host(self, client, session):
        session.request.return_value = _response(204, "")
        client.delete_host(CRED, "default")
        assert session.request.call_args[0] == ("DELETE", "http://api.test/hosts/default")

    def test_delete_missing_host(self, client, session):
        session.request.return_value = _response(404, "")
        with pytest.raises(HostNotFoundError):
            client.delete_host(CRED, "web")

    def test_network_failure(self, client, session):
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(APIUnavailableError):
            client.list_hosts(CRED)


class TestHostDescriptor:
    def test_wire_aliases(self):
        host = HostDescriptor.model_validate(HOST_JSON)
        assert host.id == "h-1"
        assert host.size == 512
        assert host.port == 2376
        assert host.docker_url == "tcp://203.0.113.10:2376"

    def test_port_from_wire(self):
        host = HostDescriptor.model_validate({**HOST_JSON, "Port": 2377})
        assert host.docker_url == "tcp://203.0.113.10:2377"

    def test_repr_hides_key_material(self):
        host = HostDescriptor.model_validate(HOST_JSON)
        assert "KEY" not in repr(host)
        assert "CERT" not in repr(host)

    def test_unknown_fields_ignored(self):
        host = HostDescriptor.model_validate({**HOST_JSON, "extra": 1})
        assert host.name == "default"
