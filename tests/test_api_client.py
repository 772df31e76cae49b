"""
Tests for the backend API client with a mocked requests session.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from api_client import APIClient
from errors import AuthError, TransientNetworkError, ValidationError


def make_response(status, body=None, text=None):
    response = requests.Response()
    response.status_code = status
    response.url = "http://localhost:3000/test"
    if body is not None:
        response._content = json.dumps(body).encode()
    else:
        response._content = (text or "").encode()
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(config_manager, session):
    return APIClient(config_manager, session)


def test_success_returns_body(client, session):
    session.request.return_value = make_response(200, {"data": [{"id": "r1"}], "pagination": {"page": 2}})

    success, data = client.get_records("example.com", page=2, per_page=10, search="www")

    assert success
    assert data["data"] == [{"id": "r1"}]
    session.request.assert_called_once_with(
        "GET", "http://localhost:3000/api/dns/example.com",
        json=None, params={"page": 2, "per_page": 10, "search": "www"}, timeout=10,
    )


def test_401_is_an_auth_failure(client, session):
    session.request.return_value = make_response(401, {"message": "Unauthorized"})

    success, error = client.get_domains()

    assert not success
    assert error["kind"] == "auth"
    assert error["status"] == 401
    assert error["message"] == "Error 401: Unauthorized"


def test_http_error_includes_backend_error_detail(client, session):
    session.request.return_value = make_response(404, {"message": "Failed", "error": "Record does not exist"})

    success, error = client.delete_record("example.com", "r1")

    assert not success
    assert error["kind"] == "remote"
    assert error["message"] == "Error 404: Failed: Record does not exist"
    assert error["raw_response"]["error"] == "Record does not exist"


def test_success_false_body_is_a_remote_failure(client, session):
    body = {"success": False, "message": "Some deletes failed", "results": []}
    session.request.return_value = make_response(200, body)

    success, error = client.delete_records_bulk("example.com", ["r1"])

    assert not success
    assert error["kind"] == "remote"
    assert error["raw_response"] == body
    args, kwargs = session.request.call_args
    assert args == ("DELETE", "http://localhost:3000/api/dns/example.com/bulk")
    assert kwargs["json"] == {"record_ids": ["r1"]}


def test_connection_error_is_transient(client, session):
    session.request.side_effect = requests.exceptions.ConnectionError("refused")

    success, error = client.validate_credentials("a@example.com", "key")

    assert not success
    assert error["kind"] == "transient_network"
    assert client.is_online is False


def test_timeout_is_transient(client, session):
    session.request.side_effect = requests.exceptions.Timeout()

    success, error = client.apply_records("example.com", "A|www|192.0.2.1")

    assert not success
    assert error["kind"] == "transient_network"


def test_validate_credentials_payload(client, session):
    session.request.return_value = make_response(200, {"success": True, "message": "API credentials validated successfully"})

    success, data = client.validate_credentials("a@example.com", "key")

    assert success
    session.request.assert_called_once_with(
        "POST", "http://localhost:3000/validate-api",
        json={"email": "a@example.com", "apiKey": "key"}, params=None, timeout=10,
    )


def test_api_url_comes_from_config(config_manager, session):
    config_manager.set_api_url("https://console.example.net/")
    session.request.return_value = make_response(200, {})
    APIClient(config_manager, session).get_domains()

    assert session.request.call_args[0][1] == "https://console.example.net/api/domains"


def test_unsupported_method_is_a_validation_failure(client, session):
    success, error = client._make_request("PATCH", "/api/domains")

    assert not success
    assert error["kind"] == "validation"
    assert error["message"] == "Unsupported HTTP method: PATCH"
    session.request.assert_not_called()


def test_send_raises_typed_errors(client, session):
    session.request.return_value = make_response(401, {"message": "Unauthorized"})
    with pytest.raises(AuthError) as excinfo:
        client._send("GET", "/api/domains")
    assert excinfo.value.code == "http_401"
    assert excinfo.value.to_dict()["kind"] == "auth"

    session.request.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(TransientNetworkError):
        client._send("GET", "/api/domains")

    with pytest.raises(ValidationError):
        client._send("PATCH", "/api/domains")


def test_last_error_tracks_the_failure_message(client, session):
    session.request.side_effect = requests.exceptions.Timeout()

    client.get_domains()

    assert client.last_error == "Request timed out. Please try again later."
