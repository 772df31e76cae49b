"""
Tests for the authentication session and its credential purging.
"""

from unittest.mock import MagicMock

import pytest

from auth_session import AuthSession
from conftest import auth_failure
from credential_store import CredentialStore


@pytest.fixture
def credential_store(storage, clock):
    return CredentialStore(storage, clock=clock)


@pytest.fixture
def session(qapp, credential_store):
    return AuthSession(MagicMock(), credential_store)


def test_login_with_remember_saves_credential(session, credential_store):
    session.api_client.validate_credentials.return_value = (True, {"success": True, "message": "OK"})

    success, message = session.login("a@example.com", "key", remember=True)

    assert success
    assert message == "OK"
    assert session.active_identifier == "a@example.com"
    assert credential_store.get("a@example.com").secret == "key"


def test_login_requires_both_fields(session):
    assert session.login("", "key") == (False, "Email and API Key are required")
    session.api_client.validate_credentials.assert_not_called()


def test_rejected_login_purges_stored_credential(session, credential_store):
    credential_store.save("a@example.com", "old-key")
    session.api_client.validate_credentials.return_value = (False, auth_failure("Error 401: Invalid API credentials"))

    success, message = session.login("a@example.com", "wrong")

    assert not success
    assert message == "Error 401: Invalid API credentials"
    assert credential_store.get("a@example.com") is None


def test_login_succeeds_even_if_save_fails(session, credential_store, monkeypatch):
    session.api_client.validate_credentials.return_value = (True, {"message": "OK"})
    monkeypatch.setattr(credential_store, "save", lambda identifier, secret: False)

    success, message = session.login("a@example.com", "key", remember=True)

    assert success
    assert message == "OK (credentials could not be saved)"


def test_test_stored_keeps_credential_on_network_failure(session, credential_store):
    credential_store.save("a@example.com", "key")
    session.api_client.validate_credentials.return_value = (
        False, {"message": "Connection error", "kind": "transient_network", "status": None, "raw_response": {}})

    success, _ = session.test_stored()

    assert not success
    assert credential_store.get("a@example.com") is not None


def test_test_stored_uses_most_recent(session, credential_store, clock):
    credential_store.save("a@example.com", "k1")
    clock.advance(minutes=5)
    credential_store.save("b@example.com", "k2")
    session.api_client.validate_credentials.return_value = (True, {})

    assert session.test_stored() == (True, "Stored credentials validated successfully!")
    session.api_client.validate_credentials.assert_called_once_with("b@example.com", "k2")
    assert session.active_identifier == "b@example.com"


def test_test_stored_without_credentials(session):
    assert session.test_stored() == (False, "No stored credentials found")


def test_unauthenticated_view_purges_active_account(session, credential_store):
    credential_store.save("a@example.com", "key")
    session.api_client.validate_credentials.return_value = (True, {})
    session.test_stored()
    expired = []
    session.session_expired.connect(expired.append)

    session.handle_unauthenticated()

    assert expired == ["a@example.com"]
    assert not session.is_authenticated
    assert credential_store.get("a@example.com") is None
