#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Authentication session for Zone Console.
Connects credential validation against the backend with the Credential Store.
"""

import logging
from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal

from credential_store import Credential, CredentialStore
from errors import ErrorKind

logger = logging.getLogger(__name__)


class AuthSession(QObject):
    """Tracks the active account and purges stored credentials the backend rejects."""

    # Emitted after the backend rejected the session; carries the purged identifier
    session_expired = Signal(str)

    def __init__(self, api_client, credential_store: CredentialStore, parent=None):
        """
        Initialize the session.

        Args:
            api_client: APIClient used for validation and logout
            credential_store: Store holding saved credentials
        """
        super().__init__(parent)
        self.api_client = api_client
        self.credential_store = credential_store
        self.active_identifier: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.active_identifier is not None

    def login(self, identifier: str, secret: str, remember: bool = False) -> Tuple[bool, str]:
        """
        Validate credentials and open a backend session.

        A failed save of the credential never fails the login itself.

        Args:
            identifier: Account email
            secret: API key
            remember: Save the credential for later sessions

        Returns:
            Tuple of (success, message)
        """
        identifier = (identifier or "").strip()
        if not identifier or not secret:
            return False, "Email and API Key are required"

        success, response = self.api_client.validate_credentials(identifier, secret)
        if not success:
            message = response.get("message", "Invalid API credentials") if isinstance(response, dict) else str(response)
            if isinstance(response, dict) and response.get("kind") == ErrorKind.AUTH.value:
                self._purge(identifier)
            logger.warning(f"Login failed for {identifier}: {message}")
            return False, message

        self.active_identifier = identifier
        message = response.get("message") or "API credentials validated successfully"
        logger.info(f"Logged in as {identifier}")

        if remember and not self.credential_store.save(identifier, secret):
            logger.warning(f"Could not save credentials for {identifier}")
            return True, f"{message} (credentials could not be saved)"
        return True, message

    def restore(self) -> Optional[Credential]:
        """Get the most recent stored credential to pre-fill the login form."""
        return self.credential_store.most_recent()

    def test_stored(self, identifier: Optional[str] = None) -> Tuple[bool, str]:
        """
        Validate a stored credential, logging in with it on success.

        A credential the backend rejects is removed; network failures keep it.

        Args:
            identifier: Account to test, the most recent one when None

        Returns:
            Tuple of (success, message)
        """
        credential = (self.credential_store.get(identifier) if identifier
                      else self.credential_store.most_recent())
        if credential is None:
            return False, "No stored credentials found"

        success, response = self.api_client.validate_credentials(credential.identifier, credential.secret)
        if success:
            self.active_identifier = credential.identifier
            logger.info(f"Stored credentials for {credential.identifier} validated")
            return True, "Stored credentials validated successfully!"

        message = response.get("message", "Invalid stored credentials") if isinstance(response, dict) else str(response)
        if isinstance(response, dict) and response.get("kind") == ErrorKind.TRANSIENT_NETWORK.value:
            return False, message

        self._purge(credential.identifier)
        return False, message

    def handle_unauthenticated(self) -> None:
        """React to a 401 from any view: drop the active account's stored credential."""
        identifier = self.active_identifier
        self.active_identifier = None
        if identifier is None:
            return
        self._purge(identifier)
        self.session_expired.emit(identifier)

    def logout(self) -> bool:
        """Close the backend session; stored credentials are kept."""
        success, _ = self.api_client.logout()
        self.active_identifier = None
        return success

    def connect_controller(self, controller) -> None:
        """Route a view controller's unauthenticated signal to this session."""
        controller.unauthenticated.connect(self.handle_unauthenticated)

    def _purge(self, identifier: str) -> None:
        if self.credential_store.get(identifier) is None:
            return
        if self.credential_store.delete(identifier):
            logger.info(f"Removed rejected credentials for {identifier}")
        else:
            logger.warning(f"Could not remove rejected credentials for {identifier}")
