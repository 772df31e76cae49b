#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Credential Store for Zone Console.
Keeps several saved account credentials with a fixed lifetime, encrypted at rest.
"""

import os
import json
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from errors import PersistenceError
from local_storage import LocalStorage

logger = logging.getLogger(__name__)

CREDENTIAL_STORAGE_KEY = "zone_console_credentials"
CREDENTIAL_SCHEMA_VERSION = 2
DEFAULT_EXPIRY_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache(maxsize=4)
def _derive_key(salt: bytes) -> bytes:
    """Derive the Fernet key for *salt*; PBKDF2 is slow so results are cached."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    return base64.urlsafe_b64encode(kdf.derive(b"zoneconsole-fixed-passphrase"))


@dataclass
class Credential:
    """A saved account credential."""

    identifier: str
    secret: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CredentialStore:
    """
    Persists named credentials with lazy expiry.

    Each credential is keyed by its account identifier (an email address).
    Entries past their expiry are dropped the first time any read finds them,
    and the pruned collection is written back.
    """

    def __init__(self, storage: LocalStorage, expiry_days: int = DEFAULT_EXPIRY_DAYS,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the credential store.

        Args:
            storage: Local key/value storage backing the collection
            expiry_days: Lifetime of a saved credential
            clock: Callable returning the current aware datetime
        """
        self.storage = storage
        self.expiry = timedelta(days=expiry_days)
        self._clock = clock or _utcnow

    def _fernet(self) -> Fernet:
        # Using the home directory and OS name as a per-user salt
        salt = (os.path.expanduser("~") + os.name).encode()
        return Fernet(_derive_key(salt))

    def _encrypt_secret(self, secret: str) -> str:
        if not secret:
            return ""
        return self._fernet().encrypt(secret.encode()).decode()

    def _decrypt_secret(self, encrypted: str) -> Optional[str]:
        if not encrypted:
            return ""
        try:
            return self._fernet().decrypt(encrypted.encode()).decode()
        except (InvalidToken, ValueError) as e:
            logger.error(f"Failed to decrypt stored secret: {e}")
            return None

    def _normalize(self, data) -> Tuple[List[Credential], bool]:
        """
        Turn a stored blob into live credentials.

        Migrates the legacy single-credential shape, drops duplicates,
        undecryptable and expired entries.

        Returns:
            Tuple of (credentials, changed) where changed means the blob
            must be written back
        """
        changed = False
        now = self._clock()
        raw_entries: List[Dict] = []

        if isinstance(data, dict) and "email" in data and "schema_version" not in data:
            # Legacy blob: one credential, millisecond epochs, plain secret
            logger.info("Migrating legacy single-credential storage")
            try:
                raw_entries.append({
                    "identifier": data["email"],
                    "secret": data.get("apiKey", ""),
                    "issued_at": datetime.fromtimestamp(data["timestamp"] / 1000, timezone.utc).isoformat(),
                    "expires_at": datetime.fromtimestamp(data["expiryTime"] / 1000, timezone.utc).isoformat(),
                })
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Discarding unreadable legacy credential: {e}")
            changed = True
        elif isinstance(data, dict):
            if data.get("schema_version") != CREDENTIAL_SCHEMA_VERSION:
                changed = True
            entries = data.get("credentials", [])
            if isinstance(entries, list):
                raw_entries = [e for e in entries if isinstance(e, dict)]
                changed = changed or len(raw_entries) != len(entries)
            else:
                changed = True
        else:
            logger.error("Discarding credential storage with unexpected shape")
            changed = True

        by_identifier: Dict[str, Credential] = {}
        for entry in raw_entries:
            identifier = entry.get("identifier")
            if not isinstance(identifier, str):
                changed = True
                continue

            if "encrypted_secret" in entry:
                secret = self._decrypt_secret(entry["encrypted_secret"])
            else:
                secret = entry.get("secret")
                changed = True
            if secret is None:
                changed = True
                continue

            try:
                issued_at = datetime.fromisoformat(entry["issued_at"])
                expires_at = datetime.fromisoformat(entry["expires_at"])
            except (KeyError, TypeError, ValueError):
                changed = True
                continue
            if issued_at.tzinfo is None:
                issued_at = issued_at.replace(tzinfo=timezone.utc)
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)

            credential = Credential(identifier, secret, issued_at, expires_at)
            if credential.is_expired(now):
                logger.info(f"Credential for {identifier} expired on {expires_at.isoformat()}, removing")
                changed = True
                continue
            if identifier in by_identifier:
                changed = True
            by_identifier[identifier] = credential

        return list(by_identifier.values()), changed

    def _serialize(self, credentials: List[Credential]) -> str:
        return json.dumps({
            "schema_version": CREDENTIAL_SCHEMA_VERSION,
            "credentials": [
                {
                    "identifier": c.identifier,
                    "encrypted_secret": self._encrypt_secret(c.secret),
                    "issued_at": c.issued_at.isoformat(),
                    "expires_at": c.expires_at.isoformat(),
                }
                for c in credentials
            ],
        })

    def _persist(self, credentials: List[Credential]) -> bool:
        """Write the collection; False on storage faults."""
        try:
            if credentials:
                self.storage.set_item(CREDENTIAL_STORAGE_KEY, self._serialize(credentials))
            else:
                self.storage.remove_item(CREDENTIAL_STORAGE_KEY)
            return True
        except PersistenceError as e:
            logger.warning(f"Failed to persist credentials: {e.message}")
            return False

    def _read(self) -> List[Credential]:
        """Load, normalize and, if needed, write back the collection."""
        raw = self.storage.get_item(CREDENTIAL_STORAGE_KEY)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to load credentials: {e}")
            self._persist([])
            return []

        credentials, changed = self._normalize(data)
        if changed:
            self._persist(credentials)
        return credentials

    def save(self, identifier: str, secret: str) -> bool:
        """
        Save or replace the credential for *identifier*.

        Args:
            identifier: Account email
            secret: API key

        Returns:
            True if persisted, False on a storage fault
        """
        now = self._clock()
        credential = Credential(identifier, secret, now, now + self.expiry)
        credentials = self._read()

        for index, existing in enumerate(credentials):
            if existing.identifier == identifier:
                credentials[index] = credential
                break
        else:
            credentials.append(credential)

        saved = self._persist(credentials)
        if saved:
            logger.info(f"Saved credential for {identifier}, expires {credential.expires_at.isoformat()}")
        return saved

    def all(self, most_recent_first: bool = False) -> List[Credential]:
        """
        Get all non-expired credentials.

        Args:
            most_recent_first: Order by issue time, newest first, instead of
                insertion order

        Returns:
            List of credentials
        """
        credentials = self._read()
        if most_recent_first:
            return sorted(credentials, key=lambda c: c.issued_at, reverse=True)
        return credentials

    def get(self, identifier: str) -> Optional[Credential]:
        """Get the credential stored for *identifier*, if still valid."""
        for credential in self._read():
            if credential.identifier == identifier:
                return credential
        return None

    def most_recent(self) -> Optional[Credential]:
        """Get the most recently issued valid credential."""
        credentials = self._read()
        if not credentials:
            return None
        return max(credentials, key=lambda c: c.issued_at)

    def identifiers(self) -> List[str]:
        """Get the identifiers of all valid credentials."""
        return [c.identifier for c in self._read()]

    def has_credentials(self) -> bool:
        """Check whether at least one valid credential is stored."""
        return bool(self._read())

    def delete(self, identifier: str) -> bool:
        """
        Delete the credential for *identifier*.

        Returns:
            True if an entry was removed and the change persisted
        """
        credentials = self._read()
        remaining = [c for c in credentials if c.identifier != identifier]
        if len(remaining) == len(credentials):
            logger.warning(f"No stored credential for {identifier}")
            return False
        deleted = self._persist(remaining)
        if deleted:
            logger.info(f"Deleted stored credential for {identifier}")
        return deleted

    def clear(self, identifier: Optional[str] = None) -> bool:
        """
        Clear one credential, or all of them when *identifier* is None.

        Returns:
            True if the change persisted
        """
        if identifier is not None:
            return self.delete(identifier)
        try:
            self.storage.remove_item(CREDENTIAL_STORAGE_KEY)
            logger.info("Cleared all stored credentials")
            return True
        except PersistenceError as e:
            logger.warning(f"Failed to clear credentials: {e.message}")
            return False
