#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Local key/value storage for Zone Console.

A small persistent string store shared by the credential and template
stores. Values are opaque strings (JSON documents in practice), kept in a
single JSON file and bounded by a byte quota.
"""

import os
import json
import logging
import tempfile
from typing import Dict, List, Optional

from errors import PersistenceError

logger = logging.getLogger(__name__)


class LocalStorage:
    """File-backed string store with a size quota."""

    DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024

    def __init__(self, file_path: str, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        """
        Initialize the storage.

        Args:
            file_path: JSON file holding all keys
            quota_bytes: Maximum encoded size of the whole store
        """
        self.file_path = file_path
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        """Read the storage file, treating a missing or corrupt file as empty."""
        if not os.path.exists(self.file_path):
            return {}
        try:
            with open(self.file_path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.error(f"Ignoring malformed storage file {self.file_path}")
                return {}
            return {str(k): v for k, v in data.items() if isinstance(v, str)}
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to read storage file {self.file_path}: {e}")
            return {}

    def _write(self, items: Dict[str, str]) -> None:
        """Atomically write *items*, enforcing the quota."""
        encoded = json.dumps(items, indent=2)
        size = len(encoded.encode('utf-8'))
        if size > self.quota_bytes:
            raise PersistenceError(
                "quota_exceeded",
                f"Storage quota exceeded ({size} > {self.quota_bytes} bytes)",
                {"size": size, "quota": self.quota_bytes},
            )

        dir_path = os.path.dirname(self.file_path) or "."
        try:
            os.makedirs(dir_path, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=dir_path, suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(encoded)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise PersistenceError("write_failed", f"Failed to write storage: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or None."""
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        """
        Store *value* under *key*.

        Raises:
            PersistenceError: if the quota is exceeded or the file cannot be written
        """
        updated = dict(self._items)
        updated[key] = value
        self._write(updated)
        self._items = updated
        logger.debug(f"Stored key '{key}' ({len(value)} chars)")

    def remove_item(self, key: str) -> None:
        """
        Remove *key* if present.

        Raises:
            PersistenceError: if the file cannot be written
        """
        if key not in self._items:
            return
        updated = dict(self._items)
        del updated[key]
        self._write(updated)
        self._items = updated

    def clear(self) -> None:
        """Remove every key."""
        self._write({})
        self._items = {}

    def keys(self) -> List[str]:
        """Return the stored keys."""
        return list(self._items.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._items
