#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Error taxonomy for Zone Console.

Exceptions are raised inside a component only; public operations convert
them to bool / Optional / (success, data) results at their boundary.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification attached to every failed operation."""

    VALIDATION = "validation"
    AUTH = "auth"
    TRANSIENT_NETWORK = "transient_network"
    ALREADY_SATISFIED = "already_satisfied"
    PERSISTENCE = "persistence"
    REMOTE = "remote"


class ZoneConsoleError(Exception):
    """Base exception for all zone console errors."""

    kind = ErrorKind.REMOTE

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ZoneConsoleError):
    """Raised when a bulk line or a form field is malformed."""

    kind = ErrorKind.VALIDATION


class AuthError(ZoneConsoleError):
    """Raised when the backend rejects the session or the credential."""

    kind = ErrorKind.AUTH


class TransientNetworkError(ZoneConsoleError):
    """Raised when the backend cannot be reached."""

    kind = ErrorKind.TRANSIENT_NETWORK


class PersistenceError(ZoneConsoleError):
    """Raised when local storage cannot be read or written."""

    kind = ErrorKind.PERSISTENCE


# Record-level only; a missing zone is a real failure
RECORD_GONE_MARKERS = ("record does not exist", "record not found", "record was not found")
RECORD_GONE_CODES = ("81044",)
ZONE_MISSING_MARKERS = ("domain not found", "zone")


def is_already_gone(error_text: Optional[str]) -> bool:
    """Return True if a delete error means the record itself is already absent."""
    if not error_text:
        return False
    lowered = str(error_text).lower()
    if any(marker in lowered for marker in ZONE_MISSING_MARKERS):
        return False
    return any(marker in lowered for marker in RECORD_GONE_MARKERS + RECORD_GONE_CODES)
