#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Worker classes for asynchronous backend calls in Zone Console.
"""

import logging
import time
from typing import Any, Callable, Optional

from PySide6.QtCore import QRunnable, QObject, Signal

from errors import ErrorKind

logger = logging.getLogger(__name__)


def _unexpected_failure(exc: Exception) -> dict:
    return {
        "message": f"An unexpected error occurred: {exc}",
        "kind": ErrorKind.REMOTE.value,
        "status": None,
        "raw_response": {},
    }


class LoadDomainsWorker(QRunnable):
    """Worker for loading one page of domains."""

    class Signals(QObject):
        """Signal wrapper for thread-safe communication with the main thread."""
        finished = Signal(int, bool, object)  # token, success, data

    def __init__(self, api_client, token: int, page: int, per_page: int, search: str = ""):
        """Initialize the worker.

        Args:
            api_client: API client instance
            token: Request token echoed back with the result
            page: 1-based page number
            per_page: Page size
            search: Server-side search term
        """
        super().__init__()
        self.api_client = api_client
        self.token = token
        self.page = page
        self.per_page = per_page
        self.search = search
        self.signals = self.Signals()

    def run(self) -> None:
        """Fetch the page and report back."""
        start_time = time.time()
        try:
            success, response = self.api_client.get_domains(self.page, self.per_page, self.search or None)
        except Exception as e:
            logger.exception("Loading domains failed")
            success, response = False, _unexpected_failure(e)

        elapsed = (time.time() - start_time) * 1000
        logger.debug(f"Domains page {self.page} (token {self.token}) finished in {elapsed:.1f}ms")
        self.signals.finished.emit(self.token, success, response)


class LoadRecordsWorker(QRunnable):
    """Worker for loading one page of DNS records of a zone."""

    class Signals(QObject):
        """Signal wrapper for thread-safe communication with the main thread."""
        finished = Signal(int, bool, object)  # token, success, data

    def __init__(self, api_client, token: int, zone_name: str, page: int, per_page: int, search: str = ""):
        """Initialize the worker.

        Args:
            api_client: API client instance
            token: Request token echoed back with the result
            zone_name: Name of the zone to load records for
            page: 1-based page number
            per_page: Page size
            search: Server-side search term
        """
        super().__init__()
        self.api_client = api_client
        self.token = token
        self.zone_name = zone_name
        self.page = page
        self.per_page = per_page
        self.search = search
        self.signals = self.Signals()

    def run(self) -> None:
        """Fetch the page and report back."""
        start_time = time.time()
        try:
            success, response = self.api_client.get_records(self.zone_name, self.page, self.per_page,
                                                            self.search or None)
        except Exception as e:
            logger.exception(f"Loading records for {self.zone_name} failed")
            success, response = False, _unexpected_failure(e)

        elapsed = (time.time() - start_time) * 1000
        logger.debug(f"Records page {self.page} of {self.zone_name} (token {self.token}) finished in {elapsed:.1f}ms")
        self.signals.finished.emit(self.token, success, response)


class ApiCallWorker(QRunnable):
    """Worker running a single mutating API call such as a bulk apply or delete."""

    class Signals(QObject):
        """Signal wrapper for thread-safe communication with the main thread."""
        finished = Signal(str, bool, object)  # operation, success, data

    def __init__(self, operation: str, func: Callable[..., Any], *args, context: Optional[dict] = None):
        """Initialize the worker.

        Args:
            operation: Busy-flag name of the operation
            func: API client method returning (success, data)
            *args: Positional arguments for func
            context: Extra values the result handler needs, attached to data
        """
        super().__init__()
        self.operation = operation
        self.func = func
        self.args = args
        self.context = context or {}
        self.signals = self.Signals()

    def run(self) -> None:
        """Execute the call and report back."""
        try:
            success, response = self.func(*self.args)
        except Exception as e:
            logger.exception(f"Operation {self.operation} failed")
            success, response = False, _unexpected_failure(e)

        self.signals.finished.emit(self.operation, success, {"response": response, "context": self.context})


class InlineThreadPool:
    """Drop-in for QThreadPool that runs each worker immediately on the calling thread.

    Used by the command line front end, which has no event loop to return to.
    """

    def start(self, runnable: QRunnable) -> None:
        runnable.run()

    def waitForDone(self, msecs: int = -1) -> bool:
        return True
