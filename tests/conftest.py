"""
Shared fixtures for the Zone Console tests.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from config_manager import ConfigManager
from local_storage import LocalStorage
from workers import InlineThreadPool


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class DeferredThreadPool:
    """Pool that holds workers until the test runs them, in any order."""

    def __init__(self):
        self.pending = []

    def start(self, runnable):
        self.pending.append(runnable)

    def run(self, index):
        self.pending.pop(index).run()

    def run_all(self):
        while self.pending:
            self.pending.pop(0).run()

    def waitForDone(self, msecs=-1):
        return True


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(os.path.join(str(tmp_path), "storage.json"))


@pytest.fixture
def config_manager(tmp_path):
    return ConfigManager(os.path.join(str(tmp_path), "config"))


@pytest.fixture
def inline_pool():
    return InlineThreadPool()


@pytest.fixture
def deferred_pool():
    return DeferredThreadPool()


@pytest.fixture
def api_client():
    client = MagicMock()
    client.get_records.return_value = (True, {"data": [], "pagination": {}})
    client.get_domains.return_value = (True, {"data": [], "pagination": {}})
    return client


def auth_failure(message="Error 401: Unauthorized"):
    return {"message": message, "kind": "auth", "status": 401, "raw_response": {}}


def remote_failure(message="Error 500: boom", raw=None):
    return {"message": message, "kind": "remote", "status": 500, "raw_response": raw or {}}
