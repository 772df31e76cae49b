"""
Tests for the file-backed local storage.
"""

import json
import os

import pytest

from errors import ErrorKind, PersistenceError
from local_storage import LocalStorage


def test_values_survive_reopen(tmp_path):
    path = os.path.join(str(tmp_path), "storage.json")
    storage = LocalStorage(path)
    storage.set_item("a", "1")
    storage.set_item("b", "2")

    reopened = LocalStorage(path)
    assert reopened.get_item("a") == "1"
    assert reopened.get_item("b") == "2"
    assert sorted(reopened.keys()) == ["a", "b"]


def test_missing_and_corrupt_files_read_as_empty(tmp_path):
    path = os.path.join(str(tmp_path), "storage.json")
    assert LocalStorage(path).keys() == []

    with open(path, "w") as f:
        f.write("{not json")
    assert LocalStorage(path).keys() == []


def test_remove_and_clear(storage):
    storage.set_item("a", "1")
    storage.set_item("b", "2")
    storage.remove_item("a")
    storage.remove_item("missing")
    assert "a" not in storage
    assert "b" in storage

    storage.clear()
    assert storage.keys() == []


def test_quota_exceeded_keeps_previous_contents(tmp_path):
    path = os.path.join(str(tmp_path), "storage.json")
    storage = LocalStorage(path, quota_bytes=64)
    storage.set_item("small", "x")

    with pytest.raises(PersistenceError) as excinfo:
        storage.set_item("big", "y" * 200)

    assert excinfo.value.code == "quota_exceeded"
    assert excinfo.value.kind is ErrorKind.PERSISTENCE
    assert storage.get_item("big") is None
    with open(path) as f:
        assert json.load(f) == {"small": "x"}


def test_write_failure_is_a_persistence_error(tmp_path):
    blocker = os.path.join(str(tmp_path), "blocker")
    with open(blocker, "w") as f:
        f.write("")
    storage = LocalStorage(os.path.join(blocker, "storage.json"))

    with pytest.raises(PersistenceError) as excinfo:
        storage.set_item("a", "1")
    assert excinfo.value.code == "write_failed"
