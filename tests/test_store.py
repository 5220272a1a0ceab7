import json

import pytest

from frick.store import KeyValueStore


def test_store_persists_across_instances(state_path):
    store = KeyValueStore(state_path)
    store.set("isBlocking", True)
    store.set("dailyBlocked_2024-05-01", 12.5)

    reloaded = KeyValueStore(state_path)
    assert reloaded.get("isBlocking") is True
    assert reloaded.get("dailyBlocked_2024-05-01") == 12.5
    assert reloaded.get("missing", 0) == 0


def test_transaction_flushes_once_at_end(state_path):
    store = KeyValueStore(state_path)
    with store.transaction():
        store.set("a", 1)
        store.set("b", 2)
        assert not state_path.exists()

    assert json.loads(state_path.read_text()) == {"a": 1, "b": 2}


def test_transaction_rolls_back_on_error(state_path):
    store = KeyValueStore(state_path)
    store.set("a", 1)

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.set("a", 2)
            store.delete("a")
            store.set("b", 3)
            raise RuntimeError("boom")

    assert store.get("a") == 1
    assert "b" not in store
    assert json.loads(state_path.read_text()) == {"a": 1}


def test_corrupted_file_starts_empty(state_path):
    state_path.write_text("{not json")
    store = KeyValueStore(state_path)
    assert store.keys() == []


def test_keys_by_prefix(store):
    store.set("dailyBlocked_2024-05-01", 1.0)
    store.set("dailyBlocked_2024-05-02", 2.0)
    store.set("isBlocking", False)
    assert sorted(store.keys("dailyBlocked_")) == [
        "dailyBlocked_2024-05-01",
        "dailyBlocked_2024-05-02",
    ]


def test_failed_write_keeps_previous_value(state_path):
    store = KeyValueStore(state_path)
    store.set("isBlocking", True)

    # A directory where the temporary file goes makes every flush fail
    state_path.with_suffix(".tmp").mkdir()
    with pytest.raises(OSError):
        store.set("isBlocking", False)

    assert store.get("isBlocking") is True
    assert json.loads(state_path.read_text()) == {"isBlocking": True}


def test_failed_write_rolls_back_transaction(state_path):
    store = KeyValueStore(state_path)
    store.set("a", 1)

    state_path.with_suffix(".tmp").mkdir()
    with pytest.raises(OSError):
        with store.transaction():
            store.set("a", 2)
            store.set("b", 3)

    assert store.get("a") == 1
    assert "b" not in store

    state_path.with_suffix(".tmp").rmdir()
    store.set("c", 4)
    assert json.loads(state_path.read_text()) == {"a": 1, "c": 4}


def test_failed_delete_keeps_key(state_path):
    store = KeyValueStore(state_path)
    store.set("sessionStartTime", "2024-05-01T09:00:00")

    state_path.with_suffix(".tmp").mkdir()
    with pytest.raises(OSError):
        store.delete("sessionStartTime")

    assert store.get("sessionStartTime") == "2024-05-01T09:00:00"


def test_two_stores_on_one_file_keep_each_others_writes(state_path):
    first = KeyValueStore(state_path)
    second = KeyValueStore(state_path)

    first.set("x", 1)
    second.set("y", 2)
    first.set("z", 3)

    assert json.loads(state_path.read_text()) == {"x": 1, "y": 2, "z": 3}
    second.reload()
    assert second.get("x") == 1
    assert second.get("z") == 3


def test_nested_transaction_does_not_reload(state_path):
    store = KeyValueStore(state_path)
    with store.transaction():
        store.set("a", 1)
        with store.transaction():
            assert store.get("a") == 1
            store.set("b", 2)
        assert not state_path.exists()

    assert json.loads(state_path.read_text()) == {"a": 1, "b": 2}
