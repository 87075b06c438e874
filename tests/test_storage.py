import json

import pytest

from aisentinel.client.errors import StorageError
from aisentinel.client.storage import FileStorage, MemoryStorage, StorageEvent


def test_memory_tabs_share_data():
    first = MemoryStorage()
    second = first.tab()

    first.set_item("k", "v")

    assert second.get_item("k") == "v"
    assert second.keys() == ["k"]


def test_events_reach_other_tabs_only():
    first = MemoryStorage()
    second = first.tab()
    mine, theirs = [], []
    first.on_change(mine.append)
    second.on_change(theirs.append)

    first.set_item("k", "v")
    first.set_item("k", "v")
    first.remove_item("k")
    first.remove_item("k")

    assert mine == []
    assert theirs == [StorageEvent("k", None, "v"), StorageEvent("k", "v", None)]


def test_unsubscribe_stops_delivery():
    first = MemoryStorage()
    second = first.tab()
    seen = []
    unsubscribe = second.on_change(seen.append)

    unsubscribe()
    first.set_item("k", "v")

    assert seen == []


def test_broken_listener_does_not_block_others():
    first = MemoryStorage()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    first.tab().on_change(broken)
    first.tab().on_change(seen.append)

    first.set_item("k", "v")

    assert len(seen) == 1


def test_quota_rejects_oversized_writes():
    storage = MemoryStorage(quota=20)

    with pytest.raises(StorageError):
        storage.set_item("k", "x" * 100)
    assert storage.get_item("k") is None


def test_file_storage_round_trips_through_disk(tmp_path):
    FileStorage(tmp_path).set_item("k", "v")

    assert json.loads((tmp_path / FileStorage.FILE_NAME).read_text()) == {"k": "v"}
    assert FileStorage(tmp_path).get_item("k") == "v"


def test_file_storage_ignores_non_object_file(tmp_path):
    (tmp_path / FileStorage.FILE_NAME).write_text("[1, 2]")
    assert FileStorage(tmp_path).keys() == []


def test_file_storage_creates_profile_dir(tmp_path):
    profile = tmp_path / "nested" / "profile"
    FileStorage(profile).set_item("k", "v")
    assert (profile / FileStorage.FILE_NAME).exists()
