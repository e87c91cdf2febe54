"""Tests for the queue stores and the store factory."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from offlinekit.exceptions import PersistenceError
from offlinekit.models import NetworkRequest, QueueBackend, QueueConfig
from offlinekit.queue import (
    DiskQueueStore,
    FileQueueStore,
    MemoryQueueStore,
    QueueStore,
    create_store,
)


def _requests() -> list[NetworkRequest]:
    return [
        NetworkRequest(
            method="POST",
            url="https://api.example.com/notes",
            body={"text": "first"},
            headers={"X-Client": "tests"},
            priority=5,
            max_retries=1,
            timeout_seconds=2.5,
        ),
        NetworkRequest(method="DELETE", url="https://api.example.com/notes/3", query_params={"hard": "1"}),
        NetworkRequest(method="PUT", url="/raw", body="text body", queue_offline=True, cache_ttl_seconds=9.0),
    ]


async def _save_and_load(store: QueueStore, requests: list[NetworkRequest]) -> list[NetworkRequest]:
    await store.initialize()
    await store.save(requests)
    return await store.load()


@pytest.fixture(params=["memory", "file", "diskcache"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> QueueStore:
    if request.param == "memory":
        s: QueueStore = MemoryQueueStore()
    elif request.param == "file":
        s = FileQueueStore(tmp_path / "nested" / "queue.json")
    else:
        s = DiskQueueStore(tmp_path / "queue-cache")
    yield s
    s.close()


# ------------------------------------------------------------------ #
# Contract shared by every store
# ------------------------------------------------------------------ #


class TestStoreContract:
    def test_empty_before_first_save(self, store: QueueStore) -> None:
        async def scenario() -> list[NetworkRequest]:
            await store.initialize()
            return await store.load()

        assert asyncio.run(scenario()) == []

    def test_round_trip_preserves_every_field_and_order(self, store: QueueStore) -> None:
        requests = _requests()
        assert asyncio.run(_save_and_load(store, requests)) == requests

    @pytest.mark.parametrize("body", [b"abc", b"\xff\x00\xfe"])
    def test_bytes_body_round_trips_as_bytes(self, store: QueueStore, body: bytes) -> None:
        requests = [NetworkRequest(method="PUT", url="/blob", body=body)]
        restored = asyncio.run(_save_and_load(store, requests))
        assert restored == requests
        assert isinstance(restored[0].body, bytes)

    def test_save_replaces(self, store: QueueStore) -> None:
        async def scenario() -> list[NetworkRequest]:
            await store.initialize()
            await store.save(_requests())
            await store.save(_requests()[1:])
            return await store.load()

        assert asyncio.run(scenario()) == _requests()[1:]

    def test_clear(self, store: QueueStore) -> None:
        async def scenario() -> list[NetworkRequest]:
            await store.initialize()
            await store.save(_requests())
            await store.clear()
            return await store.load()

        assert asyncio.run(scenario()) == []

    def test_initialize_is_idempotent(self, store: QueueStore) -> None:
        async def scenario() -> list[NetworkRequest]:
            await store.initialize()
            await store.save(_requests())
            await store.initialize()
            return await store.load()

        assert len(asyncio.run(scenario())) == 3


# ------------------------------------------------------------------ #
# File store
# ------------------------------------------------------------------ #


class TestFileQueueStore:
    def test_document_on_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        asyncio.run(_save_and_load(FileQueueStore(path), _requests()))
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert [r["method"] for r in document["requests"]] == ["POST", "DELETE", "PUT"]

    def test_durable_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        asyncio.run(_save_and_load(FileQueueStore(path), _requests()))

        async def reload() -> list[NetworkRequest]:
            fresh = FileQueueStore(path)
            await fresh.initialize()
            return await fresh.load()

        assert asyncio.run(reload()) == _requests()

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"

        async def scenario() -> None:
            store = FileQueueStore(path)
            await store.initialize()
            for i in range(3):
                await store.save(_requests()[: i + 1])

        asyncio.run(scenario())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["queue.json"]

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError, match="Cannot read queue file"):
            asyncio.run(FileQueueStore(path).load())

    def test_wrong_document_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "queue.json"
        path.write_text(json.dumps({"version": 1, "requests": [{"url": "/missing-method"}]}))

        with pytest.raises(PersistenceError):
            asyncio.run(FileQueueStore(path).load())

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = FileQueueStore(blocker / "queue.json")

        with pytest.raises(PersistenceError, match="Cannot write queue file"):
            asyncio.run(store.save(_requests()))

    def test_clear_without_file(self, tmp_path: Path) -> None:
        asyncio.run(FileQueueStore(tmp_path / "absent.json").clear())

    def test_filesystem_calls_run_off_the_event_loop(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        offloaded: list[str] = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, /, *args, **kwargs):
            offloaded.append(func.__name__)
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
        path = tmp_path / "nested" / "queue.json"

        async def scenario() -> None:
            store = FileQueueStore(path)
            await store.initialize()
            await store.save(_requests())
            await store.clear()

        asyncio.run(scenario())
        assert offloaded == ["mkdir", "atomic_write", "unlink"]
        assert path.parent.is_dir()
        assert not path.exists()


# ------------------------------------------------------------------ #
# Diskcache store
# ------------------------------------------------------------------ #


class TestDiskQueueStore:
    def test_durable_across_instances(self, tmp_path: Path) -> None:
        directory = tmp_path / "dq"
        first = DiskQueueStore(directory)
        asyncio.run(_save_and_load(first, _requests()))
        first.close()

        async def reload(store: DiskQueueStore) -> list[NetworkRequest]:
            await store.initialize()
            return await store.load()

        second = DiskQueueStore(directory)
        try:
            assert asyncio.run(reload(second)) == _requests()
        finally:
            second.close()

    def test_use_before_initialize_raises(self, tmp_path: Path) -> None:
        store = DiskQueueStore(tmp_path / "dq")
        with pytest.raises(PersistenceError, match="before initialize"):
            asyncio.run(store.load())

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        store = DiskQueueStore(tmp_path / "dq")
        asyncio.run(store.initialize())
        store.close()
        store.close()


# ------------------------------------------------------------------ #
# Factory
# ------------------------------------------------------------------ #


class TestCreateStore:
    def test_memory(self) -> None:
        assert isinstance(create_store(QueueConfig(backend=QueueBackend.MEMORY)), MemoryQueueStore)

    def test_file_with_explicit_path(self, tmp_path: Path) -> None:
        store = create_store(QueueConfig(backend=QueueBackend.FILE, path=str(tmp_path / "q.json")))
        assert isinstance(store, FileQueueStore)
        assert store.path == tmp_path / "q.json"

    def test_diskcache_with_explicit_path(self, tmp_path: Path) -> None:
        store = create_store(QueueConfig(backend=QueueBackend.DISKCACHE, path=str(tmp_path / "dq")))
        assert isinstance(store, DiskQueueStore)
        assert store.directory == tmp_path / "dq"

    def test_default_paths_live_in_data_dir(self, isolated_config: Path) -> None:
        file_store = create_store(QueueConfig(backend=QueueBackend.FILE))
        disk_store = create_store(QueueConfig(backend=QueueBackend.DISKCACHE))
        data_dir = isolated_config / "data" / "offlinekit"
        assert file_store.path == data_dir / "queue.json"
        assert disk_store.directory == data_dir / "queue"
