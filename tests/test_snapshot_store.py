import logging
import threading

from workspace_hub.services.snapshot_store import SnapshotStore


def test_generations_increase_per_key():
    store = SnapshotStore()
    key = SnapshotStore.key("reports", "u1", "ws-a")
    other = SnapshotStore.key("teams", "u1", "ws-a")
    assert [store.begin(key), store.begin(key), store.begin(other)] == [1, 2, 1]


def test_publish_and_latest():
    store = SnapshotStore()
    key = SnapshotStore.key("overview", "u1", "ws-a")
    assert store.latest(key) is None
    generation = store.begin(key)
    assert store.publish(key, generation, {"total_tasks": 3}) is True
    snapshot = store.latest(key)
    assert snapshot.generation == 1
    assert snapshot.payload == {"total_tasks": 3}


def test_stale_run_cannot_overwrite_newer_snapshot(caplog):
    store = SnapshotStore()
    key = SnapshotStore.key("reports", "u1", "ws-a")
    slow = store.begin(key)
    fast = store.begin(key)
    assert store.is_current(key, fast)
    assert not store.is_current(key, slow)

    assert store.publish(key, fast, {"from": "fast"}) is True
    caplog.set_level(logging.INFO)
    assert store.publish(key, slow, {"from": "slow"}) is False
    assert store.latest(key).payload == {"from": "fast"}
    assert any(getattr(r, "event_type", None) == "snapshot_superseded" for r in caplog.records)


def test_older_snapshot_is_replaced_by_newer():
    store = SnapshotStore()
    key = SnapshotStore.key("teams", "u1", "ws-a")
    first = store.begin(key)
    second = store.begin(key)
    store.publish(key, first, {"n": 1})
    assert store.publish(key, second, {"n": 2}) is True
    assert store.latest(key).generation == 2


def test_concurrent_begin_issues_unique_generations():
    store = SnapshotStore()
    key = SnapshotStore.key("reports", "u1", "ws-a")
    issued = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            generation = store.begin(key)
            with lock:
                issued.append(generation)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(issued) == list(range(1, 201))


def test_clear():
    store = SnapshotStore()
    key = SnapshotStore.key("reports", "u1", "ws-a")
    store.publish(key, store.begin(key), {})
    store.clear()
    assert store.latest(key) is None
    assert store.begin(key) == 1
