import threading
from itertools import chain, repeat

from toolstream.core.registry import ConnectionRegistry


def test_register_returns_unique_ids(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    ids = [registry.register(recording_sink_factory()) for _ in range(50)]
    assert len(set(ids)) == 50
    assert registry.count() == 50
    assert sorted(registry.list_ids()) == sorted(ids)


def test_register_skips_ids_already_in_use(recording_sink_factory) -> None:
    ids = chain(["dup", "dup", "dup"], repeat("fresh"))
    registry = ConnectionRegistry(id_factory=lambda: next(ids))
    first = registry.register(recording_sink_factory())
    second = registry.register(recording_sink_factory())
    assert first == "dup"
    assert second == "fresh"


def test_remove_is_idempotent_and_closes_sink(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    sink = recording_sink_factory()
    client_id = registry.register(sink)

    assert registry.remove(client_id) is True
    assert sink.closed is True
    assert registry.remove(client_id) is False
    assert registry.count() == 0
    assert client_id not in registry.list_ids()


def test_remove_unknown_id_is_noop(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    registry.register(recording_sink_factory())
    assert registry.remove("missing") is False
    assert registry.count() == 1


def test_list_ids_is_a_snapshot(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    client_id = registry.register(recording_sink_factory())
    snapshot = registry.list_ids()
    registry.remove(client_id)
    assert snapshot == [client_id]
    assert registry.list_ids() == []


def test_close_all_removes_every_connection(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    sinks = [recording_sink_factory() for _ in range(3)]
    for sink in sinks:
        registry.register(sink)
    assert registry.close_all() == 3
    assert registry.count() == 0
    assert all(sink.closed for sink in sinks)


def test_concurrent_register_and_remove(recording_sink_factory) -> None:
    registry = ConnectionRegistry()
    barrier = threading.Barrier(8)
    kept: list[str] = []
    kept_lock = threading.Lock()

    def _worker() -> None:
        barrier.wait()
        for index in range(100):
            client_id = registry.register(recording_sink_factory())
            if index % 2:
                registry.remove(client_id)
            else:
                with kept_lock:
                    kept.append(client_id)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.count() == len(kept) == 400
    assert sorted(registry.list_ids()) == sorted(kept)
