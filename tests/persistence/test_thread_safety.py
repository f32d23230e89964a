import threading

import pytest

from blazeodm.core import DeclarativeMappingProvider, Document, StringField
from blazeodm.drivers import MemoryDriver
from blazeodm.hooks import HookDispatcher
from blazeodm.mapping import MappingRegistry
from blazeodm.persistence import FlushInProgressError, IdentityMap, UnitOfWork


class ThreadUser(Document):
    name = StringField()


class BlockingDriver(MemoryDriver):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def insert_many(self, namespace, documents):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().insert_many(namespace, documents)


def make_uow(driver):
    registry = MappingRegistry.build(DeclarativeMappingProvider(ThreadUser).get_mapping())
    return UnitOfWork(driver.connect(), registry, hooks=HookDispatcher())


def test_identity_map_thread_safety():
    identity_map = IdentityMap()
    errors: list[Exception] = []
    barrier = threading.Barrier(5)

    def worker(offset: int) -> None:
        try:
            barrier.wait()
            for idx in range(200):
                identity = offset * 1000 + idx
                identity_map.add(identity, object(), {})
                identity_map.get(identity)
                identity_map.remove(identity)
        except Exception as exc:  # pragma: no cover - failure path
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(identity_map) == 0


def test_concurrent_loads_coalesce_into_one_instance():
    uow = make_uow(MemoryDriver())
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        obj = uow.load(ThreadUser, {"_id": "shared", "name": "Ann"})
        with lock:
            results.append(obj)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(obj is results[0] for obj in results)


def test_flush_guard_rejects_concurrent_flush_and_mutation():
    driver = BlockingDriver()
    uow = make_uow(driver)
    uow.save(ThreadUser(name="Ann"))
    outcome = {}

    def flusher() -> None:
        outcome["result"] = uow.flush()

    thread = threading.Thread(target=flusher)
    thread.start()
    try:
        assert driver.entered.wait(timeout=5)
        with pytest.raises(FlushInProgressError):
            uow.flush()
        with pytest.raises(FlushInProgressError):
            uow.save(ThreadUser(name="Bob"))
        loaded = uow.load(ThreadUser, {"_id": "other", "name": "Cy"})
        assert loaded.name == "Cy"
    finally:
        driver.release.set()
        thread.join()

    assert len(outcome["result"].inserted) == 1
    assert not uow.is_flushing
