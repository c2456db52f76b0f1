import threading

import pytest

from mview.core.resource_swap import LoadError, ResourceSwapCoordinator, SwapRequest
from mview.viewers.load_scheduler import QtLoadScheduler


@pytest.fixture
def scheduler(qtbot):
    s = QtLoadScheduler(max_threads=1)
    yield s
    s.wait_for_done(5000)


def test_success_is_delivered_on_gui_thread(qtbot, scheduler):
    results = []
    gui_thread = threading.get_ident()

    def on_success(request, resource):
        results.append((request, resource, threading.get_ident()))

    request = SwapRequest("a.glb", 1)
    scheduler.submit(request, lambda ident: f"loaded:{ident}", on_success, lambda r, e: None)
    qtbot.waitUntil(lambda: bool(results), timeout=5000)

    assert results == [(request, "loaded:a.glb", gui_thread)]
    assert scheduler.pending_count == 0


def test_failure_is_delivered(qtbot, scheduler):
    errors = []

    def load(identifier):
        raise LoadError(identifier, "bad file")

    scheduler.submit(SwapRequest("b.glb", 1), load, lambda r, res: None,
                     lambda r, e: errors.append(e))
    qtbot.waitUntil(lambda: bool(errors), timeout=5000)
    assert isinstance(errors[0], LoadError)


def test_queued_load_can_be_cancelled(qtbot, scheduler):
    gate = threading.Event()
    done = []

    def slow(identifier):
        gate.wait(5)
        return identifier

    first = SwapRequest("a.glb", 1)
    second = SwapRequest("b.glb", 2)
    scheduler.submit(first, slow, lambda r, res: done.append(res), lambda r, e: None)
    scheduler.submit(second, slow, lambda r, res: done.append(res), lambda r, e: None)

    # max_threads=1: the second load is still queued behind the first
    assert scheduler.cancel(second) is True
    assert scheduler.cancel(second) is False
    gate.set()
    qtbot.waitUntil(lambda: bool(done), timeout=5000)
    scheduler.wait_for_done(5000)
    qtbot.wait(50)
    assert done == ["a.glb"]


class _Engine:
    """load_resource blocks on `gates[identifier]` when one is given."""

    def __init__(self, gates=None):
        self.gates = gates or {}
        self.started = {name: threading.Event() for name in self.gates}
        self.loaded = []
        self.attached = []
        self.disposed = []

    def load_resource(self, identifier):
        if identifier in self.gates:
            self.started[identifier].set()
            self.gates[identifier].wait(5)
        self.loaded.append(identifier)
        return identifier

    def attach(self, resource):
        self.attached.append(resource)

    def detach(self, resource):
        pass

    def dispose(self, resource):
        self.disposed.append(resource)


def test_coordinator_with_thread_pool(qtbot, scheduler):
    engine = _Engine()
    coordinator = ResourceSwapCoordinator(engine, scheduler)
    for name in ["a.glb", "b.glb", "c.glb"]:
        coordinator.request_swap(name)
    qtbot.waitUntil(lambda: coordinator.live_identifier == "c.glb", timeout=5000)
    scheduler.wait_for_done(5000)
    qtbot.wait(50)

    assert engine.attached == ["c.glb"]
    # Loads that ran before being superseded were disposed, the others were cancelled
    assert sorted(engine.disposed) == sorted(n for n in engine.loaded if n != "c.glb")
    assert coordinator.stale_discards == len(engine.disposed)


def test_running_superseded_load_is_disposed(qtbot, scheduler):
    gate = threading.Event()
    engine = _Engine(gates={"a.glb": gate})
    coordinator = ResourceSwapCoordinator(engine, scheduler)

    coordinator.request_swap("a.glb")
    assert engine.started["a.glb"].wait(5)
    coordinator.request_swap("b.glb")   # queued behind a.glb, cancelled by the next request
    coordinator.request_swap("c.glb")
    gate.set()

    qtbot.waitUntil(lambda: coordinator.live_identifier == "c.glb", timeout=5000)
    scheduler.wait_for_done(5000)
    qtbot.wait(50)

    assert engine.loaded == ["a.glb", "c.glb"]
    assert engine.attached == ["c.glb"]
    assert engine.disposed == ["a.glb"]
    assert coordinator.stale_discards == 1
