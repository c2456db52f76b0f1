import pytest

from mview.core.resource_swap import (
    LoadError,
    ResourceSwapCoordinator,
    SwapRequest,
    SwapState,
)


class FakeResource:
    def __init__(self, identifier):
        self.identifier = identifier

    def __repr__(self):
        return f"FakeResource({self.identifier!r})"


class FakeEngine:
    """Records scene mutations; load_resource fails for identifiers in `broken`."""

    def __init__(self, broken=()):
        self.broken = set(broken)
        self.attached = []
        self.detached = []
        self.disposed = []
        self.materials = []

    def load_resource(self, identifier):
        if identifier in self.broken:
            raise LoadError(identifier, "file not found")
        return FakeResource(identifier)

    def attach(self, resource):
        self.attached.append(resource)

    def detach(self, resource):
        self.detached.append(resource)

    def dispose(self, resource):
        self.disposed.append(resource)

    def apply_material(self, resource, params):
        self.materials.append((resource, params))

    def set_camera_pose(self, position, focal_point, view_up):
        pass

    def render_frame(self):
        pass


class ManualScheduler:
    """Holds submitted loads until the test resolves them, in any order."""

    def __init__(self):
        self.pending = {}

    def submit(self, request, load, on_success, on_failure):
        self.pending[request.issued_at_sequence] = (request, load, on_success, on_failure)

    def resolve(self, sequence):
        request, load, on_success, on_failure = self.pending.pop(sequence)
        try:
            resource = load(request.identifier)
        except Exception as e:
            on_failure(request, e)
        else:
            on_success(request, resource)


class CancellingScheduler(ManualScheduler):
    """Loads that haven't been resolved yet can be cancelled."""

    def __init__(self):
        super().__init__()
        self.cancelled = []

    def cancel(self, request):
        if self.pending.pop(request.issued_at_sequence, None) is None:
            return False
        self.cancelled.append(request)
        return True


@pytest.fixture
def engine():
    return FakeEngine(broken={"missing.glb"})


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def coordinator(engine, scheduler):
    c = ResourceSwapCoordinator(engine, scheduler)
    c.completed = []
    c.failed = []
    c.add_swap_completed_callback(lambda req, res: c.completed.append((req, res)))
    c.add_load_failed_callback(lambda req, err: c.failed.append((req, err)))
    return c


def test_request_returns_immediately_and_is_loading(coordinator, scheduler):
    request = coordinator.request_swap("diamond.glb")
    assert request == SwapRequest("diamond.glb", 1)
    assert coordinator.state is SwapState.LOADING
    assert coordinator.live_resource is None
    assert list(scheduler.pending) == [1]


def test_single_swap_attaches(coordinator, engine, scheduler):
    coordinator.request_swap("diamond.glb")
    scheduler.resolve(1)
    assert coordinator.state is SwapState.IDLE
    assert coordinator.live_identifier == "diamond.glb"
    assert engine.attached == [coordinator.live_resource]
    assert len(coordinator.completed) == 1


def test_swap_replaces_previous_resource(coordinator, engine, scheduler):
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    first = coordinator.live_resource
    coordinator.request_swap("b.glb")
    scheduler.resolve(2)
    assert engine.detached == [first]
    assert engine.disposed == [first]
    assert coordinator.live_identifier == "b.glb"


@pytest.mark.parametrize("order", [(1, 2), (2, 1)])
def test_latest_request_wins_in_any_completion_order(coordinator, engine, scheduler, order):
    coordinator.request_swap("a.glb")
    coordinator.request_swap("b.glb")
    for sequence in order:
        scheduler.resolve(sequence)

    assert coordinator.live_identifier == "b.glb"
    assert [r.identifier for r in engine.attached] == ["b.glb"]
    assert [r.identifier for r in engine.disposed] == ["a.glb"]
    assert [req.identifier for req, _ in coordinator.completed] == ["b.glb"]
    assert coordinator.stale_discards == 1
    assert coordinator.state is SwapState.IDLE


def test_rapid_requests_only_last_becomes_live(coordinator, engine, scheduler):
    for name in ["a.glb", "b.glb", "c.glb", "d.glb"]:
        coordinator.request_swap(name)
    for sequence in (3, 1, 4, 2):
        scheduler.resolve(sequence)
    assert coordinator.live_identifier == "d.glb"
    assert len(engine.attached) == 1
    assert sorted(r.identifier for r in engine.disposed) == ["a.glb", "b.glb", "c.glb"]


def test_failure_is_reported_once_and_keeps_live(coordinator, engine, scheduler):
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    live = coordinator.live_resource

    coordinator.request_swap("missing.glb")
    scheduler.resolve(2)

    assert coordinator.live_resource is live
    assert engine.detached == []
    assert len(coordinator.failed) == 1
    request, error = coordinator.failed[0]
    assert request.identifier == "missing.glb"
    assert isinstance(error, LoadError)
    assert error.reason == "file not found"
    assert coordinator.state is SwapState.IDLE


def test_stale_failure_is_not_reported(coordinator, scheduler):
    coordinator.request_swap("missing.glb")
    coordinator.request_swap("b.glb")
    scheduler.resolve(2)
    scheduler.resolve(1)
    assert coordinator.failed == []
    assert coordinator.live_identifier == "b.glb"


def test_first_request_failure_leaves_scene_empty(coordinator, engine, scheduler):
    coordinator.request_swap("missing.glb")
    scheduler.resolve(1)

    assert coordinator.live_resource is None
    assert coordinator.live_identifier is None
    assert engine.attached == []
    assert engine.disposed == []
    assert len(coordinator.failed) == 1
    assert coordinator.failed[0][0].identifier == "missing.glb"
    assert coordinator.state is SwapState.IDLE


def test_attach_failure_does_not_keep_disposed_resource_live(coordinator, engine, scheduler):
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    first = coordinator.live_resource

    def attach(resource):
        raise RuntimeError("no render window")

    engine.attach = attach
    coordinator.request_swap("b.glb")
    scheduler.resolve(2)

    assert coordinator.live_resource is None
    assert coordinator.live_identifier is None
    assert [r.identifier for r in engine.disposed] == ["a.glb", "b.glb"]
    assert engine.disposed[0] is first
    assert len(coordinator.failed) == 1
    request, error = coordinator.failed[0]
    assert request.identifier == "b.glb"
    assert isinstance(error, LoadError)
    assert "no render window" in error.reason


def test_unexpected_exception_is_wrapped(engine, scheduler):
    def boom(identifier):
        raise ValueError("corrupt header")

    engine.load_resource = boom
    coordinator = ResourceSwapCoordinator(engine, scheduler)
    failed = []
    coordinator.add_load_failed_callback(lambda req, err: failed.append(err))
    coordinator.request_swap("x.glb")
    scheduler.resolve(1)

    error = failed[0]
    assert isinstance(error, LoadError)
    assert error.identifier == "x.glb"
    assert "corrupt header" in error.reason
    assert isinstance(error.__cause__, ValueError)


def test_prepare_runs_before_attach(engine, scheduler):
    order = []
    engine.attach = lambda res: order.append(("attach", res.identifier))
    coordinator = ResourceSwapCoordinator(
        engine, scheduler,
        prepare=lambda res: order.append(("prepare", res.identifier)))
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    assert order == [("prepare", "a.glb"), ("attach", "a.glb")]


def test_prepare_failure_disposes_new_resource(engine, scheduler):
    def prepare(resource):
        raise RuntimeError("material rejected")

    coordinator = ResourceSwapCoordinator(engine, scheduler, prepare=prepare)
    failed = []
    coordinator.add_load_failed_callback(lambda req, err: failed.append(err))
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)

    assert coordinator.live_resource is None
    assert engine.attached == []
    assert [r.identifier for r in engine.disposed] == ["a.glb"]
    assert len(failed) == 1


def test_stale_result_skips_prepare(engine, scheduler):
    prepared = []
    coordinator = ResourceSwapCoordinator(engine, scheduler, prepare=prepared.append)
    coordinator.request_swap("a.glb")
    coordinator.request_swap("b.glb")
    scheduler.resolve(1)
    assert prepared == []


def test_failing_callback_does_not_break_swap(engine, scheduler):
    coordinator = ResourceSwapCoordinator(engine, scheduler)

    def bad(req, res):
        raise RuntimeError("observer failed")

    coordinator.add_swap_completed_callback(bad)
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    assert coordinator.live_identifier == "a.glb"


def test_superseded_queued_load_is_cancelled(engine):
    scheduler = CancellingScheduler()
    coordinator = ResourceSwapCoordinator(engine, scheduler)
    first = coordinator.request_swap("a.glb")
    coordinator.request_swap("b.glb")

    assert scheduler.cancelled == [first]
    assert list(scheduler.pending) == [2]
    scheduler.resolve(2)
    assert coordinator.live_identifier == "b.glb"
    assert engine.disposed == []


def test_clear_disposes_live_and_invalidates_pending(coordinator, engine, scheduler):
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    live = coordinator.live_resource
    coordinator.request_swap("b.glb")

    coordinator.clear()
    assert engine.detached == [live]
    assert engine.disposed == [live]
    assert coordinator.live_resource is None
    assert coordinator.state is SwapState.IDLE

    scheduler.resolve(2)
    assert coordinator.live_resource is None
    assert [r.identifier for r in engine.disposed] == ["a.glb", "b.glb"]


def test_is_current(coordinator):
    first = coordinator.request_swap("a.glb")
    assert coordinator.is_current(first)
    second = coordinator.request_swap("b.glb")
    assert not coordinator.is_current(first)
    assert coordinator.is_current(second)
    assert coordinator.latest_sequence == 2


def test_reload_same_identifier_replaces_resource(coordinator, engine, scheduler):
    coordinator.request_swap("a.glb")
    scheduler.resolve(1)
    first = coordinator.live_resource
    coordinator.request_swap("a.glb")
    scheduler.resolve(2)
    assert coordinator.live_resource is not first
    assert engine.disposed == [first]

