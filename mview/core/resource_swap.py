"""
Asynchronous replacement of the displayed model.

Every request is stamped with a monotonic sequence number. A completion is
applied only when its sequence is still the latest one issued; anything else
is a stale completion and its resource is disposed without touching the scene.

This module is Qt/VTK independent. Loading is delegated to a LoadScheduler
(threads, event loop, or a manual scheduler in tests) and scene mutation to a
SceneEngine.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Generic, Optional, Protocol, TypeVar

from mview.core.geometry_utils import Vector3
from mview.core.material import MaterialParams

logger = logging.getLogger(__name__)

R = TypeVar("R")


class LoadError(RuntimeError):
    """Raised when a resource can't be fetched or parsed."""

    def __init__(self, identifier: str, reason: str):
        super().__init__(f"Failed to load '{identifier}': {reason}")
        self.identifier = identifier
        self.reason = reason


@dataclass(frozen=True)
class SwapRequest:
    identifier: str
    issued_at_sequence: int


class SwapState(Enum):
    IDLE = auto()
    LOADING = auto()


class SceneEngine(Protocol[R]):
    """Minimal rendering engine surface used by the viewer core."""

    def load_resource(self, identifier: str) -> R:
        """Blocking load. Called off the GUI thread; raises LoadError."""
        ...

    def attach(self, resource: R) -> None: ...

    def detach(self, resource: R) -> None: ...

    def dispose(self, resource: R) -> None: ...

    def apply_material(self, resource: R, params: MaterialParams) -> None: ...

    def set_camera_pose(self, position: Vector3, focal_point: Vector3, view_up: Vector3) -> None: ...

    def render_frame(self) -> None: ...


class LoadScheduler(Protocol):
    """
    Runs a load without blocking the caller.

    on_success / on_failure must be invoked on the thread that owns the
    scene (the thread that called submit()).
    """

    def submit(self,
               request: SwapRequest,
               load: Callable[[str], object],
               on_success: Callable[[SwapRequest, object], None],
               on_failure: Callable[[SwapRequest, BaseException], None]) -> None: ...


class ResourceSwapCoordinator(Generic[R]):
    """
    Latest-wins swapping of the live resource.

    Usage:
        coordinator = ResourceSwapCoordinator(engine, scheduler)
        coordinator.add_swap_completed_callback(on_loaded)
        coordinator.add_load_failed_callback(on_failed)
        coordinator.request_swap("diamond.glb")
    """

    def __init__(self,
                 engine: SceneEngine[R],
                 scheduler: LoadScheduler,
                 prepare: Optional[Callable[[R], None]] = None) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._prepare = prepare

        self._sequence = 0
        self._in_flight: dict[int, SwapRequest] = {}
        self._live: R | None = None
        self._live_request: SwapRequest | None = None
        self._stale_discards = 0

        self._on_swap_completed_callbacks: list[Callable[[SwapRequest, R], None]] = []
        self._on_load_failed_callbacks: list[Callable[[SwapRequest, LoadError], None]] = []

    @property
    def state(self) -> SwapState:
        return SwapState.LOADING if self._sequence in self._in_flight else SwapState.IDLE

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    @property
    def live_resource(self) -> R | None:
        return self._live

    @property
    def live_identifier(self) -> str | None:
        return self._live_request.identifier if self._live_request else None

    @property
    def stale_discards(self) -> int:
        """Number of completed loads thrown away because a newer request existed."""
        return self._stale_discards

    def request_swap(self, identifier: str) -> SwapRequest:
        """
        Start loading identifier and return immediately.

        A request still in flight is superseded; when it completes it is discarded.
        """
        self._sequence += 1
        request = SwapRequest(identifier, self._sequence)

        for previous in list(self._in_flight.values()):
            self._try_cancel(previous)

        self._in_flight[request.issued_at_sequence] = request
        logger.info("Swap requested: %s (seq=%d)", identifier, request.issued_at_sequence)
        self._scheduler.submit(request, self._engine.load_resource,
                               self._on_load_succeeded, self._on_load_failed)
        return request

    def clear(self) -> None:
        """Detach and dispose the live resource. Pending results become stale."""
        self._sequence += 1
        if self._live is not None:
            self._engine.detach(self._live)
            self._engine.dispose(self._live)
            logger.debug("Live resource cleared: %s", self.live_identifier)
        self._live = None
        self._live_request = None

    def is_current(self, request: SwapRequest) -> bool:
        return request.issued_at_sequence == self._sequence

    # =====================================================
    # Callbacks
    # =====================================================

    def add_swap_completed_callback(self, callback: Callable[[SwapRequest, R], None]) -> None:
        """Callback signature: callback(request: SwapRequest, resource) -> None"""
        self._on_swap_completed_callbacks.append(callback)

    def add_load_failed_callback(self, callback: Callable[[SwapRequest, LoadError], None]) -> None:
        """Callback signature: callback(request: SwapRequest, error: LoadError) -> None"""
        self._on_load_failed_callbacks.append(callback)

    # =====================================================
    # Completion handlers
    # =====================================================

    def _on_load_succeeded(self, request: SwapRequest, resource: R) -> None:
        self._in_flight.pop(request.issued_at_sequence, None)

        if not self.is_current(request):
            self._discard_stale(request, resource)
            return

        if self._prepare is not None:
            try:
                self._prepare(resource)
            except Exception as e:
                self._engine.dispose(resource)
                self._report_failure(request, e)
                return

        previous = self._live
        self._live = None
        self._live_request = None
        if previous is not None:
            self._engine.detach(previous)
            self._engine.dispose(previous)
        try:
            self._engine.attach(resource)
        except Exception as e:
            self._engine.dispose(resource)
            self._report_failure(request, e)
            return
        self._live = resource
        self._live_request = request

        logger.info("Swap completed: %s (seq=%d)", request.identifier, request.issued_at_sequence)
        for callback in self._on_swap_completed_callbacks:
            try:
                callback(request, resource)
            except Exception as e:
                logger.exception(f"Error in swap completed callback: {e}")

    def _on_load_failed(self, request: SwapRequest, error: BaseException) -> None:
        self._in_flight.pop(request.issued_at_sequence, None)

        if not self.is_current(request):
            logger.warning("Superseded load failed: %s (seq=%d): %s",
                           request.identifier, request.issued_at_sequence, error)
            return
        self._report_failure(request, error)

    def _discard_stale(self, request: SwapRequest, resource: R) -> None:
        self._stale_discards += 1
        logger.debug("Discarding stale result: %s (seq=%d, latest=%d)",
                     request.identifier, request.issued_at_sequence, self._sequence)
        try:
            self._engine.dispose(resource)
        except Exception:
            logger.exception("Failed to dispose stale resource: %s", request.identifier)

    def _report_failure(self, request: SwapRequest, error: BaseException) -> None:
        if not isinstance(error, LoadError):
            load_error = LoadError(request.identifier, str(error) or type(error).__name__)
            load_error.__cause__ = error
            error = load_error

        logger.error("Load failed: %s (seq=%d): %s", request.identifier,
                     request.issued_at_sequence, error.reason)
        for callback in self._on_load_failed_callbacks:
            try:
                callback(request, error)
            except Exception as e:
                logger.exception(f"Error in load failed callback: {e}")

    def _try_cancel(self, request: SwapRequest) -> None:
        cancel = getattr(self._scheduler, "cancel", None)
        if cancel is None:
            return
        if cancel(request):
            self._in_flight.pop(request.issued_at_sequence, None)
            logger.debug("Cancelled queued load: %s (seq=%d)",
                         request.identifier, request.issued_at_sequence)
