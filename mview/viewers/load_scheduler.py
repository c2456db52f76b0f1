"""
Background loading on a QThreadPool.

Loads run on pool threads; their results are sent back with queued signals
so completion callbacks always run on the thread owning the scheduler
(the GUI thread).
"""
from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Qt, Signal, Slot

from mview.core.resource_swap import SwapRequest

logger = logging.getLogger(__name__)


class _LoadSignals(QObject):
    succeeded = Signal(object, object)  # (SwapRequest, resource)
    failed = Signal(object, object)     # (SwapRequest, exception)


class _LoadTask(QRunnable):
    def __init__(self, request: SwapRequest, load: Callable[[str], object], signals: _LoadSignals):
        super().__init__()
        self.request = request
        self._load = load
        self._signals = signals
        # The pool must not delete the task: cancel() may still reference it.
        self.setAutoDelete(False)

    def run(self):
        try:
            resource = self._load(self.request.identifier)
        except Exception as e:
            self._signals.failed.emit(self.request, e)
            return
        self._signals.succeeded.emit(self.request, resource)


class QtLoadScheduler(QObject):
    """LoadScheduler running loads on a private QThreadPool."""

    def __init__(self, max_threads: int = 2, parent: QObject | None = None):
        super().__init__(parent)
        self._pool = QThreadPool(self)
        self._pool.setMaxThreadCount(max_threads)

        self._signals = _LoadSignals()
        self._signals.succeeded.connect(self._on_succeeded, Qt.QueuedConnection)
        self._signals.failed.connect(self._on_failed, Qt.QueuedConnection)

        # sequence -> (task, on_success, on_failure)
        self._pending: dict[int, tuple[_LoadTask, Callable, Callable]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def submit(self, request, load, on_success, on_failure) -> None:
        task = _LoadTask(request, load, self._signals)
        self._pending[request.issued_at_sequence] = (task, on_success, on_failure)
        self._pool.start(task)
        logger.debug("Load submitted: %s (seq=%d)", request.identifier, request.issued_at_sequence)

    def cancel(self, request: SwapRequest) -> bool:
        """Drop the load if it hasn't started yet. A running load can't be aborted."""
        entry = self._pending.get(request.issued_at_sequence)
        if entry is None:
            return False
        if not self._pool.tryTake(entry[0]):
            return False
        del self._pending[request.issued_at_sequence]
        return True

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until all running loads finished (used on shutdown)."""
        return self._pool.waitForDone(msecs)

    @Slot(object, object)
    def _on_succeeded(self, request: SwapRequest, resource: object) -> None:
        entry = self._pending.pop(request.issued_at_sequence, None)
        if entry is not None:
            entry[1](request, resource)

    @Slot(object, object)
    def _on_failed(self, request: SwapRequest, error: BaseException) -> None:
        entry = self._pending.pop(request.issued_at_sequence, None)
        if entry is not None:
            entry[2](request, error)
