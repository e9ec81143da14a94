"""Detached job runners for cart synchronization.

Jobs are submitted under a key. While a job for a key is still queued, a new
submission replaces it, so a burst of edits produces one sync that reads the
latest cart when it finally runs.
"""
from __future__ import annotations
import logging
import threading
from collections import OrderedDict
from typing import Callable, Hashable, Optional

log = logging.getLogger(__name__)


class InlineRunner:
    """Runs jobs immediately on the caller's thread (tests, scripts)."""

    def submit(self, key: Hashable, job: Callable[[], None]) -> None:
        _run_job(key, job)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return True


class BackgroundRunner:
    """Single daemon worker draining a keyed, coalescing queue."""

    def __init__(self, name: str = 'cart-sync'):
        self.name = name
        self._cond = threading.Condition()
        self._pending: 'OrderedDict[Hashable, Callable[[], None]]' = OrderedDict()
        self._busy = False
        self._thread: Optional[threading.Thread] = None

    def submit(self, key: Hashable, job: Callable[[], None]) -> None:
        with self._cond:
            if key in self._pending:
                log.debug('Coalescing queued job %s', key)
            self._pending[key] = job
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._work, name=self.name, daemon=True)
                self._thread.start()
            self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the queue is drained; False when ``timeout`` ran out."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._pending and not self._busy, timeout)

    def _work(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: bool(self._pending))
                key, job = self._pending.popitem(last=False)
                self._busy = True
            try:
                _run_job(key, job)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()


def _run_job(key: Hashable, job: Callable[[], None]) -> None:
    try:
        job()
    except Exception:
        # detached: nobody is left to receive the error
        log.exception('Detached job %s failed', key)


__all__ = ['InlineRunner', 'BackgroundRunner']
