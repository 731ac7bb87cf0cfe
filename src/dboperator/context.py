"""Execution context carrying cancellation and deadline for operator calls."""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from dboperator.errors import OperationCancelledError

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Cancellation handle passed to operator methods.

    A context can be cancelled from any thread with :meth:`cancel`, and may
    carry a deadline derived from ``timeout`` seconds. Operators call
    :meth:`check` before and after every statement, and run the statement
    inside :meth:`watch` so that cancelling, or reaching the deadline,
    interrupts it on the driver connection.

    Example:
        >>> ctx = ExecutionContext(timeout=5)
        >>> rows = operator.get_data_by_sql("main", "SELECT 1", ctx=ctx)
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._cancelled = threading.Event()
        self._deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        """Whether the context was cancelled or its deadline has passed."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def cancel(self) -> None:
        """Cancel the context and interrupt any watched statement."""
        self._cancelled.set()
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            self._fire(callback)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def check(self) -> None:
        """Raise if the context can no longer be used.

        Raises:
            OperationCancelledError: If cancelled or past the deadline.
        """
        if self._cancelled.is_set():
            raise OperationCancelledError("Operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError("Operation deadline exceeded")

    @contextmanager
    def watch(self, callback: Callable[[], None]) -> Iterator[None]:
        """Call ``callback`` if the context is cancelled or expires meanwhile.

        The callback runs on the cancelling thread, or on a timer thread when
        the deadline passes. If the context is already cancelled it runs
        immediately.

        Args:
            callback: Interrupts the work done inside the block.
        """
        with self._lock:
            self._callbacks.append(callback)

        timer = None
        remaining = self.remaining()
        if remaining is not None:
            timer = threading.Timer(remaining, self._fire, args=(callback,))
            timer.daemon = True
            timer.start()

        if self._cancelled.is_set():
            self._fire(callback)

        try:
            yield
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._callbacks.remove(callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        # Runs on a foreign thread; a failing interrupt must not reach it
        try:
            callback()
        except Exception as e:
            logger.warning("Interrupting a cancelled statement failed: %s", e)
