"""Cancellable, deadline-bounded execution contexts."""

from __future__ import annotations

import threading
import time

DEADLINE_EXCEEDED = "deadline exceeded"
CANCELLED = "cancelled"


class CancellationContext:
    """Carries a cancellation signal and an optional monotonic deadline.

    Child contexts observe their parent: cancelling a parent cancels every
    context derived from it, and a child's deadline never outlives the
    parent's. Used as a context manager, a context cancels itself on exit so
    its resources are released on every path.
    """

    def __init__(
        self,
        parent: CancellationContext | None = None,
        deadline: float | None = None,
    ) -> None:
        self._parent = parent
        self._event = threading.Event()
        self._reason: str | None = None
        parent_deadline = parent.deadline if parent is not None else None
        if deadline is None:
            self.deadline = parent_deadline
        elif parent_deadline is None:
            self.deadline = deadline
        else:
            self.deadline = min(deadline, parent_deadline)

    def cancel(self, reason: str = CANCELLED) -> None:
        """Signal cancellation; the first reason wins, including an expired deadline."""
        if self._reason is None:
            self._reason = self.err or reason
        self._event.set()

    @property
    def err(self) -> str | None:
        """Return why the context is done, or None while still live."""
        if self._reason is not None:
            return self._reason
        if self._parent is not None and self._parent.err is not None:
            return self._parent.err
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DEADLINE_EXCEEDED
        return None

    def done(self) -> bool:
        return self.err is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to timeout seconds or until done; return done()."""
        limit = self.remaining()
        if timeout is not None:
            limit = timeout if limit is None else min(limit, timeout)
        if self._parent is None:
            self._event.wait(limit)
        else:
            # Parent cancellation is not pushed to children, so poll.
            end = None if limit is None else time.monotonic() + limit
            while not self.done():
                step = 0.05 if end is None else min(0.05, end - time.monotonic())
                if step <= 0:
                    break
                self._event.wait(step)
        return self.done()

    def __enter__(self) -> CancellationContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


def background() -> CancellationContext:
    """Return a root context that is never cancelled unless asked to be."""
    return CancellationContext()


def with_timeout(parent: CancellationContext, seconds: float) -> CancellationContext:
    """Derive a child context that expires after the given number of seconds."""
    return CancellationContext(parent=parent, deadline=time.monotonic() + seconds)
