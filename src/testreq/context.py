"""Cancellation and deadline contexts carried by synthesized requests.

A context never cancels anything by itself: it is a token that handlers can
inspect to decide whether to give up on work. Dispatching a request binds its
context into the WSGI environ, where handlers retrieve it with
`context_from_environ`.

Example:

    ctx = Context.background().with_timeout(timedelta(seconds=1))
    new_request().get("/slow").with_context(ctx).go_with_http_handler(t, app)
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

ENVIRON_KEY = "testreq.context"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Canceled(Exception):
    """The context was canceled."""


class DeadlineExceeded(TimeoutError):
    """The context deadline passed."""


class Context:
    """A cancellation token with an optional deadline.

    Contexts form a tree: a child is done as soon as its parent is, and its
    deadline is never later than the parent's.
    """

    __slots__ = ("_parent", "_deadline", "_canceled", "_cancelable")

    def __init__(
        self,
        parent: Optional[Context] = None,
        deadline: Optional[datetime] = None,
        cancelable: bool = True,
    ):
        self._parent = parent
        if deadline is not None:
            # Naive datetimes are local time; deadlines are kept in UTC.
            deadline = deadline.astimezone(timezone.utc)
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
        self._deadline = deadline
        self._canceled = threading.Event()
        self._cancelable = cancelable

    @classmethod
    def background(cls) -> Context:
        """Returns a context that is never canceled and has no deadline."""
        return cls(cancelable=False)

    def with_cancel(self) -> Context:
        return Context(parent=self)

    def with_deadline(self, deadline: datetime) -> Context:
        return Context(parent=self, deadline=deadline)

    def with_timeout(self, timeout: timedelta) -> Context:
        return self.with_deadline(_now() + timeout)

    @property
    def deadline(self) -> Optional[datetime]:
        """The deadline as an aware UTC datetime, None if there is none."""
        return self._deadline

    def cancel(self):
        """Cancel the context and all contexts derived from it.

        Background contexts cannot be canceled; calling this method on them
        raises ValueError.
        """
        if not self._cancelable:
            raise ValueError("background context cannot be canceled")
        self._canceled.set()

    def cancelled(self) -> bool:
        if self._canceled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled()

    def expired(self) -> bool:
        return self._deadline is not None and _now() >= self._deadline

    def done(self) -> bool:
        return self.cancelled() or self.expired()

    def remaining(self) -> Optional[timedelta]:
        """Time left until the deadline, None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(self._deadline - _now(), timedelta(0))

    def err(self) -> Optional[Exception]:
        """Returns why the context is done, or None while it is still live."""
        if self.cancelled():
            return Canceled("context canceled")
        if self.expired():
            return DeadlineExceeded("context deadline exceeded")
        return None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is done or the timeout elapses.

        Returns True if the context is done.
        """
        limit = None
        if timeout is not None:
            limit = _now() + timedelta(seconds=timeout)
        while not self.done():
            step = 0.01
            remaining = self.remaining()
            if remaining is not None:
                step = min(step, remaining.total_seconds())
            if limit is not None:
                left = (limit - _now()).total_seconds()
                if left <= 0:
                    return False
                step = min(step, left)
            self._canceled.wait(max(step, 0))
        return True

    def __repr__(self):
        return f"Context(deadline={self._deadline!r}, done={self.done()})"


def context_from_environ(environ: Mapping[str, Any]) -> Context:
    """Returns the context bound to a WSGI environ by the dispatcher, or a
    background context if there is none."""
    ctx = environ.get(ENVIRON_KEY)
    if ctx is None:
        return Context.background()
    return ctx
