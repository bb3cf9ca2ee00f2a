from datetime import datetime, timedelta, timezone

import pytest

from testreq import Context, context_from_environ
from testreq.context import Canceled, DeadlineExceeded


def test_background():
    ctx = Context.background()
    assert not ctx.done()
    assert ctx.err() is None
    assert ctx.deadline is None
    assert ctx.remaining() is None
    with pytest.raises(ValueError):
        ctx.cancel()


def test_cancel():
    ctx = Context.background().with_cancel()
    assert not ctx.cancelled()
    ctx.cancel()
    assert ctx.cancelled()
    assert ctx.done()
    assert isinstance(ctx.err(), Canceled)
    assert ctx.wait(timeout=0)


def test_cancel_propagates_to_children():
    parent = Context.background().with_cancel()
    child = parent.with_timeout(timedelta(hours=1))
    parent.cancel()
    assert child.cancelled()


def test_cancel_does_not_propagate_to_parent():
    parent = Context.background().with_cancel()
    child = parent.with_cancel()
    child.cancel()
    assert not parent.cancelled()


def test_deadline_exceeded():
    ctx = Context.background().with_deadline(datetime.now() - timedelta(seconds=1))
    assert ctx.expired()
    assert isinstance(ctx.err(), DeadlineExceeded)
    assert isinstance(ctx.err(), TimeoutError)
    assert ctx.remaining() == timedelta(0)


def test_child_deadline_is_capped_by_parent():
    parent = Context.background().with_timeout(timedelta(seconds=10))
    child = parent.with_timeout(timedelta(hours=1))
    assert child.deadline == parent.deadline


def test_wait_times_out():
    ctx = Context.background().with_cancel()
    assert not ctx.wait(timeout=0.02)


def test_wait_until_deadline():
    ctx = Context.background().with_timeout(timedelta(milliseconds=20))
    assert ctx.wait(timeout=5)
    assert ctx.expired()


def test_context_from_environ_default():
    ctx = context_from_environ({})
    assert not ctx.done()


def test_aware_deadline():
    deadline = datetime.now(timezone.utc) + timedelta(minutes=1)
    ctx = Context.background().with_deadline(deadline)
    assert not ctx.done()
    assert ctx.err() is None
    assert timedelta(0) < ctx.remaining() <= timedelta(minutes=1)
    assert ctx.deadline == deadline


def test_aware_deadline_in_other_timezone():
    tz = timezone(timedelta(hours=-5))
    ctx = Context.background().with_deadline(datetime.now(tz) - timedelta(seconds=1))
    assert ctx.expired()
    assert ctx.deadline.tzinfo is timezone.utc


def test_mixed_naive_and_aware_deadlines():
    parent = Context.background().with_timeout(timedelta(minutes=1))
    child = parent.with_deadline(datetime.now() + timedelta(hours=1))
    grandchild = child.with_deadline(datetime.now(timezone.utc) + timedelta(seconds=5))
    assert child.deadline == parent.deadline
    assert grandchild.deadline < parent.deadline
    assert not grandchild.done()
