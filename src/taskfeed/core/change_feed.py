# src/taskfeed/core/change_feed.py

from __future__ import annotations

"""
Change feed.

Turns point-in-time store queries into live subscriptions:
- subscribe(query) evaluates the query right away; that result is the first item,
- after every commit reported by the source, each live query is re-evaluated,
- a new ResultSet is handed to subscribers only when the result actually changed.

Delivery is a latest-value slot per subscription. Offering a value never blocks,
so a slow consumer can never hold up the store. If the consumer has not taken the
previous value yet, it is replaced by the newer one (coalescing).

If re-evaluating a query after a commit fails, the channel is marked stale and its
consumers retry the query themselves (on poll, or every STALE_RETRY_SECONDS while
waiting), so a committed state is never stranded behind a transient read error.
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field

from ..tasks.task_models import ResultSet
from .ports import ChangeSource, TaskQuery

logger = logging.getLogger(__name__)

STALE_RETRY_SECONDS = 0.05


@dataclass(slots=True)
class _Channel:
    """All subscriptions sharing one query, plus the last value emitted for it."""

    query: TaskQuery
    last: ResultSet
    subscriptions: list[Subscription] = field(default_factory=list)
    # Set when re-evaluation after a commit failed; consumers retry it.
    stale: bool = False


class Subscription:
    """
    Live, infinite sequence of ResultSets for one subscriber.

    Consume it with a for loop (blocking), `async for`, get(timeout) or poll().
    close() unsubscribes; iteration then ends and no further values arrive.
    """

    def __init__(self, feed: ChangeFeed, channel: _Channel, initial: ResultSet) -> None:
        self._feed = feed
        self._channel = channel
        self._cond = threading.Condition()
        self._pending: ResultSet | None = initial
        self._closed = False
        self._coalesced = 0
        self._async_waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Event]] = []

    # ---- producer side (called by the feed) ----

    def _offer(self, result: ResultSet) -> None:
        with self._cond:
            if self._closed:
                return
            if self._pending is not None:
                self._coalesced += 1
            self._pending = result
            self._cond.notify_all()
            self._wake_async_locked()

    def _wake_async_locked(self) -> None:
        waiters, self._async_waiters = self._async_waiters, []
        for loop, event in waiters:
            # The consumer's loop may already be closed.
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(event.set)

    def _wake_locked(self) -> None:
        self._cond.notify_all()
        self._wake_async_locked()

    def _take_locked(self) -> ResultSet | None:
        result, self._pending = self._pending, None
        return result

    def _retry_stale(self) -> None:
        # Must not hold self._cond: the feed lock is always taken first.
        if self._channel.stale and not self._closed:
            self._feed._refresh(self._channel)

    # ---- consumer side ----

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def coalesced(self) -> int:
        """How many undelivered values were superseded by newer ones."""
        return self._coalesced

    def poll(self) -> ResultSet | None:
        """Take the pending value without waiting."""
        self._retry_stale()
        with self._cond:
            return self._take_locked()

    def get(self, timeout: float | None = None) -> ResultSet | None:
        """
        Wait for the next value.

        Returns None on timeout or when the subscription is closed.
        While the last re-evaluation failed, the query is retried every
        STALE_RETRY_SECONDS until it succeeds.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self._retry_stale()
            with self._cond:
                if self._pending is not None or self._closed:
                    return self._take_locked()

                wait = STALE_RETRY_SECONDS if self._channel.stale else None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._cond.wait(wait)

    def __iter__(self) -> Iterator[ResultSet]:
        return self

    def __next__(self) -> ResultSet:
        result = self.get()
        if result is None:
            raise StopIteration
        return result

    def __aiter__(self) -> AsyncIterator[ResultSet]:
        return self

    async def __anext__(self) -> ResultSet:
        loop = asyncio.get_running_loop()
        while True:
            self._retry_stale()
            with self._cond:
                result = self._take_locked()
                if result is not None:
                    return result
                if self._closed:
                    raise StopAsyncIteration
                event = asyncio.Event()
                self._async_waiters.append((loop, event))
                wait = STALE_RETRY_SECONDS if self._channel.stale else None

            try:
                await asyncio.wait_for(event.wait(), wait)
            except TimeoutError:
                self._discard_waiter(event)
            except asyncio.CancelledError:
                self._discard_waiter(event)
                raise

    def _discard_waiter(self, event: asyncio.Event) -> None:
        with self._cond:
            self._async_waiters = [w for w in self._async_waiters if w[1] is not event]

    def close(self) -> None:
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._pending = None
            self._wake_locked()
        self._feed._detach(self, self._channel)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ChangeFeed:
    """
    Push-based subscriptions over queries of a ChangeSource.

    Re-evaluation runs on the committing thread, after the store released its
    write lock, and is serialized by the feed lock. Results therefore never go
    backwards: every evaluation sees a state at least as new as the previous one.
    """

    def __init__(self, source: ChangeSource) -> None:
        self._source = source
        self._lock = threading.RLock()
        self._channels: dict[TaskQuery, _Channel] = {}
        self._revision = 0
        self._closed = False
        source.add_listener(self._on_commit)

    def _stamp(self, result: ResultSet) -> ResultSet:
        self._revision += 1
        return ResultSet(tasks=result.tasks, revision=self._revision)

    def _publish_locked(self, channel: _Channel, result: ResultSet) -> bool:
        if result == channel.last:
            return False
        channel.last = self._stamp(result)
        for sub in list(channel.subscriptions):
            sub._offer(channel.last)
        logger.debug(
            "Feed emitted revision=%s tasks=%s subscribers=%s",
            channel.last.revision,
            len(channel.last),
            len(channel.subscriptions),
        )
        return True

    def subscribe(self, query: TaskQuery) -> Subscription:
        """
        Subscribe to `query`.

        The first value is the query evaluated against the current store
        contents; earlier states are never replayed.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("change feed is closed")

            result = ResultSet.of(query())
            channel = self._channels.get(query)
            if channel is None:
                channel = _Channel(query=query, last=self._stamp(result))
                self._channels[query] = channel
            else:
                channel.stale = False
                self._publish_locked(channel, result)

            sub = Subscription(self, channel, channel.last)
            channel.subscriptions.append(sub)
            logger.debug("Feed subscriber added (total=%s)", len(channel.subscriptions))
            return sub

    def _detach(self, sub: Subscription, channel: _Channel) -> None:
        with self._lock:
            if sub in channel.subscriptions:
                channel.subscriptions.remove(sub)
            if not channel.subscriptions and self._channels.get(channel.query) is channel:
                del self._channels[channel.query]
            logger.debug("Feed subscriber removed (left=%s)", len(channel.subscriptions))

    def _evaluate_locked(self, channel: _Channel, *, retry: bool = False) -> None:
        try:
            result = ResultSet.of(channel.query())
        except Exception:
            if retry:
                logger.debug("Feed query retry failed", exc_info=True)
            else:
                logger.exception("Feed query re-evaluation failed; subscribers will retry")
            if not channel.stale:
                channel.stale = True
                # Waiting consumers switch to timed waits and retry.
                for sub in list(channel.subscriptions):
                    with sub._cond:
                        sub._wake_locked()
            return

        channel.stale = False
        self._publish_locked(channel, result)

    def _refresh(self, channel: _Channel) -> None:
        with self._lock:
            if channel.stale and self._channels.get(channel.query) is channel:
                self._evaluate_locked(channel, retry=True)

    def _on_commit(self) -> None:
        with self._lock:
            for channel in list(self._channels.values()):
                self._evaluate_locked(channel)

    def subscriber_count(self) -> int:
        with self._lock:
            return sum(len(c.subscriptions) for c in self._channels.values())

    def close(self) -> None:
        """Detach from the source and end every subscription."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subs = [s for c in self._channels.values() for s in c.subscriptions]
        self._source.remove_listener(self._on_commit)
        for sub in subs:
            sub.close()
