"""
Sequencing primitives shared by the feed, search and route streams.

LatestWins stamps each request with a monotonically increasing token and
reports on completion whether that token is still the newest one, so late
responses from superseded requests are dropped instead of applied.
TrailingDebouncer collapses a burst of inputs into one action that runs with
the last input once a quiet window has passed.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Set, TypeVar

from nirapod_map.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    """Result of one token-stamped operation."""
    token: int
    current: bool
    result: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LatestWins(Generic[T]):
    """
    Token-stamped async operation for one logical stream.

    Cancellation is advisory: issuing a new token never aborts the awaitable
    already in flight, it only marks its outcome as stale.
    """

    def __init__(self, name: str):
        self.name = name
        self._token = 0

    @property
    def latest(self) -> int:
        return self._token

    def issue(self) -> int:
        self._token += 1
        return self._token

    def invalidate(self) -> None:
        """Make every outstanding token stale without starting a request."""
        self.issue()

    def is_current(self, token: int) -> bool:
        return token == self._token

    async def run(self, operation: Callable[[], Awaitable[T]]) -> Outcome[T]:
        """
        Issue a token, await the operation and compare-and-apply on completion.

        Exceptions raised by the operation are captured in the outcome, never
        re-raised; the caller decides what a failure means for its stream.
        """
        token = self.issue()
        try:
            result = await operation()
        except Exception as e:
            current = self.is_current(token)
            if not current:
                logger.debug(f"[{self.name}] discarding failure of superseded request #{token}: {e}")
            return Outcome(token=token, current=current, error=e)

        current = self.is_current(token)
        if not current:
            logger.debug(f"[{self.name}] discarding stale response #{token} (latest is #{self._token})")
        return Outcome(token=token, current=current, result=result)


class TrailingDebouncer(Generic[T]):
    """
    Run ``action(value)`` once the input has been quiet for ``delay`` seconds.

    Only the pending timer is cancelled by a newer push; an action that has
    already started runs to completion.
    """

    def __init__(self, delay: float, action: Callable[[T], Awaitable[Any]], name: str = "debounce"):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self.name = name
        self._action = action
        self._latest: Optional[T] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._fired: Optional[asyncio.Future] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        self._latest = value
        if self._handle is not None:
            self._handle.cancel()
        if self._fired is None or self._fired.done():
            self._fired = loop.create_future()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending input, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._fired is not None and not self._fired.done():
            self._fired.cancel()
        self._fired = None

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._action(self._latest))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        fired, self._fired = self._fired, None
        if fired is not None and not fired.done():
            fired.set_result(task)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[{self.name}] debounced action failed: {error}", exc_info=error)

    async def shutdown(self) -> None:
        """Drop pending input, cancel started actions and wait for them to unwind."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(f"[{self.name}] cancelled {len(tasks)} running action(s) on shutdown")

    async def drain(self) -> None:
        """Wait until no input is pending and every started action has finished."""
        while self._fired is not None or self._tasks:
            if self._fired is not None:
                await asyncio.wait([self._fired])
            else:
                await asyncio.wait(list(self._tasks))
