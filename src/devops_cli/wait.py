"""Fixed-interval polling of external state.

`poll_until` fetches a fresh snapshot, hands it to a check and either stops or
sleeps for `interval` before the next attempt. A check returns True when the
desired state is reached, False to keep waiting, and raises `PollFailure` when
waiting further is pointless (e.g. the resource disappeared).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class PollFailure(Exception):
    """Raised by a check to stop polling with a failed outcome."""


class PollStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed out"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class PollOutcome(Generic[T]):
    status: PollStatus
    attempts: int
    snapshot: T | None = None
    cause: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is PollStatus.SUCCEEDED


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    check: Callable[[T], bool],
    *,
    interval: float,
    max_attempts: int,
    cancel: asyncio.Event | None = None,
    sleep: Sleep = asyncio.sleep,
) -> PollOutcome[T]:
    """Poll `fetch` until `check` accepts a snapshot or attempts run out.

    Errors raised by `fetch` propagate unchanged. No sleep follows the last
    attempt. When `cancel` is set the loop stops before the next attempt
    (waking up from the current interval early) with a CANCELLED outcome.
    """
    snapshot: T | None = None
    for attempt in range(1, max_attempts + 1):
        if cancel is not None and cancel.is_set():
            return PollOutcome(PollStatus.CANCELLED, attempt - 1, snapshot)

        snapshot = await fetch()
        try:
            done = check(snapshot)
        except PollFailure as exc:
            logger.debug("poll attempt {attempt} failed: {exc}", attempt=attempt, exc=exc)
            return PollOutcome(PollStatus.FAILED, attempt, snapshot, cause=str(exc))

        if done:
            return PollOutcome(PollStatus.SUCCEEDED, attempt, snapshot)

        logger.trace("poll attempt {attempt}/{max} not ready", attempt=attempt, max=max_attempts)
        if attempt < max_attempts and await _pause(interval, cancel, sleep):
            return PollOutcome(PollStatus.CANCELLED, attempt, snapshot)

    return PollOutcome(PollStatus.TIMED_OUT, max(max_attempts, 0), snapshot)


async def _pause(interval: float, cancel: asyncio.Event | None, sleep: Sleep) -> bool:
    if cancel is None:
        await sleep(interval)
        return False
    tasks = {asyncio.ensure_future(sleep(interval)), asyncio.ensure_future(cancel.wait())}
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return cancel.is_set()
