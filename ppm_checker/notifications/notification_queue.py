"""Rate-limited, bounded queue for outbound status messages."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Deque, List, Optional

import structlog

from ..exceptions import RateLimitedError

logger = structlog.get_logger(__name__)

SendFunc = Callable[[str, str], Awaitable[None]]
SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


@dataclass(frozen=True)
class NotificationQueueEntry:
    content: str
    channel_id: str


class NotificationQueue:
    """Sends queued messages one at a time with a minimum gap between sends.

    Consecutive sends are at least ``min_interval`` apart, also across
    separate bursts. When the backlog is full the oldest unsent entry is
    dropped. A rate-limit signal from the sender puts the entry (or its
    undelivered remainder) back at the head of the queue and pauses draining
    for the backoff period.
    """

    def __init__(
        self,
        send: SendFunc,
        *,
        max_length: int = 20,
        min_interval: float = 1.5,
        rate_limit_backoff: float = 10.0,
        sleep: SleepFunc = asyncio.sleep,
        clock: ClockFunc = time.monotonic,
    ):
        self._send = send
        self.max_length = max_length
        self.min_interval = min_interval
        self.rate_limit_backoff = rate_limit_backoff
        self._sleep = sleep
        self._clock = clock
        self._last_attempt_at: Optional[float] = None
        self._entries: Deque[NotificationQueueEntry] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self.sent_count = 0
        self.dropped_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def pending(self) -> List[NotificationQueueEntry]:
        return list(self._entries)

    def enqueue(self, content: str, channel_id: str) -> None:
        """Queue a message and make sure a drain task is running."""
        self._entries.append(NotificationQueueEntry(content=content, channel_id=channel_id))
        self._trim()
        self._ensure_draining()

    def _trim(self) -> None:
        while len(self._entries) > self.max_length:
            dropped = self._entries.popleft()
            self.dropped_count += 1
            logger.warning("Notification queue full, dropping oldest entry",
                           channel_id=dropped.channel_id,
                           max_length=self.max_length)

    def _ensure_draining(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, notifications stay queued")
            return
        self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._entries:
            await self._wait_for_slot()
            if not self._entries:
                break
            entry = self._entries.popleft()
            try:
                await self._send(entry.channel_id, entry.content)
                self.sent_count += 1
            except RateLimitedError as e:
                backoff = max(self.rate_limit_backoff, e.retry_after or 0)
                logger.warning("Notification rate limited, backing off", backoff_seconds=backoff)
                if e.remaining_content is not None:
                    entry = replace(entry, content=e.remaining_content)
                self._entries.appendleft(entry)
                self._trim()
                self._last_attempt_at = self._clock()
                await self._sleep(backoff)
                continue
            except Exception as e:
                logger.error("Error sending notification", channel_id=entry.channel_id, error=str(e))
            self._last_attempt_at = self._clock()

    async def _wait_for_slot(self) -> None:
        if self._last_attempt_at is None:
            return
        delay = self._last_attempt_at + self.min_interval - self._clock()
        if delay > 0:
            await self._sleep(delay)

    async def join(self) -> None:
        """Wait until the queue has been drained."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    def reset(self) -> None:
        """Drop every pending entry and stop draining."""
        self._entries.clear()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        self._drain_task = None
