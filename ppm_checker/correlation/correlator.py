"""Single-slot correlation of a sent command with the bot's reply.

A correlator holds at most one pending future. It is resolved exactly once:
by a matching message, by its timer, or by ``force_resolve`` on shutdown.
Asking for a second wait while one is outstanding never creates another slot;
the caller gets a race outcome immediately.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

import structlog

from ..host import ChatMessage
from ..matching import MatchKind, match, match_cooldown, match_roster
from .results import CheckResult, CooldownOutcome

logger = structlog.get_logger(__name__)

R = TypeVar("R")


class _SingleSlotCorrelator(Generic[R]):
    name = "correlator"

    def __init__(self) -> None:
        self._future: asyncio.Future[R] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._seen = False

    @property
    def busy(self) -> bool:
        return self._future is not None

    @property
    def seen(self) -> bool:
        return self._seen

    def begin_wait(self, timeout: float) -> asyncio.Future[R]:
        loop = asyncio.get_running_loop()
        if self._future is not None:
            logger.warning("Wait already outstanding", correlator=self.name)
            raced: asyncio.Future[R] = loop.create_future()
            raced.set_result(self._race_result())
            return raced

        self._seen = False
        self._future = loop.create_future()
        self._timer = loop.call_later(timeout, self._on_timeout)
        return self._future

    def on_candidate_event(self, message: ChatMessage) -> None:
        if self._future is None:
            return
        self._seen = True
        result = self._extract(message)
        if result is not None:
            self._resolve(result)

    def force_resolve(self, result: R | None = None) -> bool:
        return self._resolve(result if result is not None else self._stopped_result())

    def _resolve(self, result: R) -> bool:
        future = self._future
        if future is None:
            return False
        self._future = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not future.done():
            future.set_result(result)
        return True

    def _on_timeout(self) -> None:
        self._timer = None
        if self._future is not None:
            self._resolve(self._timeout_result())

    def _extract(self, message: ChatMessage) -> R | None:
        raise NotImplementedError

    def _timeout_result(self) -> R:
        raise NotImplementedError

    def _race_result(self) -> R:
        raise NotImplementedError

    def _stopped_result(self) -> R:
        raise NotImplementedError


class PendingResultCorrelator(_SingleSlotCorrelator[CheckResult]):
    """Waits for the status reply of the tracked identity."""

    name = "status"

    def __init__(self, identity_id: str | None = None) -> None:
        super().__init__()
        self.identity_id = identity_id
        self._last_text: str | None = None
        self._roster_text: str | None = None

    def begin_wait(self, timeout: float) -> asyncio.Future[CheckResult]:
        if not self.busy:
            self._last_text = None
            self._roster_text = None
        return super().begin_wait(timeout)

    def _extract(self, message: ChatMessage) -> CheckResult | None:
        text = message.full_text
        self._last_text = text
        if match_roster(text) is not None:
            self._roster_text = text
        if not self.identity_id:
            logger.error("Cannot parse PPM: current user id not loaded")
            return None

        outcome = match(text, self.identity_id)
        if outcome.kind is MatchKind.OFFLINE:
            logger.warning("Cluster status captured", status="offline")
            return CheckResult.offline(raw_text=text)
        if outcome.kind is MatchKind.VALUE:
            logger.info("Found my PPM", value=outcome.value)
            return CheckResult.of_value(outcome.value, raw_text=text)
        return None

    def _timeout_result(self) -> CheckResult:
        if self._seen:
            # latest roster reply wins over later chatter
            return CheckResult.missing_identity(raw_text=self._roster_text or self._last_text)
        return CheckResult.timeout()

    def _race_result(self) -> CheckResult:
        return CheckResult.race_condition()

    def _stopped_result(self) -> CheckResult:
        return CheckResult.stopped()


class StartAckCorrelator(_SingleSlotCorrelator[CooldownOutcome]):
    """Waits for the bot to accept or refuse (cooldown) a start command."""

    name = "start_ack"

    def _extract(self, message: ChatMessage) -> CooldownOutcome | None:
        wait_ms = match_cooldown(message.full_text)
        if wait_ms is not None:
            return CooldownOutcome.cooldown(wait_ms)
        return CooldownOutcome.success()

    def _timeout_result(self) -> CooldownOutcome:
        return CooldownOutcome.timeout()

    def _race_result(self) -> CooldownOutcome:
        return CooldownOutcome.race_condition()

    def _stopped_result(self) -> CooldownOutcome:
        return CooldownOutcome.stopped()
