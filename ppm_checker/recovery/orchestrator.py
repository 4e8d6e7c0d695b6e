"""Check-and-recover state machine.

One cycle: optional /clear, /ppm, classify the reply, and when the cluster is
unhealthy run stop, wait, start (with cooldown retry) and verify. Every step
is best-effort; a failed command is logged and the sequence carries on. A
sequence whose session was reset (stop) during one of its waits is abandoned.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import structlog

from ..commands import CLEAR_COMMAND, PPM_COMMAND, START_COMMAND, STOP_COMMAND
from ..correlation import CheckKind, CheckResult, CooldownKind, CooldownOutcome
from ..notifications.formatting import format_duration_ms, format_value
from ..session import CheckerSession
from .group_remediation import GroupRemediation

logger = structlog.get_logger(__name__)


@dataclass
class ScheduleCycle:
    """One run of the periodic check."""
    trigger: str
    modules_initialized: bool
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    result: Optional[CheckResult] = None
    finished_at: Optional[datetime] = None


class RecoveryOrchestrator:
    """Drives the check, restart, start and verify flows for one identity."""

    def __init__(self, session: CheckerSession, remediation: Optional[GroupRemediation] = None):
        self.session = session
        self.remediation = remediation or GroupRemediation(session)

    async def run_cycle(self, cycle: ScheduleCycle) -> Optional[CheckResult]:
        session = self.session
        config = session.config
        generation = session.generation
        logger.info("Scheduler running check", trigger=cycle.trigger)

        if config.send_clear_command:
            logger.info("Executing /clear before check")
            await session.execute(CLEAR_COMMAND)
            if not await self._pause(config.timing.clear_delay_seconds, generation):
                cycle.result = CheckResult.stopped()
                cycle.finished_at = datetime.now(timezone.utc)
                return cycle.result

        result = await self.check()
        cycle.result = result
        if session.generation != generation:
            logger.info("Check aborted by stop")
            cycle.finished_at = datetime.now(timezone.utc)
            return result

        if result.raw_text and config.helper_mode:
            try:
                await self.remediation.run(result.raw_text)
            except Exception as e:
                logger.error("Group remediation failed", error=str(e))

        await self.handle(result)

        cycle.finished_at = datetime.now(timezone.utc)
        logger.info("Sequence finished", result=result.kind.value)
        return result

    async def _pause(self, seconds: float, generation: int) -> bool:
        """Sleep, then report whether the session survived the wait."""
        await self.session.sleep(seconds)
        if self.session.generation != generation:
            logger.info("Checker stopped during wait, abandoning sequence")
            return False
        return True

    async def check(self) -> CheckResult:
        """Send /ppm and wait for the correlated reply."""
        timeout = self.session.config.timing.check_timeout_seconds
        waiter = self.session.check_correlator.begin_wait(timeout)
        await self.session.execute(PPM_COMMAND)
        return await waiter

    async def handle(self, result: CheckResult) -> None:
        session = self.session
        verbose = session.config.is_verbose

        if result.kind is CheckKind.VALUE:
            icon = "✅" if result.healthy else "❌"
            if verbose:
                session.notify(f"{icon} My PPM: **{format_value(result.value)}**")
            if result.healthy:
                logger.info("PPM is healthy", value=result.value)
                return
            logger.warning("PPM is 0, initiating restart")
            session.notify("⚠️ **PPMChecker Alert!** ⚠️\n\nYOUR PPM is **0**. Restarting cluster...")
            await self.restart_flow()

        elif result.kind is CheckKind.OFFLINE:
            logger.warning("Cluster offline, sending /start")
            session.notify('❌ **PPMChecker Alert!** ❌\n\nCluster "Not Started". Sending /start.')
            if await self.start_with_cooldown():
                await self.verify()

        elif result.kind is CheckKind.MISSING_IDENTITY:
            logger.warning("Bot replied but user id not found, initiating restart")
            session.notify("❓ **PPMChecker Alert!** ❓\n\nYour ID was not found in the list. Restarting cluster...")
            await self.restart_flow()

        elif result.kind is CheckKind.TIMEOUT:
            logger.warning("Bot did not reply, doing nothing until next cycle")
            if verbose:
                session.notify("⏱️ PPM check timed out (bot did not reply). Taking no action.")

        elif result.kind is CheckKind.RACE_CONDITION:
            logger.warning("Skipping concurrent check")

        elif result.kind is CheckKind.STOPPED:
            logger.info("Check aborted by stop")

    async def restart_flow(self) -> None:
        session = self.session
        generation = session.generation
        await session.execute(STOP_COMMAND)
        delay = session.config.timing.reload_delay_seconds
        logger.warning("Waiting before restart", delay_seconds=delay)
        if not await self._pause(delay, generation):
            return
        if await self.start_with_cooldown():
            await self.verify()

    async def _send_start(self) -> CooldownOutcome:
        timeout = self.session.config.timing.start_ack_timeout_seconds
        waiter = self.session.start_correlator.begin_wait(timeout)
        await self.session.execute(START_COMMAND)
        return await waiter

    async def start_with_cooldown(self) -> bool:
        """Send /start, retrying once after a reported cooldown.

        Returns True when the start is assumed to have taken effect.
        """
        session = self.session
        generation = session.generation
        outcome = await self._send_start()

        if outcome.kind is CooldownKind.COOLDOWN:
            buffer = session.config.timing.cooldown_buffer_seconds
            logger.warning("Start on cooldown, retrying after wait", wait_ms=outcome.wait_ms)
            session.notify(f"⏳ /start is on cooldown for **{format_duration_ms(outcome.wait_ms)}**. Retrying after the wait...")
            if not await self._pause(outcome.wait_ms / 1000 + buffer, generation):
                return False

            outcome = await self._send_start()
            if outcome.kind is CooldownKind.COOLDOWN:
                logger.error("Start still on cooldown after retry, giving up", wait_ms=outcome.wait_ms)
                session.notify("🚨 **Start FAILED**\n/start is still on cooldown after a retry. Manual check required.")
                return False

        if outcome.kind in (CooldownKind.RACE_CONDITION, CooldownKind.STOPPED):
            logger.warning("Start acknowledgement not awaited", outcome=outcome.kind.value)
            return False

        logger.info("Start accepted", outcome=outcome.kind.value)
        if session.config.is_verbose:
            session.notify("▶️ /start sent.")
        return True

    async def verify(self) -> Optional[bool]:
        """Re-check after a warm-up; True iff the value is back above zero."""
        session = self.session
        delay = session.config.timing.verify_wait_seconds
        generation = session.generation
        logger.info("Waiting for cluster to warm up before verification", delay_seconds=delay)
        if not await self._pause(delay, generation):
            return None

        logger.info("Sending verification /ppm command")
        result = await self.check()

        if result.kind is CheckKind.STOPPED:
            logger.info("Verification aborted by stop")
            return None

        if result.healthy:
            logger.info("Verification success: PPM is > 0", value=result.value)
            session.notify("✅ **Restart Successful**\nCluster is back online and PPM is healthy.")
            return True

        logger.error("Verification failed", result=result.kind.value, value=result.value)
        session.notify("🚨 **Restart FAILED**\nCluster is still offline. Manual check required.")
        return False
