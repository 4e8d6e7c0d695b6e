"""Anti-idle typing and auto-rejoin after an automatic kick."""

import structlog

from .host import ChatMessage
from .recovery import RecoveryOrchestrator
from .scheduler import JobScheduler
from .session import CheckerSession

logger = structlog.get_logger(__name__)

ANTI_IDLE_JOB_ID = "anti_idle"
AUTO_REJOIN_JOB_ID = "auto_rejoin"


class AntiIdle:
    """Shows a typing indicator in the bot channel at a fixed interval."""

    def __init__(self, session: CheckerSession, scheduler: JobScheduler):
        self.session = session
        self.scheduler = scheduler

    def schedule(self) -> bool:
        config = self.session.config
        if not config.anti_idle_enabled:
            return False
        self.scheduler.add_interval_job(
            ANTI_IDLE_JOB_ID,
            self.tick,
            seconds=config.timing.anti_idle_interval_seconds,
            description="Anti-idle typing indicator",
        )
        return True

    async def tick(self) -> None:
        config = self.session.config
        if not config.anti_idle_enabled:
            return
        try:
            self.session.host.start_typing(config.bot.channel_id)
        except Exception as e:
            logger.error("Failed to start typing indicator", error=str(e))


class AutoRejoin:
    """Schedules a deferred /start after the bot reports an automatic kick."""

    def __init__(self, session: CheckerSession, scheduler: JobScheduler, orchestrator: RecoveryOrchestrator):
        self.session = session
        self.scheduler = scheduler
        self.orchestrator = orchestrator

    def on_auto_kick(self, message: ChatMessage) -> None:
        config = self.session.config
        delay = config.timing.auto_rejoin_delay_seconds

        if not config.auto_rejoin_enabled:
            self.session.notify("👢 **PPMChecker Alert!**\nYou were automatically kicked. Auto-rejoin is off.")
            return
        if not self.scheduler.running:
            logger.warning("Auto-kick received while checker is stopped, not rejoining")
            return

        self.session.notify(f"👢 **PPMChecker Alert!**\nYou were automatically kicked. Rejoining in {delay:g}s...")
        self.scheduler.add_date_job(AUTO_REJOIN_JOB_ID, self.rejoin, delay, description="Auto-rejoin after kick")

    async def rejoin(self) -> bool:
        logger.info("Auto-rejoin firing")
        try:
            started = await self.orchestrator.start_with_cooldown()
        except Exception as e:
            logger.error("Auto-rejoin failed", error=str(e))
            return False
        if started:
            self.session.notify("🔁 Auto-rejoin: /start sent after kick.")
        return started
