"""State of one running checker instance.

Everything that lives between ``start`` and ``stop`` (the loaded command
executor, the event subscription, both correlator slots and the notification
backlog) is owned by a ``CheckerSession``. ``init`` loads the host
collaborators once; ``reset`` releases all of it so the next ``init`` starts
clean.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from .commands import SlashCommand
from .config import CheckerConfig, get_config
from .correlation import PendingResultCorrelator, StartAckCorrelator
from .exceptions import BootstrapError
from .host import ChatMessage, CommandExecutor, HostBindings, Subscription
from .matching import match_auto_kick
from .notifications import NotificationQueue

logger = structlog.get_logger(__name__)

ConfigProvider = Callable[[], CheckerConfig]
SleepFunc = Callable[[float], Awaitable[None]]


class CheckerSession:
    """Owns the collaborators, correlators and notification queue."""

    def __init__(
        self,
        host: HostBindings,
        config_provider: ConfigProvider = get_config,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.host = host
        self._config_provider = config_provider
        self.sleep = sleep

        self.check_correlator = PendingResultCorrelator()
        self.start_correlator = StartAckCorrelator()
        self.queue = self._new_queue()

        self.executor: Optional[CommandExecutor] = None
        self.subscription: Optional[Subscription] = None
        self.identity_id: Optional[str] = None
        self.modules_loaded = False
        # Bumped by every reset; in-flight sequences compare it after each wait.
        self.generation = 0
        self.on_auto_kick: Optional[Callable[[ChatMessage], None]] = None
        self._bootstrap_lock = asyncio.Lock()

    @property
    def config(self) -> CheckerConfig:
        return self._config_provider()

    def _new_queue(self) -> NotificationQueue:
        timing = self.config.timing
        return NotificationQueue(
            self.host.send,
            max_length=timing.notification_queue_max_length,
            min_interval=timing.notification_min_interval_seconds,
            rate_limit_backoff=timing.notification_rate_limit_backoff_seconds,
            sleep=self.sleep,
        )

    # --- lifecycle ---

    async def init(self) -> bool:
        """Load host collaborators once.

        Returns True when this call performed the bootstrap. Raises
        ``BootstrapError`` when no command executor can be located.
        """
        async with self._bootstrap_lock:
            if self.modules_loaded:
                return False

            logger.info("Loading modules")
            self.identity_id = self._load_identity()
            self.check_correlator.identity_id = self.identity_id

            try:
                executor = await self.host.load_command_executor()
            except Exception as e:
                raise BootstrapError(f"Command executor failed to load: {e}") from e
            if executor is None:
                raise BootstrapError("Critical command executor failed to load")
            self.executor = executor

            try:
                self.subscription = self.host.subscribe(self.dispatch)
                logger.info("Subscribed to message events")
            except Exception as e:
                logger.error("Failed to subscribe to message events", error=str(e))

            self.queue = self._new_queue()
            self.modules_loaded = True
            return True

    def _load_identity(self) -> Optional[str]:
        try:
            identity_id = self.host.get_current_identity()
        except Exception as e:
            logger.error("Failed to identify current user", error=str(e))
            return None
        if not identity_id:
            logger.error("Failed to identify current user", error="no current user")
            return None
        logger.info("Identified current user", identity_id=identity_id)
        return str(identity_id)

    def reset(self) -> None:
        """Unblock waiters and release every collaborator."""
        self.generation += 1
        if self.check_correlator.force_resolve():
            logger.info("Resolved pending status wait as stopped")
        if self.start_correlator.force_resolve():
            logger.info("Resolved pending start wait as stopped")
        self.queue.reset()

        if self.subscription is not None:
            try:
                self.subscription.unsubscribe()
            except Exception as e:
                logger.error("Failed to unsubscribe from message events", error=str(e))
        self.subscription = None
        self.executor = None
        self.modules_loaded = False

    # --- inbound ---

    def dispatch(self, message: ChatMessage) -> None:
        """Route a host message to the correlators or the auto-kick hook."""
        bot = self.config.bot
        if message.author_id != bot.application_id:
            return

        if message.is_direct:
            if match_auto_kick(message.title_text, message.body_text):
                logger.warning("Automatic kick notice received")
                if self.on_auto_kick is not None:
                    self.on_auto_kick(message)
            return

        if message.channel_id != bot.channel_id:
            return

        self.check_correlator.on_candidate_event(message)
        self.start_correlator.on_candidate_event(message)

    # --- outbound ---

    async def execute(
        self,
        command: SlashCommand,
        option_values: Optional[Dict[str, Any]] = None,
        channel_id: Optional[str] = None,
    ) -> bool:
        """Run a slash command; failures are logged and reported as False."""
        if self.executor is None:
            logger.error("Command executor unavailable", command=f"/{command.name}")
            return False

        channel = channel_id or self.config.bot.channel_id
        logger.info("Executing command", command=f"/{command.name}", channel_id=channel)
        try:
            await self.executor.execute(command, dict(option_values or {}), channel)
            return True
        except Exception as e:
            logger.error("Error executing command", command=f"/{command.name}", error=str(e))
            return False

    def notify(self, content: str) -> None:
        """Queue a message for the notification channel."""
        channel = self.config.notification_channel_id
        if not self.modules_loaded or not channel:
            logger.warning("Cannot send notification: checker not loaded or notification channel not set")
            return
        self.queue.enqueue(content, channel)

    def report(self, content: str) -> None:
        """Queue a message for the user-facing channel, falling back to notifications."""
        config = self.config
        channel = config.helper_channel_id or config.notification_channel_id
        if not self.modules_loaded or not channel:
            logger.warning("Cannot send report: checker not loaded or no report channel set")
            return
        self.queue.enqueue(content, channel)

    def has_role(self, role_id: str) -> bool:
        """Live role-membership check of the acting identity."""
        if not self.identity_id:
            return False
        try:
            return bool(self.host.has_role(self.identity_id, role_id))
        except Exception as e:
            logger.error("Role lookup failed", role_id=role_id, error=str(e))
            return False
