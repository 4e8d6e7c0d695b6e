from __future__ import annotations

import asyncio
from typing import Any

import pytest

from ppm_checker.commands import SlashCommand
from ppm_checker.config import BotConfig, CheckerConfig, TimingConfig
from ppm_checker.exceptions import RateLimitedError
from ppm_checker.host import ChatMessage, Embed

ME = "111"
BOT_ID = "900"
BOT_CHANNEL = "500"
NOTIFY_CHANNEL = "700"
HELPER_CHANNEL = "800"


def make_config(**overrides: Any) -> CheckerConfig:
    timing = {
        "check_timeout_seconds": 0.1,
        "start_ack_timeout_seconds": 0.1,
        "notification_min_interval_seconds": 0,
        "notification_rate_limit_backoff_seconds": 0,
    }
    timing.update(overrides.pop("timing", {}))
    data: dict[str, Any] = {
        "notification_channel_id": NOTIFY_CHANNEL,
        "send_clear_command": False,
        "bot": BotConfig(channel_id=BOT_CHANNEL, guild_id="1", application_id=BOT_ID),
        "timing": TimingConfig(**timing),
    }
    data.update(overrides)
    return CheckerConfig(**data)


def bot_reply(content: str = "", *, embeds: tuple[Embed, ...] = (), channel_id: str = BOT_CHANNEL) -> ChatMessage:
    return ChatMessage(channel_id=channel_id, author_id=BOT_ID, content=content, embeds=embeds)


class EventLog:
    """Ordered record of commands and sleeps."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, Any]] = []

    def commands(self) -> list[str]:
        return [value for kind, value in self.entries if kind == "cmd"]

    def sleeps(self) -> list[float]:
        return [value for kind, value in self.entries if kind == "sleep"]


class RecordingSleep:
    """Returns immediately; positive durations are recorded in the event log."""

    def __init__(self, log: EventLog) -> None:
        self.log = log

    async def __call__(self, seconds: float) -> None:
        if seconds > 0:
            self.log.entries.append(("sleep", seconds))
        await asyncio.sleep(0)


class FakeSubscription:
    def __init__(self, host: FakeHost, handler) -> None:
        self.host = host
        self.handler = handler

    def unsubscribe(self) -> None:
        if self.handler in self.host.handlers:
            self.host.handlers.remove(self.handler)


class FakeExecutor:
    def __init__(self, host: FakeHost) -> None:
        self.host = host
        self.calls: list[tuple[str, dict, str]] = []

    async def execute(self, command: SlashCommand, option_values: dict, channel_id: str) -> None:
        self.calls.append((command.name, option_values, channel_id))
        self.host.log.entries.append(("cmd", command.name))
        if command.name in self.host.failing_commands:
            raise RuntimeError(f"/{command.name} exploded")
        queued = self.host.replies.get(command.name)
        if queued:
            reply = queued.pop(0)
            if reply is not None:
                message = reply if isinstance(reply, ChatMessage) else bot_reply(reply)
                asyncio.get_running_loop().call_soon(self.host.emit, message)


class FakeHost:
    def __init__(self, identity: str | None = ME) -> None:
        self.identity = identity
        self.log = EventLog()
        self.executor = FakeExecutor(self)
        self.handlers: list = []
        self.sent: list[tuple[str, str]] = []
        self.typing: list[str] = []
        self.roles: set[str] = set()
        self.replies: dict[str, list[Any]] = {}
        self.failing_commands: set[str] = set()
        self.provide_executor = True
        self.executor_loads = 0
        self.rate_limit_sends = 0

    async def load_command_executor(self) -> FakeExecutor | None:
        self.executor_loads += 1
        await asyncio.sleep(0)
        return self.executor if self.provide_executor else None

    def subscribe(self, handler) -> FakeSubscription:
        self.handlers.append(handler)
        return FakeSubscription(self, handler)

    def get_current_identity(self) -> str | None:
        return self.identity

    def has_role(self, identity_id: str, role_id: str) -> bool:
        return role_id in self.roles

    async def send(self, channel_id: str, content: str) -> None:
        if self.rate_limit_sends:
            self.rate_limit_sends -= 1
            raise RateLimitedError(retry_after=0)
        self.sent.append((channel_id, content))

    def start_typing(self, channel_id: str) -> None:
        self.typing.append(channel_id)

    def emit(self, message: ChatMessage) -> None:
        for handler in list(self.handlers):
            handler(message)

    def messages_to(self, channel_id: str) -> list[str]:
        return [content for channel, content in self.sent if channel == channel_id]


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def sleep(host: FakeHost) -> RecordingSleep:
    return RecordingSleep(host.log)
