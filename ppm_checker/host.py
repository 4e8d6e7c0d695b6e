"""Interfaces of the host chat client and the inbound message model.

The checker never talks to the chat protocol directly. Everything it needs
from the host (running slash commands, receiving messages, sending plain
messages, identity and role lookups) goes through the protocols below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol

from .commands import SlashCommand


@dataclass(frozen=True)
class EmbedField:
    name: str = ""
    value: str = ""


@dataclass(frozen=True)
class Embed:
    title: str | None = None
    description: str | None = None
    fields: tuple[EmbedField, ...] = ()


@dataclass(frozen=True)
class ChatMessage:
    """A created or updated message as delivered by the host."""

    channel_id: str | None
    author_id: str | None
    content: str = ""
    embeds: tuple[Embed, ...] = ()
    is_direct: bool = False

    def text_parts(self) -> list[str]:
        """Content first, then each embed's description, title and field values."""
        parts = [self.content] if self.content else []
        for embed in self.embeds:
            for text in (embed.description, embed.title):
                if text:
                    parts.append(text)
            parts.extend(f.value for f in embed.fields if f.value)
        return parts

    @property
    def full_text(self) -> str:
        return "\n".join(self.text_parts())

    @property
    def title_text(self) -> str:
        return "\n".join(e.title for e in self.embeds if e.title)

    @property
    def body_text(self) -> str:
        parts = [self.content] if self.content else []
        for embed in self.embeds:
            if embed.description:
                parts.append(embed.description)
            parts.extend(f.value for f in embed.fields if f.value)
        return "\n".join(parts)


MessageHandler = Callable[[ChatMessage], None]


class CommandExecutor(Protocol):
    async def execute(self, command: SlashCommand, option_values: dict[str, Any], channel_id: str) -> None:
        ...


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        ...


class HostBindings(Protocol):
    async def load_command_executor(self) -> CommandExecutor | None:
        ...

    def subscribe(self, handler: MessageHandler) -> Subscription:
        ...

    def get_current_identity(self) -> str | None:
        ...

    def has_role(self, identity_id: str, role_id: str) -> bool:
        ...

    async def send(self, channel_id: str, content: str) -> None:
        """Send a plain message. May raise ``RateLimitedError``."""
        ...

    def start_typing(self, channel_id: str) -> None:
        ...
