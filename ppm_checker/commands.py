from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SlashCommand:
    """Descriptor of one of the bot's slash commands.

    ``command_id``/``version`` identify the registered command; ``None`` means
    the host resolves the command by name.
    """

    name: str
    description: str
    command_id: str | None = None
    version: str | None = None
    rank: int = 0
    options: tuple[dict[str, Any], ...] = field(default_factory=tuple)


CLEAR_COMMAND = SlashCommand(
    name="clear",
    description="Clear your friends list",
    command_id="1416039398792888330",
    version="1433501849713115315",
    rank=3,
    options=(
        {
            "type": 5,
            "name": "force-remove-all",
            "description": "If true, removes all friends - keep only favs",
            "required": False,
        },
    ),
)

PPM_COMMAND = SlashCommand(
    name="ppm",
    description="Check your current PackPerMinute",
    command_id="1414334983707033774",
    version="1414334983707033780",
    rank=1,
)

STOP_COMMAND = SlashCommand(
    name="stop",
    description="Stop your cluster",
    command_id="1414334983707033773",
    version="1414334983707033779",
    rank=4,
    options=({"type": 6, "name": "user", "description": "Member whose cluster to stop", "required": False},),
)

START_COMMAND = SlashCommand(
    name="start",
    description="Start your cluster",
    command_id="1414334983707033772",
    version="1414334983707033778",
    rank=2,
)

CLOSE_GROUP_COMMAND = SlashCommand(
    name="close",
    description="Close a group",
    options=({"type": 3, "name": "group", "description": "Group identifier", "required": True},),
)
