"""Grammar for the bot's free-text replies.

Every function here is pure: it only reads the text it is given. Bump
``GRAMMAR_VERSION`` whenever a pattern changes so that format drift in the
bot's output shows up as a deliberate, tested change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

GRAMMAR_VERSION = 2

OFFLINE_SENTINEL = "Cluster not started"
AUTO_KICK_TITLE_MARKER = "Kicked from Group"
AUTO_KICK_BODY_PHRASE = "removed for inactivity"

_NUMBER = r"\d+(?:\.\d+)?"
_VALUE_TOKEN = rf"🎁\s*\*\*(?P<value>{_NUMBER})\*\*"

_ROSTER_RE = re.compile(
    r"<@!?(?P<id>\d+)>[^\S\n]*"
    r"(?P<name>(?:(?!<@)[^\n])*?)"
    r"[^\S\n]*[—–-][^\S\n]*"
    + _VALUE_TOKEN
)
_LEADER_RE = re.compile(r"[^\S\n]*👑[^\S\n]*(?:Leader)?")
_GROUP_RE = re.compile(r"(?m)^[^\w\n]*Group\b\**[^\S\n]*:?[^\S\n]*(?P<id>[^\s*`]+)")
_COOLDOWN_RE = re.compile(
    r"wait\s+\**(?P<minutes>\d{1,3}):(?P<seconds>\d{2})\**\s+before\s+starting\s+again",
    re.IGNORECASE,
)


class MatchKind(str, Enum):
    OFFLINE = "offline"
    VALUE = "value"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class MatchOutcome:
    kind: MatchKind
    value: float | None = None

    @property
    def matched(self) -> bool:
        return self.kind is not MatchKind.NO_MATCH


NO_MATCH = MatchOutcome(MatchKind.NO_MATCH)


@dataclass(frozen=True)
class RosterEntry:
    identity: str
    display_name: str
    is_leader: bool
    value: float


@dataclass(frozen=True)
class Roster:
    entries: tuple[RosterEntry, ...]
    group_id: str | None = None

    @property
    def group_name(self) -> str | None:
        if not self.group_id:
            return None
        return self.group_id.split(":", 1)[0]


def _identity_pattern(identity: str) -> re.Pattern[str]:
    return re.compile(rf"<@!?{re.escape(identity)}>.*?{_VALUE_TOKEN}", re.DOTALL)


def match(raw_text: str | None, identity: str) -> MatchOutcome:
    """Classify a reply for ``identity``: offline, a value, or no match."""
    text = raw_text or ""
    if OFFLINE_SENTINEL in text:
        return MatchOutcome(MatchKind.OFFLINE)
    m = _identity_pattern(identity).search(text)
    if m is None:
        return NO_MATCH
    return MatchOutcome(MatchKind.VALUE, float(m.group("value")))


def _clean_display_name(name: str) -> tuple[str, bool]:
    is_leader = bool(_LEADER_RE.search(name))
    cleaned = _LEADER_RE.sub("", name).strip().strip("*_").strip()
    return cleaned, is_leader


def match_roster(raw_text: str | None) -> Roster | None:
    """Extract every ``<@id> name — 🎁 **n**`` entry in document order."""
    text = raw_text or ""
    entries = []
    for m in _ROSTER_RE.finditer(text):
        name, is_leader = _clean_display_name(m.group("name"))
        entries.append(
            RosterEntry(
                identity=m.group("id"),
                display_name=name,
                is_leader=is_leader,
                value=float(m.group("value")),
            )
        )
    if not entries:
        return None
    group = _GROUP_RE.search(text)
    return Roster(entries=tuple(entries), group_id=group.group("id") if group else None)


def match_cooldown(raw_text: str | None) -> int | None:
    """Return the start cooldown in milliseconds, or ``None``."""
    m = _COOLDOWN_RE.search(raw_text or "")
    if m is None:
        return None
    return (int(m.group("minutes")) * 60 + int(m.group("seconds"))) * 1000


def match_auto_kick(title: str | None, body: str | None) -> bool:
    return AUTO_KICK_TITLE_MARKER in (title or "") and AUTO_KICK_BODY_PHRASE in (body or "")
