"""Parsing of the bot's replies."""

from .response_matcher import (
    GRAMMAR_VERSION,
    MatchKind,
    MatchOutcome,
    Roster,
    RosterEntry,
    match,
    match_auto_kick,
    match_cooldown,
    match_roster,
)

__all__ = [
    "GRAMMAR_VERSION",
    "MatchKind",
    "MatchOutcome",
    "Roster",
    "RosterEntry",
    "match",
    "match_auto_kick",
    "match_cooldown",
    "match_roster",
]
