from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CheckKind(str, Enum):
    VALUE = "value"
    OFFLINE = "offline"
    MISSING_IDENTITY = "missing_identity"
    TIMEOUT = "timeout"
    RACE_CONDITION = "race_condition"
    STOPPED = "stopped"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of waiting for a status reply.

    ``raw_text`` is the reply the outcome was read from, when there was one.
    """

    kind: CheckKind
    value: float | None = None
    raw_text: str | None = None

    @classmethod
    def of_value(cls, value: float, raw_text: str | None = None) -> "CheckResult":
        return cls(CheckKind.VALUE, value, raw_text)

    @classmethod
    def offline(cls, raw_text: str | None = None) -> "CheckResult":
        return cls(CheckKind.OFFLINE, raw_text=raw_text)

    @classmethod
    def missing_identity(cls, raw_text: str | None = None) -> "CheckResult":
        return cls(CheckKind.MISSING_IDENTITY, raw_text=raw_text)

    @classmethod
    def timeout(cls) -> "CheckResult":
        return cls(CheckKind.TIMEOUT)

    @classmethod
    def race_condition(cls) -> "CheckResult":
        return cls(CheckKind.RACE_CONDITION)

    @classmethod
    def stopped(cls) -> "CheckResult":
        return cls(CheckKind.STOPPED)

    @property
    def healthy(self) -> bool:
        return self.kind is CheckKind.VALUE and (self.value or 0) > 0


class CooldownKind(str, Enum):
    COOLDOWN = "cooldown"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    RACE_CONDITION = "race_condition"
    STOPPED = "stopped"


@dataclass(frozen=True)
class CooldownOutcome:
    kind: CooldownKind
    wait_ms: int | None = None

    @classmethod
    def cooldown(cls, wait_ms: int) -> "CooldownOutcome":
        return cls(CooldownKind.COOLDOWN, wait_ms)

    @classmethod
    def success(cls) -> "CooldownOutcome":
        return cls(CooldownKind.SUCCESS)

    @classmethod
    def timeout(cls) -> "CooldownOutcome":
        return cls(CooldownKind.TIMEOUT)

    @classmethod
    def race_condition(cls) -> "CooldownOutcome":
        return cls(CooldownKind.RACE_CONDITION)

    @classmethod
    def stopped(cls) -> "CooldownOutcome":
        return cls(CooldownKind.STOPPED)
