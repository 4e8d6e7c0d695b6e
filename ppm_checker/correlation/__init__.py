"""Correlation of sent commands with the bot's replies."""

from .correlator import PendingResultCorrelator, StartAckCorrelator
from .results import CheckKind, CheckResult, CooldownKind, CooldownOutcome

__all__ = [
    "CheckKind",
    "CheckResult",
    "CooldownKind",
    "CooldownOutcome",
    "PendingResultCorrelator",
    "StartAckCorrelator",
]
