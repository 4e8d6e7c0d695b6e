"""Group-wide remediation for members holding the helper role."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from ..commands import CLOSE_GROUP_COMMAND, STOP_COMMAND
from ..matching import Roster, RosterEntry, match_roster
from ..notifications.formatting import format_roster_report
from ..session import CheckerSession

logger = structlog.get_logger(__name__)


class RemediationAction(str, Enum):
    CLOSED_GROUP = "closed_group"
    STOPPED_MEMBERS = "stopped_members"
    NONE = "none"


@dataclass
class RemediationReport:
    action: RemediationAction
    roster: Roster
    stopped: List[RosterEntry] = field(default_factory=list)


def plan_remediation(roster: Roster, acting_identity: Optional[str], force_individual_stops: bool) -> RemediationReport:
    """Decide what to do with a roster without touching the host."""
    zero_entries = [e for e in roster.entries if e.value == 0 and e.identity != acting_identity]
    all_zero = all(e.value == 0 for e in roster.entries)

    if all_zero and roster.group_id and not force_individual_stops:
        return RemediationReport(RemediationAction.CLOSED_GROUP, roster)
    if zero_entries:
        return RemediationReport(RemediationAction.STOPPED_MEMBERS, roster, zero_entries)
    return RemediationReport(RemediationAction.NONE, roster)


class GroupRemediation:
    """Acts on a roster reply: closes a fully stalled group or stops stalled members."""

    def __init__(self, session: CheckerSession):
        self.session = session

    async def run(self, raw_text: Optional[str]) -> Optional[RemediationReport]:
        roster = match_roster(raw_text)
        if roster is None:
            return None

        config = self.session.config
        if not config.helper_role_id:
            return None
        if not self.session.has_role(config.helper_role_id):
            logger.debug("Acting user lacks helper role, skipping group remediation")
            return None

        plan = plan_remediation(roster, self.session.identity_id, config.force_individual_stops)
        logger.info("Group remediation planned",
                    action=plan.action.value,
                    group_id=roster.group_id,
                    members=len(roster.entries),
                    stalled=len(plan.stopped))

        if plan.action is RemediationAction.CLOSED_GROUP:
            await self._close_group(roster)
        elif plan.action is RemediationAction.STOPPED_MEMBERS:
            await self._stop_members(roster, plan.stopped)
        return plan

    def _group_channel(self) -> str:
        config = self.session.config
        return config.helper_channel_id or config.bot.channel_id

    async def _close_group(self, roster: Roster) -> None:
        await self.session.execute(
            CLOSE_GROUP_COMMAND,
            {"group": roster.group_id},
            channel_id=self._group_channel(),
        )
        self.session.notify(f"🛑 Group **{roster.group_name}** is fully stalled. Closed `{roster.group_id}`.")
        self.session.report(format_roster_report(roster, closed_group=True))

    async def _stop_members(self, roster: Roster, stalled: List[RosterEntry]) -> None:
        delay = self.session.config.timing.group_command_delay_seconds
        for index, entry in enumerate(stalled):
            if index:
                await self.session.sleep(delay)
            await self.session.execute(STOP_COMMAND, {"user": entry.identity}, channel_id=self._group_channel())

        names = ", ".join(e.display_name or e.identity for e in stalled)
        self.session.notify(f"⏹️ Stopped {len(stalled)} stalled group member(s): {names}")
        self.session.report(format_roster_report(roster, stopped=stalled))
