from __future__ import annotations

import pytest

from ppm_checker.matching import match_roster
from ppm_checker.recovery import GroupRemediation, RecoveryOrchestrator, ScheduleCycle
from ppm_checker.recovery.group_remediation import RemediationAction, plan_remediation
from ppm_checker.session import CheckerSession

from .conftest import BOT_CHANNEL, HELPER_CHANNEL, ME, NOTIFY_CHANNEL, make_config

ROLE = "4242"


def _roster_text(*members: tuple[str, str], group: str | None = "Nova:12:3") -> str:
    lines = [f"**Group** {group}"] if group else []
    lines.extend(f"<@{identity}> User{identity} — 🎁 **{value}**" for identity, value in members)
    return "\n".join(lines)


def _plan(text: str, force: bool = False):
    roster = match_roster(text)
    assert roster is not None
    return plan_remediation(roster, ME, force)


def test_all_zero_with_group_closes_group() -> None:
    plan = _plan(_roster_text(("1", "0"), ("2", "0"), (ME, "0")))
    assert plan.action is RemediationAction.CLOSED_GROUP
    assert plan.stopped == []


def test_one_nonzero_member_stops_the_rest() -> None:
    plan = _plan(_roster_text(("1", "0"), ("2", "3.5"), ("3", "0")))
    assert plan.action is RemediationAction.STOPPED_MEMBERS
    assert [e.identity for e in plan.stopped] == ["1", "3"]


def test_acting_identity_is_never_stopped() -> None:
    plan = _plan(_roster_text((ME, "0"), ("2", "1")))
    assert plan.action is RemediationAction.NONE


def test_single_entry_rosters() -> None:
    assert _plan(_roster_text(("5", "0"))).action is RemediationAction.CLOSED_GROUP
    assert _plan(_roster_text(("5", "2"))).action is RemediationAction.NONE


def test_all_zero_without_group_id_stops_members() -> None:
    plan = _plan(_roster_text(("1", "0"), (ME, "0"), group=None))
    assert plan.action is RemediationAction.STOPPED_MEMBERS
    assert [e.identity for e in plan.stopped] == ["1"]


def test_force_individual_stops_never_closes() -> None:
    plan = _plan(_roster_text(("1", "0"), ("2", "0"), (ME, "0")), force=True)
    assert plan.action is RemediationAction.STOPPED_MEMBERS
    assert [e.identity for e in plan.stopped] == ["1", "2"]


async def _remediation(host, sleep, **overrides) -> tuple[CheckerSession, GroupRemediation]:
    overrides.setdefault("helper_role_id", ROLE)
    config = make_config(**overrides)
    session = CheckerSession(host, lambda: config, sleep)
    await session.init()
    return session, GroupRemediation(session)


@pytest.mark.asyncio
async def test_close_group_on_helper_channel(host, sleep) -> None:
    host.roles = {ROLE}
    session, remediation = await _remediation(host, sleep, helper_channel_id=HELPER_CHANNEL)

    plan = await remediation.run(_roster_text(("1", "0"), ("2", "0")))
    await session.queue.join()

    assert plan.action is RemediationAction.CLOSED_GROUP
    assert host.executor.calls == [("close", {"group": "Nova:12:3"}, HELPER_CHANNEL)]
    assert any("Closed `Nova:12:3`" in n for n in host.messages_to(NOTIFY_CHANNEL))
    report = host.messages_to(HELPER_CHANNEL)
    assert len(report) == 1
    assert "Group Check: Nova" in report[0]
    assert "The group has been closed" in report[0]


@pytest.mark.asyncio
async def test_individual_stops_are_spaced(host, sleep) -> None:
    host.roles = {ROLE}
    session, remediation = await _remediation(host, sleep, force_individual_stops=True)

    await remediation.run(_roster_text(("1", "0"), ("2", "0"), (ME, "0")))
    await session.queue.join()

    assert host.log.entries == [("cmd", "stop"), ("sleep", 3), ("cmd", "stop")]
    assert host.executor.calls == [
        ("stop", {"user": "1"}, BOT_CHANNEL),
        ("stop", {"user": "2"}, BOT_CHANNEL),
    ]
    # no helper channel configured: the report lands in the notification channel
    notes = host.messages_to(NOTIFY_CHANNEL)
    assert any("Stopped 2 stalled group member(s): User1, User2" in n for n in notes)
    assert any("<@1>, <@2>" in n for n in notes)


@pytest.mark.asyncio
async def test_requires_helper_role(host, sleep) -> None:
    session, remediation = await _remediation(host, sleep)

    assert await remediation.run(_roster_text(("1", "0"), ("2", "0"))) is None
    assert host.executor.calls == []


@pytest.mark.asyncio
async def test_disabled_without_role_setting(host, sleep) -> None:
    host.roles = {ROLE}
    session, remediation = await _remediation(host, sleep, helper_role_id="")

    assert await remediation.run(_roster_text(("1", "0"))) is None
    assert host.executor.calls == []


@pytest.mark.asyncio
async def test_non_roster_text_is_ignored(host, sleep) -> None:
    host.roles = {ROLE}
    session, remediation = await _remediation(host, sleep)

    assert await remediation.run("Cluster not started") is None
    assert await remediation.run(None) is None


@pytest.mark.asyncio
async def test_cycle_remediates_before_handling_own_result(host, sleep) -> None:
    host.roles = {ROLE}
    config = make_config(helper_role_id=ROLE, helper_channel_id=HELPER_CHANNEL)
    session = CheckerSession(host, lambda: config, sleep)
    await session.init()
    orchestrator = RecoveryOrchestrator(session)
    host.replies = {"ppm": [_roster_text((ME, "3"), ("2", "0"), group="G:1")]}

    result = await orchestrator.run_cycle(ScheduleCycle(trigger="manual", modules_initialized=True))

    assert result.healthy
    assert host.executor.calls[-1] == ("stop", {"user": "2"}, HELPER_CHANNEL)
    assert host.log.commands() == ["ppm", "stop"]
