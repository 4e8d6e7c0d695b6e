"""Message formatting for notifications and roster reports."""

from typing import Iterable, Optional

from ..matching import Roster, RosterEntry


def format_value(value: Optional[float]) -> str:
    if value is None:
        return "?"
    return f"{value:g}"


def format_duration_ms(wait_ms: int) -> str:
    minutes, seconds = divmod(max(0, int(wait_ms)) // 1000, 60)
    return f"{minutes:02d}:{seconds:02d}"


def _format_entry(entry: RosterEntry) -> str:
    icon = "✅" if entry.value > 0 else "❌"
    leader = " 👑" if entry.is_leader else ""
    return f"{icon} <@{entry.identity}> {entry.display_name}{leader}: 🎁 **{format_value(entry.value)}**"


def format_roster_report(
    roster: Roster,
    *,
    closed_group: bool = False,
    stopped: Iterable[RosterEntry] = (),
) -> str:
    """Format the user-facing report of a group remediation."""
    stopped = list(stopped)
    group_label = roster.group_name or "Unknown group"

    lines = [
        f"🛠️ **Group Check: {group_label}**",
    ]
    if roster.group_id:
        lines.append(f"_Group ID: `{roster.group_id}`_")
    lines.append("")

    if closed_group:
        lines.append("🛑 Every member reported **0**. The group has been closed.")
    elif stopped:
        names = ", ".join(f"<@{e.identity}>" for e in stopped)
        lines.append(f"⏹️ Stopped {len(stopped)} stalled member(s): {names}")
    else:
        lines.append("✅ No action needed.")
    lines.append("")

    lines.append("📋 **Roster**")
    for entry in roster.entries:
        lines.append(f"• {_format_entry(entry)}")

    return "\n".join(lines)
