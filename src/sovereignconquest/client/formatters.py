"""Plain-text projections of the reconciled game view.

These only read the view; derived numbers such as total cargo are computed
here from the current snapshot and never stored.
"""

from datetime import datetime
from typing import List, Optional

from sovereignconquest.client.models import (
    Event,
    LogEntry,
    Message,
    PlayerState,
    Port,
    SectorView,
)


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def rank_label(player: PlayerState) -> str:
    label = f"L{player.level}"
    if player.rank:
        label += f" • {player.rank}"
    return label


def xp_label(player: PlayerState) -> str:
    if player.next_level_xp > player.xp:
        return f"{player.xp}/{player.next_level_xp}"
    return str(player.xp)


def player_summary(player: PlayerState) -> str:
    """One status line for the top bar."""
    return (
        f"{player.username} [{rank_label(player)}] XP {xp_label(player)} | "
        f"Credits {player.credits} | Turns {player.turns}/{player.turns_max} | "
        f"Cargo {player.cargo_total}/{player.cargo_max} | "
        f"Corp {player.corp_name or '-'} | Season {player.season_name or '-'}"
    )


def sector_lines(sector: SectorView) -> List[str]:
    lines = [f"Sector: {sector.id} {sector.name}".rstrip()]
    if sector.is_protectorate:
        lines.append(
            f"Protectorate space: {sector.protectorate_fighters} fighters on patrol."
        )
        lines.append(f"Shipyard: {'available' if sector.has_shipyard else '-'}")
    warps = ", ".join(str(w) for w in sector.warps)
    lines.append(f"Warps: {warps or '(none)'}")
    lines.append(f"Mines: {sector.mines}")
    if sector.planet is not None:
        owner = sector.planet.owner or "(unowned)"
        lines.append(
            f"Planet: {sector.planet.name} | Owner: {owner} | "
            f"Citadel: {sector.planet.citadel_level}"
        )
    else:
        lines.append("Planet: (none)")
    return lines


def port_lines(port: Optional[Port]) -> List[str]:
    if port is None:
        return ["No port in this sector."]
    lines = [f"Port: {port.name or '(spaceport)'}"]
    for label, entry in (
        ("Ore", port.ore),
        ("Organics", port.organics),
        ("Equipment", port.equipment),
    ):
        lines.append(f"{label}: {entry.mode} Qty={entry.quantity} Price={entry.price}")
    return lines


def event_lines(event: Optional[Event]) -> List[str]:
    if event is None:
        return ["No active event."]
    if event.kind == "INVASION":
        effect = f"Raiders (severity {event.severity})"
    elif event.kind in ("ANOMALY", "LIMITED") and event.commodity:
        effect = f"{event.commodity} price {event.price_percent}%"
    else:
        effect = event.description or "-"
    return [
        f"Event: {event.title} ({event.kind})",
        f"Effect: {effect}",
        f"Ends: {_format_time(event.ends_at)}",
    ]


def log_line(entry: LogEntry) -> str:
    return f"[{entry.kind}] {entry.message}"


def message_header(message: Message, mode: str = "inbox") -> str:
    status = ""
    if message.is_read:
        status = " Read"
    elif mode == "inbox":
        status = " Unread"
    return (
        f"#{message.id} {message.subject or '(no subject)'} [{message.kind}] "
        f"{message.sender} → {message.recipient} {_format_time(message.created_at)}{status}"
    )


def message_lines(message: Message, mode: str = "inbox") -> List[str]:
    lines = [message_header(message, mode), message.body]
    if message.attachments:
        names = " | ".join(f"{a.filename} (#{a.id})" for a in message.attachments)
        lines.append(f"Attachments: {names}")
    return lines
