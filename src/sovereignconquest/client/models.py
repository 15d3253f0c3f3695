"""Client-side projections of server payloads.

Every type is built from the server's JSON with ``from_dict``. Missing keys
fall back to empty values because the server omits zero/empty fields.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

COMMODITIES = ("ore", "organics", "equipment")
_INT_TEXT_RE = re.compile(r"^[+-]?[0-9]+$")


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and _INT_TEXT_RE.match(value.strip()):
        return int(value.strip())
    return default


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return _int(value)


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; unparseable values yield ``None``."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Timestamps may carry nine fractional digits; fromisoformat accepts six.
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        suffix = ""
        for index, char in enumerate(tail):
            if not char.isdigit():
                suffix = tail[index:]
                break
            digits += char
        text = f"{head}.{digits[:6].ljust(6, '0')}{suffix}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class PlayerState:
    id: str = ""
    username: str = ""
    is_admin: bool = False
    must_change_password: bool = False
    level: int = 1
    xp: int = 0
    next_level_xp: int = 0
    rank: str = ""
    credits: int = 0
    turns: int = 0
    turns_max: int = 0
    sector_id: int = 0
    cargo_max: int = 0
    cargo_ore: int = 0
    cargo_organics: int = 0
    cargo_equipment: int = 0
    season_name: str = ""
    corp_name: str = ""
    corp_role: str = ""

    @property
    def cargo_total(self) -> int:
        return self.cargo_ore + self.cargo_organics + self.cargo_equipment

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerState":
        return cls(
            id=_str(data.get("id")),
            username=_str(data.get("username")),
            is_admin=bool(data.get("is_admin", False)),
            must_change_password=bool(data.get("must_change_password", False)),
            level=_int(data.get("level"), 1) or 1,
            xp=_int(data.get("xp")),
            next_level_xp=_int(data.get("next_level_xp")),
            rank=_str(data.get("rank")),
            credits=_int(data.get("credits")),
            turns=_int(data.get("turns")),
            turns_max=_int(data.get("turns_max")),
            sector_id=_int(data.get("sector_id")),
            cargo_max=_int(data.get("cargo_max")),
            cargo_ore=_int(data.get("cargo_ore")),
            cargo_organics=_int(data.get("cargo_organics")),
            cargo_equipment=_int(data.get("cargo_equipment")),
            season_name=_str(data.get("season_name")),
            corp_name=_str(data.get("corp_name")),
            corp_role=_str(data.get("corp_role")),
        )


@dataclass(frozen=True)
class PortCommodity:
    mode: str = ""
    quantity: int = 0
    base_quantity: int = 0
    price: int = 0


@dataclass(frozen=True)
class Port:
    name: str = ""
    ore: PortCommodity = field(default_factory=PortCommodity)
    organics: PortCommodity = field(default_factory=PortCommodity)
    equipment: PortCommodity = field(default_factory=PortCommodity)

    def commodity(self, name: str) -> PortCommodity:
        key = name.lower()
        if key not in COMMODITIES:
            raise KeyError(name)
        return getattr(self, key)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Port":
        entries = {
            key: PortCommodity(
                mode=_str(data.get(f"{key}_mode")),
                quantity=_int(data.get(f"{key}_qty")),
                base_quantity=_int(data.get(f"{key}_base_qty")),
                price=_int(data.get(f"{key}_price")),
            )
            for key in COMMODITIES
        }
        return cls(name=_str(data.get("name")), **entries)


@dataclass(frozen=True)
class Planet:
    id: int = 0
    name: str = ""
    owner: str = ""
    owner_type: str = ""
    citadel_level: int = 0
    production_ore: int = 0
    production_organics: int = 0
    production_equipment: int = 0
    storage_ore: int = 0
    storage_organics: int = 0
    storage_equipment: int = 0
    storage_max: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Planet":
        return cls(
            id=_int(data.get("id")),
            name=_str(data.get("name")),
            owner=_str(data.get("owner")),
            owner_type=_str(data.get("owner_type")),
            citadel_level=_int(data.get("citadel_level")),
            production_ore=_int(data.get("production_ore")),
            production_organics=_int(data.get("production_organics")),
            production_equipment=_int(data.get("production_equipment")),
            storage_ore=_int(data.get("storage_ore")),
            storage_organics=_int(data.get("storage_organics")),
            storage_equipment=_int(data.get("storage_equipment")),
            storage_max=_int(data.get("storage_max")),
        )


@dataclass(frozen=True)
class Event:
    """Sector event. ``commodity``/``price_percent`` matter for ANOMALY and
    LIMITED events, ``severity`` for INVASION."""

    kind: str = ""
    title: str = ""
    description: str = ""
    commodity: str = ""
    price_percent: int = 0
    severity: int = 0
    sector_id: int = 0
    ends_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        return cls(
            kind=_str(data.get("kind")).upper(),
            title=_str(data.get("title") or data.get("name")),
            description=_str(data.get("description")),
            commodity=_str(data.get("commodity")),
            price_percent=_int(data.get("price_percent")),
            severity=_int(data.get("severity")),
            sector_id=_int(data.get("sector_id")),
            ends_at=parse_timestamp(data.get("ends_at")),
        )


@dataclass(frozen=True)
class SectorView:
    id: int = 0
    name: str = ""
    warps: Tuple[int, ...] = ()
    mines: int = 0
    port: Optional[Port] = None
    event: Optional[Event] = None
    planet: Optional[Planet] = None
    is_protectorate: bool = False
    protectorate_fighters: int = 0
    has_shipyard: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SectorView":
        port = data.get("port")
        event = data.get("event")
        planet = data.get("planet")
        return cls(
            id=_int(data.get("id")),
            name=_str(data.get("name")),
            warps=tuple(_int(w) for w in (data.get("warps") or ())),
            mines=_int(data.get("mines")),
            port=Port.from_dict(port) if isinstance(port, Mapping) else None,
            event=Event.from_dict(event) if isinstance(event, Mapping) else None,
            planet=Planet.from_dict(planet) if isinstance(planet, Mapping) else None,
            is_protectorate=bool(data.get("is_protectorate", False)),
            protectorate_fighters=_int(data.get("protectorate_fighters")),
            has_shipyard=bool(data.get("has_shipyard", False)),
        )


@dataclass(frozen=True)
class LogEntry:
    kind: str = ""
    message: str = ""
    at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogEntry":
        message = data.get("message")
        if message is None:
            message = data.get("msg")
        return cls(
            kind=_str(data.get("kind")),
            message=_str(message),
            at=parse_timestamp(data.get("at") or data.get("timestamp")),
        )


@dataclass(frozen=True)
class Attachment:
    id: int
    filename: str = ""
    content_type: str = ""
    size_bytes: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Attachment":
        return cls(
            id=_int(data.get("id")),
            filename=_str(data.get("filename")),
            content_type=_str(data.get("content_type")),
            size_bytes=_int(data.get("size_bytes")),
        )


@dataclass(frozen=True)
class Message:
    id: int
    sender: str = ""
    recipient: str = ""
    subject: str = ""
    body: str = ""
    kind: str = ""
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    attachments: Tuple[Attachment, ...] = ()
    related_message_id: Optional[int] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        attachments = data.get("attachments") or ()
        return cls(
            id=_int(data.get("id")),
            sender=_str(data.get("from")),
            recipient=_str(data.get("to")),
            subject=_str(data.get("subject")),
            body=_str(data.get("body")),
            kind=_str(data.get("kind")),
            created_at=parse_timestamp(data.get("created_at")),
            read_at=parse_timestamp(data.get("read_at")),
            attachments=tuple(
                Attachment.from_dict(a) for a in attachments if isinstance(a, Mapping)
            ),
            related_message_id=_optional_int(data.get("related_message_id")),
        )
