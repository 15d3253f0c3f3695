"""Text command grammar for the Sovereign Conquest terminal.

Players type short, whitespace separated commands such as ``MOVE 12`` or
``TRADE BUY ORE 50``. :func:`parse_command` turns one line into an immutable
:class:`Command` whose :meth:`Command.to_payload` is the body posted to the
``/command`` endpoint.

Grammar (first token is case-insensitive, sub-actions are upper-cased):

    SCAN | HELP | RANKINGS | SEASON | EVENTS      trailing tokens ignored
    MOVE <sector>
    TRADE <BUY|SELL> <commodity> <quantity>
    PLANET [INFO|COLONIZE <name>|LOAD <commodity> <qty>|UNLOAD <commodity> <qty>|UPGRADE_CITADEL]
    CORP [INFO|CREATE <name>|JOIN <name>|LEAVE|SAY <text>|DEPOSIT <qty>|WITHDRAW <qty>]
    MINE [INFO|DEPLOY <qty>|SWEEP]
    SHIPYARD [INFO|BUY <type>|SELL|UPGRADE <CARGO|TURNS>]
    MARKET [commodity]
    ROUTE [commodity]

Omitted sub-actions default to ``INFO``. Sub-actions the grammar does not
know are passed through so the server can answer with its own message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

_INT_RE = re.compile(r"^[+-]?\d+$")

BARE_COMMANDS = frozenset({"SCAN", "HELP", "RANKINGS", "SEASON", "EVENTS"})
DEFAULT_SUB_ACTION = "INFO"


class ParseFailure(ValueError):
    """Raised when a command line does not match the grammar."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(reason)
        self.line = line
        self.reason = reason


@dataclass(frozen=True)
class Command:
    """A parsed player instruction.

    Only the fields relevant to ``type`` are set; the rest stay ``None``.
    """

    type: str
    to: Optional[int] = None
    action: Optional[str] = None
    commodity: Optional[str] = None
    quantity: Optional[int] = None
    name: Optional[str] = None
    text: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire body for ``POST /command``; unset fields are omitted."""
        payload: Dict[str, Any] = {"type": self.type}
        for key in ("to", "action", "commodity", "quantity", "name", "text"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def _parse_int(line: str, token: Optional[str], what: str) -> int:
    if token is None or not _INT_RE.match(token):
        raise ParseFailure(line, f"{what} must be a whole number")
    return int(token)


def _rest(tokens: List[str], start: int) -> str:
    return " ".join(tokens[start:])


def _sub_action(tokens: List[str]) -> str:
    if len(tokens) > 1:
        return tokens[1].upper()
    return DEFAULT_SUB_ACTION


def _token(tokens: List[str], index: int) -> Optional[str]:
    if index < len(tokens):
        return tokens[index]
    return None


def _parse_move(line: str, tokens: List[str]) -> Command:
    return Command("MOVE", to=_parse_int(line, _token(tokens, 1), "MOVE sector"))


def _parse_trade(line: str, tokens: List[str]) -> Command:
    if len(tokens) < 4:
        raise ParseFailure(line, "usage: TRADE <BUY|SELL> <commodity> <quantity>")
    return Command(
        "TRADE",
        action=tokens[1].upper(),
        commodity=tokens[2].upper(),
        quantity=_parse_int(line, tokens[3], "TRADE quantity"),
    )


def _parse_planet(line: str, tokens: List[str]) -> Command:
    action = _sub_action(tokens)
    if action in ("LOAD", "UNLOAD"):
        commodity = _token(tokens, 2)
        if commodity is None:
            raise ParseFailure(line, f"usage: PLANET {action} <commodity> <quantity>")
        quantity = _parse_int(line, _token(tokens, 3), f"PLANET {action} quantity")
        return Command("PLANET", action=action, commodity=commodity.upper(), quantity=quantity)
    name = _rest(tokens, 2)
    return Command("PLANET", action=action, name=name or None)


def _parse_corp(line: str, tokens: List[str]) -> Command:
    action = _sub_action(tokens)
    if action in ("DEPOSIT", "WITHDRAW"):
        quantity = _parse_int(line, _token(tokens, 2), f"CORP {action} amount")
        return Command("CORP", action=action, quantity=quantity)
    rest = _rest(tokens, 2)
    if action == "SAY":
        return Command("CORP", action=action, text=rest or None)
    return Command("CORP", action=action, name=rest or None)


def _parse_mine(line: str, tokens: List[str]) -> Command:
    action = _sub_action(tokens)
    raw_quantity = _token(tokens, 2)
    if action == "DEPLOY" or raw_quantity is not None:
        quantity = _parse_int(line, raw_quantity, f"MINE {action} quantity")
        return Command("MINE", action=action, quantity=quantity)
    return Command("MINE", action=action)


def _parse_shipyard(line: str, tokens: List[str]) -> Command:
    name = _token(tokens, 2)
    return Command("SHIPYARD", action=_sub_action(tokens), name=name.upper() if name else None)


def _parse_commodity_filter(kind: str) -> Callable[[str, List[str]], Command]:
    def parse(line: str, tokens: List[str]) -> Command:
        commodity = _token(tokens, 1)
        return Command(kind, commodity=commodity.upper() if commodity else None)

    return parse


_PARSERS: Dict[str, Callable[[str, List[str]], Command]] = {
    "MOVE": _parse_move,
    "TRADE": _parse_trade,
    "PLANET": _parse_planet,
    "CORP": _parse_corp,
    "MINE": _parse_mine,
    "SHIPYARD": _parse_shipyard,
    "MARKET": _parse_commodity_filter("MARKET"),
    "ROUTE": _parse_commodity_filter("ROUTE"),
}


def parse_command(line: str) -> Command:
    """Parse one line of player input.

    Raises:
        ParseFailure: the line is empty, names an unknown command, or has
            missing/non-numeric arguments where numbers are required.
    """
    raw = (line or "").strip()
    if not raw:
        raise ParseFailure(line, "empty command")

    tokens = raw.split()
    kind = tokens[0].upper()
    if kind in BARE_COMMANDS:
        return Command(kind)
    parser = _PARSERS.get(kind)
    if parser is None:
        raise ParseFailure(line, f"unknown command {tokens[0]!r}")
    return parser(line, tokens)


def try_parse(line: str) -> Union[Command, ParseFailure]:
    """Like :func:`parse_command` but returns the failure instead of raising."""
    try:
        return parse_command(line)
    except ParseFailure as exc:
        return exc
