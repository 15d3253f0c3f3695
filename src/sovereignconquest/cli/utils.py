"""Utility functions for the Sovereign Conquest CLI."""

import asyncio
import logging
import os
import sys
from typing import Awaitable, Callable, TypeVar

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from sovereignconquest.client import formatters
from sovereignconquest.client.errors import ClientError
from sovereignconquest.client.game_client import GameClient
from sovereignconquest.client.models import Message
from sovereignconquest.client.session import SessionPhase
from sovereignconquest.utils.config import ClientConfig

console = Console()

T = TypeVar("T")


def configure_logging() -> None:
    """Route CLI logs through loguru and library logs through stdlib logging."""
    level = os.getenv("LOGURU_LEVEL", "INFO").upper()
    logger.configure(handlers=[{"sink": sys.stderr, "level": level}])
    logging.basicConfig(
        level=os.getenv("SOVEREIGN_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def run_client(
    action: Callable[[GameClient], Awaitable[T]],
    *,
    resume: bool = True,
) -> T:
    """Run ``action`` against a client built from the environment.

    The persisted session is resumed first unless ``resume`` is false.
    Client failures are printed and turned into exit code 1.
    """

    async def _main() -> T:
        config = ClientConfig.from_env()
        logger.debug(f"cli.client server={config.server_url}")
        async with GameClient.from_config(config) as client:
            if resume:
                await client.resume()
            return await action(client)

    try:
        return asyncio.run(_main())
    except (ClientError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)


def print_phase_notice(phase: SessionPhase) -> None:
    if phase is SessionPhase.PASSWORD_CHANGE_REQUIRED:
        console.print(
            "[yellow]Password change required.[/yellow] "
            "Run [bold]sovereign password[/bold] to continue."
        )
    elif phase is SessionPhase.ANONYMOUS:
        console.print("Not logged in. Run [bold]sovereign login[/bold] first.")


def print_view(client: GameClient, log_limit: int = 10) -> None:
    """Print the status bar, sector, port, event and recent log."""
    view = client.view
    if view.player is not None:
        console.print(f"[bold]{formatters.player_summary(view.player)}[/bold]")
    console.print(f"Unread messages: {client.unread_count}")
    if view.sector is not None:
        for line in formatters.sector_lines(view.sector):
            console.print(line, markup=False)
        for line in formatters.port_lines(view.sector.port):
            console.print(line, markup=False)
        for line in formatters.event_lines(view.sector.event):
            console.print(line, markup=False)
    entries = view.display_logs(log_limit)
    if entries:
        console.print("[dim]Recent log:[/dim]")
        for entry in entries:
            console.print(formatters.log_line(entry), markup=False)


def print_messages(messages: list[Message], mode: str) -> None:
    if not messages:
        console.print(f"No messages in {mode}.")
        return
    for message in messages:
        header, *rest = formatters.message_lines(message, mode)
        console.print(header, style="bold", markup=False)
        for line in rest:
            console.print(line, markup=False)
        console.print()
