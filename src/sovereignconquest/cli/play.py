"""Interactive command loop.

Lines starting with ``/`` are handled locally; everything else goes to the
server through the command dispatcher.
"""

import asyncio

from rich.markup import escape

from sovereignconquest.cli.utils import console, print_messages, print_view
from sovereignconquest.client.errors import ClientError
from sovereignconquest.client.game_client import GameClient
from sovereignconquest.client.session import SessionPhase

META_HELP = """Local commands:
  /inbox    list and mark read your inbox
  /sent     list sent messages
  /status   redraw the status panel
  /quit     leave the game (the session is kept)
Anything else is sent to the server. Try HELP."""


def _prompt(message: str) -> str | None:
    """Read a line from stdin; ``None`` on end of input."""
    try:
        return input(message)
    except EOFError:
        return None


async def _handle_meta(client: GameClient, line: str) -> bool:
    """Run a ``/`` command. Returns False when the loop should end."""
    name = line[1:].strip().lower()
    if name in ("quit", "exit", "q"):
        return False
    if name == "inbox":
        print_messages(await client.messages.list_inbox(), "inbox")
    elif name == "sent":
        print_messages(await client.messages.list_sent(), "sent")
    elif name == "status":
        print_view(client)
    else:
        console.print(META_HELP, markup=False)
    return True


async def play_loop(client: GameClient) -> None:
    print_view(client)
    console.print("[dim]Type /help for local commands, /quit to leave.[/dim]")
    while client.phase is SessionPhase.AUTHENTICATED:
        prompt = f"[{client.unread_count} unread] > "
        line = await asyncio.to_thread(_prompt, prompt)
        if line is None:
            break
        line = line.strip()
        if not line:
            continue
        if line.startswith("/"):
            try:
                if not await _handle_meta(client, line):
                    break
            except ClientError as exc:
                console.print(f"[red]Error:[/red] {escape(str(exc))}")
            continue

        result = await client.submit(line)
        if result.unauthorized:
            console.print("[red]Session expired.[/red] Please log in again.")
            break
        if result.message:
            style = "green" if result.ok else "red"
            console.print(f"[{style}]{escape(result.message)}[/{style}]")
        if result.reconciled is not None and result.reconciled.appended:
            print_view(client, log_limit=len(result.reconciled.appended))
