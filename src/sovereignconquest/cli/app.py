"""Main Typer application for the Sovereign Conquest CLI.

Every command builds a fresh :class:`GameClient` from the environment and
resumes the persisted session before doing its work.
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.text import Text

from sovereignconquest.cli.play import play_loop
from sovereignconquest.cli.utils import (
    configure_logging,
    console,
    print_messages,
    print_phase_notice,
    print_view,
    run_client,
)
from sovereignconquest.client.game_client import GameClient
from sovereignconquest.client.messages import OutgoingAttachment
from sovereignconquest.client.session import SessionPhase

app = typer.Typer(
    name="sovereign",
    help="Sovereign Conquest terminal client.",
    rich_markup_mode="rich",
)


def _client_version() -> str:
    from importlib.metadata import PackageNotFoundError, version as get_version

    try:
        return get_version("sovereign-conquest-client")
    except PackageNotFoundError:
        return "0.1.0"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]Sovereign Conquest[/bold] v{_client_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Sovereign Conquest terminal client.

    Configure the server with SOVEREIGN_SERVER_URL (or a .env file).
    """
    configure_logging()


@app.command()
def login(
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Log in and store the session token."""

    async def action(client: GameClient) -> None:
        phase = await client.login(username, password)
        if phase is SessionPhase.AUTHENTICATED:
            console.print(f"[green]✓[/green] Logged in as [bold]{escape(username)}[/bold]")
            print_view(client)
        else:
            print_phase_notice(phase)

    run_client(action, resume=False)


@app.command()
def register(
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Create an account and log in."""

    async def action(client: GameClient) -> None:
        phase = await client.register(username, password)
        if phase is SessionPhase.AUTHENTICATED:
            console.print(f"[green]✓[/green] Welcome, [bold]{escape(username)}[/bold]")
            print_view(client)
        else:
            print_phase_notice(phase)

    run_client(action, resume=False)


@app.command()
def logout() -> None:
    """Forget the stored session."""

    async def action(client: GameClient) -> None:
        client.logout()

    run_client(action, resume=False)
    console.print("Logged out.")


@app.command()
def password(
    old_password: str = typer.Option(..., "--old", prompt="Current password", hide_input=True),
    new_password: str = typer.Option(
        ...,
        "--new",
        prompt="New password",
        hide_input=True,
        confirmation_prompt=True,
    ),
) -> None:
    """Change your password (required after an admin reset)."""

    async def action(client: GameClient) -> None:
        phase = await client.change_password(old_password, new_password)
        console.print("[green]✓[/green] Password changed.")
        if phase is SessionPhase.AUTHENTICATED:
            print_view(client)

    run_client(action)


@app.command()
def state(
    logs: int = typer.Option(10, "--logs", "-n", help="Number of log entries to show"),
) -> None:
    """Show your ship, sector and recent log."""

    async def action(client: GameClient) -> None:
        if client.phase is not SessionPhase.AUTHENTICATED:
            print_phase_notice(client.phase)
            raise typer.Exit(code=1)
        print_view(client, log_limit=logs)

    run_client(action)


@app.command()
def cmd(
    line: List[str] = typer.Argument(..., help="Command, e.g. TRADE BUY ORE 50"),
) -> None:
    """Send one game command."""
    text = " ".join(line)

    async def action(client: GameClient) -> bool:
        result = await client.submit(text)
        if result.unauthorized:
            console.print("[red]Session expired.[/red] Please log in again.")
            return False
        if result.message:
            style = "green" if result.ok else "red"
            console.print(f"[{style}]{escape(result.message)}[/{style}]")
        if result.ok and result.reconciled is not None:
            for entry in result.reconciled.appended:
                console.print(f"[{entry.kind}] {entry.message}", markup=False)
        return result.ok

    if not run_client(action):
        raise typer.Exit(code=1)


@app.command()
def play() -> None:
    """Interactive command loop."""

    async def action(client: GameClient) -> None:
        if client.phase is not SessionPhase.AUTHENTICATED:
            print_phase_notice(client.phase)
            raise typer.Exit(code=1)
        await play_loop(client)

    run_client(action)


@app.command()
def inbox() -> None:
    """List your inbox; unread messages are marked read."""

    async def action(client: GameClient) -> None:
        print_messages(await client.messages.list_inbox(), "inbox")

    run_client(action)


@app.command()
def sent() -> None:
    """List messages you have sent."""

    async def action(client: GameClient) -> None:
        print_messages(await client.messages.list_sent(), "sent")

    run_client(action)


@app.command()
def send(
    to: str = typer.Argument(..., help="Recipient username"),
    body: str = typer.Option(..., "--body", "-b", prompt=True),
    subject: str = typer.Option("", "--subject", "-s"),
    attach: Optional[Path] = typer.Option(
        None, "--attach", "-a", exists=True, dir_okay=False, help="File to attach"
    ),
    reply_to: Optional[int] = typer.Option(
        None, "--reply-to", "-r", help="Id of the message being answered"
    ),
) -> None:
    """Send a direct message."""
    attachment = OutgoingAttachment.from_path(attach) if attach else None

    async def action(client: GameClient) -> None:
        await client.send_message(to, subject, body, attachment, reply_to)
        console.print(f"[green]✓[/green] Message sent to [bold]{escape(to)}[/bold]")

    run_client(action)


@app.command()
def reply(
    message_id: int = typer.Argument(..., help="Inbox message id"),
    body: str = typer.Option(..., "--body", "-b", prompt=True),
) -> None:
    """Reply to an inbox message, quoting the original."""

    async def action(client: GameClient) -> None:
        messages = await client.messages.list_inbox()
        original = next((m for m in messages if m.id == message_id), None)
        if original is None:
            console.print(f"[red]Error:[/red] message #{message_id} not found in inbox")
            raise typer.Exit(code=1)
        draft = client.messages.compose_reply(original, body)
        await client.send_message(
            draft.to, draft.subject, draft.body, related_id=draft.related_message_id
        )
        console.print(f"[green]✓[/green] Reply sent to [bold]{escape(draft.to)}[/bold]")

    run_client(action)


@app.command()
def attachment(
    attachment_id: int = typer.Argument(..., help="Attachment id shown in the inbox"),
    output: Path = typer.Option(..., "--output", "-o", dir_okay=False, help="Where to save it"),
) -> None:
    """Download a message attachment."""

    async def action(client: GameClient) -> int:
        content = await client.messages.download_attachment(attachment_id)
        output.write_bytes(content)
        return len(content)

    size = run_client(action)
    console.print(f"[green]✓[/green] Saved {size} bytes to [bold]{escape(str(output))}[/bold]")


@app.command("bug-report")
def bug_report(
    subject: str = typer.Option(..., "--subject", "-s", prompt="Title"),
    body: str = typer.Option(..., "--body", "-b", prompt="Description"),
    attach: Optional[List[Path]] = typer.Option(
        None, "--attach", "-a", exists=True, dir_okay=False, help="Screenshot or log file"
    ),
) -> None:
    """Submit a bug report to the server admins."""
    attachments = [OutgoingAttachment.from_path(path) for path in attach or []]

    async def action(client: GameClient) -> None:
        await client.submit_bug_report(subject, body, attachments)
        console.print("[green]✓[/green] Bug report submitted.")

    run_client(action)


@app.command("map")
def admin_map() -> None:
    """Show the galaxy map (admins only)."""

    async def action(client: GameClient) -> None:
        console.print(Text.from_ansi(await client.admin_map()))

    run_client(action)


@app.command()
def version() -> None:
    """Show client and server versions."""

    async def action(client: GameClient) -> Optional[str]:
        return await client.version()

    server = run_client(action, resume=False)
    console.print(f"[bold]Sovereign Conquest[/bold] v{_client_version()}")
    console.print(f"Server: {server or 'unknown'}")
