"""Interactive terminal driver for a session.

Pattern: Prompt Renderer
-------------------------
The CLI is a thin human-facing boundary over one ``SessionManager``:

  1. **Startup**: build the transport, gateway and manager, then hydrate.
  2. **Command loop**: ``login``, ``status``, ``refresh``, ``logout``,
     ``quit``.
  3. **Observer output**: credential transitions and background renewal
     errors are printed as they happen.

Input is read on a worker thread so the event loop stays free to fire the
renewal timer while the prompt is waiting.  Rich is used for display.  The
CLI knows nothing about routes or token wire formats.
"""

from __future__ import annotations

import asyncio
import getpass
import logging

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tokenkeeper.auth.errors import SessionError
from tokenkeeper.auth.tokens import CredentialPair, LoginCredentials
from tokenkeeper.gateway.identity_client import IdentityGatewayClient
from tokenkeeper.gateway.transport import HttpRequester
from tokenkeeper.session.manager import SessionManager
from tokenkeeper.settings.loader import Settings

logger = logging.getLogger(__name__)
console = Console()

COMMANDS = {
    "login": "Authenticate with identifier and secret",
    "status": "Show the current session",
    "refresh": "Renew the credentials now",
    "logout": "End the session",
    "quit": "Exit",
}


def _print_banner() -> None:
    console.print(
        Panel(
            "[bold]tokenkeeper[/bold]\n"
            "Client session with proactive credential renewal",
            border_style="blue",
        )
    )


def _on_change(tokens: CredentialPair | None) -> None:
    if tokens is None:
        console.print("[dim]Session: no credentials[/dim]")
    else:
        console.print(
            f"[dim]Session: credentials valid until "
            f"{tokens.access_expires_at.isoformat()}[/dim]"
        )


def _on_error(exc: Exception) -> None:
    console.print(f"[red]Background session error:[/red] {exc}")


def _render_status(manager: SessionManager) -> None:
    state = manager.state
    table = Table(title="Session")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")

    table.add_row("Status", state.status.value)
    if state.user is not None:
        table.add_row("User", state.user.user_id)
        table.add_row("Name", state.user.name)
        table.add_row("Email", state.user.email or "(none)")
    if state.tokens is not None:
        table.add_row("Access expires", state.tokens.access_expires_at.isoformat())
        table.add_row("Refresh expires", state.tokens.refresh_expires_at.isoformat())
    delay = manager.renewal_delay
    table.add_row("Next renewal", f"in {delay:.0f}s" if delay is not None else "(none)")
    console.print(table)


def _render_help() -> None:
    table = Table(title="Commands")
    table.add_column("Command", style="cyan")
    table.add_column("Description")
    for name, description in COMMANDS.items():
        table.add_row(name, description)
    console.print(table)


async def _prompt_credentials() -> LoginCredentials | None:
    identifier = (await asyncio.to_thread(input, "  Identifier: ")).strip()
    secret = await asyncio.to_thread(getpass.getpass, "  Secret: ")
    if not identifier or not secret:
        console.print("[red]Identifier and secret are required.[/red]")
        return None
    return LoginCredentials(identifier=identifier, secret=secret)


async def _run_command(manager: SessionManager, command: str) -> None:
    if command == "login":
        credentials = await _prompt_credentials()
        if credentials is None:
            return
        user = await manager.login(credentials)
        console.print(f"\n  [green]Authenticated[/green] as [bold]{user.name}[/bold] ({user.user_id})\n")
    elif command == "logout":
        await manager.logout()
        console.print("  [green]Logged out.[/green]")
    elif command == "refresh":
        tokens = await manager.refresh()
        console.print(f"  [green]Renewed[/green] until {tokens.access_expires_at.isoformat()}")
    elif command == "status":
        _render_status(manager)
    else:
        _render_help()


async def _command_loop(settings: Settings) -> None:
    identity = settings.identity
    async with HttpRequester(identity.base_url, timeout=identity.timeout) as requester:
        gateway = IdentityGatewayClient(
            requester,
            login_route=identity.login_route,
            refresh_route=identity.refresh_route,
            profile_route=identity.profile_route,
        )
        manager = SessionManager(
            gateway,
            on_change=_on_change,
            on_error=_on_error,
            config=settings.session,
        )
        async with manager:
            _render_help()
            while True:
                try:
                    command = (await asyncio.to_thread(input, "> ")).strip().lower()
                except (EOFError, KeyboardInterrupt):
                    break

                if not command:
                    continue
                if command in ("quit", "exit"):
                    break

                try:
                    await _run_command(manager, command)
                except SessionError as exc:
                    console.print(f"[red]{type(exc).__name__}:[/red] {exc}")


def run_cli(settings: Settings) -> None:
    """Main entry point for the interactive CLI."""
    _print_banner()
    asyncio.run(_command_loop(settings))
    console.print("\n[dim]Session ended.[/dim]")
