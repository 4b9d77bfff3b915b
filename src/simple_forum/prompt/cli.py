"""Interactive console over an in-process forum application.

Pattern: Prompt Renderer
-------------------------
The console plays the part of an HTTP client.  It keeps the session token it
received from ``login``/``register`` and presents it on every command,
exactly as a browser would, so every command exercises the real
resolve-then-authorize path.  The console itself knows nothing about
sessions or permissions beyond holding the token.

Rich is used for display; input is plain ``input()``/``getpass``.
"""

from __future__ import annotations

import getpass
import json
import logging
import shlex

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from simple_forum.app import ForumApplication
from simple_forum.handlers.responses import Response
from simple_forum.settings import Settings

logger = logging.getLogger(__name__)
console = Console()

HELP = {
    "register <username> <email>": "Create an account and log in",
    "login <username|email>": "Log in",
    "logout": "End the current session",
    "whoami <username>": "Look up a user profile",
    "forums [all]": "List boards (all = include private boards)",
    "posts <forum-id>": "List posts on a board",
    "send <recipient> <subject> <body>": "Send direct mail",
    "inbox": "List received mail",
    "quit": "Exit",
}


def _print_banner() -> None:
    console.print(
        Panel(
            "[bold]Simple Forum[/bold]\n"
            "Forums, direct mail and accounts behind a sliding-expiry session registry",
            border_style="blue",
        )
    )


def _print_help() -> None:
    table = Table(title="Commands")
    table.add_column("Command", style="cyan")
    table.add_column("Description")
    for command, description in HELP.items():
        table.add_row(command, description)
    console.print(table)


def _render(response: Response) -> None:
    if not response.ok:
        console.print(f"[red]{response.status}[/red] {response.body}")
        return
    if response.content_type != "application/json":
        console.print(f"[green]OK[/green] {response.body}")
        return

    payload = json.loads(response.body)
    rows = payload if isinstance(payload, list) else [payload]
    if not rows:
        console.print("[dim](empty)[/dim]")
        return
    table = Table()
    for column in rows[0]:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)


class ForumConsole:
    """Dispatches typed commands to the application's handlers."""

    def __init__(self, app: ForumApplication) -> None:
        self._app = app
        self.session_id: str | None = None

    def dispatch(self, line: str) -> bool:
        """Run one command line.  Returns ``False`` when the user asked to quit."""
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            console.print(f"[red]{exc}[/red]")
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in ("quit", "exit"):
            return False
        if command == "help":
            _print_help()
        elif command == "register" and len(args) == 2:
            self._remember(self._app.accounts.register(args[0], args[1], getpass.getpass("  Password: ")))
        elif command == "login" and len(args) == 1:
            self._remember(self._app.accounts.login(args[0], getpass.getpass("  Password: ")))
        elif command == "logout":
            response = self._app.accounts.logout(self.session_id)
            self.session_id = None
            _render(response)
        elif command == "whoami" and len(args) == 1:
            _render(self._app.accounts.user_info(self.session_id, args[0]))
        elif command == "forums":
            _render(self._app.forums.forum_index(include_private=args[:1] == ["all"]))
        elif command == "posts" and len(args) == 1:
            _render(self._app.forums.post_index(args[0], self.session_id))
        elif command == "send" and len(args) == 3:
            _render(self._app.mail.send(self.session_id, *args))
        elif command == "inbox":
            _render(self._app.mail.inbox(self.session_id))
        else:
            console.print("[red]Unknown command.[/red]  Type [bold]help[/bold] for a list.")
        return True

    def _remember(self, response: Response) -> None:
        if response.ok:
            self.session_id = response.body
            console.print("  [green]Logged in.[/green]")
        else:
            _render(response)


def run_cli(settings: Settings) -> None:
    """Main entry point for the interactive console."""
    _print_banner()
    with ForumApplication(settings) as app:
        shell = ForumConsole(app)
        console.print("Type [bold]help[/bold] for commands, [bold]quit[/bold] to exit.\n")
        while True:
            try:
                line = input("> ").strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not shell.dispatch(line):
                break
    console.print("\n[dim]Server stopped; all sessions discarded.[/dim]")
