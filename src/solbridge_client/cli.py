# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Diagnostic command line for the SolBridge client.

    solbridge-client health
    solbridge-client login alice@example.com
    solbridge-client status
    solbridge-client get /wallet
    solbridge-client refresh
    solbridge-client logout

Sessions are kept in a JSON credential file (SOLBRIDGE_CREDENTIALS_FILE).
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .auth_service import AuthService
from .client import ApiClient
from .config import get_credentials_file, load_settings
from .errors import ApiClientError, AuthExpiredError, ConfigurationError
from .logging_setup import setup_logging
from .storage import JsonFileCredentialStore
from .utils import format_token_for_display

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solbridge-client", description="SolBridge API client diagnostics"
    )
    parser.add_argument("--credentials", help="Path of the JSON credential file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-dir", help="Write failures.log to this directory")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("health", help="Check backend connectivity")

    login = sub.add_parser("login", help="Log in and store the session")
    login.add_argument("email")
    login.add_argument("--password", help="Prompted for when omitted")

    sub.add_parser("status", help="Show the stored session")
    sub.add_parser("refresh", help="Refresh the access token now")
    sub.add_parser("logout", help="Clear the stored session")

    get = sub.add_parser("get", help="Authenticated GET against the API")
    get.add_argument("path")
    return parser


def _print_response(payload: dict) -> None:
    console.print_json(json.dumps(payload, default=str))


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    store = JsonFileCredentialStore(args.credentials or get_credentials_file())

    async with ApiClient(settings=settings, store=store) as client:
        auth = AuthService(client)
        client.add_session_expired_listener(
            lambda error: console.print(
                f"[bold red]Session expired:[/bold red] {error.message} Run 'login' again."
            )
        )

        if args.command == "health":
            ok = await client.check_connection()
            style = "bold green" if ok else "bold red"
            console.print(
                f"[{style}]{'reachable' if ok else 'unreachable'}[/{style}] {settings.health_url}"
            )
            return 0 if ok else 1

        if args.command == "login":
            password = args.password or getpass.getpass("Password: ")
            response = await auth.login(args.email, password)
            if not response.success:
                console.print(
                    Panel(response.message or "Login failed", title="Login", style="bold red")
                )
                return 1
            console.print(Panel(f"Logged in as [bold]{args.email}[/bold]", style="bold green"))
            return 0

        if args.command == "status":
            table = Table(title=f"Session ({settings.environment})")
            table.add_column("Key")
            table.add_column("Value")
            table.add_row("API", settings.base_url)
            table.add_row("Credentials", str(store.file_path))
            table.add_row("Access token", format_token_for_display(await auth.get_access_token()))
            user = await auth.get_stored_user()
            table.add_row("User", user.get("email", "-") if isinstance(user, dict) else "-")
            console.print(table)
            return 0 if await auth.is_authenticated() else 1

        if args.command == "refresh":
            try:
                token = await auth.refresh_token()
            except AuthExpiredError as e:
                console.print(f"[bold red]{e.error.message}[/bold red]")
                return 1
            console.print(f"[bold green]Refreshed[/bold green] {format_token_for_display(token)}")
            return 0

        if args.command == "logout":
            await auth.logout()
            console.print("[bold]Session cleared.[/bold]")
            return 0

        if args.command == "get":
            response = await client.get(args.path)
            _print_response(response.to_dict())
            return 0 if response.success else 1

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_dir)

    try:
        return asyncio.run(_run(args))
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return 2
    except ApiClientError as e:
        _print_response(e.to_dict())
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
