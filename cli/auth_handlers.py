"""Authentication handlers for CLI"""

import json
from typing import Any, Optional

from rich.prompt import Confirm, Prompt
from session import (
    ApiError,
    InvalidCredentials,
    ServiceUnavailable,
    SessionError,
    SessionExpired,
    SessionManager,
)
from utils.storage import TokenStorage
from cli.status_display import get_auth_status, show_profile


def check_and_refresh_auth(
    manager: SessionManager,
    storage: TokenStorage,
    loop,
    console,
) -> tuple[bool, str, str]:
    """
    Restore the persisted session, refreshing it if needed

    Args:
        manager: SessionManager bound to storage
        storage: TokenStorage holding the persisted pair
        loop: Event loop for async operations
        console: Rich console for output

    Returns:
        Tuple of (success: bool, status: str, message: str)
    """
    status = storage.get_status()

    if not status["has_tokens"]:
        return False, "NO_AUTH", "No session found. Please login first"

    if status["is_expired"]:
        console.print("[yellow]Access token expired, attempting automatic refresh...[/yellow]")

    user = loop.run_until_complete(manager.restore())
    if user is None:
        return False, "SESSION_EXPIRED", "Session expired or could not be verified. Please login again"

    auth_status, detail = get_auth_status(storage)
    return True, auth_status, f"Signed in as {user.email}. {detail}"


def login(
    manager: SessionManager,
    loop,
    console,
    email: str,
    password: Optional[str] = None,
) -> int:
    """
    Handle the login command

    Returns:
        Process exit code
    """
    if password is None:
        password = Prompt.ask("Password", password=True, console=console)

    console.print(f"Logging in as [cyan]{email}[/cyan]...")
    try:
        result = loop.run_until_complete(manager.login(email, password))
    except InvalidCredentials as e:
        console.print(f"[red]Login failed:[/red] {e}")
        return 1
    except ServiceUnavailable as e:
        console.print(f"[red]Service unavailable:[/red] {e}. Check connection and retry")
        return 1

    name = result.user.display_name if result.user else email
    console.print(f"[green]Login successful![/green] Welcome, {name}")
    return 0


def logout(manager: SessionManager, console, assume_yes: bool = False) -> int:
    """
    Clear the stored session

    Args:
        manager: SessionManager instance
        console: Rich console for output
        assume_yes: Skip the confirmation prompt
    """
    if not assume_yes and not Confirm.ask("Are you sure you want to log out?", console=console):
        console.print("Logout cancelled")
        return 0

    manager.logout()
    console.print("[green]Logged out, tokens cleared[/green]")
    return 0


def refresh_token(manager: SessionManager, storage: TokenStorage, loop, console) -> int:
    """
    Force a silent refresh of the persisted session
    """
    if manager.store.restore() is None:
        console.print("[red]No session available - please login first[/red]")
        return 1

    console.print("Attempting to refresh token...")
    try:
        loop.run_until_complete(manager.refresh())
    except SessionExpired as e:
        console.print(f"[red]Token refresh failed:[/red] {e}")
        console.print("This usually happens when the refresh token has expired.")
        return 1

    auth_status, auth_detail = get_auth_status(storage)
    console.print("[green]Token refreshed successfully![/green]")
    console.print(f"Status: [{('green' if auth_status == 'VALID' else 'yellow')}]{auth_status}[/] ({auth_detail})")
    return 0


def whoami(manager: SessionManager, storage: TokenStorage, loop, console) -> int:
    """
    Show the signed-in user's profile
    """
    ok, _, message = check_and_refresh_auth(manager, storage, loop, console)
    if not ok:
        console.print(f"[red]{message}[/red]")
        return 1

    show_profile(manager.user, console)
    return 0


def api_request(
    manager: SessionManager,
    storage: TokenStorage,
    loop,
    console,
    method: str,
    path: str,
    data: Optional[str] = None,
) -> int:
    """
    Send an authenticated request to the API and print the JSON response

    Logged-out requests are sent without credentials and the API decides.
    """
    body: Any = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON for --data:[/red] {e}")
            return 2

    if storage.load_tokens():
        ok, _, message = check_and_refresh_auth(manager, storage, loop, console)
        if not ok:
            console.print(f"[yellow]{message}[/yellow]")

    kwargs = {"json": body} if body is not None else {}
    try:
        payload = loop.run_until_complete(manager.gate.request_json(method.upper(), path, **kwargs))
    except ApiError as e:
        console.print(f"[red]HTTP {e.status_code}:[/red] {e}")
        return 1
    except SessionError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        return 1

    if payload is None:
        console.print("[green]OK[/green] (empty response)")
    elif isinstance(payload, str):
        console.print(payload)
    else:
        console.print_json(data=payload)
    return 0
