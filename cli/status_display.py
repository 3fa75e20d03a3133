"""Status display functionality for CLI"""

from typing import Optional

from rich.table import Table
from session import UserProfile
from utils.storage import TokenStorage


def show_token_status(storage: TokenStorage, console):
    """
    Display detailed token status

    Args:
        storage: TokenStorage instance
        console: Rich console for output
    """
    status = storage.get_status()

    table = Table(title="Session Token Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
    if status["has_tokens"]:
        table.add_row("Time Until Expiry", status["time_until_expiry"])
    if status["refresh_due_at"]:
        table.add_row("Refresh Due At", status["refresh_due_at"])

    table.add_row("Token File", str(storage.token_file))

    console.print(table)


def show_profile(user: Optional[UserProfile], console):
    """
    Display the signed-in user's profile

    Args:
        user: Profile snapshot from /auth/me
        console: Rich console for output
    """
    if user is None:
        console.print("[yellow]No profile available[/yellow]")
        return

    table = Table(title="Signed-in User")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Name", user.display_name)
    table.add_row("Email", user.email)
    table.add_row("User ID", user.id)
    if user.timezone:
        table.add_row("Timezone", user.timezone)
    for org in user.organizations or []:
        table.add_row("Organization", f"{org.name or org.id} ({org.role or 'member'})")

    console.print(table)


def get_auth_status(storage: TokenStorage) -> tuple[str, str]:
    """
    Get authentication status and expiry info

    Returns:
        Tuple of (status, detail_message)
    """
    status = storage.get_status()

    if not status["has_tokens"]:
        return "NO AUTH", "No tokens available"

    if status["is_expired"]:
        if not status["expires_at"]:
            return "EXPIRED", status["time_until_expiry"]
        return "EXPIRED", f"Expired {status['time_until_expiry']}"

    return "VALID", f"Expires in {status['time_until_expiry']}"
