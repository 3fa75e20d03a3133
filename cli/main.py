"""CLI entry point and argument parsing"""

import argparse
import asyncio
import sys
from rich.console import Console
import settings
from session import SessionManager
from utils.storage import TokenStorage
from cli import auth_handlers
from cli.debug_setup import setup_debug_console
from cli.status_display import show_token_status


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Taskboard session client")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--api-url", default=None, help="Override the API base URL (default: from config)")
    parser.add_argument("--token-file", default=None, help="Override the token file (default: from config)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in with email and password")
    login_parser.add_argument("email")
    login_parser.add_argument("--password", default=None, help="Password (prompted when omitted)")

    logout_parser = subparsers.add_parser("logout", help="Clear the stored session")
    logout_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("status", help="Show stored token status")
    subparsers.add_parser("whoami", help="Show the signed-in user's profile")
    subparsers.add_parser("refresh", help="Refresh the session tokens now")

    request_parser = subparsers.add_parser("request", help="Send an authenticated API request")
    request_parser.add_argument("method", help="HTTP method, e.g. GET")
    request_parser.add_argument("path", help="Path relative to the API base URL, e.g. /projects")
    request_parser.add_argument("--data", default=None, help="JSON request body")

    return parser


def run_command(args, manager: SessionManager, storage: TokenStorage, loop, out) -> int:
    if args.command == "login":
        return auth_handlers.login(manager, loop, out, args.email, args.password)
    if args.command == "logout":
        return auth_handlers.logout(manager, out, assume_yes=args.yes)
    if args.command == "status":
        show_token_status(storage, out)
        return 0
    if args.command == "whoami":
        return auth_handlers.whoami(manager, storage, loop, out)
    if args.command == "refresh":
        return auth_handlers.refresh_token(manager, storage, loop, out)
    if args.command == "request":
        return auth_handlers.api_request(manager, storage, loop, out, args.method, args.path, args.data)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)

    api_url = args.api_url or settings.API_BASE_URL
    out = setup_debug_console(args.debug, api_url)

    storage = TokenStorage(args.token_file)
    manager = SessionManager(base_url=api_url, storage=storage)
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    exit_code = 1
    try:
        exit_code = run_command(args, manager, storage, loop, out)
    except KeyboardInterrupt:
        out.print("\n[yellow]Interrupted by user[/yellow]")
    except Exception as e:
        out.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
    finally:
        loop.run_until_complete(manager.aclose())
        loop.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
