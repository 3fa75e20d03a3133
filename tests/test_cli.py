import asyncio
import importlib
import io

import httpx
import pytest
from rich.console import Console

from cli import auth_handlers
from cli.main import build_parser, main, run_command
from cli.status_display import get_auth_status, show_token_status
from session import SessionManager
from tests.fakes import BASE_URL, NOW


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def loop():
    event_loop = asyncio.new_event_loop()
    yield event_loop
    event_loop.close()


@pytest.fixture
def manager(auth_service, storage, loop):
    client = httpx.AsyncClient(transport=httpx.MockTransport(auth_service.handler))
    session_manager = SessionManager(base_url=BASE_URL, storage=storage, http_client=client, now=lambda: NOW)
    yield session_manager
    loop.run_until_complete(session_manager.aclose())
    loop.run_until_complete(client.aclose())


def output(console) -> str:
    return console.file.getvalue()


def test_parser_commands():
    parser = build_parser()

    args = parser.parse_args(["--api-url", "http://x/api", "login", "a@b.com", "--password", "pw"])
    assert (args.command, args.email, args.password, args.api_url) == ("login", "a@b.com", "pw", "http://x/api")

    args = parser.parse_args(["request", "post", "/tasks", "--data", '{"title": "Ship"}'])
    assert (args.method, args.path, args.data) == ("post", "/tasks", '{"title": "Ship"}')

    with pytest.raises(SystemExit):
        parser.parse_args([])


def test_login_success(manager, loop, console, storage):
    assert auth_handlers.login(manager, loop, console, "a@b.com", "x") == 0

    assert "Welcome, Ada Byron" in output(console)
    assert storage.load_tokens() is not None


def test_login_wrong_password(manager, loop, console, storage):
    assert auth_handlers.login(manager, loop, console, "a@b.com", "nope") == 1

    assert "Login failed" in output(console)
    assert storage.load_tokens() is None


def test_login_service_down(manager, loop, console, auth_service):
    auth_service.raise_on["/auth/login"] = httpx.ConnectError("refused")

    assert auth_handlers.login(manager, loop, console, "a@b.com", "x") == 1
    assert "Service unavailable" in output(console)


def test_login_prompts_for_password(manager, loop, console, monkeypatch):
    monkeypatch.setattr(auth_handlers.Prompt, "ask", lambda *args, **kwargs: "x")

    assert auth_handlers.login(manager, loop, console, "a@b.com") == 0


def test_logout_requires_confirmation(manager, loop, console, storage, monkeypatch):
    auth_handlers.login(manager, loop, console, "a@b.com", "x")
    monkeypatch.setattr(auth_handlers.Confirm, "ask", lambda *args, **kwargs: False)

    assert auth_handlers.logout(manager, console) == 0
    assert storage.load_tokens() is not None

    assert auth_handlers.logout(manager, console, assume_yes=True) == 0
    assert storage.load_tokens() is None


def test_whoami_without_session(manager, loop, console, storage):
    assert auth_handlers.whoami(manager, storage, loop, console) == 1
    assert "No session found" in output(console)


def test_whoami_restores_persisted_session(manager, loop, console, storage, auth_service):
    storage.save_tokens(*auth_service.issue_pair())

    assert auth_handlers.whoami(manager, storage, loop, console) == 0
    assert "Ada Byron" in output(console)
    assert "Acme (owner)" in output(console)


def test_rotation_started_during_whoami_is_saved_on_close(manager, loop, console, storage, auth_service):
    storage.save_tokens(*auth_service.issue_pair(exp_offset=60))
    auth_service.refresh_delay = 0.05

    assert auth_handlers.whoami(manager, storage, loop, console) == 0
    loop.run_until_complete(manager.aclose())

    assert auth_service.count("/auth/refresh-token") == 1
    assert storage.get_refresh_token() in auth_service.valid_refresh


def test_refresh_command(manager, loop, console, storage, auth_service):
    storage.save_tokens(*auth_service.issue_pair())
    before = storage.get_refresh_token()

    assert auth_handlers.refresh_token(manager, storage, loop, console) == 0
    assert storage.get_refresh_token() != before
    assert "Token refreshed successfully" in output(console)


def test_refresh_command_with_revoked_session(manager, loop, console, storage):
    storage.save_tokens("opaque", "revoked")

    assert auth_handlers.refresh_token(manager, storage, loop, console) == 1
    assert storage.load_tokens() is None


def test_request_prints_json(manager, loop, console, storage, auth_service):
    storage.save_tokens(*auth_service.issue_pair())

    assert auth_handlers.api_request(manager, storage, loop, console, "get", "/projects") == 0
    assert "Launch" in output(console)


def test_request_reports_http_errors(manager, loop, console, storage, auth_service):
    storage.save_tokens(*auth_service.issue_pair())

    assert auth_handlers.api_request(manager, storage, loop, console, "GET", "/missing") == 1
    assert "HTTP 404" in output(console)


def test_request_rejects_bad_json(manager, loop, console, storage):
    assert auth_handlers.api_request(manager, storage, loop, console, "POST", "/tasks", "{oops") == 2


def test_status_table(console, storage):
    storage.save_tokens("opaque", "R1")

    show_token_status(storage, console)

    assert "Token File" in output(console)
    assert get_auth_status(storage) == ("EXPIRED", "Unreadable token")


def test_run_command_dispatches_status(manager, loop, console, storage):
    args = build_parser().parse_args(["status"])

    assert run_command(args, manager, storage, loop, console) == 0
    assert "Session Token Status" in output(console)


def test_main_exits_with_command_status(monkeypatch, tmp_path, console):
    monkeypatch.setattr(importlib.import_module("cli.main"), "setup_debug_console", lambda debug, api_url: console)

    with pytest.raises(SystemExit) as exc_info:
        main(["--token-file", str(tmp_path / "tokens.json"), "status"])

    assert exc_info.value.code == 0
    assert "No" in output(console)
