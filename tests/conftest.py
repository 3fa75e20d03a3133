from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from session import SessionManager
from tests.fakes import BASE_URL, NOW, FakeAuthService
from utils.storage import TokenStorage


@pytest.fixture
def auth_service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture
def token_file(tmp_path: Path) -> Path:
    return tmp_path / "session" / "tokens.json"


@pytest.fixture
def storage(token_file: Path) -> TokenStorage:
    return TokenStorage(str(token_file))


@pytest_asyncio.fixture
async def http_client(auth_service: FakeAuthService) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(auth_service.handler)) as client:
        yield client


@pytest_asyncio.fixture
async def manager(http_client: httpx.AsyncClient, storage: TokenStorage) -> AsyncGenerator[SessionManager, None]:
    session_manager = SessionManager(
        base_url=BASE_URL,
        storage=storage,
        http_client=http_client,
        now=lambda: NOW,
    )
    yield session_manager
    await session_manager.aclose()
