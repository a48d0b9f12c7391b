"""Shared test fixtures for ztgate."""

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ztgate.core.app import create_app
from ztgate.core.http import get_http_client
from ztgate.core.settings import ACCESS_CERTS_URL_DEFAULT, CONFIG_URL_DEFAULT
from ztgate.db.base import BaseEntity
from ztgate.db.engine import get_session

CONFIG_URL = CONFIG_URL_DEFAULT
CERTS_URL = ACCESS_CERTS_URL_DEFAULT

Responder = httpx.Response | Callable[[httpx.Request], httpx.Response]


class MockUpstream:
    """Outbound HTTP double: canned responses per (method, URL prefix).

    Unmatched requests fail with a connection error, so no test reaches
    the network.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, Responder]] = []
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url_prefix: str, responder: Responder) -> None:
        self.routes.append((method, url_prefix, responder))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, prefix, responder in self.routes:
            if request.method == method and str(request.url).startswith(prefix):
                if isinstance(responder, httpx.Response):
                    return httpx.Response(
                        responder.status_code,
                        headers=responder.headers,
                        content=responder.content,
                    )
                return responder(request)
        raise httpx.ConnectError("no mocked route", request=request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("GATEWAY_CONFIG_URL", CONFIG_URL)
    monkeypatch.setenv("GATEWAY_ACCESS_CERTS_URL", CERTS_URL)
    monkeypatch.setenv("GATEWAY_LOG_JSON", "false")


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()


@pytest.fixture
async def http_client(upstream: MockUpstream) -> AsyncIterator[httpx.AsyncClient]:
    """Outbound client routed to the upstream double."""
    async with upstream.client() as client:
        yield client


@pytest.fixture
async def client(
    db_session: AsyncSession, upstream: MockUpstream
) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client with DB session and outbound overrides."""
    app = create_app()

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    async def _override_http() -> AsyncIterator[httpx.AsyncClient]:
        async with upstream.client() as outbound:
            yield outbound

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_http_client] = _override_http

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://example.com") as ac:
        yield ac
