import asyncio

import httpx
import orjson
import pytest
import pytest_asyncio

from flightlog.config import Settings
from flightlog.context import build_context
from flightlog.db.repository import FlightRepository
from flightlog.db.session import build_engine, build_session_factory, close_db, init_db
from flightlog.keys.resolver import KeyResolver

from logbuilder import TEST_KEY


class FakeKeyService:
    """Simulated vendor key service. Counts requests and can be told to fail."""

    def __init__(self, key: bytes = TEST_KEY, delay: float = 0.05):
        self.key = key
        self.delay = delay
        self.requests = []
        self.error_message = None
        self.status_code = 200

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        await asyncio.sleep(self.delay)
        if self.error_message is not None:
            return httpx.Response(
                self.status_code,
                content=orjson.dumps({"code": 403, "message": self.error_message}),
            )
        return httpx.Response(200, content=orjson.dumps({"code": 0, "data": {"key": self.key.hex()}}))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def key_service():
    return FakeKeyService()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        app_data_dir=tmp_path / "appdata",
        key_service_url="https://keys.test/keychains",
        database_url=f"sqlite+aiosqlite:///{(tmp_path / 'flights.db').as_posix()}",
    )


@pytest.fixture
def resolver_with_key(tmp_path):
    return KeyResolver(tmp_path / "appdata", environ={"DJI_API_KEY": "test-api-key"}, dotenv_path=None)


@pytest.fixture
def resolver_without_key(tmp_path):
    return KeyResolver(tmp_path / "appdata", environ={}, dotenv_path=None)


@pytest_asyncio.fixture
async def repository(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{(tmp_path / 'repo.db').as_posix()}")
    await init_db(engine)
    yield FlightRepository(build_session_factory(engine))
    await close_db(engine)


@pytest_asyncio.fixture
async def context(settings, resolver_with_key, key_service):
    ctx = build_context(settings, key_resolver=resolver_with_key, transport=key_service.transport)
    await ctx.start()
    yield ctx
    await ctx.close()
