from decimal import Decimal
from typing import AsyncGenerator, Callable, Dict, Iterable, Optional

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from treasury_app.domain.services.ledger_service import LedgerService
from treasury_app.infrastructure.cache.yield_cache import YieldCache
from treasury_app.infrastructure.db.database import Base, get_db
from treasury_app.infrastructure.db import models  # noqa: F401
from treasury_app.infrastructure.db.repositories.user_repository import UserRepository
from treasury_app.infrastructure.market_data.treasury_feed import TreasuryFeedClient
from treasury_app.services.account_service import AccountService
from treasury_app.services.yield_service import YieldService


FEED_URL_TEMPLATE = "https://feed.test/xml?year={year}"

FEED_HEADER = (
    '<?xml version="1.0" encoding="utf-8" standalone="yes"?>'
    '<feed xmlns="http://www.w3.org/2005/Atom" '
    'xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices" '
    'xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">'
    '<title type="text">DailyTreasuryYieldCurveRateData</title>'
)

DEFAULT_RATES = {
    "BC_1MONTH": "5.53",
    "BC_3MONTH": "5.46",
    "BC_6MONTH": "4.50",
    "BC_1YEAR": "4.80",
    "BC_2YEAR": "4.33",
    "BC_5YEAR": "3.93",
    "BC_10YEAR": "3.95",
    "BC_30YEAR": "4.10",
}


def _entry_xml(raw_date: str, rates: Dict[str, Optional[str]]) -> str:
    fields = [f'<d:NEW_DATE m:type="Edm.DateTime">{raw_date}</d:NEW_DATE>']
    for name, value in rates.items():
        if value is None:
            fields.append(f'<d:{name} m:type="Edm.Double" m:null="true" />')
        else:
            fields.append(f'<d:{name} m:type="Edm.Double">{value}</d:{name}>')
    return (
        "<entry><content type=\"application/xml\"><m:properties>"
        + "".join(fields)
        + "</m:properties></content></entry>"
    )


def build_feed_xml(entries: Iterable) -> str:
    """
    entries: iterables of (raw_date, overrides) where overrides maps BC_* field
    names to rate strings (None renders a null field)
    """
    body = []
    for raw_date, overrides in entries:
        rates = dict(DEFAULT_RATES)
        rates.update(overrides or {})
        body.append(_entry_xml(raw_date, rates))
    return FEED_HEADER + "".join(body) + "</feed>"


@pytest.fixture()
def feed_xml() -> Callable[[Iterable], str]:
    return build_feed_xml


class FeedStub:
    """
    MockTransport handler serving one XML document per year, counting calls.
    Years without a document answer 404.
    """

    def __init__(self):
        self.documents: Dict[int, str] = {}
        self.status_overrides: Dict[int, int] = {}
        self.calls: Dict[int, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        year = int(request.url.params["year"])
        self.calls[year] = self.calls.get(year, 0) + 1
        if year in self.status_overrides:
            return httpx.Response(self.status_overrides[year], text="unavailable")
        if year not in self.documents:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=self.documents[year], headers={"content-type": "application/xml"})

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture()
def feed_stub() -> FeedStub:
    return FeedStub()


@pytest.fixture()
async def feed_client(feed_stub) -> AsyncGenerator[TreasuryFeedClient, None]:
    client = TreasuryFeedClient(
        url_template=FEED_URL_TEMPLATE,
        timeout=10.0,
        multi_year_timeout=30.0,
        transport=httpx.MockTransport(feed_stub),
    )
    yield client
    await client.aclose()


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"timeout": 30},
        echo=False,
    )

    # Take the SQLite write lock at BEGIN so concurrent units serialize
    # the way row locks serialize them on PostgreSQL
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def ledger(session_factory) -> LedgerService:
    return LedgerService(session_factory)


@pytest.fixture()
def make_user(session_factory):
    async def _make_user(name: str = "Test User", balance="0"):
        async with session_factory() as session:
            async with session.begin():
                return await UserRepository(session).create(name=name, balance=Decimal(str(balance)))

    return _make_user


@pytest.fixture()
def yield_service(feed_client) -> YieldService:
    return YieldService(YieldCache(ttl_seconds=3600), feed_client)


@pytest.fixture()
async def app(session_factory, yield_service) -> FastAPI:
    from treasury_app.main import create_app

    app = create_app()
    app.state.session_factory = session_factory
    app.state.ledger_service = LedgerService(session_factory)
    app.state.account_service = AccountService(session_factory)
    app.state.yield_service = yield_service

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
