"""
Pytest configuration and fixtures.

Services run against a file-backed SQLite database. Every transaction opens
with BEGIN IMMEDIATE so concurrent writers serialize the way row locks make
them serialize on PostgreSQL.
"""
import fnmatch
import re
import uuid
from typing import Any, AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.config import Settings
from app.core.cache import RedisCache
from app.core.permissions import Principal, Role
from app.database import Base
from app.gateways.base import GatewayType, GatewayVerification, PaymentGateway
from app.models.profile import Profile
from app.services.container import Services, build_services
from app.services.gateway_service import GatewayService
from app.services.revalidation_service import RevalidationService
from app.services.storage_service import StorageService


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client surface RedisCache uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, nx: bool = False) -> bool | None:
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    async def scan_iter(self, match: str = "*"):
        # Redis escapes with a backslash; fnmatch needs a one-character class
        pattern = re.sub(r"\\(.)", r"[\1]", match)
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, pattern):
                yield key

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


class StubGateway(PaymentGateway):
    """Gateway returning a preset verification."""

    def __init__(self) -> None:
        self.result = GatewayVerification(status="success", reference="", amount=None)
        self.calls: list[str] = []

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    async def verify(self, reference: str) -> GatewayVerification:
        self.calls.append(reference)
        return GatewayVerification(
            status=self.result.status,
            reference=reference,
            amount=self.result.amount,
        )


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'summit.db'}",
        environment="development",
        jwt_secret_key="test-secret",
        s3_bucket_name="test-proofs",
        s3_endpoint_url="https://storage.test",
        revalidate_url=None,
    )


@pytest_asyncio.fixture
async def session_factory(test_settings: Settings) -> AsyncGenerator[async_sessionmaker[AsyncSession], Any]:
    """Create a fresh database with all tables."""
    engine = create_async_engine(test_settings.database_url, poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def s3_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def services(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: FakeRedis,
    s3_client: MagicMock,
    stub_gateway: StubGateway,
) -> Services:
    return build_services(
        test_settings,
        session_factory=session_factory,
        cache=RedisCache(fake_redis),
        storage=StorageService(test_settings, client=s3_client),
        gateway=GatewayService(stub_gateway, timeout_seconds=1.0),
        revalidation=RevalidationService(None),
    )


@pytest.fixture
def make_profile(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a profile directly and return it."""

    async def _make(
        role: Role = Role.PARTICIPANT,
        full_name: str = "Ada Okafor",
        phone: str | None = None,
        **fields: Any,
    ) -> Profile:
        suffix = uuid.uuid4().hex[:8]
        profile = Profile(
            id=uuid.uuid4(),
            email=fields.pop("email", f"{suffix}@school.ng"),
            phone=phone,
            full_name=full_name,
            role=role.value,
            **fields,
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(profile)
        return profile

    return _make


@pytest.fixture
def principal_for():
    def _principal(profile: Profile) -> Principal:
        return Principal(id=profile.id, role=Role(profile.role))

    return _principal
