"""
Pytest configuration and shared fixtures for the dealership test suite.

This module provides:
- Database fixtures (in-memory SQLite for fast tests)
- FastAPI test client with the identity provider and object storage replaced by fakes
- Factories for branches, admins, customers, bikes and stock
- An AsyncSession-like test double for service unit tests
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dealership.auth.auth_handler import sign_jwt
from dealership.auth.identity_provider import IdentityTokenError, get_identity_provider
from dealership.auth.passwords_handler import hash_password_async
from dealership.core.db import Base, get_db
from dealership.main import app
from dealership.middleware.rate_limit import limiter
from dealership.models.admin import Admin, BranchManager
from dealership.models.bike import Bike
from dealership.models.branch import Branch
from dealership.models.customer import Customer, CustomerProfile
from dealership.models.enums import AdminRole, StockSource, StockStatus
from dealership.models.stock import StockItem
from dealership.services.storage import StoredObject, get_object_storage

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_PASSWORD = "Admin@12345"


class FakeIdentityProvider:
    """Accepts the tokens registered in `tokens`, rejects everything else."""

    def __init__(self):
        self.tokens = {}

    def register(self, token: str, uid: str, phone_number: str):
        self.tokens[token] = {"uid": uid, "phone_number": phone_number}

    async def verify_id_token(self, token: str) -> dict:
        if token not in self.tokens:
            raise IdentityTokenError("unknown token")
        return self.tokens[token]


class FakeObjectStorage:
    def __init__(self):
        self.objects = {}
        self.deleted = []

    async def upload(self, content, content_type, folder, filename=None):
        key = f"{folder}/{len(self.objects) + 1}-{filename}"
        self.objects[key] = content
        return StoredObject(key=key, url=f"https://media.test/{key}")

    async def delete(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)


@pytest.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async_session = async_sessionmaker(async_engine, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def object_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
async def async_client(async_db_session, identity_provider, object_storage) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client with database, identity and storage overrides."""

    async def override_get_db():
        yield async_db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_object_storage] = lambda: object_storage
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Test Data Factories
@pytest.fixture
async def test_branch(async_db_session) -> Branch:
    branch = Branch(
        slug="golaghat",
        branch_name="Honda Motorcycles Golaghat",
        address="AT Road, Golaghat",
        phone="03774280000",
        email="golaghat@example.com",
    )
    async_db_session.add(branch)
    await async_db_session.commit()
    return branch


@pytest.fixture
async def other_branch(async_db_session) -> Branch:
    branch = Branch(
        slug="jorhat",
        branch_name="Honda Motorcycles Jorhat",
        address="Gar-Ali, Jorhat",
        phone="03762320000",
        email="jorhat@example.com",
    )
    async_db_session.add(branch)
    await async_db_session.commit()
    return branch


@pytest.fixture
async def super_admin(async_db_session) -> Admin:
    admin = Admin(
        name="Head Office",
        email="admin@example.com",
        password=await hash_password_async(ADMIN_PASSWORD),
        role=AdminRole.SUPER_ADMIN.value,
    )
    async_db_session.add(admin)
    await async_db_session.commit()
    return admin


@pytest.fixture
async def branch_manager(async_db_session, test_branch, super_admin) -> BranchManager:
    manager = BranchManager(
        name="Golaghat Manager",
        email="manager@example.com",
        password=await hash_password_async(ADMIN_PASSWORD),
        application_id="BM-AB12-CD34",
        branch_id=test_branch.id,
        created_by=super_admin.id,
    )
    async_db_session.add(manager)
    await async_db_session.commit()
    return manager


@pytest.fixture
def admin_headers(super_admin) -> dict:
    token = sign_jwt(super_admin.id, super_admin.role)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers(branch_manager) -> dict:
    token = sign_jwt(branch_manager.id, AdminRole.BRANCH_ADMIN.value)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def make_customer(async_db_session, identity_provider):
    """Factory: verified customer with a profile and a registered identity token."""

    async def _make(phone_number: str = "9876543210", first_name: str = "Rahul", with_profile: bool = True):
        customer = Customer(
            firebase_uid=f"uid-{phone_number}",
            phone_number=phone_number,
            is_verified=True,
            profile=CustomerProfile(
                first_name=first_name,
                last_name="Bora",
                village="Dergaon",
                post_office="Dergaon",
                police_station="Dergaon",
                district="Golaghat",
                state="Assam",
            ) if with_profile else None,
        )
        async_db_session.add(customer)
        await async_db_session.commit()
        identity_provider.register(f"token-{phone_number}", customer.firebase_uid, f"+91{phone_number}")
        return customer

    return _make


@pytest.fixture
async def test_customer(make_customer) -> Customer:
    return await make_customer()


@pytest.fixture
def customer_headers(test_customer) -> dict:
    return {"Authorization": f"Bearer token-{test_customer.phone_number}"}


@pytest.fixture
async def make_bike(async_db_session):
    async def _make(model_name: str = "Shine 100", category: str = "commuter", year: int = 2024, **overrides):
        values = dict(
            model_name=model_name,
            main_category="bike",
            category=category,
            year=year,
            variants=[{"name": "Standard", "features": [], "priceAdjustment": 0, "isAvailable": True}],
            ex_showroom=65000,
            rto=6000,
            insurance=4000,
            engine_size="98.98cc",
            power=7.28,
            transmission="4-speed",
            fuel_norms="BS6",
            is_e20_efficiency=False,
            features=[],
            colors=["Black"],
            key_specifications={},
            stock_available=1,
            images=[],
        )
        values.update(overrides)
        bike = Bike(**values)
        bike.recalculate_on_road_price()
        async_db_session.add(bike)
        await async_db_session.commit()
        return bike

    return _make


@pytest.fixture
async def make_stock(async_db_session, test_branch):
    """Factory: active stock item, Available by default."""
    counter = {"n": 0}

    async def _make(source: str = StockSource.MANUAL.value, branch_id: int = None, engine_cc: int = 110, **overrides):
        counter["n"] += 1
        n = counter["n"]
        prefix = "CSV" if source == StockSource.CSV.value else "STK"
        values = dict(
            stock_id=f"{prefix}-1700000000000-{n:04d}",
            source=source,
            model_name="SP 125" if engine_cc > 110 else "Shine 100",
            category="commuter",
            engine_cc=engine_cc,
            fuel_type="Petrol",
            color="Red",
            engine_number=f"ENG{n:05d}",
            chassis_number=f"CHS{n:05d}",
            status=StockStatus.AVAILABLE.value,
            location="Warehouse",
            branch_id=branch_id or test_branch.id,
            ex_showroom_price=80000,
            sales_history=[],
            extra_fields=[],
        )
        values.update(overrides)
        item = StockItem(**values)
        item.recalculate_prices()
        async_db_session.add(item)
        await async_db_session.commit()
        return item

    return _make


# Common Test Doubles
@pytest.fixture
def mock_async_session():
    """Provide a reusable AsyncSession-like test double.

    - `add` is a `MagicMock` (synchronous)
    - `flush`, `commit`, `rollback`, `execute` are `AsyncMock`
    Tests can override `execute.side_effect` as needed.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    return session
