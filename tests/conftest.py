"""
Shared fixtures: a fresh in-memory database per test, seeded roles/users,
an httpx client bound to the app and small factories for fuel entities.
"""

import os

os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, get_db
from auth import create_access_token, hash_password
from models import (
    RoleDB,
    UserDB,
    AirlineDB,
    FuelPriceRuleDB,
    FixedStorageTankDB,
    MrnRecordDB,
    FuelTankDB,
)
from constants.roles import KONTROLA, FUEL_OPERATOR, AERODROM
from crud.user import seed_roles_and_admin


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def users(session_maker):
    """admin (seeded) plus one user per role the tests exercise."""
    async with session_maker() as session:
        await seed_roles_and_admin(session)
        roles = {r.name: r.id for r in (await session.execute(select(RoleDB))).scalars().all()}
        for username, role in (("kontrola", KONTROLA), ("operator", FUEL_OPERATOR), ("viewer", AERODROM)):
            session.add(UserDB(
                username=username,
                password_hash=hash_password("secret123"),
                full_name=username.title(),
                role_id=roles[role],
                is_active=True,
            ))
        await session.commit()
        result = (await session.execute(
            select(UserDB).execution_options(populate_existing=True)
        )).scalars().all()
        return {u.username: u for u in result}


def _headers(user):
    token = create_access_token({"sub": user.username, "user_id": user.id, "role": user.role_name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(users):
    return _headers(users["admin"])


@pytest.fixture
def kontrola_headers(users):
    return _headers(users["kontrola"])


@pytest.fixture
def operator_headers(users):
    return _headers(users["operator"])


@pytest.fixture
def viewer_headers(users):
    return _headers(users["viewer"])


@pytest.fixture
async def client(session_maker, users):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ==========================================================
#  FACTORIES
# ==========================================================

@pytest.fixture
def make_airline(session_maker):
    async def _make(name="Test Air", is_foreign=False, prices=None):
        async with session_maker() as s:
            airline = AirlineDB(name=name, is_foreign=is_foreign, operating_destinations=[])
            s.add(airline)
            await s.flush()
            for currency, price in (prices or {}).items():
                s.add(FuelPriceRuleDB(airline_id=airline.id, price=price, currency=currency))
            await s.commit()
            return airline
    return _make


@pytest.fixture
def make_fixed_tank(session_maker):
    async def _make(
        identifier="FT-01",
        current=0.0,
        capacity=50000.0,
        fuel_type="JET A-1",
        status="ACTIVE",
        mrns=None,
    ):
        """mrns: list of (mrn, remaining_liters, date_added)."""
        async with session_maker() as s:
            tank = FixedStorageTankDB(
                tank_name=f"Tank {identifier}",
                tank_identifier=identifier,
                capacity_liters=capacity,
                current_quantity_liters=current,
                fuel_type=fuel_type,
                status=status,
            )
            s.add(tank)
            await s.flush()
            for mrn, qty, added in mrns or []:
                s.add(MrnRecordDB(
                    fixed_tank_id=tank.id,
                    customs_declaration_number=mrn,
                    quantity_liters=qty,
                    remaining_quantity_liters=qty,
                    date_added=added or datetime.now(),
                ))
            await s.commit()
            return tank
    return _make


@pytest.fixture
def make_tanker(session_maker):
    async def _make(identifier="CIS-01", current=0.0, capacity=20000.0, fuel_type="JET A-1"):
        async with session_maker() as s:
            tanker = FuelTankDB(
                identifier=identifier,
                name=f"Tanker {identifier}",
                capacity_liters=capacity,
                current_liters=current,
                fuel_type=fuel_type,
            )
            s.add(tanker)
            await s.commit()
            return tanker
    return _make


@pytest.fixture
def fetch(session_maker):
    """Load a fresh copy of a row, bypassing any session cache."""
    async def _fetch(model, pk):
        async with session_maker() as s:
            return await s.get(model, pk)
    return _fetch


@pytest.fixture
def fetch_mrns(session_maker):
    async def _fetch(tank_id):
        async with session_maker() as s:
            res = await s.execute(
                select(MrnRecordDB)
                .where(MrnRecordDB.fixed_tank_id == tank_id)
                .order_by(MrnRecordDB.date_added, MrnRecordDB.id)
            )
            return res.scalars().all()
    return _fetch
