import os
import logging
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read at import time, point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from fuel_ledger.core.db import Base, get_async_db  # noqa: E402
from fuel_ledger.main import fuel_app  # noqa: E402
from fuel_ledger.vehicles.models import Vehicle  # noqa: E402
from fuel_ledger.fuel_logs.models import FuelLog  # noqa: E402
from fuel_ledger.fuel_logs.schemas import FuelLogCreate  # noqa: E402
from fuel_ledger.fuel_logs.services import FuelLogService  # noqa: E402
from fuel_ledger.fuel_logs.utils import derive_average_consumption  # noqa: E402

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

TEST_DATABASE_URL = "sqlite+aiosqlite://"

ORG_ID = 1
OTHER_ORG_ID = 2
VEHICLE_ID = 1
SECOND_VEHICLE_ID = 2
OTHER_ORG_VEHICLE_ID = 3


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        logger.info("Closing test DB session")


@pytest_asyncio.fixture
async def vehicles(db_session):
    db_session.add_all([
        Vehicle(id=VEHICLE_ID, organization_id=ORG_ID, vehicle_number="TRK-001"),
        Vehicle(id=SECOND_VEHICLE_ID, organization_id=ORG_ID, vehicle_number="TRK-002"),
        Vehicle(id=OTHER_ORG_VEHICLE_ID, organization_id=OTHER_ORG_ID, vehicle_number="EXT-001"),
    ])
    await db_session.commit()


@pytest.fixture
def service(db_session, vehicles):
    return FuelLogService(db_session)


@pytest_asyncio.fixture
async def client(db_session, vehicles):

    # Override FastAPI's dependency to use the test database session
    async def override_get_async_db():
        yield db_session

    fuel_app.dependency_overrides[get_async_db] = override_get_async_db
    async with AsyncClient(transport=ASGITransport(app=fuel_app), base_url="http://test") as ac:
        yield ac
    fuel_app.dependency_overrides.clear()


def jan(day: int, hour: int = 0) -> datetime:
    return datetime(2024, 1, day, hour)


async def record(
    service: FuelLogService,
    date: datetime,
    odometer_reading: float,
    liters: float = 40,
    vehicle_id: int = VEHICLE_ID,
    organization_id: int = ORG_ID,
    **fields,
) -> FuelLog:
    return await service.create_fuel_log(
        organization_id,
        FuelLogCreate(
            vehicle_id=vehicle_id,
            date=date,
            odometer_reading=odometer_reading,
            liters=liters,
            **fields,
        ),
        user_id=7,
    )


async def ledger_rates(service: FuelLogService, vehicle_id: int = VEHICLE_ID) -> dict:
    history = await service.get_vehicle_history(ORG_ID, vehicle_id)
    return {fuel_log.id: fuel_log.average_consumption for fuel_log in history}


async def assert_ledger_consistent(service: FuelLogService, vehicle_id: int = VEHICLE_ID) -> None:
    """Every stored rate must match the one derived from its predecessor."""
    history = await service.get_vehicle_history(ORG_ID, vehicle_id)
    previous = None
    for fuel_log in history:
        expected = derive_average_consumption(
            fuel_log.odometer_reading,
            previous.odometer_reading if previous else None,
            fuel_log.liters,
        )
        assert fuel_log.average_consumption == expected, fuel_log
        if fuel_log.average_consumption is not None:
            assert 0 <= fuel_log.average_consumption < 1000
        previous = fuel_log
