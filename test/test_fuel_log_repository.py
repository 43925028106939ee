from datetime import datetime

import pytest

from fuel_ledger.fuel_logs.repository import FuelLogRepository

from conftest import (
    ORG_ID, OTHER_ORG_ID, VEHICLE_ID, SECOND_VEHICLE_ID, OTHER_ORG_VEHICLE_ID,
    jan, record,
)


@pytest.mark.asyncio
async def test_neighbors_of_a_date(service, db_session):
    first = await record(service, jan(1), 1000)
    second = await record(service, jan(10), 1400)
    repo = FuelLogRepository(db_session)

    assert (await repo.find_predecessor(ORG_ID, VEHICLE_ID, jan(5))).id == first.id
    assert (await repo.find_successor(ORG_ID, VEHICLE_ID, jan(5))).id == second.id
    assert await repo.find_predecessor(ORG_ID, VEHICLE_ID, datetime(2023, 12, 31)) is None
    assert await repo.find_successor(ORG_ID, VEHICLE_ID, jan(10)) is None


@pytest.mark.asyncio
async def test_neighbor_lookup_excludes_given_entry(service, db_session):
    first = await record(service, jan(1), 1000)
    second = await record(service, jan(10), 1400)
    repo = FuelLogRepository(db_session)

    assert await repo.find_predecessor(ORG_ID, VEHICLE_ID, jan(20), exclude_id=second.id) == first
    assert await repo.find_successor(ORG_ID, VEHICLE_ID, datetime(2023, 12, 31), exclude_id=first.id) == second


@pytest.mark.asyncio
async def test_same_timestamp_entries_are_ordered_by_id(service, db_session):
    earlier = await record(service, jan(5), 1200)
    later = await record(service, jan(5), 1300)
    repo = FuelLogRepository(db_session)

    # A position without id sits after every entry of that date
    assert await repo.find_predecessor(ORG_ID, VEHICLE_ID, jan(5)) == later

    assert await repo.find_predecessor(
        ORG_ID, VEHICLE_ID, jan(5), exclude_id=later.id, position_id=later.id
    ) == earlier
    assert await repo.find_successor(
        ORG_ID, VEHICLE_ID, jan(5), exclude_id=earlier.id, position_id=earlier.id
    ) == later
    assert await repo.find_predecessor(
        ORG_ID, VEHICLE_ID, jan(5), exclude_id=earlier.id, position_id=earlier.id
    ) is None
    assert await repo.find_successor(ORG_ID, VEHICLE_ID, jan(5)) is None


@pytest.mark.asyncio
async def test_neighbors_are_scoped_to_vehicle_and_organization(service, db_session):
    await record(service, jan(1), 5000, vehicle_id=SECOND_VEHICLE_ID)
    await record(
        service, jan(2), 9000, vehicle_id=OTHER_ORG_VEHICLE_ID, organization_id=OTHER_ORG_ID
    )
    repo = FuelLogRepository(db_session)

    assert await repo.find_predecessor(ORG_ID, VEHICLE_ID, jan(20)) is None
    assert await repo.find_predecessor(ORG_ID, OTHER_ORG_VEHICLE_ID, jan(20)) is None
    assert (await repo.find_predecessor(OTHER_ORG_ID, OTHER_ORG_VEHICLE_ID, jan(20))).odometer_reading == 9000


@pytest.mark.asyncio
async def test_lock_vehicle_ledgers_reports_missing_vehicles(service, db_session):
    repo = FuelLogRepository(db_session)

    assert await repo.lock_vehicle_ledgers(ORG_ID, [SECOND_VEHICLE_ID, VEHICLE_ID]) == []
    assert await repo.lock_vehicle_ledgers(ORG_ID, [VEHICLE_ID, 99, OTHER_ORG_VEHICLE_ID]) == [
        OTHER_ORG_VEHICLE_ID, 99
    ]
