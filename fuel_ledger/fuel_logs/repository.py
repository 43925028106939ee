# fuel_ledger/fuel_logs/repository.py

"""
Repository layer for the fuel log module.
Handles all database operations for fuel_logs and their attachments.

Ledger order is (date, id): entries sharing a timestamp are ordered by
insertion.
"""

from datetime import datetime
from typing import Optional, List, Tuple, Iterable

from sqlalchemy import select, func, and_, or_, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from fuel_ledger.utils.logger import get_logger
from fuel_ledger.fuel_logs.models import FuelLog, FuelLogAttachment
from fuel_ledger.fuel_logs.schemas import FuelLogFilters
from fuel_ledger.vehicles.models import Vehicle

logger = get_logger(__name__)


class FuelLogRepository:
    """
    Repository for Fuel Log database operations.
    Every call runs on the session handed in, so reads see the writes of
    the enclosing transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # === Fuel Log Operations ===

    async def create_fuel_log(self, fuel_log: FuelLog) -> FuelLog:
        """Create a new fuel log"""
        self.db.add(fuel_log)
        await self.db.flush()
        await self.db.refresh(fuel_log)
        logger.debug("Created fuel log", fuel_log_id=fuel_log.id, vehicle_id=fuel_log.vehicle_id)
        return fuel_log

    async def update_fuel_log(self, fuel_log: FuelLog) -> FuelLog:
        """Flush pending changes of a fuel log"""
        await self.db.flush()
        await self.db.refresh(fuel_log)
        logger.debug(
            "Updated fuel log",
            fuel_log_id=fuel_log.id,
            average_consumption=fuel_log.average_consumption
        )
        return fuel_log

    async def delete_fuel_log(self, fuel_log: FuelLog) -> None:
        """Delete a fuel log together with its attachments"""
        await self.db.delete(fuel_log)
        await self.db.flush()
        logger.debug("Deleted fuel log", fuel_log_id=fuel_log.id)

    async def get_fuel_log_by_id(
        self, organization_id: int, fuel_log_id: int, for_update: bool = False
    ) -> Optional[FuelLog]:
        """
        Get fuel log by primary key within an organization.

        With for_update the row is locked and reloaded from the database,
        replacing whatever this session read before taking the ledger lock.
        """
        stmt = select(FuelLog).where(
            and_(
                FuelLog.id == fuel_log_id,
                FuelLog.organization_id == organization_id,
            )
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def add_attachment(self, fuel_log: FuelLog, file_id: int, field: str) -> FuelLogAttachment:
        """Attach an uploaded file to a fuel log; written on the next flush"""
        attachment = FuelLogAttachment(file_id=file_id, field=field)
        fuel_log.attachments.append(attachment)
        return attachment

    # === Neighbor Lookups ===

    async def find_predecessor(
        self,
        organization_id: int,
        vehicle_id: int,
        before: datetime,
        exclude_id: Optional[int] = None,
        position_id: Optional[int] = None,
    ) -> Optional[FuelLog]:
        """
        Latest fuel log of the vehicle ordered before (before, position_id).

        Without position_id the position is taken to be after every entry
        dated `before`, which is where a not yet persisted entry lands.
        """
        same_date = FuelLog.date == before
        if position_id is not None:
            same_date = and_(same_date, FuelLog.id < position_id)

        conditions = self._ledger_conditions(organization_id, vehicle_id, exclude_id)
        conditions.append(or_(FuelLog.date < before, same_date))

        stmt = (
            select(FuelLog)
            .where(and_(*conditions))
            .order_by(desc(FuelLog.date), desc(FuelLog.id))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_successor(
        self,
        organization_id: int,
        vehicle_id: int,
        after: datetime,
        exclude_id: Optional[int] = None,
        position_id: Optional[int] = None,
    ) -> Optional[FuelLog]:
        """
        Earliest fuel log of the vehicle ordered after (after, position_id).

        Without position_id only entries strictly later than `after` qualify.
        """
        conditions = self._ledger_conditions(organization_id, vehicle_id, exclude_id)
        if position_id is not None:
            conditions.append(
                or_(
                    FuelLog.date > after,
                    and_(FuelLog.date == after, FuelLog.id > position_id),
                )
            )
        else:
            conditions.append(FuelLog.date > after)

        stmt = (
            select(FuelLog)
            .where(and_(*conditions))
            .order_by(asc(FuelLog.date), asc(FuelLog.id))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def _ledger_conditions(
        self, organization_id: int, vehicle_id: int, exclude_id: Optional[int]
    ) -> list:
        conditions = [
            FuelLog.organization_id == organization_id,
            FuelLog.vehicle_id == vehicle_id,
        ]
        if exclude_id is not None:
            conditions.append(FuelLog.id != exclude_id)
        return conditions

    # === Locking ===

    async def lock_vehicle_ledgers(
        self, organization_id: int, vehicle_ids: Iterable[int]
    ) -> List[int]:
        """
        Row-lock the vehicles whose ledgers are about to change.

        Locks are taken in ascending id order. Returns the ids that do not
        exist in the organization.
        """
        missing = []
        for vehicle_id in sorted(set(vehicle_ids)):
            stmt = (
                select(Vehicle.id)
                .where(
                    and_(
                        Vehicle.id == vehicle_id,
                        Vehicle.organization_id == organization_id,
                    )
                )
                .with_for_update()
            )
            result = await self.db.execute(stmt)
            if result.scalar_one_or_none() is None:
                missing.append(vehicle_id)
        logger.debug("Locked vehicle ledgers", vehicle_ids=sorted(set(vehicle_ids)), missing=missing)
        return missing

    # === Queries ===

    async def get_fuel_logs_filtered(
        self, organization_id: int, filters: FuelLogFilters
    ) -> Tuple[List[FuelLog], int]:
        """Get fuel logs with filters and pagination, newest first"""
        stmt = select(FuelLog)

        conditions = [FuelLog.organization_id == organization_id]

        if filters.vehicle_id:
            conditions.append(FuelLog.vehicle_id == filters.vehicle_id)

        if filters.driver_id:
            conditions.append(FuelLog.driver_id == filters.driver_id)

        if filters.gas_station_id:
            conditions.append(FuelLog.gas_station_id == filters.gas_station_id)

        if filters.date_from:
            conditions.append(FuelLog.date >= filters.date_from)

        if filters.date_to:
            conditions.append(FuelLog.date <= filters.date_to)

        stmt = stmt.where(and_(*conditions))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total_result = await self.db.execute(count_stmt)
        total_items = total_result.scalar()

        stmt = stmt.order_by(desc(FuelLog.date), desc(FuelLog.id))
        stmt = stmt.offset((filters.page - 1) * filters.per_page)
        stmt = stmt.limit(filters.per_page)

        result = await self.db.execute(stmt)
        fuel_logs = result.scalars().all()

        logger.debug(f"Retrieved {len(fuel_logs)} fuel logs (total: {total_items})")
        return list(fuel_logs), total_items

    async def get_vehicle_history(
        self,
        organization_id: int,
        vehicle_id: int,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[FuelLog]:
        """Get a vehicle's ledger in chronological order"""
        conditions = self._ledger_conditions(organization_id, vehicle_id, None)

        if date_from:
            conditions.append(FuelLog.date >= date_from)

        if date_to:
            conditions.append(FuelLog.date <= date_to)

        stmt = select(FuelLog).where(and_(*conditions))
        stmt = stmt.order_by(asc(FuelLog.date), asc(FuelLog.id))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_gas_station_volumes(
        self,
        organization_id: int,
        date_from: datetime,
        date_to: datetime,
        vehicle_id: Optional[int] = None,
    ) -> List[Tuple[Optional[int], float, int]]:
        """
        Total liters and refuel count per gas station within a date window,
        largest volume first. Fuel logs without a gas station are grouped
        under None.
        """
        total_liters = func.coalesce(func.sum(FuelLog.liters), 0).label("total_liters")
        stmt = (
            select(
                FuelLog.gas_station_id,
                total_liters,
                func.count(FuelLog.id).label("fuel_logs_count"),
            )
            .where(
                and_(
                    FuelLog.organization_id == organization_id,
                    FuelLog.date >= date_from,
                    FuelLog.date <= date_to,
                )
            )
            .group_by(FuelLog.gas_station_id)
            .order_by(desc(total_liters), asc(FuelLog.gas_station_id))
        )
        if vehicle_id:
            stmt = stmt.where(FuelLog.vehicle_id == vehicle_id)

        result = await self.db.execute(stmt)
        rows = [(row.gas_station_id, float(row.total_liters), row.fuel_logs_count) for row in result.all()]
        logger.debug("Aggregated gas station volumes", stations=len(rows))
        return rows

    # === Transaction Management ===

    async def commit(self):
        """Commit the current transaction"""
        await self.db.commit()
        logger.debug("Transaction committed")

    async def rollback(self):
        """Rollback the current transaction"""
        await self.db.rollback()
        logger.debug("Transaction rolled back")
