# fuel_ledger/fuel_logs/services.py

"""
Service layer for the Fuel Log module.
Maintains average consumption across a vehicle's fuel ledger.

A fuel log's average consumption depends only on its immediate predecessor,
so any single mutation re-derives the mutated entry plus at most the entries
that followed it before and after the change. The ledger is never rescanned.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, List, Tuple

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fuel_ledger.core.db import get_async_db
from fuel_ledger.utils.logger import get_logger
from fuel_ledger.fuel_logs.repository import FuelLogRepository
from fuel_ledger.fuel_logs.models import FuelLog
from fuel_ledger.fuel_logs.schemas import (
    FuelLogCreate, FuelLogUpdate, FuelLogFilters, AttachmentField,
    GasStationVolumeResponse,
)
from fuel_ledger.fuel_logs.exceptions import (
    FuelLogNotFoundException, VehicleNotFoundException,
    FuelLogConflictException, FuelLogPersistenceException,
)
from fuel_ledger.fuel_logs.utils import derive_average_consumption, same_instant

logger = get_logger(__name__)

# Fields of FuelLogUpdate that are copied onto the model when present
DESCRIPTIVE_FIELDS = (
    "fuel_type", "fuel_cost", "driver_id", "gas_station_id",
    "latitude", "longitude", "notes",
)


class FuelLogService:
    """
    Business logic for fuel ledger operations.
    The session is the unit of work: each mutating call commits or rolls
    back everything it wrote.
    """

    def __init__(self, db: AsyncSession = Depends(get_async_db)):
        self.db = db
        self.repo = FuelLogRepository(db)

    # === Ledger Mutations ===

    async def create_fuel_log(
        self, organization_id: int, data: FuelLogCreate, user_id: Optional[int] = None
    ) -> FuelLog:
        """
        Record a refueling and keep the vehicle ledger consistent.

        Steps:
        1. Lock the vehicle ledger
        2. Derive the entry's own rate from its predecessor
        3. Persist the entry and its photos
        4. Re-derive the successor, which now follows the new entry

        Raises:
            VehicleNotFoundException: If the vehicle is not in the organization
            FuelLogPersistenceException: If any write fails
        """
        logger.info(
            "Creating fuel log",
            organization_id=organization_id,
            vehicle_id=data.vehicle_id,
            date=str(data.date),
            odometer_reading=data.odometer_reading,
            liters=data.liters,
        )

        try:
            await self._lock_ledgers(organization_id, data.vehicle_id)

            predecessor = await self.repo.find_predecessor(
                organization_id, data.vehicle_id, data.date
            )

            fuel_log = FuelLog(
                organization_id=organization_id,
                vehicle_id=data.vehicle_id,
                driver_id=data.driver_id,
                gas_station_id=data.gas_station_id,
                date=data.date,
                odometer_reading=data.odometer_reading,
                liters=data.liters,
                average_consumption=derive_average_consumption(
                    data.odometer_reading,
                    predecessor.odometer_reading if predecessor else None,
                    data.liters,
                ),
                fuel_type=data.fuel_type.value,
                fuel_cost=data.fuel_cost,
                latitude=data.latitude,
                longitude=data.longitude,
                notes=data.notes,
                created_by=user_id,
                modified_by=user_id,
            )
            self._attach_images(fuel_log, data.fuel_meter_image_id, data.odometer_image_id)
            fuel_log = await self.repo.create_fuel_log(fuel_log)

            # === Backfilled entry: the next refueling now follows it ===
            successor = await self.repo.find_successor(
                organization_id, fuel_log.vehicle_id, fuel_log.date,
                exclude_id=fuel_log.id, position_id=fuel_log.id,
            )
            if successor:
                await self._rederive(successor, fuel_log)

            await self.repo.commit()
        except SQLAlchemyError as e:
            await self.repo.rollback()
            logger.error("Failed to create fuel log", error=str(e), vehicle_id=data.vehicle_id)
            raise FuelLogPersistenceException("create") from e
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(
            "Created fuel log",
            fuel_log_id=fuel_log.id,
            average_consumption=fuel_log.average_consumption,
            successor_id=successor.id if successor else None,
        )
        return fuel_log

    async def update_fuel_log(
        self,
        organization_id: int,
        fuel_log_id: int,
        data: FuelLogUpdate,
        user_id: Optional[int] = None,
    ) -> FuelLog:
        """
        Correct a refueling (volume, odometer, date or vehicle).

        Steps:
        1. Lock the ledgers of the old and new vehicle, then reload the entry
           and check the client token against it
        2. Derive the entry's own rate from the predecessor at its new position
        3. Persist the entry
        4. Re-derive the successor at the new position from the entry
        5. Re-derive the successor at the old position from whatever precedes
           it now

        Steps 4 and 5 touch the same entry when the order did not change, and
        nothing when the entry has no neighbors.

        Raises:
            FuelLogNotFoundException: If the fuel log does not exist
            FuelLogConflictException: If last_updated_on is stale
            VehicleNotFoundException: If the target vehicle does not exist
            FuelLogPersistenceException: If any write fails
        """
        fuel_log = await self.repo.get_fuel_log_by_id(organization_id, fuel_log_id)
        if not fuel_log:
            raise FuelLogNotFoundException(fuel_log_id)

        try:
            fuel_log = await self._lock_fuel_log(
                organization_id, fuel_log_id, fuel_log.vehicle_id, data.vehicle_id
            )
            self._check_last_updated_on(fuel_log, data.last_updated_on)

            previous_date = fuel_log.date
            previous_vehicle_id = fuel_log.vehicle_id
            vehicle_id = data.vehicle_id or previous_vehicle_id

            logger.info(
                "Updating fuel log",
                fuel_log_id=fuel_log_id,
                previous_date=str(previous_date),
                new_date=str(data.date),
                previous_vehicle_id=previous_vehicle_id,
                vehicle_id=vehicle_id,
            )

            predecessor = await self.repo.find_predecessor(
                organization_id, vehicle_id, data.date,
                exclude_id=fuel_log.id, position_id=fuel_log.id,
            )

            fuel_log.vehicle_id = vehicle_id
            fuel_log.date = data.date
            fuel_log.odometer_reading = data.odometer_reading
            fuel_log.liters = data.liters
            fuel_log.average_consumption = derive_average_consumption(
                data.odometer_reading,
                predecessor.odometer_reading if predecessor else None,
                data.liters,
            )
            for field in DESCRIPTIVE_FIELDS:
                if field in data.model_fields_set:
                    value = getattr(data, field)
                    setattr(fuel_log, field, value.value if field == "fuel_type" else value)
            fuel_log.modified_by = user_id
            self._attach_images(fuel_log, data.fuel_meter_image_id, data.odometer_image_id)

            fuel_log = await self.repo.update_fuel_log(fuel_log)

            # === Successor at the new position ===
            new_successor = await self.repo.find_successor(
                organization_id, vehicle_id, fuel_log.date,
                exclude_id=fuel_log.id, position_id=fuel_log.id,
            )
            if new_successor:
                await self._rederive(new_successor, fuel_log)

            # === Successor at the old position ===
            old_successor = await self.repo.find_successor(
                organization_id, previous_vehicle_id, previous_date,
                exclude_id=fuel_log.id, position_id=fuel_log.id,
            )
            if old_successor and (new_successor is None or old_successor.id != new_successor.id):
                await self._relink(old_successor)

            await self.repo.commit()
        except SQLAlchemyError as e:
            await self.repo.rollback()
            logger.error("Failed to update fuel log", error=str(e), fuel_log_id=fuel_log_id)
            raise FuelLogPersistenceException("update") from e
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(
            "Updated fuel log",
            fuel_log_id=fuel_log.id,
            average_consumption=fuel_log.average_consumption,
            new_successor_id=new_successor.id if new_successor else None,
            old_successor_id=old_successor.id if old_successor else None,
        )
        return fuel_log

    async def delete_fuel_log(
        self,
        organization_id: int,
        fuel_log_id: int,
        last_updated_on: Optional[datetime] = None,
    ) -> None:
        """
        Delete a refueling. Its successor is spliced onto its predecessor.

        Raises:
            FuelLogNotFoundException: If the fuel log does not exist
            FuelLogConflictException: If last_updated_on is stale
            FuelLogPersistenceException: If any write fails
        """
        fuel_log = await self.repo.get_fuel_log_by_id(organization_id, fuel_log_id)
        if not fuel_log:
            raise FuelLogNotFoundException(fuel_log_id)

        try:
            fuel_log = await self._lock_fuel_log(organization_id, fuel_log_id, fuel_log.vehicle_id)
            self._check_last_updated_on(fuel_log, last_updated_on)

            logger.info("Deleting fuel log", fuel_log_id=fuel_log_id, vehicle_id=fuel_log.vehicle_id)

            successor = await self.repo.find_successor(
                organization_id, fuel_log.vehicle_id, fuel_log.date,
                exclude_id=fuel_log.id, position_id=fuel_log.id,
            )
            await self.repo.delete_fuel_log(fuel_log)

            if successor:
                await self._relink(successor)

            await self.repo.commit()
        except SQLAlchemyError as e:
            await self.repo.rollback()
            logger.error("Failed to delete fuel log", error=str(e), fuel_log_id=fuel_log_id)
            raise FuelLogPersistenceException("delete") from e
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(
            "Deleted fuel log",
            fuel_log_id=fuel_log_id,
            successor_id=successor.id if successor else None,
        )

    async def confirm_fuel_log(
        self, organization_id: int, fuel_log_id: int, user_id: Optional[int] = None
    ) -> FuelLog:
        """Mark a fuel log as confirmed by a manager."""
        fuel_log = await self.repo.get_fuel_log_by_id(organization_id, fuel_log_id)
        if not fuel_log:
            raise FuelLogNotFoundException(fuel_log_id)

        try:
            fuel_log.confirmation_at = datetime.now(timezone.utc).replace(tzinfo=None)
            fuel_log.confirmation_by = user_id
            fuel_log = await self.repo.update_fuel_log(fuel_log)
            await self.repo.commit()
        except SQLAlchemyError as e:
            await self.repo.rollback()
            logger.error("Failed to confirm fuel log", error=str(e), fuel_log_id=fuel_log_id)
            raise FuelLogPersistenceException("confirm") from e

        logger.info("Confirmed fuel log", fuel_log_id=fuel_log_id, confirmed_by=user_id)
        return fuel_log

    # === Queries ===

    async def get_fuel_log(self, organization_id: int, fuel_log_id: int) -> FuelLog:
        """Get a fuel log or raise if it does not exist."""
        fuel_log = await self.repo.get_fuel_log_by_id(organization_id, fuel_log_id)
        if not fuel_log:
            raise FuelLogNotFoundException(fuel_log_id)
        return fuel_log

    async def list_fuel_logs(
        self, organization_id: int, filters: FuelLogFilters
    ) -> Tuple[List[FuelLog], int]:
        """List fuel logs, newest first."""
        return await self.repo.get_fuel_logs_filtered(organization_id, filters)

    async def get_vehicle_history(
        self,
        organization_id: int,
        vehicle_id: int,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[FuelLog]:
        """A vehicle's ledger in chronological order."""
        return await self.repo.get_vehicle_history(
            organization_id, vehicle_id, date_from, date_to
        )

    async def get_gas_station_volumes(
        self,
        organization_id: int,
        start_date: date,
        end_date: date,
        vehicle_id: Optional[int] = None,
    ) -> List[GasStationVolumeResponse]:
        """
        Liters bought per gas station between two calendar days, both
        included.
        """
        date_from = datetime.combine(start_date, time.min)
        date_to = datetime.combine(end_date, time.max)
        rows = await self.repo.get_gas_station_volumes(
            organization_id, date_from, date_to, vehicle_id
        )
        return [
            GasStationVolumeResponse(
                gas_station_id=gas_station_id,
                total_liters=total_liters,
                fuel_logs_count=fuel_logs_count,
            )
            for gas_station_id, total_liters, fuel_logs_count in rows
        ]

    # === Helpers ===

    async def _lock_ledgers(self, organization_id: int, *vehicle_ids: int) -> None:
        missing = await self.repo.lock_vehicle_ledgers(organization_id, vehicle_ids)
        if missing:
            raise VehicleNotFoundException(missing[0])

    async def _lock_fuel_log(
        self,
        organization_id: int,
        fuel_log_id: int,
        vehicle_id: int,
        target_vehicle_id: Optional[int] = None,
    ) -> FuelLog:
        """
        Lock the ledgers an existing fuel log touches, then reload it.

        The vehicle read before locking may be stale. If another request moved
        the entry to a different vehicle in the meantime, that ledger is
        locked as well before the entry is returned.
        """
        locked = set()
        wanted = {vehicle_id, target_vehicle_id or vehicle_id}
        while True:
            await self._lock_ledgers(organization_id, *(wanted - locked))
            locked |= wanted

            fuel_log = await self.repo.get_fuel_log_by_id(
                organization_id, fuel_log_id, for_update=True
            )
            if not fuel_log:
                raise FuelLogNotFoundException(fuel_log_id)
            if fuel_log.vehicle_id in locked:
                return fuel_log

            logger.warning(
                "Fuel log moved while waiting for ledger lock",
                fuel_log_id=fuel_log_id,
                vehicle_id=fuel_log.vehicle_id,
            )
            wanted = {fuel_log.vehicle_id}

    def _check_last_updated_on(
        self, fuel_log: FuelLog, last_updated_on: Optional[datetime]
    ) -> None:
        if last_updated_on is not None and not same_instant(fuel_log.updated_on, last_updated_on):
            raise FuelLogConflictException(fuel_log.id)

    async def _rederive(self, fuel_log: FuelLog, predecessor: Optional[FuelLog]) -> FuelLog:
        """Re-derive a fuel log's rate against a known predecessor and persist it."""
        fuel_log.average_consumption = derive_average_consumption(
            fuel_log.odometer_reading,
            predecessor.odometer_reading if predecessor else None,
            fuel_log.liters,
        )
        logger.debug(
            "Re-derived average consumption",
            fuel_log_id=fuel_log.id,
            predecessor_id=predecessor.id if predecessor else None,
            average_consumption=fuel_log.average_consumption,
        )
        return await self.repo.update_fuel_log(fuel_log)

    async def _relink(self, fuel_log: FuelLog) -> FuelLog:
        """Look up a fuel log's current predecessor and re-derive against it."""
        predecessor = await self.repo.find_predecessor(
            fuel_log.organization_id, fuel_log.vehicle_id, fuel_log.date,
            exclude_id=fuel_log.id, position_id=fuel_log.id,
        )
        return await self._rederive(fuel_log, predecessor)

    def _attach_images(
        self,
        fuel_log: FuelLog,
        fuel_meter_image_id: Optional[int],
        odometer_image_id: Optional[int],
    ) -> None:
        if fuel_meter_image_id:
            self.repo.add_attachment(
                fuel_log, fuel_meter_image_id, AttachmentField.FUEL_METER_IMAGE.value
            )
        if odometer_image_id:
            self.repo.add_attachment(
                fuel_log, odometer_image_id, AttachmentField.ODOMETER_IMAGE.value
            )
