# fuel_ledger/fuel_logs/router.py

"""
FastAPI router for Fuel Log endpoints.

Organization and user are resolved by the gateway in front of this service
and forwarded as headers.
"""

import math
from datetime import date, datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Header, Query, status

from fuel_ledger.fuel_logs.services import FuelLogService
from fuel_ledger.fuel_logs.schemas import (
    FuelLogCreate, FuelLogUpdate, FuelLogResponse,
    FuelLogFilters, PaginatedFuelLogResponse, GasStationVolumeResponse,
)
from fuel_ledger.fuel_logs.exceptions import FuelLogBaseException, convert_to_http_exception
from fuel_ledger.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Fuel Logs"], prefix="/fuel-logs")


def get_organization_id(x_organization_id: int = Header(...)) -> int:
    """Organization resolved upstream."""
    return x_organization_id


def get_user_id(x_user_id: Optional[int] = Header(None)) -> Optional[int]:
    """Acting user resolved upstream."""
    return x_user_id


@router.post("", response_model=FuelLogResponse, status_code=status.HTTP_201_CREATED)
async def create_fuel_log(
    fuel_log_data: FuelLogCreate,
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
    user_id: Optional[int] = Depends(get_user_id),
):
    """
    Record a refueling.

    The entry's average consumption is derived from the previous refueling
    of the vehicle, and the next refueling (when the entry is backfilled) is
    re-derived against it.
    """
    try:
        fuel_log = await fuel_log_service.create_fuel_log(
            organization_id, fuel_log_data, user_id
        )
        return fuel_log
    except FuelLogBaseException as e:
        logger.error(f"Failed to create fuel log: {e.message}", error_details=e.details)
        raise convert_to_http_exception(e) from e


@router.get("", response_model=PaginatedFuelLogResponse)
async def list_fuel_logs(
    vehicle_id: Optional[int] = Query(None),
    driver_id: Optional[int] = Query(None),
    gas_station_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=1000),
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
):
    """
    List fuel logs with filters and pagination, newest first.
    """
    filters = FuelLogFilters(
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        gas_station_id=gas_station_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    fuel_logs, total_items = await fuel_log_service.list_fuel_logs(organization_id, filters)

    return PaginatedFuelLogResponse(
        items=[FuelLogResponse.model_validate(item) for item in fuel_logs],
        total_items=total_items,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total_items / per_page) if total_items else 0,
    )


@router.get("/vehicles/{vehicle_id}/history", response_model=List[FuelLogResponse])
async def get_vehicle_history(
    vehicle_id: int,
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
):
    """
    A vehicle's fuel ledger in chronological order, for consumption charts.
    """
    return await fuel_log_service.get_vehicle_history(
        organization_id, vehicle_id, date_from, date_to
    )


@router.get("/reports/gas-stations", response_model=List[GasStationVolumeResponse])
async def get_gas_station_volumes(
    start_date: date = Query(...),
    end_date: date = Query(...),
    vehicle_id: Optional[int] = Query(None),
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
):
    """
    Liters bought per gas station between two days, for the fuel volume chart.
    """
    return await fuel_log_service.get_gas_station_volumes(
        organization_id, start_date, end_date, vehicle_id
    )


@router.get("/{fuel_log_id}", response_model=FuelLogResponse)
async def get_fuel_log(
    fuel_log_id: int,
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
):
    """
    Get a specific fuel log by ID.
    """
    try:
        return await fuel_log_service.get_fuel_log(organization_id, fuel_log_id)
    except FuelLogBaseException as e:
        raise convert_to_http_exception(e) from e


@router.put("/{fuel_log_id}", response_model=FuelLogResponse)
async def update_fuel_log(
    fuel_log_id: int,
    fuel_log_data: FuelLogUpdate,
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
    user_id: Optional[int] = Depends(get_user_id),
):
    """
    Correct a refueling. The entries that followed it before and after the
    correction are re-derived.
    """
    try:
        return await fuel_log_service.update_fuel_log(
            organization_id, fuel_log_id, fuel_log_data, user_id
        )
    except FuelLogBaseException as e:
        logger.error(f"Failed to update fuel log: {e.message}", error_details=e.details)
        raise convert_to_http_exception(e) from e


@router.post("/{fuel_log_id}/confirm", response_model=FuelLogResponse)
async def confirm_fuel_log(
    fuel_log_id: int,
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
    user_id: Optional[int] = Depends(get_user_id),
):
    """
    Confirm a refueling entry.
    """
    try:
        return await fuel_log_service.confirm_fuel_log(organization_id, fuel_log_id, user_id)
    except FuelLogBaseException as e:
        raise convert_to_http_exception(e) from e


@router.delete("/{fuel_log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fuel_log(
    fuel_log_id: int,
    last_updated_on: Optional[datetime] = Query(
        None, description="updated_on value the client last read, for conflict detection"
    ),
    fuel_log_service: FuelLogService = Depends(),
    organization_id: int = Depends(get_organization_id),
):
    """
    Delete a refueling. The next refueling is re-derived against the
    previous one.
    """
    try:
        await fuel_log_service.delete_fuel_log(organization_id, fuel_log_id, last_updated_on)
    except FuelLogBaseException as e:
        logger.error(f"Failed to delete fuel log: {e.message}", error_details=e.details)
        raise convert_to_http_exception(e) from e
