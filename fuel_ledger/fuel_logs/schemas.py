# fuel_ledger/fuel_logs/schemas.py

"""
Pydantic schemas for the Fuel Log module
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum as PyEnum

from pydantic import BaseModel, Field, ConfigDict


# === Enums ===

class FuelType(str, PyEnum):
    """Fuel type enum."""
    GASOLINE = "Gasoline"
    DIESEL = "Diesel"


class AttachmentField(str, PyEnum):
    """Which photo an attachment documents."""
    FUEL_METER_IMAGE = "fuelMeterImage"
    ODOMETER_IMAGE = "odometerImage"


# === Fuel Log Schemas ===

class FuelLogBase(BaseModel):
    """Base schema for Fuel Log."""
    date: datetime
    odometer_reading: float = Field(..., ge=0)
    liters: float = Field(..., ge=0)
    fuel_type: FuelType = FuelType.DIESEL
    fuel_cost: Optional[float] = Field(None, ge=0)
    driver_id: Optional[int] = None
    gas_station_id: Optional[int] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    notes: Optional[str] = Field(None, max_length=1000)


class FuelLogCreate(FuelLogBase):
    """Schema for creating a Fuel Log."""
    vehicle_id: int
    fuel_meter_image_id: Optional[int] = None
    odometer_image_id: Optional[int] = None


class FuelLogUpdate(FuelLogBase):
    """
    Schema for correcting a Fuel Log.

    Date, odometer and liters are always sent; the remaining fields are only
    applied when present in the payload. A different vehicle_id moves the
    entry to that vehicle's ledger.
    """
    vehicle_id: Optional[int] = None
    fuel_meter_image_id: Optional[int] = None
    odometer_image_id: Optional[int] = None
    last_updated_on: Optional[datetime] = Field(
        None, description="updated_on value the client last read, for conflict detection"
    )


class FuelLogAttachmentResponse(BaseModel):
    """Schema for a Fuel Log attachment."""
    file_id: int
    field: AttachmentField

    model_config = ConfigDict(from_attributes=True)


class FuelLogResponse(FuelLogBase):
    """Schema for Fuel Log Response."""
    id: int
    organization_id: int
    vehicle_id: int
    average_consumption: Optional[float] = None
    confirmation_at: Optional[datetime] = None
    confirmation_by: Optional[int] = None
    attachments: List[FuelLogAttachmentResponse] = []
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None
    created_by: Optional[int] = None
    modified_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class FuelLogFilters(BaseModel):
    """Filters for listing Fuel Logs."""
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    gas_station_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = Field(1, ge=1)
    per_page: int = Field(50, ge=1, le=1000)


class GasStationVolumeResponse(BaseModel):
    """Fuel purchased at one gas station over a reporting window."""
    gas_station_id: Optional[int] = None
    total_liters: float
    fuel_logs_count: int


class PaginatedFuelLogResponse(BaseModel):
    """Paginated response for Fuel Logs."""
    items: List[FuelLogResponse]
    total_items: int
    page: int
    per_page: int
    total_pages: int
