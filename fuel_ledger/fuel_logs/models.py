# fuel_ledger/fuel_logs/models.py

"""
SQLAlchemy 2.x models for the fuel log module

Implements the per-vehicle fuel ledger:
- fuel_logs: one row per refueling, carrying the derived average consumption
  of the interval that ends at that refueling.
- fuel_log_attachments: opaque photo references (fuel meter, odometer).
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String, Float, Numeric, DateTime, Integer, Text, ForeignKey, Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuel_ledger.core.db import Base
from fuel_ledger.core.models import AuditMixin


class FuelLog(Base, AuditMixin):
    """
    One refueling event of a vehicle.

    average_consumption depends only on this row and its chronological
    predecessor (same vehicle, previous (date, id) position). It is written
    exclusively by FuelLogService.
    """
    __tablename__ = "fuel_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    organization_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True, comment="Tenant scope"
    )
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False, index=True, comment="Vehicle whose ledger this entry belongs to"
    )
    driver_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True, comment="Driver who refueled"
    )
    gas_station_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True, comment="Gas station reference"
    )

    # === Ledger fields ===
    date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, comment="Refueling timestamp, ledger ordering key"
    )
    odometer_reading: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Cumulative distance at refueling"
    )
    liters: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Fuel volume purchased"
    )
    average_consumption: Mapped[Optional[float]] = mapped_column(
        Float, nullable=True,
        comment="Distance per liter since the previous refueling, NULL when unknown"
    )

    # === Descriptive fields ===
    fuel_type: Mapped[str] = mapped_column(
        SQLEnum("Gasoline", "Diesel", name="fuel_type_enum"),
        nullable=False, default="Diesel"
    )
    fuel_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True, comment="Amount paid"
    )
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # === Confirmation ===
    confirmation_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, comment="When a manager confirmed the entry"
    )
    confirmation_by: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="User who confirmed the entry"
    )

    # === Relationships ===
    attachments: Mapped[List["FuelLogAttachment"]] = relationship(
        "FuelLogAttachment", back_populates="fuel_log",
        cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return (
            f"<FuelLog(id={self.id}, vehicle_id={self.vehicle_id}, date={self.date}, "
            f"odometer_reading={self.odometer_reading}, liters={self.liters}, "
            f"average_consumption={self.average_consumption})>"
        )

    __table_args__ = (
        Index("idx_fuel_log_ledger", "organization_id", "vehicle_id", "date", "id"),
    )


class FuelLogAttachment(Base):
    """
    Photo attached to a fuel log. The file itself lives in the upload service.
    """
    __tablename__ = "fuel_log_attachments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    fuel_log_id: Mapped[int] = mapped_column(
        ForeignKey("fuel_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_id: Mapped[int] = mapped_column(Integer, nullable=False)
    field: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="fuelMeterImage or odometerImage"
    )

    fuel_log: Mapped["FuelLog"] = relationship("FuelLog", back_populates="attachments")

    def __repr__(self) -> str:
        return f"<FuelLogAttachment(fuel_log_id={self.fuel_log_id}, field='{self.field}')>"
