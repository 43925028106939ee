### fuel_ledger/vehicles/models.py

# Third party imports
from sqlalchemy import Column, Integer, String

# Local imports
from fuel_ledger.core.db import Base
from fuel_ledger.core.models import AuditMixin


class Vehicle(Base, AuditMixin):
    """
    Vehicle model. Fuel log ledgers are locked through this row.
    """

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, nullable=False, comment="Primary Key for Vehicles")
    organization_id = Column(
        Integer, nullable=False, index=True, comment="Organization owning the vehicle"
    )
    vehicle_number = Column(String(64), nullable=True, comment="Fleet number of the vehicle")
    plate_number = Column(String(24), nullable=True, index=True, comment="Vehicle plate number")

    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, vehicle_number='{self.vehicle_number}')>"
