# fuel_ledger/fuel_logs/exceptions.py

"""
Custom exceptions for the Fuel Log module.
"""

from typing import Optional
from fastapi import HTTPException, status


class FuelLogBaseException(Exception):
    """Base exception for all Fuel Log errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class FuelLogNotFoundException(FuelLogBaseException):
    """Raised when a fuel log does not exist in the organization."""
    def __init__(self, fuel_log_id: int):
        msg = f"Fuel log with ID {fuel_log_id} not found"
        super().__init__(msg, {"fuel_log_id": fuel_log_id})


class VehicleNotFoundException(FuelLogBaseException):
    """Raised when the vehicle of a ledger does not exist in the organization."""
    def __init__(self, vehicle_id: int):
        msg = f"Vehicle with ID {vehicle_id} not found"
        super().__init__(msg, {"vehicle_id": vehicle_id})


class FuelLogConflictException(FuelLogBaseException):
    """Raised when the fuel log was modified after the client last read it."""
    def __init__(self, fuel_log_id: int):
        msg = f"Fuel log {fuel_log_id} was modified by another user"
        super().__init__(msg, {"fuel_log_id": fuel_log_id})


class FuelLogPersistenceException(FuelLogBaseException):
    """Raised when a ledger write fails and the transaction was rolled back."""
    def __init__(self, operation: str):
        msg = f"Unable to {operation} fuel log"
        super().__init__(msg, {"operation": operation})


def convert_to_http_exception(exc: FuelLogBaseException) -> HTTPException:
    """
    Convert a FuelLogBaseException to an HTTPException with appropriate status code.

    Args:
        exc: The fuel log exception to convert

    Returns:
        HTTPException with appropriate status code and detail
    """
    if isinstance(exc, (FuelLogNotFoundException, VehicleNotFoundException)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, FuelLogConflictException):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "details": exc.details}
    )
