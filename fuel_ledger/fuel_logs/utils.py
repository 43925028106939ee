# fuel_ledger/fuel_logs/utils.py

"""
Utility functions for the Fuel Log module.
Average consumption arithmetic and timestamp helpers.
"""

from datetime import datetime, timezone
from typing import Optional

# Rates at or above this value are data-entry errors and are never stored
OUTLIER_THRESHOLD = 1000


def calculate_average_consumption(distance: float, liters: float) -> float:
    """
    Calculate distance per liter for one refueling interval.

    A negative distance (odometer typed lower than the previous reading)
    yields 0 rather than a negative economy figure.

    Args:
        distance: Odometer difference against the previous refueling
        liters: Fuel volume of the refueling, must be > 0

    Returns:
        Non-negative average consumption
    """
    rate = distance / liters
    if rate < 0:
        return 0.0
    return rate


def derive_average_consumption(
    odometer_reading: float,
    predecessor_odometer: Optional[float],
    liters: Optional[float],
) -> Optional[float]:
    """
    Average consumption to store on a fuel log.

    Returns None when there is no predecessor, when the volume is missing or
    not positive, or when the rate reaches OUTLIER_THRESHOLD.
    """
    if predecessor_odometer is None or not liters or liters <= 0:
        return None

    rate = calculate_average_consumption(
        float(odometer_reading) - float(predecessor_odometer), float(liters)
    )
    if rate >= OUTLIER_THRESHOLD:
        return None
    return rate


def same_instant(first: Optional[datetime], second: Optional[datetime]) -> bool:
    """
    Compare two timestamps. When only one side is timezone-aware it is
    converted to naive UTC, which is how the database hands them back.
    """
    if first is None or second is None:
        return first is second
    if (first.tzinfo is None) != (second.tzinfo is None):
        first = _naive_utc(first)
        second = _naive_utc(second)
    return first == second


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
