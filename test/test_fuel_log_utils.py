from datetime import datetime, timezone, timedelta

import pytest

from fuel_ledger.fuel_logs.utils import (
    OUTLIER_THRESHOLD,
    calculate_average_consumption,
    derive_average_consumption,
    same_instant,
)


def test_calculate_average_consumption():
    assert calculate_average_consumption(400, 40) == 10
    assert calculate_average_consumption(500, 40) == 12.5


def test_negative_distance_is_clamped_to_zero():
    assert calculate_average_consumption(-100, 40) == 0


def test_derive_without_predecessor_is_absent():
    assert derive_average_consumption(1000, None, 40) is None


@pytest.mark.parametrize("liters", [0, None, -5])
def test_derive_without_positive_volume_is_absent(liters):
    assert derive_average_consumption(1400, 1000, liters) is None


def test_derive_discards_implausible_rates():
    assert derive_average_consumption(21000, 1000, 10) is None
    assert derive_average_consumption(1000 + OUTLIER_THRESHOLD, 1000, 1) is None
    assert derive_average_consumption(1000 + OUTLIER_THRESHOLD - 1, 1000, 1) == OUTLIER_THRESHOLD - 1


def test_derive_keeps_predecessor_odometer_of_zero():
    assert derive_average_consumption(400, 0, 40) == 10


def test_derive_clamps_backwards_odometer():
    assert derive_average_consumption(900, 1000, 40) == 0


def test_same_instant():
    naive = datetime(2024, 1, 1, 12, 0)
    aware = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert same_instant(naive, aware)
    assert same_instant(naive, naive)
    assert not same_instant(naive, datetime(2024, 1, 1, 12, 1))
    assert not same_instant(None, naive)
    assert same_instant(None, None)
