import pytest

from conftest import ORG_ID, VEHICLE_ID

HEADERS = {"X-Organization-Id": str(ORG_ID), "X-User-Id": "7"}


async def post_fuel_log(client, date: str, odometer_reading: float, liters: float = 40, **extra):
    payload = {
        "vehicle_id": VEHICLE_ID,
        "date": date,
        "odometer_reading": odometer_reading,
        "liters": liters,
        **extra,
    }
    response = await client.post("/fuel-logs", json=payload, headers=HEADERS)
    assert response.status_code == 201, response.json()
    return response.json()


@pytest.mark.asyncio
async def test_ping(client):
    response = await client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_and_backfill_over_http(client):
    first = await post_fuel_log(client, "2024-01-01T08:00:00", 1000, odometer_image_id=55)
    second = await post_fuel_log(client, "2024-01-10T08:00:00", 1400)
    middle = await post_fuel_log(client, "2024-01-05T08:00:00", 1200)

    assert first["average_consumption"] is None
    assert first["attachments"] == [{"file_id": 55, "field": "odometerImage"}]
    assert first["created_by"] == 7
    assert second["average_consumption"] == 10
    assert middle["average_consumption"] == 5

    response = await client.get(f"/fuel-logs/{second['id']}", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["average_consumption"] == 5


@pytest.mark.asyncio
async def test_update_over_http(client):
    await post_fuel_log(client, "2024-01-01T08:00:00", 1000)
    middle = await post_fuel_log(client, "2024-01-05T08:00:00", 1200)
    last = await post_fuel_log(client, "2024-01-10T08:00:00", 1400)

    response = await client.put(
        f"/fuel-logs/{middle['id']}",
        json={"date": middle["date"], "odometer_reading": 900, "liters": 40},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["average_consumption"] == 0

    history = await client.get(f"/fuel-logs/vehicles/{VEHICLE_ID}/history", headers=HEADERS)
    assert history.status_code == 200
    rates = {item["id"]: item["average_consumption"] for item in history.json()}
    assert rates[last["id"]] == 12.5


@pytest.mark.asyncio
async def test_stale_update_is_a_conflict(client):
    created = await post_fuel_log(client, "2024-01-01T08:00:00", 1000)

    response = await client.put(
        f"/fuel-logs/{created['id']}",
        json={
            "date": created["date"],
            "odometer_reading": 1000,
            "liters": 35,
            "last_updated_on": "2000-01-01T00:00:00",
        },
        headers=HEADERS,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_filters_and_paginates(client):
    await post_fuel_log(client, "2024-01-01T08:00:00", 1000, driver_id=1)
    await post_fuel_log(client, "2024-01-10T08:00:00", 1400, driver_id=2)
    await post_fuel_log(client, "2024-01-20T08:00:00", 1800, driver_id=2)

    response = await client.get(
        "/fuel-logs", params={"driver_id": 2, "per_page": 1}, headers=HEADERS
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total_items"] == 2
    assert body["total_pages"] == 2
    assert [item["odometer_reading"] for item in body["items"]] == [1800]


@pytest.mark.asyncio
async def test_delete_and_confirm_over_http(client):
    first = await post_fuel_log(client, "2024-01-01T08:00:00", 1000)
    second = await post_fuel_log(client, "2024-01-10T08:00:00", 1400)

    confirmed = await client.post(f"/fuel-logs/{second['id']}/confirm", headers=HEADERS)
    assert confirmed.status_code == 200
    assert confirmed.json()["confirmation_by"] == 7

    deleted = await client.delete(f"/fuel-logs/{first['id']}", headers=HEADERS)
    assert deleted.status_code == 204

    response = await client.get(f"/fuel-logs/{second['id']}", headers=HEADERS)
    assert response.json()["average_consumption"] is None

    missing = await client.get(f"/fuel-logs/{first['id']}", headers=HEADERS)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_unknown_vehicle_is_not_found(client):
    response = await client.post(
        "/fuel-logs",
        json={"vehicle_id": 99, "date": "2024-01-01T08:00:00", "odometer_reading": 1, "liters": 1},
        headers=HEADERS,
    )
    assert response.status_code == 404
    assert response.json()["detail"]["details"] == {"vehicle_id": 99}


@pytest.mark.asyncio
async def test_organization_header_is_required(client):
    response = await client.get("/fuel-logs")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_stale_delete_is_a_conflict(client):
    created = await post_fuel_log(client, "2024-01-01T08:00:00", 1000)

    response = await client.delete(
        f"/fuel-logs/{created['id']}",
        params={"last_updated_on": "2000-01-01T00:00:00"},
        headers=HEADERS,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["details"] == {"fuel_log_id": created["id"]}

    response = await client.delete(
        f"/fuel-logs/{created['id']}",
        params={"last_updated_on": created["updated_on"]},
        headers=HEADERS,
    )
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_gas_station_volume_report(client):
    await post_fuel_log(client, "2024-01-01T08:00:00", 1000, liters=40, gas_station_id=4)
    await post_fuel_log(client, "2024-01-15T08:00:00", 1400, liters=60, gas_station_id=9)
    await post_fuel_log(client, "2024-01-31T22:00:00", 1800, liters=20, gas_station_id=4)
    await post_fuel_log(client, "2024-02-01T08:00:00", 2200, liters=99, gas_station_id=4)

    response = await client.get(
        "/fuel-logs/reports/gas-stations",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == [
        {"gas_station_id": 4, "total_liters": 60, "fuel_logs_count": 2},
        {"gas_station_id": 9, "total_liters": 60, "fuel_logs_count": 1},
    ]
