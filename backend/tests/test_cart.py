"""
Tests for cart endpoints: add/overwrite semantics, availability checks, removal.
"""

import pytest
from httpx import AsyncClient

from greenlake.services.cart_service import guest_count, sanitize_additional_info


def _hotel_item(hotel_id: int, **overrides) -> dict:
    item = {
        "itemType": "HOTEL",
        "itemId": hotel_id,
        "quantity": 2,
        "price": 240.0,
        "startDate": "2030-06-01",
        "endDate": "2030-06-03",
        "additionalInfo": {"name": "Hotel Lago Verde", "price": 120, "quantity": 2, "guests": 2},
    }
    item.update(overrides)
    return item


def _vehicle_item(vehicle_id: int, **overrides) -> dict:
    item = {
        "itemType": "VEHICLE",
        "itemId": vehicle_id,
        "quantity": 1,
        "price": 15.0,
        "startDate": "2030-06-02",
        "endDate": "2030-06-04",
    }
    item.update(overrides)
    return item


@pytest.mark.asyncio
async def test_empty_cart(client: AsyncClient, auth_headers):
    """A fresh user sees an empty list."""
    response = await client.get("/api/v1/cart", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_cart_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/cart")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_add_hotel_item(client: AsyncClient, auth_headers, test_hotel):
    response = await client.post("/api/v1/cart", json=_hotel_item(test_hotel.id), headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["itemType"] == "HOTEL"
    assert data["itemId"] == test_hotel.id
    assert data["quantity"] == 2
    assert data["price"] == 240.0
    assert data["additionalInfo"]["name"] == "Hotel Lago Verde"

    listing = await client.get("/api/v1/cart", headers=auth_headers)
    assert [i["id"] for i in listing.json()] == [data["id"]]


@pytest.mark.asyncio
async def test_readding_item_overwrites_line(client: AsyncClient, auth_headers, test_hotel):
    """Same (type, id) twice keeps one line with the last quantity, not the sum."""
    first = await client.post("/api/v1/cart", json=_hotel_item(test_hotel.id), headers=auth_headers)
    second = await client.post(
        "/api/v1/cart",
        json=_hotel_item(test_hotel.id, quantity=3, price=360.0),
        headers=auth_headers,
    )
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]

    items = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    assert items[0]["price"] == 360.0


@pytest.mark.asyncio
async def test_add_hotel_without_capacity(client: AsyncClient, auth_headers, full_hotel):
    """One room left every day; four guests need two rooms."""
    response = await client.post(
        "/api/v1/cart",
        json=_hotel_item(full_hotel.id, additionalInfo={"guests": 4}),
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "HOTEL_UNAVAILABLE"

    items = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert items == []


@pytest.mark.asyncio
async def test_add_hotel_with_exact_capacity(client: AsyncClient, auth_headers, full_hotel):
    response = await client.post(
        "/api/v1/cart",
        json=_hotel_item(full_hotel.id, additionalInfo={"guests": 2}),
        headers=auth_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize("guests", ["two", -4, 0, 2.5, True])
async def test_add_hotel_rejects_invalid_guests(client: AsyncClient, auth_headers, full_hotel, guests):
    """A bad guest count must not get past the capacity check, even on a full hotel."""
    response = await client.post(
        "/api/v1/cart",
        json=_hotel_item(full_hotel.id, additionalInfo={"guests": guests}),
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid guests", "code": "VALIDATION_ERROR"}

    items = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert items == []


def test_guest_count():
    assert guest_count({"guests": 3}, quantity=1) == 3
    assert guest_count({"guests": 2.0}, quantity=1) == 2
    assert guest_count({}, quantity=2) == 2


@pytest.mark.asyncio
async def test_add_unknown_hotel(client: AsyncClient, auth_headers, db_session):
    response = await client.post("/api/v1/cart", json=_hotel_item(999), headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_add_vehicle_conflicts_with_other_cart(
    client: AsyncClient, auth_headers, other_headers, test_vehicle
):
    """A vehicle held in one cart blocks overlapping dates for everyone else."""
    vehicle_id = test_vehicle.id
    first = await client.post("/api/v1/cart", json=_vehicle_item(vehicle_id), headers=auth_headers)
    assert first.status_code == 201

    overlapping = await client.post(
        "/api/v1/cart",
        json=_vehicle_item(vehicle_id, startDate="2030-06-04", endDate="2030-06-05"),
        headers=other_headers,
    )
    assert overlapping.status_code == 400
    assert overlapping.json()["code"] == "VEHICLE_UNAVAILABLE"

    later = await client.post(
        "/api/v1/cart",
        json=_vehicle_item(vehicle_id, startDate="2030-06-05", endDate="2030-06-06"),
        headers=other_headers,
    )
    assert later.status_code == 201


@pytest.mark.asyncio
async def test_readding_own_vehicle_is_not_a_conflict(client: AsyncClient, auth_headers, test_vehicle):
    await client.post("/api/v1/cart", json=_vehicle_item(test_vehicle.id), headers=auth_headers)
    response = await client.post(
        "/api/v1/cart",
        json=_vehicle_item(test_vehicle.id, endDate="2030-06-05"),
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["endDate"] == "2030-06-05"


@pytest.mark.asyncio
async def test_add_item_end_before_start(client: AsyncClient, auth_headers, test_hotel):
    response = await client.post(
        "/api/v1/cart",
        json=_hotel_item(test_hotel.id, startDate="2030-06-03", endDate="2030-06-01"),
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_add_item_invalid_payload(client: AsyncClient, auth_headers):
    """Unknown item type and non-positive quantity are rejected by the schema."""
    response = await client.post(
        "/api/v1/cart",
        json={"itemType": "BOAT", "itemId": 1, "quantity": 0, "price": 10, "startDate": "2030-06-01"},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_remove_single_item(client: AsyncClient, auth_headers, test_hotel, test_vehicle):
    hotel_line = (await client.post("/api/v1/cart", json=_hotel_item(test_hotel.id), headers=auth_headers)).json()
    await client.post("/api/v1/cart", json=_vehicle_item(test_vehicle.id), headers=auth_headers)

    response = await client.delete(f"/api/v1/cart?itemId={hotel_line['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "removed": 1}

    items = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert [i["itemType"] for i in items] == ["VEHICLE"]


@pytest.mark.asyncio
async def test_remove_item_from_another_users_cart(
    client: AsyncClient, auth_headers, other_headers, test_hotel
):
    line = (await client.post("/api/v1/cart", json=_hotel_item(test_hotel.id), headers=auth_headers)).json()

    response = await client.delete(f"/api/v1/cart?itemId={line['id']}", headers=other_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Item not found in cart"


@pytest.mark.asyncio
async def test_clear_cart(client: AsyncClient, auth_headers, test_hotel, test_vehicle):
    await client.post("/api/v1/cart", json=_hotel_item(test_hotel.id), headers=auth_headers)
    await client.post("/api/v1/cart", json=_vehicle_item(test_vehicle.id), headers=auth_headers)

    response = await client.delete("/api/v1/cart", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["removed"] == 2

    items = (await client.get("/api/v1/cart", headers=auth_headers)).json()
    assert items == []


@pytest.mark.asyncio
async def test_clear_cart_without_cart(client: AsyncClient, other_headers):
    """A user who never added anything has no cart row; clearing removes nothing."""
    response = await client.delete("/api/v1/cart", headers=other_headers)
    assert response.status_code == 200
    assert response.json()["removed"] == 0


def test_sanitize_additional_info_coerces_display_fields():
    info = sanitize_additional_info({"name": None, "price": "12", "quantity": 2.5, "guests": 3})
    assert info == {"name": "", "price": 0, "quantity": 1, "guests": 3}


def test_sanitize_additional_info_empty():
    assert sanitize_additional_info(None) == {}
    assert sanitize_additional_info({}) == {}
