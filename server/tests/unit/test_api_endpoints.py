"""Integration tests for API endpoints."""

from uuid import uuid4

import pytest

from travel_booking.core.events import BOOKING_CANCELLED, BOOKING_CREATED
from travel_booking.routers.booking import get_restock_policy
from travel_booking.services.inventory_service import NO_RESTOCK

ADMIN_HEADERS = {"X-Admin": "true"}


@pytest.fixture
def no_restock(test_app):
    """Disable the restock policy for the test app."""
    test_app.dependency_overrides[get_restock_policy] = lambda: NO_RESTOCK


async def _register(test_client, data) -> dict:
    response = await test_client.post("/v1/user/register", json=data)
    assert response.status_code == 200
    return response.json()


async def _add_package(test_client, data) -> dict:
    response = await test_client.post("/v1/package/add", json=data, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_booking_flow(test_client, sample_package_data, sample_register_data, no_restock):
    """Reserve, list and cancel a booking over the API."""
    user = await _register(test_client, sample_register_data)
    package = await _add_package(test_client, sample_package_data)

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": package["id"], "user_id": user["id"], "date": "2026-12-24"},
    )
    assert response.status_code == 200
    booking = response.json()
    assert booking["status"] == "CONFIRMED"
    assert booking["username"] == "aurora"
    assert booking["package"]["availability"] == sample_package_data["availability"] - 1

    response = await test_client.post("/v1/booking/list", json={"user_id": user["id"]})
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [booking["id"]]

    response = await test_client.post(
        "/v1/booking/cancel",
        json={"booking_id": booking["id"], "user_id": user["id"]},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["package"]["availability"] == sample_package_data["availability"]


@pytest.mark.asyncio
async def test_reserve_sold_out(test_client, make_package, make_user, no_restock):
    package = await make_package(availability=0)
    user = await make_user()

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "2026-12-24"},
    )

    assert response.status_code == 409
    data = response.json()
    assert data["code"] == "SOLD_OUT"
    assert data["status"] == 409


@pytest.mark.asyncio
async def test_reserve_uses_restock_policy_by_default(test_client, make_package, make_user, read_availability):
    package = await make_package(availability=0)
    user = await make_user()

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "2026-12-24"},
    )

    assert response.status_code == 200
    assert await read_availability(package.id) == 2


@pytest.mark.asyncio
async def test_reserve_invalid_date(test_client, make_package, make_user):
    package = await make_package()
    user = await make_user()

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "24/12/2026"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INVALID_INPUT"
    assert "date" in data["errors"]


@pytest.mark.asyncio
async def test_reserve_unknown_package(test_client, make_user):
    user = await make_user()

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(uuid4()), "user_id": str(user.id), "date": "2026-12-24"},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_reserve_missing_fields(test_client):
    """Test reservation with a malformed body."""
    response = await test_client.post("/v1/booking/reserve", json={"package_id": "p"})

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data
    paths = {violation["path"] for violation in data["violations"]}
    assert "body.user_id" in paths
    assert "body.date" in paths


@pytest.mark.asyncio
async def test_booking_events_reach_subscribers(test_client, event_bus, make_package, make_user, no_restock):
    created = event_bus.subscribe(BOOKING_CREATED)
    cancelled = event_bus.subscribe(BOOKING_CANCELLED)
    package = await make_package()
    user = await make_user()

    response = await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "2026-12-24"},
    )
    booking_id = response.json()["id"]
    await test_client.post("/v1/booking/cancel", json={"booking_id": booking_id, "user_id": str(user.id)})

    assert created.receive_nowait()["id"] == booking_id
    assert cancelled.receive_nowait()["status"] == "CANCELLED"

    response = await test_client.post("/v1/health/ping", json={})
    assert response.json()["subscribers"] == 2


@pytest.mark.asyncio
async def test_list_all_requires_admin(test_client):
    response = await test_client.post("/v1/booking/list_all", json={})

    assert response.status_code == 403
    assert response.json()["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_list_all_with_admin_header(test_client, make_package, make_user):
    package = await make_package()
    user = await make_user()
    await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "2026-12-24"},
    )

    response = await test_client.post("/v1/booking/list_all", json={}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_invalid_bearer_token(test_client):
    response = await test_client.post(
        "/v1/booking/list_all",
        json={},
        headers={"Authorization": "Bearer not-a-token", **ADMIN_HEADERS},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_valid_bearer_token_is_accepted(test_client, sample_register_data):
    user = await _register(test_client, sample_register_data)

    response = await test_client.post(
        "/v1/booking/list_all",
        json={},
        headers={"Authorization": f"Bearer {user['token']}", **ADMIN_HEADERS},
    )

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_package_endpoints(test_client, sample_package_data):
    package = await _add_package(test_client, sample_package_data)
    assert package["price"] == 1299.99

    response = await test_client.post("/v1/package/list", json={})
    assert [p["id"] for p in response.json()] == [package["id"]]

    response = await test_client.post(
        "/v1/package/search",
        json={"search": "iceland", "filter": {"category": "adventure", "max_price": 1500}},
    )
    assert [p["id"] for p in response.json()] == [package["id"]]

    response = await test_client.post("/v1/package/get", json={"package_id": package["id"], "currency": "GBP"})
    assert response.status_code == 200
    assert response.json()["price"] == 1039.99

    edited = {**sample_package_data, "package_id": package["id"], "availability": 3}
    response = await test_client.post("/v1/package/edit", json=edited, headers=ADMIN_HEADERS)
    assert response.json()["availability"] == 3

    response = await test_client.post("/v1/package/delete", json={"package_id": package["id"]}, headers=ADMIN_HEADERS)
    assert response.json()["success"] is True

    response = await test_client.post("/v1/package/get", json={"package_id": package["id"]})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_package_add_requires_admin(test_client, sample_package_data):
    response = await test_client.post("/v1/package/add", json=sample_package_data)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_package_add_rejects_negative_availability(test_client, sample_package_data):
    response = await test_client.post(
        "/v1/package/add",
        json={**sample_package_data, "availability": -1},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_package_get_unknown_currency(test_client, make_package):
    package = await make_package()

    response = await test_client.post("/v1/package/get", json={"package_id": str(package.id), "currency": "XYZ"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_wishlist_endpoints(test_client, make_package, make_user):
    package = await make_package()
    user = await make_user()
    body = {"user_id": str(user.id), "package_id": str(package.id)}

    response = await test_client.post("/v1/wishlist/add", json=body)
    assert response.status_code == 200
    entry = response.json()

    response = await test_client.post("/v1/wishlist/add", json=body)
    assert response.status_code == 409

    response = await test_client.post("/v1/wishlist/list", json={"user_id": str(user.id)})
    assert [e["id"] for e in response.json()] == [entry["id"]]

    response = await test_client.post("/v1/wishlist/remove", json=body)
    assert response.status_code == 200

    response = await test_client.post("/v1/wishlist/remove", json=body)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_user_endpoints(test_client, sample_register_data):
    user = await _register(test_client, sample_register_data)
    assert "password_hash" not in user

    response = await test_client.post("/v1/user/register", json=sample_register_data)
    assert response.status_code == 409

    response = await test_client.post(
        "/v1/user/login",
        json={"username": "aurora", "password": "wrong"},
    )
    assert response.status_code == 400
    assert response.json()["errors"] == {"general": "Wrong credentials"}

    response = await test_client.post(
        "/v1/user/login",
        json={"username": "aurora", "password": "northern-lights"},
    )
    assert response.status_code == 200
    assert response.json()["token"]

    response = await test_client.post("/v1/user/update", json={"user_id": user["id"], "last_name": "Borealis"})
    assert response.json()["last_name"] == "Borealis"

    response = await test_client.post("/v1/user/profile", json={"user_id": user["id"]})
    assert response.json()["last_name"] == "Borealis"

    response = await test_client.post("/v1/user/logout", json={"user_id": user["id"]})
    assert response.json() == {"success": True}

    response = await test_client.post("/v1/user/list", json={})
    assert response.status_code == 403

    response = await test_client.post("/v1/user/list", json={}, headers=ADMIN_HEADERS)
    assert [u["username"] for u in response.json()] == ["aurora"]

    response = await test_client.post("/v1/user/remove", json={"user_id": user["id"]}, headers=ADMIN_HEADERS)
    assert response.status_code == 200

    response = await test_client.post("/v1/user/profile", json={"user_id": user["id"]})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_analytics(test_client, make_package, make_user, no_restock):
    package = await make_package(price="250.00")
    user = await make_user()
    await test_client.post(
        "/v1/booking/reserve",
        json={"package_id": str(package.id), "user_id": str(user.id), "date": "2026-12-24"},
    )

    response = await test_client.post("/v1/admin/analytics", json={})
    assert response.status_code == 403

    response = await test_client.post("/v1/admin/analytics", json={}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["total_revenue"] == 250.0
    assert data["total_bookings"] == 1
    assert data["confirmed_bookings_count"] == 1
    assert data["cancelled_bookings_count"] == 0
    assert [p["id"] for p in data["most_popular_packages"]] == [str(package.id)]
