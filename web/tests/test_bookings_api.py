import asyncio

import pytest

from conftest import FUTURE_DAY, auth_headers


@pytest.mark.asyncio
async def test_admin_creates_booking(client, admin_headers, make_tour, make_user):
    tour_id = await make_tour(max_group_size=10)
    user_id = await make_user()

    response = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "user": user_id, "participants": 6, "startDate": FUTURE_DAY, "price": 25},
        headers=admin_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["tour"] == tour_id
    assert body["user"] == user_id
    assert body["date"] == FUTURE_DAY
    assert body["participants"] == 6
    assert body["status"] == "pending"
    assert body["source"] == "admin"
    assert body["totalCents"] == 15000


@pytest.mark.asyncio
async def test_lead_guide_may_create(client, make_tour):
    tour_id = await make_tour()

    response = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "participants": 1, "startDate": FUTURE_DAY},
        headers=auth_headers(2, "lead-guide"),
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_overbooking_is_rejected_with_detail(client, admin_headers, make_tour):
    tour_id = await make_tour(max_group_size=10)
    payload = {"tour": tour_id, "participants": 6, "startDate": FUTURE_DAY}
    assert (await client.post("/api/v1/bookings", json=payload, headers=admin_headers)).status_code == 201

    response = await client.post(
        "/api/v1/bookings", json={**payload, "participants": 5}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["details"] == {
        "capacity": 10, "alreadyBooked": 6, "canAccept": 4, "requested": 5,
    }


@pytest.mark.asyncio
async def test_create_with_missing_tour_or_user(client, admin_headers, make_tour):
    response = await client.post(
        "/api/v1/bookings",
        json={"tour": 999, "participants": 1, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    assert response.status_code == 404

    tour_id = await make_tour()
    response = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "user": 999, "participants": 1, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_body_is_validated(client, admin_headers, make_tour):
    tour_id = await make_tour()

    response = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "participants": 0, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "participants": 1, "startDate": "soon"},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_requires_staff(client, make_tour):
    tour_id = await make_tour()
    payload = {"tour": tour_id, "participants": 1, "startDate": FUTURE_DAY}

    assert (await client.post("/api/v1/bookings", json=payload)).status_code == 401
    response = await client.post("/api/v1/bookings", json=payload, headers=auth_headers(5, "user"))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_concurrent_requests_for_last_seat(client, admin_headers, make_tour):
    tour_id = await make_tour(max_group_size=1)
    payload = {"tour": tour_id, "participants": 1, "startDate": FUTURE_DAY}

    responses = await asyncio.gather(
        client.post("/api/v1/bookings", json=payload, headers=admin_headers),
        client.post("/api/v1/bookings", json=payload, headers=admin_headers),
    )

    assert sorted(r.status_code for r in responses) == [201, 400]


@pytest.mark.asyncio
async def test_my_bookings_and_cancel(client, admin_headers, make_tour, make_user):
    tour_id = await make_tour(max_group_size=10)
    user_id = await make_user()
    created = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "user": user_id, "participants": 3, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    booking_id = created.json()["id"]
    owner = auth_headers(user_id, "user")

    mine = await client.get("/api/v1/bookings/my-bookings", headers=owner)
    assert [b["id"] for b in mine.json()] == [booking_id]

    response = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=owner)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    availability = await client.get(
        f"/api/v1/tours/{tour_id}/check-availability", params={"date": FUTURE_DAY}
    )
    assert availability.json()["canAccept"] == 10

    again = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=owner)
    assert again.status_code == 422


@pytest.mark.asyncio
async def test_booking_visibility(client, admin_headers, make_tour, make_user):
    tour_id = await make_tour()
    user_id = await make_user()
    created = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "user": user_id, "participants": 1, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    booking_id = created.json()["id"]

    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(user_id))).status_code == 200
    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers(user_id + 1))).status_code == 403
    assert (await client.get("/api/v1/bookings/424242", headers=admin_headers)).status_code == 404

    listing = await client.get("/api/v1/bookings", headers=admin_headers)
    assert [b["id"] for b in listing.json()] == [booking_id]
    assert (await client.get("/api/v1/bookings", headers=auth_headers(user_id))).status_code == 403


@pytest.mark.asyncio
async def test_admin_update_and_delete(client, admin_headers, make_tour):
    tour_id = await make_tour(max_group_size=4)
    created = await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "participants": 2, "startDate": FUTURE_DAY},
        headers=admin_headers,
    )
    booking_id = created.json()["id"]

    grown = await client.patch(f"/api/v1/bookings/{booking_id}", json={"participants": 4}, headers=admin_headers)
    assert grown.status_code == 200
    assert grown.json()["participants"] == 4

    too_big = await client.patch(f"/api/v1/bookings/{booking_id}", json={"participants": 5}, headers=admin_headers)
    assert too_big.status_code == 400

    deleted = await client.delete(f"/api/v1/bookings/{booking_id}", headers=admin_headers)
    assert deleted.status_code == 204
    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=admin_headers)).status_code == 404
    assert (await client.delete(f"/api/v1/bookings/{booking_id}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_booking_stats(client, admin_headers, make_tour):
    tour_id = await make_tour()
    await client.post(
        "/api/v1/bookings",
        json={"tour": tour_id, "participants": 2, "startDate": FUTURE_DAY, "price": 10, "status": "paid"},
        headers=admin_headers,
    )

    response = await client.get("/api/v1/bookings/booking-stats", headers=admin_headers)

    assert response.status_code == 200
    stats = response.json()["stats"]
    assert len(stats) == 1
    assert stats[0]["numBookings"] == 1
    assert stats[0]["totalRevenue"] == 20.0
