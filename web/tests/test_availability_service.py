"""
Availability checks across both stored booking shapes.
"""

from unittest.mock import AsyncMock

import pytest

from tourbook.core import NotFoundError
from tourbook.infrastructure.repositories import BookingRepository
from tourbook.services import AvailabilityService, BookingService, CapacityAggregator
from tourbook.records import Provenance

from conftest import FUTURE_DAY, legacy_start


@pytest.mark.asyncio
async def test_empty_day_is_fully_available(session, make_tour):
    tour_id = await make_tour(max_group_size=10)

    verdict = await AvailabilityService(session).check(tour_id, FUTURE_DAY, 3)

    assert verdict.available is True
    assert verdict.capacity == 10
    assert verdict.already_booked == 0
    assert verdict.can_accept == 10


@pytest.mark.asyncio
async def test_unknown_tour_is_not_found(session):
    with pytest.raises(NotFoundError) as exc:
        await AvailabilityService(session).check(999, FUTURE_DAY, 1)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_aggregator_returns_zero_for_unknown_tour(session):
    aggregator = CapacityAggregator(BookingRepository(session))
    assert await aggregator.used_capacity(999, FUTURE_DAY) == 0


@pytest.mark.asyncio
async def test_both_shapes_count_once_each(session, make_tour, add_booking):
    tour_id = await make_tour(max_group_size=10)
    # legacy: timestamp inside the day, participants
    await add_booking(tour_id=tour_id, start_date=legacy_start(FUTURE_DAY, 23), participants=2, status="paid")
    # checkout: item id + day string, quantity
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=3, status="paid")
    # row carrying both shapes is a checkout row and only its quantity counts
    await add_booking(
        tour_id=tour_id, item_id=str(tour_id), item_date=FUTURE_DAY, quantity=1,
        start_date=legacy_start(FUTURE_DAY), participants=1, status="pending",
    )

    aggregator = CapacityAggregator(BookingRepository(session))
    assert await aggregator.used_capacity(tour_id, FUTURE_DAY) == 6


@pytest.mark.asyncio
async def test_other_days_and_tours_are_ignored(session, make_tour, add_booking):
    tour_id = await make_tour(max_group_size=10)
    other_tour = await make_tour(max_group_size=10, name="Harbour cruise")
    await add_booking(tour_id=tour_id, start_date=legacy_start("2099-06-02", 0), participants=4)
    await add_booking(tour_id=tour_id, start_date=legacy_start("2099-05-31", 23), participants=4)
    await add_booking(item_id=str(tour_id), item_date="2099-06-02", quantity=4)
    await add_booking(item_id=str(other_tour), item_date=FUTURE_DAY, quantity=4)

    verdict = await AvailabilityService(session).check(tour_id, FUTURE_DAY, 1)
    assert verdict.already_booked == 0


@pytest.mark.asyncio
async def test_cancelled_bookings_do_not_hold_capacity(session, make_tour, add_booking):
    tour_id = await make_tour(max_group_size=10)
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=2, status="paid")
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=3, status="cancelled")
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=3, status="canceled")
    await add_booking(tour_id=tour_id, start_date=legacy_start(FUTURE_DAY), participants=3, status="refunded")

    verdict = await AvailabilityService(session).check(tour_id, FUTURE_DAY, 1)
    assert verdict.already_booked == 2
    assert verdict.can_accept == 8


@pytest.mark.asyncio
async def test_released_status_matching_ignores_case_and_padding(session, make_tour, add_booking):
    tour_id = await make_tour(max_group_size=10)
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=2, status="Cancelled")
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=1, status=" EXPIRED ")
    await add_booking(tour_id=tour_id, start_date=legacy_start(FUTURE_DAY), participants=4, status="Refunded")

    verdict = await AvailabilityService(session).check(tour_id, FUTURE_DAY, 1)
    assert verdict.already_booked == 0
    assert verdict.can_accept == 10


@pytest.mark.asyncio
async def test_oversized_party_skips_booking_lookup(session, make_tour):
    tour_id = await make_tour(max_group_size=4)
    booking_repo = AsyncMock(spec=BookingRepository)

    verdict = await AvailabilityService(session, booking_repo=booking_repo).check(tour_id, FUTURE_DAY, 5)

    assert verdict.available is False
    assert verdict.capacity == 4
    assert verdict.already_booked is None
    assert verdict.can_accept is None
    assert verdict.reason == "exceeds capacity"
    booking_repo.legacy_usage.assert_not_called()
    booking_repo.modern_usage.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_check_is_stable(session, make_tour, add_booking):
    tour_id = await make_tour(max_group_size=10)
    await add_booking(item_id=str(tour_id), item_date=FUTURE_DAY, quantity=7, status="paid")
    service = AvailabilityService(session)

    first = await service.check(tour_id, FUTURE_DAY, 2)
    second = await service.check(tour_id, FUTURE_DAY, 2)

    assert first == second


@pytest.mark.asyncio
async def test_six_then_four_fills_tour(session_factory, make_tour):
    """10 seats: 6 fit, 5 more do not, 4 more do, then nothing is left."""
    tour_id = await make_tour(max_group_size=10)

    async with session_factory() as s:
        verdict = await AvailabilityService(s).check(tour_id, FUTURE_DAY, 6)
        assert verdict.available is True
        assert verdict.can_accept == 10
        await BookingService(s).admit(
            tour_id=tour_id, date_key=FUTURE_DAY, party_size=6, provenance=Provenance.admin
        )

    async with session_factory() as s:
        verdict = await AvailabilityService(s).check(tour_id, FUTURE_DAY, 5)
        assert (verdict.available, verdict.already_booked, verdict.can_accept) == (False, 6, 4)
        await BookingService(s).admit(
            tour_id=tour_id, date_key=FUTURE_DAY, party_size=4, provenance=Provenance.admin
        )

    async with session_factory() as s:
        verdict = await AvailabilityService(s).check(tour_id, FUTURE_DAY, 1)
        assert (verdict.available, verdict.already_booked, verdict.can_accept) == (False, 10, 0)
