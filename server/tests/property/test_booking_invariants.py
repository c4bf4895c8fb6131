"""Property-based tests for availability invariants."""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from travel_booking.models import BookingStatus
from travel_booking.schemas.booking import CancelBookingRequest, ReserveRequest
from travel_booking.services.inventory_service import NO_RESTOCK, InventoryService, RestockPolicy, SoldOutError

# Fixtures are shared across examples, so every example creates its own records
example_settings = settings(
    suppress_health_check=[HealthCheck.function_scoped_fixture],
    deadline=None,
    max_examples=25,
)

operations = st.lists(
    st.one_of(
        st.just(("reserve", 0)),
        st.tuples(st.just("cancel"), st.integers(min_value=0, max_value=20)),
    ),
    min_size=1,
    max_size=15,
)


@pytest.mark.asyncio
@example_settings
@given(availability=st.integers(min_value=4, max_value=50))
async def test_reserve_then_cancel_restores_availability(
    session_factory, event_bus, make_package, make_user, read_availability, availability
):
    """Above the restock threshold a reserve/cancel pair is a no-op on availability."""
    package = await make_package(availability=availability)
    user = await make_user()

    async with session_factory() as session:
        service = InventoryService(session, event_bus, RestockPolicy(enabled=True, threshold=3, amount=3))
        booking = await service.reserve(
            ReserveRequest(package_id=str(package.id), user_id=str(user.id), date="2026-12-01")
        )
        await service.cancel(CancelBookingRequest(booking_id=booking.id, user_id=str(user.id)))

    assert await read_availability(package.id) == availability


@pytest.mark.asyncio
@example_settings
@given(availability=st.integers(min_value=0, max_value=5), ops=operations)
async def test_availability_matches_model(
    session_factory, event_bus, make_package, make_user, read_availability, availability, ops
):
    """Availability never goes negative and always equals initial - confirmed bookings."""
    package = await make_package(availability=availability)
    user = await make_user()

    expected = availability
    bookings: list[tuple[str, str]] = []

    for op, index in ops:
        async with session_factory() as session:
            service = InventoryService(session, event_bus, NO_RESTOCK)

            if op == "reserve":
                try:
                    view = await service.reserve(
                        ReserveRequest(package_id=str(package.id), user_id=str(user.id), date="2026-12-01")
                    )
                except SoldOutError:
                    assert expected == 0
                else:
                    assert expected > 0
                    expected -= 1
                    bookings.append((view.id, BookingStatus.CONFIRMED.value))

            elif bookings:
                position = index % len(bookings)
                booking_id, status = bookings[position]
                view = await service.cancel(CancelBookingRequest(booking_id=booking_id, user_id=str(user.id)))
                assert view.status == BookingStatus.CANCELLED
                if status == BookingStatus.CONFIRMED.value:
                    expected += 1
                    bookings[position] = (booking_id, BookingStatus.CANCELLED.value)

        current = await read_availability(package.id)
        assert current >= 0
        assert current == expected

    confirmed = sum(1 for _, status in bookings if status == BookingStatus.CONFIRMED.value)
    assert expected == availability - confirmed
