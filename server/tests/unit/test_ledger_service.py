"""Unit tests for the booking ledger read side."""

from uuid import uuid4

import pytest

from travel_booking.core.exceptions import AuthorizationError, NotFoundError
from travel_booking.core.security import ADMIN, ANONYMOUS, CallerIdentity
from travel_booking.models import BookingStatus
from travel_booking.schemas.booking import ListBookingsRequest, ReserveRequest
from travel_booking.schemas.package import PackageIdRequest
from travel_booking.schemas.user import UserIdRequest
from travel_booking.services.catalog_service import CatalogService
from travel_booking.services.inventory_service import NO_RESTOCK, InventoryService
from travel_booking.services.ledger_service import (
    DELETED_PACKAGE_ID,
    UNKNOWN_USER_ID,
    UNKNOWN_USERNAME,
    LedgerService,
)
from travel_booking.services.user_service import UserService


@pytest.fixture
def reserve(test_session, event_bus):
    service = InventoryService(test_session, event_bus, NO_RESTOCK)

    async def _reserve(package, user, date="2026-12-01"):
        return await service.reserve(
            ReserveRequest(package_id=str(package.id), user_id=str(user.id), date=date)
        )

    return _reserve


@pytest.mark.asyncio
async def test_list_for_user_returns_own_bookings_oldest_first(test_session, make_package, make_user, reserve):
    first_package = await make_package(title="Fjords")
    second_package = await make_package(title="Glaciers")
    user = await make_user()
    other = await make_user()
    first = await reserve(first_package, user)
    await reserve(first_package, other)
    second = await reserve(second_package, user)

    views = await LedgerService(test_session).list_for_user(ListBookingsRequest(user_id=str(user.id)))

    assert [view.id for view in views] == [first.id, second.id]
    assert {view.username for view in views} == {user.username}
    assert views[1].package.title == "Glaciers"


@pytest.mark.asyncio
async def test_list_for_user_without_bookings_is_empty(test_session):
    views = await LedgerService(test_session).list_for_user(ListBookingsRequest(user_id=str(uuid4())))

    assert views == []


@pytest.mark.asyncio
async def test_list_for_user_rejects_malformed_id(test_session):
    with pytest.raises(NotFoundError):
        await LedgerService(test_session).list_for_user(ListBookingsRequest(user_id="user-42"))


@pytest.mark.asyncio
async def test_deleted_package_renders_placeholder(test_session, make_package, make_user, reserve):
    package = await make_package()
    user = await make_user()
    booking = await reserve(package, user)
    await CatalogService(test_session).delete_package(ADMIN, PackageIdRequest(package_id=str(package.id)))

    views = await LedgerService(test_session).list_for_user(ListBookingsRequest(user_id=str(user.id)))

    assert len(views) == 1
    view = views[0]
    assert view.id == booking.id
    assert view.status == BookingStatus.CANCELLED
    assert view.package.id == DELETED_PACKAGE_ID
    assert view.package.title == "Package Deleted"
    assert view.package.price == 0
    assert view.package.availability == 0


@pytest.mark.asyncio
async def test_removed_user_renders_unknown_owner(test_session, make_package, make_user, reserve):
    package = await make_package()
    user = await make_user()
    booking = await reserve(package, user)
    await UserService(test_session).remove_user(ADMIN, UserIdRequest(user_id=str(user.id)))

    views = await LedgerService(test_session).list_all(ADMIN)

    assert [view.id for view in views] == [booking.id]
    assert views[0].user_id == UNKNOWN_USER_ID
    assert views[0].username == UNKNOWN_USERNAME
    assert views[0].status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_list_all_covers_every_user(test_session, make_package, make_user, reserve):
    package = await make_package()
    first = await reserve(package, await make_user())
    second = await reserve(package, await make_user())

    views = await LedgerService(test_session).list_all(CallerIdentity(user_id="admin-1", is_admin=True))

    assert [view.id for view in views] == [first.id, second.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("caller", [ANONYMOUS, CallerIdentity(user_id="u-1", is_admin=False)])
async def test_list_all_requires_admin(test_session, caller):
    with pytest.raises(AuthorizationError) as exc_info:
        await LedgerService(test_session).list_all(caller)

    assert exc_info.value.problem_details["code"] == "UNAUTHORIZED"
