"""Unit tests for accounts and sessions."""

from uuid import UUID, uuid4

import pytest

from travel_booking.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from travel_booking.core.security import ADMIN, ANONYMOUS, decode_token, verify_password
from travel_booking.models import User
from travel_booking.schemas.user import LoginRequest, RegisterRequest, UpdateProfileRequest, UserIdRequest
from travel_booking.schemas.wishlist import ListWishlistRequest, WishlistRequest
from travel_booking.services.user_service import UserService
from travel_booking.services.wishlist_service import WishlistService


@pytest.fixture
def user_service(test_session):
    return UserService(test_session, password_rounds=4)


@pytest.mark.asyncio
async def test_register_issues_token(user_service, test_session, sample_register_data):
    user = await user_service.register(RegisterRequest(**sample_register_data))

    assert user.username == "aurora"
    assert user.token
    assert decode_token(user.token)["sub"] == user.id

    stored = await test_session.get(User, UUID(user.id))
    assert stored.password_hash != "northern-lights"
    assert verify_password("northern-lights", stored.password_hash)
    assert stored.is_logged_in is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"username": "  "}, "username"),
        ({"email": ""}, "email"),
        ({"email": "not-an-email"}, "email"),
        ({"password": "", "confirm_password": ""}, "password"),
        ({"confirm_password": "something-else"}, "confirm_password"),
    ],
)
async def test_register_validation(user_service, sample_register_data, overrides, field):
    data = {**sample_register_data, **overrides}

    with pytest.raises(ValidationError) as exc_info:
        await user_service.register(RegisterRequest(**data))

    assert field in exc_info.value.problem_details["errors"]


@pytest.mark.asyncio
@pytest.mark.parametrize("taken", ["username", "email"])
async def test_register_taken_username_or_email(user_service, make_user, sample_register_data, taken):
    existing = await make_user()
    data = dict(sample_register_data)
    data[taken] = getattr(existing, taken)

    with pytest.raises(ConflictError):
        await user_service.register(RegisterRequest(**data))


@pytest.mark.asyncio
async def test_login(user_service, make_user):
    existing = await make_user()

    user = await user_service.login(LoginRequest(username=existing.username, password="s3cret-pass"))

    assert user.id == str(existing.id)
    assert user.last_login is not None
    assert decode_token(user.token)["username"] == existing.username


@pytest.mark.asyncio
async def test_login_wrong_password(user_service, make_user):
    existing = await make_user()

    with pytest.raises(ValidationError) as exc_info:
        await user_service.login(LoginRequest(username=existing.username, password="wrong"))

    assert exc_info.value.problem_details["errors"] == {"general": "Wrong credentials"}


@pytest.mark.asyncio
async def test_login_unknown_user(user_service):
    with pytest.raises(NotFoundError):
        await user_service.login(LoginRequest(username="nobody", password="whatever"))


@pytest.mark.asyncio
async def test_logout_and_profile(user_service, make_user):
    existing = await make_user()

    response = await user_service.logout(UserIdRequest(user_id=str(existing.id)))
    profile = await user_service.get_profile(UserIdRequest(user_id=str(existing.id)))

    assert response.success is True
    assert profile.username == existing.username
    assert "password_hash" not in profile.model_dump()


@pytest.mark.asyncio
async def test_update_profile_without_identity_change_keeps_token_empty(user_service, make_user):
    existing = await make_user()

    updated = await user_service.update_profile(
        UpdateProfileRequest(user_id=str(existing.id), first_name="Ada", phone_number="555-0100")
    )

    assert updated.first_name == "Ada"
    assert updated.phone_number == "555-0100"
    assert updated.username == existing.username
    assert updated.token is None


@pytest.mark.asyncio
async def test_update_profile_username_reissues_token(user_service, make_user):
    existing = await make_user()

    updated = await user_service.update_profile(
        UpdateProfileRequest(user_id=str(existing.id), username="renamed")
    )

    assert updated.username == "renamed"
    assert decode_token(updated.token)["username"] == "renamed"


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_username(user_service, make_user):
    first = await make_user()
    second = await make_user()

    with pytest.raises(ConflictError):
        await user_service.update_profile(
            UpdateProfileRequest(user_id=str(second.id), username=first.username)
        )


@pytest.mark.asyncio
async def test_update_profile_lost_uniqueness_race_is_conflict(user_service, make_user, monkeypatch):
    first = await make_user()
    second = await make_user()

    async def nothing_taken(username, email, exclude=None):
        return None

    # Another request takes the username after the pre-check
    monkeypatch.setattr(user_service, "_find_taken", nothing_taken)

    with pytest.raises(ConflictError):
        await user_service.update_profile(
            UpdateProfileRequest(user_id=str(second.id), username=first.username)
        )

    profile = await user_service.get_profile(UserIdRequest(user_id=str(second.id)))
    assert profile.username == second.username


@pytest.mark.asyncio
async def test_update_profile_password_mismatch(user_service, make_user):
    existing = await make_user()

    with pytest.raises(ValidationError):
        await user_service.update_profile(
            UpdateProfileRequest(user_id=str(existing.id), password="new-pass", confirm_password="other")
        )


@pytest.mark.asyncio
async def test_list_users_requires_admin(user_service, make_user):
    await make_user()
    await make_user()

    with pytest.raises(AuthorizationError):
        await user_service.list_users(ANONYMOUS)

    users = await user_service.list_users(ADMIN)
    assert len(users) == 2


@pytest.mark.asyncio
async def test_remove_user_clears_wishlist(user_service, test_session, make_user, make_package):
    existing = await make_user()
    package = await make_package()
    wishlist = WishlistService(test_session)
    await wishlist.add(WishlistRequest(user_id=str(existing.id), package_id=str(package.id)))

    await user_service.remove_user(ADMIN, UserIdRequest(user_id=str(existing.id)))

    assert await user_service.get_user_by_id(existing.id) is None
    assert await wishlist.list(ListWishlistRequest(user_id=str(existing.id))) == []


@pytest.mark.asyncio
async def test_remove_user_checks_admin_before_lookup(user_service):
    with pytest.raises(AuthorizationError):
        await user_service.remove_user(ANONYMOUS, UserIdRequest(user_id=str(uuid4())))

    with pytest.raises(NotFoundError):
        await user_service.remove_user(ADMIN, UserIdRequest(user_id=str(uuid4())))
