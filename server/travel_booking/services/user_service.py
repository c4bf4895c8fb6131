"""User service: registration, sessions and profile management."""

import logging
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from anyio import to_thread
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import storage_transaction
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identifiers import parse_id
from ..core.security import CallerIdentity, ensure_admin, hash_password, issue_token, verify_password
from ..models.user import User
from ..models.wishlist import WishlistItem
from ..schemas.user import (
    AuthenticatedUser,
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    RemoveUserResponse,
    UpdateProfileRequest,
    User as UserSchema,
    UserIdRequest,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_register_input(request: RegisterRequest) -> dict[str, str]:
    """Return per-field errors for a registration request; empty when valid."""
    errors = {}

    if not request.username.strip():
        errors["username"] = "Username must not be empty"

    if not request.email.strip():
        errors["email"] = "Email must not be empty"
    elif not EMAIL_PATTERN.match(request.email):
        errors["email"] = "Email must be a valid email address"

    if request.password == "":
        errors["password"] = "Password must not be empty"
    elif request.password != request.confirm_password:
        errors["confirm_password"] = "Passwords must match"

    return errors


def validate_login_input(request: LoginRequest) -> dict[str, str]:
    """Return per-field errors for a login request; empty when valid."""
    errors = {}
    if not request.username.strip():
        errors["username"] = "Username must not be empty"
    if not request.password.strip():
        errors["password"] = "Password must not be empty"
    return errors


def to_user_schema(user: User) -> UserSchema:
    """Convert a user entity to its public response schema."""
    return UserSchema(
        id=str(user.id),
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone_number=user.phone_number,
        is_admin=user.is_admin,
        created_at=user.created_at,
        last_login=user.last_login,
    )


def to_authenticated_user(user: User, token: Optional[str]) -> AuthenticatedUser:
    """Convert a user entity to a response carrying a session token."""
    return AuthenticatedUser(**to_user_schema(user).model_dump(), token=token)


class UserService:
    """Service for user-related operations."""

    def __init__(self, db: AsyncSession, password_rounds: Optional[int] = None):
        self.db = db
        self.password_rounds = password_rounds

    async def _hash(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await to_thread.run_sync(hash_password, password, self.password_rounds)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get user by ID.

        Returns:
            User if found, None otherwise
        """
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id_or_raise(self, user_id: str) -> User:
        """
        Get user by its opaque ID or raise NotFoundError.

        Raises:
            NotFoundError: If the ID is malformed or no user has it
        """
        user = await self.get_user_by_id(parse_id(user_id, "user"))
        if not user:
            logger.warning(
                "User not found",
                extra={"user_id": user_id}
            )
            raise NotFoundError(resource_type="user", resource_id=user_id)
        return user

    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        stmt = select(User).where(User.username == username)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _find_taken(self, username: Optional[str], email: Optional[str], exclude: Optional[UUID] = None) -> Optional[User]:
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        if not conditions:
            return None

        stmt = select(User).where(or_(*conditions))
        if exclude is not None:
            stmt = stmt.where(User.id != exclude)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def register(self, request: RegisterRequest) -> AuthenticatedUser:
        """
        Register a new user and issue a session token.

        Raises:
            ValidationError: If any field is invalid
            ConflictError: If the username or email is already taken
        """
        errors = validate_register_input(request)
        if errors:
            raise ValidationError(detail="Registration input is invalid", errors=errors)

        if await self._find_taken(request.username, request.email):
            logger.warning(
                "Registration failed - username or email taken",
                extra={"username": request.username}
            )
            raise ConflictError(detail="Username or email is taken")

        user = User(
            username=request.username,
            email=request.email,
            password_hash=await self._hash(request.password),
            is_logged_in=True,
            last_login=datetime.now(timezone.utc),
        )

        async with storage_transaction(self.db, "register"):
            self.db.add(user)
            try:
                await self.db.commit()
            except IntegrityError as e:
                # A concurrent registration won the unique constraint race
                raise ConflictError(detail="Username or email is taken") from e
        await self.db.refresh(user)

        logger.info(
            "User registered",
            extra={"user_id": str(user.id), "username": user.username}
        )
        token = issue_token(str(user.id), user.username, user.email)
        return to_authenticated_user(user, token)

    async def login(self, request: LoginRequest) -> AuthenticatedUser:
        """
        Check credentials, mark the user logged in and issue a session token.

        Raises:
            ValidationError: If a field is empty or the password is wrong
            NotFoundError: If no user has the username
        """
        errors = validate_login_input(request)
        if errors:
            raise ValidationError(detail="Login input is invalid", errors=errors)

        user = await self.get_user_by_username(request.username)
        if not user:
            raise NotFoundError(resource_type="user", detail="User not found")

        matches = await to_thread.run_sync(verify_password, request.password, user.password_hash)
        if not matches:
            logger.warning("Login failed - wrong credentials", extra={"username": request.username})
            raise ValidationError(detail="Wrong credentials", errors={"general": "Wrong credentials"})

        user.is_logged_in = True
        user.last_login = datetime.now(timezone.utc)
        async with storage_transaction(self.db, "login"):
            await self.db.commit()
        await self.db.refresh(user)

        logger.info("User logged in", extra={"user_id": str(user.id)})
        token = issue_token(str(user.id), user.username, user.email)
        return to_authenticated_user(user, token)

    async def logout(self, request: UserIdRequest) -> LogoutResponse:
        """
        Clear the logged-in flag.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_user_by_id_or_raise(request.user_id)
        user.is_logged_in = False
        async with storage_transaction(self.db, "logout"):
            await self.db.commit()

        logger.info("User logged out", extra={"user_id": request.user_id})
        return LogoutResponse(success=True)

    async def get_profile(self, request: UserIdRequest) -> UserSchema:
        """Read a user's profile."""
        user = await self.get_user_by_id_or_raise(request.user_id)
        return to_user_schema(user)

    async def update_profile(self, request: UpdateProfileRequest) -> AuthenticatedUser:
        """
        Update the supplied profile fields.

        A new token is issued when the username or email changes, since both
        are embedded in the token.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the email is invalid or passwords do not match
            ConflictError: If the new username or email belongs to another user
        """
        user = await self.get_user_by_id_or_raise(request.user_id)

        errors = {}
        if request.email is not None and not EMAIL_PATTERN.match(request.email):
            errors["email"] = "Email must be a valid email address"
        if request.password and request.password != request.confirm_password:
            errors["confirm_password"] = "Passwords must match"
        if errors:
            raise ValidationError(detail="Profile input is invalid", errors=errors)

        if await self._find_taken(request.username, request.email, exclude=user.id):
            raise ConflictError(detail="Username or email is taken")

        for field in ("username", "email", "first_name", "last_name", "phone_number"):
            value = getattr(request, field)
            if value is not None:
                setattr(user, field, value)
        if request.password:
            user.password_hash = await self._hash(request.password)

        async with storage_transaction(self.db, "update_profile"):
            try:
                await self.db.commit()
            except IntegrityError as e:
                raise ConflictError(detail="Username or email is taken") from e
        await self.db.refresh(user)

        token = None
        if request.username is not None or request.email is not None:
            token = issue_token(str(user.id), user.username, user.email)

        logger.info("User profile updated", extra={"user_id": request.user_id})
        return to_authenticated_user(user, token)

    async def list_users(self, caller: CallerIdentity) -> list[UserSchema]:
        """
        List all users.

        Raises:
            AuthorizationError: If the caller is not an admin
        """
        ensure_admin(caller, "list users")

        stmt = select(User).order_by(User.created_at, User.id)
        result = await self.db.execute(stmt)
        return [to_user_schema(user) for user in result.scalars().all()]

    async def remove_user(self, caller: CallerIdentity, request: UserIdRequest) -> RemoveUserResponse:
        """
        Remove a user and their wishlist. Their bookings stay and render as owned by an unknown user.

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the user does not exist
        """
        ensure_admin(caller, "remove users")
        user = await self.get_user_by_id_or_raise(request.user_id)

        async with storage_transaction(self.db, "remove_user"):
            await self.db.execute(delete(WishlistItem).where(WishlistItem.user_id == user.id))
            await self.db.delete(user)
            await self.db.commit()

        logger.info("User removed", extra={"user_id": request.user_id})
        return RemoveUserResponse(id=request.user_id, message="User removed successfully")
