"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Request schema for registering a user."""

    username: str = Field(..., max_length=150, description="Unique username")
    email: str = Field(..., max_length=255, description="Unique email address")
    password: str = Field(..., description="Plaintext password")
    confirm_password: str = Field(..., description="Password confirmation")


class LoginRequest(BaseModel):
    """Request schema for logging in."""

    username: str = Field(..., description="Username")
    password: str = Field(..., description="Plaintext password")


class UserIdRequest(BaseModel):
    """Request schema addressing a single user."""

    user_id: str = Field(..., description="User ID")


class UpdateProfileRequest(BaseModel):
    """Request schema for updating a user profile. Omitted fields are left unchanged."""

    user_id: str = Field(..., description="User to update")
    username: str | None = Field(None, min_length=1, max_length=150)
    email: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=150)
    last_name: str | None = Field(None, max_length=150)
    phone_number: str | None = Field(None, max_length=50)
    password: str | None = Field(None)
    confirm_password: str | None = Field(None)


class User(BaseModel):
    """User response schema. Never includes the password hash."""

    id: str = Field(..., description="Unique user ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    first_name: str = Field("", description="First name")
    last_name: str = Field("", description="Last name")
    phone_number: str = Field("", description="Phone number")
    is_admin: bool = Field(False, description="Administrator flag")
    created_at: datetime = Field(..., description="Registration time (ISO 8601)")
    last_login: datetime | None = Field(None, description="Last login time (ISO 8601)")

    model_config = ConfigDict(from_attributes=True)


class AuthenticatedUser(User):
    """User response carrying a session token."""

    token: str | None = Field(None, description="Bearer session token")


class LogoutResponse(BaseModel):
    """Response schema for logout."""

    success: bool = Field(..., description="Whether the user was logged out")


class RemoveUserResponse(BaseModel):
    """Response schema for user removal."""

    id: str = Field(..., description="Removed user ID")
    message: str = Field(..., description="Human-readable outcome")
