"""
Pydantic schemas for authentication requests and responses.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from listing_api.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Schema for user login request."""

    email: EmailStr = Field(..., description="User email address", example="user@example.com")
    password: str = Field(..., min_length=1, description="User password", example="password123")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginResponse(BaseModel):
    """Schema for successful login response."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds", example=3600)
    user: UserResponse = Field(..., description="User record, created on first sign-in")


class PasswordResetRequest(BaseModel):
    """Schema for completing a password reset issued by an admin."""

    token: str = Field(..., min_length=1, description="Password reset token")
    new_password: str = Field(..., min_length=8, description="New password", example="newpassword123")


class MessageResponse(BaseModel):
    message: str
