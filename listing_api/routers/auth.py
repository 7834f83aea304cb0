"""
Authentication API endpoints: sign-in and password reset completion.
"""

from fastapi import APIRouter, Depends, status
from listing_api.gateway import ListingGateway
from listing_api.schemas.auth import LoginRequest, LoginResponse, PasswordResetRequest, MessageResponse
from listing_api.schemas.user import UserResponse
from listing_api.services.error_handler import ERROR_RESPONSES
from listing_api.services.favorites import get_or_create_user
from listing_api.services.identity import IdentityProvider
from listing_api.utils.dependencies import get_gateway, get_identity_provider
from listing_api.utils.exceptions import DisabledAccountError
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email and password; the user record is created on first sign-in",
    responses={401: ERROR_RESPONSES[401], 403: ERROR_RESPONSES[403]}
)
async def login(
    login_data: LoginRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    gateway: ListingGateway = Depends(get_gateway)
) -> LoginResponse:
    """
    Authenticate and return an access token with the caller's user record.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        DisabledAccountError: If the account or user record is disabled
    """
    identity = await identity_provider.authenticate(login_data.email, login_data.password)
    user = await get_or_create_user(gateway, identity)
    if user.disabled:
        raise DisabledAccountError()

    access_token, expires_in = identity_provider.issue_token(identity)
    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=UserResponse.model_validate(user.model_dump()),
    )


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    summary="Complete password reset",
    description="Set a new password using a reset token issued through the admin back office",
    responses={401: ERROR_RESPONSES[401]}
)
async def complete_password_reset(
    reset_data: PasswordResetRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider)
) -> MessageResponse:
    await identity_provider.reset_password(reset_data.token, reset_data.new_password)
    return MessageResponse(message="Password updated successfully")
