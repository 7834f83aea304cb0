"""
Admin back-office endpoints: the action dispatcher, user list and audit log.
All routes require role admin or super.
"""

from fastapi import APIRouter, Body, Depends
from typing import List

from listing_api.gateway import ListingGateway
from listing_api.schemas.admin import AdminActionRequest, AdminActionResponse
from listing_api.schemas.property import PropertyResponse
from listing_api.schemas.records import UserRecord
from listing_api.schemas.user import LogEntryResponse, UserResponse
from listing_api.services.admin import AdminDispatcher
from listing_api.services.error_handler import ERROR_RESPONSES
from listing_api.utils.dependencies import get_admin_dispatcher, get_gateway, require_back_office

router = APIRouter(prefix="/admin", tags=["Admin"])

ADMIN_ERRORS = {code: ERROR_RESPONSES[code] for code in (401, 403)}


@router.post(
    "/actions",
    response_model=AdminActionResponse,
    response_model_exclude_none=True,
    summary="Dispatch admin action",
    description=(
        "Run one of createUser, deleteUser, resetPassword, toggleUserStatus or "
        "changeUserRole. Each success appends one log entry. Not idempotent."
    ),
    responses={404: ERROR_RESPONSES[404], 409: ERROR_RESPONSES[409], 422: ERROR_RESPONSES[422], **ADMIN_ERRORS}
)
async def dispatch_admin_action(
    action: AdminActionRequest = Body(...),
    current_user: UserRecord = Depends(require_back_office),
    dispatcher: AdminDispatcher = Depends(get_admin_dispatcher)
) -> AdminActionResponse:
    return await dispatcher.dispatch(action, current_user)


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List users",
    responses=ADMIN_ERRORS
)
async def list_users(
    current_user: UserRecord = Depends(require_back_office),
    gateway: ListingGateway = Depends(get_gateway)
) -> List[UserResponse]:
    users = await gateway.list_users()
    return [UserResponse.model_validate(user.model_dump()) for user in users]


@router.get(
    "/logs",
    response_model=List[LogEntryResponse],
    summary="Audit log",
    description="Admin action log, newest first",
    responses=ADMIN_ERRORS
)
async def list_logs(
    current_user: UserRecord = Depends(require_back_office),
    gateway: ListingGateway = Depends(get_gateway)
) -> List[LogEntryResponse]:
    entries = await gateway.list_logs()
    return [LogEntryResponse.model_validate(entry.model_dump()) for entry in entries]


@router.get(
    "/properties",
    response_model=List[PropertyResponse],
    summary="All properties",
    description="Every property, most recently created first, for the management table",
    responses=ADMIN_ERRORS
)
async def list_all_properties(
    current_user: UserRecord = Depends(require_back_office),
    gateway: ListingGateway = Depends(get_gateway)
) -> List[PropertyResponse]:
    records = await gateway.list_properties()
    return [PropertyResponse.from_record(record) for record in records]
