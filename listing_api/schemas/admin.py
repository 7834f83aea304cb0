"""
Request and response schemas for the admin action dispatcher.

The wire format is a flat JSON object tagged by ``action``; payload fields use
camelCase names (``performedBy``, ``userId``, ``newRole``).
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Annotated, Literal, Optional, Union
from listing_api.models.user import UserRole


class AdminAction(BaseModel):
    """Fields common to every admin action."""

    model_config = ConfigDict(populate_by_name=True)

    performed_by: str = Field(..., alias="performedBy", min_length=1, description="Admin email")


class CreateUserAction(AdminAction):
    action: Literal["createUser"]
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER


class DeleteUserAction(AdminAction):
    action: Literal["deleteUser"]
    user_id: str = Field(..., alias="userId", min_length=1)


class ResetPasswordAction(AdminAction):
    action: Literal["resetPassword"]
    email: EmailStr


class ToggleUserStatusAction(AdminAction):
    action: Literal["toggleUserStatus"]
    user_id: str = Field(..., alias="userId", min_length=1)
    disabled: bool


class ChangeUserRoleAction(AdminAction):
    action: Literal["changeUserRole"]
    user_id: str = Field(..., alias="userId", min_length=1)
    new_role: UserRole = Field(..., alias="newRole")


AdminActionRequest = Annotated[
    Union[
        CreateUserAction,
        DeleteUserAction,
        ResetPasswordAction,
        ToggleUserStatusAction,
        ChangeUserRoleAction,
    ],
    Field(discriminator="action"),
]


class AdminActionResponse(BaseModel):
    """Tag-specific success body: ``uid`` for createUser, ``message`` otherwise."""

    message: Optional[str] = None
    uid: Optional[str] = None
