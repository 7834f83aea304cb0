"""
Admin action dispatcher.

One entry point switched on the action tag. Each action performs its identity
provider mutation and, where applicable, its store mutation, then appends
exactly one log entry. A failed action appends nothing. Actions are not
idempotent: replaying deleteUser fails with 404 once the account is gone.
"""

from listing_api.gateway.base import ListingGateway
from listing_api.schemas.admin import (
    AdminActionResponse,
    ChangeUserRoleAction,
    CreateUserAction,
    DeleteUserAction,
    ResetPasswordAction,
    ToggleUserStatusAction,
)
from listing_api.schemas.records import Identity, UserRecord
from listing_api.services.favorites import new_user_record
from listing_api.services.identity import IdentityProvider
from listing_api.utils.exceptions import BadRequestError, UserNotFoundError
import logging

logger = logging.getLogger(__name__)


class AdminDispatcher:
    """Executes admin actions against the identity provider and the data gateway."""

    def __init__(self, gateway: ListingGateway, identity_provider: IdentityProvider):
        self.gateway = gateway
        self.identity_provider = identity_provider
        self._handlers = {
            "createUser": self._create_user,
            "deleteUser": self._delete_user,
            "resetPassword": self._reset_password,
            "toggleUserStatus": self._toggle_user_status,
            "changeUserRole": self._change_user_role,
        }

    async def dispatch(self, action, admin: UserRecord) -> AdminActionResponse:
        """
        Run one admin action on behalf of ``admin``.

        Args:
            action: A validated action model (the ``AdminActionRequest`` union)
            admin: The authenticated back-office user

        Returns:
            Action-specific response (``uid`` for createUser, ``message`` otherwise)

        Raises:
            BadRequestError: If the action tag is not recognized
            UserNotFoundError: If the target user does not exist
            DuplicateResourceError: If createUser names a registered email
        """
        handler = self._handlers.get(action.action)
        if handler is None:
            raise BadRequestError(f"Unknown admin action: {action.action}")

        if action.performed_by.lower() != admin.email.lower():
            logger.warning(
                f"performedBy '{action.performed_by}' does not match caller {admin.email}; "
                f"logging the caller"
            )

        response, target = await handler(action)
        await self.gateway.append_log(action.action, admin.email, target)
        logger.info(f"Admin action {action.action} by {admin.email} on {target}")
        return response

    async def _create_user(self, action: CreateUserAction):
        identity = await self.identity_provider.create_account(action.email, action.password)
        record = new_user_record(identity, role=action.role)
        await self.gateway.create_user(record)
        return AdminActionResponse(uid=identity.uid), identity.email

    async def _delete_user(self, action: DeleteUserAction):
        # Identity first: a missing account stops here with 404 and nothing is logged
        identity = await self.identity_provider.delete_account(action.user_id)
        if not await self.gateway.delete_user(action.user_id):
            logger.warning(f"Deleted identity {action.user_id} had no user record")
        return AdminActionResponse(message="User deleted successfully"), _target(identity)

    async def _reset_password(self, action: ResetPasswordAction):
        await self.identity_provider.create_password_reset(action.email)
        return AdminActionResponse(message=f"Password reset issued for {action.email}"), action.email

    async def _toggle_user_status(self, action: ToggleUserStatusAction):
        record = await self.gateway.get_user(action.user_id)
        if record is None:
            raise UserNotFoundError(action.user_id)
        await self.identity_provider.set_disabled(action.user_id, action.disabled)
        await self.gateway.update_user(action.user_id, {"disabled": action.disabled})
        state = "disabled" if action.disabled else "enabled"
        return AdminActionResponse(message=f"User {state} successfully"), record.email or record.id

    async def _change_user_role(self, action: ChangeUserRoleAction):
        record = await self.gateway.update_user(action.user_id, {"role": action.new_role})
        if record is None:
            raise UserNotFoundError(action.user_id)
        message = f"User role changed to {action.new_role.value}"
        return AdminActionResponse(message=message), record.email or record.id


def _target(identity: Identity) -> str:
    return identity.email or identity.uid
