"""
Local identity provider.

Owns credentials and the account-level disabled flag in the ``identities``
table, and issues the bearer tokens the API accepts. User records in the data
gateway are keyed by the subject ids handed out here.
"""

from contextlib import asynccontextmanager
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from jose import ExpiredSignatureError, JWTError
from listing_api.config import settings
from listing_api.models.identity import IdentityAccount
from listing_api.schemas.records import Identity
from listing_api.utils.auth import (
    PASSWORD_RESET_TOKEN,
    create_access_token,
    create_password_reset_token,
    verify_token,
)
from listing_api.utils.exceptions import (
    DisabledAccountError,
    DuplicateResourceError,
    InvalidCredentialsError,
    InvalidTokenError,
    ServiceUnavailableError,
    TokenExpiredError,
    UserNotFoundError,
    ValidationError,
)
from typing import Optional, Tuple
from urllib.parse import urlencode
import logging

logger = logging.getLogger(__name__)


def _to_identity(account: IdentityAccount) -> Identity:
    return Identity(
        uid=account.id,
        email=account.email,
        display_name=account.display_name,
        photo_url=account.photo_url,
    )


class PasswordResetNotifier:
    """
    Delivers password reset links to account holders.

    The base class writes the link to the log. A deployment with a mail
    service subclasses it and overrides ``send``.
    """

    def __init__(self, reset_url: Optional[str] = None):
        self.reset_url = reset_url or settings.password_reset_url

    def build_link(self, token: str) -> str:
        return f"{self.reset_url}?{urlencode({'token': token})}"

    async def send(self, identity: Identity, token: str) -> None:
        logger.info(f"Password reset link for {identity.email}: {self.build_link(token)}")


class IdentityProvider:
    """
    Identity provider backed by its own table. Every method opens a short
    session; database failures surface as ServiceUnavailableError.

    Reset tokens are handed to ``notifier`` and never stored.
    """

    def __init__(self, session_factory: async_sessionmaker, notifier: Optional[PasswordResetNotifier] = None):
        self._session_factory = session_factory
        self.notifier = notifier or PasswordResetNotifier()

    @asynccontextmanager
    async def _session(self, operation: str):
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Identity provider failed to {operation}: {e}")
            raise ServiceUnavailableError("Identity provider unavailable") from e

    @staticmethod
    def _normalize_email(email: str) -> str:
        try:
            return IdentityAccount.validate_email_format(email)
        except ValueError as e:
            raise ValidationError(str(e), [{"field": "email", "message": str(e)}])

    async def _get(self, session, uid: str) -> IdentityAccount:
        account = await session.get(IdentityAccount, uid)
        if account is None:
            raise UserNotFoundError(uid)
        return account

    async def _get_by_email(self, session, email: str) -> Optional[IdentityAccount]:
        result = await session.execute(select(IdentityAccount).where(IdentityAccount.email == email))
        return result.scalar_one_or_none()

    async def create_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> Identity:
        """
        Create an account.

        Raises:
            ValidationError: If the email or password is invalid
            DuplicateResourceError: If the email is already registered
        """
        email = self._normalize_email(email)
        try:
            hashed_password = IdentityAccount.hash_password(password)
        except ValueError as e:
            raise ValidationError(str(e), [{"field": "password", "message": str(e)}])

        async with self._session("create account") as session:
            if await self._get_by_email(session, email) is not None:
                raise DuplicateResourceError("Account", email)
            account = IdentityAccount(
                email=email,
                hashed_password=hashed_password,
                display_name=display_name,
                photo_url=photo_url,
            )
            session.add(account)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateResourceError("Account", email)
            await session.refresh(account)
            logger.info(f"Identity account created: {email} ({account.id})")
            return _to_identity(account)

    async def authenticate(self, email: str, password: str) -> Identity:
        """
        Check credentials.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            DisabledAccountError: The account is disabled
        """
        async with self._session("authenticate") as session:
            account = await self._get_by_email(session, email.strip().lower())

        if account is None or not account.verify_password(password):
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()
        if account.disabled:
            logger.warning(f"Sign-in refused for disabled account: {email}")
            raise DisabledAccountError()

        logger.info(f"Identity authenticated: {account.email}")
        return _to_identity(account)

    def issue_token(self, identity: Identity) -> Tuple[str, int]:
        """Return an access token and its lifetime in seconds."""
        token = create_access_token(identity.uid, identity.email)
        return token, settings.access_token_expire_minutes * 60

    async def verify_access_token(self, token: str) -> Identity:
        """
        Resolve a bearer token to the identity it was issued for.

        Raises:
            TokenExpiredError: The token has expired
            InvalidTokenError: The token is malformed or the account is gone
            DisabledAccountError: The account has been disabled since issue
        """
        try:
            payload = verify_token(token)
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug(f"Rejected access token: {e}")
            raise InvalidTokenError()

        async with self._session("verify token") as session:
            account = await session.get(IdentityAccount, payload.uid)

        if account is None:
            raise InvalidTokenError("Account no longer exists")
        if account.disabled:
            raise DisabledAccountError()
        return _to_identity(account)

    async def get_account(self, uid: str) -> Optional[Identity]:
        async with self._session("get account") as session:
            account = await session.get(IdentityAccount, uid)
            return _to_identity(account) if account else None

    async def delete_account(self, uid: str) -> Identity:
        """
        Delete an account and return what it was.

        Raises:
            UserNotFoundError: If no account has this id
        """
        async with self._session("delete account") as session:
            account = await self._get(session, uid)
            identity = _to_identity(account)
            await session.delete(account)
            await session.commit()
        logger.info(f"Identity account deleted: {identity.email} ({uid})")
        return identity

    async def set_disabled(self, uid: str, disabled: bool) -> Identity:
        """
        Enable or disable sign-in for an account.

        Raises:
            UserNotFoundError: If no account has this id
        """
        async with self._session("update account") as session:
            account = await self._get(session, uid)
            account.disabled = disabled
            await session.commit()
            identity = _to_identity(account)
        logger.info(f"Identity account {'disabled' if disabled else 'enabled'}: {identity.email}")
        return identity

    async def create_password_reset(self, email: str) -> str:
        """
        Issue a password reset token for ``email`` and send it through the
        notifier. The token is returned for callers that deliver it themselves.

        Raises:
            UserNotFoundError: If no account uses this email
        """
        email = self._normalize_email(email)
        async with self._session("create password reset") as session:
            account = await self._get_by_email(session, email)
        if account is None:
            raise UserNotFoundError(email)
        token = create_password_reset_token(account.id, account.email)
        await self.notifier.send(_to_identity(account), token)
        logger.info(f"Password reset issued for {email}")
        return token

    async def reset_password(self, token: str, new_password: str) -> Identity:
        """
        Set a new password using a reset token.

        Raises:
            TokenExpiredError / InvalidTokenError: If the token is not usable
            ValidationError: If the new password is too short
        """
        try:
            payload = verify_token(token, token_type=PASSWORD_RESET_TOKEN)
        except ExpiredSignatureError:
            raise TokenExpiredError("Password reset token has expired")
        except JWTError:
            raise InvalidTokenError("Invalid password reset token")

        try:
            hashed_password = IdentityAccount.hash_password(new_password)
        except ValueError as e:
            raise ValidationError(str(e), [{"field": "new_password", "message": str(e)}])

        async with self._session("reset password") as session:
            account = await session.get(IdentityAccount, payload.uid)
            if account is None:
                raise InvalidTokenError("Invalid password reset token")
            account.hashed_password = hashed_password
            await session.commit()
            identity = _to_identity(account)
        logger.info(f"Password reset completed for {identity.email}")
        return identity
