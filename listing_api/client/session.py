"""
Signed-in session and the current user's record.

``AuthSession`` tracks who is signed in and publishes every change.
``SessionStore`` listens to exactly one ``AuthSession``: on sign-in it loads
the user record (creating it the first time), on sign-out it clears it, and it
performs favorites toggles as conditional writes against the record version it
last saw.
"""

from typing import Awaitable, Callable, List, Optional, Set
from listing_api.gateway.base import ListingGateway
from listing_api.schemas.records import Identity, UserRecord
from listing_api.services.favorites import get_or_create_user, with_favorite, without_favorite
from listing_api.services.identity import IdentityProvider
from listing_api.utils.exceptions import FavoritesConflictError, GatewayError
import logging

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]
StoreListener = Callable[["SessionStore"], None]


class AuthSession:
    """Current identity, as established by the identity provider."""

    def __init__(self, identity_provider: IdentityProvider):
        self.identity_provider = identity_provider
        self.identity: Optional[Identity] = None
        self.access_token: Optional[str] = None
        self._listeners: List[IdentityListener] = []

    @property
    def is_signed_in(self) -> bool:
        return self.identity is not None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def _publish(self) -> None:
        for listener in list(self._listeners):
            await listener(self.identity)

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Raises:
            InvalidCredentialsError: If the credentials do not match
            DisabledAccountError: If the account is disabled
        """
        identity = await self.identity_provider.authenticate(email, password)
        self.access_token, _ = self.identity_provider.issue_token(identity)
        self.identity = identity
        logger.info(f"Signed in: {identity.email}")
        await self._publish()
        return identity

    async def restore(self, access_token: str) -> Identity:
        """Resume a session from a previously issued token."""
        identity = await self.identity_provider.verify_access_token(access_token)
        self.access_token = access_token
        self.identity = identity
        await self._publish()
        return identity

    async def sign_out(self) -> None:
        if self.identity is not None:
            logger.info(f"Signed out: {self.identity.email}")
        self.identity = None
        self.access_token = None
        await self._publish()


class SessionStore:
    """The signed-in user's record and favorites."""

    def __init__(self, gateway: ListingGateway):
        self.gateway = gateway
        self.identity: Optional[Identity] = None
        self.user: Optional[UserRecord] = None
        self.error: Optional[str] = None
        self._session: Optional[AuthSession] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._in_flight: Set[str] = set()
        self._listeners: List[StoreListener] = []

    @property
    def favorites(self) -> List[str]:
        return list(self.user.favorites) if self.user else []

    @property
    def is_back_office(self) -> bool:
        return self.user is not None and self.user.is_back_office

    def is_favorite(self, property_id: str) -> bool:
        return self.user is not None and property_id in self.user.favorites

    def is_pending(self, property_id: str) -> bool:
        """Whether a toggle for ``property_id`` is still in flight."""
        return property_id in self._in_flight

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def attach(self, session: AuthSession) -> None:
        """
        Start following ``session``. A store follows one session for its
        whole life.

        Raises:
            RuntimeError: If the store is already attached
        """
        if self._session is not None:
            raise RuntimeError("SessionStore is already attached to a session")
        self._session = session
        self._unsubscribe = session.subscribe(self.handle_identity_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._session = None
        self._unsubscribe = None

    async def handle_identity_change(self, identity: Optional[Identity]) -> None:
        self.identity = identity
        self.error = None
        if identity is None:
            self.user = None
            self._notify()
            return
        try:
            user = await get_or_create_user(self.gateway, identity)
        except GatewayError as e:
            if self.identity is not identity:
                return
            logger.error(f"Could not load user record for {identity.email}: {e.detail}")
            self.user = None
            self.error = "Could not load your account. Please try again."
        else:
            # A later sign-out or sign-in superseded this one while it loaded
            if self.identity is not identity:
                logger.debug(f"Dropping stale user record for {identity.email}")
                return
            self.user = user
        self._notify()

    async def add_to_favorites(self, property_id: str) -> bool:
        return await self._write_favorites(property_id, with_favorite)

    async def remove_from_favorites(self, property_id: str) -> bool:
        return await self._write_favorites(property_id, without_favorite)

    async def toggle_favorite(self, property_id: str) -> bool:
        if self.is_favorite(property_id):
            return await self.remove_from_favorites(property_id)
        return await self.add_to_favorites(property_id)

    async def _write_favorites(self, property_id: str, compute) -> bool:
        """
        Conditionally replace the favorites list.

        Returns:
            True when the write landed; False when signed out, when a toggle
            for the same id is already in flight, or on a gateway failure

        Raises:
            FavoritesConflictError: If the record changed elsewhere. The store
                has already adopted the stored record when this propagates.
        """
        if self.identity is None or self.user is None:
            return False
        if property_id in self._in_flight:
            logger.debug(f"Ignoring repeated toggle of {property_id} while in flight")
            return False

        self._in_flight.add(property_id)
        self._notify()
        user = self.user
        try:
            updated = await self.gateway.update_favorites(
                user.id, compute(user.favorites, property_id), user.favorites_version
            )
        except FavoritesConflictError as conflict:
            logger.warning(f"Favorites of {user.email} changed elsewhere, reloading")
            if self.user is not None and self.user.id == conflict.current.id:
                self.user = conflict.current
            raise
        except GatewayError as e:
            logger.error(f"Favorites update failed for {user.email}: {e.detail}")
            self.error = "Could not update favorites. Please try again."
            return False
        finally:
            self._in_flight.discard(property_id)
            self._notify()

        # Signed out or switched user while the write was in flight
        if self.identity is None or self.user is None or self.user.id != updated.id:
            return False
        self.user = updated
        self.error = None
        self._notify()
        return True
