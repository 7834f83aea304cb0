"""
Favorites service: lazy user-record creation and conditional favorites writes.
"""

from listing_api.gateway.base import ListingGateway
from listing_api.models.user import UserRole
from listing_api.schemas.records import Identity, PropertyRecord, UserRecord
from listing_api.utils.exceptions import DuplicateResourceError, PropertyNotFoundError
from typing import List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)


def with_favorite(favorites: Sequence[str], property_id: str) -> List[str]:
    """Set-union: append ``property_id`` unless already present."""
    result = list(dict.fromkeys(favorites))
    if property_id not in result:
        result.append(property_id)
    return result


def without_favorite(favorites: Sequence[str], property_id: str) -> List[str]:
    """Set-difference: drop every occurrence of ``property_id``."""
    return [pid for pid in dict.fromkeys(favorites) if pid != property_id]


def new_user_record(identity: Identity, role: UserRole = UserRole.USER) -> UserRecord:
    """Default record for an identity seen for the first time."""
    return UserRecord(
        id=identity.uid,
        email=identity.email,
        display_name=identity.default_display_name,
        photo_url=identity.photo_url,
        role=role,
        disabled=False,
        favorites=[],
        favorites_version=0,
    )


async def get_or_create_user(gateway: ListingGateway, identity: Identity) -> UserRecord:
    """
    Fetch the user record for ``identity``, creating it on first sign-in.

    A concurrent first sign-in may create the record between our read and our
    insert; the insert then fails as a duplicate and the stored record wins.
    """
    record = await gateway.get_user(identity.uid)
    if record is not None:
        return record
    try:
        record = await gateway.create_user(new_user_record(identity))
        logger.info(f"Created user record on first sign-in: {identity.email}")
        return record
    except DuplicateResourceError:
        record = await gateway.get_user(identity.uid)
        if record is None:
            raise
        return record


class FavoritesService:
    """Server-side favorites operations for the signed-in user."""

    def __init__(self, gateway: ListingGateway):
        self.gateway = gateway

    async def add(
        self,
        user: UserRecord,
        property_id: str,
        expected_version: Optional[int] = None
    ) -> UserRecord:
        """
        Add a property to the user's favorites.

        Args:
            user: Current user record
            property_id: Property to add
            expected_version: Version the caller last saw; the record's own when omitted

        Raises:
            PropertyNotFoundError: If the property does not exist
            FavoritesConflictError: If the favorites changed since ``expected_version``
        """
        if await self.gateway.get_property(property_id) is None:
            raise PropertyNotFoundError(property_id)
        version = user.favorites_version if expected_version is None else expected_version
        record = await self.gateway.update_favorites(
            user.id, with_favorite(user.favorites, property_id), version
        )
        logger.info(f"{user.email} added favorite {property_id}")
        return record

    async def remove(
        self,
        user: UserRecord,
        property_id: str,
        expected_version: Optional[int] = None
    ) -> UserRecord:
        """Remove a property from the user's favorites. Unknown ids are allowed."""
        version = user.favorites_version if expected_version is None else expected_version
        record = await self.gateway.update_favorites(
            user.id, without_favorite(user.favorites, property_id), version
        )
        logger.info(f"{user.email} removed favorite {property_id}")
        return record

    async def list_properties(self, user: UserRecord) -> Tuple[List[PropertyRecord], List[str]]:
        """
        Resolve the favorites list to properties.

        Returns:
            (properties found, ids that no longer resolve to a property)
        """
        records = await self.gateway.get_properties(user.favorites)
        found = {record.id for record in records}
        missing = [pid for pid in user.favorites if pid not in found]
        if missing:
            logger.debug(f"{len(missing)} dangling favorites for {user.email}")
        return records, missing
