"""
Backend-neutral record types returned by every data gateway implementation.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
from datetime import date, datetime
from listing_api.models.property import PropertyType, MarketingType
from listing_api.models.user import UserRole, BACK_OFFICE_ROLES


class PropertyRecord(BaseModel):
    """A stored property listing."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: int = 0
    title: str = ""
    description: str = ""
    notes: str = ""
    region: str
    cluster: str = ""
    orientation: str = ""
    property_type: PropertyType
    marketing_type: MarketingType
    legal: str = ""
    land_area: int = 0
    building_area: int = 0
    floors: int = 1
    bedrooms: int = 0
    bathrooms: int = 0
    price: int = 0
    fee: str = ""
    listing: str = ""
    media: List[str] = Field(default_factory=list)
    listed_on: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def value_of(self, field: str) -> Any:
        """Attribute lookup used when evaluating query predicates in memory."""
        value = getattr(self, field)
        return value.value if hasattr(value, "value") else value


class UserRecord(BaseModel):
    """A stored user record keyed by subject id."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    display_name: str = ""
    photo_url: Optional[str] = None
    role: UserRole = UserRole.USER
    disabled: bool = False
    favorites: List[str] = Field(default_factory=list)
    favorites_version: int = 0
    created_at: Optional[datetime] = None

    @property
    def is_back_office(self) -> bool:
        return self.role in BACK_OFFICE_ROLES


class LogRecord(BaseModel):
    """An audit log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    action: str
    performed_by: str
    target: str
    timestamp: datetime


class Identity(BaseModel):
    """Authenticated subject as asserted by the identity provider."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def default_display_name(self) -> str:
        """Display name, falling back to the local part of the email."""
        return self.display_name or self.email.split("@")[0]
