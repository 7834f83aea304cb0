"""
Search criteria shared by the listing endpoint and the client-side filter state.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional
from listing_api.models.property import PropertyType, MarketingType

# Upper price bound meaning "no maximum"
PRICE_UNBOUNDED = 1_000_000_000


class FilterCriteria(BaseModel):
    """
    Current search criteria. Every field has a zero/empty default, and a
    field at its default contributes nothing to the issued query.
    """

    model_config = ConfigDict(frozen=True)

    region: str = Field("", max_length=120, description="Locality label, matched case-insensitively")
    marketing_type: Optional[MarketingType] = Field(None, description="For sale or for rent")
    property_type: Optional[PropertyType] = Field(None, description="Kind of property")
    price_min: int = Field(0, ge=0, description="Inclusive lower price bound")
    price_max: int = Field(PRICE_UNBOUNDED, ge=0, description="Inclusive upper price bound")
    bedrooms_min: int = Field(0, ge=0, description="Minimum number of bedrooms")
    bathrooms_min: int = Field(0, ge=0, description="Minimum number of bathrooms")

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, v):
        """Regions are conventionally upper case."""
        if v is None:
            return ""
        return str(v).strip().upper()

    @field_validator("marketing_type", "property_type", mode="before")
    @classmethod
    def empty_choice_is_none(cls, v):
        if v == "":
            return None
        return v

    @property
    def has_price_max(self) -> bool:
        """Whether the upper price bound is below the unbounded sentinel."""
        return self.price_max < PRICE_UNBOUNDED

    @property
    def is_filter_active(self) -> bool:
        """Whether any criterion differs from its default."""
        return (
            self.region != ""
            or self.marketing_type is not None
            or self.property_type is not None
            or self.price_min != 0
            or self.price_max != PRICE_UNBOUNDED
            or self.bedrooms_min != 0
            or self.bathrooms_min != 0
        )

    def with_changes(self, **changes: Any) -> "FilterCriteria":
        """Return validated criteria with the given fields replaced."""
        return FilterCriteria.model_validate({**self.model_dump(), **changes})
