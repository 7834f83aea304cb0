"""
Pydantic schemas for property requests and responses.
Handles property create/update validation, listing pages and bulk operations.
"""

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from typing import Optional, List
from datetime import date
from listing_api.config import settings
from listing_api.models.property import PropertyType, MarketingType, LegalCertificate
from listing_api.schemas.records import PropertyRecord
from listing_api.utils.formatting import format_rupiah, format_listing_date, parse_listing_date


LEGAL_KINDS = tuple(kind.value for kind in LegalCertificate)


def _certificate_kind(v: str) -> str:
    kind = v.strip().upper()
    if kind and kind not in LEGAL_KINDS:
        raise ValueError(f"legal must be blank or one of: {', '.join(LEGAL_KINDS)}")
    return kind


def _parse_optional_date(v):
    if v is None or v == "":
        return None
    if isinstance(v, str):
        return parse_listing_date(v)
    return v


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    code: int = Field(0, ge=0, description="Office listing code", example=1024)

    title: str = Field("", max_length=255, description="Listing headline", example="Rumah 2 Lantai Siap Huni")

    description: str = Field(
        "",
        max_length=settings.description_max_length,
        description="Free-text description"
    )

    notes: str = Field("", max_length=2000, description="Internal notes")

    region: str = Field(..., min_length=1, max_length=120, description="Locality label", example="BSD")

    cluster: str = Field("", max_length=120, description="Housing cluster")

    orientation: str = Field("", max_length=40, description="Direction the property faces", example="UTARA")

    property_type: PropertyType = Field(..., description="Kind of property", example="house")

    marketing_type: MarketingType = Field(..., description="For sale or for rent", example="for_sale")

    legal: str = Field("", max_length=120, description="Certificate kind", example="SHM")

    land_area: int = Field(0, ge=0, description="Land area in square meters")
    building_area: int = Field(0, ge=0, description="Building area in square meters")
    floors: int = Field(1, ge=0, le=200, description="Number of floors")
    bedrooms: int = Field(0, ge=0, le=100, description="Number of bedrooms")
    bathrooms: int = Field(0, ge=0, le=100, description="Number of bathrooms")

    price: int = Field(0, ge=0, description="Price in rupiah, 0 when unset", example=1500000000)

    fee: str = Field("", max_length=60, description="Agent fee")
    listing: str = Field("", max_length=120, description="Listing agent")

    media: List[str] = Field(default_factory=list, description="Ordered image and video URLs")

    @field_validator("region", "cluster")
    @classmethod
    def upper_case_labels(cls, v):
        """Locality labels are stored upper case."""
        return v.strip().upper()

    @field_validator("title", "description", "notes")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

    @field_validator("legal")
    @classmethod
    def known_certificate(cls, v):
        return _certificate_kind(v)


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""

    legal_other: str = Field("", max_length=120, description="Free-text certificate kind when legal is LAIN_LAIN")

    listed_on: Optional[date] = Field(None, description="Listing date; today when omitted")

    @field_validator("listed_on", mode="before")
    @classmethod
    def parse_listed_on(cls, v):
        return _parse_optional_date(v)

    @model_validator(mode="after")
    def resolve_legal(self):
        """Replace the 'other' escape value with the free-text kind when one is given."""
        if self.legal == LegalCertificate.OTHER.value and self.legal_other.strip():
            self.legal = self.legal_other.strip().upper()
        return self

    def to_store_data(self) -> dict:
        """Field values to persist."""
        data = self.model_dump(exclude={"legal_other"})
        if data["listed_on"] is None:
            data["listed_on"] = date.today()
        return data

    class Config:
        json_schema_extra = {
            "example": {
                "code": 1024,
                "title": "Rumah 2 Lantai Siap Huni",
                "description": "Rumah nyaman dekat stasiun dan pusat perbelanjaan.",
                "region": "BSD",
                "cluster": "THE ICON",
                "orientation": "UTARA",
                "property_type": "house",
                "marketing_type": "for_sale",
                "legal": "SHM",
                "land_area": 120,
                "building_area": 150,
                "floors": 2,
                "bedrooms": 3,
                "bathrooms": 2,
                "price": 1500000000,
                "fee": "2.5%",
                "listing": "Andi",
                "media": []
            }
        }


class PropertyUpdate(BaseModel):
    """Schema for updating an existing property. Only provided fields change."""

    code: Optional[int] = Field(None, ge=0)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=settings.description_max_length)
    notes: Optional[str] = Field(None, max_length=2000)
    region: Optional[str] = Field(None, min_length=1, max_length=120)
    cluster: Optional[str] = Field(None, max_length=120)
    orientation: Optional[str] = Field(None, max_length=40)
    property_type: Optional[PropertyType] = None
    marketing_type: Optional[MarketingType] = None
    legal: Optional[str] = Field(None, max_length=120)
    legal_other: Optional[str] = Field(None, max_length=120)
    land_area: Optional[int] = Field(None, ge=0)
    building_area: Optional[int] = Field(None, ge=0)
    floors: Optional[int] = Field(None, ge=0, le=200)
    bedrooms: Optional[int] = Field(None, ge=0, le=100)
    bathrooms: Optional[int] = Field(None, ge=0, le=100)
    price: Optional[int] = Field(None, ge=0)
    fee: Optional[str] = Field(None, max_length=60)
    listing: Optional[str] = Field(None, max_length=120)
    media: Optional[List[str]] = None
    listed_on: Optional[date] = None

    @field_validator("listed_on", mode="before")
    @classmethod
    def parse_listed_on(cls, v):
        return _parse_optional_date(v)

    @field_validator("*")
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        """Omit a field to leave it unchanged; every stored column is required."""
        if v is None and info.field_name != "legal_other":
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("region", "cluster")
    @classmethod
    def upper_case_labels(cls, v):
        if v is not None:
            return v.strip().upper()
        return v

    @field_validator("legal")
    @classmethod
    def known_certificate(cls, v):
        return _certificate_kind(v) if v is not None else v

    @model_validator(mode="after")
    def resolve_legal(self):
        if self.legal == LegalCertificate.OTHER.value and self.legal_other and self.legal_other.strip():
            self.legal = self.legal_other.strip().upper()
        return self

    def to_store_changes(self) -> dict:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True, exclude={"legal_other"})


class PropertyResponse(PropertyRecord):
    """Property as rendered to clients, with presentation defaults applied."""

    cover_image: str = Field(..., description="First media URL or the placeholder image")
    price_label: str = Field(..., description="Formatted price", example="Rp 1.500.000.000")
    listed_on_label: str = Field(..., description="Listing date as dd-mm-yyyy", example="17-08-2024")

    @classmethod
    def from_record(cls, record: PropertyRecord) -> "PropertyResponse":
        """Build the response, falling back to the placeholder when there is no media."""
        return cls(
            **record.model_dump(),
            cover_image=record.media[0] if record.media else settings.placeholder_image_url,
            price_label=format_rupiah(record.price),
            listed_on_label=format_listing_date(record.listed_on),
        )


class ListingPageResponse(BaseModel):
    """One page of search results."""

    properties: List[PropertyResponse] = Field(..., description="Results on this page")
    next_cursor: Optional[str] = Field(None, description="Cursor to pass back for the next page")
    has_more: bool = Field(..., description="False once a page is shorter than the page size")
    page_size: int = Field(..., description="Fixed page size", example=12)


class PropertyIdsRequest(BaseModel):
    """Selection of property ids for bulk delete and export."""

    ids: List[str] = Field(..., min_length=1, description="Selected property ids")


class BulkDeleteResponse(BaseModel):
    deleted: int


class ImportResult(BaseModel):
    """Outcome of a spreadsheet import."""

    imported: int = Field(..., description="Rows stored")
    skipped: int = Field(..., description="Rows rejected")
    errors: List[str] = Field(default_factory=list, description="One message per rejected row")
