"""
Property model for sale and rent listings.
Holds listing attributes, media URLs and the listing date used for recency ordering.
"""

from sqlalchemy import String, Text, Integer, BigInteger, Date, JSON, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from datetime import date
import enum
from typing import List


class PropertyType(str, enum.Enum):
    """Kind of property being listed."""
    HOUSE = "house"
    SHOPHOUSE = "shophouse"
    LAND_LOT = "land_lot"
    APARTMENT = "apartment"


class MarketingType(str, enum.Enum):
    """Whether a listing is offered for sale or for rent."""
    FOR_SALE = "for_sale"
    FOR_RENT = "for_rent"


class LegalCertificate(str, enum.Enum):
    """Land certificate kinds; OTHER is the escape value for a free-text kind."""
    SHM = "SHM"
    HGB = "HGB"
    AJB = "AJB"
    PPJB = "PPJB"
    STRATA = "STRATA"
    OTHER = "LAIN_LAIN"


class Property(Base):
    """
    Property listing record.
    Numeric attributes are non-negative; a price of zero means the price is unset.
    """

    __tablename__ = "properties"

    code: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True,
        comment="Office listing code"
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Listing headline"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text description"
    )

    notes: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Internal free-text notes"
    )

    # Location and classification
    region: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        index=True,
        comment="Locality label, upper case"
    )

    cluster: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        default="",
        comment="Housing cluster name, upper case"
    )

    orientation: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default="",
        comment="Direction the property faces"
    )

    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        index=True
    )

    marketing_type: Mapped[MarketingType] = mapped_column(
        SQLEnum(MarketingType),
        nullable=False,
        index=True
    )

    legal: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        default="",
        comment="Certificate kind or free-text kind"
    )

    # Dimensions
    land_area: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    building_area: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    floors: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    # Pricing and listing bookkeeping
    price: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        index=True,
        comment="Price in rupiah, 0 when unset"
    )

    fee: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    listing: Mapped[str] = mapped_column(String(120), nullable=False, default="", comment="Listing agent")

    media: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered image and video URLs"
    )

    listed_on: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
        index=True,
        comment="Listing date"
    )

    def __repr__(self) -> str:
        """String representation of the property."""
        return f"<Property(id={self.id}, code={self.code}, region={self.region}, price={self.price})>"


# Search ordering is always listing recency first
listing_recency_index = Index(
    "idx_properties_listed_on_id",
    Property.listed_on.desc(),
    Property.id.desc()
)

region_price_index = Index(
    "idx_properties_region_price",
    Property.region,
    Property.price
)
