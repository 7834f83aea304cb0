"""
User record keyed by the identity provider's subject id.
Holds profile data, role, disabled flag and the favorites list.
"""

from sqlalchemy import String, Boolean, Integer, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
import enum
from typing import List, Optional


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""
    USER = "user"
    ADMIN = "admin"
    SUPER = "super"


BACK_OFFICE_ROLES = (UserRole.ADMIN, UserRole.SUPER)


class User(Base):
    """
    User record. The primary key is the identity provider subject id,
    so it is always supplied by the caller rather than generated.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="User email address"
    )

    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=""
    )

    photo_url: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.USER,
        index=True
    )

    disabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )

    favorites: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Bookmarked property ids"
    )

    favorites_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Bumped on every favorites write"
    )

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_back_office(self) -> bool:
        """Check if user may use the admin back office."""
        return self.role in BACK_OFFICE_ROLES
