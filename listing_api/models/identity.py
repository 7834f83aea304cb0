"""
Identity provider account with password hashing.
Accounts live apart from user records: the provider owns credentials and the disabled flag.
"""

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
from typing import Optional

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class IdentityAccount(Base):
    """
    Identity provider account. The primary key is the subject id handed to the store.
    """

    __tablename__ = "identities"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    disabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )

    def __repr__(self) -> str:
        return f"<IdentityAccount(id={self.id}, email={self.email}, disabled={self.disabled})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Args:
            email: Email address to validate

        Returns:
            Normalized email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        """
        Hash a password using bcrypt.

        Raises:
            ValueError: If the password is too short
        """
        if not password or len(password) < 8:
            raise ValueError("Password must be at least 8 characters long")

        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return pwd_context.verify(password, self.hashed_password)
