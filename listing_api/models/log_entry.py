"""
Append-only audit log of admin actions.
"""

from sqlalchemy import BigInteger, String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from listing_api.database import Base
from datetime import datetime


class LogEntry(Base):
    """One row per successful admin action. Never updated or deleted."""

    __tablename__ = "logs"

    # Append order; timestamps alone tie within one clock tick
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    target: Mapped[str] = mapped_column(String(255), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<LogEntry(action={self.action}, performed_by={self.performed_by}, target={self.target})>"
