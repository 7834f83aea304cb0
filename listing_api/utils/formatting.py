"""
Display formatting for prices and listing dates.
"""

from datetime import date, datetime
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)

LISTING_DATE_FORMAT = "%d-%m-%Y"


def format_rupiah(value: Any) -> str:
    """
    Format a price in Indonesian rupiah, e.g. ``Rp 1.500.000``.

    Non-numeric input yields ``N/A``. Fractions are rounded away since
    listings are priced in whole rupiah.
    """
    if isinstance(value, bool):
        return "N/A"
    try:
        amount = round(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.debug(f"Invalid price format: {value!r}")
        return "N/A"

    grouped = f"{abs(amount):,}".replace(",", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {grouped}"


def format_listing_date(value: Optional[date]) -> str:
    """Format a listing date as dd-mm-yyyy; empty string when missing."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(LISTING_DATE_FORMAT)


def parse_listing_date(value: str) -> date:
    """
    Parse a listing date written as dd-mm-yyyy or ISO yyyy-mm-dd.

    Raises:
        ValueError: If the text matches neither format
    """
    text = (value or "").strip()
    for fmt in (LISTING_DATE_FORMAT, "%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized listing date: {value!r}")
