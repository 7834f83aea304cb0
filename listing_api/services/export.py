"""
CSV export of selected properties and import of the office spreadsheet format.
"""

from pydantic import ValidationError as PydanticValidationError
from listing_api.gateway.base import ListingGateway
from listing_api.models.property import LegalCertificate, MarketingType, PropertyType
from listing_api.schemas.property import LEGAL_KINDS, ImportResult, PropertyCreate
from listing_api.schemas.records import PropertyRecord
from listing_api.utils.exceptions import ValidationError
from listing_api.utils.formatting import format_listing_date, parse_listing_date
from typing import Any, Dict, Iterable, List, Optional
import csv
import io
import logging

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "selected_properties.csv"
MEDIA_SEPARATOR = " | "

EXPORT_COLUMNS = [
    "ID", "Code", "Region", "Type", "Status",
    "Cluster", "Orientation", "Land Area", "Building Area",
    "Floors", "Bedrooms", "Bathrooms", "Notes", "Legal",
    "Price", "Fee", "Listing", "Media", "Listing Date", "Last Modified",
]

# Spreadsheet labels accepted on import, besides the enum values themselves
TYPE_LABELS = {
    "RUMAH": PropertyType.HOUSE,
    "RUKO": PropertyType.SHOPHOUSE,
    "KAVLING": PropertyType.LAND_LOT,
    "APARTEMEN": PropertyType.APARTMENT,
    "APARTERMEN": PropertyType.APARTMENT,
}

STATUS_LABELS = {
    "JUAL": MarketingType.FOR_SALE,
    "DIJUAL": MarketingType.FOR_SALE,
    "SEWA": MarketingType.FOR_RENT,
    "DISEWA": MarketingType.FOR_RENT,
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def export_properties_csv(records: Iterable[PropertyRecord]) -> str:
    """
    Render properties as CSV, one row per record in the given order.

    Fields containing a comma, quote or newline are wrapped in quotes with
    internal quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for record in records:
        writer.writerow([
            _cell(record.id),
            _cell(record.code),
            _cell(record.region),
            _cell(record.property_type),
            _cell(record.marketing_type),
            _cell(record.cluster),
            _cell(record.orientation),
            _cell(record.land_area),
            _cell(record.building_area),
            _cell(record.floors),
            _cell(record.bedrooms),
            _cell(record.bathrooms),
            _cell(record.notes),
            _cell(record.legal),
            _cell(record.price),
            _cell(record.fee),
            _cell(record.listing),
            MEDIA_SEPARATOR.join(record.media),
            format_listing_date(record.listed_on),
            record.updated_at.isoformat() if record.updated_at else "",
        ])
    return buffer.getvalue()


def _number(raw: Optional[str], default: int = 0) -> int:
    """Parse a spreadsheet number, dropping thousands separators."""
    text = (raw or "").strip().replace(",", "").replace(".", "")
    if not text:
        return default
    try:
        return int(text)
    except ValueError:
        return default


def _floors(raw: Optional[str]) -> int:
    text = (raw or "").strip().replace(",", ".")
    try:
        return int(float(text)) if text else 1
    except ValueError:
        return 1


def _choice(raw: Optional[str], labels: Dict[str, Any], enum_cls):
    text = (raw or "").strip()
    if text.upper() in labels:
        return labels[text.upper()]
    try:
        return enum_cls(text.lower())
    except ValueError:
        return None


def _is_blank(row: Dict[str, Any]) -> bool:
    return all(value is None or str(value).strip() == "" for value in row.values())


def parse_import_row(row: Dict[str, str]) -> PropertyCreate:
    """
    Convert one spreadsheet row into a validated property.

    Raises:
        ValueError: If the type, status, date or any field is invalid
    """
    property_type = _choice(row.get("TYPE"), TYPE_LABELS, PropertyType)
    if property_type is None:
        raise ValueError(f"unknown type '{(row.get('TYPE') or '').strip()}'")
    marketing_type = _choice(row.get("STATUS"), STATUS_LABELS, MarketingType)
    if marketing_type is None:
        raise ValueError(f"unknown status '{(row.get('STATUS') or '').strip()}'")

    legal = (row.get("LEGAL") or "").strip().upper()
    legal_other = ""
    if legal and legal not in LEGAL_KINDS:
        legal, legal_other = LegalCertificate.OTHER.value, legal

    listed_on = None
    raw_date = (row.get("TANGGAL LISTING") or "").strip()
    if raw_date:
        listed_on = parse_listing_date(raw_date)

    try:
        return PropertyCreate(
            code=_number(row.get("KODE")),
            region=(row.get("WILAYAH") or "").strip(),
            property_type=property_type,
            marketing_type=marketing_type,
            listed_on=listed_on,
            floors=_floors(row.get("Lantai")),
            cluster=(row.get("CLUSTER") or "").strip(),
            orientation=(row.get("HADAP") or "").strip().upper(),
            bedrooms=_number(row.get("KT")),
            bathrooms=_number(row.get("KM")),
            land_area=_number(row.get("LT")),
            building_area=_number(row.get("LB")),
            notes=(row.get("Lain-Lain") or "").strip(),
            legal=legal,
            legal_other=legal_other,
            price=_number(row.get("H. JUAL")),
            fee=(row.get("FEE") or "").strip(),
            listing=(row.get("LISTING") or "").strip(),
        )
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        raise ValueError(f"invalid fields: {fields}")


async def import_properties_csv(text: str, gateway: ListingGateway) -> ImportResult:
    """
    Import properties from spreadsheet CSV text.

    Blank rows are ignored. Rows are stored one at a time; a row that cannot
    be parsed is reported in ``errors`` and skipped.

    Raises:
        ValidationError: If the file holds no data rows
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]

    rows = [(index, row) for index, row in enumerate(reader, start=2) if not _is_blank(row)]
    if not rows:
        raise ValidationError("CSV file is empty")

    imported = 0
    errors: List[str] = []
    for line, row in rows:
        try:
            property_data = parse_import_row(row)
        except ValueError as e:
            errors.append(f"Row {line}: {e}")
            continue
        await gateway.create_property(property_data.to_store_data())
        imported += 1

    logger.info(f"CSV import stored {imported} properties, skipped {len(errors)}")
    return ImportResult(imported=imported, skipped=len(errors), errors=errors)
