"""
Tests for CSV export and spreadsheet import.
"""

import csv
import io
import pytest
from datetime import date

from listing_api.gateway import MemoryGateway
from listing_api.models.property import MarketingType, PropertyType
from listing_api.services.export import (
    EXPORT_COLUMNS,
    export_properties_csv,
    import_properties_csv,
    parse_import_row,
)
from listing_api.utils.exceptions import ValidationError
from tests.conftest import PropertyFactory

IMPORT_HEADER = "KODE,WILAYAH,TYPE,STATUS,TANGGAL LISTING,Lantai,CLUSTER,HADAP,KT,KM,LT,LB,Lain-Lain,LEGAL,H. JUAL,FEE,LISTING"


def import_row(**overrides) -> dict:
    row = {
        "KODE": "1024",
        "WILAYAH": "bsd",
        "TYPE": "RUMAH",
        "STATUS": "DIJUAL",
        "TANGGAL LISTING": "17-08-2024",
        "Lantai": "2",
        "CLUSTER": "the icon",
        "HADAP": "utara",
        "KT": "3",
        "KM": "2",
        "LT": "120",
        "LB": "150",
        "Lain-Lain": "Dekat tol",
        "LEGAL": "shm",
        "H. JUAL": "1.500.000.000",
        "FEE": "2.5%",
        "LISTING": "Andi",
    }
    row.update(overrides)
    return row


class TestExport:
    """Test CSV rendering of selected properties."""

    def test_header_row(self):
        content = export_properties_csv([])

        assert content.splitlines() == [",".join(EXPORT_COLUMNS)]

    def test_fields_with_commas_and_quotes_are_quoted(self):
        record = PropertyFactory.create_record(
            1, notes='Dekat tol, "strategis"', media=["http://test/a.jpg", "http://test/b.mp4"]
        )

        content = export_properties_csv([record])
        line = content.splitlines()[1]

        assert '"Dekat tol, ""strategis"""' in line
        assert "http://test/a.jpg | http://test/b.mp4" in line

        rows = list(csv.reader(io.StringIO(content)))
        row = dict(zip(rows[0], rows[1]))
        assert row["Notes"] == 'Dekat tol, "strategis"'
        assert row["ID"] == "prop-1"
        assert row["Type"] == "house"
        assert row["Status"] == "for_sale"
        assert row["Listing Date"] == "02-01-2024"

    def test_rows_follow_selection_order(self):
        records = [PropertyFactory.create_record(i) for i in (3, 1, 2)]

        rows = list(csv.reader(io.StringIO(export_properties_csv(records))))

        assert [row[0] for row in rows[1:]] == ["prop-3", "prop-1", "prop-2"]


class TestImport:
    """Test parsing of the office spreadsheet."""

    def test_parse_row(self):
        data = parse_import_row(import_row())

        assert data.code == 1024
        assert data.region == "BSD"
        assert data.cluster == "THE ICON"
        assert data.orientation == "UTARA"
        assert data.property_type is PropertyType.HOUSE
        assert data.marketing_type is MarketingType.FOR_SALE
        assert data.listed_on == date(2024, 8, 17)
        assert data.price == 1_500_000_000
        assert data.legal == "SHM"
        assert data.floors == 2

    @pytest.mark.parametrize("label,expected", [
        ("RUKO", PropertyType.SHOPHOUSE),
        ("kavling", PropertyType.LAND_LOT),
        ("APARTERMEN", PropertyType.APARTMENT),
        ("apartment", PropertyType.APARTMENT),
    ])
    def test_type_labels(self, label, expected):
        assert parse_import_row(import_row(TYPE=label)).property_type is expected

    def test_rental_status(self):
        assert parse_import_row(import_row(STATUS="Sewa")).marketing_type is MarketingType.FOR_RENT

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValueError, match="unknown type 'VILLA'"):
            parse_import_row(import_row(TYPE="VILLA"))

    def test_unknown_certificate_kind_is_kept_as_free_text(self):
        data = parse_import_row(import_row(LEGAL="girik"))

        assert data.legal == "GIRIK"
        assert data.to_store_data()["legal"] == "GIRIK"

    def test_bad_date_is_rejected(self):
        with pytest.raises(ValueError):
            parse_import_row(import_row(**{"TANGGAL LISTING": "soon"}))

    @pytest.mark.asyncio
    async def test_import_reports_bad_rows(self, memory_gateway: MemoryGateway):
        text = "\n".join([
            IMPORT_HEADER,
            "1,BSD,RUMAH,JUAL,01-02-2024,2,,,3,2,100,120,,SHM,\"1,200,000,000\",,Andi",
            "2,SERPONG,VILLA,JUAL,01-02-2024,1,,,2,1,90,60,,SHM,900000000,,Budi",
            ",,,,,,,,,,,,,,,,",
            "3,,RUKO,SEWA,01-02-2024,3,,,0,2,80,200,,HGB,0,,Citra",
        ])

        result = await import_properties_csv(text, memory_gateway)

        assert result.imported == 1
        assert result.skipped == 2
        assert result.errors[0].startswith("Row 3: unknown type")
        assert result.errors[1].startswith("Row 5: invalid fields")

        stored = await memory_gateway.list_properties()
        assert [(record.region, record.price) for record in stored] == [("BSD", 1_200_000_000)]

    @pytest.mark.asyncio
    async def test_import_strips_byte_order_mark(self, memory_gateway: MemoryGateway):
        text = "\ufeff" + IMPORT_HEADER + "\n1,BSD,RUMAH,JUAL,,1,,,1,1,0,0,,,0,,"

        result = await import_properties_csv(text, memory_gateway)

        assert result.imported == 1

    @pytest.mark.asyncio
    async def test_empty_file_is_rejected(self, memory_gateway: MemoryGateway):
        with pytest.raises(ValidationError):
            await import_properties_csv(IMPORT_HEADER + "\n\n", memory_gateway)
