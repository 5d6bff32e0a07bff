"""Tests for the openpyxl spreadsheet sink."""

import datetime as dt
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from scan_and_fill.errors import (
    SpreadsheetError,
    SpreadsheetNotFoundError,
    UnsupportedSpreadsheetError,
    WorksheetNotFoundError,
)
from scan_and_fill.models.project import SheetMapping
from scan_and_fill.spreadsheet.workbook import WorkbookSink


@pytest.fixture
def budget(tmp_path: Path) -> Path:
    """A budget sheet with months from March in row 1 and categories in column A."""
    path = tmp_path / "budget.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "2026"
    for offset, label in enumerate(["Mars", "Avril", "Mai", "Juin"]):
        sheet.cell(row=1, column=2 + offset, value=label)
    sheet["A2"] = "Fuel"
    sheet["A3"] = "Food"
    workbook.create_sheet("Notes")
    workbook.save(path)
    return path


MAPPING = SheetMapping(month_start_cell="B1", category_rows={"Fuel": 2, "Food": 3})


class TestUpdateSheet:
    def test_months_are_offset_from_start_cell(self, budget):
        written = WorkbookSink().update_sheet(budget, "2026", MAPPING, {
            "march": {"Fuel": Decimal("12.50"), "Food": Decimal("3")},
            "may": {"Fuel": Decimal("1234.56")},
        })

        assert written == 3
        sheet = load_workbook(budget)["2026"]
        assert sheet["B2"].value == 12.5
        assert sheet["B3"].value == 3.0
        assert sheet["D2"].value == 1234.56
        assert sheet["D2"].number_format == "#,##0.00"

    def test_month_before_start_column_is_skipped(self, budget):
        """January would land left of column A when the sheet starts in March."""
        written = WorkbookSink().update_sheet(budget, "2026", MAPPING, {
            "january": {"Fuel": Decimal("1")},
            "april": {"Fuel": Decimal("2")},
        })
        assert written == 1
        assert load_workbook(budget)["2026"]["C2"].value == 2.0

    def test_unmapped_category_is_skipped(self, budget):
        written = WorkbookSink().update_sheet(budget, "2026", MAPPING, {
            "march": {"Travel": Decimal("99")},
        })
        assert written == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(SpreadsheetNotFoundError):
            WorkbookSink().update_sheet(tmp_path / "nope.xlsx", "2026", MAPPING, {})

    def test_missing_worksheet(self, budget):
        with pytest.raises(WorksheetNotFoundError) as exc_info:
            WorkbookSink().update_sheet(budget, "2025", MAPPING, {})
        assert exc_info.value.sheet_name == "2025"

    def test_opendocument_is_rejected(self, tmp_path):
        path = tmp_path / "budget.ods"
        path.write_bytes(b"PK")
        with pytest.raises(UnsupportedSpreadsheetError):
            WorkbookSink().update_sheet(path, "2026", MAPPING, {})

    def test_corrupt_workbook(self, tmp_path):
        path = tmp_path / "budget.xlsx"
        path.write_bytes(b"not a zip")
        with pytest.raises(UnsupportedSpreadsheetError, match="not a readable .xlsx workbook"):
            WorkbookSink().update_sheet(path, "2026", MAPPING, {})

    @pytest.mark.parametrize("address", ["1B", "B", "", "B0"])
    def test_invalid_start_cell(self, budget, address):
        mapping = SheetMapping(month_start_cell=address, category_rows={"Fuel": 2})
        with pytest.raises(SpreadsheetError, match="Invalid cell address"):
            WorkbookSink().update_sheet(budget, "2026", mapping, {"march": {"Fuel": 1}})


class TestGetMetadata:
    def test_tabs_categories_and_months(self, budget):
        meta = WorkbookSink().get_metadata(budget, "2026")

        assert meta.tabs == ["2026", "Notes"]
        assert {name: cell.row for name, cell in meta.categories.items()} == {"Fuel": 2, "Food": 3}
        assert meta.categories["Food"].address == "A3"
        assert [m.month for m in meta.months] == ["march", "april", "may", "june"]
        assert meta.months[0].address == "B1"
        assert meta.months[0].label == "Mars"

    def test_date_headers(self, tmp_path):
        path = tmp_path / "dated.xlsx"
        workbook = Workbook()
        sheet = workbook.active
        sheet["B1"] = dt.datetime(2026, 1, 1)
        sheet["C1"] = dt.datetime(2026, 2, 1)
        workbook.save(path)

        meta = WorkbookSink().get_metadata(path)

        assert [m.month for m in meta.months] == ["january", "february"]

    def test_missing_file_gives_empty_metadata(self, tmp_path):
        meta = WorkbookSink().get_metadata(tmp_path / "nope.xlsx")
        assert meta.tabs == []
        assert meta.categories == {}
        assert meta.months == []

    def test_invalid_category_column(self, budget):
        with pytest.raises(SpreadsheetError, match="Invalid column"):
            WorkbookSink().get_metadata(budget, "2026", category_column="A1")

    def test_corrupt_workbook(self, tmp_path):
        path = tmp_path / "budget.xlsx"
        path.write_bytes(b"not a zip")
        with pytest.raises(UnsupportedSpreadsheetError):
            WorkbookSink().get_metadata(path)
