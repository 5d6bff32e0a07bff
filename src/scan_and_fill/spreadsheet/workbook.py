"""Write monthly category totals into an .xlsx sheet with openpyxl."""

from __future__ import annotations

import logging
import zipfile
from decimal import Decimal
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException, InvalidFileException
from pydantic import BaseModel, Field

from scan_and_fill.errors import (
    SpreadsheetError,
    SpreadsheetNotFoundError,
    UnsupportedSpreadsheetError,
    WorksheetNotFoundError,
)
from scan_and_fill.models.project import SheetMapping
from scan_and_fill.scanner.months import month_from_cell_value

logger = logging.getLogger(__name__)

NUMBER_FORMAT = "#,##0.00"


class CategoryCell(BaseModel):
    row: int
    address: str


class MonthCell(BaseModel):
    label: str
    month: str
    address: str


class SheetMetadata(BaseModel):
    tabs: list[str] = Field(default_factory=list)
    categories: dict[str, CategoryCell] = Field(default_factory=dict)
    months: list[MonthCell] = Field(default_factory=list)


def _check_format(path: Path) -> None:
    if path.suffix.lower() == ".ods":
        raise UnsupportedSpreadsheetError(
            f"{path.name}: OpenDocument spreadsheets are not supported, save it as .xlsx"
        )


def column_index(letters: str) -> int:
    """1-based index of a column given by its letters ("A", "AB")."""
    try:
        return column_index_from_string(letters.strip().upper())
    except ValueError as exc:
        raise SpreadsheetError(f"Invalid column: {letters!r}") from exc


def cell_position(address: str) -> tuple[int, int]:
    """(row, column) of an A1-style address."""
    try:
        letters, row = coordinate_from_string(address.strip().upper())
    except (CellCoordinatesException, ValueError) as exc:
        raise SpreadsheetError(f"Invalid cell address: {address!r}") from exc
    return row, column_index(letters)


def _open(path: Path):
    try:
        return load_workbook(path)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        raise UnsupportedSpreadsheetError(f"{path.name} is not a readable .xlsx workbook: {exc}") from exc


class WorkbookSink:
    def update_sheet(
        self,
        file_path: str | Path,
        sheet_name: str,
        mapping: SheetMapping,
        data: dict[str, dict[str, Decimal | float]],
    ) -> int:
        """Write ``data`` (month -> category -> total) and save. Returns cells written.

        Each month lands in the column offset from the start cell by the
        distance between the two months.
        """
        path = Path(file_path)
        if not path.exists():
            raise SpreadsheetNotFoundError(path)
        _check_format(path)

        workbook = _open(path)
        if sheet_name not in workbook.sheetnames:
            raise WorksheetNotFoundError(sheet_name)
        worksheet = workbook[sheet_name]

        start_row, start_col = cell_position(mapping.month_start_cell)
        base = month_from_cell_value(worksheet.cell(row=start_row, column=start_col).value)
        base_index = base.index if base else 0

        written = 0
        for month_name, categories in data.items():
            month = month_from_cell_value(month_name)
            if month is None:
                logger.warning("Skipping unknown month %r", month_name)
                continue
            column = start_col + month.index - base_index
            if column < 1:
                logger.warning("Month %s falls before column A, skipped", month_name)
                continue
            for category, total in categories.items():
                row = mapping.category_rows.get(category)
                if not row:
                    logger.debug("No row mapped for category %r", category)
                    continue
                cell = worksheet.cell(row=row, column=column, value=float(total))
                cell.number_format = NUMBER_FORMAT
                written += 1

        workbook.save(path)
        logger.info("Wrote %d cell(s) to %s [%s]", written, path.name, sheet_name)
        return written

    def get_metadata(
        self,
        file_path: str | Path,
        sheet_name: str | None = None,
        category_column: str = "A",
        month_start_cell: str = "B1",
    ) -> SheetMetadata:
        """Tabs, category labels and month headers, for building a mapping."""
        path = Path(file_path)
        if not path.exists():
            return SheetMetadata()
        _check_format(path)

        workbook = _open(path)
        tabs = list(workbook.sheetnames)
        if not tabs:
            return SheetMetadata()
        worksheet = workbook[sheet_name] if sheet_name in tabs else workbook[tabs[0]]

        categories: dict[str, CategoryCell] = {}
        if category_column:
            col = column_index(category_column)
            for (cell,) in worksheet.iter_rows(min_col=col, max_col=col):
                if isinstance(cell.value, str) and cell.value.strip():
                    categories[cell.value.strip()] = CategoryCell(
                        row=cell.row, address=cell.coordinate
                    )

        months: list[MonthCell] = []
        start_row, start_col = cell_position(month_start_cell)
        for offset in range(12):
            cell = worksheet.cell(row=start_row, column=start_col + offset)
            match = month_from_cell_value(cell.value)
            if match:
                months.append(MonthCell(
                    label=str(cell.value), month=match.name, address=cell.coordinate
                ))

        return SheetMetadata(tabs=tabs, categories=categories, months=months)
