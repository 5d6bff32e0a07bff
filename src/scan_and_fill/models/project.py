"""Project descriptor and spreadsheet mapping."""

from typing import Optional

from pydantic import BaseModel, Field


class SheetMapping(BaseModel):
    """Where totals land: month columns start at ``month_start_cell``."""

    month_start_cell: str = "B1"
    category_column: str = "A"
    # category name -> 1-based row number
    category_rows: dict[str, int] = Field(default_factory=dict)


class SpreadsheetConfig(BaseModel):
    file_path: str
    sheet_name: str
    month_start_cell: str = "B1"
    category_column: str = "A"
    category_rows: dict[str, int] = Field(default_factory=dict)

    def mapping(self) -> SheetMapping:
        return SheetMapping(
            month_start_cell=self.month_start_cell,
            category_column=self.category_column,
            category_rows=dict(self.category_rows),
        )


class Project(BaseModel):
    """Everything a run needs to know about one folder tree and its spreadsheet."""

    id: str
    name: str = ""
    root_path: str
    # category folder name -> label used in the spreadsheet
    category_mapping: dict[str, str] = Field(default_factory=dict)
    spreadsheet: Optional[SpreadsheetConfig] = None
    force_rescan: bool = False
    month_filter: Optional[str] = None
    # Regex with one capture group for the amount, tried before the heuristics
    amount_pattern: Optional[str] = None
