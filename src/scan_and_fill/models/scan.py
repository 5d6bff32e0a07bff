"""Result of walking a project's month/category folder tree."""

from pydantic import BaseModel, Field


class MonthFolder(BaseModel):
    index: int
    original_name: str
    # category name -> absolute PDF paths
    categories: dict[str, list[str]] = Field(default_factory=dict)


class ScanResult(BaseModel):
    root_path: str
    # canonical English month name -> folder contents
    months: dict[str, MonthFolder] = Field(default_factory=dict)

    def file_count(self) -> int:
        return sum(
            len(paths)
            for month in self.months.values()
            for paths in month.categories.values()
        )
