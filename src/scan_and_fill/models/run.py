"""Run state: progress events, conflicts and the per-run summary."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from scan_and_fill.models.extraction import Candidate, ExtractionStatus


class RunStatus(str, Enum):
    SCANNING = "scanning"
    PARSING = "parsing"
    WAITING_RESOLUTIONS = "waiting-resolutions"
    REVIEW_RESULTS = "review-results"
    WRITING = "writing"
    DONE = "done"
    ERROR = "error"


class FileSource(str, Enum):
    EXTRACTED = "extracted"
    CACHE = "cache"


class Conflict(BaseModel):
    """A document whose extraction needs an operator decision."""

    month: str
    category: str
    file_path: str
    file_name: str
    status: ExtractionStatus
    candidates: list[Candidate] = Field(default_factory=list)
    message: Optional[str] = None
    resolved_amount: Optional[Decimal] = None
    manual: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.resolved_amount is not None


class ProcessedFile(BaseModel):
    month: str
    category: str
    file_path: str
    status: ExtractionStatus
    amount: Decimal = Decimal("0")
    source: FileSource = FileSource.EXTRACTED


class RunStats(BaseModel):
    done: int = 0
    skipped: int = 0
    failed: int = 0
    ambiguous: int = 0
    total: int = 0


class MonthTotals(BaseModel):
    original_name: str
    categories: dict[str, Decimal] = Field(default_factory=dict)


class RunSummary(BaseModel):
    project_id: str
    months: dict[str, MonthTotals] = Field(default_factory=dict)
    files: list[ProcessedFile] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    stats: RunStats = Field(default_factory=RunStats)

    def pending_conflicts(self) -> list[Conflict]:
        return [c for c in self.conflicts if not c.is_resolved]

    def final_totals(self) -> dict[str, dict[str, Decimal]]:
        """Totals with resolved conflict amounts added on top.

        Conflicts contributed nothing during parsing, so a resolution is
        additive. The summary itself is left untouched.
        """
        totals = {
            month: dict(data.categories) for month, data in self.months.items()
        }
        for conflict in self.conflicts:
            if conflict.resolved_amount is None:
                continue
            month = totals.setdefault(conflict.month, {})
            month[conflict.category] = (
                month.get(conflict.category, Decimal("0")) + conflict.resolved_amount
            )
        return totals

    def grand_total(self) -> Decimal:
        return sum(
            (amount for month in self.final_totals().values() for amount in month.values()),
            Decimal("0"),
        )


class ProgressEvent(BaseModel):
    status: RunStatus
    message: str = ""
    progress: Optional[float] = None
    summary: Optional[RunSummary] = None
