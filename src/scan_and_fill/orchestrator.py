"""Drive a run: scan, extract or reuse cached amounts, collect conflicts, write totals.

State machine::

    scanning -> parsing -> waiting-resolutions | review-results -> writing -> done
                                  (error reachable from every state)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, Protocol

from scan_and_fill.errors import (
    RunCancelledError,
    RunInProgressError,
    ScanFillError,
    SpreadsheetError,
)
from scan_and_fill.extraction.pipeline import Extractor
from scan_and_fill.models.extraction import ExtractionResult, ExtractionStatus
from scan_and_fill.models.project import Project, SheetMapping
from scan_and_fill.models.run import (
    Conflict,
    FileSource,
    MonthTotals,
    ProcessedFile,
    ProgressEvent,
    RunStatus,
    RunSummary,
)
from scan_and_fill.scanner.folders import scan
from scan_and_fill.spreadsheet.workbook import WorkbookSink
from scan_and_fill.storage.caches import Caches, ManualEntry
from scan_and_fill.storage.local_json import try_lock

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class SheetSink(Protocol):
    def update_sheet(self, file_path: str, sheet_name: str, mapping: SheetMapping,
                     data: dict[str, dict[str, Decimal]]) -> object: ...


def _noop(event: ProgressEvent) -> None:
    pass


class Orchestrator:
    def __init__(
        self,
        caches: Caches,
        extractor: Extractor | None = None,
        sink: SheetSink | None = None,
        max_workers: int = 1,
    ) -> None:
        self.caches = caches
        self.extractor = extractor or Extractor(caches.ocr)
        self.sink = sink or WorkbookSink()
        self.max_workers = max(1, max_workers)

    # -- run -----------------------------------------------------------------

    def run(
        self,
        project: Project,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> RunSummary:
        """Process every document of a project. Conflicts are left for the operator."""
        emit = on_progress or _noop
        # Shared by every process using this data directory
        lock_path = self.caches.extraction.directory / f"run-{project.id}.lock"
        with try_lock(lock_path) as acquired:
            if not acquired:
                raise RunInProgressError(project.id)
            try:
                return self._run(project, emit, cancel)
            except RunCancelledError:
                emit(ProgressEvent(status=RunStatus.ERROR, message="Run cancelled"))
                raise
            except (ScanFillError, OSError) as exc:
                logger.error("Run %s failed: %s", project.id, exc)
                emit(ProgressEvent(status=RunStatus.ERROR, message=str(exc)))
                raise

    def _run(
        self,
        project: Project,
        emit: ProgressCallback,
        cancel: threading.Event | None,
    ) -> RunSummary:
        if project.force_rescan:
            self.caches.extraction.clear(project.id)

        emit(ProgressEvent(status=RunStatus.SCANNING, message="Scanning directory structure..."))
        scan_result = scan(project.root_path, project.category_mapping, project.month_filter)

        jobs = [
            (month_name, category, path)
            for month_name, month in scan_result.months.items()
            for category, paths in month.categories.items()
            for path in paths
        ]
        summary = RunSummary(project_id=project.id)
        summary.stats.total = len(jobs)
        for month_name, month in scan_result.months.items():
            summary.months[month_name] = MonthTotals(
                original_name=month.original_name,
                categories={category: Decimal("0") for category in month.categories},
            )

        for done, (job, outcome) in enumerate(self._outcomes(project, jobs, cancel), start=1):
            month_name, category, path = job
            self._record(project, summary, month_name, category, path, *outcome)
            emit(ProgressEvent(
                status=RunStatus.PARSING,
                message=f"Processing {month_name} - {category}: {Path(path).name}",
                progress=done / len(jobs) * 100,
            ))

        stats = summary.stats
        logger.info(
            "Run %s: %d done, %d skipped, %d ambiguous, %d failed of %d",
            project.id, stats.done, stats.skipped, stats.ambiguous, stats.failed, stats.total,
        )
        if summary.conflicts:
            emit(ProgressEvent(
                status=RunStatus.WAITING_RESOLUTIONS,
                message=f"Waiting for manual resolutions ({len(summary.conflicts)} conflict(s))...",
                progress=100.0,
                summary=summary,
            ))
        else:
            emit(ProgressEvent(
                status=RunStatus.REVIEW_RESULTS,
                message="All documents processed, ready for review.",
                progress=100.0,
                summary=summary,
            ))
        return summary

    def _lookup(self, project: Project, path: str) -> Decimal | None:
        if project.force_rescan:
            return None
        entry = self.caches.extraction.get_valid_entry(project.id, path)
        return entry.amount if entry else None

    def _outcomes(
        self,
        project: Project,
        jobs: list[tuple[str, str, str]],
        cancel: threading.Event | None,
    ) -> Iterator[tuple[tuple[str, str, str], tuple[Decimal | None, ExtractionResult | None]]]:
        """Yield (job, (cached amount, extraction result)) in scan order.

        With more than one worker, extraction is submitted to a thread pool but
        results are still consumed in order, so progress only ever increases.
        """
        def check_cancel() -> None:
            if cancel is not None and cancel.is_set():
                raise RunCancelledError("Run cancelled")

        if self.max_workers == 1:
            for job in jobs:
                check_cancel()
                cached = self._lookup(project, job[2])
                if cached is not None:
                    yield job, (cached, None)
                else:
                    yield job, (None, self.extractor.extract_amount(
                        job[2], project.amount_pattern, cancel=cancel
                    ))
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            pending: list[tuple[tuple[str, str, str], Decimal | None, Future | None]] = []
            for job in jobs:
                cached = self._lookup(project, job[2])
                future = None
                if cached is None:
                    future = pool.submit(
                        self.extractor.extract_amount, job[2], project.amount_pattern, cancel
                    )
                pending.append((job, cached, future))
            try:
                for job, cached, future in pending:
                    check_cancel()
                    yield job, (cached, future.result() if future else None)
            finally:
                for _, _, future in pending:
                    if future is not None:
                        future.cancel()

    def _record(
        self,
        project: Project,
        summary: RunSummary,
        month_name: str,
        category: str,
        path: str,
        cached: Decimal | None,
        result: ExtractionResult | None,
    ) -> None:
        totals = summary.months[month_name].categories
        if cached is not None:
            totals[category] += cached
            summary.stats.skipped += 1
            summary.files.append(ProcessedFile(
                month=month_name, category=category, file_path=path,
                status=ExtractionStatus.SUCCESS, amount=cached, source=FileSource.CACHE,
            ))
            return

        summary.files.append(ProcessedFile(
            month=month_name, category=category, file_path=path,
            status=result.status, amount=result.amount,
        ))
        if result.is_success:
            totals[category] += result.amount
            summary.stats.done += 1
            self.caches.extraction.update_entry(project.id, path, result.amount)
            return

        if result.status == ExtractionStatus.AMBIGUOUS:
            summary.stats.ambiguous += 1
        else:
            summary.stats.failed += 1
        summary.conflicts.append(Conflict(
            month=month_name,
            category=category,
            file_path=path,
            file_name=Path(path).name,
            status=result.status,
            candidates=result.candidates,
            message=result.message,
        ))

    # -- resolution ----------------------------------------------------------

    def resolve(self, conflict: Conflict, amount: Decimal, manual: bool = False) -> Conflict:
        """Record the operator's amount for a conflict.

        ``manual`` means the amount was typed rather than picked from the
        candidates; it is then remembered for this document's content.
        """
        conflict.resolved_amount = Decimal(amount)
        conflict.manual = manual
        if manual:
            self.caches.manual.put(conflict.file_path, conflict.resolved_amount)
        return conflict

    def manual_entry_for(self, path: str | Path) -> ManualEntry | None:
        return self.caches.manual.get(path)

    # -- finalization --------------------------------------------------------

    def finalize(
        self,
        project: Project,
        summary: RunSummary,
        on_progress: ProgressCallback | None = None,
    ) -> ProgressEvent:
        """Add resolved amounts to the totals and hand them to the spreadsheet sink."""
        emit = on_progress or _noop
        emit(ProgressEvent(status=RunStatus.WRITING, message="Writing totals..."))

        for conflict in summary.conflicts:
            if conflict.resolved_amount is not None:
                self.caches.extraction.update_entry(
                    project.id, conflict.file_path, conflict.resolved_amount
                )
        pending = summary.pending_conflicts()
        if pending:
            logger.warning("Finalizing with %d unresolved conflict(s) counted as 0", len(pending))

        if project.spreadsheet is None:
            event = ProgressEvent(status=RunStatus.ERROR, message="Project has no spreadsheet configured")
            emit(event)
            return event

        config = project.spreadsheet
        try:
            self.sink.update_sheet(
                config.file_path, config.sheet_name, config.mapping(), summary.final_totals()
            )
        except (SpreadsheetError, OSError, ValueError, KeyError) as exc:
            logger.error("Writing %s failed: %s", config.file_path, exc)
            event = ProgressEvent(status=RunStatus.ERROR, message=str(exc))
            emit(event)
            return event

        event = ProgressEvent(status=RunStatus.DONE, message="Spreadsheet updated successfully!")
        emit(event)
        return event

    def clear_project_cache(self, project_id: str) -> int:
        return self.caches.extraction.clear(project_id)
