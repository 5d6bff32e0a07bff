"""Walk a project root: <root>/<month folder>/<category folder>/*.pdf."""

from __future__ import annotations

import logging
from pathlib import Path

from scan_and_fill.config import SUPPORTED_EXTENSIONS
from scan_and_fill.errors import PathNotFoundError
from scan_and_fill.models.scan import MonthFolder, ScanResult
from scan_and_fill.scanner.months import identify_month

logger = logging.getLogger(__name__)


def _subdirectories(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_dir())


def _find_pdfs(directory: Path) -> list[Path]:
    """Immediate PDF files of a directory, case-insensitive on the extension."""
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def scan(
    root_path: str | Path,
    category_mapping: dict[str, str] | None = None,
    month_filter: str | None = None,
) -> ScanResult:
    """Build the month -> category -> files structure for a project root.

    Folders that do not name a month are skipped. ``category_mapping`` renames
    category folders; ``month_filter`` (any recognised spelling) restricts the
    scan to one month. Categories without PDFs are left out.
    """
    root = Path(root_path)
    if not root.is_dir():
        raise PathNotFoundError(root)
    category_mapping = category_mapping or {}

    wanted = None
    if month_filter:
        wanted = identify_month(month_filter)
        if wanted is None:
            logger.warning("Month filter %r is not a recognised month, scanning all months", month_filter)

    result = ScanResult(root_path=str(root.resolve()))

    for month_dir in _subdirectories(root):
        info = identify_month(month_dir.name)
        if info is None:
            logger.debug("Skipping %s: not a month folder", month_dir.name)
            continue
        if wanted is not None and wanted.index != info.index:
            continue

        month = result.months.setdefault(
            info.name, MonthFolder(index=info.index, original_name=month_dir.name)
        )

        try:
            category_dirs = _subdirectories(month_dir)
        except OSError as exc:
            logger.warning("Cannot list month folder %s, skipped: %s", month_dir.name, exc)
            continue

        for category_dir in category_dirs:
            try:
                pdfs = _find_pdfs(category_dir)
            except OSError as exc:
                logger.warning(
                    "Cannot list category folder %s/%s, skipped: %s",
                    month_dir.name, category_dir.name, exc,
                )
                continue
            if not pdfs:
                continue
            category = category_mapping.get(category_dir.name) or category_dir.name
            month.categories.setdefault(category, []).extend(
                str(p.resolve()) for p in pdfs
            )

    # Calendar order, whatever the folder names sort to
    result.months = dict(sorted(result.months.items(), key=lambda item: item[1].index))

    logger.info(
        "Scanned %s: %d month(s), %d document(s)",
        root, len(result.months), result.file_count(),
    )
    return result
