"""Exception hierarchy.

Ambiguous or failed extractions are not errors: they are result states on
``ExtractionResult`` and end up as conflicts. The exceptions below are raised
for conditions that a caller has to handle.
"""


class ScanFillError(Exception):
    """Base class for all scan-and-fill errors."""


class PathNotFoundError(ScanFillError):
    """The root folder of a scan does not exist."""

    def __init__(self, path) -> None:
        self.path = str(path)
        super().__init__(f"Path does not exist: {self.path}")


class DocumentUnreadableError(ScanFillError):
    """A document could not be opened or parsed."""


class OCRFailureError(ScanFillError):
    """Rasterization or text recognition failed."""


class SpreadsheetError(ScanFillError):
    """Base class for spreadsheet sink failures."""


class SpreadsheetNotFoundError(SpreadsheetError):
    def __init__(self, path) -> None:
        self.path = str(path)
        super().__init__(f"File not found: {self.path}")


class WorksheetNotFoundError(SpreadsheetError):
    def __init__(self, sheet_name: str) -> None:
        self.sheet_name = sheet_name
        super().__init__(f"Worksheet not found: {sheet_name}")


class UnsupportedSpreadsheetError(SpreadsheetError):
    """The spreadsheet format cannot be read or written."""


class RunInProgressError(ScanFillError):
    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"A run is already in progress for project {project_id!r}")


class RunCancelledError(ScanFillError):
    """A run was cancelled at a file boundary."""
