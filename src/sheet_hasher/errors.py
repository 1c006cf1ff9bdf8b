"""Error kinds raised across the package."""

from __future__ import annotations

LOAD_FAILED_MESSAGE = "Could not load the file. Is it a valid .xlsx or .xls workbook?"
PROCESSING_FAILED_MESSAGE = "Processing failed, please try again."


class SheetHasherError(Exception):
    """Base class for every error this package raises on purpose."""


class ParseError(SheetHasherError, ValueError):
    """The input is not a readable spreadsheet, or its first sheet is empty."""


class PreconditionNotMet(SheetHasherError):
    """No dataset loaded or nothing selected. Callers treat this as a no-op."""


class ProcessingError(SheetHasherError, RuntimeError):
    """A run failed part-way; nothing from it may be exported."""

    def __init__(self, detail: str = "", message: str = PROCESSING_FAILED_MESSAGE) -> None:
        super().__init__(detail or message)
        self.detail = detail
        self.message = message
