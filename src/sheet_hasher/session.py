"""Session controller — holds the loaded dataset, selection and status."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from sheet_hasher.errors import (
    LOAD_FAILED_MESSAGE,
    PROCESSING_FAILED_MESSAGE,
    ParseError,
    ProcessingError,
)
from sheet_hasher.io import load_dataset, parse_workbook
from sheet_hasher.models import Dataset, OutputFile, ProcessingStatus, Selection
from sheet_hasher.pipeline import ProgressCallback, transform
from sheet_hasher.report import build_output

LOADED_MESSAGE = "File loaded"
RUNNING_MESSAGE = "Encrypting selected columns..."
DONE_MESSAGE = "Encryption complete! The encrypted file is ready."


class Session:
    """In-memory state for one user working on one workbook at a time.

    The pipeline functions stay stateless; this object owns everything that
    changes between calls.  While a run is in progress, loading and
    selection changes are ignored.
    """

    def __init__(self) -> None:
        self.dataset: Dataset | None = None
        self.selection = Selection()
        self.status = ProcessingStatus()
        self.output: OutputFile | None = None
        self.warnings: list[str] = []

    # ── Loading ──────────────────────────────────────────────────

    def load(self, data: bytes, source_name: str) -> Dataset | None:
        """Parse *data* and make it the current dataset.

        On :class:`ParseError` the previous dataset is kept, the status message
        reports the load failure and the error is re-raised.
        """
        if self.status.is_running:
            return None
        try:
            dataset = parse_workbook(data, source_name)
        except ParseError:
            self.status = ProcessingStatus(message=LOAD_FAILED_MESSAGE)
            raise
        self._replace_dataset(dataset)
        return dataset

    def load_file(self, path: Path) -> Dataset | None:
        if self.status.is_running:
            return None
        try:
            dataset = load_dataset(path)
        except (ParseError, OSError):
            self.status = ProcessingStatus(message=LOAD_FAILED_MESSAGE)
            raise
        self._replace_dataset(dataset)
        return dataset

    def _replace_dataset(self, dataset: Dataset) -> None:
        self.dataset = dataset
        self.selection = Selection()
        self.output = None
        self.warnings = []
        self.status = ProcessingStatus(message=LOADED_MESSAGE)

    # ── Selection ────────────────────────────────────────────────

    def _require_header(self, column: str) -> None:
        if self.dataset is None or column not in self.dataset.headers:
            raise KeyError(f"Unknown column: {column!r}")

    def toggle(self, column: str) -> bool:
        """Flip *column* in or out of the selection; return whether it is selected."""
        if self.status.is_running:
            return column in self.selection
        self._require_header(column)
        return self.selection.toggle(column)

    def select(self, columns: Iterable[str]) -> None:
        """Add each of *columns* to the selection, in the given order."""
        if self.status.is_running:
            return
        for column in columns:
            self._require_header(column)
            self.selection.add(column)

    # ── Processing ───────────────────────────────────────────────

    @property
    def can_process(self) -> bool:
        return self.dataset is not None and bool(self.selection) and not self.status.is_running

    async def process(self, on_progress: ProgressCallback | None = None) -> OutputFile | None:
        """Hash the selected columns and build the output workbook.

        Returns ``None`` with the status untouched when there is nothing to do.

        Raises
        ------
        ProcessingError
            If the run or the serialization fails.  The status is reset to
            not-running with zero progress and no output is kept.
        """
        if not self.can_process or self.dataset is None:
            return None

        dataset = self.dataset
        self.status = ProcessingStatus(is_running=True, progress=0, message=RUNNING_MESSAGE)

        def _on_progress(value: int) -> None:
            self.status.progress = value
            if on_progress is not None:
                on_progress(value)

        try:
            result = await transform(dataset, self.selection, _on_progress)
            if result is None:
                self.status = ProcessingStatus()
                return None
            try:
                output = build_output(dataset, result)
            except Exception as exc:
                raise ProcessingError(f"{type(exc).__name__}: {exc}") from exc
        except ProcessingError:
            self.output = None
            self.status = ProcessingStatus(message=PROCESSING_FAILED_MESSAGE)
            raise

        self.output = output
        self.warnings = list(result.warnings)
        self.status = ProcessingStatus(is_running=False, progress=100, message=DONE_MESSAGE)
        return output

    def process_sync(self, on_progress: ProgressCallback | None = None) -> OutputFile | None:
        """Blocking wrapper around :meth:`process`."""
        return asyncio.run(self.process(on_progress))

    # ── Misc ─────────────────────────────────────────────────────

    def reset(self) -> None:
        self.dataset = None
        self.selection = Selection()
        self.status = ProcessingStatus()
        self.output = None
        self.warnings = []

    def summary(self) -> str:
        if self.dataset is None:
            return "No file loaded"
        ds = self.dataset
        return f"{ds.source_name}: {ds.row_count} rows, {ds.column_count} fields"
