"""Transform engine — add digest columns to a dataset, reporting progress."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

from sheet_hasher import BATCH_SIZE, DERIVED_SUFFIX
from sheet_hasher.errors import PreconditionNotMet, ProcessingError
from sheet_hasher.hashing import hash_text_async
from sheet_hasher.models import Dataset, Row, Selection, TransformResult

ProgressCallback = Callable[[int], None]


# ── Helpers ──────────────────────────────────────────────────────


def derived_name(field_name: str) -> str:
    return f"{field_name}{DERIVED_SUFFIX}"


def progress_percent(processed: int, total: int) -> int:
    """Return ``processed / total`` as a whole percentage, halves rounded up."""
    if total <= 0:
        return 100
    return (200 * processed + total) // (2 * total)


def should_report(index: int, total: int, batch_size: int = BATCH_SIZE) -> bool:
    """True after the first row of every batch, and after the last row."""
    return index % batch_size == 0 or index == total - 1


def check_ready(
    dataset: Dataset | None, selection: Iterable[str] | None
) -> tuple[Dataset, list[str]]:
    """Return the dataset and the selection materialized in run order.

    Raises
    ------
    PreconditionNotMet
        If no dataset is loaded or nothing is selected.
    """
    if dataset is None:
        raise PreconditionNotMet("No dataset loaded")
    columns = list(selection or ())
    if not columns:
        raise PreconditionNotMet("No columns selected")
    return dataset, columns


def _collision_warnings(headers: list[str], columns: list[str]) -> list[str]:
    existing = set(headers)
    return [
        f"Derived column {derived_name(col)!r} already exists; its values are overwritten"
        for col in columns
        if derived_name(col) in existing
    ]


# ── Main transform ───────────────────────────────────────────────


async def transform(
    dataset: Dataset | None,
    selection: Selection | Iterable[str] | None,
    on_progress: ProgressCallback | None = None,
) -> TransformResult | None:
    """Hash every selected column of *dataset* into a new derived column.

    Returns ``None`` (and does nothing) when there is no dataset or the
    selection is empty.  The dataset itself is never mutated: the result
    holds copies of the rows with the derived fields added.

    Raises
    ------
    ProcessingError
        If hashing a cell, updating a row or reporting progress fails.
    """
    try:
        dataset, columns = check_ready(dataset, selection)
    except PreconditionNotMet:
        return None

    result = TransformResult(
        columns=columns,
        warnings=_collision_warnings(dataset.headers, columns),
    )

    def _report(value: int) -> None:
        result.progress_events.append(value)
        if on_progress is not None:
            on_progress(value)

    total = dataset.row_count
    rows: list[Row] = []
    try:
        for idx, source in enumerate(dataset.rows):
            row = source.copy()
            for col in columns:
                row[derived_name(col)] = await hash_text_async(row[col])
            rows.append(row)

            if should_report(idx, total):
                _report(progress_percent(idx + 1, total))

        if total == 0:
            _report(100)
    except Exception as exc:
        raise ProcessingError(f"{type(exc).__name__}: {exc}") from exc

    result.rows = rows
    return result


def run_transform(
    dataset: Dataset | None,
    selection: Selection | Iterable[str] | None,
    on_progress: ProgressCallback | None = None,
) -> TransformResult | None:
    """Blocking wrapper around :func:`transform`."""
    return asyncio.run(transform(dataset, selection, on_progress))
