"""I/O helpers — turn workbook bytes into a Dataset, write output files."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd

from sheet_hasher.errors import ParseError
from sheet_hasher.hashing import coerce_text, is_missing
from sheet_hasher.models import Dataset, OutputFile, Row

_ZIP_SIGNATURE = b"PK\x03\x04"
_OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# ── Loading ──────────────────────────────────────────────────────


def sniff_engine(data: bytes) -> str:
    """Return the pandas Excel engine able to read *data*.

    Raises
    ------
    ParseError
        If *data* is neither a ZIP (.xlsx family) nor an OLE2 (.xls) container.
    """
    if data.startswith(_ZIP_SIGNATURE):
        return "openpyxl"
    if data.startswith(_OLE2_SIGNATURE):
        return "xlrd"
    raise ParseError("Not a recognizable spreadsheet (expected .xlsx or .xls content)")


def _read_first_sheet(data: bytes, engine: str) -> pd.DataFrame:
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    try:
        return read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=object,
            na_filter=False,
            engine=engine,
        )
    except ImportError as exc:
        raise ParseError(
            "Unsupported .xls input unless 'xlrd' is installed. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc
    except Exception as exc:
        raise ParseError(f"Could not read workbook ({type(exc).__name__}: {exc})") from exc


def _header_cells(values: list[Any]) -> list[str]:
    headers = [coerce_text(value) for value in values]
    while headers and headers[-1] == "":
        headers.pop()
    return headers


def _build_row(headers: list[str], values: list[Any]) -> Row:
    row = Row()
    for idx, header in enumerate(headers):
        value = values[idx] if idx < len(values) else None
        row[header] = "" if is_missing(value) else value
    return row


def parse_workbook(data: bytes, source_name: str = "") -> Dataset:
    """Parse the first sheet of workbook *data* into a :class:`Dataset`.

    The first row is the header row; every later row becomes a :class:`Row`
    keyed by header, with absent cells stored as ``""``.

    Raises
    ------
    ParseError
        If the bytes are not a workbook, cannot be read, or the sheet is empty.
    """
    engine = sniff_engine(bytes(data))
    frame = _read_first_sheet(bytes(data), engine)
    if frame.empty:
        raise ParseError("The first sheet has no rows (a header row is required)")

    records = frame.astype(object).values.tolist()
    headers = _header_cells(records[0])
    rows = [_build_row(headers, values) for values in records[1:]]
    return Dataset(headers=headers, rows=rows, source_name=source_name)


def load_dataset(path: Path) -> Dataset:
    """Read the workbook at *path* and parse it.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ParseError
        If *path* is a directory or its contents cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ParseError(f"Input path is a directory, not a file: {path}")
    return parse_workbook(path.read_bytes(), source_name=path.name)


# ── Writing ──────────────────────────────────────────────────────


def write_output(out_dir: Path, output: OutputFile) -> Path:
    """Write *output* into *out_dir* atomically and return the final path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / output.name
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(output.content)
    tmp_path.replace(path)
    return path
