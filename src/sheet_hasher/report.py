"""Excel writer — produces ``<name>_encrypted.xlsx`` / ``.xls`` from transformed rows."""

from __future__ import annotations

import io
import re
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import xlwt
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE, Cell
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from sheet_hasher import OUTPUT_SHEET_NAME, OUTPUT_SUFFIX
from sheet_hasher.hashing import coerce_text, is_missing
from sheet_hasher.models import Dataset, OutputFile, Row, TransformResult
from sheet_hasher.pipeline import derived_name

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4F46E5", end_color="4F46E5", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center")

XLS_HEADER_STYLE = xlwt.easyxf("font: bold on; align: horiz center")
XLS_DATE_STYLE = xlwt.easyxf(num_format_str="yyyy-mm-dd hh:mm:ss")

_AUTO_WIDTH_SAMPLE_ROWS = 300
_MAX_COLUMN_WIDTH = 70  # a digest is 64 characters
_SOURCE_EXT_RE = re.compile(r"\.xlsx?$", re.IGNORECASE)

# BIFF8 sheet limits
_XLS_MAX_ROWS = 65536
_XLS_MAX_COLUMNS = 256


# ── Naming ───────────────────────────────────────────────────────


def output_file_name(source_name: str) -> str:
    """Return the download name for a workbook loaded from *source_name*.

    The source extension is kept: ``people.xlsx`` -> ``people_encrypted.xlsx``,
    ``legacy.xls`` -> ``legacy_encrypted.xls``.  Names without a spreadsheet
    extension keep their full text: ``data.csv`` -> ``data.csv_encrypted.xlsx``.
    """
    name = source_name or ""
    match = _SOURCE_EXT_RE.search(name)
    if match is None:
        return f"{name or 'workbook'}{OUTPUT_SUFFIX}.xlsx"
    base = name[: match.start()] or "workbook"
    return f"{base}{OUTPUT_SUFFIX}{match.group(0)}"


def is_legacy_xls(file_name: str) -> bool:
    return file_name.lower().endswith(".xls")


def derived_headers(headers: Sequence[str], columns: Iterable[str]) -> list[str]:
    """Original headers, then one derived header per selected column."""
    return [*headers, *(derived_name(col) for col in columns)]


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, _MAX_COLUMN_WIDTH)


def _excel_value(val: Any) -> Any:
    if is_missing(val) or (isinstance(val, str) and val == ""):
        return None
    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)
    if isinstance(val, str):
        # Control characters are not allowed in xlsx cell text.
        return ILLEGAL_CHARACTERS_RE.sub("", val) or None
    return val


def _write_cell(ws: Worksheet, row: int, column: int, val: Any) -> Cell:
    cell = ws.cell(row=row, column=column, value=_excel_value(val))
    # openpyxl turns any "=..." string into a formula; keep it as text.
    if isinstance(val, str) and val.startswith("="):
        cell.data_type = "s"
    return cell


def _write_xls_cell(ws: Any, row: int, column: int, val: Any, style: Any = None) -> None:
    val = _excel_value(val)
    if val is None:
        return
    if isinstance(val, (datetime, date, time)):
        ws.write(row, column, val, style or XLS_DATE_STYLE)
        return
    if not isinstance(val, (str, bool, int, float, Decimal)):
        val = coerce_text(val)
    if style is None:
        ws.write(row, column, val)
    else:
        ws.write(row, column, val, style)


# ── Public API ───────────────────────────────────────────────────


def serialize_workbook(
    headers: Sequence[str], columns: Iterable[str], rows: Iterable[Row],
) -> bytes:
    """Write headers plus derived headers and *rows* into one xlsx sheet, as bytes."""
    out_headers = derived_headers(headers, columns)

    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = OUTPUT_SHEET_NAME

    for c_idx, name in enumerate(out_headers, 1):
        _write_cell(ws, 1, c_idx, name)
    for r_idx, row in enumerate(rows, 2):
        for c_idx, name in enumerate(out_headers, 1):
            _write_cell(ws, r_idx, c_idx, row[name])

    if out_headers:
        _style_header(ws, len(out_headers))
        ws.freeze_panes = "A2"
        _auto_width(ws)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def serialize_xls_workbook(
    headers: Sequence[str], columns: Iterable[str], rows: Sequence[Row],
) -> bytes:
    """Same layout as :func:`serialize_workbook`, as a legacy BIFF8 ``.xls``.

    Raises
    ------
    ValueError
        If the data does not fit the format's 65536 x 256 sheet limit.
    """
    out_headers = derived_headers(headers, columns)
    if len(out_headers) > _XLS_MAX_COLUMNS:
        raise ValueError(f"Too many columns for .xls output: {len(out_headers)} > 256")
    if len(rows) + 1 > _XLS_MAX_ROWS:
        raise ValueError(f"Too many rows for .xls output: {len(rows) + 1} > 65536")

    wb = xlwt.Workbook(encoding="utf-8")
    ws = wb.add_sheet(OUTPUT_SHEET_NAME)

    for c_idx, name in enumerate(out_headers):
        _write_xls_cell(ws, 0, c_idx, name, XLS_HEADER_STYLE)
    for r_idx, row in enumerate(rows, 1):
        for c_idx, name in enumerate(out_headers):
            _write_xls_cell(ws, r_idx, c_idx, row[name])

    if out_headers:
        ws.set_panes_frozen(True)
        ws.set_horz_split_pos(1)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_output(dataset: Dataset, result: TransformResult) -> OutputFile:
    """Serialize *result* against *dataset*'s headers into an :class:`OutputFile`.

    The container follows the output name: ``.xls`` sources get a BIFF8
    workbook, everything else an xlsx one.
    """
    name = output_file_name(dataset.source_name)
    if is_legacy_xls(name):
        content = serialize_xls_workbook(dataset.headers, result.columns, result.rows)
    else:
        content = serialize_workbook(dataset.headers, result.columns, result.rows)
    return OutputFile(name=name, content=content)
