from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from typing import Any

import pytest
from openpyxl import Workbook

XlsxFactory = Callable[..., bytes]


def build_xlsx(
    rows: Sequence[Sequence[Any]],
    *,
    extra_sheets: dict[str, Sequence[Sequence[Any]]] | None = None,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    ws.title = "Sheet1"
    for row in rows:
        ws.append(list(row))
    for title, sheet_rows in (extra_sheets or {}).items():
        extra = wb.create_sheet(title=title)
        for row in sheet_rows:
            extra.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_xlsx() -> XlsxFactory:
    return build_xlsx
