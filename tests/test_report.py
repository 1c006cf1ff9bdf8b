"""Tests for the output workbook: naming, column order and cell values."""

from __future__ import annotations

import io

import pytest
import xlrd
from openpyxl import load_workbook

from sheet_hasher.hashing import hash_text
from sheet_hasher.io import parse_workbook
from sheet_hasher.models import Dataset, Row, TransformResult
from sheet_hasher.pipeline import run_transform
from sheet_hasher.report import (
    build_output,
    derived_headers,
    is_legacy_xls,
    output_file_name,
    serialize_workbook,
    serialize_xls_workbook,
)


def _rows_of(content: bytes) -> list[list[object]]:
    wb = load_workbook(io.BytesIO(content))
    assert wb.sheetnames == ["Encrypted Data"]
    ws = wb["Encrypted Data"]
    return [list(r) for r in ws.iter_rows(values_only=True)]


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("people.xlsx", "people_encrypted.xlsx"),
        ("People.XLSX", "People_encrypted.XLSX"),
        ("legacy.xls", "legacy_encrypted.xls"),
        ("Legacy.XLS", "Legacy_encrypted.XLS"),
        ("archive.2024.xlsx", "archive.2024_encrypted.xlsx"),
        ("data.csv", "data.csv_encrypted.xlsx"),
        ("data", "data_encrypted.xlsx"),
        ("", "workbook_encrypted.xlsx"),
    ],
)
def test_output_file_name(source: str, expected: str) -> None:
    assert output_file_name(source) == expected


def test_derived_headers_follow_selection_order() -> None:
    assert derived_headers(["a", "b", "c"], ["c", "a"]) == ["a", "b", "c", "c密文", "a密文"]


def test_serialize_single_row_scenario() -> None:
    ds = Dataset(
        headers=["name", "phone"],
        rows=[{"name": "Alice", "phone": "12345"}],
        source_name="people.xlsx",
    )
    result = run_transform(ds, ["phone"])
    assert result is not None

    out = build_output(ds, result)

    assert out.name == "people_encrypted.xlsx"
    rows = _rows_of(out.content)
    assert rows == [
        ["name", "phone", "phone密文"],
        ["Alice", "12345", hash_text("12345")],
    ]


def test_serialize_keeps_non_selected_values_unchanged() -> None:
    rows = [
        Row({"id": 1, "note": "=SUM(A1:A2)", "amount": 2.5, "phone": "555"}),
        Row({"id": 2, "note": "+plain", "amount": 0, "phone": ""}),
    ]
    digests = [hash_text("555"), hash_text("")]
    for row, digest in zip(rows, digests):
        row["phone密文"] = digest

    content = serialize_workbook(["id", "note", "amount", "phone"], ["phone"], rows)

    out = _rows_of(content)
    assert out[0] == ["id", "note", "amount", "phone", "phone密文"]
    assert out[1] == [1, "=SUM(A1:A2)", 2.5, "555", digests[0]]
    assert out[2] == [2, "+plain", 0, None, digests[1]]


def test_formula_like_text_is_stored_as_string() -> None:
    content = serialize_workbook(["f"], [], [Row({"f": "=1+1"})])

    wb = load_workbook(io.BytesIO(content))
    cell = wb["Encrypted Data"]["A2"]
    assert cell.data_type == "s"
    assert cell.value == "=1+1"


def test_serialize_header_only_result() -> None:
    content = serialize_workbook(["a"], ["a"], [])

    rows = _rows_of(content)
    assert rows == [["a", "a密文"]]


def test_header_row_is_styled_and_frozen() -> None:
    content = serialize_workbook(["a"], ["a"], [Row({"a": "x", "a密文": hash_text("x")})])

    ws = load_workbook(io.BytesIO(content))["Encrypted Data"]
    assert ws.freeze_panes == "A2"
    assert ws["A1"].font.bold is True
    assert ws.column_dimensions["B"].width == 68


def test_build_output_uses_result_columns_order() -> None:
    ds = Dataset(headers=["a", "b"], rows=[{"a": "1", "b": "2"}], source_name="x.xlsx")
    result = TransformResult(
        rows=[Row({"a": "1", "b": "2", "b密文": "h2", "a密文": "h1"})],
        columns=["b", "a"],
    )

    out = build_output(ds, result)

    rows = _rows_of(out.content)
    assert out.name == "x_encrypted.xlsx"
    assert rows[0] == ["a", "b", "b密文", "a密文"]
    assert rows[1] == ["1", "2", "h2", "h1"]


def _xls_rows_of(content: bytes) -> list[list[object]]:
    book = xlrd.open_workbook(file_contents=content)
    assert book.sheet_names() == ["Encrypted Data"]
    sheet = book.sheet_by_index(0)
    return [sheet.row_values(r) for r in range(sheet.nrows)]


def test_is_legacy_xls() -> None:
    assert is_legacy_xls("legacy_encrypted.xls")
    assert is_legacy_xls("LEGACY_encrypted.XLS")
    assert not is_legacy_xls("people_encrypted.xlsx")


def test_build_output_for_xls_source_writes_biff_workbook() -> None:
    ds = Dataset(
        headers=["name", "phone"],
        rows=[{"name": "Alice", "phone": "12345"}, {"name": "Bob", "phone": ""}],
        source_name="legacy.xls",
    )
    result = run_transform(ds, ["phone"])
    assert result is not None

    out = build_output(ds, result)

    assert out.name == "legacy_encrypted.xls"
    assert out.content.startswith(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1")
    assert _xls_rows_of(out.content) == [
        ["name", "phone", "phone密文"],
        ["Alice", "12345", hash_text("12345")],
        ["Bob", "", hash_text("")],
    ]


def test_xls_output_reads_back_through_parser() -> None:
    rows = [Row({"id": 7, "note": "=SUM(A1:A2)", "id密文": hash_text(7)})]

    content = serialize_xls_workbook(["id", "note"], ["id"], rows)

    ds = parse_workbook(content, "legacy_encrypted.xls")
    assert ds.headers == ["id", "note", "id密文"]
    assert ds.rows[0]["id"] == 7
    assert ds.rows[0]["note"] == "=SUM(A1:A2)"
    assert ds.rows[0]["id密文"] == hash_text("7")


def test_xls_output_rejects_too_many_columns() -> None:
    headers = [f"c{i}" for i in range(256)]

    with pytest.raises(ValueError, match="Too many columns"):
        serialize_xls_workbook(headers, ["c0"], [])


def test_control_characters_are_removed_from_xlsx_cells() -> None:
    digest = hash_text("x\x07y")
    rows = [Row({"a": "x\x07y", "a密文": digest}), Row({"a": "\x00\x01", "a密文": "h"})]

    content = serialize_workbook(["a"], ["a"], rows)

    assert _rows_of(content) == [
        ["a", "a密文"],
        ["xy", digest],
        [None, "h"],
    ]
