"""Data models used across the package."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from numbers import Integral
from typing import Any

from sheet_hasher import OUTPUT_SHEET_NAME


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


class Row(dict[str, Any]):
    """Ordered ``field -> cell value`` record.

    Reading a field the row does not hold yields ``""`` instead of raising,
    so short rows and derived columns look up uniformly.
    """

    def __missing__(self, key: str) -> str:
        return ""

    def copy(self) -> Row:
        return Row(self)


@dataclass
class Dataset:
    """First sheet of an uploaded workbook: header row plus data rows."""

    headers: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    source_name: str = ""

    def __post_init__(self) -> None:
        self.headers = _to_string_list(self.headers, "headers")
        self.rows = [row if isinstance(row, Row) else Row(row) for row in self.rows]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)


class Selection:
    """Set of header names, enumerated in the order they were first selected."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: dict[str, None] = {}
        for name in names:
            self.add(name)

    def add(self, name: str) -> None:
        if not isinstance(name, str):
            raise TypeError("selection items must be strings")
        self._names.setdefault(name, None)

    def discard(self, name: str) -> None:
        self._names.pop(name, None)

    def toggle(self, name: str) -> bool:
        """Flip *name* in or out; return ``True`` if it is now selected."""
        if name in self._names:
            self.discard(name)
            return False
        self.add(name)
        return True

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)

    def __bool__(self) -> bool:
        return bool(self._names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Selection):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Selection({list(self)!r})"


@dataclass
class ProcessingStatus:
    """Status surface shown to whoever drives a session.

    Contract invariant: ``0 <= progress <= 100``.
    """

    is_running: bool = False
    progress: int = 0
    message: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.is_running, bool):
            raise TypeError("is_running must be a bool")
        self.progress = _to_non_negative_int(self.progress, "progress")
        if self.progress > 100:
            raise ValueError("progress must be <= 100")
        if not isinstance(self.message, str):
            raise TypeError("message must be a string")

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "progress": self.progress,
            "message": self.message,
        }


@dataclass
class TransformResult:
    """Augmented rows produced by one successful run."""

    rows: list[Row] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    progress_events: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.columns = _to_string_list(self.columns, "columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        self.progress_events = [
            _to_non_negative_int(value, "progress_events") for value in self.progress_events
        ]


@dataclass
class OutputFile:
    """A generated workbook ready to hand to the user."""

    name: str
    content: bytes
    sheet_name: str = OUTPUT_SHEET_NAME
