"""Field hashing — text coercion and SHA-256 digests of cell values."""

from __future__ import annotations

import asyncio
import hashlib
import math
from datetime import date, datetime, time
from typing import Any

import pandas as pd


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def coerce_text(value: Any) -> str:
    """Return the text a cell value is hashed as.

    Missing values (``None``, NaN, NaT) become ``""``.  Integral floats lose
    their ``.0`` so ``12345.0`` and ``12345`` hash alike.
    """
    if is_missing(value):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def hash_text(value: Any) -> str:
    """Return the hex SHA-256 digest of *value* coerced to text."""
    return hashlib.sha256(coerce_text(value).encode("utf-8")).hexdigest()


async def hash_text_async(value: Any) -> str:
    """Like :func:`hash_text`, but yields to the event loop first."""
    await asyncio.sleep(0)
    return hash_text(value)
