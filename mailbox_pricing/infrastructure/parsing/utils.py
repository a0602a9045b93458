"""Shared parsing utilities for workbook ingestion."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path

import pandas as pd

_TRUE_VALUES = {"TRUE", "YES", "Y", "1", "T", "X"}


def ensure_bytes(source: BytesIO | Path | str | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    s = str(value).strip()
    return not s or s.upper() in {"NAN", "NAT", "NONE"}


def clean_text(value: object) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def parse_decimal(value: object) -> Decimal:
    if is_blank(value):
        return Decimal("0")
    s = str(value).strip()
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in [",", "$", " "]:
        s = s.replace(ch, "")
    try:
        result = Decimal(s)
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}") from None
    return -result if negative else result


def parse_date(value: object) -> date | None:
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(str(value).strip(), errors="coerce")
    if pd.isna(parsed):
        raise ValueError(f"Not a date: {value!r}")
    return parsed.date()


def parse_bool(value: object) -> bool:
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().upper() in _TRUE_VALUES


def parse_int(value: object) -> int:
    if is_blank(value):
        raise ValueError("Missing integer value")
    return int(Decimal(str(value).strip()))
