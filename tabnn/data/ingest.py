from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
import io
import json
import numbers
import numpy as np
import polars as pl
import requests
from tabnn.commons.utils import cleanup_dataframe
from tabnn.errors import ColumnTypeAmbiguous, LoadError, UnsupportedFormat

REQUEST_TIMEOUT = 30
SUPPORTED_SUFFIXES = {".csv": "csv", ".json": "json"}


@dataclass(frozen=True)
class RawFrame:
    """
    Container for the raw records, restricted to the input and output columns in declared order.
    """

    df: pl.DataFrame
    input_columns: tuple[str, ...]
    output_columns: tuple[str, ...]

    @property
    def columns(self) -> list[str]:
        return [*self.input_columns, *self.output_columns]

    def __len__(self) -> int:
        return len(self.df)


# ======
# In-memory records
# ======


def value_kind(value: Any) -> str:
    if isinstance(value, (bool, np.bool_)):
        return "boolean"
    if isinstance(value, numbers.Integral):
        return "integer"
    if isinstance(value, numbers.Real):
        return "float"
    if isinstance(value, str):
        return "string"

    raise ColumnTypeAmbiguous(f"Unsupported value {value!r} of type {type(value).__name__}")


def _column_dtype(column: str, values: list[Any]) -> pl.DataType:
    kinds = {value_kind(v) for v in values if v is not None}

    if not kinds:
        return pl.Null
    if kinds <= {"integer"}:
        return pl.Int64
    if kinds <= {"integer", "float"}:
        return pl.Float64
    if kinds == {"string"}:
        return pl.String
    if kinds == {"boolean"}:
        return pl.Boolean

    raise ColumnTypeAmbiguous(f"Column '{column}' mixes value types: {sorted(kinds)}")


def frame_from_records(rows: Sequence[Mapping[str, Any]], columns: list[str]) -> pl.DataFrame:
    """
    Build a typed frame from in-memory records. Keys missing from a record become nulls.
    A column whose values mix numbers, strings or booleans is rejected.
    """
    data: dict[str, list[Any]] = {c: [row.get(c) for row in rows] for c in columns}

    series = []
    for c, values in data.items():
        dtype = _column_dtype(c, values)
        if dtype == pl.Float64:
            values = [float(v) if v is not None else None for v in values]
        elif dtype == pl.Int64:
            values = [int(v) if v is not None else None for v in values]
        elif dtype == pl.Boolean:
            values = [bool(v) if v is not None else None for v in values]

        series.append(pl.Series(c, values, dtype=dtype))

    return pl.DataFrame(series)


def _dtype_kind(dtype: pl.DataType) -> str | None:
    if dtype == pl.Null:
        return None
    if dtype.is_numeric():
        return "numeric"
    if dtype == pl.Boolean:
        return "boolean"

    return "string"


def append_records(frame: RawFrame, rows: Sequence[Mapping[str, Any]]) -> RawFrame:
    """
    Return a new RawFrame with rows appended. The existing frame is left untouched.
    """
    new = frame_from_records(rows, frame.columns)

    for c in frame.columns:
        old_kind, new_kind = _dtype_kind(frame.df.schema[c]), _dtype_kind(new.schema[c])
        if old_kind is not None and new_kind is not None and old_kind != new_kind:
            raise ColumnTypeAmbiguous(f"Column '{c}' holds {old_kind} values; new rows add {new_kind} values")

    df = pl.concat([frame.df.select(frame.columns), new], how="vertical_relaxed")

    return RawFrame(df=df, input_columns=frame.input_columns, output_columns=frame.output_columns)


# ======
# Files, URLs and blobs
# ======


def _find_entries(payload: Any) -> list[Mapping[str, Any]]:
    """
    JSON data is either a list of records or an object holding one; take the first list of records found.
    """
    if isinstance(payload, list) and all(isinstance(v, Mapping) for v in payload):
        return payload

    if isinstance(payload, dict):
        for value in payload.values():
            if isinstance(value, list) and all(isinstance(v, Mapping) for v in value):
                return value

    raise LoadError("JSON data must be a list of records or an object containing one")


def _format_from_suffix(locator: str) -> str:
    suffix = Path(locator).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFormat(f"Not a valid data format: {locator!r}. Must be csv or json")

    return SUPPORTED_SUFFIXES[suffix]


def _fetch(url: str) -> bytes:
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise LoadError(f"Failed to fetch {url}: {exc}") from exc

    return response.content


def _read_payload(source: str | Path | bytes) -> tuple[bytes, str]:
    if isinstance(source, (bytes, bytearray)):
        head = bytes(source).lstrip()[:1]
        return bytes(source), "json" if head in (b"[", b"{") else "csv"

    locator = str(source)

    if isinstance(source, str) and urlparse(locator).scheme in ("http", "https"):
        fmt = _format_from_suffix(urlparse(locator).path)
        return _fetch(locator), fmt

    fmt = _format_from_suffix(locator)
    try:
        return Path(locator).read_bytes(), fmt
    except OSError as exc:
        raise LoadError(f"Failed to read {locator}: {exc}") from exc


def _parse(payload: bytes, fmt: str, columns: list[str]) -> pl.DataFrame:
    if fmt == "json":
        try:
            records = _find_entries(json.loads(payload))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise LoadError(f"Failed to parse JSON: {exc}") from exc

        missing = [c for c in columns if not any(c in r for r in records)]
        if missing:
            raise LoadError(f"Missing columns in data: {missing}")

        return frame_from_records(records, columns)

    try:
        df = pl.read_csv(io.BytesIO(payload), infer_schema_length=None)
    except pl.exceptions.PolarsError as exc:
        raise LoadError(f"Failed to parse CSV: {exc}") from exc

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise LoadError(f"Missing columns in data: {missing}")

    return cleanup_dataframe(df.select(columns))


def load_raw_frame(source: str | Path | bytes, input_columns: list[str], output_columns: list[str]) -> RawFrame:
    """
    Load a CSV or JSON file, an http(s) URL or an in-memory blob into a RawFrame.
    """
    columns = [*input_columns, *output_columns]

    payload, fmt = _read_payload(source)
    df = _parse(payload, fmt, columns)

    return RawFrame(df=df, input_columns=tuple(input_columns), output_columns=tuple(output_columns))
