from pathlib import Path
from tabnn.data.ingest import RawFrame, load_raw_frame
from tabnn.data.metadata import compute_stats, infer_schema
from tabnn.data.encode import Preprocessed, encode_to_tensors
from tabnn.data.encode.feature_types import ColumnType


def prepare(
    raw: RawFrame,
    column_types: dict[str, ColumnType] | None = None,
    categorical_outputs: bool = False,
) -> Preprocessed:
    """Schema inference → statistics → encoding → tensors, all over the full raw frame."""
    meta = infer_schema(
        raw.df,
        list(raw.input_columns),
        list(raw.output_columns),
        column_types=column_types,
        categorical_outputs=categorical_outputs,
    )
    meta = compute_stats(raw.df, meta)

    return encode_to_tensors(raw.df, meta)


def preprocess_source(
    source: str | Path | bytes,
    input_columns: list[str],
    output_columns: list[str],
    column_types: dict[str, ColumnType] | None = None,
    categorical_outputs: bool = False,
) -> Preprocessed:
    """Full preprocessing pipeline: CSV/JSON → typed frame → metadata → tensors."""
    raw = load_raw_frame(source, input_columns, output_columns)

    return prepare(raw, column_types=column_types, categorical_outputs=categorical_outputs)
