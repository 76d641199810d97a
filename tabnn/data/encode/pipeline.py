from collections.abc import Mapping, Sequence
from typing import Any
import numpy as np
import polars as pl
import torch
from .feature_types import (
    ColumnMeta,
    DatasetMeta,
    DecodedResult,
    EncodedRecord,
    LabelConfidence,
    Preprocessed,
    Task,
    TrainingTensors,
)
from .continuous import numeric_array, transform as transform_cont, inverse_transform
from .categorical import transform as transform_cat
from tabnn.errors import MissingColumn, ShapeMismatch

# Either values in input column order (OrderedVector) or a column -> value mapping (NamedFields).
Sample = Sequence[Any] | Mapping[str, Any]


def resolve_sample(sample: Any, columns: tuple[str, ...]) -> list[Any]:
    """
    Resolve an ordered vector or a named mapping into values in column order.
    A bare scalar is accepted when there is exactly one column.
    """
    if isinstance(sample, Mapping):
        missing = [c for c in columns if c not in sample]
        if missing:
            raise MissingColumn(missing)
        return [sample[c] for c in columns]

    if isinstance(sample, (str, bytes)) or not isinstance(sample, (Sequence, np.ndarray)):
        values = [sample]
    else:
        values = list(sample)

    if len(values) != len(columns):
        raise ShapeMismatch(f"Expected {len(columns)} values for columns {list(columns)}, got {len(values)}")

    return values


def encode_column(series: pl.Series, col: ColumnMeta) -> np.ndarray:
    """
    Encode one column into a (n, col.units) float32 block.
    Both the training and the prediction path go through here, so their layouts cannot diverge.
    """
    if col.dtype == "numeric":
        if col.min is None or col.max is None:
            raise ValueError(f"Column '{col.name}' has no min/max; compute statistics before encoding")

        x = numeric_array(series)[:, None]
        return transform_cont(x, np.array([col.min]), np.array([col.max]))

    return transform_cat(series.to_list(), col.vocabulary or (), column=col.name)


def _encode_block(columns: Mapping[str, pl.Series], metas: list[ColumnMeta], n_rows: int) -> np.ndarray:
    if not metas:
        return np.empty((n_rows, 0), dtype=np.float32)

    blocks = [encode_column(columns[m.name], m) for m in metas]
    return np.concatenate(blocks, axis=1).astype(np.float32)


def encode_records(df: pl.DataFrame, meta: DatasetMeta) -> list[EncodedRecord]:
    """
    Encode every row of df into flat input/output vectors in the column order fixed by meta.
    """
    missing = [c for c in [*meta.input_columns, *meta.output_columns] if c not in df.columns]
    if missing:
        raise MissingColumn(missing)

    columns = {c: df[c] for c in df.columns}
    n_rows = len(df)

    x = _encode_block(columns, meta.ordered_inputs(), n_rows)
    y = _encode_block(columns, meta.ordered_outputs(), n_rows)

    return [EncodedRecord(inputs=x[i], outputs=y[i]) for i in range(n_rows)]


def encode_one(sample: Sample, meta: DatasetMeta) -> EncodedRecord:
    """
    Encode a single prediction sample's inputs with the same metadata used for training.
    """
    values = resolve_sample(sample, meta.input_columns)
    columns = {c: pl.Series(c, [v]) for c, v in zip(meta.input_columns, values)}

    x = _encode_block(columns, meta.ordered_inputs(), 1)

    return EncodedRecord(inputs=x[0])


def assemble(encoded: list[EncodedRecord], meta: DatasetMeta) -> TrainingTensors:
    """
    Stack encoded rows into [n, input_units] and [n, output_units] tensors.
    Rows encoded against stale metadata (e.g. before a vocabulary grew) are rejected.
    """
    if not encoded:
        raise ShapeMismatch("No encoded rows to assemble")

    input_units, output_units = meta.input_units, meta.output_units

    for i, record in enumerate(encoded):
        if record.inputs.shape != (input_units,) or record.outputs.shape != (output_units,):
            raise ShapeMismatch(
                f"Row {i} has {record.inputs.shape[0]} input / {record.outputs.shape[0]} output values, "
                f"expected {input_units} / {output_units}; re-encode after metadata changes"
            )

    inputs = np.stack([r.inputs for r in encoded]).astype(np.float32)
    outputs = np.stack([r.outputs for r in encoded]).astype(np.float32)

    return TrainingTensors(
        inputs=torch.tensor(inputs, dtype=torch.float32),
        outputs=torch.tensor(outputs, dtype=torch.float32),
    )


def encode_to_tensors(df: pl.DataFrame, meta: DatasetMeta) -> Preprocessed:
    """
    Encode a raw frame with fitted metadata and stack it into tensors.
    """
    encoded = encode_records(df, meta)
    return Preprocessed(meta=meta, tensors=assemble(encoded, meta))


def decode_output(raw_output: np.ndarray | torch.Tensor | Sequence[float], meta: DatasetMeta, task: Task) -> DecodedResult:
    """
    Turn a model output vector back into labels or values.

    Categorical columns yield labels ranked by confidence, ties kept in vocabulary order.
    Numeric columns are mapped back through the inverse min-max normalization.
    """
    if isinstance(raw_output, torch.Tensor):
        raw_output = raw_output.detach().cpu().numpy()

    raw = np.asarray(raw_output, dtype=np.float64).reshape(-1)

    if raw.shape[0] != meta.output_units:
        raise ShapeMismatch(f"Expected {meta.output_units} output values, got {raw.shape[0]}")

    output_metas = meta.ordered_outputs()
    if task == "classification" and not any(m.dtype == "categorical" for m in output_metas):
        raise ValueError("Classification needs at least one categorical output column")

    outputs: dict[str, list[LabelConfidence] | float] = {}
    offset = 0

    for col in output_metas:
        chunk = raw[offset : offset + col.units]
        offset += col.units

        if col.dtype == "categorical":
            ranked = [LabelConfidence(label=label, confidence=float(p)) for label, p in zip(col.vocabulary, chunk)]
            outputs[col.name] = sorted(ranked, key=lambda lc: lc.confidence, reverse=True)
        else:
            outputs[col.name] = float(inverse_transform(chunk[0], col.min, col.max))

    return DecodedResult(task=task, outputs=outputs, raw=raw.astype(np.float32))
