from pathlib import Path
import json
from .feature_types import ColumnMeta, DatasetMeta

METADATA_FILENAME = "dataset_meta.json"


def _column_payload(col: ColumnMeta) -> dict:
    return {
        "name": col.name,
        "dtype": col.dtype,
        "min": col.min,
        "max": col.max,
        "vocabulary": list(col.vocabulary) if col.vocabulary is not None else None,
    }


def _column_from_payload(payload: dict) -> ColumnMeta:
    vocabulary = payload.get("vocabulary")
    return ColumnMeta(
        name=payload["name"],
        dtype=payload["dtype"],
        min=payload.get("min"),
        max=payload.get("max"),
        vocabulary=tuple(vocabulary) if vocabulary is not None else None,
    )


def save_metadata(out_dir: Path, meta: DatasetMeta) -> Path:
    """
    Persist the dataset metadata so a later session encodes samples with the same order and vocabulary.
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "input_columns": list(meta.input_columns),
        "output_columns": list(meta.output_columns),
        "inputs": [_column_payload(meta.inputs[c]) for c in meta.input_columns],
        "outputs": [_column_payload(meta.outputs[c]) for c in meta.output_columns],
        "input_units": meta.input_units,
        "output_units": meta.output_units,
    }

    path = out_dir / METADATA_FILENAME
    path.write_text(json.dumps(payload, indent=2))

    return path


def load_metadata(path: Path) -> DatasetMeta:
    if path.is_dir():
        path = path / METADATA_FILENAME

    payload = json.loads(path.read_text())

    inputs = [_column_from_payload(c) for c in payload["inputs"]]
    outputs = [_column_from_payload(c) for c in payload["outputs"]]

    return DatasetMeta(
        input_columns=tuple(payload["input_columns"]),
        output_columns=tuple(payload["output_columns"]),
        inputs={c.name: c for c in inputs},
        outputs={c.name: c for c in outputs},
    )
