from .feature_types import (
    ColumnMeta,
    DatasetMeta,
    DecodedResult,
    EncodedRecord,
    LabelConfidence,
    Preprocessed,
    TrainingTensors,
)
from .pipeline import assemble, decode_output, encode_one, encode_records, encode_to_tensors, resolve_sample
from .artifacts import load_metadata, save_metadata

__all__ = [
    "ColumnMeta",
    "DatasetMeta",
    "DecodedResult",
    "EncodedRecord",
    "LabelConfidence",
    "Preprocessed",
    "TrainingTensors",
    "assemble",
    "decode_output",
    "encode_one",
    "encode_records",
    "encode_to_tensors",
    "resolve_sample",
    "load_metadata",
    "save_metadata",
]
