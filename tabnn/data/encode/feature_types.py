from dataclasses import dataclass, field
from typing import Any, Literal
import numpy as np
import torch

ColumnType = Literal["numeric", "categorical"]
Task = Literal["classification", "regression"]


@dataclass(frozen=True)
class ColumnMeta:
    """
    Per-column descriptor. Numeric columns carry min/max, categorical columns carry the vocabulary,
    whose positions are the one-hot indices.
    """

    name: str
    dtype: ColumnType
    min: float | None = None
    max: float | None = None
    vocabulary: tuple[Any, ...] | None = None

    @property
    def units(self) -> int:
        if self.dtype == "numeric":
            return 1
        return len(self.vocabulary or ())


@dataclass(frozen=True)
class DatasetMeta:
    """
    Column descriptors for inputs and outputs.

    input_columns/output_columns are the only source of column order for encoding, assembly and decoding.
    The unit widths are derived on every access so they cannot go stale.
    """

    input_columns: tuple[str, ...]
    output_columns: tuple[str, ...]
    inputs: dict[str, ColumnMeta]
    outputs: dict[str, ColumnMeta]

    @property
    def input_units(self) -> int:
        return sum(self.inputs[c].units for c in self.input_columns)

    @property
    def output_units(self) -> int:
        return sum(self.outputs[c].units for c in self.output_columns)

    def ordered_inputs(self) -> list[ColumnMeta]:
        return [self.inputs[c] for c in self.input_columns]

    def ordered_outputs(self) -> list[ColumnMeta]:
        return [self.outputs[c] for c in self.output_columns]


@dataclass(frozen=True)
class EncodedRecord:
    """
    One encoded row. Inference-only records have an empty outputs array.
    """

    inputs: np.ndarray
    outputs: np.ndarray = field(default_factory=lambda: np.empty((0,), dtype=np.float32))


@dataclass(frozen=True)
class TrainingTensors:
    """
    Stacked model inputs [n, input_units] and outputs [n, output_units].
    """

    inputs: torch.Tensor
    outputs: torch.Tensor

    def __len__(self) -> int:
        return self.inputs.shape[0]


@dataclass(frozen=True)
class Preprocessed:
    """
    Tensors and metadata consumed by the trainer and the prediction path.
    """

    meta: DatasetMeta
    tensors: TrainingTensors


@dataclass(frozen=True)
class LabelConfidence:
    label: Any
    confidence: float


@dataclass(frozen=True)
class DecodedResult:
    """
    Decoded model output: ranked labels for categorical columns, de-normalized values for numeric ones.
    """

    task: Task
    outputs: dict[str, list[LabelConfidence] | float]
    raw: np.ndarray

    @property
    def output(self) -> list[LabelConfidence] | float:
        return next(iter(self.outputs.values()))
