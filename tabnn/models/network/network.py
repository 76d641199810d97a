from pathlib import Path
from typing import Any
import numpy as np
import torch
from rich.table import Table
from tabnn.commons.console import console
from tabnn.data.encode import (
    DatasetMeta,
    DecodedResult,
    TrainingTensors,
    decode_output,
    encode_one,
    load_metadata,
    resolve_sample,
    save_metadata,
)
from tabnn.data.encode.pipeline import Sample
from tabnn.data.ingest import RawFrame, append_records, frame_from_records, load_raw_frame
from tabnn.data.metadata import compute_stats, infer_schema
from tabnn.data.pipeline.preprocess import prepare
from tabnn.errors import ConfigError
from tabnn.models.network.config import NeuralNetworkConfig
from tabnn.models.network.network_model import SequentialNetwork
from tabnn.models.network.trainer import ModelTrainer, TrainingHistory, WhileTraining
from tabnn.modules.layers import LayerConfig


class NeuralNetwork:
    """
    Build, train and query a small feed-forward network from tabular data.

    The raw rows, the dataset metadata and the encoded tensors are owned by this object. Adding data
    invalidates the metadata and the tensors; they are rebuilt from all rows on the next normalize/train.
    """

    def __init__(self, config: NeuralNetworkConfig):
        self.config = config

        self.raw: RawFrame | None = None
        self.meta: DatasetMeta | None = None
        self.tensors: TrainingTensors | None = None
        self.model: SequentialNetwork | None = None
        self.layers: list[LayerConfig] = list(config.layers)

        if config.data_url is not None:
            self.load_data()

    @property
    def ready(self) -> bool:
        return self.model is not None and self.meta is not None

    def _require_columns(self) -> None:
        if not self.config.input_columns or not self.config.output_columns:
            raise ConfigError("Set inputs and outputs before loading or adding data")

    # ======
    # Data
    # ======

    def load_data(self, source: str | Path | bytes | None = None) -> TrainingTensors:
        """
        Load rows from a CSV/JSON path or URL (config.data_url by default) and prepare them for training.
        """
        self._require_columns()

        source = source if source is not None else self.config.data_url
        if source is None:
            raise ConfigError("No data source given and config.data_url is not set")

        self.raw = load_raw_frame(source, self.config.input_columns, self.config.output_columns)
        self._invalidate()

        if self.config.debug:
            label = "blob" if isinstance(source, bytes) else source
            console.print(f"Loaded {len(self.raw)} rows from {label}", style="info_text")

        return self.normalize_data()

    def add_data(self, xs: Sample | Any, ys: Sample | Any) -> None:
        """
        Add one training row. xs/ys are values in column order or mappings of column name to value.
        """
        self._require_columns()

        x_values = resolve_sample(xs, tuple(self.config.input_columns))
        y_values = resolve_sample(ys, tuple(self.config.output_columns))
        row = dict(zip(self.config.input_columns, x_values)) | dict(zip(self.config.output_columns, y_values))

        if self.raw is None:
            df = frame_from_records([row], [*self.config.input_columns, *self.config.output_columns])
            self.raw = RawFrame(
                df=df,
                input_columns=tuple(self.config.input_columns),
                output_columns=tuple(self.config.output_columns),
            )
        else:
            self.raw = append_records(self.raw, [row])

        self._invalidate()

    def _invalidate(self) -> None:
        self.meta = None
        self.tensors = None

    def _require_raw(self) -> RawFrame:
        if self.raw is None or len(self.raw) == 0:
            raise ConfigError("No data: call load_data() or add_data() first")
        return self.raw

    def summarize_data(self) -> DatasetMeta:
        """
        Infer column types and compute min/max and vocabularies without encoding.
        """
        raw = self._require_raw()

        meta = infer_schema(
            raw.df,
            list(raw.input_columns),
            list(raw.output_columns),
            column_types=self.config.column_types,
            categorical_outputs=self.config.task == "classification",
        )
        return compute_stats(raw.df, meta)

    def normalize_data(self) -> TrainingTensors:
        """
        Recompute metadata over every row and re-encode all rows into training tensors.
        """
        raw = self._require_raw()

        preprocessed = prepare(
            raw,
            column_types=self.config.column_types,
            categorical_outputs=self.config.task == "classification",
        )

        if self.config.task == "classification" and any(
            m.dtype != "categorical" for m in preprocessed.meta.ordered_outputs()
        ):
            raise ConfigError("Classification needs a categorical output column; check column_types")

        self.meta, self.tensors = preprocessed.meta, preprocessed.tensors

        # A grown vocabulary changes the layer widths; the model has to be rebuilt.
        if self.model is not None and (
            self.model.input_units != self.meta.input_units or self.model.output_units != self.meta.output_units
        ):
            console.print("Feature widths changed; the model will be rebuilt.", style="warn_text")
            self.model = None

        if self.config.debug:
            self.summary()

        return self.tensors

    # ======
    # Model
    # ======

    def add_layer(self, layer: LayerConfig) -> None:
        self.layers.append(layer)
        self.model = None

    def compile(self, loss: str | None = None, optimizer: str | None = None, learning_rate: float | None = None) -> None:
        """
        Set training options and build the model for the current feature widths.
        Without rows, metadata restored by load_metadata() fixes the widths instead.
        """
        self.config = self.config.with_options(loss=loss, optimizer=optimizer, learning_rate=learning_rate)

        if self.tensors is None and (self.raw is not None or self.meta is None):
            self.normalize_data()

        self.model = SequentialNetwork(
            input_units=self.meta.input_units,
            output_units=self.meta.output_units,
            config=self.config,
            layers=self.layers or None,
        )

    def train(
        self,
        epochs: int | None = None,
        batch_size: int | None = None,
        validation_split: float | None = None,
        while_training: WhileTraining | None = None,
    ) -> TrainingHistory:
        """
        Fit the model on all rows. `while_training(epoch, logs)` is called after every epoch.
        """
        if self.tensors is None:
            self.normalize_data()

        if self.model is None:
            self.compile()

        config = self.config.with_options(epochs=epochs, batch_size=batch_size, validation_split=validation_split)
        trainer = ModelTrainer(config)

        return trainer.train_model(self.model, self.tensors, while_training=while_training)

    # ======
    # Prediction
    # ======

    def _require_model(self) -> SequentialNetwork:
        if self.model is None or self.meta is None:
            raise ConfigError("The model is not built yet: call train() first")
        return self.model

    def _forward(self, inputs: np.ndarray) -> np.ndarray:
        model = self._require_model()
        device = next(model.parameters()).device

        model.eval()
        with torch.inference_mode():
            xs = torch.tensor(inputs, dtype=torch.float32, device=device)
            ys = model(xs).cpu().numpy()
            del xs

        return ys

    def predict(self, sample: Sample | Any) -> DecodedResult:
        """
        Predict one sample given as values in input column order or a mapping of column name to value.
        """
        self._require_model()

        encoded = encode_one(sample, self.meta)
        ys = self._forward(encoded.inputs[None, :])

        return decode_output(ys[0], self.meta, self.config.task)

    def classify(self, sample: Sample | Any) -> DecodedResult:
        if self.config.task != "classification":
            raise ConfigError("classify() needs a classification network; use predict()")

        return self.predict(sample)

    def predict_multiple(self, samples: list[Sample]) -> list[DecodedResult]:
        self._require_model()

        if not samples:
            return []

        encoded = np.stack([encode_one(s, self.meta).inputs for s in samples])
        ys = self._forward(encoded)

        return [decode_output(row, self.meta, self.config.task) for row in ys]

    # ======
    # Metadata
    # ======

    def save_metadata(self, out_dir: Path) -> Path:
        if self.meta is None:
            raise ConfigError("No metadata to save: load or normalize data first")
        return save_metadata(out_dir, self.meta)

    def load_metadata(self, path: Path) -> DatasetMeta:
        """
        Restore the column order, vocabularies and min/max written by save_metadata().
        Weights are not part of it: compile() then builds a model of matching width whose
        state can be restored with `model.load_state_dict`.
        """
        meta = load_metadata(path)

        columns = (list(meta.input_columns), list(meta.output_columns))
        if columns != (self.config.input_columns, self.config.output_columns):
            raise ConfigError(
                f"Metadata columns {list(meta.input_columns)} -> {list(meta.output_columns)} do not match the config"
            )

        self.meta, self.tensors = meta, None
        if self.model is not None and (self.model.input_units, self.model.output_units) != (
            meta.input_units,
            meta.output_units,
        ):
            self.model = None

        return meta

    def summary(self) -> None:
        if self.meta is None:
            console.print("No metadata yet.", style="info_text")
            return

        table = Table(title=f"Dataset ({self.config.task})")
        for header in ("column", "role", "type", "units", "min", "max", "vocabulary"):
            table.add_column(header)

        for role, metas in (("input", self.meta.ordered_inputs()), ("output", self.meta.ordered_outputs())):
            for col in metas:
                table.add_row(
                    col.name,
                    role,
                    col.dtype,
                    str(col.units),
                    "" if col.min is None else f"{col.min:g}",
                    "" if col.max is None else f"{col.max:g}",
                    "" if col.vocabulary is None else ", ".join(map(str, col.vocabulary)),
                )

        console.print(table)
        console.print(f"Input units: {self.meta.input_units}, output units: {self.meta.output_units}", style="info_text")
