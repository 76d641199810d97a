from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Literal
import yaml
from tabnn.commons.utils import named_columns
from tabnn.errors import ConfigError
from tabnn.modules.activation import build_activation
from tabnn.modules.layers import LayerConfig
from tabnn.modules.losses import LOSSES

TASKS = ("classification", "regression")
OPTIMIZERS = ("sgd", "adam", "adamw", "adamw-schedule-free")
SCHEDULE_FREE_OPTIMIZERS = ("adamw-schedule-free",)

# Per-task defaults for options left unset.
TASK_DEFAULTS = {
    "classification": {"activation_output": "softmax", "loss": "categorical_crossentropy", "optimizer": "sgd"},
    "regression": {"activation_output": "sigmoid", "loss": "mean_squared_error", "optimizer": "adam"},
}


@dataclass(frozen=True)
class NeuralNetworkConfig:
    # --- Task ---
    task: Literal["classification", "regression"]

    # --- Data ---
    inputs: tuple[str, ...] | int = ()  # Column names, or a count expanded to input0, input1, ...
    outputs: tuple[str, ...] | int = ()  # Column names, or a count expanded to output0, output1, ...
    data_url: str | None = None  # CSV/JSON path or URL loaded by NeuralNetwork.load_data()
    column_types: dict[str, Literal["numeric", "categorical"]] = field(default_factory=dict)  # Overrides inference

    # --- Architecture ---
    hidden_units: int = 16  # Width of the default hidden dense layer
    activation_hidden: str = "relu"
    activation_output: str | None = None  # softmax for classification, sigmoid for regression
    layers: tuple[LayerConfig, ...] = ()  # Custom layers; the default two-layer network is used when empty

    # --- Training hyperparams ---
    learning_rate: float = 0.2
    batch_size: int = 32
    epochs: int = 32
    validation_split: float = 0.1  # Share of rows held out for validation; 0 disables validation
    shuffle: bool = True
    loss: str | None = None  # categorical_crossentropy for classification, mean_squared_error for regression
    optimizer: Literal["sgd", "adam", "adamw", "adamw-schedule-free"] | None = None  # sgd / adam by task
    weight_decay: float = 0.0
    betas: tuple[float, float] = (0.9, 0.999)
    gradient_clip_val: float | None = None
    random_state: int = 777
    num_workers: int = 0

    # --- Logging ---
    debug: bool = False  # Print the dataset summary and per-epoch metrics
    enable_logging: bool = False  # Track runs in Neptune
    log_every_n_steps: int = 50

    def __post_init__(self):
        if self.task not in TASKS:
            raise ConfigError(f"task must be one of {TASKS}, got {self.task!r}")

        # --- Resolve task defaults ---
        for name, value in TASK_DEFAULTS[self.task].items():
            if getattr(self, name) is None:
                object.__setattr__(self, name, value)

        # --- Normalize containers ---
        for name in ("inputs", "outputs"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, list, tuple)):
                raise ConfigError(f"{name} must be a list of column names or a count")
            if isinstance(value, int) and value < 1:
                raise ConfigError(f"{name} count must be at least 1, got {value}")
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(value))

        object.__setattr__(self, "layers", tuple(self.layers))
        object.__setattr__(self, "betas", tuple(self.betas))

        self._validate()

    def _validate(self):
        for name in ("inputs", "outputs"):
            columns = getattr(self, name)
            if isinstance(columns, tuple) and len(set(columns)) != len(columns):
                raise ConfigError(f"{name} has duplicate column names: {list(columns)}")

        # The output activation and the cross-entropy run over the whole output vector.
        if self.task == "classification" and len(self.output_columns) > 1:
            raise ConfigError(f"Classification predicts one label column, got outputs {self.output_columns}")

        overlap = set(self.input_columns) & set(self.output_columns)
        if overlap:
            raise ConfigError(f"Columns used as both input and output: {sorted(overlap)}")

        bad_types = {c: t for c, t in self.column_types.items() if t not in ("numeric", "categorical")}
        if bad_types:
            raise ConfigError(f"column_types values must be 'numeric' or 'categorical': {bad_types}")

        if self.learning_rate <= 0:
            raise ConfigError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.epochs < 0:
            raise ConfigError(f"epochs must be non-negative, got {self.epochs}")
        if not 0.0 <= self.validation_split < 1.0:
            raise ConfigError(f"validation_split must be in [0, 1), got {self.validation_split}")
        if self.hidden_units < 1:
            raise ConfigError(f"hidden_units must be at least 1, got {self.hidden_units}")
        if self.optimizer not in OPTIMIZERS:
            raise ConfigError(f"optimizer must be one of {OPTIMIZERS}, got {self.optimizer!r}")
        if self.loss.lower() not in LOSSES:
            raise ConfigError(f"loss must be one of {sorted(LOSSES)}, got {self.loss!r}")
        if self.log_every_n_steps < 1:
            raise ConfigError(f"log_every_n_steps must be at least 1, got {self.log_every_n_steps}")

        build_activation(self.activation_hidden)
        build_activation(self.activation_output)

    @property
    def input_columns(self) -> list[str]:
        return named_columns(self.inputs, "input")

    @property
    def output_columns(self) -> list[str]:
        return named_columns(self.outputs, "output")

    def with_options(self, **options) -> "NeuralNetworkConfig":
        """
        Copy with some options replaced; None values are ignored. The copy is validated again.
        """
        options = {k: v for k, v in options.items() if v is not None}
        return replace(self, **options)


def load_config_from_yaml(yaml_path: Path) -> NeuralNetworkConfig:
    """
    Build a NeuralNetworkConfig from a YAML mapping of option names to values.
    """
    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ConfigError(f"Config YAML at {yaml_path} must be a mapping of options.")

    known = {f.name for f in fields(NeuralNetworkConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown options in {yaml_path}: {unknown}")

    layers = []
    for layer in data.pop("layers", None) or []:
        layer = dict(layer)
        for key in ("input_shape", "target_shape"):
            if layer.get(key) is not None:
                layer[key] = tuple(layer[key])
        try:
            layers.append(LayerConfig(**layer))
        except TypeError as exc:
            raise ConfigError(f"Invalid layer {layer}: {exc}") from exc

    if "betas" in data:
        data["betas"] = tuple(data["betas"])

    return NeuralNetworkConfig(**data, layers=tuple(layers))
