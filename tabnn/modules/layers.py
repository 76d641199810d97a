from dataclasses import dataclass
from typing import Literal
import torch.nn as nn
from tabnn.errors import ConfigError
from .activation import build_activation

LayerType = Literal["dense", "conv2d", "flatten", "reshape"]


@dataclass(frozen=True)
class LayerConfig:
    """
    Declarative layer description.

    Unset fields fall back to the builder defaults (dense: 16 units, relu; conv2d: kernel 5,
    8 filters, stride 1, relu). `input_shape` excludes the batch dimension; when it is omitted the
    layer infers its input width on the first forward pass. `target_shape` is only used by reshape.
    """

    type: LayerType = "dense"
    units: int | None = None
    activation: str | None = None
    input_shape: tuple[int, ...] | None = None
    kernel_size: int = 5
    filters: int = 8
    strides: int = 1
    target_shape: tuple[int, ...] | None = None

    def __post_init__(self):
        if self.type not in ("dense", "conv2d", "flatten", "reshape"):
            raise ConfigError(f"Unknown layer type '{self.type}'")
        if self.units is not None and self.units < 1:
            raise ConfigError(f"Layer units must be positive, got {self.units}")
        if self.kernel_size < 1 or self.filters < 1 or self.strides < 1:
            raise ConfigError("kernel_size, filters and strides must be positive")
        if self.type == "reshape" and not self.target_shape:
            raise ConfigError("Reshape layers need a target_shape")


def create_dense_layer(units: int = 16, activation: str | None = "relu", input_units: int | None = None) -> nn.Module:
    linear = nn.Linear(input_units, units) if input_units is not None else nn.LazyLinear(units)

    return nn.Sequential(linear, build_activation(activation))


def create_conv2d_layer(
    filters: int = 8,
    kernel_size: int = 5,
    strides: int = 1,
    activation: str | None = "relu",
    in_channels: int | None = None,
) -> nn.Module:
    if in_channels is not None:
        conv = nn.Conv2d(in_channels, filters, kernel_size=kernel_size, stride=strides)
        nn.init.kaiming_normal_(conv.weight, nonlinearity="relu")
    else:
        conv = nn.LazyConv2d(filters, kernel_size=kernel_size, stride=strides)

    return nn.Sequential(conv, build_activation(activation))


def build_layer(config: LayerConfig, default_units: int = 16) -> nn.Module:
    if config.type == "flatten":
        return nn.Flatten()

    if config.type == "reshape":
        return nn.Unflatten(1, config.target_shape)

    activation = config.activation or "relu"

    if config.type == "conv2d":
        in_channels = config.input_shape[0] if config.input_shape else None
        return create_conv2d_layer(
            filters=config.filters,
            kernel_size=config.kernel_size,
            strides=config.strides,
            activation=activation,
            in_channels=in_channels,
        )

    input_units = config.input_shape[-1] if config.input_shape else None
    return create_dense_layer(units=config.units or default_units, activation=activation, input_units=input_units)
