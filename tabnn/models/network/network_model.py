from dataclasses import replace
import torch
import torch.nn as nn
from torch import Tensor
from tabnn.errors import ConfigError
from tabnn.models.network.config import NeuralNetworkConfig
from tabnn.modules.layers import LayerConfig, build_layer


def default_layers(config: NeuralNetworkConfig, input_units: int, output_units: int) -> list[LayerConfig]:
    """
    One hidden dense layer followed by the output layer.
    """
    hidden = LayerConfig(
        type="dense", units=config.hidden_units, activation=config.activation_hidden, input_shape=(input_units,)
    )
    output = LayerConfig(type="dense", units=output_units, activation=config.activation_output)

    return [hidden, output]


class SequentialNetwork(nn.Module):
    def __init__(
        self,
        input_units: int,
        output_units: int,
        config: NeuralNetworkConfig,
        layers: list[LayerConfig] | None = None,
    ):
        super().__init__()

        # === Configuration ===
        self.config = config
        self.input_units = input_units
        self.output_units = output_units

        layers = list(layers or default_layers(config, input_units, output_units))

        # A final dense layer without units becomes the output layer.
        last = layers[-1]
        if last.type == "dense" and last.units is None:
            layers[-1] = replace(last, units=output_units, activation=last.activation or config.activation_output)

        # === Model Architecture ===
        self.network = nn.Sequential(*[build_layer(layer, default_units=config.hidden_units) for layer in layers])

        self._materialize()

    def _materialize(self) -> None:
        """
        Dry run one zero sample so lazy layers get their shapes before an optimizer sees the parameters.
        """
        try:
            with torch.no_grad():
                out = self.network(torch.zeros(1, self.input_units))
        except RuntimeError as exc:
            raise ConfigError(f"Layers do not accept {self.input_units} input units: {exc}") from exc

        if out.dim() != 2 or out.shape[1] != self.output_units:
            raise ConfigError(
                f"Network produces outputs of shape {tuple(out.shape[1:])}, expected ({self.output_units},)"
            )

    def forward(self, x: Tensor) -> Tensor:
        return self.network(x)
