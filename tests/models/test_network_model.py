from __future__ import annotations

import pytest
import torch
import torch.nn as nn

from tabnn.errors import ConfigError
from tabnn.models.network.config import NeuralNetworkConfig
from tabnn.models.network.network_model import SequentialNetwork, default_layers
from tabnn.modules.layers import LayerConfig


@pytest.fixture
def config() -> NeuralNetworkConfig:
    return NeuralNetworkConfig(task="classification", inputs=4, outputs=["label"], hidden_units=8)


def test_default_layers(config):
    hidden, output = default_layers(config, input_units=4, output_units=3)

    assert (hidden.units, hidden.activation, hidden.input_shape) == (8, "relu", (4,))
    assert (output.units, output.activation) == (3, "softmax")


def test_default_network_outputs_a_distribution(config):
    model = SequentialNetwork(input_units=4, output_units=3, config=config)

    out = model(torch.rand(5, 4))

    assert out.shape == (5, 3)
    torch.testing.assert_close(out.sum(dim=1), torch.ones(5))


def test_custom_dense_stack_gets_an_output_layer(config):
    layers = [LayerConfig(units=6, activation="tanh"), LayerConfig(units=None)]

    model = SequentialNetwork(input_units=4, output_units=2, config=config, layers=layers)

    assert model(torch.rand(2, 4)).shape == (2, 2)


def test_lazy_layers_are_materialized(config):
    model = SequentialNetwork(input_units=4, output_units=2, config=config, layers=[LayerConfig(units=None)])

    assert not any(isinstance(p, nn.parameter.UninitializedParameter) for p in model.parameters())


def test_conv_path(config):
    layers = [
        LayerConfig(type="reshape", target_shape=(1, 2, 2)),
        LayerConfig(type="conv2d", kernel_size=2, filters=3),
        LayerConfig(type="flatten"),
        LayerConfig(type="dense"),
    ]

    model = SequentialNetwork(input_units=4, output_units=2, config=config, layers=layers)

    assert model(torch.rand(3, 4)).shape == (3, 2)


def test_layers_that_do_not_fit_the_input(config):
    layers = [LayerConfig(type="reshape", target_shape=(1, 3, 3)), LayerConfig(type="flatten"), LayerConfig()]

    with pytest.raises(ConfigError):
        SequentialNetwork(input_units=4, output_units=2, config=config, layers=layers)


def test_layers_with_the_wrong_output_width(config):
    with pytest.raises(ConfigError, match="expected"):
        SequentialNetwork(input_units=4, output_units=2, config=config, layers=[LayerConfig(units=5)])
