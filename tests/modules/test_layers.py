from __future__ import annotations

import pytest
import torch
import torch.nn as nn

from tabnn.errors import ConfigError
from tabnn.modules import CategoricalCrossEntropy, LayerConfig, StableMax, build_activation, build_layer, build_loss
from tabnn.modules.layers import create_dense_layer


@pytest.mark.parametrize("name", ["relu", "sigmoid", "tanh", "elu", "selu", "leaky_relu", "softplus", "linear", "ReLU"])
def test_activations_keep_shape(name):
    x = torch.randn(2, 3)

    assert build_activation(name)(x).shape == (2, 3)


@pytest.mark.parametrize("name", ["softmax", "stablemax"])
def test_distribution_activations_sum_to_one(name):
    out = build_activation(name)(torch.randn(4, 5))

    torch.testing.assert_close(out.sum(dim=-1), torch.ones(4))
    assert torch.all(out >= 0)


def test_missing_activation_is_identity():
    x = torch.randn(3)

    assert torch.equal(build_activation(None)(x), x)


def test_unknown_activation():
    with pytest.raises(ConfigError):
        build_activation("swishy")


def test_stablemax_is_bounded_for_large_logits():
    out = StableMax()(torch.tensor([[1e6, -1e6, 0.0]]))

    assert torch.all(torch.isfinite(out))


def test_dense_layer_width():
    known = create_dense_layer(units=4, input_units=3)
    lazy = create_dense_layer(units=4)

    assert isinstance(known[0], nn.Linear) and known[0].in_features == 3
    assert isinstance(lazy[0], nn.LazyLinear)
    assert lazy(torch.rand(2, 7)).shape == (2, 4)


def test_build_layer_defaults():
    layer = build_layer(LayerConfig(input_shape=(3,)), default_units=5)

    assert layer[0].out_features == 5
    assert isinstance(layer[1], nn.ReLU)


def test_conv_layer_with_known_channels():
    layer = build_layer(LayerConfig(type="conv2d", input_shape=(2, 6, 6), kernel_size=3, filters=4))

    assert layer(torch.rand(1, 2, 6, 6)).shape == (1, 4, 4, 4)


@pytest.mark.parametrize(
    "options",
    [{"type": "pool"}, {"units": 0}, {"kernel_size": 0}, {"type": "reshape"}],
)
def test_invalid_layer_config(options):
    with pytest.raises(ConfigError):
        LayerConfig(**options)


def test_categorical_cross_entropy():
    probs = torch.tensor([[0.5, 0.5], [1.0, 0.0]])
    targets = torch.tensor([[1.0, 0.0], [1.0, 0.0]])

    loss = CategoricalCrossEntropy()(probs, targets)

    assert loss.item() == pytest.approx(-torch.log(torch.tensor(0.5)).item() / 2, rel=1e-4)


def test_cross_entropy_survives_zero_probabilities():
    loss = build_loss("categorical_crossentropy")(torch.tensor([[0.0, 1.0]]), torch.tensor([[1.0, 0.0]]))

    assert torch.isfinite(loss)


@pytest.mark.parametrize("name", ["binary_crossentropy", "mean_squared_error", "mean_absolute_error"])
def test_losses_are_scalars(name):
    probs = torch.tensor([[0.2], [0.9]])
    targets = torch.tensor([[0.0], [1.0]])

    assert build_loss(name)(probs, targets).dim() == 0


def test_unknown_loss():
    with pytest.raises(ConfigError):
        build_loss("hinge")
