from __future__ import annotations

import pytest

from tabnn.errors import ConfigError
from tabnn.models.network.config import NeuralNetworkConfig, load_config_from_yaml
from tabnn.modules.layers import LayerConfig


def test_task_defaults():
    classification = NeuralNetworkConfig(task="classification", inputs=["a"], outputs=["y"])
    regression = NeuralNetworkConfig(task="regression", inputs=["a"], outputs=["y"])

    assert (classification.activation_output, classification.loss, classification.optimizer) == (
        "softmax",
        "categorical_crossentropy",
        "sgd",
    )
    assert (regression.activation_output, regression.loss, regression.optimizer) == (
        "sigmoid",
        "mean_squared_error",
        "adam",
    )
    assert (regression.learning_rate, regression.epochs, regression.batch_size) == (0.2, 32, 32)
    assert regression.validation_split == pytest.approx(0.1)
    assert regression.hidden_units == 16


def test_explicit_options_override_task_defaults():
    config = NeuralNetworkConfig(task="classification", inputs=["a"], outputs=["y"], optimizer="adam", loss="mean_squared_error")

    assert config.optimizer == "adam"
    assert config.loss == "mean_squared_error"


def test_column_counts_expand_to_names():
    config = NeuralNetworkConfig(task="regression", inputs=3, outputs=1)

    assert config.input_columns == ["input0", "input1", "input2"]
    assert config.output_columns == ["output0"]


def test_lists_become_tuples():
    config = NeuralNetworkConfig(task="regression", inputs=["a", "b"], outputs=["y"], layers=[LayerConfig()])

    assert config.inputs == ("a", "b")
    assert isinstance(config.layers, tuple)


@pytest.mark.parametrize(
    "options",
    [
        {"task": "clustering"},
        {"task": "regression", "inputs": ["a", "a"], "outputs": ["y"]},
        {"task": "regression", "inputs": ["a"], "outputs": ["a"]},
        {"task": "regression", "inputs": 0, "outputs": 1},
        {"task": "regression", "learning_rate": 0},
        {"task": "regression", "batch_size": 0},
        {"task": "regression", "validation_split": 1.0},
        {"task": "regression", "optimizer": "rmsprop"},
        {"task": "regression", "loss": "hinge"},
        {"task": "regression", "activation_hidden": "swishy"},
        {"task": "regression", "column_types": {"a": "text"}},
        {"task": "classification", "inputs": ["x"], "outputs": ["a", "b"]},
        {"task": "classification", "inputs": 1, "outputs": 2},
    ],
)
def test_invalid_options(options):
    with pytest.raises(ConfigError):
        NeuralNetworkConfig(**options)


def test_with_options_ignores_none_and_revalidates():
    config = NeuralNetworkConfig(task="regression", inputs=["a"], outputs=["y"])

    updated = config.with_options(epochs=5, batch_size=None)

    assert updated.epochs == 5
    assert updated.batch_size == config.batch_size
    assert config.epochs == 32

    with pytest.raises(ConfigError):
        config.with_options(learning_rate=-1.0)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "net.yaml"
    path.write_text(
        """
task: classification
inputs: [r, g, b]
outputs: [label]
epochs: 10
betas: [0.8, 0.99]
column_types:
  r: numeric
layers:
  - type: dense
    units: 8
    input_shape: [3]
  - type: dense
"""
    )

    config = load_config_from_yaml(path)

    assert config.inputs == ("r", "g", "b")
    assert config.epochs == 10
    assert config.betas == (0.8, 0.99)
    assert config.column_types == {"r": "numeric"}
    assert config.layers == (LayerConfig(type="dense", units=8, input_shape=(3,)), LayerConfig(type="dense"))


def test_yaml_rejects_unknown_options(tmp_path):
    path = tmp_path / "net.yaml"
    path.write_text("task: regression\nlearning_rat: 0.1\n")

    with pytest.raises(ConfigError, match="learning_rat"):
        load_config_from_yaml(path)


def test_yaml_rejects_bad_layers(tmp_path):
    path = tmp_path / "net.yaml"
    path.write_text("task: regression\nlayers:\n  - type: dense\n    neurons: 4\n")

    with pytest.raises(ConfigError):
        load_config_from_yaml(path)


def test_yaml_must_be_a_mapping(tmp_path):
    path = tmp_path / "net.yaml"
    path.write_text("- task\n- regression\n")

    with pytest.raises(ConfigError):
        load_config_from_yaml(path)


def test_regression_accepts_several_outputs():
    config = NeuralNetworkConfig(task="regression", inputs=["x"], outputs=["a", "b"])

    assert config.output_columns == ["a", "b"]
