from __future__ import annotations

import numpy as np
import pytest
import torch

from tabnn.data.encode import assemble, decode_output, encode_one, encode_records, resolve_sample
from tabnn.data.encode.feature_types import ColumnMeta, DatasetMeta
from tabnn.data.pipeline.preprocess import prepare, preprocess_source
from tabnn.errors import MissingColumn, ShapeMismatch, ValueNotInVocabulary


@pytest.fixture
def color_meta(color_size_raw) -> DatasetMeta:
    return prepare(color_size_raw).meta


def _label_meta(vocabulary: tuple) -> DatasetMeta:
    return DatasetMeta(
        input_columns=("x",),
        output_columns=("label",),
        inputs={"x": ColumnMeta(name="x", dtype="numeric", min=0.0, max=1.0)},
        outputs={"label": ColumnMeta(name="label", dtype="categorical", vocabulary=vocabulary)},
    )


def test_prepare_color_size(color_size_raw):
    pre = prepare(color_size_raw)

    assert pre.tensors.inputs.dtype == torch.float32
    assert pre.tensors.inputs.tolist() == [[1.0, 0.0], [0.0, 1.0]]
    assert pre.tensors.outputs.tolist() == [[0.0], [1.0]]
    assert len(pre.tensors) == 2


def test_preprocess_source_from_csv(colors_csv):
    pre = preprocess_source(colors_csv, ["color"], ["size"])

    assert pre.meta.inputs["color"].vocabulary == ("red", "blue")
    np.testing.assert_allclose(pre.tensors.outputs[:, 0].numpy(), [0.0, 1.0, 0.5])


def test_column_order_follows_metadata(make_raw):
    raw = make_raw([{"a": 1.0, "b": "x", "y": 1.0}, {"a": 3.0, "b": "z", "y": 2.0}], ["b", "a"], ["y"])

    pre = prepare(raw)

    # b one-hot first, then a normalized
    assert pre.tensors.inputs.tolist() == [[1.0, 0.0, 0.0], [0.0, 1.0, 1.0]]


def test_encode_one_matches_training_row(color_meta, color_size_raw):
    records = encode_records(color_size_raw.df, color_meta)

    np.testing.assert_array_equal(encode_one(["blue"], color_meta).inputs, records[1].inputs)
    np.testing.assert_array_equal(encode_one({"color": "blue"}, color_meta).inputs, records[1].inputs)
    np.testing.assert_array_equal(encode_one("blue", color_meta).inputs, records[1].inputs)


def test_encode_one_has_no_outputs(color_meta):
    assert encode_one(["red"], color_meta).outputs.shape == (0,)


def test_unseen_category_at_prediction(color_meta):
    with pytest.raises(ValueNotInVocabulary):
        encode_one(["green"], color_meta)


def test_numeric_null_passes_as_nan(make_raw):
    raw = make_raw([{"x": 1.0, "y": 1.0}, {"x": 3.0, "y": 2.0}], ["x"], ["y"])
    meta = prepare(raw).meta

    encoded = encode_one([None], meta)

    assert np.isnan(encoded.inputs[0])


def test_resolve_sample_shapes():
    assert resolve_sample([1, 2], ("a", "b")) == [1, 2]
    assert resolve_sample({"b": 2, "a": 1, "extra": 0}, ("a", "b")) == [1, 2]
    assert resolve_sample(np.array([1, 2]), ("a", "b")) == [1, 2]
    assert resolve_sample("red", ("color",)) == ["red"]

    with pytest.raises(ShapeMismatch):
        resolve_sample([1, 2, 3], ("a", "b"))
    with pytest.raises(MissingColumn):
        resolve_sample({"a": 1}, ("a", "b"))


def test_assemble_rejects_stale_rows(color_size_raw, make_raw):
    stale_meta = prepare(color_size_raw).meta
    stale = encode_records(color_size_raw.df, stale_meta)

    grown = make_raw(
        [{"color": "red", "size": 3}, {"color": "blue", "size": 5}, {"color": "green", "size": 4}],
        ["color"],
        ["size"],
    )
    meta = prepare(grown).meta
    assert meta.input_units == 3

    with pytest.raises(ShapeMismatch):
        assemble(stale, meta)


def test_assemble_rejects_empty(color_meta):
    with pytest.raises(ShapeMismatch):
        assemble([], color_meta)


def test_decode_regression_inverts_normalization(color_meta):
    result = decode_output(np.array([0.5]), color_meta, "regression")

    assert result.outputs == {"size": pytest.approx(4.0)}
    assert result.output == pytest.approx(4.0)


def test_decode_ranks_labels_with_stable_ties():
    meta = _label_meta(("a", "b", "c"))

    result = decode_output(torch.tensor([0.2, 0.4, 0.4]), meta, "classification")

    assert [lc.label for lc in result.output] == ["b", "c", "a"]
    assert [lc.confidence for lc in result.output] == pytest.approx([0.4, 0.4, 0.2])


def test_decode_checks_width():
    with pytest.raises(ShapeMismatch):
        decode_output([0.1, 0.9], _label_meta(("a", "b", "c")), "classification")


def test_classification_needs_categorical_output(color_meta):
    with pytest.raises(ValueError):
        decode_output([0.5], color_meta, "classification")
