from __future__ import annotations

from tabnn.data.encode import load_metadata, save_metadata
from tabnn.data.encode.artifacts import METADATA_FILENAME
from tabnn.data.pipeline.preprocess import prepare


def test_metadata_survives_a_save(tmp_path, make_raw):
    raw = make_raw(
        [{"color": "red", "x": 1.5, "y": "hi"}, {"color": "blue", "x": 4.0, "y": "lo"}],
        ["color", "x"],
        ["y"],
    )
    meta = prepare(raw, categorical_outputs=True).meta

    path = save_metadata(tmp_path / "run", meta)

    assert path.name == METADATA_FILENAME
    assert load_metadata(path) == meta
    assert load_metadata(tmp_path / "run") == meta


def test_loaded_metadata_keeps_widths(tmp_path, color_size_raw):
    meta = prepare(color_size_raw).meta

    loaded = load_metadata(save_metadata(tmp_path, meta))

    assert loaded.input_columns == ("color",)
    assert loaded.inputs["color"].vocabulary == ("red", "blue")
    assert (loaded.input_units, loaded.output_units) == (2, 1)
