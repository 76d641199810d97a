# tests/conftest.py
from __future__ import annotations

from pathlib import Path

import pytest

from tabnn.data.ingest import RawFrame, frame_from_records


def _make_raw(rows: list[dict], inputs: list[str], outputs: list[str]) -> RawFrame:
    df = frame_from_records(rows, [*inputs, *outputs])
    return RawFrame(df=df, input_columns=tuple(inputs), output_columns=tuple(outputs))


@pytest.fixture
def make_raw():
    return _make_raw


@pytest.fixture
def color_size_raw() -> RawFrame:
    """
    [{color: red, size: 3}, {color: blue, size: 5}], input=[color], output=[size]
    """
    return _make_raw(
        [{"color": "red", "size": 3}, {"color": "blue", "size": 5}],
        inputs=["color"],
        outputs=["size"],
    )


@pytest.fixture
def colors_csv(tmp_path: Path) -> Path:
    path = tmp_path / "colors.csv"
    path.write_text("color,size\nred,3\nblue,5\nred,4\n")
    return path


@pytest.fixture
def xor_rows() -> list[dict]:
    rows = []
    for a in (0, 1):
        for b in (0, 1):
            label = "same" if a == b else "different"
            rows.extend([{"a": a, "b": b, "label": label}] * 3)
    return rows
