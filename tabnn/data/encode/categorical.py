from typing import Any, Sequence
import numpy as np
from sklearn.preprocessing import OneHotEncoder
from tabnn.data.ingest import value_kind
from tabnn.errors import ColumnTypeAmbiguous, ValueNotInVocabulary


def fit_vocabulary(values: Sequence[Any]) -> tuple[Any, ...]:
    """
    Distinct non-null values in first-seen order. The position of a value is its one-hot index,
    so the same input order always yields the same vocabulary.
    """
    return tuple(dict.fromkeys(v for v in values if v is not None))


def _kind(value: Any) -> str:
    # Integers and floats compare equal across kinds; booleans and strings must not match numbers.
    kind = value_kind(value)
    return "number" if kind in ("integer", "float") else kind


def fit_encoder(vocabulary: tuple[Any, ...]) -> OneHotEncoder:
    """
    One-hot encoder whose columns follow the vocabulary order exactly.
    """
    encoder = OneHotEncoder(
        categories=[list(vocabulary)],
        handle_unknown="error",
        sparse_output=False,
        dtype=np.float32,
    )
    return encoder.fit(_as_column(vocabulary))


def _as_column(values: Sequence[Any]) -> np.ndarray:
    column = np.empty((len(values), 1), dtype=object)
    column[:, 0] = list(values)
    return column


def transform(values: Sequence[Any], vocabulary: tuple[Any, ...], column: str) -> np.ndarray:
    """
    One-hot encode values against a fitted vocabulary.
    Returns a float32 array of shape (len(values), len(vocabulary)); nulls and unseen values raise.
    """
    kinds = {_kind(v) for v in vocabulary}

    for v in values:
        try:
            seen_kind = v is not None and _kind(v) in kinds
        except ColumnTypeAmbiguous as exc:
            raise ValueNotInVocabulary(column, v, vocabulary) from exc
        if not seen_kind:
            raise ValueNotInVocabulary(column, v, vocabulary)

    if len(values) == 0:
        return np.zeros((0, len(vocabulary)), dtype=np.float32)

    try:
        one_hot = fit_encoder(vocabulary).transform(_as_column(values))
    except ValueError as exc:
        known = set(vocabulary)
        unseen = next((v for v in values if v not in known), values[0])
        raise ValueNotInVocabulary(column, unseen, vocabulary) from exc

    return one_hot.astype(np.float32)
