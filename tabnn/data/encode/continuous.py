import numpy as np
import polars as pl
from tabnn.errors import ColumnTypeAmbiguous


def numeric_array(series: pl.Series) -> np.ndarray:
    """
    Column values as float64 with nulls as NaN. String columns are parsed; a value that does not parse raises.
    """
    if series.dtype == pl.String:
        parsed = series.str.strip_chars().cast(pl.Float64, strict=False)
        bad = parsed.is_null() & series.is_not_null()
        if bad.any():
            sample = series.filter(bad).head(3).to_list()
            raise ColumnTypeAmbiguous(f"Column '{series.name}' is declared numeric but has values {sample}")
        series = parsed

    return series.cast(pl.Float64).fill_null(float("nan")).to_numpy()


def fit_stats(x_fit: np.ndarray, columns: list[str]) -> tuple[np.ndarray, np.ndarray]:
    """
    Compute column-wise min/max on x_fit ignoring NaNs.
    Raises if any column has all values missing. Constant columns are allowed.
    """
    if x_fit.size == 0:
        return np.empty((0,), dtype=np.float64), np.empty((0,), dtype=np.float64)

    x = x_fit.astype(np.float64)
    n_obs = (~np.isnan(x)).sum(axis=0)
    if np.any(n_obs == 0):
        missing = [columns[i] for i in np.where(n_obs == 0)[0]]
        raise ColumnTypeAmbiguous(f"Numeric columns have all values missing: {missing}")

    return np.nanmin(x, axis=0), np.nanmax(x, axis=0)


def transform(x_all: np.ndarray, x_min: np.ndarray, x_max: np.ndarray) -> np.ndarray:
    """
    Min-max normalize to [0, 1]. Zero-range (constant) columns map to 0.0.
    NaNs pass through unchanged.
    """
    if x_all.size == 0:
        return x_all.astype(np.float32)

    x = x_all.astype(np.float64)
    span = x_max - x_min
    constant = span == 0

    # Divide by 1 where the column is constant, then zero it out.
    safe_span = np.where(constant, 1.0, span)
    z = (x - x_min) / safe_span
    z = np.where(constant & ~np.isnan(z), 0.0, z)

    return z.astype(np.float32)


def inverse_transform(z: np.ndarray, x_min: np.ndarray, x_max: np.ndarray) -> np.ndarray:
    """
    Map normalized values back to the original scale.
    """
    z = np.asarray(z, dtype=np.float64)
    return z * (x_max - x_min) + x_min
