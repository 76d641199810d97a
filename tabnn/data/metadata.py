from dataclasses import replace
import numpy as np
import polars as pl
from tabnn.data.encode.feature_types import ColumnMeta, ColumnType, DatasetMeta
from tabnn.data.encode.continuous import fit_stats, numeric_array
from tabnn.data.encode.categorical import fit_vocabulary
from tabnn.errors import ColumnTypeAmbiguous, ConfigError, MissingColumn

COLUMN_TYPES = ("numeric", "categorical")


def _infer_column_type(series: pl.Series) -> ColumnType:
    """
    Numeric polars dtypes are numeric; String, Categorical, Enum and Boolean are categorical.
    A String column that mixes number-like and other values is ambiguous.
    """
    dtype = series.dtype
    non_null = series.drop_nulls()

    if dtype == pl.Null or len(non_null) == 0:
        raise ColumnTypeAmbiguous(f"Column '{series.name}' has no values to infer a type from")

    if dtype.is_numeric():
        return "numeric"

    if dtype == pl.Boolean or isinstance(dtype, (pl.Categorical, pl.Enum)):
        return "categorical"

    if dtype == pl.String:
        parsed = non_null.str.strip_chars().cast(pl.Float64, strict=False)
        n_numbers = int(parsed.is_not_null().sum())

        if 0 < n_numbers < len(non_null):
            raise ColumnTypeAmbiguous(
                f"Column '{series.name}' mixes numbers and strings "
                f"({n_numbers} of {len(non_null)} values look numeric)"
            )
        return "categorical"

    raise ColumnTypeAmbiguous(f"Column '{series.name}' has unsupported dtype {dtype}")


def _build_column_meta(series: pl.Series, dtype: ColumnType) -> ColumnMeta:
    if dtype == "categorical":
        return ColumnMeta(name=series.name, dtype="categorical", vocabulary=fit_vocabulary(series.to_list()))

    return ColumnMeta(name=series.name, dtype="numeric")


def infer_schema(
    df: pl.DataFrame,
    input_columns: list[str],
    output_columns: list[str],
    column_types: dict[str, ColumnType] | None = None,
    categorical_outputs: bool = False,
) -> DatasetMeta:
    """
    Classify each input/output column and build its descriptor.

    Typing rule, in order: an explicit column_types entry; categorical for outputs when
    categorical_outputs is set (classification); otherwise the column's polars dtype.
    """
    column_types = column_types or {}

    bad_types = {c: t for c, t in column_types.items() if t not in COLUMN_TYPES}
    if bad_types:
        raise ConfigError(f"Unknown column types {bad_types}; expected one of {COLUMN_TYPES}")

    missing = [c for c in [*input_columns, *output_columns] if c not in df.columns]
    if missing:
        raise MissingColumn(missing)

    def describe(columns: list[str], is_output: bool) -> dict[str, ColumnMeta]:
        metas: dict[str, ColumnMeta] = {}

        for col in columns:
            series = df[col]

            if col in column_types:
                dtype = column_types[col]
                if series.drop_nulls().len() == 0:
                    raise ColumnTypeAmbiguous(f"Column '{col}' has no values")
            elif is_output and categorical_outputs:
                dtype = "categorical"
            else:
                dtype = _infer_column_type(series)

            metas[col] = _build_column_meta(series, dtype)

        return metas

    return DatasetMeta(
        input_columns=tuple(input_columns),
        output_columns=tuple(output_columns),
        inputs=describe(input_columns, is_output=False),
        outputs=describe(output_columns, is_output=True),
    )


def compute_stats(df: pl.DataFrame, meta: DatasetMeta) -> DatasetMeta:
    """
    Return a copy of meta with min/max for numeric columns and vocabularies recomputed
    over every row of df.
    """

    def summarize(columns: tuple[str, ...], metas: dict[str, ColumnMeta]) -> dict[str, ColumnMeta]:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise MissingColumn(missing)

        # === Numeric: column-wise min/max ===

        numeric = [c for c in columns if metas[c].dtype == "numeric"]
        updated = dict(metas)

        if numeric:
            x = np.column_stack([numeric_array(df[c]) for c in numeric])
            x_min, x_max = fit_stats(x, numeric)

            for i, c in enumerate(numeric):
                updated[c] = replace(metas[c], min=float(x_min[i]), max=float(x_max[i]))

        # === Categorical: vocabulary over the full frame ===

        for c in columns:
            if metas[c].dtype == "categorical":
                updated[c] = replace(metas[c], vocabulary=fit_vocabulary(df[c].to_list()))

        return {c: updated[c] for c in columns}

    return replace(
        meta,
        inputs=summarize(meta.input_columns, meta.inputs),
        outputs=summarize(meta.output_columns, meta.outputs),
    )
