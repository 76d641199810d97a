"""
Utility functions and helper methods.

This module contains reusable utility functions that support various operations
throughout the application.
"""

import polars as pl


def cleanup_dataframe(base_polars_df: pl.DataFrame) -> pl.DataFrame:
    # Convert blank strings (" ", "") to None across all string columns.
    cols_to_replace = [c for c, dtype in base_polars_df.schema.items() if dtype == pl.String]

    base_polars_df = base_polars_df.with_columns(
        [
            pl.when(pl.col(col).str.strip_chars() == "").then(pl.lit(None)).otherwise(pl.col(col)).alias(col)
            for col in cols_to_replace
        ]
    )

    return base_polars_df


def named_columns(columns: list[str] | int, prefix: str) -> list[str]:
    """
    Column names from either explicit names or a count, e.g. 3 -> ["input0", "input1", "input2"].
    """
    if isinstance(columns, int):
        return [f"{prefix}{i}" for i in range(columns)]

    return list(columns)
