"""
Error types raised by the feature pipeline and the data loader.

Every error derives from TabnnError and from the builtin exception that best matches it,
so callers can catch either the library-specific type or the plain Python one.
"""


class TabnnError(Exception):
    """Base class for all tabnn errors."""


class UnsupportedFormat(TabnnError, ValueError):
    """The data source is not CSV, JSON or an in-memory blob."""


class LoadError(TabnnError, OSError):
    """Fetching or parsing a data source failed."""


class ColumnTypeAmbiguous(TabnnError, TypeError):
    """A column mixes value types or has no value to infer a type from."""


class ValueNotInVocabulary(TabnnError, ValueError):
    def __init__(self, column: str, value, vocabulary: tuple):
        self.column = column
        self.value = value
        self.vocabulary = vocabulary
        super().__init__(f"Value {value!r} of column '{column}' is not in the vocabulary {list(vocabulary)}")


class ShapeMismatch(TabnnError, ValueError):
    """An encoded row or sample does not match the widths declared by the dataset metadata."""


class MissingColumn(TabnnError, KeyError):
    def __init__(self, columns: list[str]):
        self.columns = columns
        super().__init__(f"Missing columns: {columns}")

    def __str__(self) -> str:
        return self.args[0]


class ConfigError(TabnnError, ValueError):
    """Invalid network or layer configuration."""
