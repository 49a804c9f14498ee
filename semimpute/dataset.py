"""In-memory table with typed attributes and per-cell missingness.

Cells are held in a float matrix: numeric attributes store their value,
nominal attributes store the index of the value in the attribute's domain,
and missing cells are NaN.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

import numpy as np
import pandas as pd

from semimpute.errors import ConfigurationError


class AttributeType(Enum):
    NUMERIC = "numeric"
    NOMINAL = "nominal"


@dataclass(frozen=True)
class Attribute:
    """Column metadata.

    Args:
        name: Column label.
        type: NUMERIC or NOMINAL.
        domain: Ordered category values (NOMINAL only). Cells store positions
            into this tuple.
        categorical: If True, decoded columns are returned as pandas
            Categoricals, otherwise as object arrays.
    """
    name: Any
    type: AttributeType
    domain: tuple[Any, ...] = ()
    categorical: bool = False

    @property
    def is_nominal(self) -> bool:
        return self.type is AttributeType.NOMINAL

    @property
    def num_values(self) -> int:
        return len(self.domain)

    def encode(self, values: pd.Series) -> np.ndarray:
        """Convert raw column values to the float cell representation.

        Nominal values outside the domain are encoded as missing.
        """
        if not self.is_nominal:
            return pd.to_numeric(values, errors='coerce').to_numpy(dtype=float, na_value=np.nan)
        codes = pd.Categorical(values, categories=list(self.domain)).codes.astype(float)
        codes[codes < 0] = np.nan
        return codes

    def decode(self, cells: np.ndarray) -> np.ndarray | pd.Categorical:
        """Convert float cells back to raw column values."""
        if not self.is_nominal:
            return cells
        codes = np.where(np.isnan(cells), -1, np.rint(cells)).astype(int)
        decoded = pd.Categorical.from_codes(codes, categories=list(self.domain))
        return decoded if self.categorical else np.asarray(decoded.astype(object))


def infer_attribute(name: Any, column: pd.Series) -> Attribute:
    """Infer an Attribute from a pandas column, numerical or categorical by dtype."""
    if isinstance(column.dtype, pd.CategoricalDtype):
        return Attribute(name, AttributeType.NOMINAL, tuple(column.cat.categories), categorical=True)
    if pd.api.types.is_numeric_dtype(column):
        return Attribute(name, AttributeType.NUMERIC)
    categories = pd.Categorical(column.dropna()).categories
    return Attribute(name, AttributeType.NOMINAL, tuple(categories))


@dataclass(frozen=True)
class MissingnessIndex:
    """Row indices missing / observing each non-class attribute.

    For every attribute ``observed[a]`` and ``missing[a]`` partition the row
    range ``0..n_rows`` and are sorted ascending.
    """
    missing: dict[int, np.ndarray]
    observed: dict[int, np.ndarray]

    def missing_counts(self) -> dict[int, int]:
        return {attr: len(rows) for attr, rows in self.missing.items()}


class Dataset:
    """Ordered rows over typed attributes, one of which may be the class.

    Args:
        values: Float matrix of shape (n_rows, n_attributes).
        attributes: One Attribute per column of ``values``.
        class_index: Column excluded from imputation, or None.
        index: Row labels carried through to decoded frames.
    """

    def __init__(
        self,
        values: np.ndarray,
        attributes: Sequence[Attribute],
        class_index: int | None = None,
        index: pd.Index | None = None,
    ):
        values = np.asarray(values, dtype=float)
        if values.ndim != 2 or values.shape[1] != len(attributes):
            raise ValueError(
                f"Expected a matrix with {len(attributes)} columns, got shape {values.shape}"
            )
        if class_index is not None and not 0 <= class_index < len(attributes):
            raise ConfigurationError(f"Class index {class_index} out of range")
        self.values = values
        self.attributes = tuple(attributes)
        self.class_index = class_index
        self.index = index if index is not None else pd.RangeIndex(values.shape[0])

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        class_column: Any = None,
        attributes: Sequence[Attribute] | None = None,
    ) -> Dataset:
        """Build a Dataset from a DataFrame, inferring attribute types unless given.

        Args:
            df: Source frame; NaN/None cells are missing.
            class_column: Column label (or integer position) of the class, if any.
            attributes: Schema to reuse, e.g. from a fitted imputer.

        Raises:
            ConfigurationError: If ``class_column`` is not a column of ``df``.
        """
        if attributes is None:
            attributes = [infer_attribute(col, df[col]) for col in df.columns]
        elif [a.name for a in attributes] != list(df.columns):
            raise ValueError(
                f"Column mismatch. Expected: {[a.name for a in attributes]}, got: {list(df.columns)}"
            )

        values = np.empty(df.shape, dtype=float)
        for i, attribute in enumerate(attributes):
            values[:, i] = attribute.encode(df.iloc[:, i])

        return cls(values, attributes, resolve_class_index(df.columns, class_column), df.index)

    @property
    def n_rows(self) -> int:
        return self.values.shape[0]

    @property
    def n_attributes(self) -> int:
        return self.values.shape[1]

    @property
    def columns(self) -> list[Any]:
        return [a.name for a in self.attributes]

    def non_class_indices(self) -> list[int]:
        return [i for i in range(self.n_attributes) if i != self.class_index]

    def is_missing(self, row: int, attr: int) -> bool:
        return bool(np.isnan(self.values[row, attr]))

    def missing_counts(self) -> np.ndarray:
        return np.isnan(self.values).sum(axis=0)

    def missingness_index(self) -> MissingnessIndex:
        missing, observed = {}, {}
        for attr in self.non_class_indices():
            is_missing = np.isnan(self.values[:, attr])
            missing[attr] = np.flatnonzero(is_missing)
            observed[attr] = np.flatnonzero(~is_missing)
        return MissingnessIndex(missing=missing, observed=observed)

    def copy(self) -> Dataset:
        return Dataset(self.values.copy(), self.attributes, self.class_index, self.index)

    def header(self) -> Dataset:
        """Zero-row dataset with the same schema."""
        return Dataset(np.empty((0, self.n_attributes)), self.attributes, self.class_index)

    def encode_frame(self, df: pd.DataFrame) -> np.ndarray:
        """Encode a frame with this dataset's schema into the cell matrix."""
        return Dataset.from_frame(df, attributes=self.attributes).values

    def decode(self, values: np.ndarray, index: pd.Index | None = None) -> pd.DataFrame:
        """Convert a cell matrix with this schema back to a DataFrame."""
        return pd.DataFrame(
            {a.name: a.decode(values[:, i]) for i, a in enumerate(self.attributes)},
            index=index,
        )

    def to_frame(self) -> pd.DataFrame:
        return self.decode(self.values, self.index)

    def __len__(self) -> int:
        return self.n_rows

    def __repr__(self) -> str:
        return (
            f"Dataset(n_rows={self.n_rows}, n_attributes={self.n_attributes}, "
            f"class_index={self.class_index})"
        )


def resolve_class_index(columns: pd.Index | Sequence[Any], class_column: Any) -> int | None:
    """Map a class column label, or integer position, to its position."""
    if class_column is None:
        return None
    columns = list(columns)
    if class_column in columns:
        return columns.index(class_column)
    if isinstance(class_column, int) and not isinstance(class_column, bool) and 0 <= class_column < len(columns):
        return class_column
    raise ConfigurationError(f"Class column {class_column!r} not found in {columns}")
