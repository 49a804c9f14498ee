from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from semimpute.dataset import Dataset, resolve_class_index


class InputHandlerMixin:
    """Converts input arrays/DataFrames/Datasets to a consistent DataFrame format."""

    _columns: list[Any]

    def _prepare_input_data(self, X: np.ndarray | pd.DataFrame | Dataset) -> pd.DataFrame:
        """Convert input to DataFrame, reusing stored column names if available.

        Args:
            X: Input data as numpy array, DataFrame or Dataset.

        Returns:
            Copy of the data as DataFrame.
        """
        if isinstance(X, Dataset):
            return X.to_frame()
        if isinstance(X, pd.DataFrame):
            return X.copy()
        X = np.asarray(X)
        if getattr(self, '_columns', None):
            return pd.DataFrame(X, columns=self._columns).infer_objects()
        return pd.DataFrame(X, columns=[f'col_{i}' for i in range(X.shape[1])]).infer_objects()


class BaseImputerMixin(InputHandlerMixin):
    """Validation logic shared by imputers built on Dataset.

    Stores column metadata on fit and validates that transform() input
    matches the fitted schema.
    """

    def _prepare_fit_input(self, X, class_column: Any = None) -> Dataset:
        """Turn fit input into a Dataset and remember its columns.

        A Dataset passed directly keeps its own class index unless
        ``class_column`` overrides it.
        """
        if isinstance(X, Dataset):
            dataset = X
            if class_column is not None:
                class_index = resolve_class_index(X.columns, class_column)
                dataset = Dataset(X.values, X.attributes, class_index, X.index)
        else:
            self._columns = []
            dataset = Dataset.from_frame(self._prepare_input_data(X), class_column)
        self._columns = dataset.columns
        return dataset

    def _validate_transform_input(self, X) -> tuple[pd.DataFrame, bool]:
        """Validate input for transform and detect output format.

        Args:
            X: Input data to validate.

        Returns:
            Tuple of (prepared DataFrame, True if input was numpy array).

        Raises:
            ValueError: If columns don't match training data.
        """
        return_numpy = isinstance(X, np.ndarray)
        X_df = self._prepare_input_data(X)
        if list(X_df.columns) != self._columns:
            raise ValueError(f"Column mismatch. Expected: {self._columns}, got: {list(X_df.columns)}")
        return X_df, return_numpy
