"""Feature matrices for per-attribute models."""
from __future__ import annotations

from typing import Literal, Sequence

import numpy as np
from sklearn.preprocessing import OneHotEncoder

from semimpute.dataset import Attribute

CategoricalEncoding = Literal['onehot', 'ordinal']


class FeatureEncoder:
    """Turns dataset cells into the numeric features a pseudo-target model sees.

    Numerical columns pass through as-is. Nominal columns are either kept as
    their domain codes ('ordinal') or expanded with OneHotEncoder ('onehot').
    Nominal columns with an empty domain carry no information and are dropped.
    When no feature column remains, a single constant column is produced so
    that estimators fall back to an intercept-only fit.

    Parameters
    ----------
    attributes : Sequence[Attribute]
        Schema of the full dataset.
    feature_indices : Sequence[int]
        Columns used as features, in order.
    categorical_encoder : Literal['onehot', 'ordinal'], default='ordinal'
        Encoding strategy for nominal columns.
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        feature_indices: Sequence[int],
        categorical_encoder: CategoricalEncoding = 'ordinal',
    ):
        self.categorical_encoder = categorical_encoder
        self.feature_indices = [
            i for i in feature_indices
            if not (attributes[i].is_nominal and attributes[i].num_values == 0)
        ]
        self._num_idx = [i for i in self.feature_indices if not attributes[i].is_nominal]
        self._cat_idx = [i for i in self.feature_indices if attributes[i].is_nominal]
        self._encoder: OneHotEncoder | None = None

        if self._cat_idx and categorical_encoder == 'onehot':
            categories = [np.arange(attributes[i].num_values, dtype=float) for i in self._cat_idx]
            self._encoder = OneHotEncoder(
                categories=categories, sparse_output=False, handle_unknown='ignore',
            )
            self._encoder.fit(np.zeros((1, len(self._cat_idx))))

    def transform(self, values: np.ndarray) -> np.ndarray:
        """Encode the feature columns of a cell matrix.

        Args:
            values: Cell matrix of shape (n_rows, n_attributes).

        Returns:
            Float feature matrix of shape (n_rows, n_features).
        """
        if not self.feature_indices:
            return np.zeros((values.shape[0], 1))

        parts = []
        if self._num_idx:
            parts.append(values[:, self._num_idx])
        if self._cat_idx:
            codes = values[:, self._cat_idx]
            match self.categorical_encoder:
                case 'onehot':
                    parts.append(self._encoder.transform(codes))
                case 'ordinal':
                    parts.append(codes)
        return np.hstack(parts) if len(parts) > 1 else parts[0]
