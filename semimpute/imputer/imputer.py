"""Protocol definitions for imputers and the estimators they orchestrate."""
from __future__ import annotations

from typing import Iterator, Protocol, TYPE_CHECKING, runtime_checkable

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .irssi import SelfTrainingStep

ArrayLike = np.ndarray | pd.DataFrame


@runtime_checkable
class Trainable(Protocol):
    """A regressor or classifier (sklearn estimator API)."""

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'Trainable':
        ...

    def predict(self, X: np.ndarray) -> np.ndarray:
        ...


@runtime_checkable
class ProbabilisticTrainable(Trainable, Protocol):
    """A classifier that also exposes a class-probability distribution.

    Columns of ``predict_proba`` follow the estimator's ``classes_``.
    """

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        ...


class Imputer(Protocol):
    """Base protocol for imputers (sklearn-compatible).

    transform() preserves observed values and only imputes missing positions.
    """

    def fit(self, X: ArrayLike, **kwargs) -> 'Imputer':
        """Learn imputation models from data with missing values.

        Args:
            X: Input data containing NaN values to learn from.

        Returns:
            The fitted imputer instance.
        """
        ...

    def transform(self, X: ArrayLike) -> ArrayLike:
        """Impute missing values using learned models.

        Args:
            X: Data with missing values to impute.

        Returns:
            Data with missing positions filled. Same format as input.
        """
        ...

    def fit_transform(self, X: ArrayLike, **kwargs) -> ArrayLike:
        ...


class StreamableImputer(Imputer):
    """Imputer that exposes training progress via iterators."""

    def streamed_fit(self, X: ArrayLike, **kwargs) -> Iterator[SelfTrainingStep]:
        """Fit with progress streaming.

        Args:
            X: Input data containing NaN values to learn from.

        Returns:
            Iterator yielding one step per attribute self-training run.
        """
        ...
