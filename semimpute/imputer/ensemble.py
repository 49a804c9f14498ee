"""Three-member regression ensemble with range-based confidence."""
from __future__ import annotations

from typing import Any, NamedTuple, Sequence

import numpy as np
from joblib import Parallel, delayed
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.utils.validation import check_is_fitted

from semimpute.errors import ConfigurationError
from .estimators import default_regressors, fit_estimator, make_estimator, predict_estimator

ENSEMBLE_SIZE = 3
"""Number of member regressors; confidence is defined over exactly this many."""


class EnsembleMembers(NamedTuple):
    first: Any
    second: Any
    third: Any


def _as_members(regressors: Sequence[Any]) -> EnsembleMembers:
    if len(regressors) != ENSEMBLE_SIZE:
        raise ConfigurationError(
            f"Number of base regressors should be {ENSEMBLE_SIZE} explicitly, got {len(regressors)}"
        )
    return EnsembleMembers(*regressors)


class EnsembleRegressor(RegressorMixin, BaseEstimator):
    """Combines three independently trained regressors by their mean.

    Each member is trained on its own clone of the prototype, on the same
    data, so members share no state. Disagreement between members is the
    confidence signal used for pseudo-labeling: the narrower the range of the
    three predictions, the more confident the ensemble.

    Parameters
    ----------
    regressors : Sequence, optional
        Exactly three regressor prototypes or zero-argument factories.
        Defaults to LinearRegression, DecisionTreeRegressor and
        RandomForestRegressor.
    n_jobs : int, default=1
        Worker threads used to train/predict the members (capped at 3).
        1 means sequential.
    random_state : int | None, default=None
        Seed forwarded to the default regressors.

    Raises
    ------
    ConfigurationError
        If the number of regressors is not 3 (at construction or fit time).

    Examples
    --------
    >>> from sklearn.linear_model import LinearRegression, Ridge
    >>> from sklearn.tree import DecisionTreeRegressor
    >>> ensemble = EnsembleRegressor([LinearRegression(), Ridge(), DecisionTreeRegressor()])
    >>> ensemble.fit(X, y)
    >>> mean, confidence = ensemble.predict_with_confidence(X_new)
    """

    def __init__(
        self,
        regressors: Sequence[Any] | None = None,
        n_jobs: int = 1,
        random_state: int | None = None,
    ):
        self.regressors = regressors
        self.n_jobs = n_jobs
        self.random_state = random_state
        if regressors is not None:
            _as_members(regressors)

    def _parallel(self) -> Parallel:
        return Parallel(n_jobs=max(1, min(self.n_jobs, ENSEMBLE_SIZE)), prefer="threads")

    def fit(self, X: np.ndarray, y: np.ndarray) -> EnsembleRegressor:
        """Train every member on the identical labeled set.

        Args:
            X: Feature matrix.
            y: Numeric target.

        Returns:
            The fitted ensemble.

        Raises:
            ModelTrainingError: If any member fails; no partial ensemble is kept.
        """
        prototypes = self.regressors if self.regressors is not None else default_regressors(self.random_state)
        members = _as_members(prototypes)
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)

        fitted = self._parallel()(
            delayed(fit_estimator)(make_estimator(member), X, y) for member in members
        )
        self.estimators_ = EnsembleMembers(*fitted)
        self.n_features_in_ = X.shape[1]
        return self

    def predict_members(self, X: np.ndarray) -> np.ndarray:
        """Per-member predictions, shape (n_samples, 3)."""
        check_is_fitted(self, 'estimators_')
        X = np.asarray(X, dtype=float)
        predictions = self._parallel()(
            delayed(predict_estimator)(member, X) for member in self.estimators_
        )
        return np.column_stack(predictions)

    def predict(self, X: np.ndarray) -> np.ndarray:
        return self.predict_members(X).mean(axis=1)

    def predict_with_confidence(self, X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Mean prediction and confidence (negated max-min spread of the members)."""
        members = self.predict_members(X)
        spread = members.max(axis=1) - members.min(axis=1)
        return members.mean(axis=1), -spread
