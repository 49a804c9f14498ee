"""Construction and error-wrapped training of the pluggable estimators."""
from __future__ import annotations

from typing import Any

import numpy as np
from sklearn.base import clone
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.linear_model import LinearRegression
from sklearn.tree import DecisionTreeRegressor

from semimpute.errors import ModelTrainingError, PredictionError
from .imputer import ProbabilisticTrainable, Trainable

EstimatorFactory = Any
"""An estimator prototype (cloned per use) or a zero-argument factory."""

_SINGLE_CLASS_MARKERS = (
    "only one class",
    "at least 2 classes",
    "greater than one",
    "all class values are the same",
)


def default_nominal_classifier(random_state: int | None = None) -> RandomForestClassifier:
    return RandomForestClassifier(random_state=random_state)


def default_regressors(random_state: int | None = None) -> tuple[Any, Any, Any]:
    """Linear model, single tree and forest, as in the published IRSSI setup."""
    return (
        LinearRegression(),
        DecisionTreeRegressor(random_state=random_state),
        RandomForestRegressor(random_state=random_state),
    )


def make_estimator(factory: EstimatorFactory) -> Any:
    """Produce a fresh, untrained estimator from a prototype or factory."""
    if hasattr(factory, 'get_params') and not isinstance(factory, type):
        estimator = clone(factory)
    elif callable(factory):
        estimator = factory()
    else:
        raise TypeError(f"Cannot build an estimator from {factory!r}")
    if not isinstance(estimator, Trainable):
        raise TypeError(f"{type(estimator).__name__} does not implement fit/predict")
    return estimator


def fit_estimator(estimator: Any, X: np.ndarray, y: np.ndarray, attribute: str | None = None) -> Any:
    """Fit an estimator, re-raising any failure as ModelTrainingError."""
    try:
        return estimator.fit(X, y)
    except ModelTrainingError as e:
        if attribute is None or e.attribute is not None:
            raise
        raise ModelTrainingError(f"Attribute {attribute!r}: {e}", attribute=attribute) from e
    except Exception as e:
        message = f"{type(estimator).__name__} failed to train"
        if attribute is not None:
            message += f" on attribute {attribute!r}"
        message += f": {e}"
        if any(marker in str(e).lower() for marker in _SINGLE_CLASS_MARKERS):
            message += "\nTry increasing the labeled ratio."
        raise ModelTrainingError(message, attribute=attribute) from e


def predict_estimator(estimator: Any, X: np.ndarray, attribute: str | None = None) -> np.ndarray:
    """Predict with an estimator, re-raising any failure as PredictionError."""
    try:
        return np.asarray(estimator.predict(X), dtype=float)
    except PredictionError as e:
        if attribute is None or e.attribute is not None:
            raise
        raise PredictionError(f"Attribute {attribute!r}: {e}", attribute=attribute) from e
    except Exception as e:
        raise PredictionError(
            f"{type(estimator).__name__} failed to predict: {e}", attribute=attribute,
        ) from e


def predict_distribution(estimator: Any, X: np.ndarray, attribute: str | None = None) -> tuple[np.ndarray, np.ndarray]:
    """Class-probability distribution and the matching class labels.

    Returns:
        Tuple of (probabilities of shape (n, n_classes), classes).

    Raises:
        PredictionError: If the estimator has no usable ``predict_proba``.
    """
    if not isinstance(estimator, ProbabilisticTrainable):
        raise PredictionError(
            f"{type(estimator).__name__} does not provide class probabilities", attribute=attribute,
        )
    try:
        proba = np.asarray(estimator.predict_proba(X), dtype=float)
        classes = np.asarray(estimator.classes_, dtype=float)
    except Exception as e:
        raise PredictionError(
            f"{type(estimator).__name__} failed to produce a class distribution: {e}",
            attribute=attribute,
        ) from e
    if proba.ndim != 2 or proba.shape != (X.shape[0], classes.size):
        raise PredictionError(
            f"{type(estimator).__name__} returned a distribution of shape {proba.shape}, "
            f"expected {(X.shape[0], classes.size)}",
            attribute=attribute,
        )
    return proba, classes
