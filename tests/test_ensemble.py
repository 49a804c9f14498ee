"""EnsembleRegressor: member count, mean prediction and spread confidence."""
import numpy as np
import pytest
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.exceptions import NotFittedError
from sklearn.linear_model import LinearRegression, Ridge
from sklearn.tree import DecisionTreeRegressor

from semimpute import ConfigurationError, EnsembleRegressor, ModelTrainingError


class ScaledRegressor(RegressorMixin, BaseEstimator):
    """Predicts the first feature times a fixed scale, ignoring the target."""

    def __init__(self, scale=1.0):
        self.scale = scale

    def fit(self, X, y):
        self.n_features_in_ = np.asarray(X).shape[1]
        return self

    def predict(self, X):
        return np.asarray(X, dtype=float)[:, 0] * self.scale


class FailingRegressor(RegressorMixin, BaseEstimator):
    def fit(self, X, y):
        raise ValueError("cannot fit")

    def predict(self, X):
        return np.zeros(len(X))


@pytest.fixture
def linear_data() -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 2))
    y = 3.0 * X[:, 0] - X[:, 1] + 0.5
    return X, y


@pytest.mark.parametrize("n_members", [0, 2, 4])
def test_requires_exactly_three_members(n_members):
    with pytest.raises(ConfigurationError, match="should be 3"):
        EnsembleRegressor([LinearRegression() for _ in range(n_members)])


def test_prediction_is_member_mean():
    ensemble = EnsembleRegressor([ScaledRegressor(1.0), ScaledRegressor(2.0), ScaledRegressor(6.0)])
    X = np.array([[1.0], [-2.0], [0.0]])
    ensemble.fit(X, np.zeros(3))

    np.testing.assert_allclose(ensemble.predict(X), [3.0, -6.0, 0.0])
    np.testing.assert_allclose(ensemble.predict_members(X)[1], [-2.0, -4.0, -12.0])


def test_confidence_is_negated_spread():
    ensemble = EnsembleRegressor([ScaledRegressor(1.0), ScaledRegressor(1.0), ScaledRegressor(2.0)])
    X = np.array([[5.0], [1.0], [-3.0]])
    ensemble.fit(X, np.zeros(3))

    mean, confidence = ensemble.predict_with_confidence(X)

    np.testing.assert_allclose(mean, [20.0 / 3, 4.0 / 3, -4.0])
    np.testing.assert_allclose(confidence, [-5.0, -1.0, -3.0])
    assert np.argmax(confidence) == 1


def test_identical_members_are_fully_confident(linear_data):
    X, y = linear_data
    ensemble = EnsembleRegressor([LinearRegression(), LinearRegression(), LinearRegression()]).fit(X, y)

    _, confidence = ensemble.predict_with_confidence(X)

    np.testing.assert_allclose(confidence, 0.0, atol=1e-9)


def test_members_are_independent_clones(linear_data):
    X, y = linear_data
    prototypes = [LinearRegression(), Ridge(alpha=1.0), DecisionTreeRegressor(random_state=0)]
    ensemble = EnsembleRegressor(prototypes).fit(X, y)

    assert all(fitted is not proto for fitted, proto in zip(ensemble.estimators_, prototypes))
    assert not hasattr(prototypes[0], "coef_")
    assert isinstance(ensemble.estimators_.third, DecisionTreeRegressor)


def test_threaded_training_matches_sequential(linear_data):
    X, y = linear_data
    members = [LinearRegression(), Ridge(alpha=1.0), DecisionTreeRegressor(random_state=0)]

    sequential = EnsembleRegressor(members, n_jobs=1).fit(X, y)
    threaded = EnsembleRegressor(members, n_jobs=3).fit(X, y)

    np.testing.assert_allclose(threaded.predict_members(X), sequential.predict_members(X))


def test_default_members(linear_data):
    X, y = linear_data
    ensemble = EnsembleRegressor(random_state=0).fit(X, y)

    assert [type(m).__name__ for m in ensemble.estimators_] == [
        "LinearRegression", "DecisionTreeRegressor", "RandomForestRegressor",
    ]


def test_member_failure_raises_training_error(linear_data):
    X, y = linear_data
    ensemble = EnsembleRegressor([LinearRegression(), FailingRegressor(), LinearRegression()])

    with pytest.raises(ModelTrainingError, match="cannot fit"):
        ensemble.fit(X, y)
    assert not hasattr(ensemble, "estimators_")


def test_predict_before_fit():
    with pytest.raises(NotFittedError):
        EnsembleRegressor().predict(np.zeros((2, 1)))
