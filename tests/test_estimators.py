"""Estimator construction and error wrapping."""
import numpy as np
import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.svm import LinearSVC

from semimpute import ModelTrainingError, PredictionError
from semimpute.imputer import ProbabilisticTrainable, Trainable
from semimpute.imputer.estimators import (
    fit_estimator,
    make_estimator,
    predict_distribution,
    predict_estimator,
)


def test_prototype_is_cloned():
    prototype = LinearRegression(fit_intercept=False)
    estimator = make_estimator(prototype)

    assert estimator is not prototype
    assert estimator.fit_intercept is False


def test_factory_is_called():
    estimator = make_estimator(lambda: LogisticRegression(C=0.5))
    assert isinstance(estimator, LogisticRegression) and estimator.C == 0.5


@pytest.mark.parametrize("factory", [42, object], ids=["not-callable", "no-fit"])
def test_rejects_non_estimators(factory):
    with pytest.raises(TypeError):
        make_estimator(factory)


def test_protocols():
    assert isinstance(LinearRegression(), Trainable)
    assert isinstance(RandomForestClassifier(), ProbabilisticTrainable)
    assert not isinstance(LinearSVC(), ProbabilisticTrainable)


def test_distribution_columns_follow_classes():
    X = np.array([[0.0], [1.0], [2.0], [3.0]])
    model = fit_estimator(LogisticRegression(), X, np.array([2, 2, 5, 5]))

    proba, classes = predict_distribution(model, X, "flag")

    assert proba.shape == (4, 2)
    np.testing.assert_array_equal(classes, [2.0, 5.0])
    np.testing.assert_allclose(proba.sum(axis=1), 1.0)


def test_distribution_without_predict_proba():
    X = np.array([[0.0], [1.0], [2.0], [3.0]])
    model = fit_estimator(LinearSVC(), X, np.array([0, 0, 1, 1]))

    with pytest.raises(PredictionError) as excinfo:
        predict_distribution(model, X, "flag")
    assert excinfo.value.attribute == "flag"


def test_training_failure_names_attribute():
    with pytest.raises(ModelTrainingError) as excinfo:
        fit_estimator(LinearRegression(), np.zeros((3, 1)), np.zeros(2), attribute="height")

    assert excinfo.value.attribute == "height"
    assert "height" in str(excinfo.value)
    assert "labeled ratio" not in str(excinfo.value)


def test_single_class_hint():
    with pytest.raises(ModelTrainingError, match="Try increasing the labeled ratio"):
        fit_estimator(LogisticRegression(), np.zeros((3, 1)), np.ones(3, dtype=int))


def test_prediction_failure_wrapped():
    with pytest.raises(PredictionError):
        predict_estimator(LinearRegression(), np.zeros((2, 1)))


def test_nested_training_error_tagged_with_attribute():
    inner = ModelTrainingError("Ridge failed to train: boom")

    class Wrapper(LinearRegression):
        def fit(self, X, y):
            raise inner

    with pytest.raises(ModelTrainingError) as excinfo:
        fit_estimator(Wrapper(), np.zeros((2, 1)), np.zeros(2), attribute="height")

    assert excinfo.value.attribute == "height"
    assert excinfo.value.__cause__ is inner
    assert "boom" in str(excinfo.value)
