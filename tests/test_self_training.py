"""Per-attribute self-training loop."""
import numpy as np
import pandas as pd
import pytest
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.svm import LinearSVC
from sklearn.tree import DecisionTreeClassifier

from semimpute import Dataset, ImputerConfig, ModelTrainingError, PredictionError, WarmStartImputer
from semimpute.imputer import SelfTrainingEngine, StabilityTracker
from semimpute.imputer import self_training
from semimpute.imputer.self_training import promotion_size

LINEAR = (LinearRegression(), LinearRegression(), LinearRegression())


class ScaledRegressor(RegressorMixin, BaseEstimator):
    def __init__(self, scale=1.0):
        self.scale = scale

    def fit(self, X, y):
        return self

    def predict(self, X):
        return np.asarray(X, dtype=float)[:, 0] * self.scale


class ThresholdClassifier(ClassifierMixin, BaseEstimator):
    """Probability of the second class grows linearly with the first feature."""

    def fit(self, X, y):
        self.classes_ = np.unique(y)
        return self

    def predict_proba(self, X):
        p = np.clip(np.asarray(X, dtype=float)[:, 0] / 10.0, 0.0, 1.0)
        return np.column_stack([1.0 - p, p])

    def predict(self, X):
        return self.classes_[self.predict_proba(X).argmax(axis=1)]


def build_engine(df, class_column=None, epsilon=5.0, **options):
    """Warm-started working dataset and an engine over it."""
    dataset = Dataset.from_frame(df, class_column=class_column)
    index = dataset.missingness_index()
    WarmStartImputer().fit_transform(dataset)
    config = ImputerConfig(epsilon=epsilon, **options).validated()
    tracker = StabilityTracker(dataset.non_class_indices(), config.epsilon)
    return dataset, SelfTrainingEngine(dataset, index, config, tracker)


def line_frame(n_rows, missing_rows):
    x = np.arange(1.0, n_rows + 1)
    y = 2.0 * x + 1.0
    y[list(missing_rows)] = np.nan
    return pd.DataFrame({"x": x, "y": y})


@pytest.mark.parametrize("n_unlabeled,expected", [(1, 1), (7, 1), (10, 1), (19, 1), (20, 2), (250, 25)])
def test_promotion_size(n_unlabeled, expected):
    assert promotion_size(n_unlabeled) == expected


def test_small_unlabeled_set_promoted_one_row_per_round():
    dataset, engine = build_engine(line_frame(20, range(0, 14, 2)), regressors=LINEAR)

    result = engine.run(1)

    assert result.unlabeled_sizes == (7, 6, 5, 4, 3, 2, 1)
    assert result.rounds == 7
    np.testing.assert_allclose(dataset.values[:, 1], 2.0 * dataset.values[:, 0] + 1.0)


def test_round_limit_leaves_remaining_rows_at_warm_start():
    df = line_frame(30, range(15))
    warm = float(np.median(df["y"].dropna()))
    dataset, engine = build_engine(df, regressors=LINEAR)

    result = engine.run(1)

    assert result.rounds == self_training.MAX_SELF_TRAINING_ROUNDS
    assert result.unlabeled_sizes == tuple(range(15, 5, -1))
    assert all(a >= b for a, b in zip(result.unlabeled_sizes, result.unlabeled_sizes[1:]))
    assert np.sum(dataset.values[:15, 1] == warm) == 5


def test_most_confident_rows_promoted_first(monkeypatch):
    monkeypatch.setattr(self_training, "MAX_SELF_TRAINING_ROUNDS", 1)
    df = pd.DataFrame({"x": [5.0, 1.0, 3.0, 2.0, 4.0], "y": [np.nan, np.nan, np.nan, 7.0, 9.0]})
    regressors = (ScaledRegressor(1.0), ScaledRegressor(1.0), ScaledRegressor(2.0))
    dataset, engine = build_engine(df, regressors=regressors)

    result = engine.run(1)

    # members disagree by |x|, so x=1 is the most confident row
    np.testing.assert_allclose(dataset.values[:3, 1], [8.0, 4.0 / 3.0, 8.0])
    assert result.sum_of_squares == pytest.approx((8.0 - 4.0 / 3.0) ** 2)


def test_nominal_confidence_is_top_class_probability(monkeypatch):
    monkeypatch.setattr(self_training, "MAX_SELF_TRAINING_ROUNDS", 1)
    df = pd.DataFrame({
        "x": [5.0, 9.0, 2.0, 0.0, 10.0],
        "flag": pd.Series([np.nan, np.nan, np.nan, "off", "on"], dtype=object),
    })
    dataset, engine = build_engine(df, nominal_classifier=ThresholdClassifier(), regressors=LINEAR)
    warm = dataset.values[0, 1]

    engine.run(1)

    assert dataset.values[1, 1] == 1.0
    assert dataset.values[0, 1] == warm
    assert dataset.values[2, 1] == warm


def test_nominal_attribute_labels_separable_data():
    x = np.arange(1.0, 13.0)
    color = np.where(x <= 6, "red", "blue").astype(object)
    color[[1, 10]] = np.nan
    dataset, engine = build_engine(
        pd.DataFrame({"x": x, "color": color}),
        nominal_classifier=DecisionTreeClassifier(random_state=0),
        regressors=LINEAR,
    )

    result = engine.run(1)

    assert result.slot.kind.value == "nominal"
    # domain is ('blue', 'red')
    assert dataset.values[1, 1] == 1.0
    assert dataset.values[10, 1] == 0.0


def test_stability_reported_to_tracker():
    df = line_frame(10, [0])
    dataset, engine = build_engine(df, epsilon=1e9, regressors=LINEAR)

    result = engine.run(1)

    assert result.stable
    assert engine.tracker.is_stable(1)
    assert not engine.tracker.is_stable(0)


def test_class_column_is_not_a_feature():
    df = line_frame(12, [3, 7])
    df["label"] = np.nan
    dataset, engine = build_engine(df, class_column="label", regressors=LINEAR)

    result = engine.run(1)

    assert result.slot.encoder.feature_indices == [0]
    assert np.isnan(dataset.values[:, 2]).all()


def test_attribute_without_observed_rows_is_skipped():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "empty": [np.nan] * 3})
    _, engine = build_engine(df, regressors=LINEAR)

    assert engine.run(1) is None


def test_classifier_without_distribution_raises_prediction_error():
    df = pd.DataFrame({
        "x": [0.0, 1.0, 2.0, 3.0, 4.0, 5.0],
        "flag": pd.Series(["off", "off", "on", "on", np.nan, np.nan], dtype=object),
    })
    _, engine = build_engine(df, nominal_classifier=LinearSVC(), regressors=LINEAR)

    with pytest.raises(PredictionError) as excinfo:
        engine.run(1)
    assert excinfo.value.attribute == "flag"


def test_single_class_target_suggests_more_labels():
    df = pd.DataFrame({
        "x": [0.0, 1.0, 2.0, 3.0],
        "flag": pd.Series(["on", "on", "on", np.nan], dtype=object),
    })
    _, engine = build_engine(df, nominal_classifier=LogisticRegression(), regressors=LINEAR)

    with pytest.raises(ModelTrainingError, match="labeled ratio"):
        engine.run(1)
