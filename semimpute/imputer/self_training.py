"""Per-attribute self-training with confidence-ranked pseudo-labels.

For one attribute the rows that observe it form the labeled set and the rows
that miss it the unlabeled set. Each round trains the attribute's model,
scores every unlabeled row, and promotes the most confident ones, writing
their predictions into the working dataset, until the unlabeled set is empty
or the round limit is hit. The model is then trained one last time on the
augmented labeled set and kept for apply-time imputation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from semimpute.dataset import Attribute, AttributeType, Dataset, MissingnessIndex
from semimpute.errors import PredictionError
from .config import ImputerConfig
from .encoding import FeatureEncoder
from .ensemble import EnsembleRegressor
from .estimators import fit_estimator, make_estimator, predict_distribution, predict_estimator
from .scheduling import StabilityTracker

logger = logging.getLogger(__name__)

MAX_SELF_TRAINING_ROUNDS = 10
"""Upper bound on pseudo-labeling rounds per attribute and epoch."""

PROMOTION_FRACTION = 0.1
"""Share of the initial unlabeled set promoted per round."""


def promotion_size(n_unlabeled: int) -> int:
    """Rows promoted per round: 10% of the unlabeled set, at least one."""
    return max(1, int(PROMOTION_FRACTION * n_unlabeled))


@dataclass
class ModelSlot:
    """Trained model for one attribute plus the encoder that feeds it."""
    attribute: int
    kind: AttributeType
    model: Any
    encoder: FeatureEncoder
    name: Any = None

    def predict(self, values: np.ndarray) -> np.ndarray:
        """Predict the attribute's cells for a fully observed cell matrix.

        Numeric slots return the ensemble mean, nominal slots the
        classifier's predicted domain code.
        """
        name = self.attribute if self.name is None else self.name
        return predict_estimator(self.model, self.encoder.transform(values), str(name))


@dataclass
class SelfTrainingResult:
    attribute: int
    slot: ModelSlot
    sum_of_squares: float
    unlabeled_sizes: tuple[int, ...]
    stable: bool = False

    @property
    def rounds(self) -> int:
        return len(self.unlabeled_sizes)


class SelfTrainingEngine:
    """Runs the pseudo-labeling loop for one attribute at a time.

    Parameters
    ----------
    dataset : Dataset
        Warm-started working copy. Pseudo-labels are written into it.
    index : MissingnessIndex
        Original missing/observed rows, computed before the warm start.
    config : ImputerConfig
        Validated configuration supplying the estimators.
    tracker : StabilityTracker, optional
        Receives each run's sum of squared changes.
    """

    def __init__(
        self,
        dataset: Dataset,
        index: MissingnessIndex,
        config: ImputerConfig,
        tracker: StabilityTracker | None = None,
    ):
        self.dataset = dataset
        self.index = index
        self.config = config
        self.tracker = tracker

    def _new_model(self, attribute: Attribute) -> Any:
        match attribute.type:
            case AttributeType.NOMINAL:
                return make_estimator(self.config.nominal_classifier)
            case AttributeType.NUMERIC:
                return EnsembleRegressor(
                    self.config.regressors,
                    n_jobs=self.config.n_jobs,
                    random_state=self.config.random_state,
                )

    def _train(self, model: Any, attribute: Attribute, X: np.ndarray, y: np.ndarray) -> None:
        if attribute.is_nominal:
            y = y.astype(int)
        fit_estimator(model, X, y, attribute=str(attribute.name))

    def _score(self, model: Any, attribute: Attribute, X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Predictions and confidence scores for unlabeled rows."""
        match attribute.type:
            case AttributeType.NOMINAL:
                proba, classes = predict_distribution(model, X, str(attribute.name))
                return classes[proba.argmax(axis=1)], proba.max(axis=1)
            case AttributeType.NUMERIC:
                try:
                    return model.predict_with_confidence(X)
                except PredictionError as e:
                    name = str(attribute.name)
                    raise PredictionError(f"Attribute {name!r}: {e}", attribute=name) from e

    def run(self, attr: int) -> SelfTrainingResult | None:
        """Self-train one attribute for the current epoch.

        Args:
            attr: Attribute index.

        Returns:
            The run's result, or None when the attribute has no observed
            rows to learn from.

        Raises:
            ModelTrainingError: If the attribute's model fails to train.
            PredictionError: If it fails to score the unlabeled rows.
        """
        attribute = self.dataset.attributes[attr]
        observed = self.index.observed[attr]
        missing = self.index.missing[attr]
        if observed.size == 0:
            logger.debug("Skipping attribute %r: no observed values", attribute.name)
            return None

        features = [j for j in self.dataset.non_class_indices() if j != attr]
        encoder = FeatureEncoder(self.dataset.attributes, features, self.config.categorical_encoder)
        X = encoder.transform(self.dataset.values)

        X_labeled = X[observed]
        y_labeled = self.dataset.values[observed, attr]
        unlabeled = {int(row): X[row] for row in missing}
        k = promotion_size(len(unlabeled))
        logger.debug(
            "Self-training %r (%s): labeled=%d unlabeled=%d promote=%d",
            attribute.name, attribute.type.value, len(observed), len(unlabeled), k,
        )

        model = self._new_model(attribute)
        sum_of_squares = 0.0
        sizes = []

        for _ in range(MAX_SELF_TRAINING_ROUNDS):
            if not unlabeled:
                break
            sizes.append(len(unlabeled))
            self._train(model, attribute, X_labeled, y_labeled)

            rows = np.fromiter(unlabeled, dtype=int, count=len(unlabeled))
            X_unlabeled = np.vstack(list(unlabeled.values()))
            predictions, confidence = self._score(model, attribute, X_unlabeled)

            best = np.argsort(-confidence, kind='stable')[:k]
            for pos in best:
                row = int(rows[pos])
                sum_of_squares += (self.dataset.values[row, attr] - predictions[pos]) ** 2
                self.dataset.values[row, attr] = predictions[pos]
                del unlabeled[row]

            X_labeled = np.vstack([X_labeled, X_unlabeled[best]])
            y_labeled = np.concatenate([y_labeled, predictions[best]])
            logger.debug("Labeled: %d Unlabeled: %d", len(y_labeled), len(unlabeled))

        self._train(model, attribute, X_labeled, y_labeled)

        result = SelfTrainingResult(
            attribute=attr,
            slot=ModelSlot(attr, attribute.type, model, encoder, attribute.name),
            sum_of_squares=float(sum_of_squares),
            unlabeled_sizes=tuple(sizes),
        )
        if self.tracker is not None:
            result.stable = self.tracker.update(attr, result.sum_of_squares)
        return result
