"""Iterative Robust Semi-Supervised Imputation (IRSSI)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from semimpute.dataset import Dataset
from semimpute.shared import seed_everything
from .config import ImputerConfig
from .mixins import BaseImputerMixin
from .scheduling import AttributeScheduler, ScheduledAttribute, StabilityTracker
from .self_training import ModelSlot, SelfTrainingEngine
from .warm_start import WarmStartImputer

logger = logging.getLogger(__name__)


@dataclass
class SelfTrainingStep:
    """Progress update emitted after each attribute's self-training run."""
    epoch: int
    attribute: Any
    attribute_index: int
    unlabeled_sizes: tuple[int, ...]
    sum_of_squares: float
    stable: bool

    @property
    def rounds(self) -> int:
        return len(self.unlabeled_sizes)


class IRSSIImputer(BaseImputerMixin, BaseEstimator, TransformerMixin):
    """Self-training imputer with a regression ensemble for numeric attributes.

    After a median/mode warm start, every attribute with missing values is in
    turn treated as a pseudo-target, most-missing first. A model is trained on
    the rows that observe it and its most confident predictions on the rows
    that miss it are promoted to labeled examples over several rounds.
    Nominal attributes use a single probabilistic classifier (confidence is
    the top class probability); numeric attributes use an EnsembleRegressor
    of three regressors (confidence is the negated spread of their
    predictions). Epochs repeat until every attribute is stable or
    ``num_epochs`` is reached. The final model of each attribute is kept and
    used by transform() to fill new data.

    Reference: Fazakis et al., 2019 - "Iterative Robust Semi-Supervised
    Missing Data Imputation"

    Parameters
    ----------
    config : ImputerConfig, optional
        Imputer options, validated when fit() starts. Defaults to
        ImputerConfig().
    class_column : label or int, optional
        Column excluded from imputation and never used as a feature.

    Attributes
    ----------
    slots_ : dict[int, ModelSlot]
        Trained model per attribute index.
    header_ : Dataset
        Zero-row schema of the training data.
    stable_ : dict[int, bool]
        Final stability flag per non-class attribute.
    n_epochs_ : int
        Number of epochs actually run.

    Examples
    --------
    >>> from semimpute import IRSSIImputer, ImputerConfig
    >>> imputer = IRSSIImputer(ImputerConfig(num_epochs=5), class_column='target')
    >>> imputer.fit(df_missing)
    >>> df_imputed = imputer.transform(df_missing)
    """

    def __init__(self, config: ImputerConfig | None = None, class_column: Any = None):
        self.config = config
        self.class_column = class_column

    def streamed_fit(self, X: np.ndarray | pd.DataFrame | Dataset, y: Any | None = None) -> Iterator[SelfTrainingStep]:
        """Fit with progress streaming.

        Configuration and input are validated immediately; training happens
        as the returned iterator is consumed.

        Args:
            X: Input data containing NaN values.
            y: Ignored. Present for sklearn compatibility.

        Returns:
            Iterator yielding one SelfTrainingStep per attribute run.

        Raises:
            ConfigurationError: On invalid options or an unknown class column.
        """
        config = (self.config if self.config is not None else ImputerConfig()).validated()
        for name in ('slots_', 'header_', 'warm_start_', 'attribute_order_', 'stable_', 'n_epochs_'):
            self.__dict__.pop(name, None)
        dataset = self._prepare_fit_input(X, self.class_column)
        return self._self_train(dataset, config)

    def _self_train(self, dataset: Dataset, config: ImputerConfig) -> Iterator[SelfTrainingStep]:
        seed_everything(config.random_state)

        working = dataset.copy()
        index = working.missingness_index()
        warm_start = WarmStartImputer().fit(working)
        warm_start.transform(working)

        scheduler = AttributeScheduler(working.class_index)
        order = scheduler.order(dataset.missing_counts())
        nothing_to_learn = [
            attr for attr in working.non_class_indices()
            if index.missing[attr].size == 0 or index.observed[attr].size == 0
        ]
        tracker = StabilityTracker(working.non_class_indices(), config.epsilon, stable=nothing_to_learn)
        engine = SelfTrainingEngine(working, index, config, tracker)

        slots: dict[int, ModelSlot] = {}
        epochs_run = 0
        for epoch in range(config.num_epochs):
            logger.info("Epoch %d/%d", epoch + 1, config.num_epochs)
            epochs_run += 1
            for entry in scheduler.eligible(order):
                if tracker.is_stable(entry.index):
                    continue
                result = engine.run(entry.index)
                if result is None:
                    continue
                slots[entry.index] = result.slot
                yield SelfTrainingStep(
                    epoch=epoch,
                    attribute=working.attributes[entry.index].name,
                    attribute_index=entry.index,
                    unlabeled_sizes=result.unlabeled_sizes,
                    sum_of_squares=result.sum_of_squares,
                    stable=result.stable,
                )
            if tracker.all_stable:
                logger.info("All attributes stable after %d epoch(s)", epoch + 1)
                break

        self.header_ = working.header()
        self.warm_start_ = warm_start
        self.attribute_order_: list[ScheduledAttribute] = order
        self.stable_ = tracker.flags
        self.n_epochs_ = epochs_run
        self.slots_ = slots

    def fit(self, X: np.ndarray | pd.DataFrame | Dataset, y: Any | None = None) -> IRSSIImputer:
        """Self-train one model per attribute on data with missing values.

        Args:
            X: Input data containing NaN values.
            y: Ignored. Present for sklearn compatibility.

        Returns:
            The fitted imputer.

        Raises:
            ConfigurationError: On invalid options, before any training.
            ModelTrainingError: If an attribute's model fails to train.
            PredictionError: If an attribute's model fails to predict.
        """
        for _ in self.streamed_fit(X, y):
            pass
        return self

    def _impute_values(self, values: np.ndarray) -> np.ndarray:
        """Fill missing cells of a cell matrix attribute by attribute, in index order.

        Cells still missing when an attribute is predicted are stood in for
        by the warm-start fill values.
        """
        filled = values.copy()
        for attr in sorted(self.slots_):
            rows = np.flatnonzero(np.isnan(filled[:, attr]))
            if rows.size == 0:
                continue
            features = self.warm_start_.fill_missing(filled[rows])
            filled[rows, attr] = self.slots_[attr].predict(features)
        return filled

    def _fill(self, X_df: pd.DataFrame) -> pd.DataFrame:
        values = self.header_.encode_frame(X_df)
        imputed = self._impute_values(values)
        decoded = self.header_.decode(imputed, X_df.index)

        X_out = X_df.copy()
        filled = X_df.isna().to_numpy() & ~np.isnan(imputed)
        for i in np.flatnonzero(filled.any(axis=0)):
            rows = np.flatnonzero(filled[:, i])
            new_values = decoded.iloc[rows, i].to_numpy()
            column = X_out.iloc[:, i]
            if isinstance(column.dtype, pd.CategoricalDtype):
                unseen = pd.Index(new_values).difference(column.cat.categories)
                X_out.isetitem(i, column.cat.add_categories(unseen))
            elif self.header_.attributes[i].is_nominal and column.dtype != object:
                X_out.isetitem(i, column.astype(object))
            elif pd.api.types.is_integer_dtype(column.dtype) or pd.api.types.is_bool_dtype(column.dtype):
                X_out.isetitem(i, column.astype(float))
            X_out.iloc[rows, i] = new_values
        return X_out

    def transform(self, X: np.ndarray | pd.DataFrame) -> np.ndarray | pd.DataFrame:
        """Impute missing values using the self-trained models.

        Attributes without a trained model (nothing was missing during fit,
        or nothing was observed) are left untouched, as is the class column.

        Args:
            X: Data with missing values to impute.

        Returns:
            Data with missing positions filled. Same format as input.
        """
        check_is_fitted(self, 'slots_')
        X_df, return_numpy = self._validate_transform_input(X)

        if not X_df.isnull().any().any():
            return X if return_numpy else X_df

        X_imputed = self._fill(X_df)
        return X_imputed.values if return_numpy else X_imputed

    def impute_row(self, row: pd.Series) -> pd.Series:
        """Impute a single row.

        Args:
            row: Series indexed by the training columns.

        Returns:
            A new Series with eligible missing cells filled; ``row`` itself
            is never modified.
        """
        check_is_fitted(self, 'slots_')
        result = row.copy()
        missing = row.isna()
        if not missing.any():
            return result

        frame, _ = self._validate_transform_input(row.to_frame().T)
        filled = self._fill(frame).iloc[0]
        result[missing] = filled[missing]
        return result
