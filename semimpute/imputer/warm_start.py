"""Median/mode fill that gives self-training a fully observed starting point."""
from __future__ import annotations

from typing import Iterable

import numpy as np

from semimpute.dataset import Dataset


def median(values: Iterable[float]) -> float:
    """Median of the finite values, 0.0 when there are none.

    Even counts average the two middle values.
    """
    finite = np.sort([v for v in values if np.isfinite(v)])
    if finite.size == 0:
        return 0.0
    mid = finite.size // 2
    if finite.size % 2 == 0:
        return float((finite[mid - 1] + finite[mid]) / 2.0)
    return float(finite[mid])


def mode(values: Iterable[float]) -> float:
    """Most frequent non-missing value, 0.0 when there are none.

    Ties go to the value that reached the winning count first while scanning
    left to right.
    """
    counts: dict[float, int] = {}
    best, best_count = 0.0, 0
    for value in values:
        if np.isnan(value):
            continue
        counts[value] = counts.get(value, 0) + 1
        if counts[value] > best_count:
            best, best_count = value, counts[value]
    return float(best)


class WarmStartImputer:
    """One-shot fill of every non-class attribute.

    Numeric attributes get the median of their finite values, nominal ones
    the mode of their codes. Cells that are missing or non-finite are
    overwritten in place; the class attribute is never touched.

    Attributes
    ----------
    fill_values_ : dict[int, float]
        Fill value per attribute index, set by ``fit``.
    """

    def __init__(self):
        self.fill_values_: dict[int, float] = {}

    def fit(self, dataset: Dataset) -> WarmStartImputer:
        self.fill_values_ = {}
        for attr in dataset.non_class_indices():
            column = dataset.values[:, attr]
            if dataset.attributes[attr].is_nominal:
                self.fill_values_[attr] = mode(column)
            else:
                self.fill_values_[attr] = median(column)
        return self

    def transform(self, dataset: Dataset) -> Dataset:
        """Fill the dataset in place and return it."""
        for attr, fill in self.fill_values_.items():
            column = dataset.values[:, attr]
            column[~np.isfinite(column)] = fill
        return dataset

    def fit_transform(self, dataset: Dataset) -> Dataset:
        return self.fit(dataset).transform(dataset)

    def fill_missing(self, values: np.ndarray) -> np.ndarray:
        """Return a copy of a cell matrix with missing cells replaced by the fill values."""
        filled = values.copy()
        for attr, fill in self.fill_values_.items():
            column = filled[:, attr]
            column[np.isnan(column)] = fill
        return filled
