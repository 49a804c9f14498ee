"""Attribute processing order and per-attribute convergence flags."""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping, NamedTuple

logger = logging.getLogger(__name__)


class ScheduledAttribute(NamedTuple):
    index: int
    missing_count: int


class AttributeScheduler:
    """Orders attributes by descending original missing count.

    Ties keep ascending attribute index. The class attribute and attributes
    with nothing missing stay in the order but are never eligible.
    """

    def __init__(self, class_index: int | None = None):
        self.class_index = class_index

    def order(self, missing_counts: Mapping[int, int] | Iterable[int]) -> list[ScheduledAttribute]:
        if not isinstance(missing_counts, Mapping):
            missing_counts = dict(enumerate(missing_counts))
        entries = [ScheduledAttribute(int(i), int(c)) for i, c in sorted(missing_counts.items())]
        return sorted(entries, key=lambda entry: entry.missing_count, reverse=True)

    def is_eligible(self, entry: ScheduledAttribute) -> bool:
        return entry.index != self.class_index and entry.missing_count > 0

    def eligible(self, order: Iterable[ScheduledAttribute]) -> Iterator[ScheduledAttribute]:
        return (entry for entry in order if self.is_eligible(entry))


class StabilityTracker:
    """One convergence flag per non-class attribute.

    A flag turns on when an epoch's accumulated squared pseudo-label change
    for the attribute falls below ``epsilon`` and stays on for the rest of
    the run.

    Parameters
    ----------
    attributes : Iterable[int]
        Non-class attribute indices to track.
    epsilon : float
        Threshold on the per-epoch sum of squared changes.
    stable : Iterable[int], optional
        Attributes that start out stable (nothing to self-train).
    """

    def __init__(self, attributes: Iterable[int], epsilon: float, stable: Iterable[int] = ()):
        self.epsilon = epsilon
        self._flags = {attr: False for attr in attributes}
        for attr in stable:
            self._flags[attr] = True

    def update(self, attribute: int, sum_of_squares: float) -> bool:
        """Record one epoch's change for an attribute and return its flag."""
        if not self._flags[attribute] and sum_of_squares < self.epsilon:
            self._flags[attribute] = True
            logger.info(
                "Attribute %d stable (sum of squares %.6g < epsilon %.6g)",
                attribute, sum_of_squares, self.epsilon,
            )
        return self._flags[attribute]

    def is_stable(self, attribute: int) -> bool:
        return self._flags[attribute]

    @property
    def all_stable(self) -> bool:
        return all(self._flags.values())

    @property
    def flags(self) -> dict[int, bool]:
        return dict(self._flags)
