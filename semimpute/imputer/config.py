"""Imputer configuration: a frozen value object, optionally loaded from YAML."""

from __future__ import annotations

import importlib
import math
import numbers
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from semimpute.errors import ConfigurationError
from .encoding import CategoricalEncoding
from .ensemble import ENSEMBLE_SIZE
from .estimators import (
    EstimatorFactory,
    default_nominal_classifier,
    default_regressors,
)


@dataclass(frozen=True)
class ImputerConfig:
    """Options recognised by IRSSIImputer.

    Args:
        num_epochs: Maximum number of passes over the attributes (>= 0).
        epsilon: An attribute is stable once one epoch's summed squared
            pseudo-label change falls below this value. The published
            documentation disagrees on the default; 5.0 follows the code.
        nominal_classifier: Classifier prototype or zero-argument factory used
            for nominal attributes. Must support ``predict_proba``.
            Defaults to RandomForestClassifier.
        regressors: Exactly three regressor prototypes or factories forming
            the ensemble for numeric attributes. Defaults to LinearRegression,
            DecisionTreeRegressor and RandomForestRegressor.
        n_jobs: Threads used to train the ensemble members (1 = sequential).
        categorical_encoder: How nominal features are presented to models,
            'ordinal' (domain codes) or 'onehot'.
        random_state: Seed for the default estimators and global RNGs.
    """
    num_epochs: int = 10
    epsilon: float = 5.0
    nominal_classifier: EstimatorFactory | None = None
    regressors: tuple[EstimatorFactory, ...] | None = None
    n_jobs: int = 1
    categorical_encoder: CategoricalEncoding = 'ordinal'
    random_state: int | None = None

    def validated(self) -> ImputerConfig:
        """Check every option and fill in default estimators.

        Returns:
            A new config with ``nominal_classifier`` and ``regressors`` set.

        Raises:
            ConfigurationError: On any invalid option.
        """
        if not _is_int(self.num_epochs) or self.num_epochs < 0:
            raise ConfigurationError(f"num_epochs must be a non-negative integer, got {self.num_epochs!r}")
        if not isinstance(self.epsilon, numbers.Real) or isinstance(self.epsilon, bool) or math.isnan(self.epsilon):
            raise ConfigurationError(f"epsilon must be a number, got {self.epsilon!r}")
        if not _is_int(self.n_jobs) or self.n_jobs < 1:
            raise ConfigurationError(f"n_jobs must be a positive integer, got {self.n_jobs!r}")
        if self.categorical_encoder not in ('onehot', 'ordinal'):
            raise ConfigurationError(
                f"categorical_encoder must be 'onehot' or 'ordinal', got {self.categorical_encoder!r}"
            )
        if self.random_state is not None and not _is_int(self.random_state):
            raise ConfigurationError(f"random_state must be an integer or None, got {self.random_state!r}")

        regressors = self.regressors
        if regressors is None:
            regressors = default_regressors(self.random_state)
        regressors = tuple(regressors)
        if len(regressors) != ENSEMBLE_SIZE:
            raise ConfigurationError(
                f"Number of base regressors should be {ENSEMBLE_SIZE} explicitly, got {len(regressors)}"
            )

        nominal_classifier = self.nominal_classifier
        if nominal_classifier is None:
            nominal_classifier = default_nominal_classifier(self.random_state)

        return replace(
            self,
            epsilon=float(self.epsilon),
            nominal_classifier=nominal_classifier,
            regressors=regressors,
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def resolve_type(path: str) -> Any:
    """Resolve a dotted path like 'sklearn.ensemble.RandomForestRegressor'."""
    parts = path.split(".")

    module = None
    attrs: list[str] = []
    for i in range(len(parts), 0, -1):
        try:
            module = importlib.import_module(".".join(parts[:i]))
            attrs = parts[i:]
            break
        except ImportError:
            continue

    if module is None:
        raise ConfigurationError(f"Could not import any module from path: {path}")

    result = module
    for attr in attrs:
        try:
            result = getattr(result, attr)
        except AttributeError as e:
            raise ConfigurationError(f"Could not resolve {attr!r} in path: {path}") from e
    return result


def parse_value(value: Any) -> Any:
    """Recursively parse YAML values, instantiating objects marked with ____type____."""
    if isinstance(value, dict):
        if "____type____" in value:
            resolved = resolve_type(value["____type____"])
            kwargs = {k: parse_value(v) for k, v in value.items() if k != "____type____"}

            if not kwargs and not callable(resolved):
                return resolved

            return resolved(**kwargs)

        return {k: parse_value(v) for k, v in value.items()}

    if isinstance(value, list):
        return [parse_value(v) for v in value]

    return value


def config_from_dict(options: dict[str, Any]) -> ImputerConfig:
    """Build an ImputerConfig from a plain mapping (e.g. parsed YAML).

    Raises:
        ConfigurationError: If the mapping has keys ImputerConfig does not know.
    """
    known = {f.name for f in fields(ImputerConfig)}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration options: {unknown}")

    parsed = {k: parse_value(v) for k, v in options.items()}
    if parsed.get("regressors") is not None:
        parsed["regressors"] = tuple(parsed["regressors"])
    return ImputerConfig(**parsed)


def load_config(path: str | Path) -> ImputerConfig:
    """Load an ImputerConfig from a YAML file.

    Example file::

        num_epochs: 5
        epsilon: 1.0
        nominal_classifier:
          ____type____: sklearn.tree.DecisionTreeClassifier
          max_depth: 4
        regressors:
          - ____type____: sklearn.linear_model.LinearRegression
          - ____type____: sklearn.linear_model.Ridge
            alpha: 0.5
          - ____type____: sklearn.neighbors.KNeighborsRegressor
    """
    with open(path) as f:
        options = yaml.safe_load(f) or {}
    if not isinstance(options, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}, got {type(options).__name__}")
    return config_from_dict(options)
