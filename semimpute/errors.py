"""Exception types raised while building or applying an imputation."""


class ImputationError(Exception):
    """Base class for all semimpute errors."""


class ConfigurationError(ImputationError, ValueError):
    """Invalid imputer or ensemble configuration."""


class ModelTrainingError(ImputationError, RuntimeError):
    """An underlying estimator failed to train on an attribute."""

    def __init__(self, message: str, attribute: str | None = None):
        super().__init__(message)
        self.attribute = attribute


class PredictionError(ImputationError, RuntimeError):
    """An underlying estimator failed to produce predictions or probabilities."""

    def __init__(self, message: str, attribute: str | None = None):
        super().__init__(message)
        self.attribute = attribute
