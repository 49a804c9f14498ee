"""
semimpute: self-training imputation of tabular data with regression ensembles
"""

from .dataset import Attribute, AttributeType, Dataset, MissingnessIndex
from .errors import ImputationError, ConfigurationError, ModelTrainingError, PredictionError
from .imputer import (
    EnsembleRegressor,
    IRSSIImputer,
    ImputerConfig,
    WarmStartImputer,
    load_config,
)
from .missing import introduce_missing

__version__ = "0.1.0"
