from .config import ImputerConfig, load_config
from .ensemble import EnsembleRegressor, EnsembleMembers
from .irssi import IRSSIImputer, SelfTrainingStep
from .imputer import Imputer, StreamableImputer, Trainable, ProbabilisticTrainable
from .scheduling import AttributeScheduler, StabilityTracker
from .self_training import SelfTrainingEngine, ModelSlot
from .warm_start import WarmStartImputer, median, mode

__all__ = [
    "ImputerConfig",
    "load_config",
    "EnsembleRegressor",
    "EnsembleMembers",
    "IRSSIImputer",
    "SelfTrainingStep",
    "Imputer",
    "StreamableImputer",
    "Trainable",
    "ProbabilisticTrainable",
    "AttributeScheduler",
    "StabilityTracker",
    "SelfTrainingEngine",
    "ModelSlot",
    "WarmStartImputer",
    "median",
    "mode",
]
