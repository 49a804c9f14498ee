from __future__ import annotations

import random

import numpy as np


_current_seed: int | None = None


def global_seed() -> int | None:
    """Get the current global seed set by seed_everything()."""
    return _current_seed


def seed_everything(seed: int | None) -> None:
    """Set global seeds for reproducibility.

    Parameters
    ----------
    seed : Optional[int]
        Seed value. If None, does nothing (non-deterministic behavior).
        Estimators that take their own ``random_state`` are seeded separately
        by the configuration layer.
    """
    global _current_seed

    if seed is None:
        return

    _current_seed = seed
    random.seed(seed)
    np.random.seed(seed)
