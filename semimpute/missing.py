from typing import Any, Iterable, Literal
import logging

import pandas as pd
from pyampute import MultivariateAmputation

from semimpute.shared import global_seed


def introduce_missing(
    df: pd.DataFrame,
    proportion: float = 0.3,
    mechanism: Literal['MCAR', 'MAR', 'MNAR', 'MAR+MNAR'] = 'MCAR',
    columns: Iterable[Any] | None = None,
    exclude: Iterable[Any] | None = None,
    seed: int | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Introduce missing values into a complete DataFrame using pyampute.

    Each amputed row loses exactly one of ``columns``: one pyampute pattern
    is generated per column, all with the same frequency.

    Args:
        df: Complete DataFrame without missing values.
        proportion: Proportion of incomplete rows.
        mechanism: Missing data mechanism shared by all patterns.
        columns: Columns that may lose values. Defaults to every column not
            in ``exclude``.
        exclude: Columns that are never amputed (e.g. the class column).
        seed: Random seed for reproducibility.

    Returns:
        Tuple of (df_missing, mask) where mask is True where values were removed.

    Example:
        df_missing, mask = introduce_missing(iris, proportion=0.3, exclude=['target'])
    """
    seed = seed or global_seed()

    if df.isnull().any().any():
        nan_cols = df.columns[df.isnull().any()].tolist()
        raise ValueError(f"Input DataFrame already contains NaN values in columns: {nan_cols}")

    exclude = list(exclude or [])
    columns = [c for c in df.columns if c not in exclude] if columns is None else list(columns)
    protected = [c for c in columns if c in exclude]
    if protected:
        raise ValueError(f"Columns {protected} are both amputed and excluded")
    if not columns:
        raise ValueError("No columns left to ampute")

    kept = [c for c in df.columns if c not in exclude]
    cat_columns = df[kept].select_dtypes(include=["category", "object"]).columns.tolist()

    df_numeric = df[kept].copy()
    for col in cat_columns:
        df_numeric[col] = pd.Categorical(df[col]).codes.astype(float)

    patterns = [{'incomplete_vars': [col], 'mechanism': mechanism} for col in columns]

    logging.disable(logging.WARNING)
    try:
        ma = MultivariateAmputation(prop=proportion, patterns=patterns, seed=seed)
        df_amputed = pd.DataFrame(
            ma.fit_transform(df_numeric.astype(float)),
            columns=kept,
            index=df.index,
        )
    finally:
        logging.disable(logging.NOTSET)

    mask = pd.DataFrame(False, index=df.index, columns=df.columns)
    mask[kept] = df_amputed.isna()

    df_missing = df.copy()
    for col in kept:
        df_missing[col] = df[col].where(~mask[col])

    return df_missing, mask
