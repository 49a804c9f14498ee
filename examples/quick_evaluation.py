"""Quick example: impute iris with IRSSI and score the filled cells.

Amputes 30% of the rows (one cell each), self-trains the imputer while
printing per-attribute progress, then reports RMSE on the numeric cells and
accuracy on the species cells that were removed.
"""

import logging

import numpy as np
import pandas as pd
from sklearn.datasets import load_iris

from semimpute import IRSSIImputer, ImputerConfig, introduce_missing

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

iris = load_iris(as_frame=True)
X_complete = iris.frame.drop(columns="target")
X_complete["species"] = pd.Series(iris.target_names[iris.target], dtype=object)

X_missing, mask = introduce_missing(X_complete, proportion=0.3, seed=42)

imputer = IRSSIImputer(ImputerConfig(num_epochs=5, random_state=42))
for step in imputer.streamed_fit(X_missing):
    print(
        f"epoch {step.epoch + 1} {step.attribute:<20} rounds={step.rounds:<2} "
        f"sum_sq={step.sum_of_squares:10.4f} stable={step.stable}"
    )

X_imputed = imputer.transform(X_missing)

print(f"\nEpochs run: {imputer.n_epochs_}")
for column in X_complete.columns:
    removed = mask[column]
    if not removed.any():
        continue
    truth = X_complete.loc[removed, column]
    filled = X_imputed.loc[removed, column]
    if column == "species":
        print(f"{column:<20} accuracy={np.mean(truth == filled):.3f} (n={removed.sum()})")
    else:
        rmse = np.sqrt(np.mean((truth.astype(float) - filled.astype(float)) ** 2))
        print(f"{column:<20} rmse={rmse:.3f} (n={removed.sum()})")
