"""
Resampling trials for Turing's singleton estimate.

Each trial draws `sample_size` individuals without replacement from a community
and compares the observed number of singletons with the estimate computed from
f2, f3 and f4 of the same sample. Agreement is expected only for the means
over many trials; per-trial errors stay large.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from .community import Community
from .estimators import SingletonFormula, estimate_singletons
from .occupancy import abundance_frequencies


def sample_counts(community: Community, sample_size: int, seed: int | None = None) -> np.ndarray:
    """Species counts of a random sample of individuals drawn without replacement."""
    if not 0 < sample_size <= community.size:
        raise ValueError(f"sample_size must lie in (0, {community.size}], got {sample_size}")
    rng = np.random.default_rng(seed)
    picked = rng.choice(community.size, size=sample_size, replace=False)
    return np.bincount(community.species[picked], minlength=community.species_count)


def run_trial(
    community: Community,
    sample_size: int,
    trial: int,
    seed: int,
    formula: SingletonFormula,
) -> dict:
    freqs = abundance_frequencies(sample_counts(community, sample_size, seed=seed + trial))
    return {
        "trial": trial,
        **freqs.as_dict(),
        "f1_hat": estimate_singletons(freqs.n, freqs.f2, freqs.f3, freqs.f4, formula),
    }


def singleton_trials(
    community: Community,
    sample_size: int,
    n_trials: int,
    formula: SingletonFormula = SingletonFormula.CHIU_2016,
    seed: int = 42,
    n_jobs: int = 1,
    progress: bool = False,
) -> pd.DataFrame:
    """Observed and estimated singletons for n_trials independent samples."""
    trials = range(n_trials)
    if progress:
        trials = tqdm(trials, desc="Singleton trials")
    if n_jobs == 1:
        rows = [run_trial(community, sample_size, t, seed, formula) for t in trials]
    else:
        rows = Parallel(n_jobs=n_jobs)(
            delayed(run_trial)(community, sample_size, t, seed, formula) for t in trials
        )
    return pd.DataFrame(rows)


def summarize_trials(df: pd.DataFrame) -> dict[str, float]:
    """
    Bias of the singleton estimate over a set of trials.

    Non-finite estimates (zero f3 or f4) are counted in `invalid_fraction` and
    left out of the means. Bias compares the estimate with the observed f1 of
    the same finite trials; `mean_f1` is over all trials.
    """
    finite = np.isfinite(df["f1_hat"].to_numpy(dtype=np.float64))
    valid = df[finite]
    mean_f1 = float(df["f1"].mean())
    mean_valid_f1 = float(valid["f1"].mean()) if len(valid) else float("nan")
    mean_hat = float(valid["f1_hat"].mean()) if len(valid) else float("nan")
    errors = (valid["f1_hat"] - valid["f1"]).to_numpy(dtype=np.float64)
    return {
        "n_trials": int(len(df)),
        "mean_f1": mean_f1,
        "mean_f1_hat": mean_hat,
        "bias": mean_hat - mean_valid_f1,
        "relative_bias": (mean_hat - mean_valid_f1) / mean_valid_f1 if mean_valid_f1 > 0 else float("nan"),
        "rmse": float(np.sqrt(np.mean(errors ** 2))) if errors.size else float("nan"),
        "invalid_fraction": float(1.0 - finite.mean()) if finite.size else float("nan"),
    }
