"""
Turing's singleton relation is only unbiased on average: these checks compare
means over many resampling trials, never a single estimate against its sample.
"""
import math

import numpy as np
import pandas as pd
import pytest

from spatial_richness import (
    SingletonFormula,
    Window,
    simulate_community,
    singleton_trials,
    summarize_trials,
)
from spatial_richness.validation import sample_counts

COMMUNITY_SIZE = 50_000
SPECIES_N = 300
SAMPLE_SIZE = 500
N_TRIALS = 200
MAX_RELATIVE_BIAS = 0.5


def make_community(seed: int = 99):
    return simulate_community(COMMUNITY_SIZE, SPECIES_N, Window.square(1000.0), seed=seed)


def test_sample_counts_draw_without_replacement():
    community = make_community()
    counts = sample_counts(community, SAMPLE_SIZE, seed=1)
    assert counts.sum() == SAMPLE_SIZE
    assert counts.shape == (SPECIES_N,)
    assert np.all(counts <= community.abundances())


def test_sample_counts_reject_oversized_sample():
    community = simulate_community(10, 3, Window.square(10.0), seed=1)
    with pytest.raises(ValueError):
        sample_counts(community, 11)


def test_turing_estimate_is_unbiased_on_average():
    trials = singleton_trials(make_community(), SAMPLE_SIZE, N_TRIALS, seed=5)
    assert len(trials) == N_TRIALS
    stats = summarize_trials(trials)
    assert stats["invalid_fraction"] < 0.05
    assert abs(stats["relative_bias"]) < MAX_RELATIVE_BIAS


def test_turing_estimate_is_not_a_per_sample_predictor():
    trials = singleton_trials(make_community(), SAMPLE_SIZE, N_TRIALS, seed=5)
    finite = trials[np.isfinite(trials["f1_hat"])]
    errors = np.abs(finite["f1_hat"] - finite["f1"])
    stats = summarize_trials(trials)
    # Individual samples miss by far more than the averaged bias
    assert errors.max() > 1.0
    assert stats["rmse"] > abs(stats["bias"])


def test_trials_are_reproducible_with_both_formulas():
    community = make_community()
    for formula in SingletonFormula:
        a = singleton_trials(community, SAMPLE_SIZE, 10, formula=formula, seed=3)
        b = singleton_trials(community, SAMPLE_SIZE, 10, formula=formula, seed=3)
        pd.testing.assert_frame_equal(a, b)


def test_summarize_trials_with_only_invalid_estimates():
    df = pd.DataFrame({
        "trial": [0, 1],
        "f1": [3, 5],
        "f1_hat": [float("inf"), float("nan")],
    })
    stats = summarize_trials(df)
    assert stats["invalid_fraction"] == 1.0
    assert stats["mean_f1"] == pytest.approx(4.0)
    assert math.isnan(stats["mean_f1_hat"])
    assert math.isnan(stats["bias"])


def test_bias_uses_observed_f1_of_finite_trials():
    df = pd.DataFrame({
        "trial": [0, 1, 2],
        "f1": [2, 4, 10],
        "f1_hat": [3.0, 5.0, float("inf")],
    })
    stats = summarize_trials(df)
    assert stats["mean_f1"] == pytest.approx(16.0 / 3.0)
    assert stats["mean_f1_hat"] == pytest.approx(4.0)
    assert stats["bias"] == pytest.approx(1.0)
    assert stats["relative_bias"] == pytest.approx(1.0 / 3.0)
    assert stats["invalid_fraction"] == pytest.approx(1.0 / 3.0)
