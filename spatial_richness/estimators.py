"""
Richness and singleton estimators.

Chao2 corrects observed richness for species missed by the sample, using the
numbers of species seen in exactly one (f1) and two (f2) sampling units.

Turing's relation gives an alternative to the observed f1, which aggregation
and small samples make unreliable, from the counts of the next rarer classes
f2, f3 and f4. Two published variants exist:

    CHIU_2016     4(n-2) f2^2 / (3(n-1) f3) - (n-3) f2 f3 / (2(n-1) f4)
    CAZZOLA_2022  (n-1)/n * 2 f2 * (5 f2 / (6 f3) - f3 / (4 f4))

The second is believed less accurate. Either is unbiased only in expectation
over many samples of adequate size (roughly 500+ individuals drawn from a
community of a few hundred species); a single estimate can be far from the
observed f1, negative, infinite or NaN. Callers must check finiteness.
"""
from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from .occupancy import OccupancyFrequencies

logger = logging.getLogger(__name__)


class SingletonFormula(Enum):
    CHIU_2016 = "chiu2016"
    CAZZOLA_2022 = "cazzola2022"

    @classmethod
    def parse(cls, value: SingletonFormula | str | bool) -> SingletonFormula:
        """Accept an enum member, its value, or the legacy use_alt_formula flag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.CAZZOLA_2022 if value else cls.CHIU_2016
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown singleton formula {value!r}; expected one of {[m.value for m in cls]}"
            ) from None


def estimate_singletons(
    n: int,
    f2: float,
    f3: float,
    f4: float,
    formula: SingletonFormula = SingletonFormula.CHIU_2016,
) -> float:
    """
    Turing's estimate of the number of singletons.

    Zero f3 or f4 produce inf or NaN following IEEE division, never an exception.
    Returns NaN when there are no sampling units.
    """
    formula = SingletonFormula.parse(formula)
    if n <= 0:
        return float("nan")
    n = np.float64(n)
    f2 = np.float64(f2)
    f3 = np.float64(f3)
    f4 = np.float64(f4)
    with np.errstate(divide="ignore", invalid="ignore"):
        if formula is SingletonFormula.CHIU_2016:
            f1_hat = (4.0 * (n - 2.0) * f2 * f2 / (3.0 * (n - 1.0) * f3)
                      - (n - 3.0) * f2 * f3 / (2.0 * (n - 1.0) * f4))
        else:
            f1_hat = (n - 1.0) / n * 2.0 * f2 * (5.0 * f2 / (6.0 * f3) - f3 / (4.0 * f4))
    return float(f1_hat)


def chao2(n: int, s_obs: float, f1: float, f2: float) -> float:
    """
    Bias-corrected Chao2 richness.

    n is the number of sampling units. f1 may be observed or estimated; a NaN
    f1 yields a NaN richness. Returns NaN when there are no sampling units.
    """
    if n <= 0:
        return float("nan")
    n = np.float64(n)
    f1 = np.float64(f1)
    f2 = np.float64(f2)
    with np.errstate(invalid="ignore", over="ignore"):
        if f2 > 0:
            richness = s_obs + (n - 1.0) / n * f1 * f1 / (2.0 * f2)
        else:
            richness = s_obs + (n - 1.0) / n * f1 * (f1 - 1.0) / 2.0
    return float(richness)


def singletons_for(
    freqs: OccupancyFrequencies,
    turing_f1: bool = False,
    formula: SingletonFormula = SingletonFormula.CHIU_2016,
) -> float:
    """Observed f1, or Turing's estimate of it when turing_f1 is set."""
    if not turing_f1:
        return float(freqs.f1)
    return estimate_singletons(freqs.n, freqs.f2, freqs.f3, freqs.f4, formula)


def richness_from_frequencies(
    freqs: OccupancyFrequencies,
    turing_f1: bool = False,
    formula: SingletonFormula = SingletonFormula.CHIU_2016,
) -> float:
    """Chao2 richness of one set of occupancy frequencies under the given singleton policy."""
    f1 = singletons_for(freqs, turing_f1, formula)
    richness = chao2(freqs.n, freqs.s_obs, f1, freqs.f2)
    if not np.isfinite(richness):
        logger.debug("Non-finite richness %s from %s (turing_f1=%s)", richness, freqs.as_dict(), turing_f1)
    return richness
