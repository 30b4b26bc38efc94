"""
Frequency counts of rare species.

f[k] is the number of species present in exactly k sampling units (incidence
data) or represented by exactly k individuals (abundance data).
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .aggregation import AbundanceTable, AggregatedAbundance


@dataclass(frozen=True, eq=False)
class OccupancyFrequencies:
    """n sampling units, observed richness and the frequency vector f[0..max]."""
    n: int
    s_obs: int
    f: NDArray[np.int64]

    def freq(self, k: int) -> int:
        if k < 0:
            raise ValueError(f"Frequency class must be non-negative, got {k}")
        return int(self.f[k]) if k < self.f.shape[0] else 0

    @property
    def f1(self) -> int:
        return self.freq(1)

    @property
    def f2(self) -> int:
        return self.freq(2)

    @property
    def f3(self) -> int:
        return self.freq(3)

    @property
    def f4(self) -> int:
        return self.freq(4)

    def as_dict(self) -> dict[str, int]:
        return {
            "n": self.n, "s_obs": self.s_obs,
            "f1": self.f1, "f2": self.f2, "f3": self.f3, "f4": self.f4,
        }


def frequencies_from_occurrences(occurrences: NDArray[np.int64], n: int) -> OccupancyFrequencies:
    occurrences = np.asarray(occurrences, dtype=np.int64)
    f = np.bincount(occurrences, minlength=max(n, 4) + 1).astype(np.int64)
    f.setflags(write=False)
    return OccupancyFrequencies(n=int(n), s_obs=int(np.count_nonzero(occurrences)), f=f)


def summarize(aggregated: AggregatedAbundance) -> OccupancyFrequencies:
    """Occupancy frequencies over the populated cells of an aggregation."""
    return frequencies_from_occurrences(aggregated.occurrences(), aggregated.n_cells)


def summarize_plots(table: AbundanceTable) -> OccupancyFrequencies:
    """Occupancy frequencies with every plot treated as its own sampling unit."""
    occurrences = np.count_nonzero(table.counts > 0, axis=0)
    return frequencies_from_occurrences(occurrences, table.n_plots)


def abundance_frequencies(counts: NDArray[np.int64]) -> OccupancyFrequencies:
    """Abundance-based frequencies of one sample; n is the number of individuals."""
    counts = np.asarray(counts, dtype=np.int64)
    if np.any(counts < 0):
        raise ValueError("Abundance counts must be non-negative")
    n = int(counts.sum())
    f = np.bincount(counts, minlength=5).astype(np.int64)
    f.setflags(write=False)
    return OccupancyFrequencies(n=n, s_obs=int(np.count_nonzero(counts)), f=f)
