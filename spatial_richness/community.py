"""
Simulated communities and sample plots.

A community is a labeled point pattern inside a rectangular window. Plots are
square windows of fixed side drawn uniformly at random and clamped so they lie
entirely inside the community window.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.stats import lognorm

# Species abundance distributions understood by simulate_community
SAD_LOGNORMAL = "lognormal"
SAD_UNIFORM = "uniform"


@dataclass(frozen=True)
class Window:
    """Bounding rectangle of a community."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    unit: str = "m"

    def __post_init__(self):
        if not (self.xmax > self.xmin and self.ymax > self.ymin):
            raise ValueError(
                f"Degenerate window: x=[{self.xmin}, {self.xmax}], y=[{self.ymin}, {self.ymax}]"
            )

    @classmethod
    def square(cls, size: float, unit: str = "m") -> Window:
        return cls(0.0, float(size), 0.0, float(size), unit)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def contains(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.bool_]:
        return (x >= self.xmin) & (x <= self.xmax) & (y >= self.ymin) & (y <= self.ymax)


@dataclass(frozen=True)
class PlotWindow:
    """Square sample plot; (xmin, ymin) is its lower-left corner."""
    index: int
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @property
    def side(self) -> float:
        return self.xmax - self.xmin


@dataclass(frozen=True, eq=False)
class Community:
    """
    Labeled point pattern.

    positions : (N, 2) float64 array of x, y coordinates
    species   : (N,) int array, index into species_names
    """
    positions: NDArray[np.float64]
    species: NDArray[np.int64]
    species_names: tuple[str, ...]
    window: Window

    def __post_init__(self):
        positions = np.array(self.positions, dtype=np.float64).reshape(-1, 2)
        species = np.array(self.species, dtype=np.int64).reshape(-1)
        if positions.shape[0] != species.shape[0]:
            raise ValueError(
                f"positions ({positions.shape[0]}) and species ({species.shape[0]}) differ in length"
            )
        n_species = len(self.species_names)
        if species.size and (species.min() < 0 or species.max() >= n_species):
            raise ValueError(f"Species labels must lie in [0, {n_species})")
        inside = self.window.contains(positions[:, 0], positions[:, 1])
        if not np.all(inside):
            raise ValueError(f"{int(np.sum(~inside))} points lie outside the community window")

        positions.setflags(write=False)
        species.setflags(write=False)
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "species", species)
        object.__setattr__(self, "species_names", tuple(str(s) for s in self.species_names))

    @property
    def size(self) -> int:
        return int(self.positions.shape[0])

    @property
    def species_count(self) -> int:
        return len(self.species_names)

    @property
    def x(self) -> NDArray[np.float64]:
        return self.positions[:, 0]

    @property
    def y(self) -> NDArray[np.float64]:
        return self.positions[:, 1]

    def abundances(self) -> NDArray[np.int64]:
        """Number of individuals of each species."""
        return np.bincount(self.species, minlength=self.species_count)

    def richness(self) -> int:
        """True number of species present in the community."""
        return int(np.count_nonzero(self.abundances()))


def species_labels(species_n: int) -> tuple[str, ...]:
    width = len(str(species_n))
    return tuple(f"sp{i + 1:0{width}d}" for i in range(species_n))


def species_probabilities(
    species_n: int,
    sad: str = SAD_LOGNORMAL,
    sd_log: float = 1.0,
    seed: int | None = None,
) -> NDArray[np.float64]:
    """Relative abundances of species_n species drawn from a species abundance distribution."""
    if species_n <= 0:
        raise ValueError(f"species_n must be positive, got {species_n}")
    if sad == SAD_UNIFORM:
        return np.full(species_n, 1.0 / species_n, dtype=np.float64)
    if sad == SAD_LOGNORMAL:
        rng = np.random.default_rng(seed)
        weights = lognorm(s=sd_log).rvs(size=species_n, random_state=rng)
        return weights / weights.sum()
    raise ValueError(f"Unknown species abundance distribution: {sad!r}")


def simulate_community(
    n_points: int,
    species_n: int,
    window: Window,
    *,
    sad: str = SAD_LOGNORMAL,
    sd_log: float = 1.0,
    seed: int | None = None,
) -> Community:
    """
    Uniformly placed community with species drawn from a species abundance distribution.

    Stands in for a full point-process simulator: positions are independent and
    uniform in the window, labels are i.i.d. draws from the SAD probabilities.
    """
    if n_points < 0:
        raise ValueError(f"n_points must be non-negative, got {n_points}")
    rng = np.random.default_rng(seed)
    probs = species_probabilities(species_n, sad=sad, sd_log=sd_log, seed=int(rng.integers(2**32)))
    species = rng.choice(species_n, size=n_points, p=probs)
    x = rng.uniform(window.xmin, window.xmax, size=n_points)
    y = rng.uniform(window.ymin, window.ymax, size=n_points)
    return Community(
        positions=np.column_stack([x, y]),
        species=species,
        species_names=species_labels(species_n),
        window=window,
    )


def clamp_plot(index: int, x0: float, y0: float, side: float, window: Window) -> PlotWindow:
    """Build a plot at (x0, y0), shifted back inside the window if it would overhang."""
    if side <= 0.0 or side > window.width or side > window.height:
        raise ValueError(f"Plot side {side} does not fit in a {window.width}x{window.height} window")
    x0 = min(max(x0, window.xmin), window.xmax - side)
    y0 = min(max(y0, window.ymin), window.ymax - side)
    return PlotWindow(index=index, xmin=x0, ymin=y0, xmax=x0 + side, ymax=y0 + side)


def draw_plot_windows(
    window: Window,
    side: float,
    count: int,
    seed: int | None = None,
) -> list[PlotWindow]:
    """Draw count plots with uniformly random origins, clamped inside the window."""
    rng = np.random.default_rng(seed)
    x0 = rng.uniform(window.xmin, window.xmax, size=count)
    y0 = rng.uniform(window.ymin, window.ymax, size=count)
    return [clamp_plot(i, float(x0[i]), float(y0[i]), side, window) for i in range(count)]


def plot_coordinates(plots: Sequence[PlotWindow]) -> NDArray[np.float64]:
    """(P, 2) array of plot lower-left corners."""
    if len(plots) == 0:
        return np.empty((0, 2), dtype=np.float64)
    return np.array([[p.xmin, p.ymin] for p in plots], dtype=np.float64)
