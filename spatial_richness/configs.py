"""
Analysis Configurations for Grid-Aggregation Experiments.

Three configurations are provided:
- BASELINE: 1 km^2 community, 300 species, 100 plots of 10 m side
- SPARSE_SAMPLING: same community, 25 plots (small-sample regime)
- UNIFORM_COMMUNITY: equal species abundances (no rare species by construction)
"""
from __future__ import annotations
from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import NDArray

from .community import SAD_LOGNORMAL, SAD_UNIFORM, Window
from .estimators import SingletonFormula


@dataclass
class AnalysisConfig:
    """Analysis configuration."""
    # Config name for identification
    name: str = "baseline"

    # Community
    window_size: float = 1000.0   # Side of the square community window
    unit: str = "m"
    n_points: int = 50_000        # Number of individuals
    species_n: int = 300          # Number of species in the pool
    sad: str = SAD_LOGNORMAL      # Species abundance distribution
    sd_log: float = 1.0           # Log-normal SAD spread

    # Sampling
    plot_side: float = 10.0       # Side of each square plot
    plot_count: int = 100         # Number of plots

    # Aggregation
    grid_size: float = 1000.0     # Base grid side; sweep halves it `levels` times
    levels: int = 5

    # Estimation
    turing_f1: bool = False       # Replace observed f1 by Turing's estimate
    singleton_formula: SingletonFormula = SingletonFormula.CHIU_2016

    # Reproducibility
    seed: int = 42

    # Parallel execution
    n_jobs: int = -1              # -1 = all cores

    # Output
    output_dir: str = "results"

    def __post_init__(self):
        self.singleton_formula = SingletonFormula.parse(self.singleton_formula)

    @property
    def window(self) -> Window:
        return Window.square(self.window_size, self.unit)

    @property
    def use_alt_formula(self) -> bool:
        return self.singleton_formula is SingletonFormula.CAZZOLA_2022

    @property
    def density(self) -> float:
        """Individuals per unit area."""
        return self.n_points / (self.window_size * self.window_size)

    def get_grid_sizes(self) -> NDArray[np.float64]:
        """Grid sizes of the sweep, coarsest first."""
        return self.grid_size / 2.0 ** np.arange(1, self.levels + 1)

    def replicate_seed(self, replicate: int) -> int:
        return self.seed + 1000 * replicate

    def get_output_dir(self) -> str:
        return f"{self.output_dir}/{self.name}"

    def validate(self) -> AnalysisConfig:
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.n_points < 0:
            raise ValueError(f"n_points must be non-negative, got {self.n_points}")
        if self.species_n <= 0:
            raise ValueError(f"species_n must be positive, got {self.species_n}")
        if self.sad not in (SAD_LOGNORMAL, SAD_UNIFORM):
            raise ValueError(f"Unknown species abundance distribution: {self.sad!r}")
        if not 0 < self.plot_side <= self.window_size:
            raise ValueError(f"plot_side must lie in (0, {self.window_size}], got {self.plot_side}")
        if self.plot_count <= 0:
            raise ValueError(f"plot_count must be positive, got {self.plot_count}")
        if not np.isfinite(self.grid_size) or self.grid_size <= 0:
            raise ValueError(f"grid_size must be a positive finite number, got {self.grid_size}")
        if self.levels < 1:
            raise ValueError(f"levels must be at least 1, got {self.levels}")
        return self

    def with_options(self, **changes) -> AnalysisConfig:
        return replace(self, **changes).validate()


# =============================================================================
# Predefined Configurations
# =============================================================================

def baseline_config() -> AnalysisConfig:
    """
    Baseline configuration.
    300 species, 50,000 individuals, 100 plots of 10 m in a 1 km square.
    """
    return AnalysisConfig(name="baseline")


def sparse_sampling_config() -> AnalysisConfig:
    """
    Sparse sampling: only 25 plots.
    Observed f1 is dominated by sampling noise here.
    """
    return AnalysisConfig(name="sparse_sampling", plot_count=25)


def uniform_community_config() -> AnalysisConfig:
    """
    Uniform community: 50 equally abundant species.
    Every species should be detected; Chao2 should stay close to 50.
    """
    return AnalysisConfig(name="uniform_community", species_n=50, sad=SAD_UNIFORM)


# Dictionary of all available configs
CONFIGS = {
    "baseline": baseline_config,
    "sparse_sampling": sparse_sampling_config,
    "uniform_community": uniform_community_config,
}


def get_config(name: str) -> AnalysisConfig:
    """Get configuration by name."""
    if name not in CONFIGS:
        raise ValueError(f"Unknown config: {name}. Available: {list(CONFIGS.keys())}")
    return CONFIGS[name]()


def list_configs() -> list[str]:
    return list(CONFIGS.keys())
