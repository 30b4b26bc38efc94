"""
spatial_richness - species-richness estimation under spatial aggregation

This package samples a simulated spatial community with square plots,
aggregates the plots onto regular grids of varying resolution and estimates
species richness with Chao2, optionally replacing the observed singleton count
by Turing's estimate.

Features:
- Inclusive point-in-rectangle queries (Numba JIT compiled)
- Plot x species abundance tables and grid-cell aggregation
- Occupancy frequencies f1..f4 for incidence and abundance data
- Chao2 richness and Turing's singleton relation (two published variants)
- Grid-resolution sweeps and parallel replicate runs
"""

from .community import (
    Window,
    PlotWindow,
    Community,
    simulate_community,
    draw_plot_windows,
    plot_coordinates,
)
from .spatial_index import SpatialIndex
from .aggregation import (
    AbundanceTable,
    AggregatedAbundance,
    build_abundance_table,
    grid_lines,
    assign_cells,
    aggregate,
    NO_CELL,
)
from .occupancy import (
    OccupancyFrequencies,
    summarize,
    summarize_plots,
    abundance_frequencies,
)
from .estimators import (
    SingletonFormula,
    estimate_singletons,
    chao2,
    singletons_for,
    richness_from_frequencies,
)
from .configs import AnalysisConfig, get_config
from .sweep import grid_sizes, sweep, sweep_replicates
from .validation import singleton_trials, summarize_trials

__all__ = [
    "Window",
    "PlotWindow",
    "Community",
    "simulate_community",
    "draw_plot_windows",
    "plot_coordinates",
    "SpatialIndex",
    "AbundanceTable",
    "AggregatedAbundance",
    "build_abundance_table",
    "grid_lines",
    "assign_cells",
    "aggregate",
    "NO_CELL",
    "OccupancyFrequencies",
    "summarize",
    "summarize_plots",
    "abundance_frequencies",
    "SingletonFormula",
    "estimate_singletons",
    "chao2",
    "singletons_for",
    "richness_from_frequencies",
    "AnalysisConfig",
    "get_config",
    "grid_sizes",
    "sweep",
    "sweep_replicates",
    "singleton_trials",
    "summarize_trials",
]

__version__ = "1.0.0"
