"""
Plot-level abundance tables and their aggregation onto regular grids.

Grid lines along each axis form the closed arithmetic sequence
    lo, lo + g, lo + 2g, ..., <= hi
A plot belongs to the cell whose lower-left corner is the greatest grid line
strictly below the plot's own lower-left corner, independently in x and y.
A plot with no grid line strictly below it (its corner sits on or before the
first line) has no cell and is excluded from the aggregation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .community import Community, PlotWindow, Window, plot_coordinates
from .spatial_index import SpatialIndex

logger = logging.getLogger(__name__)

NO_CELL = -1

# Relative tolerance for including the upper bound in the grid-line sequence
_SEQ_FUZZ = 1e-10


@dataclass(frozen=True, eq=False)
class AbundanceTable:
    """Plot x species counts. Rows follow plot_index, columns follow species_names."""
    counts: NDArray[np.int64]
    plot_index: NDArray[np.int64]
    coords: NDArray[np.float64]
    species_names: tuple[str, ...]

    def __post_init__(self):
        counts = np.array(self.counts, dtype=np.int64).reshape(-1, len(self.species_names))
        plot_index = np.array(self.plot_index, dtype=np.int64).reshape(-1)
        coords = np.array(self.coords, dtype=np.float64).reshape(-1, 2)
        if not (counts.shape[0] == plot_index.shape[0] == coords.shape[0]):
            raise ValueError(
                f"Row count mismatch: counts={counts.shape[0]}, "
                f"plot_index={plot_index.shape[0]}, coords={coords.shape[0]}"
            )
        if np.any(counts < 0):
            raise ValueError("Abundance counts must be non-negative")
        for arr in (counts, plot_index, coords):
            arr.setflags(write=False)
        object.__setattr__(self, "counts", counts)
        object.__setattr__(self, "plot_index", plot_index)
        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "species_names", tuple(self.species_names))

    @property
    def n_plots(self) -> int:
        return int(self.counts.shape[0])

    @property
    def species_count(self) -> int:
        return len(self.species_names)

    def row_sums(self) -> NDArray[np.int64]:
        return self.counts.sum(axis=1)

    def to_frame(self) -> pd.DataFrame:
        """Wide table: one row per plot with its corner coordinates and species counts."""
        df = pd.DataFrame(self.counts, columns=list(self.species_names))
        df.insert(0, "plot", self.plot_index)
        df.insert(1, "x", self.coords[:, 0])
        df.insert(2, "y", self.coords[:, 1])
        return df


@dataclass(frozen=True, eq=False)
class AggregatedAbundance:
    """
    Populated grid cells x species summed counts.

    cell_index : (C, 2) grid-line indices of each cell's lower-left corner
    corners    : (C, 2) lower-left corner coordinates
    plot_count : (C,) number of plots summed into each cell
    excluded   : plot indices that fell before the first grid line
    """
    counts: NDArray[np.int64]
    cell_index: NDArray[np.int64]
    corners: NDArray[np.float64]
    plot_count: NDArray[np.int64]
    grid_size: float
    species_names: tuple[str, ...]
    excluded: NDArray[np.int64]

    @property
    def n_cells(self) -> int:
        return int(self.counts.shape[0])

    def occurrences(self) -> NDArray[np.int64]:
        """Number of cells in which each species is present."""
        return np.count_nonzero(self.counts > 0, axis=0).astype(np.int64)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.counts, columns=list(self.species_names))
        df.insert(0, "x_grid", self.corners[:, 0])
        df.insert(1, "y_grid", self.corners[:, 1])
        df.insert(2, "plots", self.plot_count)
        return df


def build_abundance_table(
    community: Community,
    plot_windows: Sequence[PlotWindow],
    index: SpatialIndex | None = None,
) -> AbundanceTable:
    """Tally the species of the points inside each plot window, one row per plot."""
    if index is None:
        index = SpatialIndex(community)
    rows = np.zeros((len(plot_windows), community.species_count), dtype=np.int64)
    for row, plot in enumerate(plot_windows):
        rows[row] = index.count_in(plot)
    return AbundanceTable(
        counts=rows,
        plot_index=np.array([p.index for p in plot_windows], dtype=np.int64),
        coords=plot_coordinates(plot_windows),
        species_names=community.species_names,
    )


def grid_lines(lo: float, hi: float, grid_size: float) -> NDArray[np.float64]:
    """Closed arithmetic sequence from lo towards hi in steps of grid_size."""
    if not np.isfinite(grid_size) or grid_size <= 0.0:
        raise ValueError(f"grid_size must be a positive finite number, got {grid_size}")
    if hi < lo:
        raise ValueError(f"Empty extent: [{lo}, {hi}]")
    steps = int(np.floor((hi - lo) / grid_size + _SEQ_FUZZ))
    lines = lo + np.arange(steps + 1, dtype=np.float64) * grid_size
    return np.minimum(lines, hi)


def assign_cells(coords: NDArray[np.float64], lines: NDArray[np.float64]) -> NDArray[np.int64]:
    """
    Index of the greatest grid line strictly below each coordinate.

    NO_CELL (-1) where the coordinate is less than or equal to the first line.
    """
    coords = np.asarray(coords, dtype=np.float64)
    # side="left" gives the first line >= coord, so the one before it is < coord
    return np.searchsorted(lines, coords, side="left").astype(np.int64) - 1


def aggregate(table: AbundanceTable, grid_size: float, extent: Window) -> AggregatedAbundance:
    """Sum the plot rows of the table per grid cell of side grid_size over extent."""
    xlines = grid_lines(extent.xmin, extent.xmax, grid_size)
    ylines = grid_lines(extent.ymin, extent.ymax, grid_size)
    ix = assign_cells(table.coords[:, 0], xlines)
    iy = assign_cells(table.coords[:, 1], ylines)

    matched = (ix != NO_CELL) & (iy != NO_CELL)
    excluded = table.plot_index[~matched]
    if excluded.size:
        # Plots before the first grid line have no cell; they are dropped, not an error
        logger.debug(
            "grid_size=%g: %d of %d plots fall on or before the first grid line and are excluded",
            grid_size, excluded.size, table.n_plots,
        )

    species_total = table.species_count
    if not np.any(matched):
        logger.debug("grid_size=%g: no populated cells", grid_size)
        return AggregatedAbundance(
            counts=np.zeros((0, species_total), dtype=np.int64),
            cell_index=np.zeros((0, 2), dtype=np.int64),
            corners=np.zeros((0, 2), dtype=np.float64),
            plot_count=np.zeros(0, dtype=np.int64),
            grid_size=float(grid_size),
            species_names=table.species_names,
            excluded=excluded,
        )

    keys = np.column_stack([ix[matched], iy[matched]])
    cells, inverse = np.unique(keys, axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)

    summed = np.zeros((cells.shape[0], species_total), dtype=np.int64)
    np.add.at(summed, inverse, table.counts[matched])
    plot_count = np.bincount(inverse, minlength=cells.shape[0]).astype(np.int64)
    corners = np.column_stack([xlines[cells[:, 0]], ylines[cells[:, 1]]])

    return AggregatedAbundance(
        counts=summed,
        cell_index=cells.astype(np.int64),
        corners=corners,
        plot_count=plot_count,
        grid_size=float(grid_size),
        species_names=table.species_names,
        excluded=excluded,
    )
