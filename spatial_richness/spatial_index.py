"""
Point-in-rectangle queries against a labeled point pattern.

Bounds are inclusive on both sides, so a point lying on the shared edge of two
overlapping plots is counted in both.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from numba import njit

from .community import Community, PlotWindow


def _points_in_rect_impl(
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    xmin: float,
    xmax: float,
    ymin: float,
    ymax: float,
) -> NDArray[np.int64]:
    n = xs.shape[0]
    hits = np.empty(n, dtype=np.int64)
    count = 0
    for idx in range(n):
        x = xs[idx]
        y = ys[idx]
        if x >= xmin and x <= xmax and y >= ymin and y <= ymax:
            hits[count] = idx
            count += 1
    return hits[:count]


def _tally_in_rect_impl(
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    labels: NDArray[np.int64],
    species_count: int,
    xmin: float,
    xmax: float,
    ymin: float,
    ymax: float,
) -> NDArray[np.int64]:
    counts = np.zeros(species_count, dtype=np.int64)
    for idx in range(xs.shape[0]):
        x = xs[idx]
        y = ys[idx]
        if x >= xmin and x <= xmax and y >= ymin and y <= ymax:
            counts[labels[idx]] += 1
    return counts


_points_in_rect = njit(cache=True)(_points_in_rect_impl)
_tally_in_rect = njit(cache=True)(_tally_in_rect_impl)


class SpatialIndex:
    """Linear-scan index over the points of a community."""

    def __init__(self, community: Community):
        self.community = community
        self._x = np.ascontiguousarray(community.x, dtype=np.float64)
        self._y = np.ascontiguousarray(community.y, dtype=np.float64)
        self._labels = np.ascontiguousarray(community.species, dtype=np.int64)

    def __len__(self) -> int:
        return self._x.shape[0]

    def trees_in(self, window: PlotWindow) -> NDArray[np.int64]:
        """Indices of all points inside window, boundaries included."""
        return _points_in_rect(
            self._x, self._y,
            float(window.xmin), float(window.xmax),
            float(window.ymin), float(window.ymax),
        )

    def count_in(self, window: PlotWindow) -> NDArray[np.int64]:
        """Per-species number of points inside window, zeros included."""
        return _tally_in_rect(
            self._x, self._y, self._labels,
            self.community.species_count,
            float(window.xmin), float(window.xmax),
            float(window.ymin), float(window.ymax),
        )
