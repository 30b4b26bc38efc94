import numpy as np
import pytest

from spatial_richness import (
    AbundanceTable,
    Community,
    NO_CELL,
    PlotWindow,
    Window,
    aggregate,
    assign_cells,
    build_abundance_table,
    draw_plot_windows,
    grid_lines,
    simulate_community,
)

SPECIES = ("a", "b", "c")
EXTENT = Window.square(100.0)


def make_table(coords, counts):
    coords = np.asarray(coords, dtype=np.float64)
    return AbundanceTable(
        counts=np.asarray(counts, dtype=np.int64),
        plot_index=np.arange(coords.shape[0]),
        coords=coords,
        species_names=SPECIES,
    )


def test_grid_lines_include_endpoint_when_exact():
    assert np.allclose(grid_lines(0.0, 10.0, 2.5), [0.0, 2.5, 5.0, 7.5, 10.0])
    assert np.allclose(grid_lines(0.0, 1.0, 0.1), np.linspace(0.0, 1.0, 11))


def test_grid_lines_stop_below_endpoint_when_not_exact():
    assert np.allclose(grid_lines(0.0, 10.0, 3.0), [0.0, 3.0, 6.0, 9.0])
    assert np.allclose(grid_lines(0.0, 10.0, 25.0), [0.0])


@pytest.mark.parametrize("bad", [0.0, -1.0, np.inf, np.nan])
def test_grid_lines_reject_invalid_size(bad):
    with pytest.raises(ValueError):
        grid_lines(0.0, 10.0, bad)


def test_assign_cells_uses_greatest_line_strictly_below():
    lines = np.array([0.0, 10.0, 20.0])
    coords = np.array([0.0, 5.0, 10.0, 10.5, 25.0])
    assert np.array_equal(assign_cells(coords, lines), [NO_CELL, 0, 0, 1, 2])


def test_build_abundance_table_row_sums_match_point_counts():
    community = simulate_community(3_000, 25, EXTENT, seed=5)
    plots = draw_plot_windows(EXTENT, 10.0, 30, seed=6)
    table = build_abundance_table(community, plots)
    assert table.counts.shape == (30, 25)
    for row, plot in enumerate(plots):
        x, y = community.x, community.y
        inside = (x >= plot.xmin) & (x <= plot.xmax) & (y >= plot.ymin) & (y <= plot.ymax)
        assert table.row_sums()[row] == np.count_nonzero(inside)
    assert np.allclose(table.coords[:, 0], [p.xmin for p in plots])


def test_empty_plot_row_is_all_zeros():
    community = Community(
        np.array([[80.0, 80.0], [85.0, 85.0]]), np.array([0, 2]), SPECIES, EXTENT,
    )
    plots = [
        PlotWindow(0, 10.0, 10.0, 20.0, 20.0),
        PlotWindow(1, 75.0, 75.0, 90.0, 90.0),
    ]
    table = build_abundance_table(community, plots)
    assert np.array_equal(table.counts[0], [0, 0, 0])
    assert np.array_equal(table.counts[1], [1, 0, 1])


def test_table_to_frame_has_all_species_columns():
    table = make_table([[5.0, 5.0]], [[0, 3, 0]])
    df = table.to_frame()
    assert list(df.columns) == ["plot", "x", "y", "a", "b", "c"]
    assert df.loc[0, "b"] == 3
    assert df.loc[0, "a"] == 0


def test_aggregate_sums_plots_sharing_a_cell():
    table = make_table(
        [[5.0, 5.0], [7.0, 2.0], [55.0, 5.0], [55.0, 60.0]],
        [[1, 0, 0], [2, 1, 0], [0, 0, 4], [0, 3, 0]],
    )
    agg = aggregate(table, 50.0, EXTENT)
    assert agg.n_cells == 3
    by_corner = {tuple(c): row for c, row in zip(agg.corners, agg.counts)}
    assert np.array_equal(by_corner[(0.0, 0.0)], [3, 1, 0])
    assert np.array_equal(by_corner[(50.0, 0.0)], [0, 0, 4])
    assert np.array_equal(by_corner[(50.0, 50.0)], [0, 3, 0])
    assert agg.plot_count.sum() == 4
    assert agg.excluded.size == 0


def test_aggregate_with_grid_at_least_extent_collapses_to_one_cell():
    table = make_table(
        [[5.0, 5.0], [40.0, 80.0], [90.0, 10.0]],
        [[1, 0, 0], [0, 1, 0], [0, 0, 1]],
    )
    for grid_size in (100.0, 250.0):
        agg = aggregate(table, grid_size, EXTENT)
        assert agg.n_cells == 1
        assert np.array_equal(agg.counts[0], [1, 1, 1])


def test_aggregate_excludes_plots_on_first_grid_line():
    table = make_table(
        [[0.0, 5.0], [5.0, 0.0], [5.0, 5.0]],
        [[9, 0, 0], [0, 9, 0], [0, 0, 1]],
    )
    agg = aggregate(table, 10.0, EXTENT)
    assert np.array_equal(np.sort(agg.excluded), [0, 1])
    assert agg.n_cells == 1
    assert np.array_equal(agg.counts[0], [0, 0, 1])


def test_aggregate_with_every_plot_excluded_has_no_cells():
    table = make_table([[0.0, 0.0]], [[1, 1, 1]])
    agg = aggregate(table, 10.0, EXTENT)
    assert agg.n_cells == 0
    assert agg.counts.shape == (0, 3)
    assert np.array_equal(agg.excluded, [0])


def test_aggregate_is_idempotent():
    community = simulate_community(2_000, 15, EXTENT, seed=21)
    table = build_abundance_table(community, draw_plot_windows(EXTENT, 5.0, 40, seed=22))
    first = aggregate(table, 12.5, EXTENT)
    second = aggregate(table, 12.5, EXTENT)
    assert np.array_equal(first.counts, second.counts)
    assert np.array_equal(first.corners, second.corners)
    assert np.array_equal(first.excluded, second.excluded)


def test_aggregate_preserves_total_abundance_of_matched_plots():
    community = simulate_community(2_000, 15, EXTENT, seed=31)
    table = build_abundance_table(community, draw_plot_windows(EXTENT, 5.0, 40, seed=32))
    agg = aggregate(table, 25.0, EXTENT)
    kept = ~np.isin(table.plot_index, agg.excluded)
    assert agg.counts.sum() == table.counts[kept].sum()
