import numpy as np
import pandas as pd

from spatial_richness.experiments.grid_sensitivity import main

CLI_ARGS = ["--config", "sparse_sampling", "--replicates", "1", "--levels", "2", "--jobs", "1"]


def run_cli(tmp_path, *extra):
    main(CLI_ARGS + ["--output", str(tmp_path)] + list(extra))
    return pd.read_csv(tmp_path / "sweep_replicates.csv")


def test_cli_writes_sweep_tables(tmp_path):
    rows = run_cli(tmp_path)
    assert list(rows["level"]) == [1, 2]
    assert (tmp_path / "sweep_summary.csv").exists()
    np.testing.assert_allclose(rows["richness"], rows["chao2"])


def test_cli_turing_f1_flag_selects_turing_richness(tmp_path):
    rows = run_cli(tmp_path, "--turing-f1")
    np.testing.assert_allclose(rows["richness"], rows["chao2_turing"])
