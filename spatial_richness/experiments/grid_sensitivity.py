"""
Grid Sensitivity Experiment: Chao2 Richness vs Grid Resolution

Measures how the Chao2 estimate responds when the same set of sample plots is
aggregated onto successively finer grids, with the observed singleton count
and with Turing's estimate of it.

This script:
1. Simulates independent communities (one per replicate) and samples plots
2. Aggregates plots onto grids of side grid_size / 2**i, i = 1..levels
3. Estimates richness per level with observed f1 and with Turing's f1
4. Optionally runs singleton resampling trials on one community
5. Saves per-replicate rows and a per-level summary to CSV

Usage:
    python -m spatial_richness.experiments.grid_sensitivity --config baseline --replicates 100 --jobs 4
    python -m spatial_richness.experiments.grid_sensitivity --formula cazzola2022 --trials 1000
"""
from __future__ import annotations
import argparse
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from spatial_richness.community import simulate_community
from spatial_richness.configs import get_config, list_configs, AnalysisConfig
from spatial_richness.estimators import SingletonFormula
from spatial_richness.sweep import sweep_replicates, summarize_sweeps
from spatial_richness.validation import singleton_trials, summarize_trials


# =============================================================================
# Reporting
# =============================================================================
def print_config(cfg: AnalysisConfig, n_replicates: int):
    print("=" * 60)
    print(f"GRID SENSITIVITY: {cfg.name}")
    print("=" * 60)
    print(f"Window: {cfg.window_size} x {cfg.window_size} {cfg.unit}")
    print(f"Community: {cfg.n_points} individuals, {cfg.species_n} species ({cfg.sad} SAD)")
    print(f"Plots: {cfg.plot_count} of side {cfg.plot_side} {cfg.unit}")
    print(f"Grid sizes: {', '.join(f'{g:g}' for g in cfg.get_grid_sizes())}")
    print(f"Singletons: {'Turing estimate' if cfg.turing_f1 else 'observed'}")
    print(f"Singleton formula: {cfg.singleton_formula.value}")
    print(f"Replicates: {n_replicates}, parallel jobs: {cfg.n_jobs}")
    print("=" * 60)


def print_sweep_summary(summary: pd.DataFrame):
    print("\n" + "=" * 60)
    print("RICHNESS BY GRID LEVEL")
    print("=" * 60)
    print(f"{'level':>5} {'grid':>9} {'n':>8} {'S_obs':>8} {'Chao2':>10} {'Chao2(T)':>10} {'valid':>6} {'selected':>10}")
    for _, row in summary.iterrows():
        print(f"{int(row['level']):>5} {row['grid_size']:>9.3g} {row['n_mean']:>8.1f} "
              f"{row['s_obs_mean']:>8.1f} {row['chao2_mean']:>10.2f} "
              f"{row['chao2_turing_mean']:>10.2f} {int(row['turing_valid']):>6} {row['richness_mean']:>10.2f}")
    print(f"True richness (mean over replicates): {summary['true_richness'].iloc[0]:.1f}")


def print_trial_summary(stats: dict):
    print("\n" + "=" * 60)
    print("SINGLETON RESAMPLING TRIALS")
    print("=" * 60)
    print(f"Trials: {stats['n_trials']}")
    print(f"Mean observed f1:  {stats['mean_f1']:.3f}")
    print(f"Mean estimated f1: {stats['mean_f1_hat']:.3f}")
    print(f"Relative bias:     {stats['relative_bias']:+.3%}")
    print(f"Per-trial RMSE:    {stats['rmse']:.3f}")
    print(f"Non-finite estimates: {stats['invalid_fraction']:.1%}")


# =============================================================================
# Main
# =============================================================================
def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Chao2 richness vs grid resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', '-c', default='baseline', choices=list_configs(),
                        help="Predefined configuration (default: baseline)")
    parser.add_argument('--replicates', '-r', type=int, default=20,
                        help="Number of independent replicates (default: 20)")
    parser.add_argument('--levels', '-l', type=int, default=None,
                        help="Number of grid halvings (default: from config)")
    parser.add_argument('--grid-size', '-g', type=float, default=None,
                        help="Base grid size (default: from config)")
    parser.add_argument('--formula', '-f', default=None,
                        choices=[m.value for m in SingletonFormula],
                        help="Turing singleton formula (default: from config)")
    parser.add_argument('--turing-f1', action='store_true',
                        help="Estimate richness with Turing's f1 instead of the observed f1")
    parser.add_argument('--trials', '-t', type=int, default=0,
                        help="Singleton resampling trials on one community (default: 0, skip)")
    parser.add_argument('--sample-size', type=int, default=500,
                        help="Individuals per resampling trial (default: 500)")
    parser.add_argument('--jobs', '-j', type=int, default=1,
                        help="Number of parallel jobs (default: 1)")
    parser.add_argument('--seed', type=int, default=None,
                        help="Base random seed (default: from config)")
    parser.add_argument('--output', '-o', default=None,
                        help="Output directory (default: results/<config>)")
    parser.add_argument('--verbose', '-v', action='store_true',
                        help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    cfg = get_config(args.config)
    changes = {'n_jobs': args.jobs}
    if args.levels is not None:
        changes['levels'] = args.levels
    if args.grid_size is not None:
        changes['grid_size'] = args.grid_size
    if args.turing_f1:
        changes['turing_f1'] = True
    if args.formula is not None:
        changes['singleton_formula'] = SingletonFormula(args.formula)
    if args.seed is not None:
        changes['seed'] = args.seed
    cfg = cfg.with_options(**changes)

    output_dir = Path(args.output) if args.output else Path(cfg.get_output_dir())
    output_dir.mkdir(parents=True, exist_ok=True)

    print_config(cfg, args.replicates)

    rows = sweep_replicates(cfg, args.replicates)
    rows.to_csv(output_dir / "sweep_replicates.csv", index=False)
    summary = summarize_sweeps(rows)
    summary.to_csv(output_dir / "sweep_summary.csv", index=False)
    print_sweep_summary(summary)

    if args.trials > 0:
        community = simulate_community(
            cfg.n_points, cfg.species_n, cfg.window,
            sad=cfg.sad, sd_log=cfg.sd_log, seed=cfg.seed,
        )
        trials = singleton_trials(
            community, args.sample_size, args.trials,
            formula=cfg.singleton_formula, seed=cfg.seed,
            n_jobs=cfg.n_jobs, progress=True,
        )
        trials.to_csv(output_dir / "singleton_trials.csv", index=False)
        print_trial_summary(summarize_trials(trials))

    finite = np.isfinite(rows["chao2"]).mean()
    print(f"\nFinite Chao2 values: {finite:.1%}")
    print(f"Results saved to: {output_dir}")


if __name__ == "__main__":
    main()
