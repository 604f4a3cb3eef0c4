"""Command-line runner for vaccination policy comparisons.

Usage:
    vaxnet                                  # defaults: 100 animals, 20 trials
    vaxnet --config configs/default.yaml --trials 50 --csv out.csv
    vaxnet --graph random --animals 500 --workers 4 --plots figures/
    python -m vaxnet -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from vaxnet.config import (
    NETWORK_MODELS,
    ExperimentConfig,
    config_from_dict,
    load_config,
)
from vaxnet.experiment import ComparisonReport, run_experiment
from vaxnet.graph import ContactGraph
from vaxnet.policies import apply_policy
from vaxnet.report import format_summary, format_trial_log, write_results_csv
from vaxnet.rng import fresh_seed, trial_rng
from vaxnet.spread import simulate_spread_waves

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: int = 0) -> None:
    """Send vaxnet log records to stderr.

    0 shows warnings only, 1 adds per-policy progress, 2+ every trial.
    """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("vaxnet")
    root.handlers[:] = [handler]
    root.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaxnet",
        description="Compare vaccination policies on a simulated animal "
                    "contact network.",
        epilog="Example: vaxnet --trials 50 --quota 10 --csv results.csv",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Base config YAML (default: built-in defaults)",
    )
    parser.add_argument(
        "--trials", type=int, default=None,
        help="Trials per policy (default: 20)",
    )
    parser.add_argument(
        "--animals", type=int, default=None,
        help="Number of animals in the network (default: 100)",
    )
    parser.add_argument(
        "--graph", type=str, default=None, choices=NETWORK_MODELS,
        help="Network generator (default: scale_free)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Master seed for network and trials (default: 42)",
    )
    parser.add_argument(
        "--quota", type=int, default=None,
        help="Vaccine doses per trial (default: 20)",
    )
    parser.add_argument(
        "--initial-infected", type=int, default=None,
        help="Animals infected at the start of each trial (default: 3)",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Threads per policy (default: 1, serial)",
    )
    parser.add_argument(
        "--csv", type=str, default=None,
        help="Results CSV path (default: <output.directory>/<output.csv_name>)",
    )
    parser.add_argument(
        "--plots", type=str, default=None, metavar="DIR",
        help="Write PNG figures to DIR",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Log progress (-v) or every trial (-vv)",
    )
    return parser


def _overrides(args: argparse.Namespace) -> Dict:
    """Nested config overrides for the flags that were given."""
    flags = {
        ("network", "model"): args.graph,
        ("network", "n_animals"): args.animals,
        ("outbreak", "initial_infected"): args.initial_infected,
        ("vaccination", "quota"): args.quota,
        ("experiment", "n_trials"): args.trials,
        ("experiment", "seed"): args.seed,
        ("experiment", "parallel_workers"): args.workers,
    }
    out: Dict = {}
    for (section, key), value in flags.items():
        if value is not None:
            out.setdefault(section, {})[key] = value
    return out


def _resolve_config(args: argparse.Namespace) -> ExperimentConfig:
    overrides = _overrides(args)
    if args.config is not None:
        config = load_config(args.config, overrides=overrides)
    else:
        config = config_from_dict(overrides)
    if config.experiment.seed is None:
        config.experiment.seed = fresh_seed()
        logger.info("No experiment seed given; using %d", config.experiment.seed)
    return config


def write_plots(config: ExperimentConfig, graph: ContactGraph,
                report: ComparisonReport, plot_dir: Path) -> List[Path]:
    """Save the standard figure set; returns the files written.

    The wave and network figures replay trial 1 of the best policy.
    """
    from vaxnet.viz import (
        plot_contact_network,
        plot_degree_distribution,
        plot_infection_waves,
        plot_policy_comparison,
        plot_trial_distribution,
    )

    plot_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "comparison": plot_dir / "policy_comparison.png",
        "trials": plot_dir / "trial_distribution.png",
        "degrees": plot_dir / "degree_distribution.png",
        "waves": plot_dir / "infection_waves.png",
        "network": plot_dir / "contact_network.png",
    }
    plot_policy_comparison(report, save_path=paths["comparison"])
    plot_trial_distribution(report.results, save_path=paths["trials"])
    plot_degree_distribution(graph, save_path=paths["degrees"])

    rng = trial_rng(config.experiment.seed, report.best_policy, 1)
    graph.reset()
    graph.infect_seed(config.outbreak.initial_infected, rng)
    apply_policy(report.best_policy, graph, config.vaccination.quota, rng)
    trace = simulate_spread_waves(graph, rng, config.outbreak.infection_prob)
    plot_infection_waves(trace, population=graph.population,
                         save_path=paths["waves"])
    plot_contact_network(graph, save_path=paths["network"])
    return list(paths.values())


def main(argv: Optional[List[str]] = None) -> int:
    """Run the comparison and export results. Returns the exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = _resolve_config(args)
        graph, report = run_experiment(config)
    except (ValueError, FileNotFoundError) as e:
        logger.error("Invalid parameters: %s", e)
        return 2

    print(format_trial_log(report.results))
    print(format_summary(report.summaries, report.best_policy,
                         report.improvement))

    csv_path = Path(args.csv) if args.csv is not None else config.csv_path
    try:
        written = write_results_csv(csv_path, report.summaries, report.results)
        print(f"Results written to {written}")
        plot_dir = None
        if args.plots is not None:
            plot_dir = Path(args.plots)
        elif config.output.save_plots:
            plot_dir = Path(config.output.directory)
        if plot_dir is not None:
            figures = write_plots(config, graph, report, plot_dir)
            print(f"{len(figures)} figures written to {plot_dir}")
    except OSError as e:
        logger.error("Could not write results: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
