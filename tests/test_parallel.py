"""Tests for parallel trial execution (ThreadPoolExecutor).

Verifies that:
  1. parallel_workers=1 (serial) works unchanged
  2. parallel_workers>1 completes without errors
  3. parallel and serial produce identical results
  4. Config accepts the parallel_workers field
"""

import numpy as np
import pytest

from vaxnet.builders import build_scale_free_graph
from vaxnet.config import ExperimentSection, config_from_dict, default_config
from vaxnet.experiment import ExperimentRunner, run_experiment


# ─── Helpers ──────────────────────────────────────────────────────────

def _make_runner(n=80, n_trials=8, seed=42):
    graph = build_scale_free_graph(n, 3, np.random.default_rng(123))
    return ExperimentRunner(graph, n_trials=n_trials, initial_infected=3,
                            vaccine_quota=15, seed=seed)


# ─── Config ───────────────────────────────────────────────────────────

class TestParallelConfig:
    def test_default_is_serial(self):
        assert default_config().experiment.parallel_workers == 1

    def test_section_field(self):
        assert ExperimentSection(parallel_workers=4).parallel_workers == 4

    def test_zero_workers_rejected(self):
        with pytest.raises(ValueError, match="parallel_workers"):
            config_from_dict({"experiment": {"parallel_workers": 0}})


# ─── Execution ────────────────────────────────────────────────────────

class TestParallelExecution:
    def test_serial_runs(self):
        report = _make_runner().compare_all_policies(parallel_workers=1)
        assert len(report.results) == 24

    @pytest.mark.parametrize("workers", [2, 4])
    def test_parallel_completes(self, workers):
        report = _make_runner().compare_all_policies(parallel_workers=workers)
        assert len(report.results) == 24
        assert all(r.ever_infected == r.final_infected for r in report.results)

    @pytest.mark.parametrize("workers", [2, 3])
    def test_parallel_matches_serial(self, workers):
        serial = _make_runner().compare_all_policies(parallel_workers=1)
        parallel = _make_runner().compare_all_policies(parallel_workers=workers)
        assert parallel.results == serial.results
        assert parallel.best_policy == serial.best_policy

    def test_more_workers_than_trials(self):
        report = _make_runner(n_trials=2).compare_all_policies(parallel_workers=8)
        assert [r.trial for r in report.results] == [1, 2] * 3

    def test_parallel_leaves_shared_state_alone(self):
        runner = _make_runner()
        runner.compare_all_policies(parallel_workers=4)
        assert runner.graph.infected_count() == 0
        assert runner.graph.vaccinated_count() == 0

    def test_run_experiment_with_workers(self):
        base = {"network": {"n_animals": 50}, "experiment": {"n_trials": 4, "seed": 9}}
        serial = run_experiment(config_from_dict(base))[1]
        base["experiment"]["parallel_workers"] = 3
        parallel = run_experiment(config_from_dict(base))[1]
        assert parallel.results == serial.results
