"""Tests for vaxnet.experiment — trial state machine and policy comparison."""

import logging

import numpy as np
import pytest

from vaxnet.builders import build_scale_free_graph
from vaxnet.config import config_from_dict
from vaxnet.experiment import (
    ComparisonReport,
    ExperimentRunner,
    rank_policies,
    run_experiment,
    summarize,
)
from vaxnet.rng import network_rng
from vaxnet.types import InvalidParameterError, Policy, PolicySummary, SimulationResult


@pytest.fixture(scope="module")
def graph():
    """Fixed scale-free network: 100 animals, 3 edges per new animal."""
    return build_scale_free_graph(100, 3, network_rng(42))


def _runner(graph, n_trials=20, **kwargs):
    kwargs.setdefault("seed", 42)
    return ExperimentRunner(graph, n_trials=n_trials, initial_infected=3,
                            vaccine_quota=20, **kwargs)


def _summary(policy, final):
    return PolicySummary(policy=policy, n_trials=1, mean_ever_infected=final,
                         mean_final_infected=final)


class TestRunnerValidation:
    def test_zero_trials(self, graph):
        with pytest.raises(InvalidParameterError):
            _runner(graph, n_trials=0)

    def test_bad_infection_prob(self, graph):
        with pytest.raises(InvalidParameterError):
            _runner(graph, infection_prob=1.5)

    def test_bad_worker_count(self, graph):
        with pytest.raises(InvalidParameterError):
            _runner(graph, n_trials=1).compare_all_policies(parallel_workers=0)

    def test_unknown_policy(self, graph):
        with pytest.raises(ValueError):
            _runner(graph, policies=["Random", "Lottery"])

    def test_fresh_seed_recorded(self, graph):
        runner = ExperimentRunner(graph, n_trials=1, initial_infected=1,
                                  vaccine_quota=1)
        assert isinstance(runner.seed, int)


class TestRunOnce:
    def test_result_fields(self, graph):
        runner = _runner(graph)
        r = runner.run_once("HighDegree", 1)
        assert r.policy == "HighDegree"
        assert r.trial == 1
        assert r.population == 100
        assert r.vaccinated == 20
        assert r.ever_infected == r.final_infected
        assert 3 <= r.final_infected <= 100
        assert runner.trial_log == [r]

    def test_leaves_final_state_on_graph(self, graph):
        runner = _runner(graph)
        r = runner.run_once(Policy.RANDOM, 2)
        assert graph.infected_count() == r.final_infected
        assert graph.vaccinated_count() == r.vaccinated

    def test_replay_is_identical(self, graph):
        a = _runner(graph).run_once("HighRiskArea", 5)
        b = _runner(graph).run_once("HighRiskArea", 5)
        assert a == b

    def test_quota_clamped(self, graph):
        runner = ExperimentRunner(graph, n_trials=1, initial_infected=3,
                                  vaccine_quota=9999, seed=1)
        r = runner.run_once("Random", 1)
        assert r.vaccinated == 100
        # Only the seeds were infected before everyone got vaccinated.
        assert r.final_infected == 3


class TestCompareAllPolicies:
    def test_report_shape(self, graph):
        report = _runner(graph, n_trials=5).compare_all_policies()
        assert isinstance(report, ComparisonReport)
        assert report.policies == ["Random", "HighDegree", "HighRiskArea"]
        assert len(report.results) == 15
        for s in report.summaries.values():
            assert s.n_trials == 5
        assert [r.trial for r in report.results[:5]] == [1, 2, 3, 4, 5]

    def test_policy_subset(self, graph):
        report = _runner(graph, n_trials=3,
                         policies=["HighDegree", "HighRiskArea"]).compare_all_policies()
        assert report.policies == ["HighDegree", "HighRiskArea"]
        assert report.improvement is None

    def test_matches_run_once(self, graph):
        runner = _runner(graph, n_trials=4)
        report = runner.compare_all_policies()
        replay = _runner(graph).run_once("Random", 3)
        assert report.results[2] == replay

    def test_same_seed_same_report(self, graph):
        a = _runner(graph, n_trials=5).compare_all_policies()
        b = _runner(graph, n_trials=5).compare_all_policies()
        assert a.results == b.results

    def test_trials_not_degenerate(self, graph):
        report = _runner(graph, n_trials=10, policies=["Random"]).compare_all_policies()
        finals = {r.final_infected for r in report.results}
        assert len(finals) > 1

    def test_high_degree_beats_random(self, graph):
        report = _runner(graph, n_trials=20).compare_all_policies()
        assert (report.summary_for("HighDegree").mean_final_infected
                <= report.summary_for("Random").mean_final_infected)

    def test_si_invariant_every_trial(self, graph):
        report = _runner(graph, n_trials=5).compare_all_policies()
        assert all(r.ever_infected == r.final_infected for r in report.results)

    def test_logs_best_policy(self, graph, caplog):
        with caplog.at_level(logging.INFO, logger="vaxnet.experiment"):
            report = _runner(graph, n_trials=2).compare_all_policies()
        assert f"Best policy: {report.best_policy}" in caplog.text

    def test_summaries_and_clear(self, graph):
        runner = _runner(graph, n_trials=2)
        runner.compare_all_policies()
        runner.run_once("Random", 3)
        assert runner.summaries()["Random"].n_trials == 3
        runner.clear()
        assert runner.trial_log == []
        assert runner.summaries()["Random"].n_trials == 0


class TestRankPolicies:
    def test_lowest_mean_wins(self):
        best, gain = rank_policies({
            "Random": _summary("Random", 40.0),
            "HighDegree": _summary("HighDegree", 10.0),
            "HighRiskArea": _summary("HighRiskArea", 20.0),
        })
        assert best == "HighDegree"
        assert gain == pytest.approx(0.75)

    def test_tie_goes_to_first_listed(self):
        best, gain = rank_policies({
            "Random": _summary("Random", 10.0),
            "HighDegree": _summary("HighDegree", 10.0),
        })
        assert best == "Random"
        assert gain == pytest.approx(0.0)

    def test_random_zero_baseline(self):
        _, gain = rank_policies({
            "Random": _summary("Random", 0.0),
            "HighDegree": _summary("HighDegree", 0.0),
        })
        assert gain == 0.0

    def test_without_random(self):
        best, gain = rank_policies({"HighRiskArea": _summary("HighRiskArea", 3.0)})
        assert best == "HighRiskArea"
        assert gain is None

    def test_empty(self):
        with pytest.raises(ValueError):
            rank_policies({})


class TestSummarize:
    def test_keyed_in_policy_order(self):
        rows = [SimulationResult("HighDegree", 1, 5, 5, 20, 100),
                SimulationResult("Random", 1, 9, 9, 20, 100)]
        out = summarize(rows, ["Random", "HighDegree"])
        assert list(out) == ["Random", "HighDegree"]
        assert out["Random"].mean_final_infected == pytest.approx(9.0)


class TestRunExperiment:
    def test_end_to_end(self):
        config = config_from_dict({
            "network": {"n_animals": 60},
            "experiment": {"n_trials": 3, "seed": 7},
        })
        graph, report = run_experiment(config)
        assert graph.population == 60
        assert len(report.results) == 9

    def test_network_follows_experiment_seed(self):
        config = config_from_dict({"network": {"n_animals": 40},
                                   "experiment": {"n_trials": 1, "seed": 3}})
        g1, _ = run_experiment(config)
        g2, _ = run_experiment(config)
        assert list(g1.edges()) == list(g2.edges())

    def test_explicit_network_seed(self):
        a = config_from_dict({"network": {"n_animals": 40, "seed": 5},
                              "experiment": {"n_trials": 1, "seed": 1}})
        b = config_from_dict({"network": {"n_animals": 40, "seed": 5},
                              "experiment": {"n_trials": 1, "seed": 2}})
        assert list(run_experiment(a)[0].edges()) == list(run_experiment(b)[0].edges())

    def test_random_model(self):
        config = config_from_dict({
            "network": {"model": "random", "n_animals": 30, "edge_prob": 0.0},
            "experiment": {"n_trials": 2, "seed": 1},
        })
        graph, report = run_experiment(config)
        assert graph.n_edges == 0
        # No contacts: nobody beyond the 3 seeds is ever infected.
        assert all(r.final_infected == 3 for r in report.results)
        assert np.isclose(report.improvement, 0.0)
