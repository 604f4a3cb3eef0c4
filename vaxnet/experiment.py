"""Multi-trial vaccination experiments.

One ExperimentRunner holds one contact graph and repeats the trial
state machine for every policy:

  RESET → SEED_INFECTION → APPLY_POLICY → SPREAD → COLLECT_RESULT

Every trial draws from its own RNG stream, addressed by
(seed, policy, trial) in vaxnet.rng, so trials are independent,
replayable one at a time, and give the same results whether run
serially or on a thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from vaxnet.builders import build_graph_from_config
from vaxnet.config import ExperimentConfig
from vaxnet.graph import ContactGraph
from vaxnet.policies import apply_policy
from vaxnet.rng import fresh_seed, network_rng, trial_rng
from vaxnet.spread import INFECTION_PROB, simulate_spread
from vaxnet.types import (
    ALL_POLICIES,
    InvalidParameterError,
    Policy,
    PolicySummary,
    SimulationResult,
    parse_policies,
)

logger = logging.getLogger(__name__)


@dataclass
class ComparisonReport:
    """Per-policy summaries, the winner and its gain over Random."""
    summaries: Dict[str, PolicySummary]
    best_policy: str
    improvement: Optional[float]          # None if Random wasn't compared
    results: List[SimulationResult] = field(default_factory=list)

    @property
    def policies(self) -> List[str]:
        return list(self.summaries)

    def summary_for(self, policy: "str | Policy") -> PolicySummary:
        return self.summaries[Policy.parse(policy).value]


def rank_policies(summaries: Dict[str, PolicySummary]) -> Tuple[str, Optional[float]]:
    """Pick the policy with the lowest mean final infections.

    Ties go to the policy listed first. Improvement is measured against
    Random: (mean_random - mean_best) / mean_random, 0.0 when Random
    infected nobody, None when Random is absent.
    """
    if not summaries:
        raise ValueError("cannot rank an empty set of policy summaries")
    best = min(summaries.values(), key=lambda s: s.mean_final_infected)
    baseline = summaries.get(Policy.RANDOM.value)
    if baseline is None:
        return best.policy, None
    if baseline.mean_final_infected == 0:
        return best.policy, 0.0
    gain = ((baseline.mean_final_infected - best.mean_final_infected)
            / baseline.mean_final_infected)
    return best.policy, gain


class ExperimentRunner:
    """Repeat reset/seed/vaccinate/spread trials on one contact graph.

    Args:
        graph: Contact network reused for every trial.
        n_trials: Trials per policy (>= 1).
        initial_infected: Animals infected at the start of each trial.
        vaccine_quota: Doses available per trial.
        infection_prob: Per-contact transmission probability.
        seed: Master seed; None draws fresh entropy (kept in ``self.seed``).
        policies: Policies compared by compare_all_policies().

    Raises:
        InvalidParameterError: If n_trials < 1 or infection_prob is
            outside [0, 1]. Out-of-range counts are clamped per trial.
    """

    def __init__(
        self,
        graph: ContactGraph,
        n_trials: int,
        initial_infected: int,
        vaccine_quota: int,
        infection_prob: float = INFECTION_PROB,
        seed: Optional[int] = None,
        policies: Optional[Iterable["str | Policy"]] = None,
    ):
        if n_trials < 1:
            raise InvalidParameterError(f"n_trials must be >= 1, got {n_trials}")
        if not 0.0 <= infection_prob <= 1.0:
            raise InvalidParameterError(
                f"infection_prob must be in [0, 1], got {infection_prob}"
            )
        self.graph = graph
        self.n_trials = int(n_trials)
        self.initial_infected = int(initial_infected)
        self.vaccine_quota = int(vaccine_quota)
        self.infection_prob = float(infection_prob)
        self.seed = fresh_seed() if seed is None else int(seed)
        self.policies: List[Policy] = (
            list(ALL_POLICIES) if policies is None else parse_policies(policies)
        )
        self.trial_log: List[SimulationResult] = []

    # ── single trial ─────────────────────────────────────────────────

    def _trial(self, graph: ContactGraph, policy: Policy,
               trial_index: int) -> SimulationResult:
        rng = trial_rng(self.seed, policy, trial_index)
        graph.reset()
        graph.infect_seed(self.initial_infected, rng)
        apply_policy(policy, graph, self.vaccine_quota, rng)
        outcome = simulate_spread(graph, rng, self.infection_prob)
        result = SimulationResult(
            policy=policy.value,
            trial=trial_index,
            ever_infected=outcome.ever_infected,
            final_infected=outcome.final_infected,
            vaccinated=outcome.vaccinated,
            population=graph.population,
        )
        logger.debug(
            "%s run %d -> EverInfected=%d, FinalInfected=%d, Vaccinated=%d",
            result.policy, trial_index, result.ever_infected,
            result.final_infected, result.vaccinated,
        )
        return result

    def run_once(self, policy: "str | Policy", trial_index: int) -> SimulationResult:
        """Run one trial on the shared graph and log the result.

        The graph's epidemic state is left as the trial ended, so callers
        can inspect who was infected and vaccinated.

        Args:
            policy: Policy or its name.
            trial_index: Trial number; selects the trial's RNG stream.

        Returns:
            The SimulationResult appended to ``trial_log``.
        """
        result = self._trial(self.graph, Policy.parse(policy), trial_index)
        self.trial_log.append(result)
        return result

    # ── full comparison ──────────────────────────────────────────────

    def _run_policy_parallel(self, policy: Policy,
                             workers: int) -> List[SimulationResult]:
        def job(t: int) -> SimulationResult:
            return self._trial(self.graph.with_fresh_state(), policy, t)

        self.graph.csr()  # build the shared cache before threads read it
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(job, range(1, self.n_trials + 1)))

    def compare_all_policies(self, parallel_workers: int = 1) -> ComparisonReport:
        """Run ``n_trials`` trials of every policy and rank them.

        Args:
            parallel_workers: Threads per policy; 1 runs serially on the
                shared graph, more runs each trial on its own state copy.

        Returns:
            ComparisonReport over this comparison's trials only.
        """
        if parallel_workers < 1:
            raise InvalidParameterError(
                f"parallel_workers must be >= 1, got {parallel_workers}"
            )
        results: List[SimulationResult] = []
        for policy in self.policies:
            if parallel_workers == 1:
                batch = [self._trial(self.graph, policy, t)
                         for t in range(1, self.n_trials + 1)]
            else:
                batch = self._run_policy_parallel(policy, parallel_workers)
            self.trial_log.extend(batch)
            results.extend(batch)

            summary = PolicySummary.from_results(policy.value, batch)
            logger.info(
                "%-12s: avgEverInfected=%.2f, avgFinalInfected=%.2f, "
                "avgVaccinated=%.2f",
                policy.value, summary.mean_ever_infected,
                summary.mean_final_infected, summary.mean_vaccinated,
            )

        summaries = summarize(results, self.policies)
        best, improvement = rank_policies(summaries)
        if improvement is None:
            logger.info("Best policy: %s", best)
        else:
            logger.info("Best policy: %s (%.1f%% fewer infections than Random)",
                        best, 100.0 * improvement)
        return ComparisonReport(
            summaries=summaries,
            best_policy=best,
            improvement=improvement,
            results=results,
        )

    def summaries(self) -> Dict[str, PolicySummary]:
        """PolicySummary per policy, recomputed from the whole trial log."""
        return summarize(self.trial_log, self.policies)

    def clear(self) -> None:
        """Forget every logged trial."""
        self.trial_log.clear()


def summarize(results: Iterable[SimulationResult],
              policies: Iterable["str | Policy"]) -> Dict[str, PolicySummary]:
    """Aggregate results per policy, keyed by name in ``policies`` order."""
    rows = list(results)
    return {
        p.value: PolicySummary.from_results(p.value, rows)
        for p in parse_policies(policies)
    }


def run_experiment(config: ExperimentConfig) -> Tuple[ContactGraph, ComparisonReport]:
    """Build the configured network and compare the configured policies.

    The network uses ``network.seed`` when set, otherwise the network
    stream of the experiment seed.

    Returns:
        (graph, report)
    """
    seed = config.experiment.seed
    if seed is None:
        seed = fresh_seed()
        logger.info("No experiment seed given; using %d", seed)
    net_seed = config.network.seed
    rng = (np.random.default_rng(net_seed) if net_seed is not None
           else network_rng(seed))

    graph = build_graph_from_config(config.network, rng)
    logger.info("%s", graph.summary())

    runner = ExperimentRunner(
        graph,
        n_trials=config.experiment.n_trials,
        initial_infected=config.outbreak.initial_infected,
        vaccine_quota=config.vaccination.quota,
        infection_prob=config.outbreak.infection_prob,
        seed=seed,
        policies=config.vaccination.policies,
    )
    report = runner.compare_all_policies(config.experiment.parallel_workers)
    return graph, report
