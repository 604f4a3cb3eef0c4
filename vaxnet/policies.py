"""Vaccination policies.

Each policy is a plain function ``(graph, count, rng) -> ids`` that marks
at most min(count, population) animals vaccinated and returns the ids it
chose. Dispatch goes through POLICY_TABLE keyed by the Policy enum.

Marking an animal that is already infected (or already vaccinated) is
allowed and changes nothing beyond the flag: a vaccine given after
seeding never cures an infection, and the dose still counts against
the quota.
"""

from __future__ import annotations

from typing import Callable, Dict

import numpy as np

from vaxnet.graph import ContactGraph
from vaxnet.types import Policy

PolicyFn = Callable[[ContactGraph, int, np.random.Generator], np.ndarray]


def _clamp(count: int, population: int) -> int:
    return min(max(int(count), 0), population)


def vaccinate_random(graph: ContactGraph, count: int,
                     rng: np.random.Generator) -> np.ndarray:
    """Uniform sample without replacement over the whole population."""
    k = _clamp(count, graph.population)
    chosen = rng.choice(graph.population, size=k, replace=False)
    graph.state.vaccinated[chosen] = True
    return chosen


def vaccinate_high_degree(graph: ContactGraph, count: int,
                          rng: np.random.Generator) -> np.ndarray:
    """The ``count`` highest-degree animals; ties go to the lower id.

    ``rng`` is unused; it is accepted so every policy shares one signature.
    """
    k = _clamp(count, graph.population)
    # Stable sort on -degree keeps ascending id order within a degree.
    order = np.argsort(-graph.degrees(), kind='stable')
    chosen = order[:k]
    graph.state.vaccinated[chosen] = True
    return chosen


def vaccinate_high_risk_area(graph: ContactGraph, count: int,
                             rng: np.random.Generator) -> np.ndarray:
    """Ring vaccination around the currently infected animals.

    Candidates are the deduplicated neighbors of every infected animal,
    shuffled. If there are fewer candidates than ``count``, the rest of
    the quota is a shuffled sample of all animals not already chosen.
    With no infections this reduces to random vaccination.
    """
    k = _clamp(count, graph.population)
    indptr, indices = graph.csr()
    infected = np.nonzero(graph.state.infected)[0]
    if len(infected) > 0:
        ring = np.unique(np.concatenate(
            [indices[indptr[i]:indptr[i + 1]] for i in infected]
        ))
    else:
        ring = np.empty(0, dtype=np.int64)
    rng.shuffle(ring)
    chosen = ring[:k]

    shortfall = k - len(chosen)
    if shortfall > 0:
        rest = np.setdiff1d(np.arange(graph.population), chosen)
        rng.shuffle(rest)
        chosen = np.concatenate([chosen, rest[:shortfall]])

    graph.state.vaccinated[chosen] = True
    return chosen


POLICY_TABLE: Dict[Policy, PolicyFn] = {
    Policy.RANDOM: vaccinate_random,
    Policy.HIGH_DEGREE: vaccinate_high_degree,
    Policy.HIGH_RISK_AREA: vaccinate_high_risk_area,
}


def apply_policy(policy: "str | Policy", graph: ContactGraph, count: int,
                 rng: np.random.Generator) -> np.ndarray:
    """Vaccinate using the named policy.

    Args:
        policy: Policy or its name ("Random", "HighDegree", "HighRiskArea").
        graph: Graph whose current state is modified.
        count: Vaccine quota; clamped to [0, population].
        rng: Random generator for the policy's draws.

    Returns:
        Ids of the animals the policy vaccinated, in selection order.

    Raises:
        ValueError: If the policy name is unknown.
    """
    return POLICY_TABLE[Policy.parse(policy)](graph, count, rng)
