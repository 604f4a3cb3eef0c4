"""Probabilistic SI contagion over a ContactGraph.

Infection moves breadth-first from every currently infected animal.
When an animal is dequeued, each neighbor that is neither infected nor
vaccinated gets one independent Bernoulli(infection_prob) draw; a
success infects it and enqueues it. An animal enters the queue at most
once, so a run costs O(V + E).

Entry points:
  - simulate_spread: final tallies only
  - simulate_spread_waves: same propagation and draw order, also
    returning the ordered batches of newly infected ids

With infection_prob = 1.0 the final infected set is exactly the set of
animals reachable from the seeds once vaccinated animals are removed.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import List, NamedTuple

import numpy as np

from vaxnet.graph import ContactGraph
from vaxnet.types import InvalidParameterError

INFECTION_PROB = 0.40


class SpreadOutcome(NamedTuple):
    """Tallies at the end of one spread run."""
    ever_infected: int
    final_infected: int
    vaccinated: int


@dataclass
class SpreadTrace:
    """Spread outcome plus infection waves.

    waves[0] holds the animals infected before spreading started; wave k
    holds those infected by contacts with wave k-1.
    """
    outcome: SpreadOutcome
    waves: List[np.ndarray] = field(default_factory=list)

    @property
    def n_waves(self) -> int:
        return len(self.waves)

    def wave_sizes(self) -> np.ndarray:
        return np.array([len(w) for w in self.waves], dtype=np.int64)

    def cumulative_infected(self) -> np.ndarray:
        return np.cumsum(self.wave_sizes())


def _check_prob(infection_prob: float) -> None:
    if not 0.0 <= infection_prob <= 1.0:
        raise InvalidParameterError(
            f"infection_prob must be in [0, 1], got {infection_prob}"
        )


def _expose(graph: ContactGraph, node: int, rng: np.random.Generator,
            infection_prob: float) -> np.ndarray:
    """Expose the susceptible neighbors of ``node``; return the newly infected."""
    indptr, indices = graph.csr()
    nbrs = indices[indptr[node]:indptr[node + 1]]
    state = graph.state
    susceptible = nbrs[~state.infected[nbrs] & ~state.vaccinated[nbrs]]
    if len(susceptible) == 0:
        return susceptible
    hit = susceptible[rng.random(len(susceptible)) < infection_prob]
    state.infected[hit] = True
    return hit


def _tally(graph: ContactGraph, ever_infected: int) -> SpreadOutcome:
    final_infected = graph.infected_count()
    assert ever_infected == final_infected, (
        f"SI invariant broken: ever={ever_infected} final={final_infected}"
    )
    return SpreadOutcome(ever_infected, final_infected, graph.vaccinated_count())


def simulate_spread(
    graph: ContactGraph,
    rng: np.random.Generator,
    infection_prob: float = INFECTION_PROB,
) -> SpreadOutcome:
    """Run SI contagion to completion on the graph's current state.

    Args:
        graph: Graph with infections seeded and vaccinations applied.
            Its infected flags are updated in place.
        rng: Random generator for the transmission draws.
        infection_prob: Per-contact transmission probability in [0, 1].

    Returns:
        SpreadOutcome(ever_infected, final_infected, vaccinated).

    Raises:
        InvalidParameterError: If infection_prob is outside [0, 1].
    """
    _check_prob(infection_prob)
    queue = deque(int(i) for i in np.nonzero(graph.state.infected)[0])
    ever_infected = len(queue)

    while queue:
        node = queue.popleft()
        newly = _expose(graph, node, rng, infection_prob)
        ever_infected += len(newly)
        queue.extend(int(i) for i in newly)

    return _tally(graph, ever_infected)


def simulate_spread_waves(
    graph: ContactGraph,
    rng: np.random.Generator,
    infection_prob: float = INFECTION_PROB,
) -> SpreadTrace:
    """Like simulate_spread, but keep the infection waves.

    Processing a wave in order and collecting its victims into the next
    wave visits animals in the same order as the FIFO queue, so for the
    same rng state the final infected set matches simulate_spread.
    """
    _check_prob(infection_prob)
    frontier = np.nonzero(graph.state.infected)[0]
    waves: List[np.ndarray] = [frontier]
    ever_infected = len(frontier)

    while len(frontier) > 0:
        batch = [_expose(graph, int(node), rng, infection_prob)
                 for node in frontier]
        frontier = (np.concatenate(batch) if batch
                    else np.empty(0, dtype=np.int64))
        if len(frontier) > 0:
            waves.append(frontier)
            ever_infected += len(frontier)

    return SpreadTrace(outcome=_tally(graph, ever_infected), waves=waves)
