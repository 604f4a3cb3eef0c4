"""Contact network: topology plus per-trial epidemic state.

Nodes are animals with integer ids 0..n-1 stored in a flat list of
neighbor sets; there are no node↔node object references. Epidemic state
(infected / vaccinated flags) lives in a separate EpidemicState of two
boolean vectors, so a trial can be reset by allocation and concurrent
trials can share one topology.

Core classes:
  - EpidemicState: infected / vaccinated vectors for one trial
  - ContactGraph: symmetric, loop-free adjacency + current EpidemicState

Invariants:
  - b in neighbors(a)  <=>  a in neighbors(b)
  - a never in neighbors(a)
  - trial operations (reset, seeding, policies, spread) never touch topology
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components

from vaxnet.types import InvalidParameterError, NodeView


# ═══════════════════════════════════════════════════════════════════════
# EPIDEMIC STATE
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class EpidemicState:
    """Infected / vaccinated flags for every node in one trial."""
    infected: np.ndarray     # (n,) bool
    vaccinated: np.ndarray   # (n,) bool

    @classmethod
    def empty(cls, n: int) -> "EpidemicState":
        return cls(
            infected=np.zeros(n, dtype=bool),
            vaccinated=np.zeros(n, dtype=bool),
        )

    def copy(self) -> "EpidemicState":
        return EpidemicState(
            infected=self.infected.copy(),
            vaccinated=self.vaccinated.copy(),
        )


# ═══════════════════════════════════════════════════════════════════════
# CONTACT GRAPH
# ═══════════════════════════════════════════════════════════════════════

class ContactGraph:
    """Undirected contact network of ``n`` animals.

    Topology is built with add_edge() (normally by a builder in
    vaxnet.builders) and is read-only afterwards. The CSR arrays used by
    the spread simulator are cached and invalidated on add_edge().
    """

    def __init__(self, n: int):
        if n < 1:
            raise InvalidParameterError(f"population must be >= 1, got {n}")
        self._n = int(n)
        self._adj: List[Set[int]] = [set() for _ in range(self._n)]
        self._n_edges = 0
        self._csr: Optional[Tuple[np.ndarray, np.ndarray]] = None
        self.state = EpidemicState.empty(self._n)

    @classmethod
    def from_edges(cls, n: int, edges: Iterable[Tuple[int, int]]) -> "ContactGraph":
        """Build a graph of ``n`` nodes from an edge iterable."""
        g = cls(n)
        for a, b in edges:
            g.add_edge(a, b)
        return g

    # ── topology ─────────────────────────────────────────────────────

    def _check(self, node: int) -> int:
        node = int(node)
        if node < 0 or node >= self._n:
            raise IndexError(f"node {node} out of range [0, {self._n})")
        return node

    def add_edge(self, a: int, b: int) -> None:
        """Connect a and b. Self-loops and repeated edges are no-ops."""
        a = self._check(a)
        b = self._check(b)
        if a == b or b in self._adj[a]:
            return
        self._adj[a].add(b)
        self._adj[b].add(a)
        self._n_edges += 1
        self._csr = None

    def has_edge(self, a: int, b: int) -> bool:
        return self._check(b) in self._adj[self._check(a)]

    def neighbors(self, node: int) -> FrozenSet[int]:
        return frozenset(self._adj[self._check(node)])

    @property
    def population(self) -> int:
        return self._n

    def __len__(self) -> int:
        return self._n

    @property
    def n_edges(self) -> int:
        return self._n_edges

    def degree(self, node: int) -> int:
        return len(self._adj[self._check(node)])

    def degrees(self) -> np.ndarray:
        """Degree of every node. Shape: (n,)."""
        return np.fromiter((len(s) for s in self._adj), dtype=np.int64,
                           count=self._n)

    def average_degree(self) -> float:
        return 2.0 * self._n_edges / self._n

    def max_degree(self) -> int:
        return max(len(s) for s in self._adj)

    def edges(self) -> Iterator[Tuple[int, int]]:
        """Each edge once, as (a, b) with a < b, in ascending order."""
        for a in range(self._n):
            for b in sorted(self._adj[a]):
                if a < b:
                    yield a, b

    def csr(self) -> Tuple[np.ndarray, np.ndarray]:
        """(indptr, indices) with each row's neighbors in ascending order."""
        if self._csr is None:
            counts = self.degrees()
            indptr = np.zeros(self._n + 1, dtype=np.int64)
            np.cumsum(counts, out=indptr[1:])
            indices = np.empty(int(indptr[-1]), dtype=np.int64)
            for i, nbrs in enumerate(self._adj):
                indices[indptr[i]:indptr[i + 1]] = sorted(nbrs)
            self._csr = (indptr, indices)
        return self._csr

    def adjacency_matrix(self) -> sp.csr_matrix:
        """Symmetric 0/1 adjacency matrix."""
        indptr, indices = self.csr()
        data = np.ones(len(indices), dtype=np.int8)
        return sp.csr_matrix((data, indices, indptr), shape=(self._n, self._n))

    def connected_components(self) -> int:
        """Number of connected components (isolated nodes count as one each)."""
        n_comp, _ = connected_components(self.adjacency_matrix(), directed=False)
        return int(n_comp)

    # ── epidemic state ───────────────────────────────────────────────

    @property
    def infected(self) -> np.ndarray:
        """Read-only view of the infected flags."""
        view = self.state.infected.view()
        view.flags.writeable = False
        return view

    @property
    def vaccinated(self) -> np.ndarray:
        """Read-only view of the vaccinated flags."""
        view = self.state.vaccinated.view()
        view.flags.writeable = False
        return view

    def infected_count(self) -> int:
        return int(np.count_nonzero(self.state.infected))

    def vaccinated_count(self) -> int:
        return int(np.count_nonzero(self.state.vaccinated))

    def reset(self) -> None:
        """Clear every infected / vaccinated flag. Topology is untouched."""
        self.state = EpidemicState.empty(self._n)

    def mark_infected(self, nodes: Iterable[int]) -> None:
        for node in nodes:
            self.state.infected[self._check(node)] = True

    def mark_vaccinated(self, nodes: Iterable[int]) -> None:
        for node in nodes:
            self.state.vaccinated[self._check(node)] = True

    def infect_seed(self, count: int, rng: np.random.Generator) -> np.ndarray:
        """Infect min(count, n) distinct nodes chosen uniformly at random.

        Args:
            count: Requested number of initial infections. Values outside
                [0, n] are clamped.
            rng: Random generator for the draw.

        Returns:
            Ids of the seeded nodes.
        """
        k = min(max(int(count), 0), self._n)
        chosen = rng.choice(self._n, size=k, replace=False)
        self.state.infected[chosen] = True
        return chosen

    def with_fresh_state(self) -> "ContactGraph":
        """Graph sharing this topology but owning a new, empty EpidemicState.

        The shared adjacency must not be modified through either graph;
        concurrent trials use this to avoid racing on one set of flags.
        """
        twin = object.__new__(ContactGraph)
        twin._n = self._n
        twin._adj = self._adj
        twin._n_edges = self._n_edges
        twin._csr = self.csr()
        twin.state = EpidemicState.empty(self._n)
        return twin

    # ── read-only iteration ──────────────────────────────────────────

    def node(self, node: int) -> NodeView:
        node = self._check(node)
        return NodeView(
            id=node,
            infected=bool(self.state.infected[node]),
            vaccinated=bool(self.state.vaccinated[node]),
            neighbors=frozenset(self._adj[node]),
        )

    def nodes(self) -> Iterator[NodeView]:
        """Every node in ascending id order."""
        for i in range(self._n):
            yield self.node(i)

    def summary(self) -> str:
        """Human-readable summary of the network."""
        return (
            f"ContactGraph: {self._n} animals, {self._n_edges} contacts, "
            f"mean degree {self.average_degree():.2f}, "
            f"max degree {self.max_degree()}, "
            f"{self.connected_components()} component(s)"
        )

    def __repr__(self) -> str:
        return (
            f"ContactGraph(n={self._n}, edges={self._n_edges}, "
            f"infected={self.infected_count()}, "
            f"vaccinated={self.vaccinated_count()})"
        )
