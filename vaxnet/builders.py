"""Synthetic contact-network generators.

Core functions:
  - build_random_graph: Erdős–Rényi G(n, p), every pair independently
  - build_scale_free_graph: preferential attachment on a seed clique
  - build_sparse_random_graph: fixed number of uniformly drawn contacts
  - build_graph_from_config: dispatch on NetworkSection.model

Every builder takes an explicit Generator so graph construction is
reproducible and independent of the trial streams.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from vaxnet.config import NETWORK_MODELS, NetworkSection
from vaxnet.graph import ContactGraph
from vaxnet.types import InvalidParameterError


def _default_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def build_random_graph(
    n: int,
    p: float,
    rng: Optional[np.random.Generator] = None,
) -> ContactGraph:
    """Uniform random graph: each unordered pair is an edge with prob ``p``.

    Args:
        n: Population size (>= 1).
        p: Edge probability in [0, 1].
        rng: Random generator (fresh entropy if None).

    Returns:
        ContactGraph with n nodes; isolated nodes are possible.

    Raises:
        InvalidParameterError: If n < 1 or p is outside [0, 1].
    """
    if not 0.0 <= p <= 1.0:
        raise InvalidParameterError(f"edge probability must be in [0, 1], got {p}")
    graph = ContactGraph(n)
    rng = _default_rng(rng)
    # Row i draws for pairs (i, i+1..n-1); one Bernoulli per unordered pair.
    for i in range(n - 1):
        hits = np.nonzero(rng.random(n - i - 1) < p)[0]
        for j in hits:
            graph.add_edge(i, i + 1 + int(j))
    return graph


def build_scale_free_graph(
    n: int,
    edges_per_node: int,
    rng: Optional[np.random.Generator] = None,
) -> ContactGraph:
    """Preferential-attachment graph grown from a clique.

    Nodes 0..core-1 (core = min(edges_per_node + 1, n)) form a clique.
    Each later node i samples targets from a pool in which every earlier
    node j appears max(1, degree(j)) times: the pool is shuffled and
    scanned, accepting distinct targets until edges_per_node are chosen
    or the pool runs out. Early, well-connected nodes keep winning and
    grow into hubs.

    Args:
        n: Population size (>= 1).
        edges_per_node: Edges added by each new node (>= 0).
        rng: Random generator (fresh entropy if None).

    Returns:
        ContactGraph with n nodes.

    Raises:
        InvalidParameterError: If n < 1 or edges_per_node < 0.
    """
    if edges_per_node < 0:
        raise InvalidParameterError(
            f"edges_per_node must be >= 0, got {edges_per_node}"
        )
    graph = ContactGraph(n)
    rng = _default_rng(rng)

    core = min(edges_per_node + 1, n)
    for a in range(core):
        for b in range(a + 1, core):
            graph.add_edge(a, b)

    degrees = np.zeros(n, dtype=np.int64)
    degrees[:core] = core - 1
    for i in range(core, n):
        pool = np.repeat(np.arange(i), np.maximum(1, degrees[:i]))
        rng.shuffle(pool)
        # First occurrence of each id in scan order = accepted targets.
        _, first_seen = np.unique(pool, return_index=True)
        targets = pool[np.sort(first_seen)][:edges_per_node]
        for t in targets:
            graph.add_edge(i, int(t))
        degrees[targets] += 1
        degrees[i] = len(targets)
    return graph


def build_sparse_random_graph(
    n: int,
    n_contacts: int,
    rng: Optional[np.random.Generator] = None,
) -> ContactGraph:
    """Draw ``n_contacts`` ordered pairs uniformly; connect the distinct ones.

    Pairs with a == b are skipped and repeated pairs collapse, so the
    graph has at most n_contacts edges.

    Raises:
        InvalidParameterError: If n < 1 or n_contacts < 0.
    """
    if n_contacts < 0:
        raise InvalidParameterError(f"n_contacts must be >= 0, got {n_contacts}")
    graph = ContactGraph(n)
    rng = _default_rng(rng)
    pairs = rng.integers(0, n, size=(n_contacts, 2))
    for a, b in pairs:
        graph.add_edge(int(a), int(b))
    return graph


def build_graph_from_config(
    cfg: NetworkSection,
    rng: Optional[np.random.Generator] = None,
) -> ContactGraph:
    """Build the network described by a NetworkSection.

    Raises:
        ValueError: If cfg.model is not a known generator.
    """
    if cfg.model == "scale_free":
        return build_scale_free_graph(cfg.n_animals, cfg.edges_per_node, rng)
    if cfg.model == "random":
        return build_random_graph(cfg.n_animals, cfg.edge_prob, rng)
    if cfg.model == "sparse_random":
        return build_sparse_random_graph(cfg.n_animals, cfg.n_contacts, rng)
    raise ValueError(
        f"network.model must be one of {set(NETWORK_MODELS)}, got '{cfg.model}'"
    )

