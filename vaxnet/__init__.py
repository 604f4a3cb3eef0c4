"""VaxNet: vaccination policy experiments on animal contact networks.

A stochastic model for comparing vaccination strategies on a synthetic
social-contact network of animals:
  - Scale-free (preferential attachment) and uniform-random contact graphs
  - Random, high-degree and ring ("high-risk area") vaccination policies
  - Single-wave SI contagion via probabilistic breadth-first spread
  - Multi-trial experiments with per-trial seeded RNG streams
"""

__version__ = "0.1.0"
