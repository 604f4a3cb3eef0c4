"""Core data types for VaxNet.

This module holds the types shared by every other module:
  - Policy: closed enumeration of vaccination strategies
  - NodeView: read-only snapshot of one animal in a ContactGraph
  - SimulationResult: per-trial outcome record
  - PolicySummary: per-policy aggregate over trials
  - InvalidParameterError: construction-time parameter failures

No other module defines result fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List


class InvalidParameterError(ValueError):
    """A parameter makes the requested graph or experiment meaningless.

    Raised for an empty population, probabilities outside [0, 1],
    negative attachment counts and non-positive trial counts. Counts that
    merely exceed the population are clamped instead.
    """


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class Policy(str, Enum):
    """Vaccination strategies.

    RANDOM          uniform sample of the whole population
    HIGH_DEGREE     most-connected animals first (hub targeting)
    HIGH_RISK_AREA  contacts of currently infected animals (ring
                    vaccination), topped up at random
    """
    RANDOM = "Random"
    HIGH_DEGREE = "HighDegree"
    HIGH_RISK_AREA = "HighRiskArea"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: "str | Policy") -> "Policy":
        """Resolve a policy from its display name.

        Args:
            name: "Random", "HighDegree", "HighRiskArea" or a Policy.

        Returns:
            The matching Policy member.

        Raises:
            ValueError: If the name is not a known policy.
        """
        if isinstance(name, cls):
            return name
        for member in cls:
            if member.value == name:
                return member
        valid = [m.value for m in cls]
        raise ValueError(f"Unknown policy '{name}'; expected one of {valid}")


ALL_POLICIES = (Policy.RANDOM, Policy.HIGH_DEGREE, Policy.HIGH_RISK_AREA)


def parse_policies(names: Iterable["str | Policy"]) -> List[Policy]:
    """Parse a sequence of policy names, dropping duplicates in order."""
    out: List[Policy] = []
    for name in names:
        policy = Policy.parse(name)
        if policy not in out:
            out.append(policy)
    return out


# ═══════════════════════════════════════════════════════════════════════
# NODE SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NodeView:
    """One animal as seen by read-only consumers (reports, plots)."""
    id: int
    infected: bool
    vaccinated: bool
    neighbors: FrozenSet[int]

    @property
    def degree(self) -> int:
        return len(self.neighbors)


# ═══════════════════════════════════════════════════════════════════════
# RESULT RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a single trial.

    Under the SI model nobody recovers, so final_infected always equals
    ever_infected; both are kept because the export schema carries both.
    """
    policy: str
    trial: int              # 1-based run number
    ever_infected: int
    final_infected: int
    vaccinated: int
    population: int

    @property
    def infection_rate(self) -> float:
        """Percent of the population infected at trial end."""
        if self.population <= 0:
            return 0.0
        return 100.0 * self.final_infected / self.population


@dataclass(frozen=True)
class PolicySummary:
    """Arithmetic means of SimulationResult fields over one policy's trials."""
    policy: str
    n_trials: int = 0
    mean_ever_infected: float = 0.0
    mean_final_infected: float = 0.0
    mean_vaccinated: float = 0.0
    mean_population: float = 0.0
    mean_infection_rate: float = 0.0

    @classmethod
    def from_results(cls, policy: str,
                     results: Iterable[SimulationResult]) -> "PolicySummary":
        """Aggregate the results that belong to ``policy``."""
        rows = [r for r in results if r.policy == policy]
        n = len(rows)
        if n == 0:
            return cls(policy=policy)
        return cls(
            policy=policy,
            n_trials=n,
            mean_ever_infected=sum(r.ever_infected for r in rows) / n,
            mean_final_infected=sum(r.final_infected for r in rows) / n,
            mean_vaccinated=sum(r.vaccinated for r in rows) / n,
            mean_population=sum(r.population for r in rows) / n,
            mean_infection_rate=sum(r.infection_rate for r in rows) / n,
        )
