"""Configuration system for VaxNet.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → command-line / sweep overrides

Sections map 1:1 to YAML top-level keys:
  network, outbreak, vaccination, experiment, output
Unknown keys are ignored; every loaded config is validated.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from vaxnet.types import ALL_POLICIES, Policy

NETWORK_MODELS = ("scale_free", "random", "sparse_random")


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class NetworkSection:
    """Contact network generator and its parameters."""
    model: str = "scale_free"     # 'scale_free', 'random' or 'sparse_random'
    n_animals: int = 100
    edges_per_node: int = 3       # scale_free: edges added per new animal
    edge_prob: float = 0.05       # random: per-pair contact probability
    n_contacts: int = 200         # sparse_random: contact pairs drawn
    seed: Optional[int] = None    # None = network stream of experiment.seed


@dataclass
class OutbreakSection:
    """Initial infection and transmission."""
    initial_infected: int = 3
    infection_prob: float = 0.40  # per-contact transmission probability


@dataclass
class VaccinationSection:
    """Vaccine supply and the policies to compare."""
    quota: int = 20
    policies: List[str] = field(
        default_factory=lambda: [p.value for p in ALL_POLICIES]
    )


@dataclass
class ExperimentSection:
    """Trial repetition and seeding."""
    n_trials: int = 20
    seed: Optional[int] = 42      # None = fresh entropy, logged for replay
    parallel_workers: int = 1


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    csv_name: str = "vaccination_results.csv"
    save_plots: bool = False


@dataclass
class ExperimentConfig:
    """Complete experiment configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    network: NetworkSection = field(default_factory=NetworkSection)
    outbreak: OutbreakSection = field(default_factory=OutbreakSection)
    vaccination: VaccinationSection = field(default_factory=VaccinationSection)
    experiment: ExperimentSection = field(default_factory=ExperimentSection)
    output: OutputSection = field(default_factory=OutputSection)

    @property
    def csv_path(self) -> Path:
        return Path(self.output.directory) / self.output.csv_name

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


_SECTION_MAP = {
    'network': NetworkSection,
    'outbreak': OutbreakSection,
    'vaccination': VaccinationSection,
    'experiment': ExperimentSection,
    'output': OutputSection,
}


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> ExperimentConfig:
    """Convert a merged YAML dict to an ExperimentConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return ExperimentConfig(**sections)


def validate_config(config: ExperimentConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Counts that exceed the population (quota, initial infections) are
    legal and clamped at run time; only meaningless values fail here.
    """
    net = config.network
    if net.model not in NETWORK_MODELS:
        raise ValueError(
            f"network.model must be one of {set(NETWORK_MODELS)}, "
            f"got '{net.model}'"
        )
    if net.n_animals < 1:
        raise ValueError(f"network.n_animals must be >= 1, got {net.n_animals}")
    if net.edges_per_node < 0:
        raise ValueError(
            f"network.edges_per_node must be >= 0, got {net.edges_per_node}"
        )
    if not 0.0 <= net.edge_prob <= 1.0:
        raise ValueError(f"network.edge_prob must be in [0, 1], got {net.edge_prob}")
    if net.n_contacts < 0:
        raise ValueError(f"network.n_contacts must be >= 0, got {net.n_contacts}")
    if net.seed is not None and net.seed < 0:
        raise ValueError("network.seed must be non-negative")

    if not 0.0 <= config.outbreak.infection_prob <= 1.0:
        raise ValueError(
            f"outbreak.infection_prob must be in [0, 1], "
            f"got {config.outbreak.infection_prob}"
        )

    policies = config.vaccination.policies
    if not policies:
        raise ValueError("vaccination.policies must name at least one policy")
    valid = {p.value for p in Policy}
    for name in policies:
        if name not in valid:
            raise ValueError(
                f"vaccination.policies entries must be one of {valid}, got '{name}'"
            )

    exp = config.experiment
    if exp.n_trials < 1:
        raise ValueError(f"experiment.n_trials must be >= 1, got {exp.n_trials}")
    if exp.seed is not None and exp.seed < 0:
        raise ValueError("experiment.seed must be non-negative")
    if exp.parallel_workers < 1:
        raise ValueError(
            f"experiment.parallel_workers must be >= 1, got {exp.parallel_workers}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> ExperimentConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML (skipped if missing).
        overrides: Optional dict of overrides, e.g. from the command line.

    Returns:
        Validated ExperimentConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def config_from_dict(data: Dict) -> ExperimentConfig:
    """Build and validate a config from an in-memory dict (defaults fill gaps)."""
    config = _yaml_to_config(data)
    validate_config(config)
    return config


def save_config(config: ExperimentConfig, path: Union[str, Path]) -> None:
    """Write a config as YAML (round-trips through load_config)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False,
                       sort_keys=False)


def default_config() -> ExperimentConfig:
    """Return an ExperimentConfig with all default values."""
    config = ExperimentConfig()
    validate_config(config)
    return config
