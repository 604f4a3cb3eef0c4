"""Static figures for vaccination experiments.

Every function:
  - Accepts core outputs (ComparisonReport, SimulationResult list,
    SpreadTrace, ContactGraph) and never mutates them
  - Returns a matplotlib Figure
  - Saves a PNG when ``save_path`` is given (the figure is then closed)
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING, Union

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np

from vaxnet.viz.style import (
    EDGE_COLOR,
    STATE_COLORS,
    TEXT_COLOR,
    policy_color,
    save_figure,
    themed_figure,
)

if TYPE_CHECKING:
    from vaxnet.experiment import ComparisonReport
    from vaxnet.graph import ContactGraph
    from vaxnet.spread import SpreadTrace
    from vaxnet.types import SimulationResult

PathLike = Union[str, Path]


def _finish(fig, save_path: Optional[PathLike]):
    if save_path is not None:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# POLICY COMPARISON
# ═══════════════════════════════════════════════════════════════════════

def plot_policy_comparison(
    report: 'ComparisonReport',
    save_path: Optional[PathLike] = None,
) -> plt.Figure:
    """Mean final infections per policy, with the winner outlined."""
    fig, ax = themed_figure()
    names = report.policies
    means = [report.summaries[p].mean_final_infected for p in names]
    bars = ax.bar(names, means, color=[policy_color(p) for p in names],
                  edgecolor='none')
    for bar, name in zip(bars, names):
        if name == report.best_policy:
            bar.set_edgecolor(TEXT_COLOR)
            bar.set_linewidth(2.0)
        ax.annotate(f"{bar.get_height():.1f}",
                    (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                    ha='center', va='bottom', color=TEXT_COLOR, fontsize=10)
    ax.set_ylabel('Mean animals infected')
    title = f'Vaccination policies (best: {report.best_policy})'
    if report.improvement is not None:
        title += f', {100.0 * report.improvement:.1f}% below Random'
    ax.set_title(title)
    return _finish(fig, save_path)


def plot_trial_distribution(
    results: Sequence['SimulationResult'],
    save_path: Optional[PathLike] = None,
) -> plt.Figure:
    """Box plot of final infections across trials, one box per policy."""
    by_policy: Dict[str, List[int]] = {}
    for r in results:
        by_policy.setdefault(r.policy, []).append(r.final_infected)

    fig, ax = themed_figure()
    names = list(by_policy)
    if names:
        box = ax.boxplot([by_policy[n] for n in names], patch_artist=True)
        ax.set_xticks(range(1, len(names) + 1))
        ax.set_xticklabels(names)
        for patch, name in zip(box['boxes'], names):
            patch.set_facecolor(policy_color(name))
            patch.set_alpha(0.8)
        for median in box['medians']:
            median.set_color(TEXT_COLOR)
    ax.set_ylabel('Animals infected per trial')
    ax.set_title('Trial-to-trial spread')
    return _finish(fig, save_path)


# ═══════════════════════════════════════════════════════════════════════
# SPREAD & NETWORK
# ═══════════════════════════════════════════════════════════════════════

def plot_infection_waves(
    trace: 'SpreadTrace',
    population: Optional[int] = None,
    save_path: Optional[PathLike] = None,
) -> plt.Figure:
    """New infections per wave (bars) and cumulative infections (line)."""
    fig, ax = themed_figure()
    sizes = trace.wave_sizes()
    waves = np.arange(len(sizes))
    ax.bar(waves, sizes, color=STATE_COLORS['infected'], alpha=0.7,
           label='new infections')
    ax.plot(waves, trace.cumulative_infected(), color=TEXT_COLOR,
            marker='o', markersize=4, label='cumulative')
    if population is not None:
        ax.axhline(population, color=STATE_COLORS['susceptible'],
                   linestyle='--', linewidth=1, label='population')
    ax.set_xlabel('Wave')
    ax.set_ylabel('Animals')
    ax.set_title(f'Infection waves ({trace.outcome.final_infected} infected)')
    ax.legend(facecolor='none', labelcolor=TEXT_COLOR, frameon=False)
    return _finish(fig, save_path)


def plot_degree_distribution(
    graph: 'ContactGraph',
    save_path: Optional[PathLike] = None,
) -> plt.Figure:
    """Degree frequencies on log-log axes; hubs sit in the long tail."""
    fig, ax = themed_figure()
    counts = np.bincount(graph.degrees())
    k = np.nonzero(counts)[0]
    k = k[k > 0]
    ax.scatter(k, counts[k], color=STATE_COLORS['susceptible'], s=18)
    if len(k) > 0:
        ax.set_xscale('log')
        ax.set_yscale('log')
    ax.axvline(graph.average_degree(), color=STATE_COLORS['vaccinated'],
               linestyle='--', linewidth=1)
    ax.set_xlabel('Degree')
    ax.set_ylabel('Animals')
    ax.set_title(f'Degree distribution (max {graph.max_degree()}, '
                 f'mean {graph.average_degree():.1f})')
    return _finish(fig, save_path)


def circular_layout(n: int) -> np.ndarray:
    """Positions of n nodes evenly spaced on the unit circle. Shape: (n, 2)."""
    theta = 2.0 * np.pi * np.arange(n) / max(n, 1)
    return np.column_stack([np.cos(theta), np.sin(theta)])


def plot_contact_network(
    graph: 'ContactGraph',
    positions: Optional[np.ndarray] = None,
    save_path: Optional[PathLike] = None,
) -> plt.Figure:
    """Contacts and animal states at the moment of the call.

    Node size grows with degree; colour shows susceptible / infected /
    vaccinated (and vaccinated-after-infection).
    """
    pos = circular_layout(graph.population) if positions is None else positions
    fig, ax = themed_figure(figsize=(7, 7))
    for a, b in graph.edges():
        ax.plot(pos[[a, b], 0], pos[[a, b], 1], color=EDGE_COLOR,
                linewidth=0.4, alpha=0.5, zorder=1)

    infected = graph.infected
    vaccinated = graph.vaccinated
    colors = np.full(graph.population, STATE_COLORS['susceptible'], dtype=object)
    colors[infected] = STATE_COLORS['infected']
    colors[vaccinated] = STATE_COLORS['vaccinated']
    colors[infected & vaccinated] = STATE_COLORS['both']
    sizes = 12 + 6 * graph.degrees()
    ax.scatter(pos[:, 0], pos[:, 1], c=list(colors), s=sizes, zorder=2,
               edgecolors='none')
    ax.set_aspect('equal')
    ax.set_xticks([])
    ax.set_yticks([])
    ax.grid(False)
    ax.set_title(f'{graph.population} animals: {graph.infected_count()} infected, '
                 f'{graph.vaccinated_count()} vaccinated')
    return _finish(fig, save_path)
