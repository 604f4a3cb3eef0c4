"""Shared look for VaxNet figures: dark background, one colour per policy
and per animal state.
"""

import matplotlib as mpl
mpl.use('Agg')

import matplotlib.pyplot as plt
import numpy as np

BG_COLOR = '#1a1a2e'
PANEL_COLOR = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

POLICY_COLORS = {
    'Random':       '#95a5a6',   # grey baseline
    'HighDegree':   '#e94560',   # crimson
    'HighRiskArea': '#48c9b0',   # teal
}

STATE_COLORS = {
    'susceptible': '#3498db',
    'infected':    '#e74c3c',
    'vaccinated':  '#2ecc71',
    'both':        '#f39c12',   # vaccinated after being seeded
}

EDGE_COLOR = '#5d6d7e'


def policy_color(policy: str) -> str:
    return POLICY_COLORS.get(policy, '#f1c40f')


def apply_theme(fig=None, ax=None):
    """Dark theme for a Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(BG_COLOR)
    if ax is not None:
        ax.set_facecolor(PANEL_COLOR)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)
        ax.grid(True, color=GRID_COLOR, alpha=0.3, linewidth=0.5)


def themed_figure(nrows=1, ncols=1, figsize=None, **kwargs):
    """plt.subplots() with the theme applied to every Axes."""
    if figsize is None:
        figsize = (9, 5.5) if (nrows == 1 and ncols == 1) else (6 * ncols, 4.5 * nrows)
    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, **kwargs)
    apply_theme(fig=fig)
    for ax in np.atleast_1d(axes).flat:
        apply_theme(ax=ax)
    return fig, axes


def save_figure(fig, save_path, dpi=150):
    """Save as PNG on the figure's own background and close it."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)
