"""VaxNet visualization library.

Modules:
  - style: Dark theme colours (per policy, per animal state) and helpers
  - plots: Policy comparison, trial spread, infection waves, degree
           distribution and network snapshots
"""

from vaxnet.viz.style import (  # noqa: F401
    POLICY_COLORS,
    STATE_COLORS,
    apply_theme,
    save_figure,
    themed_figure,
)

from vaxnet.viz.plots import (  # noqa: F401
    circular_layout,
    plot_contact_network,
    plot_degree_distribution,
    plot_infection_waves,
    plot_policy_comparison,
    plot_trial_distribution,
)
