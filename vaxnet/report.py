"""Result export and console tables.

CSV layout (one file, two sections separated by a blank line):

    Strategy,AvgEverInfected,AvgFinalInfected,AvgVaccinated,InfRate%
    <one row per policy>

    Strategy,Run,EverInfected,FinalInfected,Vaccinated,InfRate%
    <one row per trial>

Averages and rates are written with two decimals, counts as integers,
lines end with '\\n'.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from vaxnet.types import PolicySummary, SimulationResult

SUMMARY_HEADER = ["Strategy", "AvgEverInfected", "AvgFinalInfected",
                  "AvgVaccinated", "InfRate%"]
TRIAL_HEADER = ["Strategy", "Run", "EverInfected", "FinalInfected",
                "Vaccinated", "InfRate%"]


def _fmt(x: float) -> str:
    return f"{x:.2f}"


def format_results_csv(summaries: Dict[str, PolicySummary],
                       results: Iterable[SimulationResult]) -> str:
    """Render the two-section results table as CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(SUMMARY_HEADER)
    for s in summaries.values():
        writer.writerow([
            s.policy,
            _fmt(s.mean_ever_infected),
            _fmt(s.mean_final_infected),
            _fmt(s.mean_vaccinated),
            _fmt(s.mean_infection_rate),
        ])
    writer.writerow([])
    writer.writerow(TRIAL_HEADER)
    for r in results:
        writer.writerow([
            r.policy,
            r.trial,
            r.ever_infected,
            r.final_infected,
            r.vaccinated,
            _fmt(r.infection_rate),
        ])
    return buf.getvalue()


def write_results_csv(path: Union[str, Path],
                      summaries: Dict[str, PolicySummary],
                      results: Iterable[SimulationResult]) -> Path:
    """Write the results table, creating parent directories.

    Returns:
        The path written.

    Raises:
        OSError: If the file can't be written.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", newline="") as f:
        f.write(format_results_csv(summaries, results))
    return p


def read_trial_rows(path: Union[str, Path]) -> List[SimulationResult]:
    """Parse the per-trial section of a results CSV.

    The file stores no population column; it is estimated from the
    rounded infection rate when that is non-zero, else left at 0.
    """
    with open(path, newline="") as f:
        rows = list(csv.reader(f))

    try:
        start = rows.index(TRIAL_HEADER) + 1
    except ValueError:
        raise ValueError(f"No per-trial section found in {path}") from None

    results = []
    for row in rows[start:]:
        if not row:
            continue
        policy, run, ever, final, vaccinated, rate = row
        final_i = int(final)
        rate_f = float(rate)
        population = round(100.0 * final_i / rate_f) if rate_f > 0 else 0
        results.append(SimulationResult(
            policy=policy,
            trial=int(run),
            ever_infected=int(ever),
            final_infected=final_i,
            vaccinated=int(vaccinated),
            population=int(population),
        ))
    return results


# ═══════════════════════════════════════════════════════════════════════
# CONSOLE TABLES
# ═══════════════════════════════════════════════════════════════════════

def format_trial_log(results: Iterable[SimulationResult]) -> str:
    """Per-run lines grouped under a header for each policy."""
    lines: List[str] = []
    current: Optional[str] = None
    for r in results:
        if r.policy != current:
            current = r.policy
            lines.append(f"\n=== {current} Strategy Runs ===")
        lines.append(
            f"Run {r.trial} -> EverInfected={r.ever_infected}, "
            f"FinalInfected={r.final_infected}, Vaccinated={r.vaccinated}"
        )
    return "\n".join(lines)


def format_summary(summaries: Dict[str, PolicySummary],
                   best_policy: Optional[str] = None,
                   improvement: Optional[float] = None) -> str:
    """Averages table plus the winning policy."""
    lines = [
        f"\n{'='*60}",
        " RESULTS (averages over runs)",
        f"{'='*60}",
        f"{'Strategy':<14} {'EverInf':>9} {'FinalInf':>9} {'Vacc':>8} {'InfRate%':>9}",
        f"{'-'*14} {'-'*9} {'-'*9} {'-'*8} {'-'*9}",
    ]
    for s in summaries.values():
        lines.append(
            f"{s.policy:<14} {s.mean_ever_infected:>9.2f} "
            f"{s.mean_final_infected:>9.2f} {s.mean_vaccinated:>8.2f} "
            f"{s.mean_infection_rate:>9.2f}"
        )
    lines.append(f"{'-'*14} {'-'*9} {'-'*9} {'-'*8} {'-'*9}")
    if best_policy is not None:
        lines.append(f"Best policy: {best_policy}")
    if improvement is not None:
        lines.append(f"Improvement over Random: {100.0 * improvement:.1f}%")
    lines.append(f"{'='*60}\n")
    return "\n".join(lines)
