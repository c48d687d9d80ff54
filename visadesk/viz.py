"""
visadesk.viz
============

Plotting helpers for the back-office dashboard and reports.  Imports
*matplotlib*, so keep it out of the hot import path of `visadesk`.

Outputs are PNGs written to the *images/* folder (created on first use).
Filenames can be overridden via keyword argument.
"""
from __future__ import annotations

import os
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional

import matplotlib.pyplot as plt

from .models import TOTAL_STAGES, Case, CustodyStatus
from .stages import STAGES

_IMG_DIR = Path("images")


def _target(out_path: Optional[str | os.PathLike], default_name: str) -> Path:
    path = Path(out_path) if out_path is not None else _IMG_DIR / default_name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _bar(labels, counts, color: str, title: str, ylabel: str, out_path: Path) -> Path:
    plt.figure(figsize=(max(6, len(labels) * 0.8), 4))
    bars = plt.bar(labels, counts, color=color, edgecolor="#333")
    for rect, cnt in zip(bars, counts):
        plt.text(rect.get_x() + rect.get_width() / 2,
                 cnt + 0.05,
                 str(cnt),
                 ha="center", va="bottom",
                 fontsize=8, color="#333")
    plt.grid(axis="y", linestyle=":", alpha=0.3)
    plt.xticks(rotation=30, ha="right")
    plt.title(title)
    plt.ylabel(ylabel)
    plt.tight_layout()
    plt.savefig(out_path, dpi=120, bbox_inches="tight")
    plt.close()
    return out_path


# ---------------------------------------------------------------------
# Plot 1 – bar chart of active cases waiting at each stage
# ---------------------------------------------------------------------
def stage_summary(
    cases: Iterable[Case],
    out_path: str | os.PathLike | None = None,
) -> Path:
    """
    Generate a bar chart of how many active cases wait at each stage.

    Cancelled and on-hold cases are skipped; finished cases are counted
    under a final "Done" bar.

    Parameters
    ----------
    cases : iterable of Case
        Typically ``gateway.list_cases()``.
    out_path : str or Path, default='images/stage_snapshot.png'
        Where to save the PNG.

    Returns
    -------
    pathlib.Path
        Final image path for convenience.
    """
    counts = Counter(c.next_stage for c in cases if c.is_active)
    labels = [s.title for s in STAGES] + ["Done"]
    ys = [counts.get(n, 0) for n in range(1, TOTAL_STAGES + 1)] + [counts.get(None, 0)]
    return _bar(labels, ys, "#2b9348", "Stage Snapshot", "Case Count",
                _target(out_path, "stage_snapshot.png"))


# ---------------------------------------------------------------------
# Plot 2 – Emirates-ID card custody
# ---------------------------------------------------------------------
def custody_summary(
    cases: Iterable[Case],
    min_progress: int = 7,
    out_path: str | os.PathLike | None = None,
) -> Path:
    """Bar chart of eligible, non-cancelled cases by card custody status."""
    counts = Counter(
        c.custody.status for c in cases
        if not c.cancelled and c.progress >= min_progress
    )
    labels = [s.name.title() for s in CustodyStatus]
    ys = [counts.get(s, 0) for s in CustodyStatus]
    return _bar(labels, ys, "#8d99ae", "Card Custody", "Case Count",
                _target(out_path, "custody_snapshot.png"))
