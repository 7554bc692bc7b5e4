"""
steward.viz
===========

Minimal plotting helpers for the dashboard overview and README
screenshots.  Imported explicitly; ``import steward`` does not pull in
*matplotlib*.

Outputs are PNGs written to :data:`steward.settings.CHART_DIR` (created
on first use).  Filenames can be overridden via keyword argument.
"""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

import matplotlib.pyplot as plt

from .models import Entity, EntityKind
from .report import segment_counts, status_counts
from .settings import CHART_DIR


def _bar_chart(counts: Dict[str, int], title: str, ylabel: str, out_path: Path, color: str) -> Path:
    xs = list(counts)
    ys = [counts[x] for x in xs]

    plt.figure()
    bars = plt.bar(xs, ys, color=color, edgecolor="#333")
    # add counts on top of each bar
    for rect, cnt in zip(bars, ys):
        plt.text(rect.get_x() + rect.get_width() / 2,
                 cnt + 0.05,
                 str(cnt),
                 ha="center", va="bottom",
                 fontsize=8, color="#333")
    plt.grid(axis="y", linestyle=":", alpha=0.3)
    plt.title(title)
    plt.ylabel(ylabel)
    plt.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=120, bbox_inches="tight")
    plt.close()
    return out_path


# ---------------------------------------------------------------------
# Plot 1 – bar chart of entity counts by status for one kind
# ---------------------------------------------------------------------
def status_summary(
    entities: Iterable[Entity],
    kind: EntityKind,
    out_path: Optional[str | os.PathLike] = None,
) -> Path:
    """
    Generate a bar chart of how many entities of *kind* are in each status.

    Parameters
    ----------
    entities : iterable of Entity
        The population to chart; other kinds are ignored.
    kind : EntityKind
        Which status set to chart.
    out_path : str or Path, optional
        Where to save the PNG; defaults to ``<CHART_DIR>/<kind>_status.png``.

    Returns
    -------
    pathlib.Path
        Final image path for convenience.
    """
    counts = status_counts(entities, kind)
    out = Path(out_path) if out_path else CHART_DIR / f"{kind.value}_status.png"
    title = f"{kind.value.replace('_', ' ').title()} Status Snapshot"
    return _bar_chart(counts, title, "Entity Count", out, "#2b9348")


# ---------------------------------------------------------------------
# Plot 2 – bar chart of worklist sizes per named segment
# ---------------------------------------------------------------------
def segment_summary(
    entities: Iterable[Entity],
    as_of: Optional[datetime] = None,
    out_path: Optional[str | os.PathLike] = None,
) -> Path:
    """Bar chart of how many entities fall in each named segment."""
    counts = segment_counts(entities, as_of)
    out = Path(out_path) if out_path else CHART_DIR / "segments.png"
    return _bar_chart(counts, "Segments", "Entity Count", out, "#d62828")


# ---------------------------------------------------------------------
# CLI demo:  python -m steward.viz  [--entities data.json]
# ---------------------------------------------------------------------
if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser(
        description="Generate per-kind status charts and a segment chart.")
    parser.add_argument(
        "--entities",
        help="Path to a JSON list of entity records. If omitted, the sample data is used.",
    )
    args = parser.parse_args()

    if args.entities:
        p = Path(args.entities)
        if not p.exists():
            raise SystemExit(f"⛔  File not found: {p!s}")
        try:
            population = [Entity.from_record(rec) for rec in json.loads(p.read_text())]
        except ValueError as exc:
            raise SystemExit(f"⛔ invalid entity record: {exc}")
    else:
        from seed_registry import sample_entities
        population = sample_entities()

    for k in EntityKind:
        print(f"{k} chart saved to {status_summary(population, k)}")
    print(f"segment chart saved to {segment_summary(population)}")
