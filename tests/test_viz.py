"""
tests/test_viz.py
=================

Smoke tests for the matplotlib chart helpers in steward.viz.

Run:  pytest -q
"""

import matplotlib

matplotlib.use("Agg")

from steward.models import EntityKind  # noqa: E402
from steward.viz import segment_summary, status_summary  # noqa: E402
from seed_registry import sample_entities  # noqa: E402


def test_status_chart_written(tmp_path, now):
    out = status_summary(sample_entities(now), EntityKind.CONTENT_ITEM, tmp_path / "charts" / "content.png")
    assert out == tmp_path / "charts" / "content.png"
    assert out.exists() and out.stat().st_size > 0


def test_segment_chart_written(tmp_path, now):
    out = segment_summary(sample_entities(now), now, out_path=str(tmp_path / "segments.png"))
    assert out.exists()


def test_default_path_uses_chart_dir(tmp_path, monkeypatch, now):
    import steward.viz as viz

    monkeypatch.setattr(viz, "CHART_DIR", tmp_path)
    out = status_summary(sample_entities(now), EntityKind.DONOR)
    assert out == tmp_path / "donor_status.png"
    assert out.exists()
