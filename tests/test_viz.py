"""
tests/test_viz.py
=================

Smoke tests for the matplotlib charts in visadesk.viz (Agg backend).
"""

import matplotlib

matplotlib.use("Agg")

from visadesk.models import Case, CustodyStatus  # noqa: E402
from visadesk.viz import custody_summary, stage_summary  # noqa: E402


def _cases():
    done = Case(3, "C", progress=10)
    done.custody.status = CustodyStatus.RECEIVED
    return [Case(1, "A"), Case(2, "B", progress=4), done, Case(4, "D", cancelled=True)]


def test_stage_summary_writes_png(tmp_path):
    out = stage_summary(_cases(), out_path=tmp_path / "charts" / "stages.png")
    assert out.exists()
    assert out.read_bytes()[:4] == b"\x89PNG"


def test_custody_summary_writes_png(tmp_path):
    out = custody_summary(_cases(), out_path=tmp_path / "custody.png")
    assert out.exists()
    assert out.stat().st_size > 0
