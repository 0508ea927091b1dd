"""Plot two envelopes before and after applying the estimated offset."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import matplotlib.pyplot as plt
import numpy as np

from ..types import OffsetResult

# Stacked raw/aligned panels; only active while the figure is built.
ALIGNMENT_STYLE = {
    "figure.figsize": (10, 6),
    "axes.grid": True,
    "grid.linestyle": ":",
    "lines.linewidth": 0.9,
    "legend.fontsize": "small",
}


def _time_axis(n: int, factor: int, sample_rate: float, shift: float = 0.0) -> np.ndarray:
    return np.arange(n, dtype=float) * factor / sample_rate + shift


def plot_alignment(
    e1: np.ndarray,
    e2: np.ndarray,
    result: OffsetResult,
    factor: int,
    sample_rate: float,
    *,
    labels: tuple[str, str] = ("signal 1", "signal 2"),
    title: str = "Alignment",
    style: Mapping[str, object] | None = None,
    save: str | Path | None = None,
    show: bool = False,
) -> plt.Figure:
    """Draw ``e1`` and ``e2`` on a seconds axis, raw and shifted.

    The upper panel shows the envelopes as recorded, the lower one moves
    ``e2`` back by ``result.offset_seconds`` so matching events line up.
    ``style`` entries override :data:`ALIGNMENT_STYLE` for this figure only;
    global rcParams are left untouched.  The figure is written to ``save``
    when given and displayed when ``show`` is set.
    """
    rc = dict(ALIGNMENT_STYLE)
    if style:
        rc.update(style)

    with plt.rc_context(rc):
        fig, (ax1, ax2) = plt.subplots(2, 1, sharex=True)

        t1 = _time_axis(e1.size, factor, sample_rate)
        ax1.plot(t1, e1, label=labels[0])
        ax1.plot(_time_axis(e2.size, factor, sample_rate), e2, label=labels[1])
        ax1.set_ylabel("Envelope")
        ax1.set_title(title)
        ax1.legend(loc="upper right")

        ax2.plot(t1, e1, label=labels[0])
        ax2.plot(
            _time_axis(e2.size, factor, sample_rate, -result.offset_seconds),
            e2,
            label=f"{labels[1]} ({result.offset_seconds:+.2f}s)",
        )
        # Mark where the shifted track starts on the reference timeline.
        ax2.axvline(-result.offset_seconds, color="grey", linestyle="--", linewidth=0.8)
        ax2.set_xlabel("Time [s]")
        ax2.set_ylabel("Envelope")
        ax2.legend(loc="upper right")

        if save:
            fig.savefig(save, bbox_inches="tight")
    if show:
        plt.show()
    return fig
