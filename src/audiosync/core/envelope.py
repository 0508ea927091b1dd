"""Block averaging of absolute amplitude into a coarse energy envelope."""

from __future__ import annotations

from typing import Sequence

import numpy as np

DEFAULT_DOWNSAMPLE_FACTOR = 100


def downsample(samples: Sequence[float] | np.ndarray, factor: int = DEFAULT_DOWNSAMPLE_FACTOR) -> np.ndarray:
    """Return the envelope of ``samples`` using blocks of ``factor`` samples.

    Element ``i`` of the result is the mean absolute value of
    ``samples[i * factor : (i + 1) * factor]``.  Trailing samples that do not
    fill a whole block are dropped, so the envelope has
    ``len(samples) // factor`` elements.  An empty input yields an empty
    envelope.  ``ValueError`` is raised if ``factor`` is smaller than one.
    """

    if factor < 1:
        raise ValueError("factor must be at least 1")
    data = np.abs(np.asarray(samples, dtype=float).reshape(-1))
    n_blocks = data.size // factor
    if n_blocks == 0:
        return np.zeros(0, dtype=float)
    blocks = data[: n_blocks * factor].reshape(n_blocks, factor)
    return blocks.sum(axis=1) / factor
