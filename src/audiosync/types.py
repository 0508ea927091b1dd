"""Common type helpers for audiosync.

This module defines the lightweight containers exchanged between the
decoding layer, the offset estimator and its callers.  All of them are
frozen so that a single estimation call can never alter its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True, eq=False)
class Signal:
    """One channel of decoded audio at a fixed sample rate."""

    samples: np.ndarray
    sample_rate: float

    def __post_init__(self) -> None:
        if not np.isfinite(self.sample_rate) or self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive and finite")
        data = np.array(self.samples, dtype=float).reshape(-1)
        data.setflags(write=False)
        object.__setattr__(self, "samples", data)

    def __len__(self) -> int:
        return int(self.samples.size)

    @property
    def duration(self) -> float:
        """Return the signal length in seconds."""

        return len(self) / float(self.sample_rate)

    @classmethod
    def from_sequence(cls, samples: Sequence[float], sample_rate: float) -> "Signal":
        return cls(np.asarray(samples, dtype=float), sample_rate)


@dataclass(frozen=True)
class SearchParameters:
    """Bounds of the candidate offset scan, expressed in seconds."""

    max_offset_seconds: float = 30.0
    step_seconds: float = 0.01

    def __post_init__(self) -> None:
        if not np.isfinite(self.max_offset_seconds) or self.max_offset_seconds <= 0:
            raise ValueError("max_offset_seconds must be positive and finite")
        if not np.isfinite(self.step_seconds) or self.step_seconds <= 0:
            raise ValueError("step_seconds must be positive and finite")

    def offset_range(self, sample_rate: float, factor: int) -> int:
        """Return the largest envelope lag searched in either direction."""

        return int(np.floor(self.max_offset_seconds * sample_rate / factor))

    def step(self, sample_rate: float, factor: int) -> int:
        """Return the candidate spacing in envelope samples (at least one)."""

        return max(1, int(np.floor(self.step_seconds * sample_rate / factor)))


@dataclass(frozen=True)
class OffsetResult:
    """Best offset found for a pair of signals.

    Attributes
    ----------
    offset_seconds:
        Shift in seconds; positive means the second signal lags the first.
    confidence:
        Heuristic match strength clamped to ``[0, 1]``.  It is the raw score
        divided by a fixed scale, not a calibrated probability.
    score:
        Raw windowed dot-product score of the winning candidate.
    lag:
        Winning candidate offset in envelope samples.
    """

    offset_seconds: float
    confidence: float
    score: float = 0.0
    lag: int = 0

    def as_dict(self) -> dict[str, float]:
        return {
            "offset": self.offset_seconds,
            "confidence": self.confidence,
            "score": self.score,
            "lag": self.lag,
        }
