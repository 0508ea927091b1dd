"""Windowed dot-product scan over candidate envelope offsets."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_SAMPLE_LENGTH = 10000
DEFAULT_NORMALIZATION = 1000.0
DEFAULT_TIE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ScanResult:
    """Winning candidate of an offset scan.

    Attributes
    ----------
    lag:
        Envelope offset ``k`` with the highest score.
    score:
        Score of ``lag``.
    candidates:
        Number of candidate offsets evaluated.
    """

    lag: int
    score: float
    candidates: int


def score_offset(
    e1: np.ndarray,
    e2: np.ndarray,
    lag: int,
    max_sample_length: int = DEFAULT_MAX_SAMPLE_LENGTH,
) -> float:
    """Score how well ``e2`` shifted by ``lag`` matches ``e1``.

    The score is the dot product of the overlapping parts, averaged over at
    most ``max_sample_length`` products.  For ``lag > 0`` the comparison
    starts ``lag`` elements into ``e2``, otherwise ``-lag`` elements into
    ``e1``.  Reads past either envelope count as zero.  Candidates whose
    overlap is empty score ``0.0``.
    """

    overlap = min(e1.size, e2.size) - abs(lag)
    n = min(overlap, max_sample_length)
    if n <= 0:
        return 0.0
    start1 = 0 if lag > 0 else -lag
    start2 = lag if lag > 0 else 0
    # n <= min(len) - |lag|, so both slices stay inside their envelopes
    return float(np.dot(e1[start1 : start1 + n], e2[start2 : start2 + n]) / n)


def candidate_lags(offset_range: int, step: int) -> np.ndarray:
    """Return the scanned lags ``-offset_range, ..., <= offset_range``."""

    if step < 1:
        raise ValueError("step must be at least 1")
    if offset_range < 0:
        raise ValueError("offset_range must not be negative")
    return np.arange(-offset_range, offset_range + 1, step, dtype=int)


def score_lags(
    e1: np.ndarray,
    e2: np.ndarray,
    lags: Sequence[int],
    max_sample_length: int = DEFAULT_MAX_SAMPLE_LENGTH,
) -> np.ndarray:
    """Return :func:`score_offset` for every lag in ``lags``."""

    return np.array(
        [score_offset(e1, e2, int(lag), max_sample_length) for lag in lags], dtype=float
    )


def select_best(lags: np.ndarray, scores: np.ndarray, tie_tolerance: float = DEFAULT_TIE_TOLERANCE) -> int:
    """Return the index of the winning candidate.

    The winner is the earliest candidate whose score lies within
    ``tie_tolerance`` (relative) of the maximum.  With a tolerance of zero this
    is the first maximum met when scanning upward from the most negative lag.

    Because the earliest lag of a tied run always wins, flat score regions
    break symmetry: scanning ``(e2, e1)`` picks the start of the mirrored run,
    which is generally not the negation of the lag picked for ``(e1, e2)``.
    """

    if lags.size == 0:
        raise ValueError("no candidate lags")
    if tie_tolerance < 0:
        raise ValueError("tie_tolerance must not be negative")
    best = float(scores.max())
    threshold = best - tie_tolerance * abs(best)
    return int(np.flatnonzero(scores >= threshold)[0])


def scan_offsets(
    e1: np.ndarray,
    e2: np.ndarray,
    offset_range: int,
    step: int = 1,
    *,
    max_sample_length: int = DEFAULT_MAX_SAMPLE_LENGTH,
    tie_tolerance: float = DEFAULT_TIE_TOLERANCE,
    workers: int = 1,
) -> ScanResult:
    """Find the lag maximising :func:`score_offset`.

    Lags run from ``-offset_range`` to ``+offset_range`` in increments of
    ``step``.  Scores that differ from the maximum by no more than
    ``tie_tolerance`` times its magnitude count as ties and resolve to the
    smallest lag, see :func:`select_best`.  With ``workers > 1`` contiguous
    chunks of lags are scored in a thread pool; since selection happens on
    the full score vector the result is identical to the serial scan.
    """

    e1 = np.asarray(e1, dtype=float)
    e2 = np.asarray(e2, dtype=float)
    lags = candidate_lags(offset_range, step)

    if workers <= 1 or lags.size < 2 * workers:
        scores = score_lags(e1, e2, lags, max_sample_length)
    else:
        chunks: List[np.ndarray] = [c for c in np.array_split(lags, workers) if c.size]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(
                pool.map(lambda c: score_lags(e1, e2, c, max_sample_length), chunks)
            )
        scores = np.concatenate(parts)
        logger.debug("scored %d lags in %d chunks", lags.size, len(chunks))

    idx = select_best(lags, scores, tie_tolerance)
    return ScanResult(lag=int(lags[idx]), score=float(scores[idx]), candidates=int(lags.size))


def confidence_from_score(score: float, normalization: float = DEFAULT_NORMALIZATION) -> float:
    """Map a raw score onto ``[0, 1]`` by dividing by ``normalization``.

    This is an empirical scale chosen for typical speech recordings and is
    not a calibrated probability.
    """

    if normalization <= 0:
        raise ValueError("normalization must be positive")
    return float(min(max(score / normalization, 0.0), 1.0))
