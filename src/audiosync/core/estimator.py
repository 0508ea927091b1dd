from __future__ import annotations

"""Estimate the time offset between two recordings of the same event."""

from typing import Dict, Mapping, Sequence, Union

import logging

import numpy as np

from ..config import Settings
from ..ingest import Decoder, load_signal
from ..ingest.decode import Source
from ..types import OffsetResult, SearchParameters, Signal
from .correlation import confidence_from_score, scan_offsets
from .envelope import downsample

logger = logging.getLogger(__name__)

SignalLike = Union[Signal, Sequence[float], np.ndarray]


def _resolve_rate(signal1: SignalLike, signal2: SignalLike, sample_rate: float | None) -> float:
    rates = {s.sample_rate for s in (signal1, signal2) if isinstance(s, Signal)}
    if len(rates) > 1:
        raise ValueError(
            f"signals have different sample rates {sorted(rates)}; resample before estimating"
        )
    if sample_rate is None:
        if not rates:
            raise ValueError("sample_rate is required for raw sample arrays")
        return float(rates.pop())
    if rates and float(sample_rate) not in rates:
        raise ValueError(
            f"sample_rate {sample_rate} does not match signal rate {rates.pop()}"
        )
    if not np.isfinite(sample_rate) or sample_rate <= 0:
        raise ValueError("sample_rate must be positive and finite")
    return float(sample_rate)


def _samples(signal: SignalLike) -> np.ndarray:
    if isinstance(signal, Signal):
        return signal.samples
    return np.asarray(signal, dtype=float).reshape(-1)


def estimate_offset(
    signal1: SignalLike,
    signal2: SignalLike,
    sample_rate: float | None = None,
    max_offset_seconds: float | None = None,
    step_seconds: float | None = None,
    *,
    settings: Settings | None = None,
    downsample_factor: int | None = None,
    max_sample_length: int | None = None,
    normalization: float | None = None,
    tie_tolerance: float | None = None,
    workers: int | None = None,
) -> OffsetResult:
    """Return the shift of ``signal2`` relative to ``signal1``.

    Parameters
    ----------
    signal1, signal2:
        :class:`Signal` objects or plain sample sequences.  Both must share one
        sample rate; differing rates raise ``ValueError``.
    sample_rate:
        Sample rate in Hz.  Required when plain sequences are passed,
        otherwise taken from the signals.
    max_offset_seconds, step_seconds:
        Search window and candidate spacing.  Default to ``settings.search``.
    settings:
        Optional :class:`~audiosync.config.Settings` providing defaults for
        every parameter.
    downsample_factor, max_sample_length, normalization, tie_tolerance, workers:
        Individual overrides of the ``settings.estimator`` constants.

    Returns
    -------
    OffsetResult
        Offset in seconds (positive when ``signal2`` lags ``signal1``) and a
        heuristic confidence in ``[0, 1]``.  Empty or non-overlapping input
        yields confidence ``0`` rather than an error.

    Notes
    -----
    Swapping the arguments negates the offset only when the best score is
    unique.  Inputs with a flat envelope, such as a pure tone, score equally
    over a run of lags and the smallest lag of that run wins in both
    directions, so ``(a, b)`` and ``(b, a)`` can disagree.
    """
    if settings is None:
        settings = Settings()

    est = settings.estimator
    factor = est.downsample_factor if downsample_factor is None else downsample_factor
    cap = est.max_sample_length if max_sample_length is None else max_sample_length
    norm = est.normalization if normalization is None else normalization
    tol = est.tie_tolerance if tie_tolerance is None else tie_tolerance
    workers = est.workers if workers is None else workers
    params = SearchParameters(
        max_offset_seconds=(
            settings.search.max_offset_seconds if max_offset_seconds is None else max_offset_seconds
        ),
        step_seconds=settings.search.step_seconds if step_seconds is None else step_seconds,
    )

    rate = _resolve_rate(signal1, signal2, sample_rate)
    e1 = downsample(_samples(signal1), factor)
    e2 = downsample(_samples(signal2), factor)

    offset_range = params.offset_range(rate, factor)
    step = params.step(rate, factor)
    logger.debug(
        "scanning lags +/-%d step %d over envelopes of %d and %d",
        offset_range,
        step,
        e1.size,
        e2.size,
    )

    scan = scan_offsets(
        e1,
        e2,
        offset_range,
        step,
        max_sample_length=cap,
        tie_tolerance=tol,
        workers=workers,
    )
    result = OffsetResult(
        offset_seconds=scan.lag * factor / rate,
        confidence=confidence_from_score(scan.score, norm),
        score=scan.score,
        lag=scan.lag,
    )
    logger.debug(
        "best lag %d of %d candidates: offset=%.3fs score=%.6g",
        scan.lag,
        scan.candidates,
        result.offset_seconds,
        scan.score,
    )
    return result


def estimate_offset_from_sources(
    source1: Source,
    source2: Source,
    *,
    decoder: Decoder | None = None,
    settings: Settings | None = None,
    max_offset_seconds: float | None = None,
    step_seconds: float | None = None,
) -> OffsetResult:
    """Decode two audio sources and estimate their offset.

    Decoding failures raise :class:`~audiosync.ingest.AudioUnavailableError`
    before any estimation takes place.
    """
    if settings is None:
        settings = Settings()
    opts = {"decoder": decoder, "channel": settings.decode.channel, "dtype": settings.decode.dtype}
    signal1 = load_signal(source1, **opts)
    signal2 = load_signal(source2, **opts)
    return estimate_offset(
        signal1,
        signal2,
        max_offset_seconds=max_offset_seconds,
        step_seconds=step_seconds,
        settings=settings,
    )


def sync_tracks(
    tracks: Mapping[str, Signal],
    reference: str | None = None,
    *,
    settings: Settings | None = None,
    max_offset_seconds: float | None = None,
    step_seconds: float | None = None,
) -> Dict[str, OffsetResult]:
    """Align every track in ``tracks`` against a reference track.

    ``reference`` names the track the others are measured against and
    defaults to the first entry.  The reference itself is reported with
    offset ``0`` and confidence ``1``.
    """
    if not tracks:
        return {}
    names = list(tracks)
    ref_name = names[0] if reference is None else reference
    if ref_name not in tracks:
        raise KeyError(f"unknown reference track: {ref_name}")
    ref = tracks[ref_name]

    results: Dict[str, OffsetResult] = {}
    for name in names:
        if name == ref_name:
            results[name] = OffsetResult(offset_seconds=0.0, confidence=1.0)
            continue
        results[name] = estimate_offset(
            ref,
            tracks[name],
            max_offset_seconds=max_offset_seconds,
            step_seconds=step_seconds,
            settings=settings,
        )
        logger.info(
            "%s: offset %.3fs confidence %.3f",
            name,
            results[name].offset_seconds,
            results[name].confidence,
        )
    return results
