"""Decoding of audio containers into :class:`~audiosync.types.Signal` objects.

The estimator never touches container formats itself.  Callers obtain a
:class:`Signal` through :func:`load_signal`, which reads the raw bytes and
hands them to a *decoder*: any callable taking ``bytes`` and returning the
per-channel sample arrays together with the sample rate.  The default
decoder, :func:`decode_bytes`, uses :mod:`soundfile` (libsndfile) and so
understands WAV, FLAC, OGG/Vorbis and the other formats libsndfile supports.
"""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import Callable, List, Tuple, Union

import numpy as np
import soundfile as sf

from ..types import Signal

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], Tuple[List[np.ndarray], float]]
Source = Union[str, Path, bytes, bytearray, None]


class AudioSyncError(Exception):
    """Base class for errors raised by audiosync."""


class AudioUnavailableError(AudioSyncError):
    """Raised when no audio data is available for a source."""


class AudioDecodeError(AudioUnavailableError):
    """Raised when audio data is present but cannot be decoded."""


def decode_bytes(raw: bytes, dtype: str = "float32") -> Tuple[List[np.ndarray], float]:
    """Decode ``raw`` container bytes with libsndfile.

    Returns a list with one 1-D array per channel and the sample rate.
    :class:`AudioDecodeError` is raised if libsndfile rejects the data or
    the stream holds no channels.
    """

    try:
        data, rate = sf.read(io.BytesIO(raw), always_2d=True, dtype=dtype)
    except (sf.SoundFileError, RuntimeError, TypeError, ValueError) as exc:
        raise AudioDecodeError(f"no decodable audio data: {exc}") from exc
    if data.shape[1] == 0:
        raise AudioDecodeError("no decodable audio data: stream has no channels")
    return [np.ascontiguousarray(data[:, c]) for c in range(data.shape[1])], float(rate)


def _read_source(source: Source) -> bytes:
    if source is None:
        raise AudioUnavailableError("Audio data is not available")
    if isinstance(source, (bytes, bytearray)):
        raw = bytes(source)
    else:
        path = Path(source)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise AudioUnavailableError(f"audio file not found: {path}") from exc
    if not raw:
        raise AudioUnavailableError("Audio data is not available")
    return raw


def load_signal(
    source: Source,
    *,
    decoder: Decoder | None = None,
    channel: int = 0,
    dtype: str = "float32",
) -> Signal:
    """Decode ``source`` and return one channel of it as a :class:`Signal`.

    ``source`` is a path or the raw container bytes.  Only ``channel`` is
    kept; no down-mixing takes place.  Without a ``decoder`` the data is
    read by :func:`decode_bytes` as ``dtype``.  Errors from ``decoder``
    propagate unchanged.
    """

    raw = _read_source(source)
    if decoder is None:
        channels, rate = decode_bytes(raw, dtype=dtype)
    else:
        channels, rate = decoder(raw)
    if not channels:
        raise AudioDecodeError("no decodable audio data: stream has no channels")
    if channel >= len(channels):
        raise AudioDecodeError(
            f"channel {channel} requested but only {len(channels)} available"
        )
    signal = Signal(np.asarray(channels[channel]), rate)
    logger.debug(
        "decoded %d samples at %.0f Hz (%d channel(s))", len(signal), rate, len(channels)
    )
    return signal


async def load_signal_async(
    source: Source,
    *,
    decoder: Decoder | None = None,
    channel: int = 0,
    dtype: str = "float32",
) -> Signal:
    """Awaitable variant of :func:`load_signal` running in a worker thread."""

    return await asyncio.to_thread(
        load_signal, source, decoder=decoder, channel=channel, dtype=dtype
    )
