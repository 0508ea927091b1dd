"""Utility modules for turning audio files into signals."""

from .decode import (
    AudioDecodeError,
    AudioSyncError,
    AudioUnavailableError,
    Decoder,
    decode_bytes,
    load_signal,
    load_signal_async,
)

__all__ = [
    "AudioSyncError",
    "AudioUnavailableError",
    "AudioDecodeError",
    "Decoder",
    "decode_bytes",
    "load_signal",
    "load_signal_async",
]
