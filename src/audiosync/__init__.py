"""Estimate the time offset between independent recordings of one event."""

from .config import Settings, load_settings
from .core import estimate_offset, estimate_offset_from_sources, sync_tracks
from .ingest import (
    AudioDecodeError,
    AudioSyncError,
    AudioUnavailableError,
    load_signal,
    load_signal_async,
)
from .types import OffsetResult, SearchParameters, Signal

__all__ = [
    "Settings",
    "load_settings",
    "Signal",
    "SearchParameters",
    "OffsetResult",
    "estimate_offset",
    "estimate_offset_from_sources",
    "sync_tracks",
    "load_signal",
    "load_signal_async",
    "AudioSyncError",
    "AudioUnavailableError",
    "AudioDecodeError",
]
