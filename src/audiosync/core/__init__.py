"""Core algorithms for audio offset estimation."""

from .correlation import ScanResult, confidence_from_score, scan_offsets, score_offset
from .envelope import downsample
from .estimator import estimate_offset, estimate_offset_from_sources, sync_tracks

__all__ = [
    "downsample",
    "score_offset",
    "scan_offsets",
    "confidence_from_score",
    "ScanResult",
    "estimate_offset",
    "estimate_offset_from_sources",
    "sync_tracks",
]
