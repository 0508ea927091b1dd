"""Shared helpers for audiosync."""

from .logging import get_logger, verbosity_level
from .timeparse import parse_time

__all__ = ["get_logger", "verbosity_level", "parse_time"]
