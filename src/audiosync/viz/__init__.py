"""Matplotlib helpers for inspecting alignments."""

from .plot_alignment import ALIGNMENT_STYLE, plot_alignment

__all__ = ["plot_alignment", "ALIGNMENT_STYLE"]
