from __future__ import annotations

"""Command line interface for audiosync using Typer."""

from pathlib import Path
from typing import Dict, List, Optional

import json
import logging

import numpy as np
import typer
from pydantic import ValidationError

from .config import Settings, load_settings
from .core import downsample, estimate_offset, sync_tracks
from .ingest import AudioUnavailableError, load_signal
from .types import Signal
from .utils.logging import get_logger, verbosity_level
from .utils.timeparse import parse_time

app = typer.Typer(help="Estimate time offsets between recordings of the same event")
logger = logging.getLogger(__name__)


def _parse_override_value(raw: str) -> object:
    lower = raw.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    if lower in {"null", "none"}:
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        pass
    if raw.startswith("[") or raw.startswith("{"):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise typer.BadParameter(f"invalid JSON override value: {raw}") from None
    return raw


def _ensure_path(settings: Settings, keys: List[str]) -> None:
    current: object = settings
    for key in keys[:-1]:
        if not hasattr(current, key):
            raise typer.BadParameter(f"unknown configuration key: {'.'.join(keys)}")
        current = getattr(current, key)
    if not hasattr(current, keys[-1]):
        raise typer.BadParameter(f"unknown configuration key: {'.'.join(keys)}")


def _apply_override(data: Dict[str, object], keys: List[str], value: object) -> None:
    target = data
    for key in keys[:-1]:
        existing = target.get(key)
        if not isinstance(existing, dict):
            existing = {}
            target[key] = existing
        target = existing
    target[keys[-1]] = value


def _parse_duration(value: Optional[str], option: str) -> Optional[float]:
    if value is None:
        return None
    try:
        seconds = parse_time(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=option) from exc
    if seconds <= 0:
        raise typer.BadParameter("must be greater than zero", param_hint=option)
    return seconds


def _load(path: Path, cfg: Settings, debug: bool) -> Signal:
    try:
        return load_signal(path, channel=cfg.decode.channel, dtype=cfg.decode.dtype)
    except AudioUnavailableError as exc:
        msg = f"Failed to load {path}: {exc}"
        if debug:
            logger.exception(msg)
            raise
        typer.secho(msg, err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def init(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        dir_okay=False,
        file_okay=True,
        exists=False,
        help="Path to a YAML or JSON configuration file.",
    ),
    set_overrides: List[str] = typer.Option(
        [],
        "--set",
        help="Override configuration values using dotted paths, e.g. search.step_seconds=0.05",
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output"),
) -> None:
    """Initialise the Typer context with validated settings."""

    get_logger("audiosync", level=verbosity_level(verbose))

    if config is not None and not config.exists():
        raise typer.BadParameter(f"configuration file not found: {config}")

    try:
        if config:
            settings = load_settings(config)
        elif isinstance(ctx.obj, Settings):
            settings = ctx.obj
        else:
            settings = Settings()
    except (FileNotFoundError, RuntimeError, TypeError, ValidationError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"failed to load configuration: {exc}") from exc

    if set_overrides:
        data = settings.model_dump()
        for override in set_overrides:
            if "=" not in override:
                raise typer.BadParameter(
                    "overrides must be of the form --set section.key=value"
                )
            key, raw_value = override.split("=", 1)
            if not key:
                raise typer.BadParameter("override key cannot be empty")
            keys = key.split(".")
            _ensure_path(settings, keys)
            value = _parse_override_value(raw_value)
            _apply_override(data, keys, value)
        try:
            settings = Settings.model_validate(data)
        except ValidationError as exc:
            raise typer.BadParameter(f"invalid configuration override: {exc}") from exc

    ctx.obj = settings


@app.command()
def offset(
    ctx: typer.Context,
    file1: Path = typer.Argument(..., help="Reference recording"),
    file2: Path = typer.Argument(..., help="Recording to align against FILE1"),
    max_offset: Optional[str] = typer.Option(
        None, "--max-offset", help="Search window, e.g. 30, 1:30 or 500ms"
    ),
    step: Optional[str] = typer.Option(None, "--step", help="Candidate spacing, e.g. 10ms"),
    export: Optional[Path] = typer.Option(None, "--export", "-e", help="Write the result as JSON"),
    plot: bool = typer.Option(False, "--plot/--no-plot", help="Plot the aligned envelopes"),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks on failure"),
) -> None:
    """Estimate how far FILE2 lags behind FILE1.

    A positive offset means the events in FILE2 happen later than in FILE1.
    The confidence is a heuristic in ``[0, 1]`` derived from the raw
    envelope correlation score, not a probability.
    """

    cfg: Settings = ctx.obj
    max_offset_s = _parse_duration(max_offset, "--max-offset")
    step_s = _parse_duration(step, "--step")

    signal1 = _load(file1, cfg, debug)
    signal2 = _load(file2, cfg, debug)
    try:
        result = estimate_offset(
            signal1,
            signal2,
            max_offset_seconds=max_offset_s,
            step_seconds=step_s,
            settings=cfg,
        )
    except ValueError as exc:
        if debug:
            logger.exception("estimation failed")
            raise
        typer.secho(f"Cannot align {file1} and {file2}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"offset={result.offset_seconds:+.3f}s confidence={result.confidence:.4f}")

    if export:
        payload = {"file1": str(file1), "file2": str(file2), **result.as_dict()}
        with open(export, "w", encoding="utf8") as fh:
            json.dump(payload, fh, indent=2)
        typer.echo(f"Exported result to {export}")

    if plot:
        from .viz.plot_alignment import plot_alignment

        factor = cfg.estimator.downsample_factor
        plot_alignment(
            downsample(signal1.samples, factor),
            downsample(signal2.samples, factor),
            result,
            factor,
            signal1.sample_rate,
            labels=(file1.name, file2.name),
            title=cfg.viz.title,
            save=cfg.viz.save,
            show=cfg.viz.save is None,
        )


def _resolve_reference(files: List[Path], reference: Optional[str]) -> str:
    keys = [str(p) for p in files]
    if reference is None:
        return keys[0]
    if reference in keys:
        return reference
    matches = [str(p) for p in files if p.name == reference]
    if not matches:
        raise typer.BadParameter(f"reference {reference!r} is not among the input files")
    if len(matches) > 1:
        raise typer.BadParameter(
            f"reference {reference!r} matches several inputs; pass its full path",
            param_hint="--reference",
        )
    return matches[0]


@app.command()
def sync(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., help="Recordings to synchronise"),
    reference: Optional[str] = typer.Option(
        None,
        "--reference",
        "-r",
        help="Path or file name of the reference track (default: first)",
    ),
    max_offset: Optional[str] = typer.Option(None, "--max-offset"),
    step: Optional[str] = typer.Option(None, "--step"),
    export: Optional[Path] = typer.Option(None, "--export", "-e"),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks on failure"),
) -> None:
    """Align every file against a reference track.

    Each output row carries the track ``offset`` to apply on a shared
    timeline together with its confidence and duration.  Tracks are keyed
    by their full path, so recordings sharing a file name in different
    folders each get their own row.  Files that cannot be decoded are
    reported and skipped; a missing reference aborts.
    """

    cfg: Settings = ctx.obj
    max_offset_s = _parse_duration(max_offset, "--max-offset")
    step_s = _parse_duration(step, "--step")

    duplicates = sorted({str(p) for p in files if files.count(p) > 1})
    if duplicates:
        raise typer.BadParameter(f"input files listed more than once: {', '.join(duplicates)}")
    ref_key = _resolve_reference(files, reference or cfg.sync.reference)

    tracks: Dict[str, Signal] = {}
    paths: Dict[str, Path] = {}
    for path in files:
        key = str(path)
        try:
            tracks[key] = load_signal(
                path, channel=cfg.decode.channel, dtype=cfg.decode.dtype
            )
        except AudioUnavailableError as exc:
            msg = f"Failed to load {path}: {exc}"
            if debug:
                logger.exception(msg)
                raise
            typer.secho(msg, err=True)
            if key == ref_key:
                raise typer.Exit(code=1) from exc
            continue
        paths[key] = path

    rate = tracks[ref_key].sample_rate
    mismatched = [k for k, s in tracks.items() if s.sample_rate != rate]
    for key in mismatched:
        typer.secho(
            f"Skipping {key}: sample rate {tracks[key].sample_rate:g} Hz differs from {rate:g} Hz",
            err=True,
        )
        del tracks[key]

    results = sync_tracks(
        tracks,
        ref_key,
        settings=cfg,
        max_offset_seconds=max_offset_s,
        step_seconds=step_s,
    )

    rows = []
    for key, result in results.items():
        rows.append(
            {
                "name": paths[key].name,
                "path": key,
                "offset": result.offset_seconds,
                "confidence": result.confidence,
                "duration": tracks[key].duration,
                "reference": key == ref_key,
            }
        )
        typer.echo(
            f"{key}: offset={result.offset_seconds:+.3f}s confidence={result.confidence:.4f}"
        )

    if export:
        with open(export, "w", encoding="utf8") as fh:
            json.dump(rows, fh, indent=2)
        typer.echo(f"Exported {len(rows)} tracks to {export}")


@app.command()
def envelope(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Recording to reduce"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help=".npy or .csv output"),
    debug: bool = typer.Option(False, "--debug", help="Show tracebacks on failure"),
) -> None:
    """Compute the block-averaged envelope the estimator correlates."""

    cfg: Settings = ctx.obj
    signal = _load(file, cfg, debug)
    env = downsample(signal.samples, cfg.estimator.downsample_factor)
    if output:
        if output.suffix == ".csv":
            np.savetxt(output, env, delimiter=",")
        else:
            np.save(output, env)
        typer.echo(f"saved {env.size} envelope values to {output}")
    else:
        peak = float(env.max()) if env.size else 0.0
        mean = float(env.mean()) if env.size else 0.0
        typer.echo(f"blocks={env.size} mean={mean:.4f} max={peak:.4f}")


def main() -> None:
    """Execute the Typer application."""

    app()


if __name__ == "__main__":
    main()
