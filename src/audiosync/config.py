from __future__ import annotations

"""Configuration utilities for audiosync.

This module defines a hierarchical configuration schema using Pydantic models.
The :class:`Settings` container groups the estimator tuning constants, the
default search window, decoding options and plotting options.  Instances can
be populated from environment variables or from YAML/JSON files with matching
nested keys.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

try:  # pragma: no cover - optional dependency
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None


class SectionModel(BaseModel):
    """Base model for configuration subsections that ignores unknown fields."""

    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Settings schema
# ---------------------------------------------------------------------------


class EstimatorSettings(SectionModel):
    """Empirical tuning constants of the offset estimator."""

    downsample_factor: int = Field(100, ge=1)
    max_sample_length: int = Field(10000, ge=1)
    normalization: float = Field(1000.0, gt=0)
    tie_tolerance: float = Field(1e-9, ge=0)
    workers: int = Field(1, ge=1)


class SearchSettings(SectionModel):
    """Default candidate offset window in seconds."""

    max_offset_seconds: float = Field(30.0, gt=0, allow_inf_nan=False)
    step_seconds: float = Field(0.01, gt=0, allow_inf_nan=False)


class DecodeSettings(SectionModel):
    """Options passed to the audio decoder."""

    channel: int = Field(0, ge=0)
    dtype: str = "float32"

    @field_validator("dtype")
    @classmethod
    def _check_dtype(cls, value: str) -> str:
        if value not in {"float32", "float64"}:
            raise ValueError("dtype must be 'float32' or 'float64'")
        return value


class SyncSettings(SectionModel):
    """Defaults for multi-track synchronisation."""

    reference: str | None = None


class VizSettings(SectionModel):
    """Configuration for the alignment plot."""

    title: str = "Alignment"
    save: str | None = None


class Settings(BaseSettings):
    """Container for all runtime configuration sections."""

    estimator: EstimatorSettings = Field(default_factory=EstimatorSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    decode: DecodeSettings = Field(default_factory=DecodeSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    viz: VizSettings = Field(default_factory=VizSettings)

    model_config = SettingsConfigDict(
        env_prefix="AUDIOSYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Loading utilities
# ---------------------------------------------------------------------------


def load_settings(path: str | Path) -> Settings:
    """Load settings from a JSON or YAML file."""

    p = Path(path)
    text = p.read_text()
    if p.suffix.lower() in {".yaml", ".yml"}:
        if yaml is None:
            raise RuntimeError("PyYAML is required to load YAML files")
        data: Any = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise TypeError("Configuration file must define a mapping")
    return Settings.model_validate(data)
