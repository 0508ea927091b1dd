import json

import pytest
from pydantic import ValidationError

from audiosync.config import Settings, load_settings


def test_defaults():
    s = Settings()
    assert s.estimator.downsample_factor == 100
    assert s.estimator.max_sample_length == 10000
    assert s.estimator.normalization == 1000.0
    assert s.search.max_offset_seconds == 30.0
    assert s.search.step_seconds == 0.01
    assert s.decode.channel == 0


def test_from_env(monkeypatch):
    monkeypatch.setenv("AUDIOSYNC_SEARCH__MAX_OFFSET_SECONDS", "5")
    monkeypatch.setenv("AUDIOSYNC_ESTIMATOR__DOWNSAMPLE_FACTOR", "50")
    s = Settings()
    assert s.search.max_offset_seconds == 5.0
    assert s.estimator.downsample_factor == 50


def test_load_settings_json(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"search": {"step_seconds": 0.05}, "sync": {"reference": "a.wav"}}))
    s = load_settings(p)
    assert s.search.step_seconds == 0.05
    assert s.sync.reference == "a.wav"
    assert s.search.max_offset_seconds == 30.0


def test_load_settings_rejects_non_mapping(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text("[1, 2]")
    with pytest.raises(TypeError):
        load_settings(p)


def test_invalid_values():
    with pytest.raises(ValidationError):
        Settings.model_validate({"estimator": {"downsample_factor": 0}})
    with pytest.raises(ValidationError):
        Settings.model_validate({"search": {"step_seconds": -1}})
    with pytest.raises(ValidationError):
        Settings.model_validate({"decode": {"dtype": "int16"}})
    for bad in (float("inf"), float("nan")):
        with pytest.raises(ValidationError):
            Settings.model_validate({"search": {"max_offset_seconds": bad}})


try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None


@pytest.mark.skipif(yaml is None, reason="PyYAML not installed")
def test_load_settings_yaml(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("estimator:\n  downsample_factor: 25\nsearch:\n  max_offset_seconds: 2\n")
    s = load_settings(p)
    assert s.estimator.downsample_factor == 25
    assert s.search.max_offset_seconds == 2.0
