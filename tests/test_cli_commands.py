import json

import numpy as np
import soundfile as sf
from typer.testing import CliRunner

from audiosync.cli import app
from audiosync.config import Settings

RATE = 8000


def make_files(tmp_path):
    t = np.arange(RATE) / RATE
    sine = (0.5 * np.sin(2 * np.pi * 1000 * t)).astype(np.float32)
    delayed = np.concatenate([np.zeros(RATE // 2, dtype=np.float32), sine])
    p1 = tmp_path / "mic1.wav"
    p2 = tmp_path / "mic2.wav"
    sf.write(p1, sine, RATE, subtype="FLOAT")
    sf.write(p2, delayed, RATE, subtype="FLOAT")
    return p1, p2


def test_offset_and_export(tmp_path):
    p1, p2 = make_files(tmp_path)
    out = tmp_path / "result.json"
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["offset", str(p1), str(p2), "--max-offset", "1", "--step", "10ms", "--export", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert "offset=+0.500s" in result.output
    data = json.loads(out.read_text())
    assert data["file1"] == str(p1)
    assert abs(data["offset"] - 0.5) <= 0.01
    assert 0.0 < data["confidence"] <= 1.0


def test_offset_uses_settings_from_context(tmp_path):
    p1, p2 = make_files(tmp_path)
    cfg = Settings()
    cfg.search.max_offset_seconds = 0.1
    result = CliRunner().invoke(app, ["offset", str(p1), str(p2)], obj=cfg)
    assert result.exit_code == 0, result.output
    assert "offset=+0.500s" not in result.output


def test_set_override(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(
        app,
        ["--set", "search.max_offset_seconds=1", "--set", "estimator.downsample_factor=50", "offset", str(p1), str(p2)],
    )
    assert result.exit_code == 0, result.output
    assert "offset=+0.500s" in result.output


def test_unknown_override_key(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(app, ["--set", "search.bogus=1", "offset", str(p1), str(p2)])
    assert result.exit_code != 0


def test_config_file(tmp_path):
    p1, p2 = make_files(tmp_path)
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"search": {"max_offset_seconds": 1.0}}))
    result = CliRunner().invoke(app, ["--config", str(cfg), "offset", str(p1), str(p2)])
    assert result.exit_code == 0, result.output
    assert "offset=+0.500s" in result.output


def test_missing_input_reports_error(tmp_path):
    p1, _ = make_files(tmp_path)
    result = CliRunner().invoke(app, ["offset", str(p1), str(tmp_path / "absent.wav")])
    assert result.exit_code == 1
    assert "Failed to load" in result.output


def test_invalid_duration(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(app, ["offset", str(p1), str(p2), "--step", "soon"])
    assert result.exit_code == 2


def test_sync_command(tmp_path):
    p1, p2 = make_files(tmp_path)
    broken = tmp_path / "broken.wav"
    broken.write_bytes(b"not audio at all")
    out = tmp_path / "tracks.json"
    result = CliRunner().invoke(
        app,
        ["sync", str(p1), str(p2), str(broken), "--max-offset", "1", "--export", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert "broken.wav" in result.output
    rows = json.loads(out.read_text())
    assert [row["name"] for row in rows] == ["mic1.wav", "mic2.wav"]
    assert rows[0]["reference"] is True
    assert rows[0]["offset"] == 0.0
    assert abs(rows[1]["offset"] - 0.5) <= 0.01
    assert abs(rows[1]["duration"] - 1.5) < 1e-9


def test_sync_with_other_reference(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(
        app, ["sync", str(p1), str(p2), "--reference", "mic2.wav", "--max-offset", "1"]
    )
    assert result.exit_code == 0, result.output
    assert "mic2.wav: offset=+0.000s" in result.output


def test_sync_unknown_reference(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(app, ["sync", str(p1), str(p2), "--reference", "x.wav"])
    assert result.exit_code == 2


def test_envelope_command(tmp_path):
    p1, _ = make_files(tmp_path)
    out = tmp_path / "env.npy"
    result = CliRunner().invoke(app, ["envelope", str(p1), "--output", str(out)])
    assert result.exit_code == 0, result.output
    env = np.load(out)
    assert env.shape == (80,)

    result = CliRunner().invoke(app, ["envelope", str(p1)])
    assert "blocks=80" in result.output


def test_sync_keeps_tracks_with_same_file_name(tmp_path):
    ref, _ = make_files(tmp_path)
    sine = sf.read(ref, dtype="float32")[0]
    for folder, delay in (("a", 0.1), ("b", 0.3)):
        (tmp_path / folder).mkdir()
        shifted = np.concatenate([np.zeros(int(delay * RATE), dtype=np.float32), sine])
        sf.write(tmp_path / folder / "mic.wav", shifted, RATE, subtype="FLOAT")
    a = tmp_path / "a" / "mic.wav"
    b = tmp_path / "b" / "mic.wav"
    out = tmp_path / "tracks.json"

    result = CliRunner().invoke(
        app, ["sync", str(ref), str(a), str(b), "--max-offset", "1", "--export", str(out)]
    )
    assert result.exit_code == 0, result.output
    rows = {row["path"]: row for row in json.loads(out.read_text())}
    assert set(rows) == {str(ref), str(a), str(b)}
    assert rows[str(a)]["name"] == rows[str(b)]["name"] == "mic.wav"
    assert abs(rows[str(a)]["offset"] - 0.1) <= 0.01
    assert abs(rows[str(b)]["offset"] - 0.3) <= 0.01

    ambiguous = CliRunner().invoke(app, ["sync", str(ref), str(a), str(b), "--reference", "mic.wav"])
    assert ambiguous.exit_code == 2

    by_path = CliRunner().invoke(
        app, ["sync", str(ref), str(a), str(b), "--reference", str(a), "--max-offset", "1"]
    )
    assert by_path.exit_code == 0, by_path.output
    assert f"{a}: offset=+0.000s" in by_path.output


def test_sync_rejects_repeated_path(tmp_path):
    p1, p2 = make_files(tmp_path)
    result = CliRunner().invoke(app, ["sync", str(p1), str(p2), str(p2)])
    assert result.exit_code == 2


def test_non_finite_durations_are_rejected(tmp_path):
    p1, p2 = make_files(tmp_path)
    for value in ("inf", "nan"):
        result = CliRunner().invoke(app, ["offset", str(p1), str(p2), "--max-offset", value])
        assert result.exit_code == 2
        result = CliRunner().invoke(app, ["sync", str(p1), str(p2), "--step", value])
        assert result.exit_code == 2
    result = CliRunner().invoke(
        app, ["--set", "search.max_offset_seconds=inf", "offset", str(p1), str(p2)]
    )
    assert result.exit_code == 2
