import pytest

import main


@pytest.fixture
def ephemeris_file(tmp_path, omm_json):
    path = tmp_path / "gnss.json"
    path.write_text(omm_json, encoding="utf-8")
    return str(path)


@pytest.mark.parametrize("bad", ["bogus", "2024 13 01 00 00 00", "2024-01-15T12:00:00"])
def test_invalid_time_is_reported(bad, capsys):
    assert main.main(["--time", bad, "--no-plot"]) == 1
    out = capsys.readouterr().out
    assert out.startswith("[ERROR] Invalid --time")
    assert bad in out


def test_missing_ephemeris_file(tmp_path, capsys):
    missing = str(tmp_path / "nope.json")
    assert main.main(["--ephemeris", missing, "--no-plot"]) == 1
    assert "[ERROR] Could not load ephemeris" in capsys.readouterr().out


def test_run_from_local_file(ephemeris_file, capsys):
    argv = ["--ephemeris", ephemeris_file, "--time", "2024 01 15 12 00 00",
            "--steps", "2", "--no-plot"]
    assert main.main(argv) == 0
    out = capsys.readouterr().out
    assert "[OK] Loaded 5 satellites" in out
    assert "Sky at 2024-01-15 12:02:00 UTC" in out
    assert "Combined" in out


def test_empty_batch_runs_nominal(tmp_path, capsys):
    path = tmp_path / "empty.json"
    path.write_text("[]", encoding="utf-8")
    argv = ["--ephemeris", str(path), "--time", "2024 01 15 12 00 00",
            "--steps", "0", "--no-plot"]
    assert main.main(argv) == 0
    out = capsys.readouterr().out
    assert "[OK] Loaded 0 satellites" in out
    assert "nominal constellations" in out
