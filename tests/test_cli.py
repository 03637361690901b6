import json

import pandas as pd

from workout_timeline.cli import main


def test_full_run(tmp_path, analysis_csv, capsys):
    out = tmp_path / "report"
    code = main(["--input", str(analysis_csv), "--output", str(out), "--log-level", "WARNING"])
    assert code == 0

    enriched = pd.read_csv(out / "enriched_workouts.csv")
    assert len(enriched) == 11
    assert (out / "enriched_workouts.parquet").exists()
    assert (out / "summary.xlsx").exists()

    rejected = pd.read_csv(out / "rejected_records.csv")
    assert rejected["workout_id"].tolist() == ["w12"]

    tables = {p.name for p in (out / "tables").iterdir()}
    assert {"discipline_mix.csv", "stacking_cycling.csv", "next_after_cycling.csv", "session_sizes.csv"} <= tables
    charts = {p.name for p in (out / "charts").iterdir()}
    assert {"gap_ecdf.png", "gap_ecdf.html", "transitions.html", "next_after_cycling.png"} <= charts

    printed = capsys.readouterr().out
    assert "Enriched 11 workouts (1 rejected)" in printed
    assert "HEADLINE" in printed
    assert "Most common next discipline: Strength" in printed


def test_options_and_config_file(tmp_path, analysis_csv):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"output": {"write_parquet": False, "write_workbook": False}}))
    out = tmp_path / "report"
    code = main([
        "--input", str(analysis_csv), "--output", str(out), "--config", str(settings),
        "--discipline", "Cycling,Strength", "--stack-window", "20", "--no-charts",
    ])
    assert code == 0
    assert not (out / "charts").exists()
    assert not (out / "enriched_workouts.parquet").exists()
    assert (out / "tables" / "stacking_strength.csv").exists()
    enriched = pd.read_csv(out / "enriched_workouts.csv")
    assert "after_completed_strength" in enriched.columns


def test_missing_input_aborts(tmp_path, capsys):
    code = main(["--input", str(tmp_path / "missing.csv"), "--output", str(tmp_path / "report"), "--no-charts"])
    assert code == 1
    assert "Load failed" in capsys.readouterr().err


def test_invalid_settings_abort(tmp_path, analysis_csv, capsys):
    code = main(["--input", str(analysis_csv), "--output", str(tmp_path / "report"), "--stack-window", "-5"])
    assert code == 2
    assert "Configuration error" in capsys.readouterr().err
