from __future__ import annotations

import json
from pathlib import Path

from csv_insight.cli import main as cli_main

"""CLI unit tests: argument handling, output formats and exit codes."""


def _json_block(out: str) -> dict:
    lines = out.splitlines()
    start = lines.index("{")
    end = lines.index("}", start)
    return json.loads("\n".join(lines[start : end + 1]))


def test_stats_output(write_csv: Path, capsys):
    code = cli_main([str(write_csv)])
    out = capsys.readouterr().out

    assert code == 0
    assert (
        "COLUMN age kind=numerical unique=4 missing=0 min=27 max=45 mean=34.4 median=34 std_dev=7.797"
        in out
    )
    assert "COLUMN city kind=categorical unique=3 missing=0 top=Paris:2,Berlin:2,Madrid:1" in out
    assert "INFO filtered rows=5/5" in out
    assert out.rstrip().splitlines()[-1].startswith("SUMMARY rows=5 columns=4")


def test_json_output(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--json"]) == 0
    data = _json_block(capsys.readouterr().out)

    assert data["rowCount"] == 5
    assert data["numericalColumns"] == ["age", "score"]
    assert data["columnStats"]["score"]["min"] == 65
    assert "mean" not in data["columnStats"]["name"]


def test_filter_and_columns(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--filter", "paris", "--columns", "city,name"]) == 0
    out = capsys.readouterr().out
    assert "INFO filtered rows=2/5" in out
    assert "filtered=2" in out


def test_transformations_and_undo(write_csv: Path, capsys):
    code = cli_main(
        [str(write_csv), "--delete", "name", "--where", "age=30", "--sort", "score", "--desc", "--undo", "1"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "COLUMN name" not in out
    # sort undone, age filter kept
    assert "SUMMARY rows=3 columns=3 numerical=2 categorical=1 history=4" in out


def test_combine(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--combine", "age", "--json"]) == 0
    data = _json_block(capsys.readouterr().out)
    assert data["headers"][-1] == "age_combined"
    assert data["columnStats"]["age_combined"]["max"] == 136.25


def test_failed_transformation_is_partial_failure(write_csv: Path, temp_workdir: Path, capsys):
    code = cli_main([str(write_csv), "--combine", "city", "--where", "broken"])
    out = capsys.readouterr().out

    assert code == 2
    assert "ERROR where: expected COL=VALUE, got 'broken'" in out
    assert "ERROR combine_columns: Column 'city' is not numerical" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    record = json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])
    assert record["source"] == "people.csv"
    assert record["error_type"] == "TRANSFORMATION_FAILED"


def test_context_output(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--context"]) == 0
    out = capsys.readouterr().out
    assert "Dataset Summary:" in out
    assert "- Numerical columns: age, score" in out


def test_describe_output(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--describe", "age", "--describe", "score"]) == 0
    out = capsys.readouterr().out

    assert (
        "DISTRIBUTION age count=5 min=27 max=45 mean=34.4 median=34 q1=27 q3=39 stdDev=7.797" in out
    )
    assert "DISTRIBUTION score count=4 min=65 max=91.25" in out


def test_describe_categorical_column_is_partial_failure(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--describe", "city"]) == 2
    out = capsys.readouterr().out
    assert "ERROR describe: Column city is not numerical" in out
    assert "DISTRIBUTION" not in out


def test_correlation_output(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--correlation", "spearman"]) == 0
    out = capsys.readouterr().out

    assert "CORRELATION method=spearman" in out
    assert "  age: age=" in out
    assert "  score: age=" in out


def test_missing_file_is_fatal(temp_workdir: Path, capsys):
    assert cli_main(["data/missing.csv"]) == 1
    assert "ERROR read: file not found" in capsys.readouterr().out


def test_file_without_rows_is_fatal(temp_workdir: Path, capsys):
    path = temp_workdir / "data" / "header.csv"
    path.write_text("a,b\n", encoding="utf-8")

    assert cli_main([str(path)]) == 1
    assert "ERROR load: No valid data found in the uploaded file" in capsys.readouterr().out
    log = next((temp_workdir / "logs").glob("errors-*.log"))
    assert json.loads(log.read_text(encoding="utf-8"))["error_type"] == "NO_VALID_DATA"


def test_invalid_config_is_fatal(write_csv: Path, temp_workdir: Path, capsys):
    (temp_workdir / "config" / "analysis.yml").write_text("sample_size: -1\n", encoding="utf-8")
    assert cli_main([str(write_csv)]) == 1
    assert "ERROR config: config validation failed" in capsys.readouterr().out


def test_config_from_env(write_csv: Path, temp_workdir: Path, monkeypatch, capsys):
    cfg = temp_workdir / "custom.yml"
    cfg.write_text("most_common_limit: 1\n", encoding="utf-8")
    monkeypatch.setenv("CSV_INSIGHT_CONFIG", str(cfg))

    assert cli_main([str(write_csv)]) == 0
    out = capsys.readouterr().out
    assert "COLUMN city kind=categorical unique=3 missing=0 top=Paris:2\n" in out


def test_dotenv_sets_config(write_csv: Path, temp_workdir: Path, monkeypatch, capsys):
    cfg = temp_workdir / "from_env.yml"
    cfg.write_text("numeric_threshold: 1.0\n", encoding="utf-8")
    (temp_workdir / ".env").write_text(f"CSV_INSIGHT_CONFIG={cfg}\n", encoding="utf-8")
    # registered so the value written by python-dotenv is undone after the test
    monkeypatch.setenv("CSV_INSIGHT_CONFIG", "unset.yml")

    assert cli_main([str(write_csv), "--json"]) == 0
    data = _json_block(capsys.readouterr().out)
    # score has a missing value, so it is no longer numerical at threshold 1.0
    assert data["numericalColumns"] == ["age"]


def test_debug_mode(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--debug", "--sort", "age"]) == 0
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG history: " in out


def test_inspect_data(write_csv: Path, capsys):
    assert cli_main([str(write_csv), "--inspect-data"]) == 0
    out = capsys.readouterr().out
    assert "FILE: people.csv cols=['name', 'city', 'age', 'score']" in out
    assert "SUMMARY" not in out
