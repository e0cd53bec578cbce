import argparse
import json

import pytest

from csvmap.cli import main, parse_map_args


@pytest.fixture
def sample_csv(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_text("Name,Email,Misc\nJohn,john@x.com,a\nJane,jane@x.com,b\n", encoding="utf-8")
    return path


def test_parse_map_args():
    assert parse_map_args(["Customer Email=email", "a=b=skip"]) == {"Customer Email": "email", "a=b": "skip"}
    with pytest.raises(argparse.ArgumentTypeError):
        parse_map_args(["no-equals"])


def test_convert_json(sample_csv, tmp_path):
    out = tmp_path / "out.json"
    assert main(["convert", str(sample_csv), "--format", "json", "-m", "Misc=category", "-o", str(out)]) == 0
    assert json.loads(out.read_text(encoding="utf-8")) == [
        {"name": "John", "email": "john@x.com", "category": "a"},
        {"name": "Jane", "email": "jane@x.com", "category": "b"},
    ]


def test_convert_writes_suggested_filename(sample_csv, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["convert", str(sample_csv)]) == 0

    written = list(tmp_path.glob("processed_data_*.csv"))
    assert len(written) == 1
    assert written[0].read_text(encoding="utf-8") == "name,email\nJohn,john@x.com\nJane,jane@x.com"
    assert "Wrote 2 records" in capsys.readouterr().out


def test_convert_unknown_target(sample_csv, tmp_path, capsys):
    assert main(["convert", str(sample_csv), "-m", "Misc=bogus", "-o", str(tmp_path / "x.csv")]) == 1
    assert "Unknown target field" in capsys.readouterr().err


def test_convert_missing_file(tmp_path, capsys):
    assert main(["convert", str(tmp_path / "absent.csv")]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_preview(sample_csv, capsys):
    assert main(["preview", str(sample_csv)]) == 0
    out = capsys.readouterr().out
    assert "3 columns, 2 data rows" in out
    assert "(unmapped)" in out


def test_no_command(capsys):
    assert main([]) == 1
