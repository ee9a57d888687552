"""Command-line tests for generate_trace.main."""

import json

import pytest

from generate_trace import main, parse_preset


def test_main_prints_solution_and_writes_trace(tmp_path, capsys):
    out = tmp_path / "trace.json"
    assert main(["I + BB == ILL", "-o", str(out)]) == 0

    printed = capsys.readouterr().out
    assert "B = 9" in printed
    assert "I = 1" in printed
    assert "L = 0" in printed

    with open(out, encoding="utf-8") as f:
        events = json.load(f)
    assert events[-1]["type"] == "SOLVER_DONE"


def test_main_with_prune_and_preset(tmp_path, capsys):
    out = tmp_path / "trace.json"
    assert main(["ONE + ONE == TWO", "-o", str(out), "--prune", "--preset", "O=4"]) == 0
    assert "O = 4" in capsys.readouterr().out


def test_main_no_solution(tmp_path, capsys):
    assert main(["A == B", "-o", str(tmp_path / "trace.json")]) == 1
    assert "No solution" in capsys.readouterr().out


def test_main_invalid_puzzle_writes_no_trace(tmp_path, capsys):
    out = tmp_path / "trace.json"
    assert main(["send + more == money", "-o", str(out)]) == 2
    assert "Invalid puzzle" in capsys.readouterr().err
    assert not out.exists()


def test_main_too_many_letters(tmp_path):
    assert main(["ABCDEF + GHIJK == ABCDEFK", "-o", str(tmp_path / "t.json")]) == 2


def test_parse_preset():
    assert parse_preset("S=9") == ("S", 9)


def test_bad_preset_rejected_by_argparse(tmp_path):
    with pytest.raises(SystemExit):
        main(["I + BB == ILL", "--preset", "S9"])
