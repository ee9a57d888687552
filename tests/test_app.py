"""Flask API tests — /solve, /trace, /clear, /health.

Tests cover:
    - Puzzle errors map to JSON error bodies (400 malformed, 422 otherwise)
    - "wait" solves inline; otherwise a background solve writes the trace
    - /trace reports ready only once SOLVER_DONE is the last event
    - /clear aborts a running solve and removes the trace file
"""

import os

import pytest

import app as app_module


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(app_module, "TRACE_PATH", str(tmp_path / "trace.json"))
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c
    app_module.runner.stop()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


# --- /solve -------------------------------------------------------------------


def test_solve_wait_returns_solution(client):
    resp = client.post("/solve", json={"puzzle": "I + BB == ILL", "wait": True})
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "solved", "solution": {"I": 1, "B": 9, "L": 0}}


def test_solve_wait_with_presets_and_pruning(client):
    resp = client.post("/solve", json={
        "puzzle": "ONE + ONE == TWO", "presets": {"O": 4}, "prune": True, "wait": True,
    })
    assert resp.status_code == 200
    assert resp.get_json()["solution"]["O"] == 4


def test_solve_malformed_puzzle(client):
    resp = client.post("/solve", json={"puzzle": "AB == "})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"


def test_solve_missing_body(client):
    resp = client.post("/solve")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"


def test_solve_body_must_be_object(client):
    resp = client.post("/solve", json=["SEND + MORE == MONEY"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"


def test_solve_string_body_rejected(client):
    resp = client.post("/solve", json="SEND + MORE == MONEY")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"


@pytest.mark.parametrize("field", ["prune", "wait"])
def test_solve_flags_must_be_booleans(client, field):
    resp = client.post("/solve", json={"puzzle": "I + BB == ILL", field: "false"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"
    assert field in resp.get_json()["message"]


def test_solve_presets_must_be_object(client):
    resp = client.post("/solve", json={"puzzle": "I + BB == ILL", "presets": [1, 2]})
    assert resp.status_code == 400


def test_solve_unknown_preset_letter(client):
    resp = client.post("/solve", json={"puzzle": "I + BB == ILL", "presets": {"Z": 1}})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPuzzle"


def test_solve_too_many_letters(client):
    resp = client.post("/solve", json={"puzzle": "ABCDEF + GHIJK == ABCDEFK"})
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "TooManyLetters"


def test_solve_wait_no_solution(client):
    resp = client.post("/solve", json={"puzzle": "A == B", "wait": True})
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "NoSolution"


def test_solve_in_background_writes_trace(client):
    resp = client.post("/solve", json={"puzzle": "AS + A == MOM"})
    assert resp.status_code == 202
    assert resp.get_json() == {"status": "started", "prune": False}

    app_module.runner.join(timeout=30)
    data = client.get("/trace").get_json()
    assert data["ready"] is True
    assert data["events"][0]["type"] == "START"
    assert data["events"][-2]["result"] == {"A": 9, "S": 2, "M": 1, "O": 0}


def test_background_no_solution_still_finishes_trace(client):
    client.post("/solve", json={"puzzle": "AB + AB == AB"})
    app_module.runner.join(timeout=30)
    data = client.get("/trace").get_json()
    assert data["ready"] is True
    assert data["events"][-2]["result"] is None


# --- /trace and /clear --------------------------------------------------------


def test_trace_before_any_solve(client):
    assert client.get("/trace").get_json() == {"ready": False, "events": []}


def test_trace_partial_file_not_ready(client):
    with open(app_module.TRACE_PATH, "w", encoding="utf-8") as f:
        f.write('[{"type": "START"')
    assert client.get("/trace").get_json() == {"ready": False, "events": []}


def test_trace_without_done_marker_not_ready(client):
    with open(app_module.TRACE_PATH, "w", encoding="utf-8") as f:
        f.write('[{"type": "START"}]')
    data = client.get("/trace").get_json()
    assert data["ready"] is False
    assert data["events"] == [{"type": "START"}]


def test_clear_aborts_and_removes_trace(client):
    client.post("/solve", json={"puzzle": "SEND + MORE == MONEY"})
    resp = client.post("/clear")
    assert resp.get_json() == {"cleared": True}
    assert not os.path.exists(app_module.TRACE_PATH)


def test_new_solve_replaces_running_one(client):
    client.post("/solve", json={"puzzle": "SEND + MORE == MONEY"})
    client.post("/solve", json={"puzzle": "I + BB == ILL"})
    app_module.runner.join(timeout=30)
    data = client.get("/trace").get_json()
    assert data["ready"] is True
    assert data["events"][0]["operands"] == ["I", "BB"]
