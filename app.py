import json
import logging
import os
import threading
import time

from flask import Flask, jsonify, request
from flask_cors import CORS

from alphametics import (
    AlphameticsError,
    MalformedPuzzle,
    SolveAborted,
    TraceWriter,
    bind_presets,
    parse_puzzle,
    solve,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Path to trace file
TRACE_PATH = os.environ.get(
    "ALPHAMETICS_TRACE_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "trace.json"),
)
TRACE_MAX_EVENTS = int(os.environ.get("ALPHAMETICS_TRACE_MAX_EVENTS", "5000"))
LOG_LEVEL = os.environ.get("ALPHAMETICS_LOG_LEVEL", "INFO")


# --------------------------------------------------
# Utility: Run solver in a background thread
# --------------------------------------------------
def remove_trace():
    """Delete the trace file, retrying while another reader still holds it."""
    if not os.path.exists(TRACE_PATH):
        return
    for _ in range(5):
        try:
            os.remove(TRACE_PATH)
            return
        except FileNotFoundError:
            return
        except PermissionError:
            # File might still be open in a previous /trace read
            time.sleep(0.3)
    logger.warning("Couldn't remove old trace at %s", TRACE_PATH)


def run_solver(puzzle, presets, prune, abort):
    """Runs one solve, writing TRACE_PATH as it goes."""
    remove_trace()
    trace = TraceWriter(TRACE_PATH, max_events=TRACE_MAX_EVENTS)
    try:
        solve(puzzle, presets=presets, trace=trace, abort=abort, prune=prune)
    except SolveAborted:
        logger.info("Solver aborted")
    except AlphameticsError as e:
        logger.info("Solver finished: %s", e)
    except Exception:
        logger.exception("Solver error")


class SolverRunner:
    """Keeps at most one background solve alive at a time."""

    def __init__(self):
        self._lock = threading.Lock()
        self._thread = None
        self._abort = None

    def start(self, puzzle, presets, prune):
        with self._lock:
            self._stop_locked()
            self._abort = threading.Event()
            self._thread = threading.Thread(
                target=run_solver,
                args=(puzzle, presets, prune, self._abort),
                daemon=True,
            )
            self._thread.start()

    def stop(self):
        with self._lock:
            self._stop_locked()

    def join(self, timeout=None):
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _stop_locked(self):
        if self._thread is not None and self._thread.is_alive():
            self._abort.set()
            self._thread.join()
        self._thread = None
        self._abort = None


runner = SolverRunner()


# --------------------------------------------------
# Errors
# --------------------------------------------------
@app.errorhandler(AlphameticsError)
def puzzle_error(e):
    status = 400 if isinstance(e, MalformedPuzzle) else 422
    logger.warning("%s: %s", type(e).__name__, e)
    return jsonify({"error": type(e).__name__, "message": str(e)}), status


# --------------------------------------------------
# Routes
# --------------------------------------------------
@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


def _flag(data, name):
    value = data.get(name, False)
    if not isinstance(value, bool):
        raise MalformedPuzzle(f"{name!r} must be true or false, got {value!r}")
    return value


@app.route("/solve", methods=["POST"])
def solve_route():
    """
    Validates the puzzle, then solves it in the background (or inline with "wait").

    Expected JSON:
    {
      "puzzle": "SEND + MORE == MONEY",
      "presets": {"S": 9},
      "prune": true/false,
      "wait": true/false
    }
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedPuzzle("request body must be a JSON object")
    presets = data.get("presets") or {}
    prune = _flag(data, "prune")
    wait = _flag(data, "wait")

    if not isinstance(presets, dict):
        raise MalformedPuzzle("presets must be an object of letter -> digit")
    puzzle = parse_puzzle(data.get("puzzle"))
    presets = bind_presets(puzzle, presets)

    if wait:
        solution = solve(puzzle, presets=presets, prune=prune)
        return jsonify({"status": "solved", "solution": solution})

    runner.start(puzzle, presets, prune)
    return jsonify({"status": "started", "prune": prune}), 202


@app.route("/trace", methods=["GET"])
def trace():
    """
    Returns JSON:
    {
      "ready": true/false,
      "events": [...]
    }
    """
    if not os.path.exists(TRACE_PATH):
        return jsonify({"ready": False, "events": []})

    try:
        with open(TRACE_PATH, "r", encoding="utf-8") as f:
            events = json.load(f)
    except (OSError, json.JSONDecodeError):
        # file replaced or removed mid-read; the next poll will pick it up
        return jsonify({"ready": False, "events": []})

    # Only report ready when solver has fully completed
    ready = bool(events) and events[-1].get("type") == "SOLVER_DONE"
    return jsonify({"ready": ready, "events": events})


@app.route("/clear", methods=["POST"])
def clear():
    """Aborts any running solve and deletes trace.json."""
    runner.stop()
    remove_trace()
    return jsonify({"cleared": True})


# --------------------------------------------------
# Main entry point
# --------------------------------------------------
if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Alphametics solver API running at http://127.0.0.1:5000/")
    app.run(debug=True)
