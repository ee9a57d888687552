# alphametics.py
# Backtracking solver for alphametics puzzles such as "SEND + MORE == MONEY".
# - Parses the puzzle into operand words, a result word and its letter sets
# - Binds letters to digits depth-first, ascending digits, leading letters never 0
# - Checks the full equation with an explicit numeric evaluation at every leaf
# - Optional rightmost-column pruning and a JSON event trace for visualization

import json
import logging
import os
import re
from collections import namedtuple

logger = logging.getLogger(__name__)

MAX_LETTERS = 10
WORD_RE = re.compile(r"^[A-Z]+$")


# ---------- Errors ----------
class AlphameticsError(ValueError):
    """Base class for errors reported back to the caller."""


class MalformedPuzzle(AlphameticsError):
    pass


class TooManyLetters(AlphameticsError):
    def __init__(self, letters):
        self.letters = letters
        super().__init__(
            f"puzzle uses {len(letters)} distinct letters, at most {MAX_LETTERS} allowed"
        )


class NoSolution(AlphameticsError):
    pass


class LeadingZero(ValueError):
    """A multi-letter word evaluated with its first letter bound to 0."""


class UnboundLetter(AssertionError):
    """A word was evaluated before all of its letters were bound."""


class SolveAborted(RuntimeError):
    pass


# ---------- Trace utilities ----------
class TraceWriter:
    """
    Collects search events and writes them to a JSON file as a list.

    ASSIGN / UNASSIGN / PRUNE are step events: only the first `max_events`
    of them are kept, then a single TRUNCATED event marks the cut. Every other
    event is always kept. The file is rewritten every `flush_every` events and
    on close(); path=None keeps the events in memory only.
    """

    STEP_EVENTS = ("ASSIGN", "UNASSIGN", "PRUNE")

    def __init__(self, path="trace.json", max_events=5000, flush_every=200):
        self.path = path
        self.max_events = max_events
        self.flush_every = flush_every
        self.events = []
        self.truncated = False
        self._steps = 0
        self._pending = 0
        self._write_now()  # create/overwrite file

    def _write_now(self):
        self._pending = 0
        if self.path is None:
            return
        # replace atomically so a polling reader never sees a partial list
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.events, f, indent=2)
        os.replace(tmp_path, self.path)

    def _append(self, ev):
        self.events.append(ev)
        self._pending += 1
        if self._pending >= self.flush_every:
            self._write_now()

    def add(self, ev):
        if ev["type"] in self.STEP_EVENTS:
            if self._steps >= self.max_events:
                if not self.truncated:
                    self.truncated = True
                    self._append({"type": "TRUNCATED", "limit": self.max_events})
                return
            self._steps += 1
        self._append(ev)

    def close(self):
        self._write_now()


# ---------- Puzzle structure ----------
class Puzzle(namedtuple("Puzzle", ["operands", "result", "letters", "leading"])):
    """
    operands: tuple of addend words
    result: the word on the right of "=="
    letters: distinct letters in first-occurrence order, operands then result
    leading: letters that start a word longer than one letter
    """

    __slots__ = ()

    @property
    def words(self):
        return self.operands + (self.result,)


def parse_puzzle(text):
    """Split `text` into a Puzzle, raising MalformedPuzzle or TooManyLetters."""
    if not isinstance(text, str):
        raise MalformedPuzzle(f"puzzle must be a string, got {type(text).__name__}")

    sides = text.split(" == ")
    if len(sides) != 2:
        raise MalformedPuzzle("puzzle must contain exactly one ' == ' separator")

    operands = tuple(word.strip() for word in sides[0].split(" + "))
    result = sides[1].strip()

    for word in operands:
        if not word:
            raise MalformedPuzzle("empty operand word")
    if not result:
        raise MalformedPuzzle("empty result word")

    letters = []
    leading = set()
    for word in operands + (result,):
        if not WORD_RE.match(word):
            raise MalformedPuzzle(f"invalid characters in word {word!r}")
        for ch in word:
            if ch not in letters:
                letters.append(ch)
        if len(word) > 1:
            leading.add(word[0])

    if len(letters) > MAX_LETTERS:
        raise TooManyLetters(letters)

    return Puzzle(operands, result, tuple(letters), frozenset(leading))


def bind_presets(puzzle, presets):
    """
    Validate preset letters against `puzzle` and return them as a fresh dict.

    Lowercase letters, letters missing from the puzzle and values that are
    not digits raise MalformedPuzzle, matching the strict puzzle grammar. Conflicting presets are left for solve() to reject.
    """
    assignment = {}
    if not presets:
        return assignment
    for letter, digit in presets.items():
        if isinstance(letter, str) and letter != letter.upper() and letter.upper() in puzzle.letters:
            raise MalformedPuzzle(f"preset letters must be uppercase, got {letter!r}")
        if letter not in puzzle.letters:
            raise MalformedPuzzle(f"preset letter {letter!r} does not appear in the puzzle")
        if isinstance(digit, bool) or not isinstance(digit, int) or not 0 <= digit <= 9:
            raise MalformedPuzzle(f"preset for {letter!r} must be a digit 0-9, got {digit!r}")
        assignment[letter] = digit
    return assignment


# ---------- Evaluation ----------
def word_value(word, assignment):
    """Numeric value of `word` under `assignment`, most significant letter first."""
    value = 0
    for ch in word:
        try:
            digit = assignment[ch]
        except KeyError:
            raise UnboundLetter(f"letter {ch!r} of {word!r} has no digit") from None
        value = value * 10 + digit
    if len(word) > 1 and assignment[word[0]] == 0:
        raise LeadingZero(f"{word!r} would start with 0")
    return value


def _check_leaf(puzzle, assignment):
    """Return a copy of the assignment if it satisfies the equation, else None."""
    try:
        total = sum(word_value(w, assignment) for w in puzzle.operands)
        expected = word_value(puzzle.result, assignment)
    except LeadingZero:
        return None
    if total == expected:
        return dict(assignment)
    return None


# ---------- Column pruning ----------
def _column_letters(puzzle):
    width = max(len(w) for w in puzzle.words)
    return [
        {w[-1 - col] for w in puzzle.words if col < len(w)}
        for col in range(width)
    ]


def _column_order(puzzle):
    """Letters ordered rightmost column first, so low columns complete early."""
    order = []
    width = max(len(w) for w in puzzle.words)
    for col in range(width):
        for w in puzzle.words:
            if col < len(w) and w[-1 - col] not in order:
                order.append(w[-1 - col])
    return order


def _column_checks(puzzle, free, bound):
    """
    For each search depth, the number of low-order columns that become fully
    bound at that depth, or 0 when binding that letter completes no column.
    """
    columns = _column_letters(puzzle)
    known = set(bound)
    checks = [0] * (len(free) + 1)
    done = 0
    for depth in range(len(free) + 1):
        if depth:
            known.add(free[depth - 1])
        complete = done
        while complete < len(columns) and columns[complete] <= known:
            complete += 1
        if complete > done:
            checks[depth] = complete
            done = complete
    return checks


def _low_digits(word, width, assignment):
    value = 0
    for ch in word[-width:]:
        value = value * 10 + assignment[ch]
    return value


def _columns_agree(puzzle, assignment, width):
    total = sum(_low_digits(w, width, assignment) for w in puzzle.operands)
    return (total - _low_digits(puzzle.result, width, assignment)) % 10 ** width == 0


# ---------- Main solver API ----------
def solve(puzzle, presets=None, trace=None, abort=None, prune=False):
    """
    puzzle: puzzle string, e.g. "SEND + MORE == MONEY", or a parsed Puzzle
    presets: optional dict {letter: digit} fixed before the search starts
    trace: optional TraceWriter receiving START/ASSIGN/UNASSIGN/PRUNE/END events
    abort: optional threading.Event; the search stops with SolveAborted once set
    prune: enumerate letters by column and drop branches whose low columns
        cannot add up
    Returns: dict letter -> digit covering every letter of the puzzle.
    Raises NoSolution when no assignment satisfies the equation.
    """
    if not isinstance(puzzle, Puzzle):
        puzzle = parse_puzzle(puzzle)
    assignment = bind_presets(puzzle, presets)

    order = _column_order(puzzle) if prune else puzzle.letters
    free = [ch for ch in order if ch not in assignment]
    if prune:
        checks = _column_checks(puzzle, free, assignment)
    else:
        checks = [0] * (len(free) + 1)

    if trace is not None:
        trace.add({
            "type": "START",
            "operands": list(puzzle.operands),
            "result": puzzle.result,
            "letters": list(puzzle.letters),
            "presets": dict(assignment),
            "prune": bool(prune),
        })

    steps = 0
    used = [False] * 10

    def backtrack(depth):
        nonlocal steps
        steps += 1

        width = checks[depth]
        if width and not _columns_agree(puzzle, assignment, width):
            if trace is not None:
                trace.add({"type": "PRUNE", "columns": width})
            return None

        if depth == len(free):
            return _check_leaf(puzzle, assignment)

        letter = free[depth]
        for digit in range(10):
            if abort is not None and abort.is_set():
                raise SolveAborted("search aborted")
            if used[digit]:
                continue
            if digit == 0 and letter in puzzle.leading:
                continue

            assignment[letter] = digit
            used[digit] = True
            if trace is not None:
                trace.add({"type": "ASSIGN", "var": letter, "value": digit})
            try:
                found = backtrack(depth + 1)
            finally:
                del assignment[letter]
                used[digit] = False
            if found is not None:
                return found
            if trace is not None:
                trace.add({"type": "UNASSIGN", "var": letter})
        return None

    logger.debug("Solving %s with %d free letters", " + ".join(puzzle.operands), len(free))
    try:
        digits = list(assignment.values())
        if len(set(digits)) != len(digits):
            raise NoSolution("presets bind two letters to the same digit")
        if any(assignment[ch] == 0 for ch in puzzle.leading if ch in assignment):
            raise NoSolution("presets bind a leading letter to 0")
        for digit in digits:
            used[digit] = True

        sol = backtrack(0)
        if sol is None:
            raise NoSolution(f"no assignment satisfies {' + '.join(puzzle.operands)} == {puzzle.result}")

        logger.info("Solved after %d nodes", steps)
        if trace is not None:
            trace.add({"type": "END", "result": sol, "reason": "solution found", "steps": steps})
        return sol
    except (NoSolution, SolveAborted) as exc:
        logger.info("Search ended without a solution after %d nodes: %s", steps, exc)
        if trace is not None:
            trace.add({"type": "END", "result": None, "reason": str(exc), "steps": steps})
        raise
    finally:
        # mark completion explicitly so a poller can detect it
        if trace is not None:
            trace.add({"type": "SOLVER_DONE", "note": "Solver finished writing full trace."})
            trace.close()
