# solver_basic.py
# Plain permutation search, kept as an independent check on alphametics.solve.

import sys
from itertools import permutations

from alphametics import Puzzle, parse_puzzle


def _number(word, assign):
    n = 0
    for ch in word:
        n = 10 * n + assign[ch]
    return n


def all_solutions(puzzle):
    """Yield every letter -> digit mapping that satisfies `puzzle`."""
    if not isinstance(puzzle, Puzzle):
        puzzle = parse_puzzle(puzzle)
    letters = puzzle.letters

    for perm in permutations(range(10), len(letters)):
        assign = dict(zip(letters, perm))

        # leading letters cannot be zero
        if any(assign[ch] == 0 for ch in puzzle.leading):
            continue

        total = sum(_number(w, assign) for w in puzzle.operands)
        if total == _number(puzzle.result, assign):
            yield assign


def brute_force_solve(puzzle):
    """First solution in permutation order, or None."""
    return next(all_solutions(puzzle), None)


if __name__ == "__main__":
    text = sys.argv[1] if len(sys.argv) > 1 else "SEND + MORE == MONEY"
    solution = brute_force_solve(text)
    if solution:
        print("Solution found:")
        for k in sorted(solution.keys()):
            print(f"{k} = {solution[k]}")
    else:
        print("No solution")
