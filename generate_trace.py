# generate_trace.py

import argparse
import logging
import sys

from alphametics import (
    MalformedPuzzle,
    NoSolution,
    TooManyLetters,
    TraceWriter,
    bind_presets,
    parse_puzzle,
    solve,
)


def parse_preset(text):
    letter, sep, digit = text.partition("=")
    if not sep or not digit.strip().isdigit():
        raise argparse.ArgumentTypeError(f"expected LETTER=DIGIT, got {text!r}")
    return letter.strip(), int(digit)


def build_parser():
    parser = argparse.ArgumentParser(description="Solve an alphametics puzzle and save its search trace.")
    parser.add_argument("puzzle", help='Puzzle in double quotes, e.g. "SEND + MORE == MONEY"')
    parser.add_argument("-o", "--output", default="trace.json", help="Where to write the trace")
    parser.add_argument("--prune", action="store_true", help="Enable column pruning")
    parser.add_argument("--preset", action="append", type=parse_preset, default=[],
                        metavar="LETTER=DIGIT", help="Fix a letter before searching (repeatable)")
    parser.add_argument("--max-events", type=int, default=5000, help="Step events kept in the trace")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        puzzle = parse_puzzle(args.puzzle)
        presets = bind_presets(puzzle, dict(args.preset))
    except (MalformedPuzzle, TooManyLetters) as e:
        print(f"Invalid puzzle: {e}", file=sys.stderr)
        return 2

    trace = TraceWriter(args.output, max_events=args.max_events)
    try:
        solution = solve(puzzle, presets=presets, trace=trace, prune=args.prune)
    except NoSolution:
        print("No solution")
        return 1

    for k in sorted(solution):
        print(f"{k} = {solution[k]}")
    print(f"Trace saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
