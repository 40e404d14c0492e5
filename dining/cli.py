"""Command line of the dining philosophers simulation."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence, TextIO

from dining.forked import run_processes
from dining.params import UsageError, parse_params, usage_text
from dining.semaphored import run_semaphores
from dining.threaded import run_threads

_RUNNERS: dict[str, Callable[..., int | None]] = {
    "threads": run_threads,
    "semaphores": run_semaphores,
    "processes": run_processes,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="philo",
        description="Simulate philosophers sharing forks around a table.",
    )
    parser.add_argument(
        "--mode",
        choices=sorted(_RUNNERS),
        default="threads",
        help="one lock per fork (threads), a shared fork semaphore "
        "(semaphores) or one process per philosopher (processes)",
    )
    parser.add_argument(
        "values",
        nargs="*",
        metavar="N",
        help="number_of_philosophers time_to_die time_to_eat time_to_sleep "
        "[number_of_times_each_philosopher_must_eat]",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the arguments, run the simulation and return the exit code."""
    args = _build_parser().parse_args(argv)
    try:
        params = parse_params(args.values)
    except UsageError:
        sys.stderr.write(usage_text())
        return 1
    stream: TextIO = sys.stdout
    try:
        _RUNNERS[args.mode](params, stream)
    except RuntimeError as err:
        sys.stderr.write(f"\nPhilo: error: {err}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())