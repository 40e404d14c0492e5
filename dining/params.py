"""Command-line parameters of the dining philosophers simulation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

MAX_PHILOSOPHERS = 200
MIN_TIME_MS = 60

_DIGITS = frozenset("0123456789")
_WHITESPACE = " \t\n\v\f\r"

_USAGE_LINES = (
    "Philo: Usage: > 1 value only, no more than 200 philosophers\n",
    "number_of_philosopher time_to_die time_to_eat time_to_sleep\n",
    "[number_of_time_each_philosophers_must_eat]\n",
    "Max philo number: 200, minimum times 60\n",
)


class UsageError(ValueError):
    """Raised when the command-line arguments are not acceptable."""


@dataclass(frozen=True)
class Params:
    """Validated simulation parameters; all times are in milliseconds."""

    nb_philo: int
    time_to_die: int
    time_to_eat: int
    time_to_sleep: int
    meals: int | None = None

    def meals_reached(self, eaten: int) -> bool:
        """Tell whether ``eaten`` meals satisfy the optional meal limit."""
        return self.meals is not None and eaten >= self.meals


def is_digit_only(text: str) -> bool:
    """Return True if every character of ``text`` is an ASCII digit."""
    return all(char in _DIGITS for char in text)


def parse_int(text: str) -> int:
    """Read a leading integer the way ``atoi`` does; 0 when nothing is read."""
    stripped = text.lstrip(_WHITESPACE)
    sign = 1
    body = stripped
    if stripped[:1] in ("-", "+"):
        sign = -1 if stripped[0] == "-" else 1
        body = stripped[1:]
    digits = []
    for char in body:
        if char not in _DIGITS:
            break
        digits.append(char)
    if not digits:
        return 0
    return sign * int("".join(digits))


def check_arguments(args: Sequence[str]) -> None:
    """Check the argument count and that each argument is made of digits."""
    if not 4 <= len(args) <= 5:
        raise UsageError(f"expected 4 or 5 arguments, got {len(args)}")
    for arg in args:
        if not is_digit_only(arg):
            raise UsageError(f"not a positive number: {arg!r}")


def parse_params(args: Sequence[str]) -> Params:
    """Validate the arguments (program name excluded) and build ``Params``."""
    check_arguments(args)
    values = [parse_int(arg) for arg in args]
    for arg, value in zip(args, values):
        if value <= 0:
            raise UsageError(f"value must be greater than zero: {arg!r}")
    nb_philo, time_to_die, time_to_eat, time_to_sleep = values[:4]
    meals = values[4] if len(values) == 5 else None
    if nb_philo > MAX_PHILOSOPHERS:
        raise UsageError(f"no more than {MAX_PHILOSOPHERS} philosophers")
    if min(time_to_die, time_to_eat, time_to_sleep) < MIN_TIME_MS:
        raise UsageError(f"times must be at least {MIN_TIME_MS} ms")
    return Params(nb_philo, time_to_die, time_to_eat, time_to_sleep, meals)


def usage_text() -> str:
    """Return the usage message shown on invalid arguments."""
    return "".join(_USAGE_LINES)