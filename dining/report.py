"""Status lines written by the philosophers and their monitors."""

from __future__ import annotations

import enum
import sys
import threading
from typing import TextIO


class Message(str, enum.Enum):
    """Text of each status line."""

    HAS_FORK = "has taken a fork"
    EATING = "is eating"
    SLEEPING = "is sleeping"
    THINKING = "is thinking"
    DIED = "died"


class State(enum.Enum):
    """States a philosopher goes through."""

    NONE = enum.auto()
    STARTUP = enum.auto()
    HAS_FORK = enum.auto()
    EATING = enum.auto()
    FINISHED_MEAL = enum.auto()
    REACHED_MEALS_NB = enum.auto()
    SLEEPING = enum.auto()
    THINKING = enum.auto()
    DEAD = enum.auto()


def format_number(value: int) -> str:
    """Format a non-negative integer in decimal."""
    if value < 0:
        raise ValueError(f"cannot format a negative number: {value}")
    return str(value)


def format_status(timestamp: int, philo_id: int, message: Message | str) -> str:
    """Build one status line: timestamp, philosopher number, message."""
    text = message.value if isinstance(message, Message) else message
    return f"{format_number(timestamp)} {format_number(philo_id)} {text}\n"


class StatusPrinter:
    """Serialises status lines and silences them once a death is reported."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()
        self._death_reported = False

    @property
    def death_reported(self) -> bool:
        """True once a death line has been written."""
        return self._death_reported

    def _write(self, line: str) -> None:
        self._stream.write(line)
        self._stream.flush()

    def put_regular(self, timestamp: int, philo_id: int, message: Message | str) -> bool:
        """Write a status line unless a death was reported; return whether written."""
        with self._lock:
            if self._death_reported:
                return False
            self._write(format_status(timestamp, philo_id, message))
            return True

    def put_death(self, timestamp: int, philo_id: int) -> bool:
        """Write the first death line only; return whether it was written."""
        if self._death_reported:
            return False
        with self._lock:
            if self._death_reported:
                return False
            self._death_reported = True
            self._write(format_status(timestamp, philo_id, Message.DIED))
            return True