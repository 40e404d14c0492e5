"""One philosopher living alone in its own process, sharing forks through semaphores."""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, TextIO

from dining.clock import SimulationClock
from dining.params import Params
from dining.report import Message, State, format_status

CHILD_SUCCESS = 0
CHILD_FAILURE = 1
CHILD_IS_DEAD = 42

POLL_SECONDS = 0.0002
PRINT_PAUSE = 0.0001
ODD_START_DELAY = 0.015
LONE_WAIT_FACTOR = 1.05

ERR_PTHREAD = "\nPhilo: error: pthread function failed\n"


@dataclass
class SharedResources:
    """Semaphores shared by every philosopher at the table.

    ``forks_heap`` counts the forks lying on the table, ``stdout`` serialises
    output and ``race_starter`` holds everybody back until the table is set.
    Any objects with ``acquire(timeout=...)`` and ``release()`` will do, so
    process-shared semaphores can be used as well as thread semaphores.
    """

    params: Params
    forks_heap: Any
    stdout: Any
    race_starter: Any
    stream: TextIO | None = None

    @classmethod
    def local(cls, params: Params, stream: TextIO | None = None) -> SharedResources:
        """Build resources backed by thread semaphores."""
        return cls(
            params=params,
            forks_heap=threading.Semaphore(params.nb_philo),
            stdout=threading.Semaphore(1),
            race_starter=threading.Semaphore(params.nb_philo),
            stream=stream,
        )


class LonePhilosopher:
    """A philosopher with its own clock, monitor and state machine."""

    def __init__(
        self,
        resources: SharedResources,
        philo_id: int,
        clock: SimulationClock | None = None,
    ) -> None:
        self.resources = resources
        self.params = resources.params
        self.philo_id = philo_id
        self.clock = clock if clock is not None else SimulationClock()
        self._stream = resources.stream if resources.stream is not None else sys.stdout
        self.meals_eaten = 0
        self.last_meal = 0
        self._stamp = 0
        self._held = 0
        self._death = threading.Event()
        self._death_lock = threading.Lock()
        self.done = False
        self.death_timestamp: int | None = None

    @property
    def death_reported(self) -> bool:
        """True once this philosopher's death has been reported."""
        return self._death.is_set()

    @property
    def forks_held(self) -> int:
        """Number of forks currently in hand."""
        return self._held

    def _write(self, line: str) -> None:
        self._stream.write(line)
        self._stream.flush()

    def _acquire(self, semaphore: Any) -> bool:
        while not semaphore.acquire(timeout=POLL_SECONDS):
            if self._death.is_set():
                return False
        return True

    def _wait_until(self, condition: Callable[[], bool]) -> None:
        while not condition():
            time.sleep(POLL_SECONDS)

    def _status(self, message: Message) -> None:
        if self._death.is_set():
            return
        stdout = self.resources.stdout
        if not self._acquire(stdout):
            return
        try:
            if not self._death.is_set():
                self._write(format_status(self._stamp, self.philo_id, message))
        finally:
            stdout.release()
        time.sleep(PRINT_PAUSE)

    def _take_fork(self) -> bool:
        if not self._acquire(self.resources.forks_heap):
            return False
        self._held += 1
        self._stamp = self.clock.current
        self._status(Message.HAS_FORK)
        return True

    def _release_forks(self) -> None:
        for _ in range(self._held):
            self.resources.forks_heap.release()
        self._held = 0

    def acquire_forks(self) -> bool:
        """Take two forks from the heap; False if a death interrupted the wait."""
        if self.meals_eaten == 0 and self.philo_id % 2 != 0:
            time.sleep(ODD_START_DELAY)
        if not self._take_fork():
            return False
        if not self._death.is_set() and self.params.nb_philo > 1:
            if not self._take_fork():
                return False
        if self.params.nb_philo == 1:
            self._death.wait(self.params.time_to_die * LONE_WAIT_FACTOR / 1000)
        return True

    def take_forks_and_eat(self) -> State:
        """Take forks, eat, put the forks back and return the resulting state."""
        if not self.acquire_forks():
            self._release_forks()
            return State.DEAD
        self.last_meal = self.clock.current
        self._stamp = self.clock.current
        if not self._death.is_set():
            with self._death_lock:
                self._status(Message.EATING)
            self._wait_until(
                lambda: self.clock.current - self.last_meal >= self.params.time_to_eat
                or self._death.is_set()
            )
            self.meals_eaten += 1
        self._stamp = self.clock.current
        self._release_forks()
        if self.params.meals_reached(self.meals_eaten):
            return State.REACHED_MEALS_NB
        return State.FINISHED_MEAL

    def sleep_and_think(self) -> State:
        """Sleep, think, then go back to the table for the next meal."""
        self._status(Message.SLEEPING)
        fell_asleep = self._stamp
        self._wait_until(
            lambda: self.clock.current - fell_asleep >= self.params.time_to_sleep
        )
        self._stamp = self.clock.current
        self._status(Message.THINKING)
        return self.take_forks_and_eat()

    def behave(self) -> State:
        """Run the state machine until death or the meal limit; return the last state."""
        starter = self.resources.race_starter
        if not self._acquire(starter):
            return State.DEAD
        starter.release()
        state = State.STARTUP
        while not self._death.is_set() and state is not State.REACHED_MEALS_NB:
            if state in (State.THINKING, State.STARTUP):
                state = self.take_forks_and_eat()
            elif state is State.FINISHED_MEAL:
                state = self.sleep_and_think()
            else:
                break
        if state is State.REACHED_MEALS_NB:
            self.done = True
        return state

    def monitor(self) -> bool:
        """Watch for starvation; report the death and return True if it happens.

        The output semaphore is kept after the death line so that no other
        philosopher sharing it can print anything afterwards.
        """
        now = 0
        while True:
            alive = now - self.last_meal <= self.params.time_to_die
            if not alive or self.done:
                break
            time.sleep(POLL_SECONDS)
            now = self.clock.current
        if alive or self.done:
            return False
        self.resources.stdout.acquire()
        with self._death_lock:
            self._death.set()
            self.death_timestamp = now
            self._write(format_status(now, self.philo_id, Message.DIED))
        return True

    def run(self) -> int:
        """Run clock, monitor and state machine; return the process exit code."""
        self.clock.update()
        threads = [
            threading.Thread(
                target=self.clock.run,
                args=(lambda: not self.done and not self._death.is_set(),),
                name=f"clock-{self.philo_id}",
            ),
            threading.Thread(target=self.monitor, name=f"monitor-{self.philo_id}"),
            threading.Thread(target=self.behave, name=f"philo-{self.philo_id}"),
        ]
        started: list[threading.Thread] = []
        try:
            for thread in threads:
                thread.start()
                started.append(thread)
        except RuntimeError:
            self._death.set()
            for thread in started:
                thread.join()
            sys.stderr.write(ERR_PTHREAD)
            return CHILD_FAILURE
        for thread in threads:
            thread.join()
        return CHILD_IS_DEAD if self.death_timestamp is not None else CHILD_SUCCESS


def run_philosopher(resources: SharedResources, philo_id: int) -> int:
    """Run one philosopher to the end and return its exit code."""
    return LonePhilosopher(resources, philo_id).run()