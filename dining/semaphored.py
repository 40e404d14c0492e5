"""Philosophers as threads drawing their forks from one shared counting semaphore."""

from __future__ import annotations

import threading
import time
from typing import Callable, TextIO

from dining.clock import SimulationClock
from dining.params import Params
from dining.report import Message, State, StatusPrinter

POLL_SECONDS = 0.0002
ODD_START_DELAY = 0.01
LONE_WAIT_FACTOR = 1.05


class SemaphoreTable:
    """A table whose forks lie in the middle, counted by a single semaphore."""

    def __init__(
        self,
        params: Params,
        stream: TextIO | None = None,
        clock: SimulationClock | None = None,
    ) -> None:
        self.params = params
        self.printer = StatusPrinter(stream)
        self.clock = clock if clock is not None else SimulationClock()
        ids = range(1, params.nb_philo + 1)
        self._forks_heap = threading.Semaphore(params.nb_philo)
        self._held = dict.fromkeys(ids, 0)
        self.last_meal = dict.fromkeys(ids, 0)
        self.meals_eaten = dict.fromkeys(ids, 0)
        self._stamp = dict.fromkeys(ids, 0)
        self._done = dict.fromkeys(ids, False)
        self._death = threading.Event()
        self._death_lock = threading.Lock()
        self._done_lock = threading.Lock()
        self._start = threading.Event()
        self.nb_done = 0
        self.dead_philosopher: int | None = None
        self.death_timestamp: int | None = None

    @property
    def finished(self) -> bool:
        """True once every philosopher has stopped."""
        return self.nb_done >= self.params.nb_philo

    @property
    def death_reported(self) -> bool:
        """True once a death has been reported."""
        return self._death.is_set()

    def _status(self, philo_id: int, message: Message) -> None:
        if not self._death.is_set():
            self.printer.put_regular(self._stamp[philo_id], philo_id, message)

    def _wait_until(self, condition: Callable[[], bool]) -> None:
        while not condition():
            time.sleep(POLL_SECONDS)

    def _take_fork(self, philo_id: int) -> bool:
        while not self._forks_heap.acquire(timeout=POLL_SECONDS):
            if self._death.is_set():
                return False
        self._held[philo_id] += 1
        self._stamp[philo_id] = self.clock.current
        self._status(philo_id, Message.HAS_FORK)
        return True

    def _release_forks(self, philo_id: int) -> None:
        for _ in range(self._held[philo_id]):
            self._forks_heap.release()
        self._held[philo_id] = 0

    def acquire_forks(self, philo_id: int) -> bool:
        """Take two forks from the heap; False if a death interrupted the wait."""
        if self.meals_eaten[philo_id] == 0 and philo_id % 2 != 0:
            time.sleep(ODD_START_DELAY)
        if not self._take_fork(philo_id):
            return False
        if not self._death.is_set() and self.params.nb_philo > 1:
            if not self._take_fork(philo_id):
                return False
        if self.params.nb_philo == 1:
            self._death.wait(self.params.time_to_die * LONE_WAIT_FACTOR / 1000)
        return True

    def take_forks_and_eat(self, philo_id: int) -> State:
        """Take forks, eat, put the forks back and return the resulting state."""
        if not self.acquire_forks(philo_id):
            self._release_forks(philo_id)
            return State.DEAD
        self.last_meal[philo_id] = self.clock.current
        self._stamp[philo_id] = self.clock.current
        if not self._death.is_set():
            with self._death_lock:
                self._status(philo_id, Message.EATING)
            self._wait_until(
                lambda: self.clock.current - self.last_meal[philo_id]
                >= self.params.time_to_eat
                or self._death.is_set()
            )
            self.meals_eaten[philo_id] += 1
        self._stamp[philo_id] = self.clock.current
        self._release_forks(philo_id)
        if self.params.meals_reached(self.meals_eaten[philo_id]):
            return State.REACHED_MEALS_NB
        return State.FINISHED_MEAL

    def sleep_and_think(self, philo_id: int) -> State:
        """Sleep, think, then go back to the table for the next meal."""
        self._status(philo_id, Message.SLEEPING)
        fell_asleep = self._stamp[philo_id]
        self._wait_until(
            lambda: self.clock.current - fell_asleep >= self.params.time_to_sleep
        )
        self._stamp[philo_id] = self.clock.current
        self._status(philo_id, Message.THINKING)
        return self.take_forks_and_eat(philo_id)

    def _mark_done(self, philo_id: int) -> None:
        self._done[philo_id] = True
        with self._done_lock:
            self.nb_done += 1

    def philosopher(self, philo_id: int) -> None:
        """Life of one philosopher, until a death or the meal limit."""
        self._start.wait()
        state = State.STARTUP
        while not self._death.is_set() and state is not State.REACHED_MEALS_NB:
            if state in (State.THINKING, State.STARTUP):
                state = self.take_forks_and_eat(philo_id)
            elif state is State.FINISHED_MEAL:
                state = self.sleep_and_think(philo_id)
            else:
                break
        self._mark_done(philo_id)

    def monitor(self, philo_id: int) -> None:
        """Watch one philosopher and report its death if it starves."""
        now = 0
        while True:
            alive = now - self.last_meal[philo_id] <= self.params.time_to_die
            if not alive or self._death.is_set() or self._done[philo_id]:
                break
            time.sleep(POLL_SECONDS)
            now = self.clock.current
        if alive or self._death.is_set():
            return
        with self._death_lock:
            if self._death.is_set():
                return
            self._death.set()
            self.dead_philosopher = philo_id
            self.death_timestamp = now
            self.printer.put_death(now, philo_id)

    def _abort(self) -> None:
        with self._done_lock:
            self.nb_done = self.params.nb_philo
        self._death.set()
        self._start.set()

    def run(self) -> int | None:
        """Run the simulation; return the philosopher who died, if any."""
        ids = range(1, self.params.nb_philo + 1)
        clock_thread = threading.Thread(
            target=self.clock.run, args=(lambda: not self.finished,), name="clock"
        )
        workers = [
            threading.Thread(target=self.philosopher, args=(i,), name=f"philo-{i}")
            for i in ids
        ] + [
            threading.Thread(target=self.monitor, args=(i,), name=f"monitor-{i}")
            for i in ids
        ]
        started: list[threading.Thread] = []
        try:
            for thread in (clock_thread, *workers):
                thread.start()
                started.append(thread)
        except RuntimeError as err:
            self._abort()
            for thread in started:
                thread.join()
            raise RuntimeError("could not start a thread") from err
        self._start.set()
        for thread in workers:
            thread.join()
        clock_thread.join()
        return self.dead_philosopher


def run_semaphores(params: Params, stream: TextIO | None = None) -> int | None:
    """Run a semaphore-based simulation; return the philosopher who died, if any."""
    return SemaphoreTable(params, stream).run()