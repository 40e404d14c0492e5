"""Philosophers as separate processes sharing their forks through semaphores."""

from __future__ import annotations

import multiprocessing
import sys
import threading
from multiprocessing.connection import Connection, wait
from typing import Any, TextIO

from dining.child import (
    CHILD_FAILURE,
    CHILD_IS_DEAD,
    SharedResources,
    run_philosopher,
)
from dining.params import Params

DRAIN_POLL_SECONDS = 0.05

ERR_FORK = "could not fork a sub process"


def exit_status(exitcode: int | None) -> int:
    """Return the exit status of a finished child, 0 if it was killed or still runs."""
    if exitcode is None or exitcode < 0:
        return 0
    return exitcode


class _PipeStream:
    """Write end handed to the children; each line goes out as one message."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def write(self, text: str) -> int:
        self._connection.send_bytes(text.encode())
        return len(text)

    def flush(self) -> None:
        """Messages are sent immediately; nothing is buffered."""


def _child_main(resources: SharedResources, philo_id: int) -> None:
    sys.exit(run_philosopher(resources, philo_id))


class ForkedSimulation:
    """Runs each philosopher in its own process and stops all at the first death."""

    def __init__(
        self,
        params: Params,
        stream: TextIO | None = None,
        context: Any = None,
    ) -> None:
        self.params = params
        self._stream = stream
        self._context = context if context is not None else multiprocessing.get_context()
        self.exit_codes: dict[int, int] = {}
        self.dead_philosopher: int | None = None

    def _drain(self, reader: Connection, stream: TextIO, stop: threading.Event) -> None:
        while True:
            if reader.poll(DRAIN_POLL_SECONDS):
                try:
                    data = reader.recv_bytes()
                except EOFError:
                    return
                stream.write(data.decode())
                stream.flush()
            elif stop.is_set():
                return

    def _wait_children(self, processes: dict[int, Any]) -> None:
        pending = {proc.sentinel: (philo_id, proc) for philo_id, proc in processes.items()}
        first_failure = True
        while pending:
            for sentinel in wait(list(pending)):
                philo_id, proc = pending.pop(sentinel)
                proc.join()
                code = exit_status(proc.exitcode)
                self.exit_codes[philo_id] = code
                if code in (CHILD_IS_DEAD, CHILD_FAILURE) and first_failure:
                    first_failure = False
                    if code == CHILD_IS_DEAD:
                        self.dead_philosopher = philo_id
                    for _, other in pending.values():
                        other.terminate()

    @staticmethod
    def _terminate_all(processes: dict[int, Any]) -> None:
        for proc in processes.values():
            if proc.is_alive():
                proc.terminate()
        for proc in processes.values():
            proc.join()

    def run(self) -> int | None:
        """Run the simulation; return the philosopher who died, if any."""
        ctx = self._context
        stream = self._stream if self._stream is not None else sys.stdout
        nb_philo = self.params.nb_philo
        reader, writer = ctx.Pipe(duplex=False)
        resources = SharedResources(
            params=self.params,
            forks_heap=ctx.Semaphore(nb_philo),
            stdout=ctx.Semaphore(1),
            race_starter=ctx.Semaphore(nb_philo),
            stream=_PipeStream(writer),
        )
        for _ in range(nb_philo):
            resources.race_starter.acquire()
        processes: dict[int, Any] = {}
        try:
            for philo_id in range(1, nb_philo + 1):
                proc = ctx.Process(
                    target=_child_main,
                    args=(resources, philo_id),
                    name=f"philo-{philo_id}",
                )
                proc.start()
                processes[philo_id] = proc
        except OSError as err:
            self._terminate_all(processes)
            reader.close()
            writer.close()
            raise RuntimeError(ERR_FORK) from err

        stop = threading.Event()
        drainer = threading.Thread(
            target=self._drain, args=(reader, stream, stop), name="output"
        )
        drainer.start()
        for _ in range(nb_philo):
            resources.race_starter.release()
        try:
            self._wait_children(processes)
        finally:
            self._terminate_all(processes)
            stop.set()
            drainer.join()
            reader.close()
            writer.close()
        return self.dead_philosopher


def run_processes(params: Params, stream: TextIO | None = None) -> int | None:
    """Run a process-based simulation; return the philosopher who died, if any."""
    return ForkedSimulation(params, stream).run()