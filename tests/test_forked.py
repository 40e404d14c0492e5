import io
import multiprocessing
import re

import pytest

from dining.forked import ForkedSimulation, exit_status, run_processes
from dining.params import Params

LINE = re.compile(
    r"^\d+ (\d+) (has taken a fork|is eating|is sleeping|is thinking|died)$"
)


def _lines(stream):
    return stream.getvalue().splitlines()


def test_exit_status_keeps_normal_codes():
    assert exit_status(42) == 42
    assert exit_status(1) == 1
    assert exit_status(0) == 0


def test_exit_status_of_signalled_child_is_zero():
    assert exit_status(-15) == 0


def test_exit_status_of_running_child_is_zero():
    assert exit_status(None) == 0


def test_lone_philosopher_dies():
    out = io.StringIO()
    sim = ForkedSimulation(Params(1, 200, 60, 60), out)
    assert sim.run() == 1
    assert sim.exit_codes == {1: 42}
    lines = _lines(out)
    assert lines[0].split(" ", 2)[1:] == ["1", "has taken a fork"]
    timestamp, philo, message = lines[-1].split(" ", 2)
    assert (philo, message) == ("1", "died")
    assert int(timestamp) > 200


def test_meal_limit_ends_without_death():
    out = io.StringIO()
    sim = ForkedSimulation(Params(2, 800, 60, 60, meals=2), out)
    assert sim.run() is None
    assert sim.exit_codes == {1: 0, 2: 0}
    lines = _lines(out)
    assert all(LINE.match(line) for line in lines)
    assert not any(line.endswith("died") for line in lines)
    for philo_id in ("1", "2"):
        eaten = [
            line for line in lines
            if line.split(" ", 2)[1:] == [philo_id, "is eating"]
        ]
        assert len(eaten) == 2


def test_starvation_reports_exactly_one_death_last():
    out = io.StringIO()
    sim = ForkedSimulation(Params(3, 100, 200, 60), out)
    dead = sim.run()
    assert dead in (1, 2, 3)
    assert sim.exit_codes[dead] == 42
    assert sorted(sim.exit_codes.values()) == [0, 0, 42]
    lines = _lines(out)
    assert all(LINE.match(line) for line in lines)
    deaths = [line for line in lines if line.endswith("died")]
    assert len(deaths) == 1
    assert lines[-1] == deaths[0]
    assert lines[-1].split(" ")[1] == str(dead)


def test_run_processes_writes_to_given_stream():
    out = io.StringIO()
    assert run_processes(Params(1, 150, 60, 60), out) == 1
    assert _lines(out)[-1].endswith(" 1 died")


class _NoStartProcess:
    def start(self):
        raise OSError("no more processes")


class _FailingContext:
    def __init__(self):
        self._ctx = multiprocessing.get_context()

    def Pipe(self, duplex=True):
        return self._ctx.Pipe(duplex=duplex)

    def Semaphore(self, value=1):
        return self._ctx.Semaphore(value)

    def Process(self, *args, **kwargs):
        return _NoStartProcess()


def test_fork_failure_raises():
    sim = ForkedSimulation(Params(2, 800, 60, 60), io.StringIO(), _FailingContext())
    with pytest.raises(RuntimeError, match="could not fork"):
        sim.run()
    assert sim.exit_codes == {}