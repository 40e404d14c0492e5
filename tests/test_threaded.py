import io
import threading
from collections import defaultdict
from contextlib import contextmanager

from dining.clock import SimulationClock
from dining.params import Params
from dining.report import State
from dining.threaded import ThreadedTable, run_threads


def _parse(output):
    lines = []
    for line in output.splitlines():
        stamp, philo, message = line.split(" ", 2)
        lines.append((int(stamp), int(philo), message))
    return lines


@contextmanager
def _running(clock):
    stop = threading.Event()
    thread = threading.Thread(target=clock.run, args=(lambda: not stop.is_set(),))
    thread.start()
    try:
        yield
    finally:
        stop.set()
        thread.join()


def test_right_neighbour_wraps_around():
    table = ThreadedTable(Params(5, 800, 60, 60))
    for philo_id in range(1, 5):
        assert table.right_neighbour(philo_id) == philo_id + 1
    assert table.right_neighbour(5) == 1


def test_acquire_forks_announces_meal():
    stream = io.StringIO()
    table = ThreadedTable(Params(3, 800, 60, 60), stream)
    assert table.acquire_forks(2) is True
    assert stream.getvalue() == (
        "0 2 has taken a fork\n0 2 has taken a fork\n0 2 is eating\n"
    )
    assert table.last_meal[2] == 0


def test_dropped_forks_can_be_taken_by_neighbour():
    stream = io.StringIO()
    table = ThreadedTable(Params(3, 800, 60, 60), stream)
    assert table.acquire_forks(2)
    table.drop_forks(2)
    assert table.acquire_forks(3) is True
    messages = [message for _, philo, message in _parse(stream.getvalue()) if philo == 3]
    assert messages == ["has taken a fork", "has taken a fork", "is eating"]


def test_take_forks_and_eat_reaches_meal_limit():
    stream = io.StringIO()
    clock = SimulationClock()
    table = ThreadedTable(Params(2, 800, 60, 60, 1), stream, clock=clock)
    with _running(clock):
        state = table.take_forks_and_eat(1)
    assert state is State.REACHED_MEALS_NB
    assert table.meals_eaten[1] == 1
    assert "is sleeping" not in stream.getvalue()


def test_take_forks_and_eat_full_cycle():
    stream = io.StringIO()
    clock = SimulationClock()
    table = ThreadedTable(Params(2, 800, 60, 60, 2), stream, clock=clock)
    with _running(clock):
        state = table.take_forks_and_eat(2)
    assert state is State.FINISHED_MEAL
    lines = _parse(stream.getvalue())
    stamps = {message: stamp for stamp, _, message in lines}
    assert [message for _, _, message in lines][-2:] == ["is sleeping", "is thinking"]
    assert stamps["is sleeping"] - stamps["is eating"] >= 60
    assert stamps["is thinking"] - stamps["is sleeping"] >= 60


def test_everyone_eats_the_required_meals():
    stream = io.StringIO()
    params = Params(3, 2000, 60, 60, 2)
    table = ThreadedTable(params, stream)
    assert table.run() is None
    lines = _parse(stream.getvalue())
    eaten = defaultdict(int)
    forks = defaultdict(int)
    for _, philo, message in lines:
        if message == "is eating":
            eaten[philo] += 1
        elif message == "has taken a fork":
            forks[philo] += 1
    assert dict(eaten) == {i: params.meals for i in range(1, 4)}
    assert all(count == 2 * params.meals for count in forks.values())
    assert all(message != "died" for _, _, message in lines)
    assert table.finished


def test_timestamps_never_go_back_for_one_philosopher():
    stream = io.StringIO()
    run_threads(Params(4, 2000, 60, 60, 2), stream)
    last = defaultdict(int)
    for stamp, philo, _ in _parse(stream.getvalue()):
        assert stamp >= last[philo]
        last[philo] = stamp


def test_lone_philosopher_dies():
    stream = io.StringIO()
    params = Params(1, 60, 60, 60)
    table = ThreadedTable(params, stream)
    assert table.run() == 1
    lines = _parse(stream.getvalue())
    died = [line for line in lines if line[2] == "died"]
    assert len(died) == 1
    assert lines[-1] == died[0]
    assert died[0][0] > params.time_to_die
    assert table.death_timestamp == died[0][0]


def test_starving_philosopher_is_last_line():
    stream = io.StringIO()
    dead = run_threads(Params(2, 60, 200, 60), stream)
    lines = _parse(stream.getvalue())
    assert dead in (1, 2)
    assert lines[-1][1:] == (dead, "died")
    assert sum(1 for line in lines if line[2] == "died") == 1