import time

import pytest

from dining.clock import SimulationClock, wall_ms


def _source(values):
    iterator = iter(values)
    return lambda: next(iterator)


def test_wall_ms_follows_system_time():
    before = time.time() * 1000
    value = wall_ms()
    after = time.time() * 1000
    assert before - 1 <= value <= after + 1


def test_current_is_zero_before_first_update():
    clock = SimulationClock(time_source=_source([500]), tick=0)
    assert clock.current == 0
    assert clock.origin is None


def test_first_update_sets_origin():
    clock = SimulationClock(time_source=_source([1000, 1005, 1030]), tick=0)
    assert clock.update() == 0
    assert clock.origin == 1000
    assert clock.update() == 1005 - 1000
    assert clock.update() == 1030 - 1000
    assert clock.current == 1030 - 1000


def test_origin_is_not_moved_by_later_updates():
    clock = SimulationClock(time_source=_source([10, 20, 40]), tick=0)
    for _ in range(3):
        clock.update()
    assert clock.origin == 10


def test_run_stops_when_told():
    calls = []

    def keep_running():
        calls.append(None)
        return len(calls) <= 3

    clock = SimulationClock(time_source=_source([100, 150, 175, 999]), tick=0)
    result = clock.run(keep_running)
    assert len(calls) == 4
    assert result == 175 - 100
    assert clock.current == result


def test_run_without_iterations_keeps_zero():
    clock = SimulationClock(time_source=_source([]), tick=0)
    assert clock.run(lambda: False) == 0
    assert clock.origin is None


def test_real_clock_advances():
    clock = SimulationClock()
    clock.update()
    time.sleep(0.02)
    assert clock.update() >= 10


def test_exhausted_source_raises():
    clock = SimulationClock(time_source=_source([]), tick=0)
    with pytest.raises(StopIteration):
        clock.update()