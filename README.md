# dining

A simulation of the dining philosophers problem. Philosophers sit at a
round table with one fork between each pair of neighbours. Each
philosopher takes two forks, eats, puts the forks down, sleeps, thinks and
starts again. A monitor watches every philosopher; one who goes longer
than the time to die since the start of their last meal dies, the death is
reported once, and the simulation stops.

There are three ways to run the table:

- `run_threads` (in `dining.threaded`, class `ThreadedTable`): one thread
  per philosopher, one lock per fork.
- `run_semaphores` (in `dining.semaphored`, class `SemaphoreTable`): one
  thread per philosopher, with the forks held in a single counting
  semaphore in the middle of the table.
- `run_processes` (in `dining.forked`, class `ForkedSimulation`): one
  process per philosopher, sharing the forks through a semaphore. Each
  process runs a `LonePhilosopher` from `dining.child`; their output is
  passed back to the parent, which writes it to the chosen stream. At the
  first death the remaining processes are terminated.

## Installation

```
pip install .
```

## Command line

```
dining [--mode {processes,semaphores,threads}] number_of_philosophers time_to_die time_to_eat time_to_sleep [number_of_times_each_philosopher_must_eat]
```

`--mode` chooses the way the table is run; the default is `threads`.

All times are in milliseconds. The rules for the arguments:

- there are four or five of them, each made only of digits and greater
  than zero;
- there are at most 200 philosophers;
- time to die, time to eat and time to sleep are each at least 60 ms;
- without the last argument the simulation runs until a philosopher dies;
  with it, a philosopher stops once they have eaten that many meals.

Given anything else, the command prints a usage message on standard error
and exits with status 1. If a thread cannot be started, or a process
cannot be created, an error is printed on standard error and the exit
status is 1; otherwise it is 0.

Example:

```
dining 5 800 200 200 7
dining --mode processes 4 410 200 200
```

Each event is printed on its own line as the time in milliseconds since
the start, the philosopher's number (from 1) and what happened, for
example:

```
1 1 has taken a fork
1 1 has taken a fork
1 1 is eating
201 1 is sleeping
401 1 is thinking
...
1210 3 died
```

The messages are `has taken a fork`, `is eating`, `is sleeping`,
`is thinking` and `died`. After a death no further status lines are
printed.

## From Python

`dining.params.parse_params` takes the arguments (without the program
name), checks them and returns a frozen `Params` value with `nb_philo`,
`time_to_die`, `time_to_eat`, `time_to_sleep` and `meals` (`None` when no
meal limit was given). It raises `UsageError`, a `ValueError`, when the
arguments are not acceptable; `usage_text()` returns the usage message.

Each runner takes a `Params` value and an optional text stream (standard
output by default) and returns the number of the philosopher who died, or
`None` if everybody reached the meal limit:

```python
import sys

from dining.params import parse_params
from dining.threaded import run_threads

params = parse_params(["4", "410", "200", "200", "3"])
dead = run_threads(params, sys.stdout)
```

`dining.report.format_status` builds a single report line, and
`StatusPrinter` writes lines under a lock, stops writing once a death has
been reported, and writes only the first death. `dining.clock` holds
`SimulationClock`, the millisecond clock the philosophers share.

## Tests

```
pip install .[test]
pytest
```