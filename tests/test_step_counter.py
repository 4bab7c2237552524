import numpy as np
import pytest

from conftest import make_config, walking_signal
from stepdist.step_counter import StepCounter


def run(counter, xs, ys, zs, start=1000.0, interval=0.1):
    for n, (x, y, z) in enumerate(zip(xs, ys, zs)):
        counter.process_sample(x, y, z, now=start + n * interval)


def test_steady_walk_counts_steps(config):
    events = []
    counter = StepCounter(config, on_step=lambda total, hz: events.append((total, hz)))
    walk = walking_signal(200)
    flat = np.zeros(200)

    run(counter, walk, flat, flat)

    # Pattern elected on the fifth stride (4 back-filled + 2), then 2 steps per same-phase stride
    assert [total for total, _ in events] == [6, 8, 10, 12, 14, 16, 18]
    assert all(hz == pytest.approx(1.0) for _, hz in events)
    assert counter.ledger.total_steps() == 18
    assert counter.similarity.representative.axis == 0
    assert counter.sample_count == 200


def test_pattern_on_any_axis(config):
    counter = StepCounter(config)
    flat = np.full(200, 0.3)

    run(counter, flat, flat, walking_signal(200, amplitude=2.0))

    assert counter.ledger.total_steps() == 18
    assert counter.similarity.representative.axis == 2


def test_long_pattern_locks_all_axes(config):
    counter = StepCounter(config)
    flat = np.zeros(200)

    run(counter, walking_signal(200), flat, flat)

    assert len(counter.ledger.current) >= config.lock_after_steps
    assert counter.similarity.locked_axes == {0, 1, 2}


def test_standing_still_counts_nothing(config):
    events = []
    counter = StepCounter(config, on_step=lambda total, hz: events.append(total))
    still = np.full(300, 9.81)

    run(counter, np.zeros(300), np.zeros(300), still)

    assert events == []
    assert counter.ledger.total_steps() == 0
    assert counter.similarity.state == 'searching'


def test_step_timestamps_are_lag_compensated():
    config = make_config(update_interval=0.1, smoothing_timeframe=6)
    counter = StepCounter(config)
    flat = np.zeros(200)

    run(counter, walking_signal(200), flat, flat, start=0.0)

    # Every step lies before the last tick minus the smoothing lag
    last_tick = 199 * 0.1
    assert max(counter.ledger.current) <= last_tick - config.smoothing_lag + 1e-9
    assert counter.ledger.steps_between(-100.0, last_tick) == 18


def test_reset(config):
    counter = StepCounter(config)
    flat = np.zeros(200)
    run(counter, walking_signal(200), flat, flat)

    counter.reset()

    assert counter.ledger.total_steps() == 0
    assert counter.sample_count == 0
    assert counter.similarity.state == 'searching'
