import pytest

from conftest import make_stride
from stepdist.step_ledger import StepLedger


@pytest.fixture
def ledger():
    return StepLedger(update_interval=0.1, smoothing_timeframe=6)


def test_lag(ledger):
    assert ledger.lag == pytest.approx(0.6)


def test_backfill_spaces_steps_before_newest_stride(ledger):
    ledger.current.append(1.0)

    ledger.backfill(make_stride(length=10), 4, now=100.0)

    assert ledger.current == pytest.approx([98.4, 97.9, 97.4, 96.9])


def test_record_stride_adds_two_steps(ledger):
    ledger.record_stride(make_stride(length=10), now=100.0)

    assert ledger.current == pytest.approx([99.4, 98.9])
    assert ledger.total_steps() == 2


def test_close_current_preserves_total(ledger):
    ledger.record_stride(make_stride(), now=100.0)
    ledger.close_current()
    ledger.record_stride(make_stride(), now=104.0)

    assert len(ledger.preceding) == 2
    assert len(ledger.current) == 2
    assert ledger.total_steps() == 4


def test_steps_between_is_strict(ledger):
    ledger.preceding.extend([10.0, 11.0])
    ledger.current.extend([12.0, 13.0])

    assert ledger.steps_between(10.0, 13.0) == 2
    assert ledger.steps_between(9.0, 14.0) == 4
    assert ledger.steps_between(13.0, 20.0) == 0


def test_steps_between_empty(ledger):
    assert ledger.steps_between(0.0, 1e12) == 0


@pytest.mark.parametrize('outer, inner', [
    ((0.0, 100.0), (20.0, 80.0)),
    ((9.5, 13.5), (10.0, 13.0)),
    ((10.0, 13.0), (10.0, 12.0)),
    ((11.0, 12.0), (11.0, 12.0)),
])
def test_steps_between_grows_with_interval(ledger, outer, inner):
    ledger.preceding.extend([10.0, 11.0, 11.5])
    ledger.current.extend([12.0, 13.0, 50.0])

    assert ledger.steps_between(*outer) >= ledger.steps_between(*inner)


def test_steps_per_minute(ledger):
    now = 1000.0
    end = now - ledger.lag
    # 20 steps inside the 15 s window, 5 older ones outside
    ledger.current.extend(end - 0.5 - 0.7 * i for i in range(20))
    ledger.preceding.extend(end - 20.0 - i for i in range(5))

    assert ledger.steps_per_minute(now) == 80


def test_reset(ledger):
    ledger.record_stride(make_stride(), now=100.0)
    ledger.close_current()

    ledger.reset()

    assert ledger.total_steps() == 0
