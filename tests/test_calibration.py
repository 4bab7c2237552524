import pytest

from conftest import make_config, offset_position
from stepdist.distance import CalibrationEngine, LocationFix
from stepdist.store import CalibrationRecord, get_store


ORIGIN = (48.137, 11.575)


def fix_at(north, timestamp, accuracy=3.0, altitude=520.0, vertical_accuracy=None):
    lat, lon = offset_position(ORIGIN[0], ORIGIN[1], north, 0.0)
    return LocationFix(lat, lon, accuracy, altitude, timestamp, vertical_accuracy)


class StepWindow:
    """Stand-in for StepLedger.steps_between with a fixed answer."""

    def __init__(self, steps):
        self.steps = steps
        self.calls = []

    def __call__(self, start, end):
        self.calls.append((start, end))
        return self.steps


@pytest.fixture
def calibration_config():
    return make_config(horizontal_accuracy_filter=5.0, horizontal_distance_filter=1.0,
                       distance_to_calibrate=10.0)


def make_engine(config, steps=6, store=None, record=None):
    store = store if store is not None else get_store('memory')
    statuses = []
    engine = CalibrationEngine(config, store, StepWindow(steps), record=record,
                               clock=lambda: 1_700_000_000.5, on_status=statuses.append)
    return engine, store, statuses


def test_step_length_calibrated_from_three_fixes(calibration_config):
    engine, store, statuses = make_engine(calibration_config, steps=6)

    assert engine.process_fix(fix_at(0.0, 100.0)) is False
    assert engine.process_fix(fix_at(5.0, 105.0)) is False
    # First fix only anchors the start time: 12 m from the second to the third fix
    assert engine.process_fix(fix_at(17.0, 115.0)) is True

    record = store.load()
    assert record.step_length == pytest.approx(2.0, rel=1e-6)
    assert record.last_calibrated == 1_700_000_000
    assert engine.calibration() == (record.step_length, record.last_calibrated)
    assert engine.steps_between.calls == [(100.0, 115.0)]
    assert engine.calibration_in_progress is False
    assert statuses == ['Calibrated step length (2.00)']


def test_below_threshold_does_not_calibrate(calibration_config):
    engine, store, _ = make_engine(calibration_config)

    for north, ts in [(0.0, 100.0), (5.0, 105.0), (12.0, 110.0)]:
        assert engine.process_fix(fix_at(north, ts)) is False

    assert engine.candidate_distance == pytest.approx(7.0, rel=1e-6)
    assert store.load() == CalibrationRecord()


def test_inaccurate_fix_cancels_calibration(calibration_config):
    engine, store, statuses = make_engine(calibration_config, steps=0)
    engine.process_fix(fix_at(0.0, 100.0))
    engine.process_fix(fix_at(5.0, 105.0))
    engine.process_fix(fix_at(17.0, 115.0))
    assert engine.calibration_in_progress is True

    engine.process_fix(fix_at(20.0, 118.0, accuracy=20.0))

    assert engine.fixes == []
    assert engine.candidate_distance == 0.0
    assert engine.calibration_in_progress is False
    assert store.load() == CalibrationRecord()
    assert statuses == ['Calibration cancelled: accuracy (20.0)']


def test_zero_steps_skips_write(calibration_config):
    engine, store, _ = make_engine(calibration_config, steps=0)

    engine.process_fix(fix_at(0.0, 100.0))
    engine.process_fix(fix_at(5.0, 105.0))
    assert engine.process_fix(fix_at(17.0, 115.0)) is False

    assert store.load().step_length == 0.0
    assert engine.calibration_in_progress is True


def test_cancel_keeps_step_credit(calibration_config):
    record = CalibrationRecord(step_length=0.8, last_calibrated=1_600_000_000)
    engine, _, _ = make_engine(calibration_config, steps=0, record=record)
    engine.on_step_count(10, 1.0)
    for north, ts in [(0.0, 100.0), (5.0, 105.0), (17.0, 115.0)]:
        engine.process_fix(fix_at(north, ts))

    engine.process_fix(fix_at(20.0, 118.0, accuracy=20.0))

    assert engine.steps_persistent == 10
    assert engine.distance_persistent == pytest.approx(8.0)
    assert engine.on_step_count(12, 1.0).distance == 10


def test_fix_within_distance_filter_is_dropped():
    config = make_config(horizontal_accuracy_filter=5.0, horizontal_distance_filter=4.0,
                         distance_to_calibrate=10.0)
    engine, _, _ = make_engine(config)

    engine.process_fix(fix_at(0.0, 100.0))
    engine.process_fix(fix_at(2.0, 101.0))

    assert len(engine.fixes) == 1


def test_calibration_disabled():
    config = make_config(horizontal_accuracy_filter=5.0, horizontal_distance_filter=1.0,
                         distance_to_calibrate=10.0, enable_gps_calibration=False)
    engine, store, _ = make_engine(config)

    for north, ts in [(0.0, 100.0), (5.0, 105.0), (17.0, 115.0)]:
        assert engine.process_fix(fix_at(north, ts)) is False

    assert store.load().step_length == 0.0


def test_invalid_fix_ignored(calibration_config):
    engine, _, _ = make_engine(calibration_config)

    assert engine.process_fix(LocationFix(float('nan'), 11.0, 3.0, 500.0, 100.0)) is False
    assert engine.fixes == []


def test_distance_blending(calibration_config):
    # Calibrated only
    engine, _, _ = make_engine(calibration_config, record=CalibrationRecord(step_length=0.75))
    assert engine.on_step_count(10, 1.0).distance == 8  # 7.5 rounds up

    # Heuristic only: 0.33 * 1.8 m * sqrt(4 Hz) per step
    engine, _, _ = make_engine(calibration_config, record=CalibrationRecord(body_height=1.8))
    report = engine.on_step_count(10, 4.0)
    assert engine.distance_heuristic == pytest.approx(11.88)
    assert report.distance == 12

    # Both: rounded average
    engine, _, _ = make_engine(calibration_config,
                               record=CalibrationRecord(step_length=0.7, body_height=1.8))
    report = engine.on_step_count(10, 1.0)
    assert report.distance == 6  # (7.0 + 5.94) / 2 = 6.47

    # Neither
    engine, _, _ = make_engine(calibration_config)
    assert engine.on_step_count(10, 1.0) == (0, 10, 0)


def test_heuristic_accumulates_only_new_steps(calibration_config):
    engine, _, _ = make_engine(calibration_config, record=CalibrationRecord(body_height=2.0))

    engine.on_step_count(6, 1.0)
    engine.on_step_count(6, 1.0)
    engine.on_step_count(8, 1.0)

    assert engine.distance_heuristic == pytest.approx(8 * 0.33 * 2.0)
    assert engine.steps_total == 8


def test_new_calibration_reprices_session_steps(calibration_config):
    engine, _, _ = make_engine(calibration_config, steps=6)
    engine.on_step_count(6, 1.0)
    for north, ts in [(0.0, 100.0), (5.0, 105.0), (17.0, 115.0)]:
        engine.process_fix(fix_at(north, ts))

    assert engine.on_step_count(8, 1.0).distance == 16


def test_readiness(calibration_config):
    engine, _, _ = make_engine(calibration_config)
    assert not engine.is_ready()
    assert not engine.is_ready(accuracy=6.0)
    assert engine.is_ready(accuracy=5.0)

    engine.set_body_height(1.75)
    assert engine.is_ready()

    engine, _, _ = make_engine(calibration_config, record=CalibrationRecord(step_length=0.7))
    assert engine.is_ready()


def test_altitude_from_vertical_accuracy():
    config = make_config(horizontal_accuracy_filter=5.0, vertical_distance_filter=2,
                         vertical_accuracy_filter=3.0, enable_gps_calibration=False)
    engine, _, _ = make_engine(config)

    # Horizontal accuracy too poor, but vertical accuracy good enough
    for ts, altitude in enumerate([500.0, 500.0, 502.0, 502.0]):
        engine.process_fix(fix_at(0.0, float(ts), accuracy=30.0, altitude=altitude,
                                  vertical_accuracy=2.0))

    # Window [500, 502] has 2 m of jitter and is discarded; [502, 502] gains 2 m
    assert engine.altitude_gain == 2


def test_poor_vertical_accuracy_rejects_altitude():
    config = make_config(horizontal_accuracy_filter=5.0, vertical_accuracy_filter=3.0,
                         enable_gps_calibration=False)
    engine, _, _ = make_engine(config)

    # Good horizontal accuracy does not override a reported vertical accuracy
    engine.process_fix(fix_at(0.0, 1.0, accuracy=3.0, altitude=500.0, vertical_accuracy=50.0))

    assert len(engine.elevation.window) == 0


@pytest.mark.parametrize('vertical_accuracy', [None, float('nan')])
def test_missing_vertical_accuracy_uses_horizontal(vertical_accuracy):
    config = make_config(horizontal_accuracy_filter=5.0, vertical_accuracy_filter=3.0,
                         enable_gps_calibration=False)
    engine, _, _ = make_engine(config)

    engine.process_fix(fix_at(0.0, 1.0, accuracy=3.0, altitude=500.0,
                              vertical_accuracy=vertical_accuracy))

    assert list(engine.elevation.window) == [500.0]


def test_get_state(calibration_config):
    engine, _, _ = make_engine(calibration_config)
    engine.process_fix(fix_at(0.0, 100.0))

    state = engine.get_state()

    assert state['buffered_fixes'] == 1
    assert state['calibration_enabled'] is True
    assert state['distance'] == 0
