"""
StepDistanceTracker - control surface of the pedestrian dead-reckoning engine.

Two input streams feed one engine state:
- motion samples, delivered at whatever cadence the sensor manages; only the
  most recent vector is kept
- location fixes, delivered sporadically; they are queued

One worker thread ticks at the configured update interval. Each tick drains
the fix queue and then runs the step counter on the latest motion vector, so
all engine state has exactly one writer. Events go out synchronously from
that worker.

Usage:
    tracker = StepDistanceTracker(store=get_store('json', path='calibration.json'),
                                  listener=MyListener())
    tracker.start(config)
    tracker.feed_motion_sample(x, y, z)
    tracker.feed_location_fix(LocationFix(...))
    tracker.stop()
"""

import logging
import math
import threading
import time
from queue import Empty, Queue

from .config import ConfigurationError, TrackerConfig
from .distance.calibration import CalibrationEngine
from .listener import TrackerListener
from .step_counter import StepCounter
from .store.memory import InMemoryCalibrationStore

logger = logging.getLogger(__name__)


class TrackerStateError(RuntimeError):
    """Raised when a control call does not fit the session state."""


class StepDistanceTracker:
    """
    Estimates walking distance, steps and elevation gain for one user.

    Args:
        store (CalibrationStoreBase, optional): Persisted calibration record
            (in-memory store if omitted)
        listener (TrackerListener, optional): Receiver of outbound events
        clock (callable): Returns epoch seconds; used to timestamp ticks
        config (TrackerConfig or dict, optional): Parameters known before the
            session starts, so fixes can report readiness ahead of start()
    """

    def __init__(self, store=None, listener=None, clock=time.time, config=None):
        self.store = store if store is not None else InMemoryCalibrationStore()
        self.listener = listener if listener is not None else TrackerListener()
        self.clock = clock

        # Engine lock: held for every tick and control call
        self.lock = threading.RLock()
        self.motion_lock = threading.Lock()
        self.fix_queue = Queue()
        self.stop_event = threading.Event()
        self.worker = None

        self.config = self._validate_config(config) if config is not None else None
        self.step_counter = None
        self.engine = None
        self.running = False
        self.location_available = True

        self.record = self.store.load()
        self._latest_motion = None
        self._started_at = None
        self._motion_missing_reported = False

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_config(config):
        if isinstance(config, dict):
            return TrackerConfig.from_dict(config)
        if not isinstance(config, TrackerConfig):
            raise ConfigurationError(f"Expected TrackerConfig or dict, got {type(config).__name__}")
        return config

    def start(self, config=None, background=True):
        """
        Start a tracking session.

        Args:
            config (TrackerConfig or dict, optional): Session parameters (dicts
                may use camelCase keys). Falls back to the configuration given
                to the constructor.
            background (bool): Spawn the worker thread. With False the caller
                drives the engine through tick().

        Raises:
            ConfigurationError: If no configuration is available, or it is
                missing parameters or out of range
            TrackerStateError: If a session is already running
        """
        if config is None:
            if self.config is None:
                raise ConfigurationError("No configuration given")
            config = self.config
        config = self._validate_config(config)

        with self.lock:
            if self.running:
                raise TrackerStateError("Tracking session already running")

            self.config = config
            self.record = self.store.load()
            self.step_counter = StepCounter(config, on_step=self._on_step)
            self.engine = CalibrationEngine(
                config,
                self.store,
                self.step_counter.ledger.steps_between,
                record=self.record,
                clock=self.clock,
                on_status=self._emit_status,
            )
            if not self.location_available:
                self.engine.calibration_enabled = False

            self._drain_fixes(discard=True)
            with self.motion_lock:
                self._latest_motion = None
            self._started_at = self.clock()
            self._motion_missing_reported = False
            self.stop_event.clear()
            self.running = True

            logger.info(f"Tracking started (update interval {config.update_interval}s, "
                        f"RT {config.smoothing_timeframe}, GPS calibration "
                        f"{'on' if self.engine.calibration_enabled else 'off'})")
            self._emit_status('Tracking started')

        if background:
            self.worker = threading.Thread(target=self._run, name='stepdist-worker', daemon=True)
            self.worker.start()

    def stop(self):
        """Stop the session and discard all transient state."""
        with self.lock:
            if not self.running:
                return
            self.running = False
            self.stop_event.set()

        worker = self.worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=max(1.0, 5 * self.config.update_interval))
        self.worker = None

        with self.lock:
            steps = self.step_counter.ledger.total_steps()
            self.step_counter = None
            self.engine = None
            self.record = self.store.load()
            self._drain_fixes(discard=True)
            with self.motion_lock:
                self._latest_motion = None
            logger.info(f"Tracking stopped after {steps} steps")

    @property
    def is_running(self):
        return self.running

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def feed_motion_sample(self, x, y, z, timestamp=None):
        """
        Store the latest gravity vector. Only the newest vector is read at tick time.

        Returns:
            bool: False if the sample was rejected as invalid
        """
        try:
            vector = (float(x), float(y), float(z))
        except (TypeError, ValueError):
            logger.warning(f"Invalid motion sample: x={x}, y={y}, z={z} - skipping sample")
            return False

        if not all(math.isfinite(v) for v in vector):
            logger.warning(f"Non-finite motion sample: x={x}, y={y}, z={z} - skipping sample")
            return False

        with self.motion_lock:
            self._latest_motion = (vector, self.clock() if timestamp is None else timestamp)
        return True

    def feed_location_fix(self, fix):
        """
        Queue a location fix for the worker.

        Outside a session the fix only refreshes readiness status.
        """
        with self.lock:
            if not self.running:
                self._emit_status(f"Accuracy: {fix.horizontal_accuracy}", accuracy=fix.horizontal_accuracy)
                return
        self.fix_queue.put(fix)

    def set_body_height(self, body_height):
        """Persist body height (meters) for the heuristic distance estimate."""
        try:
            body_height = float(body_height)
        except (TypeError, ValueError):
            raise ValueError(f"Body height must be a number, got {body_height!r}") from None
        if not math.isfinite(body_height) or body_height < 0:
            raise ValueError(f"Body height must be a non-negative number, got {body_height!r}")

        with self.lock:
            self.record = self.store.save_body_height(body_height)
            if self.engine is not None:
                self.engine.set_body_height(body_height)
            logger.info(f"Body height set to {body_height:.2f}m")
            self._emit_status('Body height updated')

    def reset_calibration(self):
        """Erase the persisted record (step length, calibration time, body height)."""
        with self.lock:
            self.record = self.store.reset()
            if self.engine is not None:
                self.engine.load_record(self.record)
            self._emit_status('Calibration reset')

    def disable_location(self, reason=''):
        """Report missing or denied location access; calibration is disabled."""
        with self.lock:
            self.location_available = False
            if self.engine is not None:
                self.engine.calibration_enabled = False
            logger.warning(f"Location unavailable, GPS calibration disabled {reason}".rstrip())
            self._emit_status(f"Location unavailable {reason}".rstrip())

    def enable_location(self):
        """Location access was (re)granted; calibration follows the session config."""
        with self.lock:
            self.location_available = True
            if self.engine is not None:
                self.engine.calibration_enabled = self.config.enable_gps_calibration

    # ------------------------------------------------------------------
    # Engine tick
    # ------------------------------------------------------------------

    def tick(self):
        """
        Run one engine step: handle queued fixes, then the latest motion vector.

        Returns:
            bool: True if a motion sample was processed
        """
        with self.lock:
            if not self.running:
                return False

            now = self.clock()
            self._drain_fixes()

            with self.motion_lock:
                latest = self._latest_motion

            if latest is None:
                self._check_motion_source(now)
                return False

            (x, y, z), _ = latest
            self.step_counter.process_sample(x, y, z, now)
            return True

    def _run(self):
        """Worker loop - fixed-period ticks until stop() is called."""
        interval = self.config.update_interval
        next_tick = time.monotonic()

        try:
            while not self.stop_event.is_set():
                next_tick += interval
                self.tick()

                delay = next_tick - time.monotonic()
                if delay < 0:
                    # Overran; skip missed ticks instead of bursting to catch up
                    next_tick = time.monotonic()
                    delay = 0
                if self.stop_event.wait(delay):
                    break
        except Exception:
            logger.exception("Tracker worker crashed")
            with self.lock:
                self.running = False
            raise

    def _drain_fixes(self, discard=False):
        while True:
            try:
                fix = self.fix_queue.get_nowait()
            except Empty:
                return
            if discard:
                continue
            self.engine.process_fix(fix)
            self._emit_status(f"Accuracy: {fix.horizontal_accuracy}", accuracy=fix.horizontal_accuracy)

    def _check_motion_source(self, now):
        if self._motion_missing_reported:
            return
        if now - self._started_at >= self.config.motion_timeout:
            self._motion_missing_reported = True
            logger.warning(f"No motion samples for {self.config.motion_timeout}s, "
                           f"continuing without step detection")
            self._emit_status('Motion sensor unavailable')

    # ------------------------------------------------------------------
    # Outbound events
    # ------------------------------------------------------------------

    def _on_step(self, total_steps, frequency):
        self.listener.on_step_count_changed(total_steps, frequency)
        if self.engine is None:
            # Listener stopped the session
            return
        report = self.engine.on_step_count(total_steps, frequency)
        self.listener.on_distance_changed(report.distance, report.steps, report.altitude_gain)

    def _emit_status(self, debug_info='', accuracy=None):
        if self.engine is not None:
            step_length, last_calibrated = self.engine.calibration()
            body_height = self.engine.body_height
            ready = self.engine.is_ready(accuracy)
        else:
            step_length = self.record.step_length
            last_calibrated = self.record.last_calibrated
            body_height = self.record.body_height
            ready = step_length > 0 or body_height > 0
            if not ready and accuracy is not None and self.config is not None:
                ready = accuracy <= self.config.horizontal_accuracy_filter

        self.listener.on_status_changed(ready, step_length, last_calibrated, body_height, debug_info)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def total_steps(self):
        with self.lock:
            return self.step_counter.ledger.total_steps() if self.step_counter else 0

    def steps_per_minute(self):
        with self.lock:
            if self.step_counter is None:
                return 0
            return self.step_counter.ledger.steps_per_minute(self.clock())

    def get_state(self):
        """Snapshot of the session - thread safe."""
        with self.lock:
            state = {
                'running': self.running,
                'location_available': self.location_available,
                'step_length': self.record.step_length,
                'last_calibrated': self.record.last_calibrated,
                'body_height': self.record.body_height,
            }
            if self.step_counter is not None:
                similarity = self.step_counter.similarity
                state.update({
                    'samples': self.step_counter.sample_count,
                    'steps': self.step_counter.ledger.total_steps(),
                    'pattern_state': similarity.state,
                    'pattern_axis': None if similarity.representative.is_empty
                    else similarity.representative.axis,
                })
            if self.engine is not None:
                state.update(self.engine.get_state())
            return state
