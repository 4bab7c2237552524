"""
Calibration & distance engine.

Combines the step ledger with GNSS fixes:

- Step length calibration: while the user walks with good satellite
  reception, the distance covered by the buffered fixes is divided by the
  steps counted over the same time span. A single inaccurate fix clears the
  buffer and cancels a running calibration.
- Distance blending: a calibrated estimate (steps x step length) and a
  heuristic estimate (body height and step frequency) are reported alone or
  averaged, depending on which of them is available.
- Elevation: relative altitude gain from admitted fixes.

Step counts arrive through on_step_count(); fixes through process_fix().
"""

import logging
import math
import threading
import time
from collections import namedtuple

from ..utils import cumulative_distance, haversine_distance, round_half_up
from .elevation import ElevationTracker

logger = logging.getLogger(__name__)

# Outbound distance event payload
DistanceReport = namedtuple('DistanceReport', ['distance', 'steps', 'altitude_gain'])

MIN_CALIBRATION_FIXES = 3


class CalibrationEngine:
    """
    Derives step length from GNSS fixes and blends distance estimates.

    Args:
        config (TrackerConfig): Session parameters
        store (CalibrationStoreBase): Persisted calibration record
        steps_between (callable): steps_between(start, end) from the step ledger
        record (CalibrationRecord, optional): Already loaded record (read from store if omitted)
        clock (callable): Returns epoch seconds, used for the calibration timestamp
        on_status (callable, optional): Called as on_status(debug_info) when the
            calibration status changes
    """

    def __init__(self, config, store, steps_between, record=None, clock=time.time, on_status=None):
        self.config = config
        self.store = store
        self.steps_between = steps_between
        self.clock = clock
        self.on_status = on_status

        # Guards the (step_length, last_calibrated) pair
        self.lock = threading.Lock()
        self.step_length = 0.0
        self.last_calibrated = 0
        self.body_height = 0.0
        self.load_record(record if record is not None else store.load())

        self.calibration_enabled = config.enable_gps_calibration
        self.elevation = ElevationTracker(config.vertical_distance_filter)
        self.fixes = []
        self.reset_session()

    def reset_session(self):
        """Clear all session-scoped state; persisted values are untouched."""
        self.fixes = []
        self.elevation.reset()
        self.candidate_distance = 0.0
        self.calibration_in_progress = False
        self.steps_persistent = 0
        self.steps_provisional = 0
        self.steps_total = 0
        self.distance_persistent = 0.0
        self.distance_provisional = 0.0
        self.distance_heuristic = 0.0

    def load_record(self, record):
        with self.lock:
            self.step_length = record.step_length
            self.last_calibrated = record.last_calibrated
        self.body_height = record.body_height

    def calibration(self):
        """Return the (step_length, last_calibrated) pair as one consistent read."""
        with self.lock:
            return self.step_length, self.last_calibrated

    def set_body_height(self, body_height):
        self.body_height = body_height

    @property
    def altitude_gain(self):
        return self.elevation.altitude_gain

    # ------------------------------------------------------------------
    # Location fixes
    # ------------------------------------------------------------------

    def process_fix(self, fix):
        """
        Handle one location fix.

        Args:
            fix (LocationFix): New fix

        Returns:
            bool: True if a new step length was calibrated and persisted
        """
        if not fix.is_valid:
            logger.warning(f"Ignoring invalid location fix: {fix}")
            return False

        if fix.horizontal_accuracy <= self.config.horizontal_accuracy_filter:
            if self.fixes and self._within_distance_filter(fix):
                logger.debug("Fix within horizontal distance filter, ignored")
                return False
            self.fixes.append(fix)
        else:
            self._cancel_calibration(fix.horizontal_accuracy)

        self._update_altitude(fix)

        if self.calibration_enabled and len(self.fixes) >= MIN_CALIBRATION_FIXES:
            return self._evaluate_calibration()
        return False

    def _within_distance_filter(self, fix):
        last = self.fixes[-1]
        moved = haversine_distance(last.latitude, last.longitude, fix.latitude, fix.longitude)
        return moved < self.config.horizontal_distance_filter

    def _cancel_calibration(self, accuracy):
        was_running = self.calibration_in_progress or bool(self.fixes)
        self.fixes.clear()
        self.candidate_distance = 0.0
        if self.calibration_in_progress:
            # Candidate distance dropped below the threshold
            self._commit_provisional()
        if was_running:
            logger.info(f"Calibration window reset: fix accuracy {accuracy:.1f}m "
                        f"> {self.config.horizontal_accuracy_filter:.1f}m")
            self._notify(f"Calibration cancelled: accuracy ({accuracy:.1f})")

    def _evaluate_calibration(self):
        # The first buffered fix only anchors the window start time
        self.candidate_distance = cumulative_distance(self.fixes[1:])

        if self.candidate_distance >= self.config.distance_to_calibrate:
            self.calibration_in_progress = True
            steps = self.steps_between(self.fixes[0].timestamp, self.fixes[-1].timestamp)
            if steps <= 0:
                logger.warning(f"No steps counted over {self.candidate_distance:.1f}m, "
                               f"step length not updated")
                return False

            self._save_step_length(self.candidate_distance / steps)
            self.calibration_in_progress = False
            return True

        if self.calibration_in_progress:
            self._commit_provisional()
        return False

    def _commit_provisional(self):
        # Keep the steps of the interrupted window at the step length they were taken with
        step_length, _ = self.calibration()
        self.steps_persistent += self.steps_provisional
        self.distance_persistent += self.steps_provisional * step_length
        self.steps_provisional = 0
        self.distance_provisional = 0.0
        self.calibration_in_progress = False

    def _save_step_length(self, step_length):
        last_calibrated = int(self.clock())
        with self.lock:
            record = self.store.save_step_length(step_length, last_calibrated)
            self.step_length = record.step_length
            self.last_calibrated = record.last_calibrated
        logger.info(f"Step length calibrated: {step_length:.3f}m over {self.candidate_distance:.1f}m")
        self._notify(f"Calibrated step length ({step_length:.2f})")

    def _update_altitude(self, fix):
        vertical = fix.vertical_accuracy
        if vertical is not None and math.isfinite(vertical):
            admitted = vertical <= self.config.vertical_accuracy_filter
        else:
            # No vertical accuracy reported, judge by horizontal accuracy
            admitted = fix.horizontal_accuracy <= self.config.horizontal_accuracy_filter

        if admitted:
            self.elevation.add(fix.altitude)
        else:
            self.elevation.clear_window()

    def _notify(self, debug_info):
        if self.on_status is not None:
            self.on_status(debug_info)

    # ------------------------------------------------------------------
    # Steps and distance
    # ------------------------------------------------------------------

    def on_step_count(self, total_steps, frequency):
        """
        Update distance estimates from a new cumulative step count.

        Args:
            total_steps (int): Cumulative step count of the session
            frequency (float): Instantaneous step frequency in Hz

        Returns:
            DistanceReport: Rounded distance, step count and altitude gain
        """
        step_length, _ = self.calibration()

        self.steps_provisional = total_steps - self.steps_persistent
        self.distance_provisional = self.steps_provisional * step_length

        new_steps = max(total_steps - self.steps_total, 0)
        self.distance_heuristic += (new_steps * self.config.step_length_factor
                                    * self.body_height * math.sqrt(frequency))
        self.steps_total = total_steps

        return DistanceReport(self.current_distance(), self.steps_total, self.altitude_gain)

    @property
    def calibrated_distance(self):
        return self.distance_persistent + self.distance_provisional

    def current_distance(self):
        """Blend calibrated and heuristic distance, rounded to whole meters."""
        calibrated = self.calibrated_distance
        heuristic = self.distance_heuristic

        if calibrated == 0 and heuristic != 0:
            return round_half_up(heuristic)
        if calibrated != 0 and heuristic == 0:
            return round_half_up(calibrated)
        if calibrated != 0 and heuristic != 0:
            return round_half_up((calibrated + heuristic) / 2)
        return 0

    def is_ready(self, accuracy=None):
        """
        Check whether a session can produce distances.

        Ready if a step length was calibrated before, the given fix accuracy
        would allow calibration right away, or a body height is set.
        """
        step_length, _ = self.calibration()
        if step_length > 0 or self.body_height > 0:
            return True
        return accuracy is not None and accuracy <= self.config.horizontal_accuracy_filter

    def get_state(self):
        step_length, last_calibrated = self.calibration()
        return {
            'step_length': step_length,
            'last_calibrated': last_calibrated,
            'body_height': self.body_height,
            'calibration_enabled': self.calibration_enabled,
            'calibration_in_progress': self.calibration_in_progress,
            'candidate_distance': self.candidate_distance,
            'buffered_fixes': len(self.fixes),
            'steps_persistent': self.steps_persistent,
            'steps_provisional': self.steps_provisional,
            'distance_persistent': self.distance_persistent,
            'distance_provisional': self.distance_provisional,
            'distance_heuristic': self.distance_heuristic,
            'distance': self.current_distance(),
            'altitude_gain': self.altitude_gain,
        }
