"""In-memory calibration store for hosts that persist values themselves."""

import threading

from .base import CalibrationRecord, CalibrationStoreBase


class InMemoryCalibrationStore(CalibrationStoreBase):
    """Calibration record held in process memory - thread safe."""

    def __init__(self, record=None):
        self.record = record or CalibrationRecord()
        self.lock = threading.Lock()

    def load(self):
        with self.lock:
            return self.record

    def save_step_length(self, step_length, last_calibrated):
        with self.lock:
            self.record = self.record.replace(step_length=float(step_length),
                                              last_calibrated=int(last_calibrated))
            return self.record

    def save_body_height(self, body_height):
        with self.lock:
            self.record = self.record.replace(body_height=float(body_height))
            return self.record

    def reset(self):
        with self.lock:
            self.record = CalibrationRecord()
            return self.record
