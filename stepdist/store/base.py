"""
Abstract base class for calibration stores.

A store keeps the durable part of a user's calibration: step length, the
time it was calibrated, and body height. All implementations must read and
write the step length and its timestamp as one unit.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


class StoreError(RuntimeError):
    """Raised when the calibration record cannot be written."""


@dataclass(frozen=True)
class CalibrationRecord:
    """
    Persisted calibration values. 0 means "not set" for every field.

    Attributes:
        step_length (float): Calibrated step length in meters
        last_calibrated (int): Epoch seconds of the last successful calibration
        body_height (float): User's body height in meters
    """

    step_length: float = 0.0
    last_calibrated: int = 0
    body_height: float = 0.0

    def to_dict(self):
        return {
            'stepLength': self.step_length,
            'lastCalibrated': self.last_calibrated,
            'bodyHeight': self.body_height,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            step_length=float(data.get('stepLength', 0.0) or 0.0),
            last_calibrated=int(data.get('lastCalibrated', 0) or 0),
            body_height=float(data.get('bodyHeight', 0.0) or 0.0),
        )

    def replace(self, **changes):
        values = asdict(self)
        values.update(changes)
        return CalibrationRecord(**values)


class CalibrationStoreBase(ABC):
    """
    Abstract durable key-value store for the calibration record.

    All subclasses must implement:
    - load() -> CalibrationRecord
    - save_step_length(step_length, last_calibrated) -> CalibrationRecord
    - save_body_height(body_height) -> CalibrationRecord
    - reset() -> CalibrationRecord
    """

    @abstractmethod
    def load(self):
        """
        Read the stored record.

        Returns:
            CalibrationRecord: Stored values, zeros for anything never written
        """
        pass

    @abstractmethod
    def save_step_length(self, step_length, last_calibrated):
        """
        Persist a new step length together with its calibration time.

        Args:
            step_length (float): Step length in meters
            last_calibrated (int): Epoch seconds

        Returns:
            CalibrationRecord: The record as stored
        """
        pass

    @abstractmethod
    def save_body_height(self, body_height):
        """Persist body height in meters and return the stored record."""
        pass

    @abstractmethod
    def reset(self):
        """Erase every stored value and return the (empty) record."""
        pass
