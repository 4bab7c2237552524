"""Location fix model."""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LocationFix:
    """
    One satellite position fix.

    Accuracies are 1-sigma radii in meters; vertical_accuracy is None when
    the receiver does not report it.
    """

    latitude: float
    longitude: float
    horizontal_accuracy: float
    altitude: float
    timestamp: float
    vertical_accuracy: Optional[float] = None

    @property
    def is_valid(self):
        values = (self.latitude, self.longitude, self.horizontal_accuracy, self.altitude, self.timestamp)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            return False
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0

    @classmethod
    def from_dict(cls, data):
        """Build a fix from a recorded session sample ('accuracy' is read as horizontal accuracy)."""
        return cls(
            latitude=float(data['latitude']),
            longitude=float(data['longitude']),
            horizontal_accuracy=float(data.get('horizontal_accuracy', data.get('accuracy'))),
            altitude=float(data.get('altitude', 0.0)),
            timestamp=float(data['timestamp']),
            vertical_accuracy=(None if data.get('vertical_accuracy') is None
                               else float(data['vertical_accuracy'])),
        )
