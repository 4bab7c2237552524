"""
Relative elevation gain from GNSS altitudes.

Altitudes are averaged over a sliding window. A window whose consecutive
samples jump around by a meter or more in total is considered noise and
ignored. Only ascents count: the rounded window mean is compared to the
previous rounded mean and non-negative changes are added up.
"""

import logging
from collections import deque

import numpy as np

from ..utils import round_half_up

logger = logging.getLogger(__name__)


class ElevationTracker:
    """
    Accumulates relative altitude gain in whole meters.

    Args:
        window_size (int): Number of altitude samples averaged per update
        noise_threshold (float): Window is discarded if the sum of absolute
            consecutive differences reaches this many meters
    """

    def __init__(self, window_size, noise_threshold=1.0):
        self.window_size = window_size
        self.noise_threshold = noise_threshold
        self.window = deque(maxlen=window_size)
        self.last_altitude = None
        self.altitude_gain = 0

    def add(self, altitude):
        """
        Add an admitted altitude sample.

        Returns:
            int: Cumulative altitude gain in meters
        """
        # Full window slides by dropping its oldest sample
        self.window.append(altitude)
        if len(self.window) < self.window_size:
            return self.altitude_gain

        samples = np.fromiter(self.window, dtype=float)
        jitter = float(np.abs(np.diff(samples)).sum())
        if jitter >= self.noise_threshold:
            logger.debug(f"Altitude window discarded as noise ({jitter:.2f}m of jitter)")
            return self.altitude_gain

        current = round_half_up(samples.mean())
        if self.last_altitude is not None:
            delta = current - self.last_altitude
            if delta >= 0:
                self.altitude_gain += delta
        self.last_altitude = current

        return self.altitude_gain

    def clear_window(self):
        """Forget buffered samples after an inaccurate fix (gain and baseline are kept)."""
        self.window.clear()

    def reset(self):
        self.window.clear()
        self.last_altitude = None
        self.altitude_gain = 0
