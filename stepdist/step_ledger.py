"""
Step ledger - timestamped step events derived from matched strides.

Step timestamps are never measured directly. They are reconstructed from the
stride duration and shifted back by the smoothing lag (update_interval * RT),
because a stride only becomes visible RT samples after it happened.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

STEPS_PER_MINUTE_WINDOW = 15.0  # seconds


class StepLedger:
    """
    Two buckets of step timestamps (epoch seconds).

    current holds the steps of the active representative pattern, preceding
    holds steps of earlier patterns. The total count is the sum of both.
    """

    def __init__(self, update_interval, smoothing_timeframe):
        self.update_interval = update_interval
        self.smoothing_timeframe = smoothing_timeframe
        self.current = []
        self.preceding = []

    @property
    def lag(self):
        """Output delay of the smoothing filter in seconds."""
        return self.update_interval * self.smoothing_timeframe

    def step_duration(self, stride):
        # One stride spans two steps
        return stride.length_total * self.update_interval / 2

    def backfill(self, stride, count, now):
        """
        Replace the current bucket with steps implied before a pattern was found.

        The newest stride itself is not included; it is recorded separately
        when it is matched.
        """
        step = self.step_duration(stride)
        timestamp = now - self.lag - step

        self.current.clear()
        for _ in range(count):
            timestamp -= step
            self.current.append(timestamp)

        logger.debug(f"Back-filled {count} steps of {step:.2f}s")

    def record_stride(self, stride, now, count=2):
        """Append the steps of a matched stride, newest first."""
        step = self.step_duration(stride)
        timestamp = now - self.lag

        self.current.append(timestamp)
        for _ in range(count - 1):
            timestamp -= step
            self.current.append(timestamp)

    def close_current(self):
        """Move current steps to the preceding bucket (count is preserved)."""
        self.preceding.extend(self.current)
        self.current.clear()

    def total_steps(self):
        return len(self.preceding) + len(self.current)

    def steps_between(self, start, end):
        """Count steps strictly inside (start, end) across both buckets."""
        if not self.preceding and not self.current:
            return 0
        timestamps = np.fromiter(self.preceding + self.current, dtype=float)
        return int(np.count_nonzero((timestamps > start) & (timestamps < end)))

    def steps_per_minute(self, now):
        """Steps of the last 15 lag-compensated seconds, scaled to a minute."""
        end = now - self.lag
        return self.steps_between(end - STEPS_PER_MINUTE_WINDOW, end) * 4

    def reset(self):
        self.current.clear()
        self.preceding.clear()
