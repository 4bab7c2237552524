"""
Extrema classification and smoothing for one gravity axis.

Each incoming sample is stored in a trailing window of RT + 1 points. The
middle point of every new triple is flagged as a maximum (1), a minimum (-1)
or neither (0). Noise-induced duplicate extrema inside the window are then
merged, and the leftmost point (RT samples old) leaves the window smoothed.
That constant RT-sample lag is the price paid for seeing only clean extrema
downstream.
"""

import logging
from collections import namedtuple

import numpy as np

logger = logging.getLogger(__name__)

MAXIMUM = 1
MINIMUM = -1
NO_EXTREMUM = 0

# A confirmed extremum leaving the smoothing window
Extremum = namedtuple('Extremum', ['position', 'value', 'flag'])


def classify_extremum(p0, p1, p2):
    """
    Classify the middle point of three consecutive samples.

    Returns:
        int: MAXIMUM if p0 < p1 and p2 <= p1, MINIMUM if p0 > p1 and
             p2 >= p1, NO_EXTREMUM otherwise
    """
    if p0 < p1 and p2 <= p1:
        return MAXIMUM
    if p0 > p1 and p2 >= p1:
        return MINIMUM
    return NO_EXTREMUM


def smooth_window(values, flags):
    """
    Merge a duplicate of the first extremum in a window, in place.

    Anchors on the first flagged position. If the next flagged position
    carries the same flag, everything strictly between them is overwritten
    with the midpoint of the two raw endpoint values, and only the more
    extreme endpoint keeps its flag (the larger of two maxima, the smaller of
    two minima). An opposite flag first means the window has no conflict.

    Args:
        values (np.ndarray): Raw values of the window (modified in place)
        flags (np.ndarray): Extremum flags aligned with values (modified in place)

    Returns:
        bool: True if a conflict was found and resolved
    """
    flagged = np.flatnonzero(flags)
    if len(flagged) < 2:
        return False

    anchor, pos = int(flagged[0]), int(flagged[1])
    flag = flags[anchor]
    if flags[pos] != flag:
        return False

    first_value = values[anchor]
    second_value = values[pos]

    values[anchor + 1:pos] = (first_value + second_value) / 2
    flags[anchor + 1:pos] = NO_EXTREMUM

    if flag == MAXIMUM:
        loser = pos if first_value > second_value else anchor
    else:
        loser = anchor if first_value > second_value else pos
    flags[loser] = NO_EXTREMUM
    return True


class AxisBuffer:
    """
    Trailing raw-value/flag window for one axis.

    Holds the last RT + 1 samples. Positions are absolute sample indices
    counted from the start of the session.
    """

    def __init__(self, axis, smoothing_timeframe):
        if smoothing_timeframe < 2:
            raise ValueError(f"smoothing_timeframe must be >= 2, got {smoothing_timeframe}")

        self.axis = axis
        self.smoothing_timeframe = smoothing_timeframe
        self.values = np.zeros(smoothing_timeframe + 1, dtype=float)
        self.flags = np.zeros(smoothing_timeframe + 1, dtype=np.int8)
        self.count = 0

    def _slot(self, position):
        return position - max(0, self.count - 1 - self.smoothing_timeframe)

    def push(self, value):
        """
        Add a sample and release the smoothed sample RT positions back.

        Args:
            value (float): New raw value for this axis

        Returns:
            Extremum or None: The released sample if it is still flagged
                after smoothing, otherwise None
        """
        rt = self.smoothing_timeframe
        position = self.count

        if position > rt:
            # Window is full, slide it left by one
            self.values[:-1] = self.values[1:]
            self.flags[:-1] = self.flags[1:]
        self.count += 1

        slot = self._slot(position)
        self.values[slot] = value
        self.flags[slot] = NO_EXTREMUM

        if position >= 2:
            self.flags[slot - 1] = classify_extremum(
                self.values[slot - 2], self.values[slot - 1], self.values[slot]
            )

        if position < rt:
            return None

        # Window covers positions [position - rt, position - 1] = slots [0, rt - 1]
        smooth_window(self.values[:rt], self.flags[:rt])

        flag = int(self.flags[0])
        if flag == NO_EXTREMUM:
            return None

        return Extremum(position - rt, float(self.values[0]), flag)

    def reset(self):
        self.values[:] = 0.0
        self.flags[:] = NO_EXTREMUM
        self.count = 0
