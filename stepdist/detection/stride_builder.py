"""
Stride builder - turns consecutive confirmed extrema into strides.
"""

from collections import deque

from ..stride import Stride, StrideType
from .extrema import MAXIMUM


class StrideBuilder:
    """
    Sliding FIFO of the last three extrema on one axis.

    Every extremum from the third one on yields one stride, so consecutive
    strides overlap by two extrema and alternate between MaxMinMax and
    MinMaxMin.
    """

    def __init__(self, axis):
        self.axis = axis
        self.extrema = deque(maxlen=3)

    def add(self, extremum):
        """
        Append a confirmed extremum.

        Args:
            extremum (Extremum): Position, smoothed value and flag

        Returns:
            Stride or None: New stride once three extrema are available
        """
        self.extrema.append(extremum)
        if len(self.extrema) < 3:
            return None

        first, middle, last = self.extrema
        length_first = middle.position - first.position
        length_second = last.position - middle.position
        flanks = (first.value + last.value) / 2

        if last.flag == MAXIMUM:
            return Stride.from_extrema(flanks, middle.value, length_first, length_second,
                                       self.axis, StrideType.MAX_MIN_MAX)
        return Stride.from_extrema(middle.value, flanks, length_first, length_second,
                                   self.axis, StrideType.MIN_MAX_MIN)

    def reset(self):
        self.extrema.clear()
