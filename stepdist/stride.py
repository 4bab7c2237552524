"""
Stride model - the atomic gait-pattern unit detected in gravity data.

Every stride is modeled by three consecutive extrema on one sensor axis,
either max-min-max or min-max-min.
"""

from dataclasses import dataclass
from enum import Enum


class StrideType(Enum):
    """Order of the three extrema that make up a stride."""
    MAX_MIN_MAX = 'MaxMinMax'
    MIN_MAX_MIN = 'MinMaxMin'
    NONE = 'none'


@dataclass(frozen=True)
class Stride:
    """
    Three-extrema motion segment on one axis.

    Lengths are sample counts (multiply by the update interval for seconds).
    Averaged strides, used as the representative pattern, carry
    length_first = length_second = 0 and a directly set length_total.
    """

    height_max: float = 0.0
    height_min: float = 0.0
    amplitude: float = 0.0
    length_first: int = 0
    length_second: int = 0
    length_total: int = 0
    axis: int = 0
    stride_type: StrideType = StrideType.NONE

    @classmethod
    def from_extrema(cls, height_max, height_min, length_first, length_second, axis, stride_type):
        """Build a stride from its heights and the sample distances between its extrema."""
        return cls(
            height_max=height_max,
            height_min=height_min,
            amplitude=abs(height_max - height_min),
            length_first=length_first,
            length_second=length_second,
            length_total=length_first + length_second,
            axis=axis,
            stride_type=stride_type,
        )

    @classmethod
    def averaged(cls, amplitude, length_total, axis, stride_type, height_max=0.0, height_min=0.0):
        """Build a representative stride that has no per-half lengths."""
        return cls(
            height_max=height_max,
            height_min=height_min,
            amplitude=amplitude,
            length_first=0,
            length_second=0,
            length_total=length_total,
            axis=axis,
            stride_type=stride_type,
        )

    @property
    def is_empty(self):
        return self.stride_type is StrideType.NONE

    def duration(self, update_interval):
        """Stride duration in seconds."""
        return self.length_total * update_interval
