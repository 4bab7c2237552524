"""
Similarity engine - elects and maintains the representative stride.

Per axis, every new stride is compared to the stride two positions earlier
(same phase, since consecutive strides alternate between MaxMinMax and
MinMaxMin). Once enough consecutive comparisons agree, the axis is locked
and the average of its three most recent same-phase strides becomes the
representative pattern. New strides of that axis and type are then matched
against the representative until one deviates, which reopens the search.

States:
    searching: no representative stride, all axes may elect one
    locked:    a representative stride exists; axes in locked_axes may not
               elect a new one
"""

import logging
from collections import deque

import numpy as np

from ..stride import Stride
from ..utils import round_half_up

logger = logging.getLogger(__name__)

AXES = (0, 1, 2)


def strides_similar(reference, candidate, deviation_length, deviation_amplitude):
    """
    Check whether a stride is similar to a reference stride.

    The comparison is relative to the reference, so it is not symmetric.

    Args:
        reference (Stride): Stride whose length and amplitude are the baseline
        candidate (Stride): Stride being compared
        deviation_length (float): Allowed relative deviation of length_total
        deviation_amplitude (float): Allowed relative deviation of amplitude

    Returns:
        bool: True if both relative deviations are within bounds
    """
    if reference.length_total <= 0 or reference.amplitude <= 0:
        return False

    diff_length = abs(reference.length_total - candidate.length_total) / reference.length_total
    diff_amplitude = abs(reference.amplitude - candidate.amplitude) / reference.amplitude

    return diff_length <= deviation_length and diff_amplitude <= deviation_amplitude


def average_strides(strides):
    """Per-field average of strides, as an averaged (representative) stride."""
    amplitudes = np.array([s.amplitude for s in strides], dtype=float)
    lengths = np.array([s.length_total for s in strides], dtype=float)
    maxima = np.array([s.height_max for s in strides], dtype=float)
    minima = np.array([s.height_min for s in strides], dtype=float)

    return Stride.averaged(
        amplitude=float(amplitudes.mean()),
        length_total=round_half_up(lengths.mean()),
        axis=strides[0].axis,
        stride_type=strides[0].stride_type,
        height_max=float(maxima.mean()),
        height_min=float(minima.mean()),
    )


class SimilarityEngine:
    """
    Per-axis stride comparison state machine.

    Args:
        deviation_length (float): Allowed relative length deviation
        deviation_amplitude (float): Allowed relative amplitude deviation
        min_stride_amplitude (float): Amplitude floor for electing a representative (0 disables)
        better_stride_factor (float): A new representative must exceed the current one's
            amplitude times this factor
        depth (int): Consecutive positive comparisons required before an election
    """

    # Strides kept per axis: the representative averages strides n-4, n-2 and n
    STRIDE_HISTORY = 5

    def __init__(self, deviation_length, deviation_amplitude, min_stride_amplitude,
                 better_stride_factor, depth=3):
        self.deviation_length = deviation_length
        self.deviation_amplitude = deviation_amplitude
        self.min_stride_amplitude = min_stride_amplitude
        self.better_stride_factor = better_stride_factor
        self.depth = depth

        self.strides = [deque(maxlen=self.STRIDE_HISTORY) for _ in AXES]
        self.similarities = [deque(maxlen=depth) for _ in AXES]
        self.representative = Stride()
        self.locked_axes = set()

    @property
    def state(self):
        return 'searching' if self.representative.is_empty else 'locked'

    def similar(self, reference, candidate):
        return strides_similar(reference, candidate, self.deviation_length, self.deviation_amplitude)

    def observe(self, stride):
        """
        Record a new stride and elect a representative if a pattern emerged.

        Args:
            stride (Stride): Newly built stride

        Returns:
            Stride or None: The newly elected representative, if any
        """
        axis = stride.axis
        history = self.strides[axis]
        history.append(stride)

        if len(history) >= 3:
            self.similarities[axis].append(self.similar(history[-3], history[-1]))

        if axis in self.locked_axes or not self._pattern_found(axis):
            return None

        if stride.amplitude < self.min_stride_amplitude:
            return None
        if stride.amplitude <= self.representative.amplitude * self.better_stride_factor:
            return None

        self.representative = average_strides([history[-5], history[-3], history[-1]])
        self.locked_axes.add(axis)
        logger.info(
            f"Representative stride elected on axis {axis}: "
            f"{self.representative.stride_type.value}, amplitude {self.representative.amplitude:.3f}, "
            f"length {self.representative.length_total}"
        )
        return self.representative

    def _pattern_found(self, axis):
        comparisons = self.similarities[axis]
        return (len(comparisons) == self.depth
                and len(self.strides[axis]) >= self.STRIDE_HISTORY
                and all(comparisons))

    def match(self, stride):
        """
        Compare a stride against the representative.

        Returns:
            bool or None: None if the stride is not eligible (no representative,
                other axis or other phase), otherwise whether it is similar
        """
        rep = self.representative
        if not self.locked_axes or rep.is_empty:
            return None
        if rep.axis != stride.axis or rep.stride_type != stride.stride_type:
            return None
        return self.similar(rep, stride)

    def unlock(self):
        """Drop the representative and restart the search on all axes."""
        logger.info(f"Stride pattern broken on axis {self.representative.axis}, searching again")
        self.representative = Stride()
        self.locked_axes.clear()
        for comparisons in self.similarities:
            comparisons.clear()

    def lock_all(self):
        """Prevent every axis from electing a new representative."""
        self.locked_axes.update(AXES)

    def reset(self):
        for history in self.strides:
            history.clear()
        for comparisons in self.similarities:
            comparisons.clear()
        self.representative = Stride()
        self.locked_axes.clear()
