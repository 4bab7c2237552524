"""
StepCounter - gravity-pattern step detection across the three sensor axes.

One call to process_sample() is one engine tick. Each axis runs its own
pipeline (extrema classification, smoothing, stride building); all strides
then feed one shared similarity engine and step ledger.

Usage:
    counter = StepCounter(config, on_step=lambda total, hz: print(total, hz))
    counter.process_sample(x, y, z, now=time.time())
    counter.ledger.total_steps()
"""

import logging

from .detection.extrema import AxisBuffer
from .detection.similarity import AXES, SimilarityEngine
from .detection.stride_builder import StrideBuilder
from .step_ledger import StepLedger

logger = logging.getLogger(__name__)


class StepCounter:
    """
    Counts steps from a fixed-period stream of 3-axis gravity vectors.

    Args:
        config (TrackerConfig): Session parameters
        on_step (callable, optional): Called as on_step(total_steps, frequency_hz)
            every time a stride matches the representative stride
    """

    def __init__(self, config, on_step=None):
        self.config = config
        self.on_step = on_step

        self.buffers = [AxisBuffer(axis, config.smoothing_timeframe) for axis in AXES]
        self.builders = [StrideBuilder(axis) for axis in AXES]
        self.similarity = SimilarityEngine(
            deviation_length=config.deviation_length,
            deviation_amplitude=config.deviation_amplitude,
            min_stride_amplitude=config.min_stride_amplitude,
            better_stride_factor=config.better_stride_factor,
            depth=config.similarity_depth,
        )
        self.ledger = StepLedger(config.update_interval, config.smoothing_timeframe)
        self.sample_count = 0

    def process_sample(self, x, y, z, now):
        """
        Run one tick on the latest gravity vector.

        Args:
            x, y, z (float): Gravity components
            now (float): Tick time in epoch seconds
        """
        for axis, value in zip(AXES, (x, y, z)):
            extremum = self.buffers[axis].push(value)
            if extremum is None:
                continue
            stride = self.builders[axis].add(extremum)
            if stride is not None:
                self.process_stride(stride, now)

        # Once a pattern has produced enough steps, no other axis may usurp it
        # (e.g. after the phone turns in a pocket); a genuine mismatch still
        # reopens the search.
        if len(self.ledger.current) >= self.config.lock_after_steps:
            self.similarity.lock_all()

        self.sample_count += 1

    def process_stride(self, stride, now):
        """
        Feed one stride through the similarity state machine.

        Returns:
            bool or None: Match result against the representative stride,
                None if the stride was not eligible for matching
        """
        elected = self.similarity.observe(stride)
        if elected is not None:
            self.ledger.backfill(elected, self.config.backfill_steps, now)

        matched = self.similarity.match(stride)
        if matched:
            self.ledger.record_stride(stride, now)
            total = self.ledger.total_steps()
            frequency = self.step_frequency(stride)
            logger.debug(f"Stride matched on axis {stride.axis}: {total} steps, {frequency:.2f} Hz")
            if self.on_step is not None:
                self.on_step(total, frequency)
        elif matched is not None:
            self.similarity.unlock()
            self.ledger.close_current()

        return matched

    def step_frequency(self, stride):
        """Instantaneous step frequency in Hz (one stride is two steps)."""
        return 1 / (stride.length_total * self.config.update_interval * 0.5)

    def reset(self):
        for buffer in self.buffers:
            buffer.reset()
        for builder in self.builders:
            builder.reset()
        self.similarity.reset()
        self.ledger.reset()
        self.sample_count = 0
