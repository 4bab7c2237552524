"""Shared fixtures for the stepdist test suite."""

import math

import numpy as np
import pytest

from stepdist import DEFAULT_OPTIONS, TrackerConfig, TrackerListener
from stepdist.stride import Stride, StrideType
from stepdist.utils import EARTH_RADIUS


def make_config(**overrides):
    options = dict(DEFAULT_OPTIONS)
    options.update(overrides)
    return TrackerConfig(**options)


def make_stride(amplitude=2.0, length=20, axis=0, stride_type=StrideType.MAX_MIN_MAX):
    half = length // 2
    return Stride.from_extrema(amplitude / 2, -amplitude / 2, half, length - half, axis, stride_type)


def walking_signal(samples, period=20, amplitude=1.5, offset=9.81):
    """Gravity component of a steady walk: one stride (two steps) per period."""
    n = np.arange(samples)
    return offset + amplitude * np.sin(2 * np.pi * n / period)


def offset_position(lat, lon, north_m, east_m):
    """Move a coordinate by a small metric offset."""
    new_lat = lat + math.degrees(north_m / EARTH_RADIUS)
    new_lon = lon + math.degrees(east_m / (EARTH_RADIUS * math.cos(math.radians(lat))))
    return new_lat, new_lon


class RecordingListener(TrackerListener):
    def __init__(self):
        self.steps = []
        self.distances = []
        self.statuses = []

    def on_step_count_changed(self, total_steps, frequency):
        self.steps.append((total_steps, frequency))

    def on_distance_changed(self, distance, total_steps, altitude_gain):
        self.distances.append((distance, total_steps, altitude_gain))

    def on_status_changed(self, is_ready_to_start, step_length, last_calibrated, body_height,
                          debug_info=''):
        self.statuses.append({
            'ready': is_ready_to_start,
            'step_length': step_length,
            'last_calibrated': last_calibrated,
            'body_height': body_height,
            'debug_info': debug_info,
        })


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def clock():
    return FakeClock()
