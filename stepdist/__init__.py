"""
Pedestrian dead-reckoning from phone gravity data.

Counts steps by recognising a repeating stride pattern on one of the three
gravity axes, calibrates the user's step length from intermittent GNSS fixes,
and reports walking distance and relative elevation gain.

Example usage:
    from stepdist import LocationFix, StepDistanceTracker, get_store

    tracker = StepDistanceTracker(store=get_store('json', path='calibration.json'),
                                  listener=listener)
    tracker.start({'updateInterval': 0.1, 'smoothingTimeframe': 6, ...})
    tracker.feed_motion_sample(x, y, z)
    tracker.feed_location_fix(LocationFix(lat, lon, accuracy, altitude, timestamp))
"""

from .config import DEFAULT_OPTIONS, ConfigurationError, TrackerConfig
from .distance import CalibrationEngine, DistanceReport, ElevationTracker, LocationFix
from .listener import TrackerListener
from .step_counter import StepCounter
from .step_ledger import StepLedger
from .store import CalibrationRecord, CalibrationStoreBase, StoreError, get_store
from .stride import Stride, StrideType
from .tracker import StepDistanceTracker, TrackerStateError

__version__ = '0.1.0'

__all__ = [
    'CalibrationEngine',
    'CalibrationRecord',
    'CalibrationStoreBase',
    'ConfigurationError',
    'DEFAULT_OPTIONS',
    'DistanceReport',
    'ElevationTracker',
    'LocationFix',
    'StepCounter',
    'StepDistanceTracker',
    'StepLedger',
    'StoreError',
    'Stride',
    'StrideType',
    'TrackerConfig',
    'TrackerListener',
    'TrackerStateError',
    'get_store',
]
