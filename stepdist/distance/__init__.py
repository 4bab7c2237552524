"""GNSS-based step length calibration, distance blending and elevation gain."""

from .calibration import CalibrationEngine, DistanceReport
from .elevation import ElevationTracker
from .fix import LocationFix

__all__ = ['CalibrationEngine', 'DistanceReport', 'ElevationTracker', 'LocationFix']
