"""
Shared mathematical utilities.

Contains the great-circle distance used for step length calibration and the
rounding rule used for every reported distance and altitude.
"""

import math

EARTH_RADIUS = 6371000  # meters


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate distance between two GPS coordinates in meters.

    Args:
        lat1, lon1: First coordinate (latitude, longitude in degrees)
        lat2, lon2: Second coordinate (latitude, longitude in degrees)

    Returns:
        float: Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi/2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda/2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return EARTH_RADIUS * c


def cumulative_distance(fixes):
    """
    Sum of consecutive great-circle distances along a sequence of fixes.

    Args:
        fixes: Sequence of objects with latitude/longitude attributes

    Returns:
        float: Path length in meters (0.0 for fewer than two fixes)
    """
    total = 0.0
    for previous, current in zip(fixes, fixes[1:]):
        total += haversine_distance(previous.latitude, previous.longitude,
                                    current.latitude, current.longitude)
    return total


def round_half_up(value):
    """Round to the nearest integer, halves away from minus infinity."""
    return int(math.floor(value + 0.5))
