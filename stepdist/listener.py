"""
Outbound event interface of the tracker.

Events are delivered synchronously from the tracker's worker (or from the
thread calling tick() when no worker runs). Handlers should return quickly;
a slow handler delays the next motion tick.
"""


class TrackerListener:
    """
    Receives tracker events. Subclass and override what you need; every
    method defaults to doing nothing. Any object with the same three methods
    can be used instead.
    """

    def on_step_count_changed(self, total_steps, frequency):
        """
        Called whenever a stride matched the representative stride.

        Args:
            total_steps (int): Cumulative steps of the session
            frequency (float): Instantaneous step frequency in Hz
        """

    def on_distance_changed(self, distance, total_steps, altitude_gain):
        """
        Called after every step count change.

        Args:
            distance (int): Walking distance in whole meters
            total_steps (int): Cumulative steps of the session
            altitude_gain (int): Relative elevation gain in whole meters
        """

    def on_status_changed(self, is_ready_to_start, step_length, last_calibrated, body_height,
                          debug_info=''):
        """
        Called when readiness or calibration state changes.

        Args:
            is_ready_to_start (bool): Whether a session can produce distances
            step_length (float): Calibrated step length in meters (0 if never calibrated)
            last_calibrated (int): Epoch seconds of last calibration (0 if never)
            body_height (float): Body height in meters (0 if unset)
            debug_info (str): Human-readable reason for the update
        """
