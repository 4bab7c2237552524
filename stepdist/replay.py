"""
Replay a recorded walking session through the step/distance tracker.

Refeeds the recorded gravity samples and GNSS fixes with deterministic
timing: the engine ticks at the configured update interval on recorded
time, reading the latest sample at each tick exactly as it does live. Prints
a summary and can export the distance timeline as CSV.

Session format (.json or .json.gz):
    {
      "accel_samples": [{"timestamp": ..., "x": ..., "y": ..., "z": ...}, ...],
      "gps_samples":   [{"timestamp": ..., "latitude": ..., "longitude": ...,
                         "accuracy": ..., "altitude": ..., "vertical_accuracy": ...}, ...]
    }
"""

from __future__ import annotations

import argparse
import gzip
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import orjson
import pandas as pd

from .config import DEFAULT_OPTIONS, ConfigurationError, TrackerConfig
from .distance.fix import LocationFix
from .listener import TrackerListener
from .store import get_store
from .tracker import StepDistanceTracker

logger = logging.getLogger(__name__)


@dataclass
class ReplayEvent:
    timestamp: float
    kind: str
    payload: Dict


class ReplayClock:
    """Simple clock override so the tracker uses recorded timestamps instead of wall time."""

    def __init__(self) -> None:
        self._value = 0.0

    def set(self, value: float) -> None:
        self._value = value

    def now(self) -> float:
        return self._value


class RecordingListener(TrackerListener):
    """Collects tracker events as timeline rows."""

    def __init__(self, clock: ReplayClock) -> None:
        self.clock = clock
        self.rows: List[Dict] = []
        self.statuses: List[Dict] = []
        self.frequency = 0.0

    def on_step_count_changed(self, total_steps, frequency):
        self.frequency = frequency

    def on_distance_changed(self, distance, total_steps, altitude_gain):
        self.rows.append({
            'timestamp': self.clock.now(),
            'steps': total_steps,
            'distance': distance,
            'altitude_gain': altitude_gain,
            'frequency': self.frequency,
        })

    def on_status_changed(self, is_ready_to_start, step_length, last_calibrated, body_height,
                          debug_info=''):
        self.statuses.append({
            'timestamp': self.clock.now(),
            'ready': is_ready_to_start,
            'step_length': step_length,
            'debug_info': debug_info,
        })


def load_session(path: Path) -> Dict:
    opener = gzip.open if path.suffix == '.gz' else open
    with opener(path, 'rb') as handle:
        return orjson.loads(handle.read())


def build_events(data: Dict) -> Tuple[List[ReplayEvent], float]:
    events: List[ReplayEvent] = []

    def add_events(samples: Iterable[Dict], kind: str) -> None:
        for sample in samples or []:
            ts = sample.get('timestamp')
            if ts is None:
                continue
            events.append(ReplayEvent(float(ts), kind, sample))

    add_events(data.get('accel_samples', []), 'accel')
    add_events(data.get('gps_samples', []), 'gps')

    if not events:
        raise RuntimeError('Session has no samples to replay')

    events.sort(key=lambda ev: ev.timestamp)
    start_ts = events[0].timestamp
    return events, start_ts


def replay_session(
    data: Dict,
    config: TrackerConfig,
    body_height: Optional[float] = None,
    store=None,
) -> Dict:
    """
    Run a recorded session through a tracker driven by recorded time.

    Returns:
        dict: summary values plus 'timeline' (distance events) and 'statuses'
    """
    events, start_ts = build_events(data)
    end_ts = events[-1].timestamp

    clock = ReplayClock()
    clock.set(start_ts)
    listener = RecordingListener(clock)
    tracker = StepDistanceTracker(
        store=store if store is not None else get_store('memory'),
        listener=listener,
        clock=clock.now,
    )
    if body_height is not None:
        tracker.set_body_height(body_height)

    tracker.start(config, background=False)

    index = 0
    tick = 0
    tick_time = start_ts
    while tick_time <= end_ts:
        while index < len(events) and events[index].timestamp <= tick_time:
            event = events[index]
            clock.set(event.timestamp)
            if event.kind == 'accel':
                payload = event.payload
                tracker.feed_motion_sample(payload.get('x'), payload.get('y'), payload.get('z'),
                                           timestamp=event.timestamp)
            else:
                try:
                    tracker.feed_location_fix(LocationFix.from_dict(event.payload))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed GPS sample at {event.timestamp}: {e}")
            index += 1

        clock.set(tick_time)
        tracker.tick()
        tick += 1
        tick_time = start_ts + tick * config.update_interval

    state = tracker.get_state()
    tracker.stop()

    return {
        'duration': end_ts - start_ts,
        'ticks': tick,
        'steps': state.get('steps', 0),
        'distance': state.get('distance', 0),
        'altitude_gain': state.get('altitude_gain', 0),
        'step_length': state.get('step_length', 0.0),
        'last_calibrated': state.get('last_calibrated', 0),
        'timeline': listener.rows,
        'statuses': listener.statuses,
    }


def write_timeline_csv(timeline: List[Dict], output_path: Path) -> None:
    columns = ['timestamp', 'steps', 'distance', 'altitude_gain', 'frequency']
    df = pd.DataFrame(timeline, columns=columns)
    df.to_csv(output_path, index=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument(
        'session',
        type=Path,
        help='Path to a recorded session (.json or .json.gz)',
    )
    parser.add_argument(
        '--config',
        type=Path,
        help='JSON configuration file (default: the shipped plugin defaults)',
    )
    parser.add_argument(
        '--body-height',
        type=float,
        help='Body height in meters for the heuristic distance estimate',
    )
    parser.add_argument(
        '--store',
        type=Path,
        help='JSON calibration record to load and update (default: in-memory)',
    )
    parser.add_argument(
        '--csv',
        type=Path,
        help='Write the distance timeline to this CSV file',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log engine decisions (lock/unlock, calibration) to stderr',
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        config = TrackerConfig.from_file(args.config) if args.config else TrackerConfig(**DEFAULT_OPTIONS)
    except ConfigurationError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    try:
        data = load_session(args.session)
    except (OSError, orjson.JSONDecodeError) as e:
        print(f"✗ Cannot load session {args.session}: {e}", file=sys.stderr)
        return 1

    store = get_store('json', path=args.store) if args.store else None
    try:
        result = replay_session(data, config, body_height=args.body_height, store=store)
    except RuntimeError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print(f"✓ Replayed {result['duration']:.1f}s ({result['ticks']} ticks)")
    print(f"  Steps:         {result['steps']}")
    print(f"  Distance:      {result['distance']} m")
    print(f"  Altitude gain: {result['altitude_gain']} m")
    if result['step_length']:
        print(f"  Step length:   {result['step_length']:.2f} m")
    else:
        print("  Step length:   not calibrated")

    if args.csv:
        write_timeline_csv(result['timeline'], args.csv)
        print(f"✓ Timeline saved to {args.csv}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
