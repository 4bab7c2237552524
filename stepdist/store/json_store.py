"""
JSON file calibration store.

The record is kept in a single small JSON document. Every write goes to a
temporary file first and is then renamed over the original, so a crash never
leaves a half-written record behind.
"""

import logging
import os
import threading
from pathlib import Path

import orjson

from .base import CalibrationRecord, CalibrationStoreBase, StoreError

logger = logging.getLogger(__name__)


class JsonCalibrationStore(CalibrationStoreBase):
    """
    Calibration record persisted as JSON on disk - thread safe.

    Args:
        path (str or Path): Location of the JSON document (parent directories
            are created on first write)
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()
        self.lock = threading.Lock()

    def load(self):
        with self.lock:
            return self._read()

    def save_step_length(self, step_length, last_calibrated):
        with self.lock:
            record = self._read().replace(step_length=float(step_length),
                                          last_calibrated=int(last_calibrated))
            self._write(record)
            return record

    def save_body_height(self, body_height):
        with self.lock:
            record = self._read().replace(body_height=float(body_height))
            self._write(record)
            return record

    def reset(self):
        with self.lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StoreError(f"Failed to erase calibration record {self.path}: {e}") from e
            logger.info(f"Calibration record erased ({self.path})")
            return CalibrationRecord()

    def _read(self):
        if not self.path.exists():
            return CalibrationRecord()

        try:
            data = orjson.loads(self.path.read_bytes())
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return CalibrationRecord.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            # orjson.JSONDecodeError is a ValueError
            logger.warning(f"Ignoring unreadable calibration record {self.path}: {e}")
            return CalibrationRecord()

    def _write(self, record):
        temp_path = self.path.with_name(self.path.name + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(orjson.dumps(record.to_dict(), option=orjson.OPT_INDENT_2))
            # Atomic rename
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise StoreError(f"Failed to write calibration record {self.path}: {e}") from e
