"""
Pluggable calibration stores.

This module provides a factory function to instantiate the store that holds
the persisted calibration record (step length, last calibration time, body
height). All stores conform to the same interface.

Example usage:
    store = get_store('memory')
    store = get_store('json', path='~/.stepdist/calibration.json')

    record = store.load()
    store.save_step_length(0.74, int(time.time()))
"""

from .base import CalibrationRecord, CalibrationStoreBase, StoreError


def get_store(store_type='memory', **kwargs):
    """
    Factory function to get a calibration store by name.

    Args:
        store_type (str): Store type - options:
            - 'memory': Process-local record (host handles persistence)
            - 'json': JSON document on disk (requires path=...)
        **kwargs: Additional arguments passed to store constructor

    Returns:
        Store instance with load(), save_step_length(), save_body_height(), reset() methods

    Raises:
        ValueError: If store_type is not recognized
    """
    if store_type == 'memory':
        from .memory import InMemoryCalibrationStore
        return InMemoryCalibrationStore(**kwargs)
    elif store_type == 'json':
        from .json_store import JsonCalibrationStore
        return JsonCalibrationStore(**kwargs)
    else:
        raise ValueError(f"Unknown store type: {store_type}. Use 'memory' or 'json'")


__all__ = ['get_store', 'CalibrationRecord', 'CalibrationStoreBase', 'StoreError']
