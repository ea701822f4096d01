"""
Measurement persistence.

One flat record shape is used for downloads, uploads and the durable slot:

    {"start": {"x": f, "y": f, "z": f}, "end": {"x": f, "y": f, "z": f}, "distance": f}

Exports are pretty-printed (indent 2); the durable slot holds the same array
compactly. Imports are validated in full before anything is touched, so a bad
payload never leaves a half-replaced log.

Usage:
    store = JsonFileStore(config.STORE_PATH)
    persistence = MeasurementPersistence(store)
    engine = MeasurementEngine(scene, on_log_changed=persistence.save)
    persistence.load(engine)
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.exceptions import MeasurementImportError
from planmeasure.measurement import Measurement, MeasurementEngine

# Standard library imports
import json
import logging
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

# Third-party imports
import numpy as np

logger = logging.getLogger(__name__)

_AXES = ("x", "y", "z")
_RECORD_KEYS = {"start", "end", "distance"}
_DISTANCE_TOLERANCE = 1e-6
_DISTANCE_FLOOR = 1e-12

PointPair = Tuple[np.ndarray, np.ndarray]


# =============================================================================
# Durable key-value slots
# =============================================================================

class KeyValueStore(ABC):
    """String slots addressed by key (the browser-storage contract)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """Key-value slots kept in one JSON object on disk.

    The file is re-read on every ``get`` and rewritten on every ``set``.
    """

    def __init__(self, path: Union[Path, str] = config.STORE_PATH):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key):
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key, value):
        try:
            data = self._read_all()
        except ValueError as e:
            logger.warning(f"Overwriting unreadable store {self.path}: {e}")
            data = {}
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


# =============================================================================
# Record conversion
# =============================================================================

def _point_to_dict(point) -> Dict[str, float]:
    return {axis: float(value) for axis, value in zip(_AXES, point)}


def measurement_to_record(measurement: Measurement) -> Dict[str, Any]:
    return {
        "start": _point_to_dict(measurement.start),
        "end": _point_to_dict(measurement.end),
        "distance": measurement.distance,
    }


def measurements_to_records(log: Iterable[Measurement]) -> List[Dict[str, Any]]:
    return [measurement_to_record(m) for m in log]


def _parse_number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MeasurementImportError(f"{where} must be a number, got {value!r}")
    try:
        value = float(value)
    except OverflowError as e:
        raise MeasurementImportError(f"{where} is too large for a float") from e
    if not math.isfinite(value):
        raise MeasurementImportError(f"{where} must be finite, got {value!r}")
    return value


def _parse_point(value: Any, where: str) -> np.ndarray:
    if not isinstance(value, dict):
        raise MeasurementImportError(f"{where} must be an object with x, y, z")
    if set(value) != set(_AXES):
        raise MeasurementImportError(f"{where} must have exactly the keys x, y, z, got {sorted(value)}")
    return np.array([_parse_number(value[axis], f"{where}.{axis}") for axis in _AXES], dtype=np.float64)


def parse_records(payload: Union[bytes, str]) -> List[PointPair]:
    """
    Parse and validate a serialized measurement array.

    Args:
        payload: JSON text or UTF-8 bytes.

    Returns:
        list: (start, end) pairs in file order.

    Raises:
        MeasurementImportError: On any deviation from the record shape.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MeasurementImportError(f"Payload is not UTF-8 text: {e}") from e
    try:
        data = json.loads(payload)
    except ValueError as e:
        # JSONDecodeError, or an integer literal over the int parsing limit
        raise MeasurementImportError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise MeasurementImportError(f"Expected a JSON array of measurements, got {type(data).__name__}")

    pairs: List[PointPair] = []
    for i, record in enumerate(data):
        where = f"record {i}"
        if not isinstance(record, dict):
            raise MeasurementImportError(f"{where} must be an object")
        if set(record) != _RECORD_KEYS:
            missing = sorted(_RECORD_KEYS - set(record))
            extra = sorted(set(record) - _RECORD_KEYS)
            raise MeasurementImportError(f"{where} has missing keys {missing} / unexpected keys {extra}")

        start = _parse_point(record["start"], f"{where}.start")
        end = _parse_point(record["end"], f"{where}.end")
        stored = _parse_number(record["distance"], f"{where}.distance")
        actual = float(np.linalg.norm(end - start))
        if abs(stored - actual) > max(_DISTANCE_TOLERANCE * actual, _DISTANCE_FLOOR):
            logger.warning(f"{where}: stored distance {stored} does not match endpoints ({actual:.6f}); using endpoints")
        pairs.append((start, end))
    return pairs


# =============================================================================
# Export / import
# =============================================================================

def export_measurements(log: Iterable[Measurement]) -> bytes:
    """Serialize the log for download (pretty-printed JSON)."""
    return json.dumps(measurements_to_records(log), indent=2).encode("utf-8")


def import_measurements(engine: MeasurementEngine, payload: Union[bytes, str]) -> List[Measurement]:
    """
    Replace the engine's log with the measurements in ``payload``.

    The payload is validated first; on failure the log is left untouched.
    Otherwise every existing entry is undone in turn and each record is
    recreated in file order.

    Raises:
        MeasurementImportError: If the payload is malformed.
    """
    try:
        pairs = parse_records(payload)
    except MeasurementImportError as e:
        logger.error(f"Import rejected: {e}")
        raise

    engine.clear()
    created = [engine.create_measurement(start, end) for start, end in pairs]
    engine.notify_log_changed()
    logger.info(f"Imported {len(created)} measurements")
    return created


def export_measurements_file(log: Iterable[Measurement], path: Union[Path, str, None] = None) -> Path:
    path = Path(path) if path is not None else config.MEASUREMENTS_DIR / config.EXPORT_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(export_measurements(log))
    logger.info(f"Measurements exported to {path}")
    return path


def import_measurements_file(engine: MeasurementEngine, path: Union[Path, str]) -> List[Measurement]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Measurement file not found: {path}")
    return import_measurements(engine, path.read_bytes())


# =============================================================================
# Durable slot
# =============================================================================

class MeasurementPersistence:
    """
    Saves the log to a key-value slot and restores it at scene start.

    Args:
        store: Durable slot implementation.
        key: Slot name.
    """

    def __init__(self, store: KeyValueStore, key: str = config.STORAGE_KEY):
        self.store = store
        self.key = key

    def save(self, log: Iterable[Measurement]) -> None:
        records = measurements_to_records(log)
        self.store.set(self.key, json.dumps(records, separators=(",", ":")))
        logger.debug(f"Saved {len(records)} measurements under '{self.key}'")

    def load(self, engine: MeasurementEngine) -> int:
        """Recreate stored measurements in ``engine``. Returns the number restored.

        A corrupt slot is logged and ignored; nothing is restored from it.
        """
        try:
            stored = self.store.get(self.key)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read measurement store: {e}")
            return 0
        if not stored:
            return 0
        try:
            pairs = parse_records(stored)
        except MeasurementImportError as e:
            logger.warning(f"Ignoring corrupt measurement store '{self.key}': {e}")
            return 0
        for start, end in pairs:
            engine.create_measurement(start, end)
        logger.info(f"Restored {len(pairs)} measurements from '{self.key}'")
        return len(pairs)
