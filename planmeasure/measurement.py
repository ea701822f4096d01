"""
Measurement Engine.

Two-state machine driven by the current target point:

    Idle --start(p)--> Measuring --end(p)--> Idle (commits a Measurement)

``update`` moves the live preview while measuring; ``toggle`` is the single
press used by VR triggers and touch release. ``undo`` pops the last committed
measurement in either state. Committed measurements are kept in commit order.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.geometry_utils import as_point3, midpoint
from planmeasure.scene import Handle, SceneAdapter

# Standard library imports
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

# Third-party imports
import numpy as np

logger = logging.getLogger(__name__)

_LABEL_OFFSET = np.array([0.0, config.LABEL_HEIGHT_OFFSET, 0.0])


class MeasureState(str, Enum):
    IDLE = "idle"
    MEASURING = "measuring"


def format_distance(distance: float) -> str:
    """Label text for a distance in metres, e.g. '5.00m'."""
    return f"{distance:.2f}m"


def label_position(start, end) -> np.ndarray:
    return midpoint(start, end) + _LABEL_OFFSET


@dataclass(eq=False)
class Measurement:
    """
    A committed start/end pair.

    The distance is always derived from the endpoints. Render handles are
    owned by the scene adapter and released on undo.
    """

    start: np.ndarray
    end: np.ndarray
    line_handle: Optional[Handle] = None
    label_handle: Optional[Handle] = None

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.end - self.start))

    @property
    def label(self) -> str:
        return format_distance(self.distance)


class MeasurementEngine:
    """
    Measurement state machine and committed log.

    Args:
        scene: Adapter that owns preview/committed line and label objects.
        on_log_changed: Called with the log after every commit and undo
                        (used to persist it).
    """

    def __init__(self, scene: SceneAdapter, on_log_changed: Optional[Callable[[List[Measurement]], None]] = None):
        self.scene = scene
        self.on_log_changed = on_log_changed
        self.state = MeasureState.IDLE
        self.start_point = np.zeros(3)
        self.log: List[Measurement] = []
        self.preview_distance = 0.0

        # Preview objects are created once and reused for every measurement
        self._preview_line = scene.add_line(self.start_point, self.start_point, config.PREVIEW_COLOR)
        self._preview_label = scene.add_label(format_distance(0.0), self.start_point + _LABEL_OFFSET, config.PREVIEW_COLOR)
        scene.set_visible(self._preview_line, False)
        scene.set_visible(self._preview_label, False)

    @property
    def is_measuring(self) -> bool:
        return self.state is MeasureState.MEASURING

    @property
    def preview_handles(self):
        return self._preview_line, self._preview_label

    def start(self, point) -> None:
        """Begin a measurement at ``point`` (restarts one already in progress)."""
        point = as_point3(point).copy()
        self.state = MeasureState.MEASURING
        self.start_point = point
        self.preview_distance = 0.0
        self.scene.update_line(self._preview_line, point, point)
        self.scene.update_label(self._preview_label, format_distance(0.0), point + _LABEL_OFFSET)
        self.scene.set_visible(self._preview_line, True)
        self.scene.set_visible(self._preview_label, True)
        logger.debug(f"Measurement started at {point.tolist()}")

    def update(self, point) -> None:
        """Stretch the preview to ``point``. Ignored while idle."""
        if not self.is_measuring:
            return
        point = as_point3(point)
        self.preview_distance = float(np.linalg.norm(point - self.start_point))
        self.scene.update_line(self._preview_line, self.start_point, point)
        self.scene.update_label(
            self._preview_label,
            format_distance(self.preview_distance),
            label_position(self.start_point, point),
        )

    def end(self, point) -> Optional[Measurement]:
        """Commit the measurement ending at ``point``. Ignored while idle."""
        if not self.is_measuring:
            return None
        measurement = self.create_measurement(self.start_point, point)
        self.state = MeasureState.IDLE
        self.scene.set_visible(self._preview_line, False)
        self.scene.set_visible(self._preview_label, False)
        logger.info(f"Measurement committed: {measurement.label}")
        self.notify_log_changed()
        return measurement

    def toggle(self, point) -> Optional[Measurement]:
        """Start when idle, end when measuring."""
        if self.is_measuring:
            return self.end(point)
        self.start(point)
        return None

    def undo(self) -> Optional[Measurement]:
        """Remove the last committed measurement. No-op on an empty log."""
        if not self.log:
            return None
        last = self.log.pop()
        for handle in (last.line_handle, last.label_handle):
            if handle is not None:
                self.scene.remove(handle)
        logger.info(f"Undid measurement {last.label} ({len(self.log)} remaining)")
        self.notify_log_changed()
        return last

    def create_measurement(self, start, end) -> Measurement:
        """Append a measurement with its line and label, bypassing the state machine.

        Used for commits and for restoring stored or imported records. Does not
        notify ``on_log_changed``.
        """
        start = as_point3(start).copy()
        end = as_point3(end).copy()
        measurement = Measurement(start=start, end=end)
        measurement.line_handle = self.scene.add_line(start, end, config.MEASUREMENT_COLOR)
        measurement.label_handle = self.scene.add_label(
            measurement.label, label_position(start, end), config.MEASUREMENT_COLOR
        )
        self.log.append(measurement)
        return measurement

    def clear(self) -> None:
        """Empty the log one undo at a time, so every removal tears down like a live undo."""
        while self.log:
            self.undo()

    def notify_log_changed(self) -> None:
        if self.on_log_changed is not None:
            self.on_log_changed(self.log)
