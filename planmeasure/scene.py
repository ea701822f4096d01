"""
Render adapter interface.

The core never touches render-library objects. It asks an adapter to create
lines, labels and the room group, and keeps only the opaque integer handle it
gets back. The adapter owns the real objects and disposes of them on
``remove``.

``InMemorySceneAdapter`` keeps plain descriptors instead of drawing anything;
it backs headless use and the test suite. ``planmeasure.viewer`` provides the
PyVista implementation.
"""

# PlanMeasure imports
from planmeasure.geometry_builder import Primitive

# Standard library imports
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

# Third-party imports
import numpy as np

Handle = int


class SceneAdapter(ABC):
    """Operations the core needs from a renderer."""

    @abstractmethod
    def add_room_group(self, primitives: Sequence[Primitive]) -> Handle:
        """Add the whole primitive set as one group."""

    @abstractmethod
    def add_line(self, start, end, color: str) -> Handle:
        ...

    @abstractmethod
    def update_line(self, handle: Handle, start, end) -> None:
        ...

    @abstractmethod
    def add_label(self, text: str, position, color: str) -> Handle:
        ...

    @abstractmethod
    def update_label(self, handle: Handle, text: str, position) -> None:
        ...

    @abstractmethod
    def set_visible(self, handle: Handle, visible: bool) -> None:
        ...

    @abstractmethod
    def remove(self, handle: Handle) -> None:
        """Remove the object from the scene and release its resources."""

    @abstractmethod
    def update_snap_indicator(self, position, visible: bool, snapped: bool) -> None:
        ...

    @abstractmethod
    def update_probe_crosshair(self, screen_position: Optional[Tuple[float, float]]) -> None:
        """Show the touch crosshair at a screen position, or hide it with None."""

    @abstractmethod
    def update_teleport_marker(self, position, visible: bool) -> None:
        ...

    @abstractmethod
    def set_rig_position(self, position) -> None:
        """Move the viewer rig (camera + controllers) to a world position."""

    @abstractmethod
    def set_camera_controls_enabled(self, enabled: bool) -> None:
        ...


@dataclass(eq=False)
class LineDescriptor:
    start: np.ndarray
    end: np.ndarray
    color: str
    visible: bool = True


@dataclass(eq=False)
class LabelDescriptor:
    text: str
    position: np.ndarray
    color: str
    visible: bool = True


@dataclass(eq=False)
class GroupDescriptor:
    primitives: List[Primitive]
    visible: bool = True


@dataclass
class IndicatorState:
    position: Optional[np.ndarray] = None
    visible: bool = False
    snapped: bool = False


class InMemorySceneAdapter(SceneAdapter):
    """Scene adapter that records descriptors instead of rendering."""

    def __init__(self):
        self._next_handle = itertools.count(1)
        self.objects: Dict[Handle, object] = {}
        self.removed: List[Handle] = []
        self.snap_indicator = IndicatorState()
        self.teleport_marker = IndicatorState()
        self.crosshair: Optional[Tuple[float, float]] = None
        self.rig_position = np.zeros(3)
        self.camera_controls_enabled = True

    def _store(self, obj) -> Handle:
        handle = next(self._next_handle)
        self.objects[handle] = obj
        return handle

    def get(self, handle: Handle):
        return self.objects[handle]

    def add_room_group(self, primitives):
        return self._store(GroupDescriptor(primitives=list(primitives)))

    def add_line(self, start, end, color):
        return self._store(LineDescriptor(np.array(start, dtype=float), np.array(end, dtype=float), color))

    def update_line(self, handle, start, end):
        line = self.objects[handle]
        line.start = np.array(start, dtype=float)
        line.end = np.array(end, dtype=float)

    def add_label(self, text, position, color):
        return self._store(LabelDescriptor(text, np.array(position, dtype=float), color))

    def update_label(self, handle, text, position):
        label = self.objects[handle]
        label.text = text
        label.position = np.array(position, dtype=float)

    def set_visible(self, handle, visible):
        self.objects[handle].visible = visible

    def remove(self, handle):
        if self.objects.pop(handle, None) is not None:
            self.removed.append(handle)

    def update_snap_indicator(self, position, visible, snapped):
        self.snap_indicator = IndicatorState(
            position=None if position is None else np.array(position, dtype=float),
            visible=visible,
            snapped=snapped,
        )

    def update_probe_crosshair(self, screen_position):
        self.crosshair = screen_position

    def update_teleport_marker(self, position, visible):
        self.teleport_marker = IndicatorState(
            position=None if position is None else np.array(position, dtype=float),
            visible=visible,
        )

    def set_rig_position(self, position):
        self.rig_position = np.array(position, dtype=float)

    def set_camera_controls_enabled(self, enabled):
        self.camera_controls_enabled = enabled

    # Convenience views used by tests and headless callers
    def lines(self) -> List[LineDescriptor]:
        return [o for o in self.objects.values() if isinstance(o, LineDescriptor)]

    def labels(self) -> List[LabelDescriptor]:
        return [o for o in self.objects.values() if isinstance(o, LabelDescriptor)]

    def groups(self) -> List[GroupDescriptor]:
        return [o for o in self.objects.values() if isinstance(o, GroupDescriptor)]
