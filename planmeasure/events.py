"""
Input events and frame ticks.

UI toolkits translate their native callbacks into these plain records and
hand them to the interaction dispatcher, which keeps the core free of any
windowing or VR runtime.

Event families:
    pointer: PointerMove, PointerDown, PointerUp
    touch:   TouchStart, TouchMove, TouchEnd (a held touch becomes a probe)
    vr:      VRTrigger, VRGrip, VRUndo

Every frame the scheduler emits exactly one of DesktopTick or ImmersiveTick.
"""

# Standard library imports
from dataclasses import dataclass, field
from typing import Dict, Tuple, Union

ScreenPoint = Tuple[float, float]


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float
    pointer_type: str = "mouse"


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    button: int = 0
    pointer_type: str = "mouse"


@dataclass(frozen=True)
class PointerUp:
    x: float
    y: float
    button: int = 0
    pointer_type: str = "mouse"


@dataclass(frozen=True)
class TouchStart:
    """Finger(s) down. ``touches`` lists every active contact in screen pixels."""

    touches: Tuple[ScreenPoint, ...]
    time_ms: float


@dataclass(frozen=True)
class TouchMove:
    touches: Tuple[ScreenPoint, ...]
    time_ms: float


@dataclass(frozen=True)
class TouchEnd:
    time_ms: float


@dataclass(frozen=True)
class VRTrigger:
    """Trigger pressed on controller ``controller``."""

    controller: int


@dataclass(frozen=True)
class VRGrip:
    """Grip pressed (``pressed=True``) or released on controller ``controller``."""

    controller: int
    pressed: bool


@dataclass(frozen=True)
class VRUndo:
    """Undo button pressed (rising edge already resolved by the caller)."""


@dataclass(frozen=True)
class ControllerPose:
    """Controller position (relative to the viewer rig) and orientation quaternion (x, y, z, w)."""

    position: Tuple[float, float, float]
    orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True)
class InputSourceState:
    """Gamepad snapshot of one VR input source."""

    handedness: str
    buttons: Tuple[bool, ...] = ()


@dataclass(frozen=True)
class DesktopTick:
    """One display frame while not presenting in VR."""

    time_ms: float = 0.0


@dataclass(frozen=True)
class ImmersiveTick:
    """One display frame while presenting in VR."""

    time_ms: float = 0.0
    controllers: Dict[int, ControllerPose] = field(default_factory=dict)
    input_sources: Tuple[InputSourceState, ...] = ()


PointerEvent = Union[PointerMove, PointerDown, PointerUp]
TouchEvent = Union[TouchStart, TouchMove, TouchEnd]
VREvent = Union[VRTrigger, VRGrip, VRUndo]
InputEvent = Union[PointerEvent, TouchEvent, VREvent]
Tick = Union[DesktopTick, ImmersiveTick]
