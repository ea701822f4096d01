"""
Interaction Dispatcher.

Turns pointer, touch and VR input into two calls on the measurement engine:
"the target moved" and "start/end a measurement". Every modality computes the
target the same way:

1. cast a ray against the built primitives, falling back to the ground plane
2. pass the hit through the snap index
3. show the snap indicator (exact or snapped)

When nothing is hit the indicator is hidden and the previous target stays
current, so a click in empty space still acts on the last shown point.

The last frame tick selects the active modality: after a DesktopTick pointer
and touch events are handled and VR events are ignored, after an
ImmersiveTick it is the other way round.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.events import (
    DesktopTick,
    ImmersiveTick,
    PointerDown,
    PointerMove,
    PointerUp,
    TouchEnd,
    TouchMove,
    TouchStart,
    VRGrip,
    VRTrigger,
    VRUndo,
)
from planmeasure.geometry_builder import BuildResult
from planmeasure.measurement import MeasurementEngine
from planmeasure.raycast import Camera, Ray, cast, intersect_ground, ray_from_pose
from planmeasure.scene import SceneAdapter

# Standard library imports
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

# Third-party imports
import numpy as np

logger = logging.getLogger(__name__)


class InteractionMode(str, Enum):
    DESKTOP = "desktop"
    IMMERSIVE = "immersive"


@dataclass
class TargetState:
    """Current measurement target.

    Attributes:
        point: Snapped target used by start/update/end.
        raw: Ray hit before snapping.
        snapped: True when ``point`` came from the snap index.
        visible: False after a ray that hit nothing.
    """

    point: np.ndarray = field(default_factory=lambda: np.zeros(3))
    raw: Optional[np.ndarray] = None
    snapped: bool = False
    visible: bool = False


@dataclass
class TouchState:
    pending_since: Optional[float] = None
    position: Optional[Tuple[float, float]] = None
    probing: bool = False


@dataclass
class VRState:
    active_controller: Optional[int] = None
    teleporting: bool = False
    marker_position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    marker_visible: bool = False
    rig_position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    undo_held: bool = False


class InteractionDispatcher:
    """
    Routes input events and frame ticks to the measurement engine.

    Args:
        engine: Measurement engine receiving start/update/end/toggle/undo.
        scene: Adapter for the snap indicator, crosshair, teleport marker and rig.
        camera: Camera used to turn screen positions into rays.
        snap_threshold: Hover snapping radius (m).
    """

    def __init__(
        self,
        engine: MeasurementEngine,
        scene: SceneAdapter,
        camera: Optional[Camera] = None,
        snap_threshold: float = config.SNAP_THRESHOLD,
    ):
        self.engine = engine
        self.scene = scene
        self.camera = camera if camera is not None else Camera()
        self.snap_threshold = snap_threshold
        self.build_result: Optional[BuildResult] = None
        self.mode = InteractionMode.DESKTOP
        self.target = TargetState()
        self.touch = TouchState()
        self.vr = VRState()

    def set_build(self, build_result: Optional[BuildResult]) -> None:
        """Point ray casts and snapping at a new build."""
        self.build_result = build_result

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def handle(self, event) -> None:
        """Dispatch one input event."""
        if isinstance(event, (PointerMove, PointerDown, PointerUp)):
            if self.mode is InteractionMode.DESKTOP and event.pointer_type != "touch":
                self._handle_pointer(event)
        elif isinstance(event, (TouchStart, TouchMove, TouchEnd)):
            if self.mode is InteractionMode.DESKTOP:
                self._handle_touch(event)
        elif isinstance(event, (VRTrigger, VRGrip, VRUndo)):
            if self.mode is InteractionMode.IMMERSIVE:
                self._handle_vr(event)
        else:
            raise TypeError(f"Unsupported input event: {type(event).__name__}")

    def tick(self, tick) -> None:
        """Advance one frame. The tick variant selects the active modality."""
        if isinstance(tick, DesktopTick):
            self.mode = InteractionMode.DESKTOP
            self._resolve_touch_hold(tick.time_ms)
        elif isinstance(tick, ImmersiveTick):
            if self.mode is not InteractionMode.IMMERSIVE:
                self._cancel_touch()
            self.mode = InteractionMode.IMMERSIVE
            self._immersive_frame(tick)
        else:
            raise TypeError(f"Unsupported tick: {type(tick).__name__}")

    # -------------------------------------------------------------------------
    # Target resolution
    # -------------------------------------------------------------------------

    def resolve_target(self, ray: Ray) -> bool:
        """Cast ``ray``, snap the hit and update the indicator. Returns False on a miss."""
        primitives = self.build_result.primitives if self.build_result is not None else []
        hit = cast(ray, primitives)
        if hit is None:
            self.target.visible = False
            self.scene.update_snap_indicator(self.target.point, False, self.target.snapped)
            return False

        if self.build_result is not None:
            snap = self.build_result.snap_index.query(hit.point, self.snap_threshold)
            point, snapped = np.array(snap.point, dtype=np.float64), snap.snapped
        else:
            point, snapped = hit.point.copy(), False

        self.target = TargetState(point=point, raw=hit.point, snapped=snapped, visible=True)
        self.scene.update_snap_indicator(point, True, snapped)
        return True

    def _hover_screen(self, x: float, y: float) -> None:
        self.resolve_target(self.camera.ray_from_screen(x, y))

    # -------------------------------------------------------------------------
    # Pointer
    # -------------------------------------------------------------------------

    def _handle_pointer(self, event) -> None:
        if isinstance(event, PointerMove):
            self._hover_screen(event.x, event.y)
            if self.engine.is_measuring:
                self.engine.update(self.target.point)
        elif isinstance(event, PointerDown):
            if event.button == 0:
                self.engine.start(self.target.point)
        elif event.button == 0 and self.engine.is_measuring:
            self.engine.end(self.target.point)

    # -------------------------------------------------------------------------
    # Touch
    # -------------------------------------------------------------------------

    def _handle_touch(self, event) -> None:
        if isinstance(event, TouchStart):
            if len(event.touches) > 1:
                self._cancel_touch()
                return
            if not event.touches:
                return
            self.touch.pending_since = event.time_ms
            self.touch.position = tuple(event.touches[0])
        elif isinstance(event, TouchMove):
            self._resolve_touch_hold(event.time_ms)
            if self.touch.probing:
                if not event.touches:
                    return
                self.touch.position = tuple(event.touches[0])
                self._probe_at(self.touch.position)
                if self.engine.is_measuring:
                    self.engine.update(self.target.point)
            else:
                # Moved before the hold delay: this is a camera drag
                self.touch.pending_since = None
        else:
            self._resolve_touch_hold(event.time_ms)
            was_probing = self.touch.probing
            self._cancel_touch()
            if was_probing:
                self.engine.toggle(self.target.point)

    def _resolve_touch_hold(self, time_ms: float) -> None:
        pending = self.touch.pending_since
        if pending is None or self.touch.probing:
            return
        if time_ms - pending >= config.TOUCH_HOLD_DELAY_MS:
            self.touch.pending_since = None
            self.touch.probing = True
            self.scene.set_camera_controls_enabled(False)
            logger.debug(f"Touch probe started at {self.touch.position}")
            self._probe_at(self.touch.position)

    def _probe_at(self, position: Tuple[float, float]) -> None:
        x, y = position[0], position[1] - config.TOUCH_PROBE_OFFSET_PX
        self.scene.update_probe_crosshair((x, y))
        self._hover_screen(x, y)

    def _cancel_touch(self) -> None:
        self.touch = TouchState()
        self.scene.update_probe_crosshair(None)
        self.scene.set_camera_controls_enabled(True)

    # -------------------------------------------------------------------------
    # VR
    # -------------------------------------------------------------------------

    def _handle_vr(self, event) -> None:
        if isinstance(event, VRTrigger):
            self.vr.active_controller = event.controller
            self.engine.toggle(self.target.point)
        elif isinstance(event, VRGrip):
            if event.pressed:
                self.vr.teleporting = True
                self.vr.active_controller = event.controller
                self.vr.marker_visible = True
                self.scene.update_teleport_marker(self.vr.marker_position, True)
            else:
                if self.vr.teleporting and self.vr.marker_visible:
                    self.vr.rig_position = self.vr.marker_position.copy()
                    self.scene.set_rig_position(self.vr.rig_position)
                    logger.info(f"Teleported to {self.vr.rig_position.tolist()}")
                self.vr.teleporting = False
                self.vr.marker_visible = False
                self.scene.update_teleport_marker(self.vr.marker_position, False)
        else:
            self.engine.undo()

    def _immersive_frame(self, tick: ImmersiveTick) -> None:
        controller = self.vr.active_controller
        pose = tick.controllers.get(controller) if controller is not None else None
        if pose is not None:
            ray = ray_from_pose(pose.position, pose.orientation, self.vr.rig_position)
            if self.vr.teleporting:
                # Teleport only lands on the ground, never on furniture or walls
                hit = intersect_ground(ray)
                if hit is not None:
                    self.vr.marker_position = hit.point
                else:
                    self.vr.marker_visible = False
                self.scene.update_teleport_marker(self.vr.marker_position, self.vr.marker_visible)
            else:
                self.resolve_target(ray)
                if self.engine.is_measuring:
                    self.engine.update(self.target.point)

        self._poll_undo_button(tick)

    def _poll_undo_button(self, tick: ImmersiveTick) -> None:
        index = config.VR_UNDO_BUTTON_INDEX
        for source in tick.input_sources:
            if source.handedness != config.VR_UNDO_HANDEDNESS or len(source.buttons) <= index:
                continue
            if source.buttons[index] and not self.vr.undo_held:
                self.engine.undo()
                self.vr.undo_held = True
            elif not source.buttons[index]:
                self.vr.undo_held = False
