"""
PlanMeasure Configuration Module
================================

Centralized configuration for project paths, build defaults and interaction
constants. Every tunable number used by the builder, the snap index and the
interaction layer is defined here so the rest of the codebase never hardcodes
them.
"""

# fmt: off
# autopep8: off

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

# Root directory of the project
PROJECT_ROOT        = Path(__file__).parent.parent

# Input/Output directories
INPUTS_DIR          = PROJECT_ROOT / "inputs"
OUTPUTS_DIR         = PROJECT_ROOT / "outputs"
EXAMPLES_DIR        = PROJECT_ROOT / "examples"

# Output subdirectories
MEASUREMENTS_DIR    = OUTPUTS_DIR / "measurements"
PREVIEW_DIR         = OUTPUTS_DIR / "preview"

# Durable key-value slot for measurements (users can set PLANMEASURE_STORE to relocate it)
STORE_PATH          = Path(os.getenv("PLANMEASURE_STORE", str(OUTPUTS_DIR / "measurement_store.json")))
STORAGE_KEY         = "dxf_measurements"
EXPORT_FILENAME     = "measurements.json"
DEMO_DXF_PATH       = INPUTS_DIR / "room.dxf"

# ============================================================================
# BUILD DEFAULTS
# ============================================================================
DEFAULT_WALL_HEIGHT     = 3.0     # m
DEFAULT_WALL_THICKNESS  = 0.20    # m
DEMO_WALL_HEIGHT        = 5.8     # m, height used when loading the bundled demo plan
MIN_SEGMENT_LENGTH      = 0.05    # m, wall/beam segments at or below this are CAD noise
FLOOR_LINE_OFFSET       = 0.05    # m, keeps floor lines off the ground plane

# Default elevations assigned by the layer name heuristics
BEAM_DEFAULT_DEPTH      = 0.4     # m, hangs down from the ceiling plane
SOCKET_DEFAULT_HEIGHT   = 0.3     # m
SWITCH_DEFAULT_HEIGHT   = 1.2     # m

# ============================================================================
# INTERACTION
# ============================================================================
SNAP_THRESHOLD          = 0.4     # m, hover snapping radius
NEAREST_DEFAULT_THRESHOLD = 0.5   # m, radius used when a caller gives none
LINE_PICK_THRESHOLD     = 1.0     # m, ray-to-line distance that counts as a hit
GROUND_PLANE_SIZE       = 200.0   # m, side of the invisible ground square at y = 0
TOUCH_HOLD_DELAY_MS     = 400     # ms, hold time before a touch becomes a probe
TOUCH_PROBE_OFFSET_PX   = 70      # px, crosshair drawn above the finger
LABEL_HEIGHT_OFFSET     = 0.2     # m, labels float above the measured midpoint
VR_UNDO_BUTTON_INDEX    = 4       # gamepad button mapped to undo
VR_UNDO_HANDEDNESS      = "right"

# Camera defaults (perspective, y-up)
CAMERA_FOV_DEG          = 60.0
CAMERA_POSITION         = (0.0, 15.0, 15.0)
CAMERA_TARGET           = (0.0, 0.0, 0.0)
VIEWPORT_SIZE           = (1280, 720)

# ============================================================================
# COLORS
# ============================================================================
WALL_COLOR              = "#dddddd"
FLOOR_LINE_COLOR        = "#aaaaaa"
CEILING_LINE_COLOR      = "#00ffff"
GLASS_COLOR             = "#0066b3"
GLASS_OPACITY           = 0.35
PREVIEW_COLOR           = "#00ff00"
MEASUREMENT_COLOR       = "#00ffff"
SNAP_EXACT_COLOR        = "#ffff00"
SNAP_SNAPPED_COLOR      = "#ff0000"
TELEPORT_MARKER_COLOR   = "#00aaff"
BACKGROUND_COLOR        = "#222222"

# fmt: on
# autopep8: on


@dataclass
class BuildSettings:
    """
    Wall dimensions and snapping radius used for one scene build.

    Values are checked on construction. Blocking problems raise ``ValueError``
    listing every failed rule; suspicious but usable values are logged as
    warnings.

    Attributes:
        wall_height: Extrusion height of wall boxes and the ceiling plane (m).
        wall_thickness: Width of wall boxes (m).
        snap_threshold: Hover snapping radius (m).

    Example:
        >>> settings = BuildSettings.from_form(height_m=2.7, thickness_cm=15)
        >>> settings.wall_thickness
        0.15
    """

    wall_height: float = DEFAULT_WALL_HEIGHT
    wall_thickness: float = DEFAULT_WALL_THICKNESS
    snap_threshold: float = SNAP_THRESHOLD

    _errors: List[str] = field(init=False, default_factory=list, repr=False, compare=False)
    _warnings: List[str] = field(init=False, default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        self._validate()
        if self._errors:
            raise ValueError("Invalid build settings: " + "; ".join(self._errors))
        for w in self._warnings:
            logger.warning(w)

    def _validate(self):
        for name in ("wall_height", "wall_thickness", "snap_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                self._errors.append(f"[X] {name}: Must be numeric.")
            elif value <= 0:
                self._errors.append(f"[X] {name}: Must be > 0.")
        if self._errors:
            return

        if self.wall_height > 50: self._warnings.append(f"[!] wall_height ({self.wall_height} m) looks like millimetres.")
        if self.wall_thickness > 2: self._warnings.append(f"[!] wall_thickness ({self.wall_thickness} m) is unusually thick.")

    @classmethod
    def from_form(cls, height_m: float, thickness_cm: float, snap_threshold: float = SNAP_THRESHOLD) -> "BuildSettings":
        """Build settings from the upload form, where thickness is entered in centimetres."""
        return cls(wall_height=float(height_m), wall_thickness=float(thickness_cm) / 100, snap_threshold=snap_threshold)

    @classmethod
    def demo(cls) -> "BuildSettings":
        """Settings used for the bundled demo plan."""
        return cls(wall_height=DEMO_WALL_HEIGHT)
