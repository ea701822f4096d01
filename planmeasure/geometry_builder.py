"""
Geometry Builder.

Translates flat CAD entities into typed 3D primitive descriptors, using the
per-layer styles to decide what each segment becomes:

- wall:    a box of wall thickness x wall height x segment length, standing on
           the ground and turned to run along the segment
- ceiling: a beam box hanging from the ceiling plane when the layer has an
           elevation, otherwise a flat line at wall height
- floor:   a flat line at the layer elevation, or just above the ground
- hidden:  nothing

Every primitive also registers its endpoints in the snap index, so primitives
and snap points always come from the same BuildContext.

Coordinates are y-up: plan X maps to x, plan Y maps to -z.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.entities import RawEntity
from planmeasure.geometry_utils import BuildContext, compute_build_context
from planmeasure.layer_styles import LayerStyle, SurfaceKind
from planmeasure.snap_index import SnapIndex

# Standard library imports
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple, Union

# Third-party imports
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class MaterialSpec:
    """Appearance shared by every primitive of one layer + color."""

    color: Tuple[int, int, int]
    opacity: float = 1.0
    double_sided: bool = True

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0


@dataclass(eq=False)
class BoxPrimitive:
    """Extruded box along a plan segment (walls and beams).

    Attributes:
        center: Box centre (x, y, z).
        size: (width, height, length); length runs along the local z axis.
        yaw: Rotation about +y that points local +z at the segment's second endpoint.
    """

    center: np.ndarray
    size: Tuple[float, float, float]
    yaw: float
    layer: str
    style: LayerStyle
    material: MaterialSpec

    @property
    def half_extents(self) -> np.ndarray:
        return np.asarray(self.size, dtype=np.float64) * 0.5

    def rotation_matrix(self) -> np.ndarray:
        """Local-to-world rotation (columns are the box's local axes)."""
        c, s = math.cos(self.yaw), math.sin(self.yaw)
        return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])

    def corners(self) -> np.ndarray:
        """(8, 3) world coordinates of the box corners."""
        hx, hy, hz = self.half_extents
        local = np.array([[sx * hx, sy * hy, sz * hz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
        return local @ self.rotation_matrix().T + self.center


@dataclass(eq=False)
class LinePrimitive:
    """Flat reference line (floor and ceiling layers)."""

    start: np.ndarray
    end: np.ndarray
    layer: str
    style: LayerStyle
    material: MaterialSpec


Primitive = Union[BoxPrimitive, LinePrimitive]


@dataclass
class BuildResult:
    """Everything produced by one build. Replaced as a unit on rebuild."""

    context: BuildContext
    primitives: List[Primitive] = field(default_factory=list)
    snap_index: SnapIndex = field(default_factory=SnapIndex)
    layer_counts: Dict[str, int] = field(default_factory=dict)
    dropped_segments: int = 0

    @property
    def boxes(self) -> List[BoxPrimitive]:
        return [p for p in self.primitives if isinstance(p, BoxPrimitive)]

    @property
    def lines(self) -> List[LinePrimitive]:
        return [p for p in self.primitives if isinstance(p, LinePrimitive)]


class GeometryBuilder:
    """
    Builds primitives and snap points from entities and layer styles.

    Args:
        wall_height: Height of walls and of the ceiling plane (m).
        wall_thickness: Width of wall boxes (m).
        min_segment_length: Wall/beam segments at or below this planar length are dropped.

    Example:
        >>> builder = GeometryBuilder(wall_height=3.0, wall_thickness=0.2)
        >>> result = builder.build(entities, {"WALL-1": LayerStyle(SurfaceKind.WALL)})
    """

    def __init__(
        self,
        wall_height: float = config.DEFAULT_WALL_HEIGHT,
        wall_thickness: float = config.DEFAULT_WALL_THICKNESS,
        min_segment_length: float = config.MIN_SEGMENT_LENGTH,
    ):
        self.wall_height = float(wall_height)
        self.wall_thickness = float(wall_thickness)
        self.min_segment_length = float(min_segment_length)

    @classmethod
    def from_settings(cls, settings) -> "GeometryBuilder":
        return cls(wall_height=settings.wall_height, wall_thickness=settings.wall_thickness)

    def build(self, entities: Iterable[RawEntity], layer_styles: Mapping[str, LayerStyle]) -> BuildResult:
        """
        Translate all entities into a fresh BuildResult.

        Args:
            entities: Raw CAD entities.
            layer_styles: Authoritative layer -> style mapping. Unmapped layers are hidden.

        Returns:
            BuildResult: context, primitives, snap index and per-layer primitive counts.
        """
        entities = list(entities)
        context = compute_build_context(entities, self.wall_height, self.wall_thickness)
        result = BuildResult(context=context)
        materials: Dict[Tuple[str, Tuple[int, int, int]], MaterialSpec] = {}
        counts: Counter = Counter()
        unmapped = set()

        for entity in entities:
            style = layer_styles.get(entity.layer)
            if style is None:
                unmapped.add(entity.layer)
                continue
            if style.surface_kind is SurfaceKind.HIDDEN:
                continue

            key = (entity.layer, style.color)
            if key not in materials:
                opacity = config.GLASS_OPACITY if style.is_glass else 1.0
                materials[key] = MaterialSpec(color=style.color, opacity=opacity)
            material = materials[key]

            for p1, p2 in entity.segments():
                added = self._process_segment(p1, p2, entity.layer, style, material, context, result)
                counts[entity.layer] += added

        result.layer_counts = dict(counts)
        if unmapped:
            logger.debug(f"Layers without a style treated as hidden: {sorted(unmapped)}")
        logger.info(
            f"Built {len(result.primitives)} primitives ({len(result.boxes)} boxes, {len(result.lines)} lines), "
            f"{len(result.snap_index)} snap points, {result.dropped_segments} degenerate segments dropped"
        )
        return result

    # -------------------------------------------------------------------------
    # Segment handlers
    # -------------------------------------------------------------------------

    def _process_segment(self, p1, p2, layer, style, material, context, result) -> int:
        x1, z1 = context.to_local(*p1)
        x2, z2 = context.to_local(*p2)
        height = context.wall_height
        kind = style.surface_kind

        if kind is SurfaceKind.WALL:
            return self._add_box(x1, z1, x2, z2, 0.0, height, layer, style, material, result)

        if kind is SurfaceKind.CEILING and style.elevation > 0:
            # Beam hangs down from the ceiling plane
            return self._add_box(x1, z1, x2, z2, height - style.elevation, height, layer, style, material, result)

        if kind is SurfaceKind.CEILING:
            return self._add_line(x1, z1, x2, z2, height, layer, style, material, result)

        if kind is SurfaceKind.FLOOR:
            y = style.elevation if style.elevation != 0 else config.FLOOR_LINE_OFFSET
            return self._add_line(x1, z1, x2, z2, y, layer, style, material, result)

        return 0

    def _add_box(self, x1, z1, x2, z2, bottom, top, layer, style, material, result) -> int:
        length = math.hypot(x2 - x1, z2 - z1)
        if length <= self.min_segment_length:
            result.dropped_segments += 1
            return 0

        box_height = top - bottom
        center = np.array([(x1 + x2) / 2, bottom + box_height / 2, (z1 + z2) / 2])
        # Face the second endpoint: local +z runs along the segment
        yaw = math.atan2(x2 - center[0], z2 - center[2])
        result.primitives.append(BoxPrimitive(
            center=center,
            size=(result.context.wall_thickness, box_height, length),
            yaw=yaw,
            layer=layer,
            style=style,
            material=material,
        ))

        result.snap_index.extend([
            (x1, bottom, z1), (x1, top, z1),
            (x2, bottom, z2), (x2, top, z2),
        ])
        return 1

    def _add_line(self, x1, z1, x2, z2, y, layer, style, material, result) -> int:
        start = np.array([x1, y, z1], dtype=np.float64)
        end = np.array([x2, y, z2], dtype=np.float64)
        result.primitives.append(LinePrimitive(start=start, end=end, layer=layer, style=style, material=material))
        result.snap_index.extend([start, end])
        return 1
