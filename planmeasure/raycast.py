"""
Ray casting against built primitives and the ground plane.

Pointer and touch rays come from a perspective camera and a screen position.
VR rays come from a controller pose. All of them are tested the same way:
primitives first, then an invisible ground square at y = 0.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.geometry_builder import BoxPrimitive, LinePrimitive, Primitive
from planmeasure.geometry_utils import as_point3

# Standard library imports
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

# Third-party imports
import numpy as np

_EPS = 1e-12


@dataclass(eq=False)
class Ray:
    """Half-line from ``origin`` along the unit vector ``direction``."""

    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self):
        self.origin = as_point3(self.origin)
        direction = as_point3(self.direction)
        norm = np.linalg.norm(direction)
        if norm < _EPS:
            raise ValueError("Ray direction must be non-zero.")
        self.direction = direction / norm

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction


@dataclass(eq=False)
class Hit:
    """A ray intersection: distance along the ray, world point, and what was hit (None for ground)."""

    distance: float
    point: np.ndarray
    primitive: Optional[Primitive] = None


@dataclass
class Camera:
    """
    Perspective camera, y-up, used to turn screen positions into rays.

    Attributes:
        position: Eye position.
        target: Point the camera looks at.
        fov_deg: Vertical field of view in degrees.
        viewport: (width, height) in pixels.
    """

    position: Tuple[float, float, float] = config.CAMERA_POSITION
    target: Tuple[float, float, float] = config.CAMERA_TARGET
    up: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    fov_deg: float = config.CAMERA_FOV_DEG
    viewport: Tuple[int, int] = field(default=config.VIEWPORT_SIZE)

    @property
    def aspect(self) -> float:
        width, height = self.viewport
        return width / height

    def screen_to_ndc(self, x: float, y: float) -> Tuple[float, float]:
        """Pixel coordinates (origin top-left) to normalized device coordinates."""
        width, height = self.viewport
        return (x / width) * 2 - 1, -(y / height) * 2 + 1

    def ray_through(self, ndc_x: float, ndc_y: float) -> Ray:
        eye = as_point3(self.position)
        forward = as_point3(self.target) - eye
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, as_point3(self.up))
        if np.linalg.norm(right) < _EPS:
            # Looking straight along the up vector; pick any perpendicular
            right = np.cross(forward, np.array([0.0, 0.0, -1.0]))
        right /= np.linalg.norm(right)
        true_up = np.cross(right, forward)

        tan_half = math.tan(math.radians(self.fov_deg) / 2)
        direction = forward + ndc_x * tan_half * self.aspect * right + ndc_y * tan_half * true_up
        return Ray(origin=eye, direction=direction)

    def ray_from_screen(self, x: float, y: float) -> Ray:
        return self.ray_through(*self.screen_to_ndc(x, y))


def rotate_by_quaternion(vector, quaternion: Sequence[float]) -> np.ndarray:
    """Rotate ``vector`` by the unit quaternion (x, y, z, w)."""
    qx, qy, qz, qw = (float(q) for q in quaternion)
    norm = math.sqrt(qx * qx + qy * qy + qz * qz + qw * qw)
    if norm < _EPS:
        raise ValueError("Quaternion must be non-zero.")
    q = np.array([qx, qy, qz]) / norm
    w = qw / norm
    v = as_point3(vector)
    t = 2.0 * np.cross(q, v)
    return v + w * t + np.cross(q, t)


def ray_from_pose(position, orientation: Sequence[float], rig_offset=(0.0, 0.0, 0.0)) -> Ray:
    """Ray along the controller's local -z axis.

    Args:
        position: Controller position relative to the viewer rig.
        orientation: Quaternion (x, y, z, w).
        rig_offset: World position of the rig; the rig does not rotate.
    """
    origin = as_point3(position) + as_point3(rig_offset)
    return Ray(origin=origin, direction=rotate_by_quaternion((0.0, 0.0, -1.0), orientation))


# -----------------------------------------------------------------------------
# Primitive intersection
# -----------------------------------------------------------------------------

def intersect_box(ray: Ray, box: BoxPrimitive) -> Optional[Hit]:
    """Slab test in the box's local frame. Faces are double sided."""
    rot = box.rotation_matrix()
    origin = rot.T @ (ray.origin - box.center)
    direction = rot.T @ ray.direction
    half = box.half_extents

    t_min, t_max = -math.inf, math.inf
    for axis in range(3):
        if abs(direction[axis]) < _EPS:
            if abs(origin[axis]) > half[axis]:
                return None
            continue
        t1 = (-half[axis] - origin[axis]) / direction[axis]
        t2 = (half[axis] - origin[axis]) / direction[axis]
        if t1 > t2:
            t1, t2 = t2, t1
        t_min, t_max = max(t_min, t1), min(t_max, t2)
        if t_min > t_max:
            return None

    if t_max < 0:
        return None
    t = t_min if t_min >= 0 else t_max  # origin inside: the far face is hit from within
    return Hit(distance=float(t), point=ray.at(t), primitive=box)


def closest_points_ray_segment(ray: Ray, start, end) -> Tuple[float, float, np.ndarray, np.ndarray]:
    """
    Closest approach between a ray and a segment.

    Returns:
        tuple: (t, s, point_on_ray, point_on_segment) where t >= 0 is the ray
               parameter and s in [0, 1] the segment parameter.
    """
    a_pt = as_point3(start)
    seg = as_point3(end) - a_pt
    r = ray.origin - a_pt
    d = ray.direction

    e = float(seg @ seg)
    b = float(d @ seg)
    c = float(d @ r)
    f = float(seg @ r)

    if e < _EPS:
        s = 0.0
        t = max(0.0, -c)
    else:
        denom = e - b * b  # |d| == 1
        t = max(0.0, (b * f - c * e) / denom) if denom > _EPS else 0.0
        s = (f + t * b) / e
        if s < 0.0:
            s, t = 0.0, max(0.0, -c)
        elif s > 1.0:
            s, t = 1.0, max(0.0, b - c)

    return t, s, ray.at(t), a_pt + s * seg


def intersect_line(ray: Ray, line: LinePrimitive, threshold: float = config.LINE_PICK_THRESHOLD) -> Optional[Hit]:
    """A line counts as hit when the ray passes within ``threshold`` of it.

    The reported point lies on the line; the distance is measured along the ray.
    """
    t, _s, on_ray, on_segment = closest_points_ray_segment(ray, line.start, line.end)
    if float(np.linalg.norm(on_ray - on_segment)) > threshold:
        return None
    return Hit(distance=float(t), point=on_segment, primitive=line)


def intersect_primitives(
    ray: Ray,
    primitives: Iterable[Primitive],
    line_threshold: float = config.LINE_PICK_THRESHOLD,
) -> List[Hit]:
    """All primitive hits, nearest first (stable for equal distances)."""
    hits: List[Hit] = []
    for primitive in primitives:
        if isinstance(primitive, BoxPrimitive):
            hit = intersect_box(ray, primitive)
        else:
            hit = intersect_line(ray, primitive, line_threshold)
        if hit is not None:
            hits.append(hit)
    hits.sort(key=lambda h: h.distance)
    return hits


def intersect_ground(ray: Ray, size: float = config.GROUND_PLANE_SIZE) -> Optional[Hit]:
    """Hit on the ground square of side ``size`` centred at the origin, y = 0."""
    dy = ray.direction[1]
    if abs(dy) < _EPS:
        return None
    t = -ray.origin[1] / dy
    if t < 0:
        return None
    point = ray.at(t)
    point[1] = 0.0
    half = size / 2
    if abs(point[0]) > half or abs(point[2]) > half:
        return None
    return Hit(distance=float(t), point=point)


def cast(ray: Ray, primitives: Iterable[Primitive], line_threshold: float = config.LINE_PICK_THRESHOLD) -> Optional[Hit]:
    """Nearest primitive hit, falling back to the ground plane."""
    hits = intersect_primitives(ray, primitives, line_threshold)
    if hits:
        return hits[0]
    return intersect_ground(ray)
