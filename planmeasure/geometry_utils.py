# PlanMeasure imports
from planmeasure.entities import EntityKind, RawEntity

# Standard library imports
from dataclasses import dataclass
from typing import Iterable, Tuple

# Third-party imports
import numpy as np
import pandas as pd


@dataclass(frozen=True)
class BuildContext:
    """Per-build centering transform and wall dimensions.

    Derived once per build and never mutated while the build is alive.
    """

    center_x: float
    center_y: float
    wall_height: float
    wall_thickness: float

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        """Map a plan coordinate to the local (x, z) ground coordinates.

        The plan Y axis points away from the viewer in 3D, so it is inverted.
        """
        return x - self.center_x, -(y - self.center_y)


def entity_vertices_dataframe(entities: Iterable[RawEntity]) -> pd.DataFrame:
    """
    Flattens every LINE/LWPOLYLINE vertex into a DataFrame.

    Args:
        entities: Raw CAD entities.

    Returns:
        pd.DataFrame: One row per vertex with columns ['layer', 'x_coords', 'y_coords'].
                      Empty (with those columns) when no vertex qualifies.
    """
    rows = [
        (e.layer, x, y)
        for e in entities
        if e.kind in (EntityKind.LINE, EntityKind.LWPOLYLINE)
        for x, y in e.vertices
    ]
    return pd.DataFrame(rows, columns=["layer", "x_coords", "y_coords"]).astype(
        {"x_coords": np.float64, "y_coords": np.float64}
    )


def get_plan_bounds(point_dataframe: pd.DataFrame) -> Tuple[float, float, float, float]:
    """
    Min/max extents of a vertex DataFrame.

    Args:
        point_dataframe (pd.DataFrame): Must include 'x_coords' and 'y_coords'.

    Returns:
        tuple: (min_x, max_x, min_y, max_y). An empty frame degenerates to a
               single point at the origin, (0.0, 0.0, 0.0, 0.0).
    """
    if point_dataframe.empty:
        return 0.0, 0.0, 0.0, 0.0

    min_x = float(point_dataframe["x_coords"].min())
    max_x = float(point_dataframe["x_coords"].max())
    min_y = float(point_dataframe["y_coords"].min())
    max_y = float(point_dataframe["y_coords"].max())
    return min_x, max_x, min_y, max_y


def get_center_of_bounding_box(bounds: Tuple[float, float, float, float]) -> Tuple[float, float]:
    """Midpoint (x, y) of a (min_x, max_x, min_y, max_y) box."""
    min_x, max_x, min_y, max_y = bounds
    return (min_x + max_x) / 2, (min_y + max_y) / 2


def compute_build_context(
    entities: Iterable[RawEntity],
    wall_height: float,
    wall_thickness: float,
) -> BuildContext:
    """
    Derives the centering transform for a set of entities.

    Pure and deterministic: the same entity set always gives the same context.
    An entity set without vertices is centred on the origin rather than failing.

    Args:
        entities: Raw CAD entities.
        wall_height: Configured wall height (m).
        wall_thickness: Configured wall thickness (m).

    Returns:
        BuildContext: Centre of the plan bounding box plus the wall dimensions.
    """
    bounds = get_plan_bounds(entity_vertices_dataframe(entities))
    center_x, center_y = get_center_of_bounding_box(bounds)
    return BuildContext(
        center_x=center_x,
        center_y=center_y,
        wall_height=float(wall_height),
        wall_thickness=float(wall_thickness),
    )


def as_point3(point) -> np.ndarray:
    """Coerce an (x, y, z) sequence to a float64 array of shape (3,)."""
    arr = np.asarray(point, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3D point, got shape {arr.shape}.")
    return arr


def distance(p1, p2) -> float:
    """Euclidean distance between two 3D points."""
    return float(np.linalg.norm(as_point3(p2) - as_point3(p1)))


def midpoint(p1, p2) -> np.ndarray:
    return (as_point3(p1) + as_point3(p2)) * 0.5
