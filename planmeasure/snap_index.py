"""
Spatial snap index.

Accumulates the 3D anchor points contributed by the geometry builder and
answers "closest anchor within a radius" queries. The index only grows during
a build; a rebuild replaces it wholesale.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.geometry_utils import as_point3

# Standard library imports
from dataclasses import dataclass
from typing import Iterable, List, Optional

# Third-party imports
import numpy as np
from scipy.spatial import cKDTree


@dataclass(frozen=True)
class SnapResult:
    """Outcome of a snap query.

    Attributes:
        point: The anchor point when snapped, otherwise the query point itself.
        snapped: True when an anchor was within the threshold.
        index: Insertion index of the anchor, or None.
    """

    point: np.ndarray
    snapped: bool
    index: Optional[int] = None


class SnapIndex:
    """Append-only set of snap points with nearest-point queries.

    Ties between equally distant anchors go to the one registered first, which
    keeps snapping deterministic for a deterministic build order.
    """

    def __init__(self, points: Optional[Iterable] = None):
        self._points: List[np.ndarray] = []
        self._array: Optional[np.ndarray] = None
        self._kdtree: Optional[cKDTree] = None  # Built lazily on the first query after a change
        if points is not None:
            self.extend(points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        """(N, 3) copy of the registered points in insertion order."""
        if not self._points:
            return np.empty((0, 3), dtype=np.float64)
        return np.array(self._points, dtype=np.float64)

    def add(self, point) -> None:
        self._points.append(as_point3(point).copy())
        self._array = None
        self._kdtree = None

    def extend(self, points: Iterable) -> None:
        for p in points:
            self.add(p)

    def query(self, point, threshold: float = config.NEAREST_DEFAULT_THRESHOLD) -> SnapResult:
        """Closest registered point strictly within ``threshold`` of ``point``.

        Args:
            point: Query position.
            threshold: Search radius (m).

        Returns:
            SnapResult: the anchor when one is in range, else the query point unchanged.
        """
        if not self._points or threshold <= 0:
            return SnapResult(point=point, snapped=False)

        target = as_point3(point)
        if self._kdtree is None:
            self._array = np.array(self._points, dtype=np.float64)
            self._kdtree = cKDTree(self._array)

        # Ball query returns candidates in no particular order; sort to insertion order
        candidates = sorted(self._kdtree.query_ball_point(target, r=threshold))
        if not candidates:
            return SnapResult(point=point, snapped=False)

        dists = np.linalg.norm(self._array[candidates] - target, axis=1)
        best = int(np.argmin(dists))  # first minimum wins
        if not dists[best] < threshold:
            return SnapResult(point=point, snapped=False)

        idx = candidates[best]
        return SnapResult(point=self._points[idx].copy(), snapped=True, index=idx)

    def nearest(self, point, threshold: float = config.NEAREST_DEFAULT_THRESHOLD):
        """The closest snap point within ``threshold``, else ``point`` unchanged."""
        return self.query(point, threshold).point
