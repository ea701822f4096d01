"""
CAD entity model.

Holds the immutable ``RawEntity`` records supplied by a CAD parser and the
conversion from plain parser records (dicts, as produced by JSON or DXF
readers) into them.

Accepted record shape::

    {"type": "LINE" | "LWPOLYLINE", "layer": str,
     "vertices": [{"x": float, "y": float}, ...], "closed": bool}

``kind`` is accepted in place of ``type`` and ``shape`` in place of
``closed``. Vertices may also be ``[x, y]`` pairs.
"""

# PlanMeasure imports
from planmeasure.exceptions import EntityParseError

# Standard library imports
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Mapping, Tuple

logger = logging.getLogger(__name__)

Vertex2 = Tuple[float, float]


class EntityKind(str, Enum):
    LINE = "LINE"
    LWPOLYLINE = "LWPOLYLINE"


@dataclass(frozen=True)
class RawEntity:
    """
    A CAD line or polyline tagged with its layer.

    Attributes:
        kind: LINE or LWPOLYLINE.
        layer: Source layer name.
        vertices: Ordered (x, y) plan coordinates.
        closed: Whether a polyline wraps back to its first vertex.
    """

    kind: EntityKind
    layer: str
    vertices: Tuple[Vertex2, ...]
    closed: bool = False

    def segments(self) -> Iterator[Tuple[Vertex2, Vertex2]]:
        """Yield the straight segments of this entity in drawing order.

        A LINE is its first two vertices. A polyline of N vertices gives N-1
        segments plus a closing segment when ``closed`` is set.
        """
        if self.kind is EntityKind.LINE:
            if len(self.vertices) >= 2:
                yield self.vertices[0], self.vertices[1]
            return

        for p1, p2 in zip(self.vertices[:-1], self.vertices[1:]):
            yield p1, p2
        if self.closed and len(self.vertices) >= 2:
            yield self.vertices[-1], self.vertices[0]


def _parse_vertex(raw: Any, where: str) -> Vertex2:
    if isinstance(raw, Mapping):
        if "x" not in raw or "y" not in raw:
            raise EntityParseError(f"{where}: vertex is missing 'x' or 'y'")
        x, y = raw["x"], raw["y"]
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        x, y = raw[0], raw[1]
    else:
        raise EntityParseError(f"{where}: vertex must be a mapping or an (x, y) pair, got {raw!r}")

    try:
        x, y = float(x), float(y)
    except OverflowError as e:
        raise EntityParseError(f"{where}: vertex coordinate too large {raw!r}") from e
    except (TypeError, ValueError) as e:
        raise EntityParseError(f"{where}: non-numeric vertex coordinate {raw!r}") from e
    if not (math.isfinite(x) and math.isfinite(y)):
        raise EntityParseError(f"{where}: vertex coordinate is not finite {raw!r}")
    return x, y


def parse_entity(record: Mapping[str, Any], index: int = 0) -> RawEntity:
    """Convert a single parser record into a ``RawEntity``.

    Raises:
        EntityParseError: If the record is not a LINE/LWPOLYLINE of the expected shape.
    """
    where = f"entity[{index}]"
    if not isinstance(record, Mapping):
        raise EntityParseError(f"{where}: expected a mapping, got {type(record).__name__}")

    kind_name = record.get("type", record.get("kind"))
    try:
        kind = EntityKind(str(kind_name).upper())
    except ValueError as e:
        raise EntityParseError(f"{where}: unsupported entity type {kind_name!r}") from e

    layer = record.get("layer")
    if not isinstance(layer, str):
        raise EntityParseError(f"{where}: layer must be a string, got {layer!r}")

    raw_vertices = record.get("vertices")
    if not isinstance(raw_vertices, (list, tuple)):
        raise EntityParseError(f"{where}: vertices must be a list")
    vertices = tuple(_parse_vertex(v, where) for v in raw_vertices)

    if kind is EntityKind.LINE and len(vertices) < 2:
        raise EntityParseError(f"{where}: LINE needs two vertices, got {len(vertices)}")

    closed = record.get("closed", record.get("shape", False))
    if closed is None:
        closed = False
    # DXF writers emit the shape flag as 0/1
    if not isinstance(closed, (bool, int)):
        raise EntityParseError(f"{where}: closed must be a boolean or 0/1, got {closed!r}")
    closed = bool(closed)
    return RawEntity(kind=kind, layer=layer, vertices=vertices, closed=closed)


def parse_entities(records: Iterable[Mapping[str, Any]], skip_unsupported: bool = True) -> List[RawEntity]:
    """Convert parser records into ``RawEntity`` objects.

    Records of other CAD types (ARC, TEXT, INSERT ...) are skipped when
    ``skip_unsupported`` is set, since only straight geometry is translated.
    Any malformed LINE/LWPOLYLINE aborts the whole conversion.

    Args:
        records: Iterable of parser records.
        skip_unsupported: Ignore records whose type is not LINE/LWPOLYLINE.

    Returns:
        List of entities in source order.

    Raises:
        EntityParseError: On the first malformed record.
    """
    if records is None:
        raise EntityParseError("entity source is empty (None)")

    entities: List[RawEntity] = []
    skipped = 0
    for i, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise EntityParseError(f"entity[{i}]: expected a mapping, got {type(record).__name__}")
        kind_name = record.get("type", record.get("kind"))
        if skip_unsupported and str(kind_name).upper() not in EntityKind.__members__:
            skipped += 1
            continue
        entities.append(parse_entity(record, i))

    if skipped:
        logger.debug(f"Skipped {skipped} unsupported entities")
    logger.info(f"Parsed {len(entities)} line/polyline entities")
    return entities


def distinct_layers(entities: Iterable[RawEntity]) -> List[str]:
    """Layer names in first-seen order."""
    seen = {}
    for e in entities:
        if e.layer:
            seen.setdefault(e.layer, None)
    return list(seen)
