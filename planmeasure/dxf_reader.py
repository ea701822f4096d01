"""
DXF reader.

Extracts LINE and LWPOLYLINE entities from a DXF file's modelspace with
ezdxf. Everything else (arcs, blocks, text, hatches...) is ignored.
"""

# PlanMeasure imports
from planmeasure.entities import EntityKind, RawEntity
from planmeasure.exceptions import EntityParseError

# Standard library imports
import logging
import math
from collections import Counter
from pathlib import Path
from typing import List, Union

# Third-party imports
import ezdxf

logger = logging.getLogger(__name__)


def _to_raw_entity(entity) -> RawEntity:
    layer = entity.dxf.layer
    if entity.dxftype() == "LINE":
        start, end = entity.dxf.start, entity.dxf.end
        vertices = ((float(start[0]), float(start[1])), (float(end[0]), float(end[1])))
        kind, closed = EntityKind.LINE, False
    else:
        vertices = tuple((float(x), float(y)) for x, y in entity.get_points("xy"))
        kind, closed = EntityKind.LWPOLYLINE, bool(entity.closed)

    for x, y in vertices:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise EntityParseError(f"{entity.dxftype()} on layer '{layer}' has a non-finite vertex")
    return RawEntity(kind=kind, layer=layer, vertices=vertices, closed=closed)


def read_dxf_entities(dxf_path: Union[Path, str]) -> List[RawEntity]:
    """
    Read the straight-line geometry of a DXF drawing.

    Args:
        dxf_path: Path to a .dxf file.

    Returns:
        list: RawEntity per LINE / LWPOLYLINE, in modelspace order.

    Raises:
        FileNotFoundError: If the file does not exist.
        EntityParseError: If the file is not a readable DXF document.
    """
    dxf_path = Path(dxf_path)
    if not dxf_path.exists():
        raise FileNotFoundError(f"DXF file not found: {dxf_path}")

    try:
        doc = ezdxf.readfile(str(dxf_path))
    except (IOError, ezdxf.DXFStructureError) as e:
        logger.error(f"Failed to read {dxf_path.name}: {e}")
        raise EntityParseError(f"{dxf_path.name} is not a readable DXF file: {e}") from e

    entities = [_to_raw_entity(e) for e in doc.modelspace().query("LINE LWPOLYLINE")]

    per_layer = Counter(e.layer for e in entities)
    logger.info(f"Read {len(entities)} entities on {len(per_layer)} layers from {dxf_path.name}")
    for layer, count in per_layer.items():
        logger.debug(f"  {layer}: {count}")
    return entities
