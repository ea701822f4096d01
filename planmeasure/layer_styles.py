"""
Layer Style Resolver.

Maps CAD layer names to their 3D treatment. Name heuristics only seed the
defaults offered to the user. The mapping that drives a build is always the
one supplied by the caller, after any edits. Layers missing from that mapping
are treated as hidden.

Usage:
    from planmeasure.layer_styles import default_layer_styles
    styles = default_layer_styles(entities)
    styles["A-GLASS"] = styles["A-GLASS"].with_kind(SurfaceKind.WALL)
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.entities import RawEntity, distinct_layers
from planmeasure.exceptions import LayerConfigError

# Standard library imports
import json
import logging
import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


class SurfaceKind(str, Enum):
    WALL = "wall"
    FLOOR = "floor"
    CEILING = "ceiling"
    HIDDEN = "hidden"


# Accepted spellings in layer configuration files / UI payloads
_SURFACE_ALIASES = {
    "wall": SurfaceKind.WALL,
    "floor": SurfaceKind.FLOOR,
    "ceiling": SurfaceKind.CEILING,
    "ceil": SurfaceKind.CEILING,
    "hidden": SurfaceKind.HIDDEN,
    "hide": SurfaceKind.HIDDEN,
}

_DEFAULT_COLORS = {
    SurfaceKind.WALL: config.WALL_COLOR,
    SurfaceKind.FLOOR: config.FLOOR_LINE_COLOR,
    SurfaceKind.CEILING: config.CEILING_LINE_COLOR,
    SurfaceKind.HIDDEN: config.FLOOR_LINE_COLOR,
}


def parse_hex_color(value: str) -> RGB:
    """'#rrggbb' (leading '#' optional) -> (r, g, b) ints."""
    match = _HEX_COLOR.match(str(value).strip()) if isinstance(value, str) else None
    if not match:
        raise LayerConfigError(f"Invalid color {value!r}, expected '#rrggbb'")
    digits = match.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def to_hex_color(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


@dataclass(frozen=True)
class LayerStyle:
    """
    3D treatment of one CAD layer.

    Attributes:
        surface_kind: Wall, floor, ceiling or hidden.
        elevation: Beam depth for ceilings, line height for floors (m). Zero
                   means "use the default placement".
        color: (r, g, b) in 0-255.
        is_glass: Rendered transparent.
    """

    surface_kind: SurfaceKind
    elevation: float = 0.0
    color: RGB = parse_hex_color(config.WALL_COLOR)
    is_glass: bool = False

    @property
    def hex_color(self) -> str:
        return to_hex_color(self.color)

    @property
    def is_hidden(self) -> bool:
        return self.surface_kind is SurfaceKind.HIDDEN

    def with_kind(self, surface_kind: SurfaceKind, elevation: Optional[float] = None) -> "LayerStyle":
        """Copy with a different surface kind, recoloured to that kind's default unless glass."""
        color = self.color if self.is_glass else parse_hex_color(_DEFAULT_COLORS[surface_kind])
        return replace(
            self,
            surface_kind=surface_kind,
            elevation=self.elevation if elevation is None else float(elevation),
            color=color,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "surfaceKind": self.surface_kind.value,
            "elevationValue": self.elevation,
            "color": self.hex_color,
            "isGlass": self.is_glass,
        }


def default_layer_style(layer_name: str) -> LayerStyle:
    """
    Seed a style from keywords in the layer name.

    Rules (case-insensitive, first match wins):
        wall / bina / mabani      -> wall
        beam                      -> ceiling, hanging beam of BEAM_DEFAULT_DEPTH
        socket                    -> floor line at SOCKET_DEFAULT_HEIGHT
        switch                    -> floor line at SWITCH_DEFAULT_HEIGHT
        furn / dim                -> floor line
        light / ceil / cctv       -> ceiling line
        anything else             -> hidden
    A name containing "glass" is transparent, and becomes a wall when no other
    rule matched.
    """
    lower = (layer_name or "").lower()
    is_glass = "glass" in lower

    if any(k in lower for k in ("wall", "bina", "mabani")):
        kind, elevation = SurfaceKind.WALL, 0.0
    elif "beam" in lower:
        kind, elevation = SurfaceKind.CEILING, config.BEAM_DEFAULT_DEPTH
    elif "socket" in lower:
        kind, elevation = SurfaceKind.FLOOR, config.SOCKET_DEFAULT_HEIGHT
    elif "switch" in lower:
        kind, elevation = SurfaceKind.FLOOR, config.SWITCH_DEFAULT_HEIGHT
    elif any(k in lower for k in ("furn", "dim")):
        kind, elevation = SurfaceKind.FLOOR, 0.0
    elif any(k in lower for k in ("light", "ceil", "cctv")):
        kind, elevation = SurfaceKind.CEILING, 0.0
    elif is_glass:
        kind, elevation = SurfaceKind.WALL, 0.0
    else:
        kind, elevation = SurfaceKind.HIDDEN, 0.0

    color = config.GLASS_COLOR if is_glass else _DEFAULT_COLORS[kind]
    return LayerStyle(surface_kind=kind, elevation=elevation, color=parse_hex_color(color), is_glass=is_glass)


def default_layer_styles(entities: Iterable[RawEntity]) -> Dict[str, LayerStyle]:
    """One seeded style per distinct layer, in first-seen order."""
    styles = {name: default_layer_style(name) for name in distinct_layers(entities)}
    logger.debug(
        "Seeded layer styles: "
        + ", ".join(f"{name}={style.surface_kind.value}" for name, style in styles.items())
    )
    return styles


def _parse_style_entry(layer_name: str, entry: Any) -> LayerStyle:
    # A bare string is the surface kind alone, as sent by the layer selection modal
    if isinstance(entry, str):
        entry = {"surfaceKind": entry}
    if not isinstance(entry, Mapping):
        raise LayerConfigError(f"Layer {layer_name!r}: expected a mapping, got {type(entry).__name__}")

    kind_name = str(entry.get("surfaceKind", "")).lower()
    if kind_name not in _SURFACE_ALIASES:
        raise LayerConfigError(f"Layer {layer_name!r}: unknown surfaceKind {entry.get('surfaceKind')!r}")
    kind = _SURFACE_ALIASES[kind_name]

    elevation = entry.get("elevationValue", 0.0)
    if isinstance(elevation, bool) or not isinstance(elevation, (int, float)):
        raise LayerConfigError(f"Layer {layer_name!r}: elevationValue must be a finite number")
    try:
        elevation = float(elevation)
    except OverflowError as e:
        raise LayerConfigError(f"Layer {layer_name!r}: elevationValue is too large") from e
    if not math.isfinite(elevation):
        raise LayerConfigError(f"Layer {layer_name!r}: elevationValue must be a finite number")

    is_glass = entry.get("isGlass", False)
    if not isinstance(is_glass, bool):
        raise LayerConfigError(f"Layer {layer_name!r}: isGlass must be a boolean")

    color = entry.get("color")
    if color is None:
        rgb = parse_hex_color(config.GLASS_COLOR if is_glass else _DEFAULT_COLORS[kind])
    else:
        try:
            rgb = parse_hex_color(color)
        except LayerConfigError as e:
            raise LayerConfigError(f"Layer {layer_name!r}: {e}") from e

    return LayerStyle(surface_kind=kind, elevation=float(elevation), color=rgb, is_glass=is_glass)


def layer_styles_from_config(mapping: Mapping[str, Any]) -> Dict[str, LayerStyle]:
    """
    Parse a UI layer configuration.

    Args:
        mapping: layerName -> {surfaceKind, elevationValue, color, isGlass}, or
                 layerName -> surfaceKind string.

    Returns:
        dict: layerName -> LayerStyle.

    Raises:
        LayerConfigError: If any entry is malformed.
    """
    if not isinstance(mapping, Mapping):
        raise LayerConfigError(f"Layer configuration must be a mapping, got {type(mapping).__name__}")
    return {str(name): _parse_style_entry(str(name), entry) for name, entry in mapping.items()}


def layer_styles_to_config(styles: Mapping[str, LayerStyle]) -> Dict[str, Dict[str, Any]]:
    return {name: style.to_dict() for name, style in styles.items()}


def save_layer_config(styles: Mapping[str, LayerStyle], path: Union[Path, str]) -> Path:
    """Write a layer configuration as JSON so edits survive between sessions."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(layer_styles_to_config(styles), f, indent=2)
    logger.info(f"Layer configuration saved to {path}")
    return path


def load_layer_config(path: Union[Path, str]) -> Dict[str, LayerStyle]:
    """Read a layer configuration JSON written by ``save_layer_config`` or by hand."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Layer configuration not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise LayerConfigError(f"{path.name} is not valid JSON: {e}") from e
    styles = layer_styles_from_config(data)
    logger.info(f"Loaded {len(styles)} layer styles from {path}")
    return styles
