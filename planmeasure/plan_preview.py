"""
2D plan preview.

Draws the raw plan segments coloured by their layer style so a layer mapping
can be checked before building. Hidden and unmapped layers are drawn thin and
grey. Uses a bare matplotlib Figure, so no GUI backend is needed.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.entities import RawEntity
from planmeasure.layer_styles import LayerStyle, SurfaceKind

# Standard library imports
import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

# Third-party imports
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.lines import Line2D

logger = logging.getLogger(__name__)

_DIMMED_COLOR = "#C8C8C8"
_LINE_WIDTHS = {
    SurfaceKind.WALL: 2.0,
    SurfaceKind.CEILING: 1.0,
    SurfaceKind.FLOOR: 0.8,
}


def build_plan_figure(
    entities: Iterable[RawEntity],
    layer_styles: Mapping[str, LayerStyle],
    title: Optional[str] = None,
) -> Figure:
    """
    Plot every segment in plan coordinates.

    Args:
        entities: Raw CAD entities.
        layer_styles: layer -> style; missing layers are drawn dimmed.
        title: Optional axes title.

    Returns:
        Figure: The populated figure (one axes, equal aspect).
    """
    segments, colors, widths = [], [], []
    shown_kinds = set()

    for entity in entities:
        style = layer_styles.get(entity.layer)
        visible = style is not None and not style.is_hidden
        for p1, p2 in entity.segments():
            segments.append([p1, p2])
            if visible:
                colors.append(config.GLASS_COLOR if style.is_glass else style.hex_color)
                widths.append(_LINE_WIDTHS[style.surface_kind])
                shown_kinds.add(style.surface_kind)
            else:
                colors.append(_DIMMED_COLOR)
                widths.append(0.3)

    fig = Figure(figsize=(10, 8), facecolor="white")
    ax = fig.add_subplot(111)
    ax.set_facecolor(config.BACKGROUND_COLOR)

    if segments:
        ax.add_collection(LineCollection(segments, colors=colors, linewidths=widths))
        # autoscale misses LineCollections
        xs = [p[0] for seg in segments for p in seg]
        ys = [p[1] for seg in segments for p in seg]
        pad = max(max(xs) - min(xs), max(ys) - min(ys), 1.0) * 0.05
        ax.set_xlim(min(xs) - pad, max(xs) + pad)
        ax.set_ylim(min(ys) - pad, max(ys) + pad)

    ax.set_aspect("equal")
    ax.set_xlabel("X (m)")
    ax.set_ylabel("Y (m)")
    if title:
        ax.set_title(title)

    legend = [
        Line2D([0], [0], color=color, lw=_LINE_WIDTHS[kind], label=kind.value)
        for kind, color in (
            (SurfaceKind.WALL, config.WALL_COLOR),
            (SurfaceKind.FLOOR, config.FLOOR_LINE_COLOR),
            (SurfaceKind.CEILING, config.CEILING_LINE_COLOR),
        )
        if kind in shown_kinds
    ]
    if legend:
        ax.legend(handles=legend, loc="upper right", fontsize=8)
    return fig


def render_plan_preview(
    entities: Iterable[RawEntity],
    layer_styles: Mapping[str, LayerStyle],
    output_path: Union[Path, str, None] = None,
    dpi: int = 100,
) -> Path:
    """Save the plan preview as an image (format from the suffix, PNG by default)."""
    output_path = Path(output_path) if output_path is not None else config.PREVIEW_DIR / "plan_preview.png"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig = build_plan_figure(entities, layer_styles, title=output_path.stem)
    fig.savefig(output_path, dpi=dpi)
    logger.info(f"Plan preview saved to {output_path}")
    return output_path
