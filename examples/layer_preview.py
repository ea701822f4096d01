"""
PlanMeasure: Layer Mapping Preview

Seeds layer styles from layer names, lets the mapping be overridden in code
or from a saved JSON, then renders a coloured 2D preview and saves the
mapping for the next session.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.dxf_reader import read_dxf_entities
from planmeasure.layer_styles import (
    SurfaceKind,
    default_layer_styles,
    load_layer_config,
    save_layer_config,
)
from planmeasure.plan_preview import render_plan_preview

# Standard library imports
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
)

layer_config_path = config.OUTPUTS_DIR / "layer_config.json"


if __name__ == "__main__":
    entities = read_dxf_entities(config.DEMO_DXF_PATH)

    if layer_config_path.exists():
        styles = load_layer_config(layer_config_path)
    else:
        styles = default_layer_styles(entities)

    # Manual override example: draw the furniture layer on the floor at 0.75 m (table height)
    if "I-FURN" in styles:
        styles["I-FURN"] = styles["I-FURN"].with_kind(SurfaceKind.FLOOR, elevation=0.75)

    render_plan_preview(entities, styles, config.PREVIEW_DIR / "layer_preview.png")
    save_layer_config(styles, layer_config_path)
