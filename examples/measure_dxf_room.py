"""
PlanMeasure: Interactive DXF Room Measurement

Loads a DXF floor plan, assigns each layer a 3D treatment from its name,
builds the room and opens the measuring window. Measurements are kept in the
durable store between sessions.

Controls:
    Left-drag     Measure (snaps to wall corners within 0.4 m)
    u             Undo last measurement
    e             Export measurements.json
    x             Export xlsx report
    q             Quit
"""

# fmt: off
# autopep8: off

# PlanMeasure imports
from planmeasure import config
from planmeasure.config import BuildSettings
from planmeasure.controller import SceneController
from planmeasure.persistence import JsonFileStore
from planmeasure.viewer import PyVistaSceneAdapter, create_plotter, launch_viewer

# Standard library imports
import logging

# Third-party imports
import ezdxf

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
)


def write_demo_plan(path):
    """A 6 x 4 m room with a glazed wall, a beam and some furniture outlines."""
    doc = ezdxf.new("R2010")
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (6, 0), (6, 4), (0, 4)], close=True, dxfattribs={"layer": "A-WALL"})
    msp.add_line((2, 4), (4, 4), dxfattribs={"layer": "A-GLASS"})
    msp.add_line((0, 2), (6, 2), dxfattribs={"layer": "S-BEAM"})
    msp.add_lwpolyline([(1, 1), (2.5, 1), (2.5, 1.8), (1, 1.8)], close=True, dxfattribs={"layer": "I-FURN"})
    msp.add_line((5.5, 0.5), (5.5, 1.0), dxfattribs={"layer": "E-SOCKET"})
    msp.add_line((3, 3), (3.5, 3), dxfattribs={"layer": "E-LIGHT"})
    path.parent.mkdir(parents=True, exist_ok=True)
    doc.saveas(path)


if __name__ == "__main__":
    dxf_path = config.DEMO_DXF_PATH
    if not dxf_path.exists():
        write_demo_plan(dxf_path)

    plotter     = create_plotter()
    controller  = SceneController(
        scene       = PyVistaSceneAdapter(plotter),
        store       = JsonFileStore(config.STORE_PATH),
        settings    = BuildSettings.demo(),
    )
    controller.load_dxf(dxf_path)
    for layer, style in controller.state.layer_styles.items():
        print(f"  {layer:<12} -> {style.surface_kind.value:<8} elevation={style.elevation}")
    launch_viewer(controller, plotter)
