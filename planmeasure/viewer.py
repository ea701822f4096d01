"""
PyVista scene adapter and desktop viewer.

``PyVistaSceneAdapter`` owns the VTK actors behind the handles the core works
with. ``launch_viewer`` opens an interactive window, turns VTK mouse and key
callbacks into planmeasure input events and drives a DesktopTick timer.

Controls:
    mouse move      - hover / snap (preview follows while measuring)
    left press      - start a measurement
    left release    - end it
    u               - undo the last measurement
    e               - export measurements.json
    x               - export an xlsx report
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.events import DesktopTick, PointerDown, PointerMove, PointerUp
from planmeasure.geometry_builder import BoxPrimitive, Primitive
from planmeasure.labels import label_texture_array
from planmeasure.scene import Handle, SceneAdapter

# Standard library imports
import itertools
import logging
import time
from typing import Dict, List, Optional

# Third-party imports
import numpy as np
import pyvista as pv

logger = logging.getLogger(__name__)

LABEL_WORLD_SIZE = (1.0, 0.5)
SNAP_SPHERE_RADIUS = 0.1


def primitive_to_mesh(primitive: Primitive) -> pv.PolyData:
    """World-space PolyData for a primitive."""
    if isinstance(primitive, BoxPrimitive):
        hx, hy, hz = primitive.half_extents
        box = pv.Box(bounds=(-hx, hx, -hy, hy, -hz, hz))
        transform = np.eye(4)
        transform[:3, :3] = primitive.rotation_matrix()
        transform[:3, 3] = primitive.center
        return box.transform(transform, inplace=False)
    return pv.Line(primitive.start, primitive.end)


class PyVistaSceneAdapter(SceneAdapter):
    """Scene adapter backed by a ``pv.Plotter``."""

    def __init__(self, plotter: pv.Plotter):
        self.plotter = plotter
        self._next_handle = itertools.count(1)
        self._actors: Dict[Handle, List[pv.Actor]] = {}
        self._line_meshes: Dict[Handle, pv.PolyData] = {}
        self._label_colors: Dict[Handle, str] = {}
        self._rig_position = np.zeros(3)
        self.camera_controls_enabled = True
        self._crosshair_actor = None

        self._snap_actor = plotter.add_mesh(
            pv.Sphere(radius=SNAP_SPHERE_RADIUS), color=config.SNAP_EXACT_COLOR, pickable=False
        )
        self._snap_actor.visibility = False
        marker = pv.Disc(inner=0.1, outer=0.2, normal=(0, 1, 0), c_res=32)
        self._marker_actor = plotter.add_mesh(marker, color=config.TELEPORT_MARKER_COLOR, pickable=False)
        self._marker_actor.visibility = False

    def _store(self, actors: List[pv.Actor]) -> Handle:
        handle = next(self._next_handle)
        self._actors[handle] = actors
        return handle

    def add_room_group(self, primitives):
        actors = []
        for primitive in primitives:
            mesh = primitive_to_mesh(primitive)
            material = primitive.material
            color = tuple(c / 255 for c in material.color)
            if isinstance(primitive, BoxPrimitive):
                actor = self.plotter.add_mesh(mesh, color=color, opacity=material.opacity, smooth_shading=False)
            else:
                actor = self.plotter.add_mesh(mesh, color=color, line_width=2, render_lines_as_tubes=False)
            actors.append(actor)
        logger.debug(f"Added room group with {len(actors)} actors")
        return self._store(actors)

    def add_line(self, start, end, color):
        mesh = pv.Line(start, end)
        actor = self.plotter.add_mesh(mesh, color=color, line_width=3, pickable=False)
        handle = self._store([actor])
        self._line_meshes[handle] = mesh
        return handle

    def update_line(self, handle, start, end):
        self._line_meshes[handle].points = np.array([start, end], dtype=float)

    def _label_actor(self, text, position, color) -> pv.Actor:
        position = np.asarray(position, dtype=float)
        facing = np.asarray(self.plotter.camera.position, dtype=float) - position
        if np.linalg.norm(facing) < 1e-9:
            facing = np.array([0.0, 0.0, 1.0])
        plane = pv.Plane(center=position, direction=facing, i_size=LABEL_WORLD_SIZE[0], j_size=LABEL_WORLD_SIZE[1])
        texture = pv.Texture(label_texture_array(text, color))
        return self.plotter.add_mesh(plane, texture=texture, pickable=False)

    def add_label(self, text, position, color):
        handle = self._store([self._label_actor(text, position, color)])
        self._label_colors[handle] = color
        return handle

    def update_label(self, handle, text, position):
        # Texture and placement both change, so the plane is rebuilt
        old = self._actors[handle][0]
        visible = old.visibility
        self.plotter.remove_actor(old, render=False)
        actor = self._label_actor(text, position, self._label_colors[handle])
        actor.visibility = visible
        self._actors[handle] = [actor]

    def set_visible(self, handle, visible):
        for actor in self._actors[handle]:
            actor.visibility = visible

    def remove(self, handle):
        for actor in self._actors.pop(handle, []):
            self.plotter.remove_actor(actor, render=False)
        self._line_meshes.pop(handle, None)
        self._label_colors.pop(handle, None)

    def update_snap_indicator(self, position, visible, snapped):
        if position is not None:
            self._snap_actor.position = tuple(float(v) for v in position)
        self._snap_actor.prop.color = config.SNAP_SNAPPED_COLOR if snapped else config.SNAP_EXACT_COLOR
        self._snap_actor.visibility = visible

    def update_probe_crosshair(self, screen_position):
        if self._crosshair_actor is not None:
            self.plotter.remove_actor(self._crosshair_actor, render=False)
            self._crosshair_actor = None
        if screen_position is not None:
            x, y = screen_position
            height = self.plotter.window_size[1]
            self._crosshair_actor = self.plotter.add_text("+", position=(x, height - y), font_size=24, color="white")

    def update_teleport_marker(self, position, visible):
        if position is not None:
            self._marker_actor.position = tuple(float(v) for v in position)
        self._marker_actor.visibility = visible

    def set_rig_position(self, position):
        position = np.asarray(position, dtype=float)
        delta = position - self._rig_position
        camera = self.plotter.camera
        camera.position = tuple(np.asarray(camera.position) + delta)
        camera.focal_point = tuple(np.asarray(camera.focal_point) + delta)
        self._rig_position = position

    def set_camera_controls_enabled(self, enabled):
        self.camera_controls_enabled = enabled


def sync_camera(plotter: pv.Plotter, camera) -> None:
    """Copy the interactive VTK camera into the ray-casting camera."""
    camera.position = tuple(plotter.camera.position)
    camera.target = tuple(plotter.camera.focal_point)
    camera.up = tuple(plotter.camera.up)
    camera.fov_deg = float(plotter.camera.view_angle)
    camera.viewport = tuple(plotter.window_size)


def create_plotter(off_screen: bool = False) -> pv.Plotter:
    plotter = pv.Plotter(window_size=list(config.VIEWPORT_SIZE), off_screen=off_screen)
    plotter.set_background(config.BACKGROUND_COLOR)
    plotter.camera.position = config.CAMERA_POSITION
    plotter.camera.focal_point = config.CAMERA_TARGET
    plotter.camera.up = (0.0, 1.0, 0.0)
    plotter.camera.view_angle = config.CAMERA_FOV_DEG
    plotter.add_mesh(
        pv.Plane(center=(0, 0, 0), direction=(0, 1, 0), i_size=100, j_size=100, i_resolution=100, j_resolution=100),
        style="wireframe", color="#444444", pickable=False,
    )
    return plotter


def launch_viewer(controller, plotter: Optional[pv.Plotter] = None) -> None:
    """
    Open an interactive window for a SceneController built on a PyVistaSceneAdapter.

    Args:
        controller: SceneController whose scene adapter draws into ``plotter``.
        plotter: The plotter the adapter was created with.
    """
    if plotter is None:
        plotter = controller.scene.plotter
    controller.start()

    def _screen_position():
        x, y = plotter.iren.get_event_position()
        return float(x), float(plotter.window_size[1] - y)

    def _on_move(*_):
        sync_camera(plotter, controller.state.camera)
        controller.dispatch(PointerMove(*_screen_position()))
        plotter.render()

    def _on_press(*_):
        controller.dispatch(PointerDown(*_screen_position(), button=0))
        plotter.render()

    def _on_release(*_):
        controller.dispatch(PointerUp(*_screen_position(), button=0))
        plotter.render()

    def _on_undo():
        controller.undo()
        plotter.render()

    def _on_export():
        path = config.MEASUREMENTS_DIR / config.EXPORT_FILENAME
        controller.export_measurements(path)
        print(f"Exported {len(controller.log)} measurements to {path}")

    def _on_report():
        path = controller.export_report()
        print(f"Report written to {path}")

    plotter.iren.add_observer("MouseMoveEvent", _on_move)
    plotter.iren.add_observer("LeftButtonPressEvent", _on_press)
    plotter.iren.add_observer("LeftButtonReleaseEvent", _on_release)
    plotter.add_key_event("u", _on_undo)
    plotter.add_key_event("e", _on_export)
    plotter.add_key_event("x", _on_report)
    plotter.add_callback(lambda: controller.tick(DesktopTick(time.monotonic() * 1000)), interval=16)

    print("\n=== Plan Measure ===")
    print("Left-drag: measure | u: undo | e: export JSON | x: export report | q: quit")
    print("====================\n")
    plotter.show()
