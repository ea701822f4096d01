"""
Scene controller.

Owns one SceneState and wires the components together:

    entities + layer styles --build--> BuildResult (primitives + snap index)
    input events / ticks --dispatcher--> measurement engine --> persistence

All mutation goes through this object, one call at a time.

Usage:
    controller = SceneController(InMemorySceneAdapter(), store=JsonFileStore())
    controller.load_dxf("plan.dxf")
    controller.start()
    controller.dispatch(PointerMove(640, 360))
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.config import BuildSettings
from planmeasure.dxf_reader import read_dxf_entities
from planmeasure.entities import RawEntity, parse_entities
from planmeasure.geometry_builder import BuildResult, GeometryBuilder
from planmeasure.interaction import InteractionDispatcher
from planmeasure.layer_styles import LayerStyle, default_layer_styles, layer_styles_from_config
from planmeasure.measurement import Measurement, MeasurementEngine
from planmeasure.measurement_report import write_report
from planmeasure.persistence import (
    KeyValueStore,
    MeasurementPersistence,
    MemoryStore,
    export_measurements,
    import_measurements,
)
from planmeasure.raycast import Camera
from planmeasure.scene import Handle, SceneAdapter

# Standard library imports
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class SceneState:
    """Everything one open plan needs, in one place."""

    settings: BuildSettings = field(default_factory=BuildSettings)
    entities: List[RawEntity] = field(default_factory=list)
    layer_styles: Dict[str, LayerStyle] = field(default_factory=dict)
    build_result: Optional[BuildResult] = None
    room_group: Optional[Handle] = None
    camera: Camera = field(default_factory=Camera)
    started: bool = False


class SceneController:
    """
    Facade over builder, dispatcher, measurement engine and persistence.

    Args:
        scene: Render adapter.
        store: Durable slot for measurements (in-memory when omitted).
        settings: Build settings; defaults to BuildSettings().
        camera: Camera for pointer and touch rays.
    """

    def __init__(
        self,
        scene: SceneAdapter,
        store: Optional[KeyValueStore] = None,
        settings: Optional[BuildSettings] = None,
        camera: Optional[Camera] = None,
    ):
        self.scene = scene
        self.state = SceneState(
            settings=settings if settings is not None else BuildSettings(),
            camera=camera if camera is not None else Camera(),
        )
        self.persistence = MeasurementPersistence(store if store is not None else MemoryStore())
        self.engine = MeasurementEngine(scene, on_log_changed=self.persistence.save)
        self.dispatcher = InteractionDispatcher(
            self.engine, scene, camera=self.state.camera, snap_threshold=self.state.settings.snap_threshold
        )

    @property
    def log(self) -> List[Measurement]:
        return self.engine.log

    @property
    def rig_position(self):
        """VR viewer rig offset, moved by teleports."""
        return self.dispatcher.vr.rig_position

    # -------------------------------------------------------------------------
    # Loading and building
    # -------------------------------------------------------------------------

    def load_entities(self, entities: Iterable[Union[RawEntity, Mapping[str, Any]]]) -> List[RawEntity]:
        """
        Replace the plan entities and seed default styles for their layers.

        Accepts either RawEntity objects or parser dict records. Parsing happens
        before any state changes, so a malformed source leaves the scene as it was.

        Raises:
            EntityParseError: If a record is malformed.
        """
        items = list(entities)
        if all(isinstance(e, RawEntity) for e in items):
            parsed = items
        else:
            parsed = parse_entities(items)
        self.state.entities = parsed
        self.state.layer_styles = default_layer_styles(parsed)
        logger.info(f"Loaded {len(parsed)} entities on {len(self.state.layer_styles)} layers")
        return parsed

    def load_dxf(self, dxf_path: Union[Path, str]) -> List[RawEntity]:
        return self.load_entities(read_dxf_entities(dxf_path))

    def set_layer_styles(self, layer_styles: Mapping[str, Any]) -> Dict[str, LayerStyle]:
        """Use ``layer_styles`` as the authoritative mapping for the next build.

        Values may be LayerStyle objects or UI configuration entries.
        """
        if all(isinstance(s, LayerStyle) for s in layer_styles.values()):
            styles = dict(layer_styles)
        else:
            styles = layer_styles_from_config(layer_styles)
        self.state.layer_styles = styles
        return styles

    def build(self, settings: Optional[BuildSettings] = None) -> BuildResult:
        """
        Build primitives and snap points and swap them in as a unit.

        The new group is added before the previous one is removed; if the
        build raises, the previous build stays current.
        """
        settings = settings if settings is not None else self.state.settings
        result = GeometryBuilder.from_settings(settings).build(self.state.entities, self.state.layer_styles)

        new_group = self.scene.add_room_group(result.primitives)
        old_group = self.state.room_group
        self.state.settings = settings
        self.state.build_result = result
        self.state.room_group = new_group
        self.dispatcher.set_build(result)
        self.dispatcher.snap_threshold = settings.snap_threshold
        if old_group is not None:
            self.scene.remove(old_group)
        return result

    def start(self) -> int:
        """Build if needed, then restore stored measurements. Returns how many were restored."""
        if self.state.build_result is None:
            self.build()
        restored = 0
        if not self.state.started:
            restored = self.persistence.load(self.engine)
            self.state.started = True
        return restored

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    def dispatch(self, event) -> None:
        self.dispatcher.handle(event)

    def tick(self, tick) -> None:
        self.dispatcher.tick(tick)

    def undo(self) -> Optional[Measurement]:
        return self.engine.undo()

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    def export_measurements(self, output_path: Union[Path, str, None] = None) -> bytes:
        """Serialized log (pretty JSON). Also written to ``output_path`` when given."""
        payload = export_measurements(self.engine.log)
        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(payload)
            logger.info(f"Exported {len(self.engine.log)} measurements to {output_path}")
        return payload

    def import_measurements(self, payload: Union[bytes, str, os.PathLike]) -> List[Measurement]:
        """Replace the log from JSON bytes/text or a JSON file path.

        A ``str`` is always parsed as JSON text; pass file names as ``Path``
        (any ``os.PathLike``).

        Raises:
            MeasurementImportError: If the payload is malformed (log unchanged).
        """
        if isinstance(payload, os.PathLike):
            payload = Path(payload).read_bytes()
        return import_measurements(self.engine, payload)

    def export_report(self, output_path: Union[Path, str, None] = None) -> Path:
        """Write the log as a CSV or XLSX report."""
        if output_path is None:
            output_path = config.MEASUREMENTS_DIR / "measurements.xlsx"
        return write_report(self.engine.log, output_path)
