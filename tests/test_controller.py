# PlanMeasure imports
from planmeasure import config
from planmeasure.config import BuildSettings
from planmeasure.controller import SceneController
from planmeasure.entities import EntityKind, RawEntity
from planmeasure.events import DesktopTick, PointerDown, PointerMove, PointerUp
from planmeasure.exceptions import EntityParseError, LayerConfigError, MeasurementImportError
from planmeasure.geometry_builder import GeometryBuilder
from planmeasure.layer_styles import LayerStyle, SurfaceKind
from planmeasure.persistence import MemoryStore
from planmeasure.scene import InMemorySceneAdapter

# Standard library imports
import json

# Third-party imports
import pandas as pd
import pytest


@pytest.fixture
def scene():
    return InMemorySceneAdapter()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def controller(scene, store):
    c = SceneController(scene, store=store, settings=BuildSettings(wall_height=3.0, wall_thickness=0.2))
    c.load_entities([
        {"type": "LINE", "layer": "A-WALL", "vertices": [{"x": 0, "y": 0}, {"x": 5, "y": 0}]},
        {"type": "LINE", "layer": "NOTES", "vertices": [{"x": 0, "y": 1}, {"x": 5, "y": 1}]},
        {"type": "TEXT", "layer": "NOTES", "vertices": []},
    ])
    return c


class TestLoading:
    """Tests for entity loading and layer styles"""

    def test_records_are_parsed_and_styled(self, controller):
        """Test that parser records become entities with seeded styles"""
        assert len(controller.state.entities) == 2
        assert controller.state.layer_styles["A-WALL"].surface_kind is SurfaceKind.WALL
        assert controller.state.layer_styles["NOTES"].is_hidden

    def test_raw_entities_are_used_directly(self, scene):
        """Test that RawEntity input skips parsing"""
        entity = RawEntity(EntityKind.LINE, "WALL", ((0.0, 0.0), (1.0, 0.0)))
        c = SceneController(scene)
        assert c.load_entities([entity]) == [entity]

    def test_malformed_record_keeps_previous_entities(self, controller):
        """Test that a parse error leaves the loaded plan untouched"""
        with pytest.raises(EntityParseError):
            controller.load_entities([{"type": "LINE", "layer": "A-WALL", "vertices": [{"x": 0, "y": 0}]}])
        assert len(controller.state.entities) == 2

    def test_config_layer_styles(self, controller):
        """Test that UI configuration entries are accepted"""
        styles = controller.set_layer_styles({"NOTES": {"surfaceKind": "floor", "elevationValue": 0.5}})
        assert styles["NOTES"].surface_kind is SurfaceKind.FLOOR
        assert controller.state.layer_styles is styles

    def test_bad_layer_config(self, controller):
        """Test that an unknown surface kind is rejected"""
        with pytest.raises(LayerConfigError):
            controller.set_layer_styles({"NOTES": "roof"})


class TestBuild:
    """Tests for building and rebuilding the room group"""

    def test_build_adds_group(self, controller, scene):
        """Test that a build adds one group holding the primitives"""
        result = controller.build()
        assert len(scene.groups()) == 1
        assert scene.groups()[0].primitives == result.primitives
        assert controller.dispatcher.build_result is result

    def test_rebuild_replaces_group(self, controller, scene):
        """Test that a rebuild swaps the group and the snap index as a unit"""
        controller.build()
        old_group = controller.state.room_group
        controller.set_layer_styles({"A-WALL": LayerStyle(SurfaceKind.WALL), "NOTES": LayerStyle(SurfaceKind.WALL)})
        result = controller.build(BuildSettings(wall_height=2.5, wall_thickness=0.1))

        assert old_group in scene.removed
        assert len(scene.groups()) == 1
        assert len(result.boxes) == 2
        assert controller.state.settings.wall_height == 2.5

    def test_failed_build_keeps_previous(self, controller, scene, monkeypatch):
        """Test that an exception during build leaves the old build current"""
        first = controller.build()

        def explode(self, entities, layer_styles):
            raise RuntimeError("boom")

        monkeypatch.setattr(GeometryBuilder, "build", explode)
        with pytest.raises(RuntimeError):
            controller.build()
        assert controller.state.build_result is first
        assert len(scene.groups()) == 1

    def test_snap_threshold_follows_settings(self, controller):
        """Test that the dispatcher uses the new snap radius"""
        controller.build(BuildSettings(snap_threshold=0.8))
        assert controller.dispatcher.snap_threshold == 0.8


class TestSessionFlow:
    """Tests for start, input and persistence through the controller"""

    def test_start_restores_once(self, scene, store):
        """Test that stored measurements are restored on the first start only"""
        record = {"start": {"x": 0, "y": 0, "z": 0}, "end": {"x": 3, "y": 0, "z": 4}, "distance": 5.0}
        store.set(config.STORAGE_KEY, json.dumps([record]))
        c = SceneController(scene, store=store)
        assert c.start() == 1
        assert c.start() == 0
        assert len(c.log) == 1
        assert c.state.build_result is not None

    def test_start_ignores_out_of_range_slot(self, scene, store):
        """Test that a stored integer too large for a float does not break start"""
        store.set(config.STORAGE_KEY, '[{"start": {"x": 1' + "0" * 400 + ', "y": 0, "z": 0}, "end": {"x": 1, "y": 0, "z": 0}, "distance": 1}]')
        c = SceneController(scene, store=store)
        assert c.start() == 0
        assert c.log == []

    def test_pointer_measurement_is_saved(self, controller, store):
        """Test a click-drag measurement through dispatch and tick"""
        controller.start()
        controller.tick(DesktopTick(0))
        controller.dispatch(PointerMove(640, 500))
        controller.dispatch(PointerDown(640, 500))
        controller.dispatch(PointerMove(900, 500))
        controller.dispatch(PointerUp(900, 500))

        assert len(controller.log) == 1
        assert controller.log[0].distance > 0
        assert len(json.loads(store.get(config.STORAGE_KEY))) == 1

    def test_undo(self, controller, store):
        """Test that undo goes through the engine and saves"""
        controller.engine.create_measurement((0, 0, 0), (1, 0, 0))
        controller.undo()
        assert controller.log == []
        assert json.loads(store.get(config.STORAGE_KEY)) == []


class TestImportExport:
    """Tests for controller import/export/report"""

    def test_export_then_import(self, controller, scene, tmp_path):
        """Test exporting to a file and importing it into another controller"""
        controller.engine.create_measurement((0, 0, 0), (3, 0, 4))
        path = tmp_path / "measurements.json"
        payload = controller.export_measurements(path)
        assert path.read_bytes() == payload

        other = SceneController(InMemorySceneAdapter())
        other.import_measurements(path)
        assert other.log[0].distance == pytest.approx(5.0)

    def test_str_is_json_text(self, controller):
        """Test that a str payload is parsed as JSON, not opened as a file"""
        controller.engine.create_measurement((0, 0, 0), (1, 0, 0))
        controller.import_measurements('[{"start": {"x": 0, "y": 0, "z": 0}, "end": {"x": 0, "y": 2, "z": 0}, "distance": 2}]')
        assert [m.distance for m in controller.log] == pytest.approx([2.0])

    def test_path_like_is_read(self, controller, tmp_path):
        """Test that any os.PathLike payload is read from disk"""
        path = tmp_path / "m.json"
        path.write_text('[{"start": {"x": 0, "y": 0, "z": 0}, "end": {"x": 3, "y": 0, "z": 4}, "distance": 5}]')

        class PlanFile:
            def __fspath__(self):
                return str(path)

        controller.import_measurements(PlanFile())
        assert controller.log[0].distance == pytest.approx(5.0)

    def test_bad_import(self, controller):
        """Test that a malformed import raises and keeps the log"""
        controller.engine.create_measurement((0, 0, 0), (1, 0, 0))
        with pytest.raises(MeasurementImportError):
            controller.import_measurements(b'{"not": "a list"}')
        assert len(controller.log) == 1

    def test_report(self, controller, tmp_path):
        """Test writing a CSV report"""
        controller.engine.create_measurement((0, 0, 0), (3, 0, 4))
        path = controller.export_report(tmp_path / "report.csv")
        df = pd.read_csv(path)
        assert df["distance"].tolist() == pytest.approx([5.0])
