# PlanMeasure imports
from planmeasure import config
from planmeasure.config import BuildSettings
from planmeasure.entities import EntityKind, RawEntity
from planmeasure.geometry_builder import BoxPrimitive, GeometryBuilder, LinePrimitive
from planmeasure.layer_styles import LayerStyle, SurfaceKind, default_layer_style

# Standard library imports
import math

# Third-party imports
import numpy as np
import pytest


def _line(layer, p1, p2):
    return RawEntity(EntityKind.LINE, layer, (p1, p2))


@pytest.fixture
def builder():
    """Builder with 3.0 m walls, 0.2 m thick"""
    return GeometryBuilder(wall_height=3.0, wall_thickness=0.2)


@pytest.fixture
def wall_style():
    return {"WALL-1": LayerStyle(SurfaceKind.WALL)}


class TestWallBoxes:
    """Tests for wall extrusion"""

    def test_single_wall_scenario(self, builder, wall_style):
        """Test that a 5 m line becomes one centred 5 m wall box of height 3"""
        result = builder.build([_line("WALL-1", (0.0, 0.0), (5.0, 0.0))], wall_style)

        assert len(result.primitives) == 1
        box = result.primitives[0]
        assert isinstance(box, BoxPrimitive)
        assert box.size == pytest.approx((0.2, 3.0, 5.0))
        np.testing.assert_allclose(box.center, [0.0, 1.5, 0.0], atol=1e-12)
        assert result.context.center_x == pytest.approx(2.5)

    def test_wall_snap_points(self, builder, wall_style):
        """Test that a wall registers bottom and top of both endpoints"""
        result = builder.build([_line("WALL-1", (0.0, 0.0), (5.0, 0.0))], wall_style)
        np.testing.assert_allclose(
            result.snap_index.points,
            [[-2.5, 0, 0], [-2.5, 3, 0], [2.5, 0, 0], [2.5, 3, 0]],
            atol=1e-12,
        )

    def test_box_runs_along_segment(self, builder, wall_style):
        """Test that the box length axis points from the first to the second endpoint"""
        result = builder.build([_line("WALL-1", (0.0, 0.0), (0.0, 4.0))], wall_style)
        box = result.primitives[0]
        corners = box.corners()
        # Plan +Y is local -z, so the wall spans z in [-2, 2] and is 0.2 wide in x
        assert corners[:, 2].min() == pytest.approx(-2.0)
        assert corners[:, 2].max() == pytest.approx(2.0)
        assert corners[:, 0].max() - corners[:, 0].min() == pytest.approx(0.2)
        assert corners[:, 1].min() == pytest.approx(0.0)
        assert corners[:, 1].max() == pytest.approx(3.0)

    def test_diagonal_yaw(self, builder, wall_style):
        """Test that the yaw follows the segment direction in the ground plane"""
        result = builder.build([_line("WALL-1", (0.0, 0.0), (3.0, 3.0))], wall_style)
        box = result.primitives[0]
        # Local +z must map onto the world direction from start to end: (+x, -z)
        direction = box.rotation_matrix() @ np.array([0.0, 0.0, 1.0])
        np.testing.assert_allclose(direction, [math.sqrt(0.5), 0.0, -math.sqrt(0.5)], atol=1e-12)
        assert box.size[2] == pytest.approx(math.hypot(3.0, 3.0))

    def test_short_segments_are_dropped(self, builder, wall_style):
        """Test that walls at or below the noise length yield nothing"""
        entities = [
            _line("WALL-1", (0.0, 0.0), (0.04, 0.0)),
            _line("WALL-1", (1.0, 1.0), (1.0, 1.0)),
        ]
        result = builder.build(entities, wall_style)
        assert result.primitives == []
        assert len(result.snap_index) == 0
        assert result.dropped_segments == 2

    def test_segments_above_noise_length_are_kept(self, builder, wall_style):
        """Test that a 0.06 m wall is built"""
        result = builder.build([_line("WALL-1", (0.0, 0.0), (0.06, 0.0))], wall_style)
        assert len(result.boxes) == 1
        assert len(result.snap_index) == 4

    def test_closed_polyline_builds_every_side(self, builder):
        """Test that a closed square gives four walls and sixteen snap points"""
        square = RawEntity(
            EntityKind.LWPOLYLINE, "A-WALL", ((0.0, 0.0), (4.0, 0.0), (4.0, 4.0), (0.0, 4.0)), closed=True
        )
        result = builder.build([square], {"A-WALL": LayerStyle(SurfaceKind.WALL)})
        assert len(result.boxes) == 4
        assert len(result.snap_index) == 16
        assert result.layer_counts == {"A-WALL": 4}


class TestCeilingAndFloor:
    """Tests for beams and flat lines"""

    def test_beam_hangs_from_ceiling(self, builder):
        """Test that a ceiling layer with elevation becomes a hanging beam"""
        styles = {"S-BEAM": default_layer_style("S-BEAM")}
        result = builder.build([_line("S-BEAM", (0.0, 0.0), (4.0, 0.0))], styles)
        beam = result.primitives[0]
        assert isinstance(beam, BoxPrimitive)
        assert beam.size[1] == pytest.approx(config.BEAM_DEFAULT_DEPTH)
        assert beam.center[1] == pytest.approx(3.0 - config.BEAM_DEFAULT_DEPTH / 2)
        heights = sorted(set(np.round(result.snap_index.points[:, 1], 9).tolist()))
        np.testing.assert_allclose(heights, [2.6, 3.0])

    def test_ceiling_line_at_wall_height(self, builder):
        """Test that a ceiling layer without elevation is a line at wall height"""
        styles = {"LIGHT": LayerStyle(SurfaceKind.CEILING)}
        result = builder.build([_line("LIGHT", (0.0, 0.0), (2.0, 0.0))], styles)
        line = result.primitives[0]
        assert isinstance(line, LinePrimitive)
        assert line.start[1] == 3.0 and line.end[1] == 3.0
        assert len(result.snap_index) == 2

    def test_floor_line_default_offset(self, builder):
        """Test that a floor line with zero elevation floats just above the ground"""
        styles = {"FURN": LayerStyle(SurfaceKind.FLOOR)}
        result = builder.build([_line("FURN", (0.0, 0.0), (2.0, 0.0))], styles)
        assert result.primitives[0].start[1] == config.FLOOR_LINE_OFFSET

    def test_floor_line_at_elevation(self, builder):
        """Test that a floor line with elevation sits at that height"""
        styles = {"SOCKET": default_layer_style("SOCKET")}
        result = builder.build([_line("SOCKET", (0.0, 0.0), (0.2, 0.0))], styles)
        np.testing.assert_allclose(result.snap_index.points[:, 1], [0.3, 0.3])

    def test_short_lines_are_kept(self, builder):
        """Test that the noise filter only applies to boxes"""
        styles = {"FURN": LayerStyle(SurfaceKind.FLOOR)}
        result = builder.build([_line("FURN", (0.0, 0.0), (0.01, 0.0))], styles)
        assert len(result.lines) == 1


class TestLayerSelection:
    """Tests for hidden and unmapped layers"""

    def test_hidden_and_unmapped_layers_contribute_nothing(self, builder):
        """Test that hidden and missing layers produce no primitives or snaps"""
        entities = [
            _line("HIDE-ME", (0.0, 0.0), (5.0, 0.0)),
            _line("UNKNOWN", (0.0, 1.0), (5.0, 1.0)),
        ]
        result = builder.build(entities, {"HIDE-ME": LayerStyle(SurfaceKind.HIDDEN)})
        assert result.primitives == []
        assert len(result.snap_index) == 0

    def test_hidden_layers_still_count_for_centering(self, builder):
        """Test that the bounding box uses every line entity regardless of style"""
        entities = [
            _line("WALL-1", (0.0, 0.0), (2.0, 0.0)),
            _line("HIDE-ME", (8.0, 0.0), (10.0, 0.0)),
        ]
        result = builder.build(entities, {"WALL-1": LayerStyle(SurfaceKind.WALL)})
        assert result.context.center_x == pytest.approx(5.0)

    def test_empty_plan(self, builder):
        """Test that an empty entity set builds an empty result centred on the origin"""
        result = builder.build([], {})
        assert result.primitives == []
        assert (result.context.center_x, result.context.center_y) == (0.0, 0.0)


class TestMaterials:
    """Tests for shared materials"""

    def test_same_layer_shares_material(self, builder, wall_style):
        """Test that primitives of one layer and colour share a material"""
        entities = [
            _line("WALL-1", (0.0, 0.0), (5.0, 0.0)),
            _line("WALL-1", (0.0, 0.0), (0.0, 5.0)),
        ]
        result = builder.build(entities, wall_style)
        assert result.primitives[0].material is result.primitives[1].material

    def test_glass_is_transparent(self, builder):
        """Test that glass walls get the glass opacity"""
        styles = {"A-GLASS": default_layer_style("A-GLASS")}
        result = builder.build([_line("A-GLASS", (0.0, 0.0), (2.0, 0.0))], styles)
        material = result.primitives[0].material
        assert material.opacity == config.GLASS_OPACITY
        assert material.transparent


class TestBuilderSettings:
    """Tests for GeometryBuilder.from_settings and BuildSettings"""

    def test_from_settings(self):
        """Test that settings drive the wall dimensions"""
        builder = GeometryBuilder.from_settings(BuildSettings.from_form(height_m=2.7, thickness_cm=15))
        assert builder.wall_height == 2.7
        assert builder.wall_thickness == pytest.approx(0.15)

    def test_demo_settings(self):
        """Test the demo plan height"""
        assert BuildSettings.demo().wall_height == config.DEMO_WALL_HEIGHT

    @pytest.mark.parametrize("kwargs", [
        {"wall_height": 0},
        {"wall_thickness": -0.1},
        {"snap_threshold": "0.4"},
        {"wall_height": True},
    ])
    def test_invalid_settings(self, kwargs):
        """Test that non-positive or non-numeric settings are rejected"""
        with pytest.raises(ValueError):
            BuildSettings(**kwargs)
