# PlanMeasure imports
from planmeasure import config
from planmeasure.entities import EntityKind, RawEntity
from planmeasure.exceptions import LayerConfigError
from planmeasure.layer_styles import (
    LayerStyle,
    SurfaceKind,
    default_layer_style,
    default_layer_styles,
    layer_styles_from_config,
    layer_styles_to_config,
    load_layer_config,
    parse_hex_color,
    save_layer_config,
    to_hex_color,
)

# Standard library imports
import json

# Third-party imports
import pytest


class TestDefaultLayerStyle:
    """Tests for the layer name heuristics"""

    @pytest.mark.parametrize("name", ["WALL-1", "A-Walls", "bina", "MABANI_EXT"])
    def test_wall_keywords(self, name):
        """Test that wall keywords map to walls"""
        assert default_layer_style(name).surface_kind is SurfaceKind.WALL

    @pytest.mark.parametrize("name", ["I-FURN", "DIM", "socket-power"])
    def test_floor_keywords(self, name):
        """Test that furniture, dimension and socket layers map to floor lines"""
        assert default_layer_style(name).surface_kind is SurfaceKind.FLOOR

    @pytest.mark.parametrize("name", ["E-LIGHT", "CEIL-GRID", "CCTV"])
    def test_ceiling_keywords(self, name):
        """Test that lighting, ceiling and cctv layers map to ceiling lines"""
        style = default_layer_style(name)
        assert style.surface_kind is SurfaceKind.CEILING
        assert style.elevation == 0.0

    def test_beam_hangs_from_ceiling(self):
        """Test that beams are ceilings with the default beam depth"""
        style = default_layer_style("S-BEAM")
        assert style.surface_kind is SurfaceKind.CEILING
        assert style.elevation == config.BEAM_DEFAULT_DEPTH

    def test_socket_and_switch_heights(self):
        """Test the default mounting heights"""
        assert default_layer_style("E-SOCKET").elevation == config.SOCKET_DEFAULT_HEIGHT
        assert default_layer_style("E-SWITCH").elevation == config.SWITCH_DEFAULT_HEIGHT

    def test_unknown_layer_is_hidden(self):
        """Test that unmatched names are hidden"""
        assert default_layer_style("0").is_hidden
        assert default_layer_style("").is_hidden

    def test_glass_is_transparent_wall(self):
        """Test that glass layers become glass walls"""
        style = default_layer_style("A-GLASS")
        assert style.surface_kind is SurfaceKind.WALL
        assert style.is_glass
        assert style.hex_color == config.GLASS_COLOR

    def test_default_colors(self):
        """Test per-kind default colours"""
        assert default_layer_style("WALL").hex_color == config.WALL_COLOR
        assert default_layer_style("FURN").hex_color == config.FLOOR_LINE_COLOR
        assert default_layer_style("LIGHT").hex_color == config.CEILING_LINE_COLOR

    def test_seeds_every_layer_in_order(self):
        """Test that default_layer_styles covers each distinct layer once"""
        entities = [
            RawEntity(EntityKind.LINE, name, ((0.0, 0.0), (1.0, 0.0)))
            for name in ["FURN", "WALL", "FURN", "X"]
        ]
        styles = default_layer_styles(entities)
        assert list(styles) == ["FURN", "WALL", "X"]


class TestHexColors:
    """Tests for colour parsing"""

    def test_round_trip(self):
        """Test hex to rgb and back"""
        assert parse_hex_color("#00ffcc") == (0, 255, 204)
        assert to_hex_color((0, 255, 204)) == "#00ffcc"

    def test_hash_optional(self):
        """Test that the leading '#' is optional"""
        assert parse_hex_color("DDDDDD") == (221, 221, 221)

    @pytest.mark.parametrize("value", ["#fff", "red", "#gg0000", None, 12])
    def test_invalid(self, value):
        """Test that malformed colours are rejected"""
        with pytest.raises(LayerConfigError):
            parse_hex_color(value)


class TestLayerStyleFromConfig:
    """Tests for layer_styles_from_config"""

    def test_full_entry(self):
        """Test a complete UI entry"""
        styles = layer_styles_from_config(
            {"S-BEAM": {"surfaceKind": "ceiling", "elevationValue": 0.6, "color": "#ff0000", "isGlass": False}}
        )
        style = styles["S-BEAM"]
        assert style.surface_kind is SurfaceKind.CEILING
        assert style.elevation == 0.6
        assert style.color == (255, 0, 0)

    def test_string_entry_and_aliases(self):
        """Test that bare kinds and the ceil/hide spellings are accepted"""
        styles = layer_styles_from_config({"A": "ceil", "B": "hide", "C": "WALL"})
        assert styles["A"].surface_kind is SurfaceKind.CEILING
        assert styles["B"].surface_kind is SurfaceKind.HIDDEN
        assert styles["C"].surface_kind is SurfaceKind.WALL
        assert styles["C"].hex_color == config.WALL_COLOR

    def test_glass_default_color(self):
        """Test that a glass entry without colour gets the glass colour"""
        styles = layer_styles_from_config({"G": {"surfaceKind": "wall", "isGlass": True}})
        assert styles["G"].hex_color == config.GLASS_COLOR

    @pytest.mark.parametrize("entry", [
        {"surfaceKind": "roof"},
        {"surfaceKind": "wall", "elevationValue": "high"},
        {"surfaceKind": "wall", "elevationValue": True},
        {"surfaceKind": "wall", "elevationValue": float("inf")},
        {"surfaceKind": "wall", "elevationValue": 10 ** 400},
        {"surfaceKind": "wall", "isGlass": "yes"},
        {"surfaceKind": "wall", "color": "blue"},
        42,
    ])
    def test_malformed_entries(self, entry):
        """Test that malformed entries raise LayerConfigError"""
        with pytest.raises(LayerConfigError):
            layer_styles_from_config({"L": entry})

    def test_non_mapping(self):
        """Test that the configuration must be a mapping"""
        with pytest.raises(LayerConfigError):
            layer_styles_from_config(["wall"])


class TestLayerStyleHelpers:
    """Tests for with_kind and to_dict"""

    def test_with_kind_recolours(self):
        """Test that switching kind picks that kind's colour"""
        style = LayerStyle(SurfaceKind.WALL).with_kind(SurfaceKind.FLOOR, elevation=0.75)
        assert style.surface_kind is SurfaceKind.FLOOR
        assert style.elevation == 0.75
        assert style.hex_color == config.FLOOR_LINE_COLOR

    def test_with_kind_keeps_glass_colour(self):
        """Test that glass keeps its colour when its kind changes"""
        glass = default_layer_style("GLASS")
        assert glass.with_kind(SurfaceKind.CEILING).hex_color == config.GLASS_COLOR

    def test_to_dict_keys(self):
        """Test the UI mapping keys"""
        assert LayerStyle(SurfaceKind.WALL).to_dict() == {
            "surfaceKind": "wall",
            "elevationValue": 0.0,
            "color": config.WALL_COLOR,
            "isGlass": False,
        }


class TestLayerConfigFiles:
    """Tests for save_layer_config and load_layer_config"""

    def test_save_then_load(self, tmp_path):
        """Test that a saved configuration loads back equal"""
        styles = {"WALL": default_layer_style("WALL"), "S-BEAM": default_layer_style("S-BEAM")}
        path = save_layer_config(styles, tmp_path / "cfg" / "layers.json")
        assert load_layer_config(path) == styles
        assert json.loads(path.read_text()) == layer_styles_to_config(styles)

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            load_layer_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test that broken JSON raises LayerConfigError"""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(LayerConfigError):
            load_layer_config(path)
