# PlanMeasure imports
from planmeasure.dxf_reader import read_dxf_entities
from planmeasure.entities import EntityKind
from planmeasure.exceptions import EntityParseError

# Third-party imports
import ezdxf
import pytest


@pytest.fixture
def dxf_path(tmp_path):
    """A drawing with a line, a closed polyline and a circle"""
    doc = ezdxf.new()
    msp = doc.modelspace()
    msp.add_line((0, 0), (5, 0), dxfattribs={"layer": "A-WALL"})
    msp.add_lwpolyline([(0, 0), (4, 0), (4, 3)], close=True, dxfattribs={"layer": "E-LIGHT"})
    msp.add_circle((1, 1), radius=0.5, dxfattribs={"layer": "A-WALL"})
    path = tmp_path / "plan.dxf"
    doc.saveas(path)
    return path


class TestReadDxf:
    """Tests for read_dxf_entities"""

    def test_reads_lines_and_polylines(self, dxf_path):
        """Test that LINE and LWPOLYLINE are read and other entities skipped"""
        entities = read_dxf_entities(dxf_path)
        assert [e.kind for e in entities] == [EntityKind.LINE, EntityKind.LWPOLYLINE]
        assert entities[0].layer == "A-WALL"
        assert entities[0].vertices == ((0.0, 0.0), (5.0, 0.0))

    def test_closed_polyline(self, dxf_path):
        """Test that closed polylines keep their closing segment"""
        polyline = read_dxf_entities(dxf_path)[1]
        assert polyline.closed
        assert polyline.vertices == ((0.0, 0.0), (4.0, 0.0), (4.0, 3.0))
        assert len(list(polyline.segments())) == 3

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            read_dxf_entities(tmp_path / "missing.dxf")

    def test_not_a_dxf(self, tmp_path):
        """Test that an unreadable file raises EntityParseError"""
        path = tmp_path / "broken.dxf"
        path.write_text("this is not a drawing\n")
        with pytest.raises(EntityParseError):
            read_dxf_entities(path)
