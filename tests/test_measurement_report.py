# PlanMeasure imports
from planmeasure.measurement import Measurement
from planmeasure.measurement_report import REPORT_COLUMNS, measurements_dataframe, summarize, write_report

# Third-party imports
import numpy as np
import pandas as pd
import pytest
from openpyxl import load_workbook


@pytest.fixture
def log():
    return [
        Measurement(np.array([0.0, 0.0, 0.0]), np.array([3.0, 0.0, 4.0])),
        Measurement(np.array([1.0, 0.0, 0.0]), np.array([1.0, 2.0, 0.0])),
    ]


class TestDataframe:
    """Tests for measurements_dataframe and summarize"""

    def test_rows_in_commit_order(self, log):
        """Test one row per measurement with a 1-based index"""
        df = measurements_dataframe(log)
        assert list(df.columns) == REPORT_COLUMNS
        assert df["index"].tolist() == [1, 2]
        assert df["distance"].tolist() == pytest.approx([5.0, 2.0])
        assert df["label"].tolist() == ["5.00m", "2.00m"]
        assert df.loc[0, "end_z"] == 4.0

    def test_empty_log(self):
        """Test an empty frame with the report columns"""
        df = measurements_dataframe([])
        assert df.empty
        assert list(df.columns) == REPORT_COLUMNS
        assert summarize(df) == {"count": 0, "total": 0.0, "min": 0.0, "max": 0.0, "mean": 0.0}

    def test_summary(self, log):
        """Test count, total, min, max and mean"""
        summary = summarize(measurements_dataframe(log))
        assert summary["count"] == 2
        assert summary["total"] == pytest.approx(7.0)
        assert summary["min"] == pytest.approx(2.0)
        assert summary["max"] == pytest.approx(5.0)
        assert summary["mean"] == pytest.approx(3.5)


class TestWriteReport:
    """Tests for write_report"""

    def test_csv(self, log, tmp_path):
        """Test CSV output"""
        path = write_report(log, tmp_path / "out" / "report.csv")
        df = pd.read_csv(path)
        assert len(df) == 2
        assert list(df.columns) == REPORT_COLUMNS

    def test_xlsx_sheets(self, log, tmp_path):
        """Test that the workbook has measurement and summary sheets"""
        path = write_report(log, tmp_path / "report.xlsx")
        wb = load_workbook(path)
        assert wb.sheetnames == ["Measurements", "Summary"]
        assert wb["Measurements"].freeze_panes == "A2"

        summary = pd.read_excel(path, sheet_name="Summary", engine="openpyxl")
        values = dict(zip(summary["metric"], summary["value"]))
        assert values["total"] == pytest.approx(7.0)

    def test_unsupported_suffix(self, log, tmp_path):
        """Test that other formats are rejected"""
        with pytest.raises(ValueError):
            write_report(log, tmp_path / "report.txt")
