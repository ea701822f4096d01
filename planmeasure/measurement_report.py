"""
Measurement reports.

Tabulates a measurement log with pandas and writes it as CSV or as an Excel
workbook (a 'Measurements' sheet plus a 'Summary' sheet).
"""

# PlanMeasure imports
from planmeasure.measurement import Measurement

# Standard library imports
import logging
from pathlib import Path
from typing import Dict, Iterable, Union

# Third-party imports
import pandas as pd

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "index", "start_x", "start_y", "start_z", "end_x", "end_y", "end_z", "distance", "label",
]


def measurements_dataframe(log: Iterable[Measurement]) -> pd.DataFrame:
    """
    One row per committed measurement, in commit order.

    Returns:
        pd.DataFrame: Columns REPORT_COLUMNS. Empty (with those columns) for an empty log.
    """
    rows = []
    for i, m in enumerate(log, start=1):
        rows.append({
            "index": i,
            "start_x": float(m.start[0]), "start_y": float(m.start[1]), "start_z": float(m.start[2]),
            "end_x": float(m.end[0]), "end_y": float(m.end[1]), "end_z": float(m.end[2]),
            "distance": m.distance,
            "label": m.label,
        })
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summarize(df: pd.DataFrame) -> Dict[str, float]:
    """Count, total, min, max and mean distance. Zeros for an empty frame."""
    if df.empty:
        return {"count": 0, "total": 0.0, "min": 0.0, "max": 0.0, "mean": 0.0}
    distances = df["distance"]
    return {
        "count": int(len(distances)),
        "total": float(distances.sum()),
        "min": float(distances.min()),
        "max": float(distances.max()),
        "mean": float(distances.mean()),
    }


def write_report(log: Iterable[Measurement], output_path: Union[Path, str]) -> Path:
    """
    Write the log to ``output_path``. The suffix selects the format.

    Args:
        log: Committed measurements.
        output_path: '.csv' or '.xlsx' file.

    Returns:
        Path: The written file.

    Raises:
        ValueError: For any other suffix.
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix not in (".csv", ".xlsx"):
        raise ValueError(f"Unsupported report format '{output_path.suffix}', use .csv or .xlsx")

    df = measurements_dataframe(log)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".csv":
        df.to_csv(output_path, index=False)
    else:
        summary = pd.DataFrame(list(summarize(df).items()), columns=["metric", "value"])
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Measurements", index=False)
            summary.to_excel(writer, sheet_name="Summary", index=False)
            ws = writer.sheets["Measurements"]
            ws.freeze_panes = "A2"

    logger.info(f"Wrote {len(df)} measurements to {output_path}")
    return output_path
