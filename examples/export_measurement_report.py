"""
PlanMeasure: Measurement Report

Headless workflow: rebuild the demo plan, restore the stored measurements
(or import an exported measurements.json) and write CSV and Excel reports.
"""

# PlanMeasure imports
from planmeasure import config
from planmeasure.config import BuildSettings
from planmeasure.controller import SceneController
from planmeasure.measurement_report import measurements_dataframe, summarize
from planmeasure.persistence import JsonFileStore
from planmeasure.scene import InMemorySceneAdapter

# Standard library imports
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
)

exported_json = config.MEASUREMENTS_DIR / config.EXPORT_FILENAME


if __name__ == "__main__":
    controller = SceneController(InMemorySceneAdapter(), store=JsonFileStore(config.STORE_PATH), settings=BuildSettings.demo())
    controller.load_dxf(config.DEMO_DXF_PATH)
    controller.start()

    if exported_json.exists():
        controller.import_measurements(exported_json)

    print(measurements_dataframe(controller.log).to_string(index=False))
    print(summarize(measurements_dataframe(controller.log)))

    controller.export_report(config.MEASUREMENTS_DIR / "measurements.csv")
    controller.export_report(config.MEASUREMENTS_DIR / "measurements.xlsx")
