"""Exceptions raised by planmeasure."""


class PlanMeasureError(Exception):
    """Base class for all planmeasure errors."""


class EntityParseError(PlanMeasureError, ValueError):
    """The CAD entity source is malformed. The pending build is aborted."""


class LayerConfigError(PlanMeasureError, ValueError):
    """A layer configuration mapping could not be interpreted."""


class MeasurementImportError(PlanMeasureError, ValueError):
    """An import payload does not match the measurement record shape."""
