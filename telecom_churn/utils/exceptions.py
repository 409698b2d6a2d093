class ChurnPipelineError(Exception):
    """Base class for errors raised by the churn pipeline."""


class DataLoadError(ChurnPipelineError):
    """An input file is missing, unreadable or lacks required columns."""


class DataQualityError(ChurnPipelineError):
    """The data violates a cleaning rule that cannot be repaired automatically."""
