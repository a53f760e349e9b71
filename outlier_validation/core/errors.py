"""
Error hierarchy for the outlier validation pipeline.

Configuration errors abort a run before any group is processed. Record errors
are isolated per group: the runners log and count them and skip the record.
"""


class OutlierValidationError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigurationError(OutlierValidationError):
    """Raised when job configuration is missing or malformed."""
    pass


class RecordError(OutlierValidationError):
    """
    Per-record failure.

    Carries enough context (group key, field ordinal) to locate the
    offending input.
    """

    error_type = "record_error"

    def __init__(self, message: str, group_key: tuple[str, ...] | None = None, ordinal: int | None = None):
        self.message = message
        self.group_key = group_key
        self.ordinal = ordinal
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.group_key is not None:
            parts.append(f"key={','.join(self.group_key)}")
        if self.ordinal is not None:
            parts.append(f"ordinal={self.ordinal}")
        return " ".join(parts)


class MissingStatisticsError(RecordError):
    """A quantitative ordinal has no running statistics in its group."""

    error_type = "missing_statistics"


class MalformedRecordError(RecordError):
    """Non-numeric content where an integer is required, or a truncated line."""

    error_type = "malformed_record"


class EmptyHistogramError(OutlierValidationError):
    """Mean or confidence bounds queried before any observation was added."""
    pass


class HistogramStateError(OutlierValidationError):
    """Histogram mutated after it was finalized."""
    pass
