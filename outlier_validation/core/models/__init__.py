"""
Core data models for the outlier validation pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .composite_key import RECORD_PAYLOAD, STATS_PAYLOAD, CompositeKey
from .payloads import RawRecord, StatPayload
from .running_stats import RunningStats, StatRecordEntry
from .validation_result import ValidationResult

__all__ = [
    "CompositeKey",
    "STATS_PAYLOAD",
    "RECORD_PAYLOAD",
    "RunningStats",
    "StatRecordEntry",
    "StatPayload",
    "RawRecord",
    "ValidationResult",
]
