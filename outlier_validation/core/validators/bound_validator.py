"""
StdDevBoundValidator - checks an integer field against avg ± round(stddev * mult).
"""

import math

from outlier_validation.core.errors import MalformedRecordError
from outlier_validation.core.models import RawRecord, RunningStats
from outlier_validation.utils.validation import parse_int_field


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def parse_quantity(record: RawRecord, ordinal: int, group_key: tuple[str, ...] | None = None) -> int:
    """
    Parse the quantitative field at `ordinal` as an integer.

    Raises:
        MalformedRecordError: If the field is missing or not an integer
    """
    return parse_int_field(list(record.fields), ordinal, group_key=group_key, ordinal=ordinal)


class StdDevBoundValidator:
    """
    Validates that a value lies within a symmetric standard deviation band.

    The band is [average - delta, average + delta] with
    delta = round(std_dev * std_dev_mult); both ends are inclusive.

    Raises:
        MalformedRecordError: If std_dev * std_dev_mult is not finite
    """

    def __init__(
        self,
        stats: RunningStats,
        std_dev_mult: float,
        group_key: tuple[str, ...] | None = None
    ):
        self.stats = stats
        self.std_dev_mult = std_dev_mult

        spread = stats.std_dev * std_dev_mult
        if not math.isfinite(spread):
            raise MalformedRecordError(
                f"standard deviation bound is not finite ({stats.std_dev} * {std_dev_mult})",
                group_key=group_key,
                ordinal=stats.ordinal,
            )
        delta = round_half_away_from_zero(spread)
        self.min_value = stats.average - delta
        self.max_value = stats.average + delta

    @property
    def ordinal(self) -> int:
        return self.stats.ordinal

    def is_valid(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(ordinal={self.ordinal}, min={self.min_value}, max={self.max_value})"
