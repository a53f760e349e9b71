"""
Running statistics builder producing aggregate lines.

Aggregate line layout (one line per identifying prefix):

    <fields 0..last quantitative ordinal of the latest record>,
    then per quantitative ordinal a block of 6 values:
    ordinal, count, sum, sum_of_squares, average, std_dev

The output is the aggregate input of the next validation run, and an
existing aggregate line can be merged back in so the statistics keep
running across incremental batches.
"""

import math
from typing import Iterable, Iterator, Sequence

from outlier_validation.core.rules import JobConfig
from outlier_validation.utils.validation import extract_group_key, parse_float_field, parse_int_field

from .histogram import trunc_div

# Values per quantitative field in an aggregate line
PER_FIELD_STAT_VAR_COUNT = 6
ORDINAL_OFFSET = 0
COUNT_OFFSET = 1
SUM_OFFSET = 2
SUM_SQ_OFFSET = 3
AVERAGE_OFFSET = 4
STD_DEV_OFFSET = 5


class FieldAccumulator:
    """count / sum / sum of squares for one quantitative field."""

    __slots__ = ("count", "total", "total_sq")

    def __init__(self, count: int = 0, total: int = 0, total_sq: int = 0):
        self.count = count
        self.total = total
        self.total_sq = total_sq

    def add(self, value: int) -> None:
        self.count += 1
        self.total += value
        self.total_sq += value * value

    def merge(self, count: int, total: int, total_sq: int) -> None:
        self.count += count
        self.total += total
        self.total_sq += total_sq

    @property
    def average(self) -> int:
        # integer average truncated toward zero
        return trunc_div(self.total, self.count) if self.count else 0

    @property
    def std_dev(self) -> float:
        if not self.count:
            return 0.0
        mean = self.total / self.count
        variance = self.total_sq / self.count - mean * mean
        return math.sqrt(variance) if variance > 0 else 0.0


class RunningStatsBuilder:
    """
    Accumulates per-group running statistics for the quantitative fields.

    Usage:
        builder = RunningStatsBuilder(config)
        builder.add_aggregate(previous_fields)  # optional, keeps stats running
        for fields in incremental_records:
            builder.add_record(fields)
        lines = list(builder.lines())
    """

    def __init__(self, config: JobConfig):
        self.config = config
        self.quantity_ordinals = list(config.quantity_attr_ordinals)
        self.id_ordinals = config.identifying_ordinals
        self.stat_start = self.quantity_ordinals[-1] + 1
        self._prefixes: dict[tuple[str, ...], list[str]] = {}
        self._accumulators: dict[tuple[str, ...], dict[int, FieldAccumulator]] = {}

    def _group_key(self, fields: Sequence[str]) -> tuple[str, ...]:
        return extract_group_key(list(fields), self.id_ordinals)

    def _accumulators_for(self, key: tuple[str, ...]) -> dict[int, FieldAccumulator]:
        accumulators = self._accumulators.get(key)
        if accumulators is None:
            accumulators = {ordinal: FieldAccumulator() for ordinal in self.quantity_ordinals}
            self._accumulators[key] = accumulators
        return accumulators

    def add_record(self, fields: Sequence[str]) -> None:
        """
        Add one incremental record.

        Raises:
            MalformedRecordError: If a quantitative field is missing or not an integer
        """
        fields = list(fields)
        key = self._group_key(fields)
        values = {
            ordinal: parse_int_field(fields, ordinal, group_key=key, ordinal=ordinal)
            for ordinal in self.quantity_ordinals
        }
        accumulators = self._accumulators_for(key)
        for ordinal, value in values.items():
            accumulators[ordinal].add(value)
        self._prefixes[key] = fields[:self.stat_start]

    def add_aggregate(self, fields: Sequence[str]) -> None:
        """
        Merge a previously written aggregate line.

        Raises:
            MalformedRecordError: If the statistics blocks are truncated or non-numeric
        """
        fields = list(fields)
        key = self._group_key(fields)
        parsed = []
        index = self.stat_start
        for ordinal in self.quantity_ordinals:
            parsed.append((
                ordinal,
                parse_int_field(fields, index + COUNT_OFFSET, group_key=key, ordinal=ordinal),
                parse_int_field(fields, index + SUM_OFFSET, group_key=key, ordinal=ordinal),
                parse_int_field(fields, index + SUM_SQ_OFFSET, group_key=key, ordinal=ordinal),
            ))
            # the average and std dev are recomputed, only check they are numeric
            parse_float_field(fields, index + STD_DEV_OFFSET, group_key=key, ordinal=ordinal)
            index += PER_FIELD_STAT_VAR_COUNT

        accumulators = self._accumulators_for(key)
        for ordinal, count, total, total_sq in parsed:
            accumulators[ordinal].merge(count, total, total_sq)
        self._prefixes.setdefault(key, fields[:self.stat_start])

    def add_lines(self, records: Iterable[Sequence[str]], aggregates: Iterable[Sequence[str]] = ()) -> None:
        for fields in aggregates:
            self.add_aggregate(fields)
        for fields in records:
            self.add_record(fields)

    def lines(self) -> Iterator[str]:
        """Render one aggregate line per group, in group key order."""
        delim = self.config.field_delim_out
        for key in sorted(self._accumulators):
            items = list(self._prefixes[key])
            for ordinal in self.quantity_ordinals:
                acc = self._accumulators[key][ordinal]
                items.extend([
                    str(ordinal),
                    str(acc.count),
                    str(acc.total),
                    str(acc.total_sq),
                    str(acc.average),
                    repr(acc.std_dev),
                ])
            yield delim.join(items)

    def __len__(self) -> int:
        return len(self._accumulators)
