"""
Composite key grouping scheme.

Maps input lines to (CompositeKey, payload) pairs and groups payloads by
the identifying-field prefix. Aggregate files carry pre-computed running
statistics (discriminant 0); incremental files carry the raw records to
validate (discriminant 1).

Contract towards the aggregator:
- every payload sharing an identifying prefix ends up in the same group
  and the same partition;
- a group is handed over only after all of its payloads were collected;
- order within a group is not significant (statistics sort first when
  `sort_within_group` is used, which the aggregator does not require).
"""

import os
import zlib
from collections import defaultdict
from typing import Iterable, Iterator

from pydantic import ValidationError

from outlier_validation.core.aggregation.stats_builder import (
    AVERAGE_OFFSET,
    ORDINAL_OFFSET,
    PER_FIELD_STAT_VAR_COUNT,
    STD_DEV_OFFSET,
)
from outlier_validation.core.errors import MalformedRecordError
from outlier_validation.core.models import (
    RECORD_PAYLOAD,
    STATS_PAYLOAD,
    CompositeKey,
    RawRecord,
    RunningStats,
    StatPayload,
)
from outlier_validation.core.rules import JobConfig
from outlier_validation.utils.validation import (
    extract_group_key,
    parse_float_field,
    parse_int_field,
    split_fields,
)

Payload = StatPayload | RawRecord


class CompositeKeyGroupingScheme:
    """
    Assigns raw and statistics payloads to composite-key groups.

    Usage:
        scheme = CompositeKeyGroupingScheme(config)
        key, payload = scheme.map_line(line, is_aggregate=True)
        for group_key, payloads in scheme.group(mapped_pairs):
            ...
    """

    def __init__(self, config: JobConfig):
        """
        Initialize the grouping scheme.

        Args:
            config: Validated job configuration
        """
        self.config = config
        self.quantity_ordinals = list(config.quantity_attr_ordinals)
        self.id_ordinals = config.identifying_ordinals
        # statistics start right after the last quantitative field
        self.stat_start = self.quantity_ordinals[-1] + 1
        self.num_partitions = config.num_partitions

    def is_aggregate_file(self, file_path: str) -> bool:
        """
        Tell aggregate files from incremental ones by file name prefix.

        Raises:
            ConfigurationError: If incremental.file.prefix is not configured
        """
        prefix = self.config.require_incremental_prefix()
        return not os.path.basename(file_path.rstrip("/")).startswith(prefix)

    def map_line(self, line: str, is_aggregate: bool) -> tuple[CompositeKey, Payload]:
        """
        Map one input line to its composite key and payload.

        Args:
            line: Raw delimited line
            is_aggregate: Whether the line comes from an aggregate (statistics) file

        Returns:
            Tuple of (CompositeKey, StatPayload or RawRecord)

        Raises:
            MalformedRecordError: If the line is too short or a statistic is not numeric
        """
        fields = split_fields(line, self.config.field_delim_regex)
        id_fields = extract_group_key(fields, self.id_ordinals)

        if is_aggregate:
            entries = []
            index = self.stat_start
            for ordinal in self.quantity_ordinals:
                stat_ordinal = parse_int_field(fields, index + ORDINAL_OFFSET, group_key=id_fields, ordinal=ordinal)
                average = parse_int_field(fields, index + AVERAGE_OFFSET, group_key=id_fields, ordinal=ordinal)
                std_dev = parse_float_field(fields, index + STD_DEV_OFFSET, group_key=id_fields, ordinal=ordinal)
                try:
                    entries.append(RunningStats(ordinal=stat_ordinal, average=average, std_dev=std_dev))
                except ValidationError as e:
                    raise MalformedRecordError(
                        f"invalid running statistics: {e.errors()[0]['msg']}",
                        group_key=id_fields,
                        ordinal=ordinal,
                    ) from e
                index += PER_FIELD_STAT_VAR_COUNT
            return CompositeKey(id_fields=id_fields, discriminant=STATS_PAYLOAD), StatPayload(entries=tuple(entries))

        return CompositeKey(id_fields=id_fields, discriminant=RECORD_PAYLOAD), RawRecord(fields=tuple(fields))

    def partition(self, group_key: tuple[str, ...]) -> int:
        """
        Partition of a group, stable across processes.

        Uses CRC32 of the joined prefix rather than the salted built-in hash.
        """
        return zlib.crc32("\x1f".join(group_key).encode("utf-8")) % self.num_partitions

    def group(
        self,
        pairs: Iterable[tuple[CompositeKey, Payload]]
    ) -> Iterator[tuple[tuple[str, ...], list[Payload]]]:
        """
        In-memory group-by on the identifying prefix.

        Groups are yielded partition by partition, then in key order, so
        output is deterministic for a given input.
        """
        groups: dict[tuple[str, ...], list[Payload]] = defaultdict(list)
        for key, payload in pairs:
            groups[key.group_key].append(payload)

        for group_key in sorted(groups, key=lambda k: (self.partition(k), k)):
            yield group_key, groups[group_key]

    @staticmethod
    def sort_within_group(
        pairs: Iterable[tuple[CompositeKey, Payload]]
    ) -> list[tuple[CompositeKey, Payload]]:
        """Secondary sort: statistics before the raw record of the same prefix."""
        return sorted(pairs, key=lambda pair: pair[0].sort_key())
