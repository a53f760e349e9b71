"""
Unit tests for the composite key grouping scheme.
"""

import pytest

from outlier_validation.batch.grouping import CompositeKeyGroupingScheme
from outlier_validation.core.errors import ConfigurationError, MalformedRecordError
from outlier_validation.core.models import (
    RECORD_PAYLOAD,
    STATS_PAYLOAD,
    RawRecord,
    RunningStats,
    StatPayload,
)
from outlier_validation.core.rules import JobConfig


class TestFileClassification:
    """Tests for aggregate vs incremental file detection"""

    @pytest.mark.parametrize("path, expected", [
        ("/data/in/aggr_0001.txt", True),
        ("/data/in/incr_0001.txt", False),
        ("file:///data/in/incr_0001.txt", False),
        ("/data/incr/part-00000", True),
        ("incr", False),
    ])
    def test_is_aggregate_file(self, job_config, path, expected):
        scheme = CompositeKeyGroupingScheme(job_config)
        assert scheme.is_aggregate_file(path) is expected

    def test_prefix_required(self):
        config = JobConfig.from_mapping({"quantity.attr.ordinals": [2]})
        with pytest.raises(ConfigurationError):
            CompositeKeyGroupingScheme(config).is_aggregate_file("/data/in/aggr_0001.txt")


class TestMapLine:
    """Tests for line to (key, payload) mapping"""

    def test_aggregate_line(self, job_config, aggregate_lines):
        """Test that the statistics block after the last quantitative field is read"""
        scheme = CompositeKeyGroupingScheme(job_config)
        key, payload = scheme.map_line(aggregate_lines[0], is_aggregate=True)

        assert key.id_fields == ("A", "B")
        assert key.discriminant == STATS_PAYLOAD
        assert isinstance(payload, StatPayload)
        assert payload.entries == (RunningStats(ordinal=2, average=100, std_dev=5.0),)

    def test_incremental_line(self, job_config, incremental_lines):
        scheme = CompositeKeyGroupingScheme(job_config)
        key, payload = scheme.map_line(incremental_lines[0], is_aggregate=False)

        assert key.id_fields == ("A", "B")
        assert key.discriminant == RECORD_PAYLOAD
        assert payload == RawRecord(fields=("A", "B", "109"))

    def test_default_identifying_prefix(self):
        """Test that without id.field.ordinals the fields before the first quantitative one form the key"""
        config = JobConfig.from_mapping({"quantity.attr.ordinals": [2, 3]})
        scheme = CompositeKeyGroupingScheme(config)
        key, _ = scheme.map_line("A,B,1,2,2,1,1,1,1,0.0,3,1,2,4,2,0.0", is_aggregate=True)
        assert key.id_fields == ("A", "B")

    def test_two_statistics_blocks(self, make_config):
        config = make_config(**{"quantity.attr.ordinals": [2, 3]})
        scheme = CompositeKeyGroupingScheme(config)
        _, payload = scheme.map_line("A,B,1,2,2,4,2,10,2,1.0,3,2,8,40,4,2.0", is_aggregate=True)

        assert [entry.ordinal for entry in payload.entries] == [2, 3]
        assert payload.entries[1].average == 4
        assert payload.entries[1].std_dev == 2.0

    def test_regex_delimiter(self, make_config):
        scheme = CompositeKeyGroupingScheme(make_config(**{"field.delim.regex": r"\s*;\s*"}))
        key, payload = scheme.map_line("A ; B;109", is_aggregate=False)
        assert key.id_fields == ("A", "B")
        assert payload.fields == ("A", "B", "109")

    def test_truncated_aggregate_line(self, job_config):
        scheme = CompositeKeyGroupingScheme(job_config)
        with pytest.raises(MalformedRecordError) as exc_info:
            scheme.map_line("A,B,100,2,10,1000", is_aggregate=True)
        assert exc_info.value.group_key == ("A", "B")

    def test_non_numeric_statistic(self, job_config):
        scheme = CompositeKeyGroupingScheme(job_config)
        with pytest.raises(MalformedRecordError):
            scheme.map_line("A,B,100,2,10,1000,100250,high,5.0", is_aggregate=True)

    def test_negative_std_dev_is_malformed(self, job_config):
        scheme = CompositeKeyGroupingScheme(job_config)
        with pytest.raises(MalformedRecordError):
            scheme.map_line("A,B,100,2,10,1000,100250,100,-5.0", is_aggregate=True)

    @pytest.mark.parametrize("std_dev", ["1e400", "inf", "nan"])
    def test_non_finite_std_dev_is_malformed(self, job_config, std_dev):
        """Test that an overflowing or non-numeric std dev is rejected when the line is mapped"""
        scheme = CompositeKeyGroupingScheme(job_config)
        with pytest.raises(MalformedRecordError) as exc_info:
            scheme.map_line(f"X,Y,100,2,1,100,100,100,{std_dev}", is_aggregate=True)
        assert exc_info.value.group_key == ("X", "Y")
        assert exc_info.value.ordinal == 2

    def test_line_without_identifying_fields(self, job_config):
        scheme = CompositeKeyGroupingScheme(job_config)
        with pytest.raises(MalformedRecordError):
            scheme.map_line("A", is_aggregate=False)


class TestGrouping:
    """Tests for partitioning and group-by"""

    def test_partition_stable_and_in_range(self, make_config):
        scheme = CompositeKeyGroupingScheme(make_config(**{"num.partitions": 8}))
        partitions = {scheme.partition(("A", str(i))) for i in range(100)}

        assert partitions <= set(range(8))
        assert len(partitions) > 1
        assert scheme.partition(("A", "B")) == scheme.partition(("A", "B"))

    def test_partition_ignores_discriminant(self, job_config, aggregate_lines, incremental_lines):
        """Test that statistics and record of one prefix land in the same partition"""
        scheme = CompositeKeyGroupingScheme(job_config)
        stats_key, _ = scheme.map_line(aggregate_lines[0], is_aggregate=True)
        record_key, _ = scheme.map_line(incremental_lines[0], is_aggregate=False)
        assert scheme.partition(stats_key.group_key) == scheme.partition(record_key.group_key)

    def test_group_collects_all_payloads(self, job_config, aggregate_lines, incremental_lines):
        scheme = CompositeKeyGroupingScheme(job_config)
        pairs = [scheme.map_line(line, is_aggregate=True) for line in aggregate_lines]
        pairs += [scheme.map_line(line, is_aggregate=False) for line in incremental_lines]

        groups = dict(scheme.group(pairs))

        assert set(groups) == {("A", "B"), ("A", "C"), ("X", "Y"), ("Q", "R")}
        assert len(groups[("A", "B")]) == 2
        assert len(groups[("X", "Y")]) == 1
        assert isinstance(groups[("Q", "R")][0], RawRecord)

    def test_group_order_deterministic(self, make_config, incremental_lines):
        scheme = CompositeKeyGroupingScheme(make_config(**{"num.partitions": 3}))
        pairs = [scheme.map_line(line, is_aggregate=False) for line in incremental_lines]

        first = [key for key, _ in scheme.group(pairs)]
        second = [key for key, _ in scheme.group(reversed(pairs))]
        assert first == second

    def test_sort_within_group(self, job_config, aggregate_lines, incremental_lines):
        """Test secondary sort puts statistics before the record"""
        scheme = CompositeKeyGroupingScheme(job_config)
        pairs = [
            scheme.map_line(incremental_lines[0], is_aggregate=False),
            scheme.map_line(aggregate_lines[0], is_aggregate=True),
        ]
        ordered = scheme.sort_within_group(pairs)
        assert [key.discriminant for key, _ in ordered] == [STATS_PAYLOAD, RECORD_PAYLOAD]
