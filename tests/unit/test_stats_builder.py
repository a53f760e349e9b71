"""
Unit tests for the running statistics builder.
"""

import math

import pytest

from outlier_validation.batch.grouping import CompositeKeyGroupingScheme
from outlier_validation.core.aggregation import RunningStatsBuilder
from outlier_validation.core.aggregation.stats_builder import FieldAccumulator
from outlier_validation.core.errors import MalformedRecordError
from outlier_validation.core.models import RunningStats


class TestFieldAccumulator:
    """Tests for FieldAccumulator"""

    def test_average_and_std_dev(self):
        acc = FieldAccumulator()
        for value in (10, 20):
            acc.add(value)

        assert (acc.count, acc.total, acc.total_sq) == (2, 30, 500)
        assert acc.average == 15
        assert acc.std_dev == 5.0

    def test_average_truncates_toward_zero(self):
        acc = FieldAccumulator()
        acc.add(-3)
        acc.add(-4)
        assert acc.average == -3

    @pytest.mark.parametrize("count, total, expected", [
        (3, 3 * 2**60 + 3, 2**60 + 1),
        (3, -(3 * 2**60 + 2), -(2**60)),
        (1, 2**63 - 1, 2**63 - 1),
    ])
    def test_average_exact_past_float_precision(self, count, total, expected):
        """Test that large sums average exactly with truncation toward zero"""
        acc = FieldAccumulator()
        acc.merge(count, total, 0)
        assert acc.average == expected

    def test_empty(self):
        acc = FieldAccumulator()
        assert acc.average == 0
        assert acc.std_dev == 0.0

    def test_constant_values_have_zero_std_dev(self):
        acc = FieldAccumulator()
        for _ in range(5):
            acc.add(7)
        assert acc.std_dev == 0.0


class TestRunningStatsBuilder:
    """Tests for RunningStatsBuilder"""

    def test_lines_from_records(self, job_config):
        """Test the aggregate line layout for one group"""
        builder = RunningStatsBuilder(job_config)
        builder.add_record(["A", "B", "10"])
        builder.add_record(["A", "B", "20"])

        assert list(builder.lines()) == ["A,B,20,2,2,30,500,15,5.0"]
        assert len(builder) == 1

    def test_groups_sorted_by_key(self, job_config):
        builder = RunningStatsBuilder(job_config)
        builder.add_record(["B", "A", "1"])
        builder.add_record(["A", "B", "2"])

        assert [line.split(",")[:2] for line in builder.lines()] == [["A", "B"], ["B", "A"]]

    def test_merge_previous_aggregate(self, job_config, aggregate_lines):
        """Test that count, sum and sum of squares keep running across batches"""
        builder = RunningStatsBuilder(job_config)
        builder.add_lines(
            records=[["A", "B", "109"]],
            aggregates=[aggregate_lines[0].split(",")],
        )

        fields = next(builder.lines()).split(",")
        count, total, total_sq = 11, 1109, 100250 + 109 * 109
        mean = total / count

        assert fields[:3] == ["A", "B", "109"]
        assert fields[3:7] == ["2", str(count), str(total), str(total_sq)]
        assert fields[7] == "100"
        assert math.isclose(float(fields[8]), math.sqrt(total_sq / count - mean * mean))

    def test_aggregate_only_group_kept(self, job_config, aggregate_lines):
        builder = RunningStatsBuilder(job_config)
        builder.add_aggregate(aggregate_lines[2].split(","))
        assert list(builder.lines()) == ["X,Y,10,2,10,100,1000,10,0.0"]

    def test_multiple_quantitative_fields(self, make_config):
        config = make_config(**{"quantity.attr.ordinals": [2, 3]})
        builder = RunningStatsBuilder(config)
        builder.add_record(["A", "B", "1", "4"])
        builder.add_record(["A", "B", "3", "4"])

        assert list(builder.lines()) == ["A,B,3,4,2,2,4,10,2,1.0,3,2,8,32,4,0.0"]

    def test_non_numeric_record(self, job_config):
        builder = RunningStatsBuilder(job_config)
        with pytest.raises(MalformedRecordError):
            builder.add_record(["A", "B", "x"])
        assert len(builder) == 0

    def test_truncated_aggregate(self, job_config):
        builder = RunningStatsBuilder(job_config)
        with pytest.raises(MalformedRecordError):
            builder.add_aggregate(["A", "B", "100", "2", "10"])

    def test_output_feeds_validation(self, job_config):
        """Test that built lines are read back as running statistics"""
        builder = RunningStatsBuilder(job_config)
        builder.add_record(["A", "B", "10"])
        builder.add_record(["A", "B", "20"])

        scheme = CompositeKeyGroupingScheme(job_config)
        key, payload = scheme.map_line(next(builder.lines()), is_aggregate=True)

        assert key.group_key == ("A", "B")
        assert payload.entries == (RunningStats(ordinal=2, average=15, std_dev=5.0),)
