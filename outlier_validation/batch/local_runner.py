"""
In-process validation runner.

Runs the same map -> group -> aggregate flow as the Spark pipeline over
in-memory lines or local files. Used for small inputs, for the CLI
--local mode and in tests.
"""

from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Iterator

from outlier_validation.batch.grouping import CompositeKeyGroupingScheme
from outlier_validation.batch.readers import FileReader
from outlier_validation.batch.writers import TextOutputWriter
from outlier_validation.core.aggregation import GroupValidationAggregator, HistogramBinner, RunningStatsBuilder
from outlier_validation.core.aggregation.group_aggregator import ERROR_COUNTER_PREFIX
from outlier_validation.core.errors import RecordError
from outlier_validation.core.rules import JobConfig
from outlier_validation.observability import metrics
from outlier_validation.observability.logger import get_logger, log_operation, log_record_error
from outlier_validation.utils.validation import parse_int_field, split_fields

logger = get_logger(__name__)


class LocalValidationRunner:
    """
    Validates aggregate + incremental lines without Spark.

    Usage:
        runner = LocalValidationRunner(config)
        output = list(runner.validate(aggregate_lines, incremental_lines))
        runner.counters["invalid"]
    """

    def __init__(self, config: JobConfig, job_name: str = "outlier-validation"):
        self.config = config
        self.job_name = job_name
        self.scheme = CompositeKeyGroupingScheme(config)
        self.counters: Counter[str] = Counter()

    def _map_lines(self, lines: Iterable[str], is_aggregate: bool) -> Iterator[tuple[Any, Any]]:
        for line in lines:
            if not line.strip():
                continue
            try:
                yield self.scheme.map_line(line, is_aggregate)
            except RecordError as e:
                self.counters[ERROR_COUNTER_PREFIX + e.error_type] += 1
                log_record_error(logger, e, "Skipping unparseable line", aggregate=is_aggregate)

    def validate(self, aggregate_lines: Iterable[str], incremental_lines: Iterable[str]) -> Iterator[str]:
        """
        Validate every group formed by the two inputs.

        Args:
            aggregate_lines: Lines carrying running statistics
            incremental_lines: Raw record lines

        Yields:
            Output lines selected by the output policy
        """
        pairs = list(self._map_lines(aggregate_lines, is_aggregate=True))
        pairs.extend(self._map_lines(incremental_lines, is_aggregate=False))

        aggregator = GroupValidationAggregator(self.config)
        try:
            yield from aggregator.run(self.scheme.group(pairs))
        finally:
            self.counters.update(aggregator.counters)

    def run(self, input_path: str | Path, output_path: str | Path) -> dict[str, Any]:
        """
        Validate the files under input_path and write the output file.

        Returns:
            Dictionary with run results:
            - output_records: Lines written
            - invalid_records: Invalid groups
            - record_errors: Records skipped because of errors
            - counters: All counters
        """
        reader = FileReader(self.scheme.is_aggregate_file)
        writer = TextOutputWriter()

        with log_operation("Local outlier validation", logger=logger, input_path=str(input_path)) as op:
            aggregate_lines, incremental_lines = reader.read(input_path)
            logger.info(
                f"Read {len(aggregate_lines)} aggregate and {len(incremental_lines)} incremental lines"
            )
            output_records = writer.write_lines(
                self.validate(aggregate_lines, incremental_lines),
                output_path
            )

        metrics.record_validation_run(
            job=self.job_name,
            mode="local",
            output_type=self.config.output_type,
            counters=self.counters,
            output_records=output_records,
            duration_seconds=op.duration,
        )
        return summarize(self.counters, output_records)


def summarize(counters: Counter, output_records: int) -> dict[str, Any]:
    """Run summary shared by the local and Spark runners."""
    record_errors = sum(count for name, count in counters.items() if name.startswith(ERROR_COUNTER_PREFIX))
    return {
        "output_records": output_records,
        "valid_records": counters.get("valid", 0),
        "invalid_records": counters.get("invalid", 0),
        "record_errors": record_errors,
        "duplicate_records": counters.get("duplicate_records", 0),
        "counters": dict(counters),
    }


def build_running_stats(
    config: JobConfig,
    incremental_lines: Iterable[str],
    aggregate_lines: Iterable[str] = ()
) -> list[str]:
    """
    Produce aggregate lines from incremental records, merging previous aggregates.

    Lines that cannot be parsed are logged and skipped.
    """
    builder = RunningStatsBuilder(config)
    delim = config.field_delim_regex

    for line in aggregate_lines:
        if not line.strip():
            continue
        try:
            builder.add_aggregate(split_fields(line, delim))
        except RecordError as e:
            log_record_error(logger, e, "Skipping aggregate line")
    for line in incremental_lines:
        if not line.strip():
            continue
        try:
            builder.add_record(split_fields(line, delim))
        except RecordError as e:
            log_record_error(logger, e, "Skipping record")

    return list(builder.lines())


def field_histogram(config: JobConfig, lines: Iterable[str], ordinal: int) -> HistogramBinner:
    """
    Histogram of one integer field over the given lines.

    Lines whose field is missing or non-numeric are logged and skipped.
    """
    histogram = HistogramBinner(config.hist_bin_width)
    for line in lines:
        if not line.strip():
            continue
        fields = split_fields(line, config.field_delim_regex)
        try:
            histogram.add(parse_int_field(fields, ordinal, ordinal=ordinal))
        except RecordError as e:
            logger.warning(f"Skipping value: {e}", extra={"error_type": e.error_type})
    histogram.finalize()
    return histogram
